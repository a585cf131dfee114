"""
Report Aggregator
=================

Reduces a run's FrameAnalysis sequence into a scored Report.

Scoring Table (posture, action quality, timing keyword):
    excellent / optimal           → 9
    good / fine                   → 7
    needs-improvement / delayed   → 5
    anything else                 → 6

Rounding:
    All scores are rounded half-up to one decimal.

Flow:
    Starts at 8.0. Each consecutive pair of defined, different actions adds
    0.1 when the transition is natural and subtracts 0.2 otherwise. The
    running total is rounded and clamped to [0, 10] only at the end.
"""

import logging
import math
from collections import Counter
from typing import Dict, FrozenSet, List, Optional, Sequence

from surfcoach_agent.models.analysis import FrameAnalysis, Rating, SurfAction
from surfcoach_agent.models.report import KeyMoment, Report, TechnicalBreakdown


logger = logging.getLogger(__name__)


# =============================================================================
# Tables
# =============================================================================

RATING_SCORES: Dict[Rating, int] = {
    Rating.EXCELLENT: 9,
    Rating.GOOD: 7,
    Rating.NEEDS_IMPROVEMENT: 5,
}

# Checked in order; first tier with a matching keyword wins
TIMING_KEYWORDS = (
    (9, ("accurate", "excellent", "optimal")),
    (7, ("good", "fine", "not bad")),
    (5, ("needs improvement", "needs-improvement", "delayed", "late")),
)

UNRATED_SCORE = 6

NOTABLE_ACTIONS: FrozenSet[SurfAction] = frozenset({
    SurfAction.TAKEOFF,
    SurfAction.TURN,
    SurfAction.CUTBACK,
    SurfAction.ACCELERATE,
    SurfAction.DECELERATE,
})

NATURAL_TRANSITIONS: Dict[SurfAction, FrozenSet[SurfAction]] = {
    SurfAction.TAKEOFF: frozenset({SurfAction.GLIDE, SurfAction.ACCELERATE}),
    SurfAction.GLIDE: frozenset({SurfAction.TURN, SurfAction.CUTBACK, SurfAction.ACCELERATE}),
    SurfAction.TURN: frozenset({SurfAction.GLIDE, SurfAction.CUTBACK}),
    SurfAction.CUTBACK: frozenset({SurfAction.GLIDE, SurfAction.TURN}),
    SurfAction.ACCELERATE: frozenset({SurfAction.GLIDE, SurfAction.TURN}),
}

FLOW_BASE = 8.0
FLOW_NATURAL_BONUS = 0.1
FLOW_UNNATURAL_PENALTY = 0.2

MAX_RECOMMENDATIONS = 5
KEY_MOMENT_PLACEHOLDER = "Key moment"

SCORE_LABELS = (
    (9.0, "Outstanding performance"),
    (8.0, "Excellent performance, strong technique"),
    (7.0, "Good performance, room to grow"),
    (6.0, "Fair performance, keep working on the basics"),
)
LOWEST_SCORE_LABEL = "Keep practicing, improvement will come"


# =============================================================================
# Scoring helpers
# =============================================================================

def round_half_up(value: float) -> float:
    """Round to one decimal, halves away from zero for non-negative scores."""
    if math.isnan(value):
        return value
    return math.floor(value * 10 + 0.5) / 10


def rating_score(rating: Optional[Rating]) -> Optional[int]:
    """Score for a posture or action-quality rating (None when undefined)."""
    if rating is None:
        return None
    return RATING_SCORES.get(rating, UNRATED_SCORE)


def timing_score(timing: Optional[str]) -> Optional[int]:
    """Score for a free-text timing assessment (None when empty)."""
    if not timing:
        return None
    text = timing.lower()
    for score, keywords in TIMING_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return score
    return UNRATED_SCORE


def is_natural_transition(previous: SurfAction, current: SurfAction) -> bool:
    return current in NATURAL_TRANSITIONS.get(previous, frozenset())


def describe_score(score: float) -> str:
    """Verbal tier for an overall score."""
    for threshold, label in SCORE_LABELS:
        if score >= threshold:
            return label
    return LOWEST_SCORE_LABEL


def _mean(values: Sequence[float]) -> float:
    if not values:
        return math.nan
    return round_half_up(sum(values) / len(values))


def _defined_action(action: Optional[SurfAction]) -> bool:
    return action is not None and action is not SurfAction.UNKNOWN


# =============================================================================
# Aggregator
# =============================================================================

class ReportAggregator:
    """
    Builds a Report from FrameAnalysis results.

    Pure: the same results always produce the same Report.

    Example:
        report = ReportAggregator(provider_name="Google Gemini").aggregate(results)
        print(report.overall_score, report.score_label)
    """

    def __init__(self, provider_name: str = "") -> None:
        self.provider_name = provider_name

    def aggregate(self, results: Sequence[FrameAnalysis]) -> Report:
        """
        Aggregate one run's results.

        Args:
            results: FrameAnalysis entries in timestamp order

        Returns:
            Report (technical breakdown axes are NaN for empty input)
        """
        if not results:
            logger.warning("Aggregating an empty result set")

        overall = self.overall_score(results)
        report = Report(
            total_frames=len(results),
            duration=results[-1].timestamp if results else 0.0,
            overall_score=overall,
            score_label=describe_score(overall),
            key_moments=self.key_moments(results),
            recommendations=self.recommendations(results),
            technical_breakdown=self.technical_breakdown(results),
            provider_name=self.provider_name,
        )

        logger.info(
            f"Report built: frames={report.total_frames}, "
            f"score={report.overall_score}, moments={len(report.key_moments)}"
        )
        return report

    @staticmethod
    def overall_score(results: Sequence[FrameAnalysis]) -> float:
        """
        Mean of per-frame scores.

        A frame's score is the mean of its defined posture, action and timing
        scores; frames with none of them are left out. 0.0 when no frame is
        scorable.
        """
        frame_scores: List[float] = []
        for analysis in results:
            scores = [
                score for score in (
                    rating_score(analysis.body_posture),
                    rating_score(analysis.action_quality),
                    timing_score(analysis.timing),
                )
                if score is not None
            ]
            if scores:
                frame_scores.append(sum(scores) / len(scores))

        if not frame_scores:
            return 0.0
        return round_half_up(sum(frame_scores) / len(frame_scores))

    @staticmethod
    def key_moments(results: Sequence[FrameAnalysis]) -> List[KeyMoment]:
        return [
            KeyMoment(
                timestamp=analysis.timestamp,
                action=analysis.current_action,
                quality=analysis.action_quality,
                description=analysis.first_suggestion or KEY_MOMENT_PLACEHOLDER,
            )
            for analysis in results
            if analysis.current_action in NOTABLE_ACTIONS
        ]

    @staticmethod
    def recommendations(results: Sequence[FrameAnalysis]) -> List[str]:
        """Top suggestions by frequency; ties keep first-seen order."""
        counts: Counter = Counter()
        for analysis in results:
            counts.update(analysis.suggestions)
        # Counter preserves insertion order and sorted() is stable
        ranked = sorted(counts, key=lambda suggestion: -counts[suggestion])
        return ranked[:MAX_RECOMMENDATIONS]

    def technical_breakdown(self, results: Sequence[FrameAnalysis]) -> TechnicalBreakdown:
        balance = [rating_score(a.body_posture) for a in results]
        timing = [timing_score(a.timing) for a in results]
        technique = [rating_score(a.action_quality) for a in results]

        return TechnicalBreakdown(
            balance=_mean([s for s in balance if s is not None]),
            timing=_mean([s for s in timing if s is not None]),
            technique=_mean([s for s in technique if s is not None]),
            flow=self.flow_score(results),
        )

    @staticmethod
    def flow_score(results: Sequence[FrameAnalysis]) -> float:
        flow = FLOW_BASE
        for previous, current in zip(results, results[1:]):
            a, b = previous.current_action, current.current_action
            if not (_defined_action(a) and _defined_action(b)) or a is b:
                continue
            if is_natural_transition(a, b):
                flow += FLOW_NATURAL_BONUS
            else:
                flow -= FLOW_UNNATURAL_PENALTY
        return max(0.0, min(10.0, round_half_up(flow)))


# =============================================================================
# Offline report
# =============================================================================

def mock_report() -> Report:
    """
    Fixed demonstration report.

    Independent of any provider; callers may show it when a run fails and
    they choose not to retry.
    """
    return Report(
        total_frames=83,
        duration=165.0,
        overall_score=8.7,
        score_label=describe_score(8.7),
        key_moments=[
            KeyMoment(
                timestamp=15.0,
                action=SurfAction.TAKEOFF,
                quality=Rating.EXCELLENT,
                description="Well-timed pop-up with solid weight control, keep it up",
            ),
            KeyMoment(
                timestamp=28.0,
                action=SurfAction.TURN,
                quality=Rating.NEEDS_IMPROVEMENT,
                description="Start the turn about 0.3s earlier at the crest for more drive",
            ),
            KeyMoment(
                timestamp=42.0,
                action=SurfAction.CUTBACK,
                quality=Rating.GOOD,
                description="Cutback angle is fine but could be more aggressive",
            ),
            KeyMoment(
                timestamp=65.0,
                action=SurfAction.ACCELERATE,
                quality=Rating.EXCELLENT,
                description="Stable center of gravity at high speed",
            ),
        ],
        recommendations=[
            "Start turns earlier at the crest",
            "Make cutbacks more aggressive",
            "Keep your arms at your sides for better balance",
        ],
        technical_breakdown=TechnicalBreakdown(
            balance=8.8, timing=7.9, technique=8.5, flow=8.6,
        ),
        provider_name="Demo",
        is_mock=True,
    )
