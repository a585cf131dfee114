"""
Report Aggregator Tests
=======================

Scoring, key moments, recommendations and technical breakdown.
"""

import math

import pytest

from surfcoach_agent.analysis import ReportAggregator, describe_score, mock_report
from surfcoach_agent.analysis.report import (
    KEY_MOMENT_PLACEHOLDER,
    is_natural_transition,
    round_half_up,
    timing_score,
)
from surfcoach_agent.models import Rating, SurfAction


class TestOverallScore:
    """Tests for the overall score."""

    def test_posture_only_scores(self, make_analysis):
        """Verify 9/7/5 posture-only frames average to 7.0."""
        results = [
            make_analysis(0.0, body_posture=Rating.EXCELLENT),
            make_analysis(2.0, body_posture=Rating.GOOD),
            make_analysis(4.0, body_posture=Rating.NEEDS_IMPROVEMENT),
        ]
        assert ReportAggregator().overall_score(results) == 7.0

    def test_unscorable_frames_excluded(self, make_analysis):
        results = [
            make_analysis(0.0, body_posture=Rating.EXCELLENT),
            make_analysis(2.0),
        ]
        assert ReportAggregator().overall_score(results) == 9.0

    def test_frame_score_is_mean_of_fields(self, make_analysis):
        results = [
            make_analysis(
                0.0,
                body_posture=Rating.EXCELLENT,
                action_quality=Rating.GOOD,
                timing="a bit delayed",
            ),
        ]
        assert ReportAggregator().overall_score(results) == 7.0

    def test_half_up_rounding(self, make_analysis):
        results = [
            make_analysis(0.0, body_posture=Rating.EXCELLENT),
            make_analysis(2.0, body_posture=Rating.NEEDS_IMPROVEMENT, timing="meh"),
        ]
        # (9 + 5.5) / 2 = 7.25
        assert ReportAggregator().overall_score(results) == 7.3

    def test_no_scorable_frames(self, make_analysis):
        assert ReportAggregator().overall_score([make_analysis(0.0)]) == 0.0
        assert ReportAggregator().overall_score([]) == 0.0


class TestTimingScore:
    """Tests for keyword-based timing scores."""

    @pytest.mark.parametrize("text, expected", [
        ("accurate", 9),
        ("Optimal timing", 9),
        ("good", 7),
        ("fine", 7),
        ("delayed pop-up", 5),
        ("late, start earlier", 5),
        ("needs improvement", 5),
        ("hard to tell", 6),
    ])
    def test_keywords(self, text, expected):
        assert timing_score(text) == expected

    def test_empty_timing_is_undefined(self):
        assert timing_score(None) is None
        assert timing_score("") is None


class TestKeyMoments:
    """Tests for notable-action extraction."""

    def test_notable_actions_only_in_order(self, make_analysis):
        results = [
            make_analysis(0.0, current_action=SurfAction.TAKEOFF, suggestions=["Pop up faster"]),
            make_analysis(2.0, current_action=SurfAction.GLIDE),
            make_analysis(4.0, current_action=SurfAction.TURN, action_quality=Rating.GOOD),
            make_analysis(6.0, current_action=SurfAction.UNKNOWN),
            make_analysis(8.0, current_action=SurfAction.DECELERATE),
        ]
        moments = ReportAggregator().key_moments(results)

        assert [m.timestamp for m in moments] == [0.0, 4.0, 8.0]
        assert moments[0].description == "Pop up faster"
        assert moments[1].quality is Rating.GOOD
        assert moments[1].description == KEY_MOMENT_PLACEHOLDER


class TestRecommendations:
    """Tests for frequency-ranked suggestions."""

    def test_ties_keep_first_seen_order(self, make_analysis):
        results = [
            make_analysis(0.0, suggestions=["A", "B"]),
            make_analysis(2.0, suggestions=["C", "B"]),
            make_analysis(4.0, suggestions=["A"]),
            make_analysis(6.0, suggestions=["B", "A"]),
        ]
        assert ReportAggregator().recommendations(results) == ["A", "B", "C"]

    def test_top_five(self, make_analysis):
        results = [make_analysis(0.0, suggestions=[f"tip {i}" for i in range(8)])]
        assert len(ReportAggregator().recommendations(results)) == 5


class TestTechnicalBreakdown:
    """Tests for the four-axis breakdown."""

    def test_flow_natural_and_unnatural(self, make_analysis):
        """Verify 8.0 + 0.1 - 0.2 yields 7.9."""
        results = [
            make_analysis(0.0, current_action=SurfAction.TAKEOFF),
            make_analysis(2.0, current_action=SurfAction.GLIDE),
            make_analysis(4.0, current_action=SurfAction.TAKEOFF),
        ]
        assert ReportAggregator().flow_score(results) == 7.9

    def test_flow_skips_repeats_and_unknown(self, make_analysis):
        results = [
            make_analysis(0.0, current_action=SurfAction.GLIDE),
            make_analysis(2.0, current_action=SurfAction.GLIDE),
            make_analysis(4.0, current_action=SurfAction.UNKNOWN),
            make_analysis(6.0, current_action=SurfAction.DECELERATE),
        ]
        assert ReportAggregator().flow_score(results) == 8.0

    def test_flow_clamped(self, make_analysis):
        actions = [SurfAction.DECELERATE, SurfAction.TAKEOFF] * 30
        results = [make_analysis(float(i), current_action=a) for i, a in enumerate(actions)]
        assert ReportAggregator().flow_score(results) == 0.0

    def test_axes(self, make_analysis):
        results = [
            make_analysis(0.0, body_posture=Rating.EXCELLENT, action_quality=Rating.GOOD,
                          timing="accurate"),
            make_analysis(2.0, body_posture=Rating.GOOD, timing="late"),
        ]
        breakdown = ReportAggregator().technical_breakdown(results)

        assert breakdown.balance == 8.0
        assert breakdown.timing == 7.0
        assert breakdown.technique == 7.0

    def test_empty_axes_are_nan(self):
        breakdown = ReportAggregator().technical_breakdown([])

        assert math.isnan(breakdown.balance)
        assert math.isnan(breakdown.timing)
        assert math.isnan(breakdown.technique)
        assert breakdown.flow == 8.0

    def test_natural_transition_table(self):
        assert is_natural_transition(SurfAction.TURN, SurfAction.CUTBACK)
        assert not is_natural_transition(SurfAction.CUTBACK, SurfAction.TAKEOFF)
        assert not is_natural_transition(SurfAction.DECELERATE, SurfAction.GLIDE)


class TestAggregate:
    """Tests for the full report."""

    def test_report_fields(self, make_analysis):
        results = [
            make_analysis(0.0, body_posture=Rating.GOOD, current_action=SurfAction.TAKEOFF),
            make_analysis(2.0, body_posture=Rating.GOOD, current_action=SurfAction.GLIDE),
        ]
        report = ReportAggregator(provider_name="Google Gemini").aggregate(results)

        assert report.total_frames == 2
        assert report.duration == 2.0
        assert report.overall_score == 7.0
        assert report.score_label == describe_score(7.0)
        assert report.provider_name == "Google Gemini"
        assert report.is_mock is False
        assert len(report.key_moments) == 1

    def test_empty_results(self):
        report = ReportAggregator().aggregate([])

        assert report.total_frames == 0
        assert report.duration == 0.0
        assert report.overall_score == 0.0


class TestHelpers:
    """Tests for score labels and rounding."""

    @pytest.mark.parametrize("score, fragment", [
        (9.4, "Outstanding"),
        (8.0, "Excellent"),
        (7.5, "Good"),
        (6.0, "Fair"),
        (3.2, "Keep practicing"),
    ])
    def test_describe_score(self, score, fragment):
        assert describe_score(score).startswith(fragment)

    def test_round_half_up(self):
        assert round_half_up(7.25) == 7.3
        assert round_half_up(7.24) == 7.2
        assert math.isnan(round_half_up(math.nan))

    def test_mock_report(self):
        report = mock_report()

        assert report.is_mock is True
        assert report.overall_score == 8.7
        assert report.key_moments
