"""
Annotation Synthesizer
======================

Derives visual markers from a FrameAnalysis when the provider sent none.

Rules (independent, all applicable rules fire, each at most once):
    - surfer_position set           → "speed-line" line near (20, 20)
    - current_action not UNKNOWN    → "action-arrow" arrow near (50, 50)
    - body_posture needs-improvement → "balance-circle" circle near (60, 40)

Pure and deterministic: the same analysis always yields the same list.
"""

from typing import List

from surfcoach_agent.models.analysis import (
    Annotation,
    AnnotationPosition,
    AnnotationType,
    FrameAnalysis,
    Rating,
    SurfAction,
)


SPEED_LINE_TEXT = "Speed Zones"
SPEED_LINE_DESCRIPTION = (
    "Speed is highest at the top of the wave, weaker mid-face, slowest at the bottom."
)
ACTION_PLACEHOLDER = "Action tip"
BALANCE_TEXT = "Shift Your Weight"
BALANCE_DESCRIPTION = "Adjust your center of gravity for better balance."


class AnnotationSynthesizer:
    """Rule-based annotation generator."""

    def __init__(self, duration: float = 3.0) -> None:
        self.duration = duration

    def synthesize(self, analysis: FrameAnalysis) -> List[Annotation]:
        """
        Generate annotations for one frame.

        Args:
            analysis: Parsed frame analysis

        Returns:
            Zero to three annotations, in rule order
        """
        annotations: List[Annotation] = []
        t = analysis.timestamp

        if analysis.surfer_position is not None:
            annotations.append(Annotation(
                type=AnnotationType.LINE,
                position=AnnotationPosition(x=20, y=20),
                style="speed-line",
                text=SPEED_LINE_TEXT,
                description=SPEED_LINE_DESCRIPTION,
                timestamp=t,
                duration=self.duration,
            ))

        if analysis.current_action is not SurfAction.UNKNOWN:
            annotations.append(Annotation(
                type=AnnotationType.ARROW,
                position=AnnotationPosition(x=50, y=50),
                style="action-arrow",
                text=analysis.current_action.value,
                description=analysis.first_suggestion or ACTION_PLACEHOLDER,
                timestamp=t,
                duration=self.duration,
            ))

        if analysis.body_posture is Rating.NEEDS_IMPROVEMENT:
            annotations.append(Annotation(
                type=AnnotationType.CIRCLE,
                position=AnnotationPosition(x=60, y=40),
                style="balance-circle",
                text=BALANCE_TEXT,
                description=BALANCE_DESCRIPTION,
                timestamp=t,
                duration=self.duration,
            ))

        return annotations
