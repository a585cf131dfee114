"""
Frame Analysis Models
=====================

Structured per-frame result and the annotation value objects attached to it.

Core Concepts:
    - SurferPosition: Where on the wave the surfer is (crest, face, trough)
    - Rating: Three-level quality scale used for posture and action quality
    - SurfAction: Fixed action vocabulary (plus UNKNOWN)
    - Annotation: Timestamped visual marker anchored at percentage coordinates
    - FrameAnalysis: Normalized result for one sampled frame

Annotation Contract:
    {
        "type": "arrow",
        "position": {"x": 50, "y": 50},
        "style": "action-arrow",
        "text": "cutback",
        "description": "Open your shoulders earlier",
        "timestamp": 12.0,
        "duration": 3.0
    }
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class SurferPosition(str, Enum):
    """Position of the surfer on the wave."""

    CREST = "crest"
    FACE = "face"
    TROUGH = "trough"


class Rating(str, Enum):
    """
    Three-level quality scale.

    Used for both body posture and action quality.
    """

    EXCELLENT = "excellent"
    GOOD = "good"
    NEEDS_IMPROVEMENT = "needs-improvement"


class SurfAction(str, Enum):
    """Fixed action vocabulary recognized in provider replies."""

    TAKEOFF = "takeoff"
    GLIDE = "glide"
    TURN = "turn"
    CUTBACK = "cutback"
    ACCELERATE = "accelerate"
    DECELERATE = "decelerate"
    UNKNOWN = "unknown"


class AnnotationType(str, Enum):
    """Drawing variant of an annotation."""

    LINE = "line"
    TEXT = "text"
    ARROW = "arrow"
    CIRCLE = "circle"


class AnnotationPosition(BaseModel):
    """Anchor point as percentages of the drawing surface."""

    model_config = ConfigDict(frozen=True)

    x: float = Field(..., ge=0.0, le=100.0, description="Percent of surface width")
    y: float = Field(..., ge=0.0, le=100.0, description="Percent of surface height")


class Annotation(BaseModel):
    """
    Timestamped coaching marker drawn over the video.

    Annotations are immutable value objects. The style tag selects the
    rendering variant (e.g. "speed-line" draws three speed zones).

    Attributes:
        type: Drawing variant
        position: Anchor in percentage coordinates
        style: Free-form style tag
        text: Main label
        description: Optional detail line drawn below the anchor
        timestamp: Video time (seconds) the annotation is anchored to
        duration: Display duration in seconds
    """

    model_config = ConfigDict(frozen=True)

    type: AnnotationType
    position: AnnotationPosition
    style: str = Field(default="", description="Rendering style tag")
    text: str = Field(default="", description="Main label")
    description: Optional[str] = Field(default=None, description="Detail line")
    timestamp: float = Field(..., ge=0.0, description="Anchor time in seconds")
    duration: float = Field(default=3.0, gt=0.0, description="Display duration in seconds")


class FrameAnalysis(BaseModel):
    """
    Normalized analysis of one sampled frame.

    The parser always fills every scoring field. They are optional here so
    that aggregation can treat a missing value as "not scorable" rather than
    as zero.

    Attributes:
        timestamp: Frame time in seconds
        surfer_position: Position on the wave
        body_posture: Posture rating
        wave_condition: Free-text wave description
        current_action: Detected action
        action_quality: Action quality rating
        timing: Free-text timing assessment (scored by keyword)
        suggestions: Ordered coaching suggestions
        annotations: Markers for this frame (synthesized when the provider sent none)
    """

    model_config = ConfigDict(frozen=True)

    timestamp: float = Field(..., ge=0.0)
    surfer_position: Optional[SurferPosition] = None
    body_posture: Optional[Rating] = None
    wave_condition: str = ""
    current_action: SurfAction = SurfAction.UNKNOWN
    action_quality: Optional[Rating] = None
    timing: Optional[str] = None
    suggestions: List[str] = Field(default_factory=list)
    annotations: List[Annotation] = Field(default_factory=list)

    @property
    def first_suggestion(self) -> Optional[str]:
        return self.suggestions[0] if self.suggestions else None
