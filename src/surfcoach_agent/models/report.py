"""
Report Models
=============

Aggregated result of one analysis run.

Output Contract:
    {
        "total_frames": 12,
        "duration": 22.0,
        "overall_score": 7.6,
        "score_label": "Good performance, room to grow",
        "key_moments": [
            {"timestamp": 4.0, "action": "takeoff", "quality": "good",
             "description": "Pop up faster"}
        ],
        "recommendations": ["Pop up faster", "..."],
        "technical_breakdown": {
            "balance": 7.3, "timing": 8.1, "technique": 7.0, "flow": 8.2
        },
        "provider_name": "Google Gemini",
        "is_mock": false
    }

A Report is derived entirely from the FrameAnalysis sequence and never
mutated after construction.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from surfcoach_agent.models.analysis import Rating, SurfAction


class KeyMoment(BaseModel):
    """A frame whose action belongs to the notable maneuver set."""

    model_config = ConfigDict(frozen=True)

    timestamp: float
    action: SurfAction
    quality: Optional[Rating] = None
    description: str


class TechnicalBreakdown(BaseModel):
    """
    Four-axis scoring summary (each 0-10).

    Balance, timing and technique are NaN when no frame had a value for
    the corresponding field.
    """

    model_config = ConfigDict(frozen=True)

    balance: float
    timing: float
    technique: float
    flow: float


class Report(BaseModel):
    """Scored report for one analysis run."""

    model_config = ConfigDict(frozen=True)

    total_frames: int = Field(..., ge=0)
    duration: float = Field(..., ge=0.0, description="Timestamp of the last frame")
    overall_score: float = Field(..., ge=0.0, le=10.0)
    score_label: str = ""
    key_moments: List[KeyMoment] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    technical_breakdown: TechnicalBreakdown
    provider_name: str = ""
    is_mock: bool = False
