"""
Frame Sample Model
==================

Internal representation of one sampled video frame.

Design Rules:
    - Created once per sampling step
    - Discarded after the provider call returns (never stored in results)
    - Image bytes are passed through unchanged
"""

import base64
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class FrameSample:
    """
    A frame captured from the video at one sampled timestamp.

    Attributes:
        timestamp: Position in the video in seconds
        image: JPEG-encoded frame bytes (NOT decoded)
        frame_index: Zero-based index of this sample within the run
        total_frames: Number of samples planned for the run
    """

    timestamp: float
    image: bytes
    frame_index: int
    total_frames: int

    def __post_init__(self) -> None:
        """Validate invariants."""
        if self.timestamp < 0:
            raise ValueError("timestamp must be non-negative")
        if not 0 <= self.frame_index < self.total_frames:
            raise ValueError("frame_index must be within [0, total_frames)")

    @property
    def image_b64(self) -> str:
        """Base64 text of the image, as most HTTP backends expect it."""
        return base64.b64encode(self.image).decode("ascii")

    def __repr__(self) -> str:
        """Compact repr that doesn't dump the full image."""
        return (
            f"FrameSample(index={self.frame_index}/{self.total_frames}, "
            f"timestamp={self.timestamp:.2f}, "
            f"bytes={len(self.image)})"
        )
