"""
Mock Provider Adapter
=====================

Deterministic offline backend for demos and tests.

Produces replies in the exact JSON schema the prompt asks for, walking a
fixed, realistic maneuver sequence so reports and annotations look
plausible without any network access.
"""

import json
import logging
from typing import List, Optional


logger = logging.getLogger(__name__)


# One ride: paddle-in, takeoff, bottom glide, carve, cutback, speed run
_RIDE_SEQUENCE: List[dict] = [
    {
        "surfer_position": "crest",
        "body_posture": "good",
        "current_action": "takeoff",
        "action_quality": "good",
        "timing": "slightly delayed pop-up",
        "suggestions": ["Pop up one stroke earlier", "Keep your eyes on the shoulder"],
    },
    {
        "surfer_position": "face",
        "body_posture": "excellent",
        "current_action": "glide",
        "action_quality": "good",
        "timing": "accurate",
        "suggestions": ["Stay low through the flat section"],
    },
    {
        "surfer_position": "trough",
        "body_posture": "needs-improvement",
        "current_action": "turn",
        "action_quality": "needs-improvement",
        "timing": "late, start the turn at the crest",
        "suggestions": ["Start the turn 0.3s earlier", "Stay low through the flat section"],
    },
    {
        "surfer_position": "face",
        "body_posture": "good",
        "current_action": "cutback",
        "action_quality": "excellent",
        "timing": "good",
        "suggestions": ["Commit harder to the cutback"],
    },
    {
        "surfer_position": "face",
        "body_posture": "good",
        "current_action": "accelerate",
        "action_quality": "good",
        "timing": "optimal",
        "suggestions": ["Pump from the top third of the wave"],
    },
]


class MockProviderAdapter:
    """
    Deterministic mock backend.

    Replies cycle through a fixed ride sequence using an internal call
    counter, so two runs with fresh adapters produce identical output.

    Attributes:
        provider_id: Registry id ("mock")
        malformed_every: Every Nth reply is free text that fails parsing
            (0 = never), for exercising the per-frame fallback path
    """

    def __init__(
        self,
        provider_id: str = "mock",
        malformed_every: int = 0,
        sequence: Optional[List[dict]] = None,
    ) -> None:
        self.provider_id = provider_id
        self.malformed_every = max(0, malformed_every)
        self.sequence = sequence or _RIDE_SEQUENCE
        self._call_count: int = 0

        logger.info(
            f"MockProviderAdapter initialized: steps={len(self.sequence)}, "
            f"malformed_every={self.malformed_every}"
        )

    async def analyze(self, image: bytes, prompt: str) -> str:
        """Return the next canned reply."""
        self._call_count += 1

        if self.malformed_every and self._call_count % self.malformed_every == 0:
            return "The surfer looks fine. Keep practicing!"

        step = dict(self.sequence[(self._call_count - 1) % len(self.sequence)])
        step.setdefault("wave_condition", "medium-sized waves, clean faces")
        return json.dumps(step)

    @property
    def call_count(self) -> int:
        return self._call_count
