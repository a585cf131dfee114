"""
Test Configuration
==================

Pytest fixtures and test configuration for SurfCoachAgent.
"""

import asyncio
from typing import List

import cv2
import numpy as np
import pytest
from pydantic import SecretStr


class FakeVideo:
    """In-memory VideoSource double that records seeks."""

    def __init__(
        self,
        duration: float = 10.0,
        seek_delay: float = 0.0,
        image: bytes = b"\xff\xd8fake-jpeg\xff\xd9",
    ) -> None:
        self._duration = duration
        self.seek_delay = seek_delay
        self.image = image
        self.seeks: List[float] = []
        self.captures: int = 0

    @property
    def duration(self) -> float:
        return self._duration

    async def seek(self, timestamp: float) -> None:
        self.seeks.append(timestamp)
        if self.seek_delay:
            await asyncio.sleep(self.seek_delay)

    async def capture_frame(self) -> bytes:
        self.captures += 1
        return self.image


class ScriptedAdapter:
    """Adapter double returning scripted replies; exceptions are raised."""

    def __init__(self, replies: list, provider_id: str = "mock") -> None:
        self.provider_id = provider_id
        self.replies = list(replies)
        self.calls: List[str] = []

    async def analyze(self, image: bytes, prompt: str) -> str:
        self.calls.append(prompt)
        reply = self.replies[(len(self.calls) - 1) % len(self.replies)]
        if isinstance(reply, BaseException):
            raise reply
        return reply


@pytest.fixture
def fake_video():
    """Provide a 10-second FakeVideo."""
    return FakeVideo(duration=10.0)


@pytest.fixture
def provider_configs():
    """Provide one config per provider kind (usable, keyless, text-only)."""
    from surfcoach_agent.models import ProviderConfig, QuotaDescriptor

    return [
        ProviderConfig(
            id="mock",
            name="Mock (offline)",
            endpoint="mock://local",
            credential=SecretStr("offline"),
            supports_vision=True,
        ),
        ProviderConfig(
            id="gemini",
            name="Google Gemini",
            endpoint="https://generativelanguage.googleapis.com/v1beta/models",
            model="gemini-1.5-flash",
            supports_vision=True,
            quota=QuotaDescriptor(limit=3, period="day"),
        ),
        ProviderConfig(
            id="groq",
            name="Groq",
            endpoint="https://api.groq.com/openai/v1/chat/completions",
            credential=SecretStr("groq-key"),
            supports_vision=False,
        ),
    ]


@pytest.fixture
def registry(provider_configs):
    """Provide a ProviderRegistry with the mock provider active."""
    from surfcoach_agent.providers import ProviderRegistry

    return ProviderRegistry(provider_configs, active_id="mock")


@pytest.fixture
def sample_reply():
    """Provide a well-formed provider reply."""
    return (
        '{"surfer_position": "face", "body_posture": "needs-improvement", '
        '"wave_condition": "chest high, clean", "current_action": "cutback", '
        '"action_quality": "good", "timing": "slightly delayed", '
        '"suggestions": ["Open your shoulders earlier", "Bend your knees more"]}'
    )


@pytest.fixture
def make_analysis():
    """Factory for FrameAnalysis objects with sensible defaults."""
    from surfcoach_agent.models import FrameAnalysis

    def _make(timestamp: float = 0.0, **fields) -> FrameAnalysis:
        return FrameAnalysis(timestamp=timestamp, **fields)

    return _make


@pytest.fixture
def video_file(tmp_path):
    """Write a 3-second, 10 fps MJPG clip and return its path."""
    path = str(tmp_path / "ride.avi")
    writer = cv2.VideoWriter(path, cv2.VideoWriter_fourcc(*"MJPG"), 10.0, (64, 48))
    for i in range(30):
        frame = np.full((48, 64, 3), (i * 8) % 256, dtype=np.uint8)
        writer.write(frame)
    writer.release()
    return path


@pytest.fixture
def blank_frame():
    """Provide a black 200x100 BGR frame."""
    return np.zeros((100, 200, 3), dtype=np.uint8)


def run(coro):
    """Drive a coroutine to completion."""
    return asyncio.run(coro)


