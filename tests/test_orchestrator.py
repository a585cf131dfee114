"""
Analysis Orchestrator Tests
===========================

Sampling, error policy, progress and busy rejection.
"""

import asyncio
import math

import pytest

from conftest import FakeVideo, ScriptedAdapter, run
from surfcoach_agent.analysis import AnalysisOrchestrator, default_frame_analysis
from surfcoach_agent.errors import ConfigurationError, InvalidInputError, ProviderError
from surfcoach_agent.models import SurfAction
from surfcoach_agent.providers import MockProviderAdapter


def _orchestrator(registry, adapter, **kwargs) -> AnalysisOrchestrator:
    return AnalysisOrchestrator(registry, adapter_factory=lambda config: adapter, **kwargs)


class TestSampling:
    """Tests for frame count and timestamps."""

    @pytest.mark.parametrize("duration, interval, expected", [
        (10.0, 2.0, 5),
        (9.0, 2.0, 5),
        (0.5, 2.0, 1),
        (6.0, 0.2, 30),
        (1.0, 0.1, 10),
    ])
    def test_frame_count_is_ceil(self, registry, duration, interval, expected):
        video = FakeVideo(duration=duration)
        results = run(_orchestrator(registry, MockProviderAdapter()).run(video, interval))

        assert len(results) == expected
        assert len(video.seeks) == expected

    def test_timestamps(self, registry):
        video = FakeVideo(duration=7.0)
        results = run(_orchestrator(registry, MockProviderAdapter()).run(video, 2.0))
        timestamps = [r.timestamp for r in results]

        assert timestamps == [0.0, 2.0, 4.0, 6.0]
        assert all(a < b for a, b in zip(timestamps, timestamps[1:]))
        assert all(t < 7.0 + 2.0 for t in timestamps)
        assert video.seeks == timestamps

    def test_prompt_carries_timestamp(self, registry, sample_reply):
        adapter = ScriptedAdapter([sample_reply])
        run(_orchestrator(registry, adapter).run(FakeVideo(duration=4.0), 2.0))

        assert "Timestamp: 0.00s" in adapter.calls[0]
        assert "Timestamp: 2.00s" in adapter.calls[1]


class TestErrorPolicy:
    """Provider failures abort; parse failures fall back."""

    def test_all_parse_no_fallback(self, registry):
        orchestrator = _orchestrator(registry, MockProviderAdapter())
        results = run(orchestrator.run(FakeVideo(duration=10.0), 2.0))

        assert all(r != default_frame_analysis(r.timestamp) for r in results)
        assert orchestrator.get_metrics()["fallback_frames"] == 0

    def test_parse_failure_uses_default(self, registry, sample_reply):
        adapter = ScriptedAdapter([sample_reply, "Nice ride!", sample_reply])
        orchestrator = _orchestrator(registry, adapter)
        results = run(orchestrator.run(FakeVideo(duration=6.0), 2.0))

        assert len(results) == 3
        assert results[1] == default_frame_analysis(2.0)
        assert results[0].current_action is SurfAction.CUTBACK
        assert orchestrator.get_metrics()["fallback_frames"] == 1

    def test_provider_error_aborts(self, registry, sample_reply):
        failure = ProviderError("mock", "quota exceeded", status=429)
        adapter = ScriptedAdapter([sample_reply, failure])
        orchestrator = _orchestrator(registry, adapter)

        with pytest.raises(ProviderError) as exc_info:
            run(orchestrator.run(FakeVideo(duration=10.0), 2.0))

        assert exc_info.value.status == 429
        assert exc_info.value.message == "quota exceeded"
        assert len(adapter.calls) == 2
        assert orchestrator.is_running is False
        assert registry.locked is False
        assert orchestrator.get_metrics()["runs_failed"] == 1

    def test_unexpected_adapter_exception_is_wrapped(self, registry):
        adapter = ScriptedAdapter([RuntimeError("socket closed")])

        with pytest.raises(ProviderError) as exc_info:
            run(_orchestrator(registry, adapter).run(FakeVideo(duration=2.0), 1.0))

        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert exc_info.value.provider_id == "mock"

    def test_missing_annotations_are_synthesized(self, registry, sample_reply):
        adapter = ScriptedAdapter([sample_reply])
        results = run(_orchestrator(registry, adapter).run(FakeVideo(duration=1.0), 1.0))

        styles = [a.style for a in results[0].annotations]
        assert styles == ["speed-line", "action-arrow", "balance-circle"]


class TestPreconditions:
    """Fatal errors raised before any provider call."""

    @pytest.mark.parametrize("duration", [0.0, -3.0, math.nan, math.inf])
    def test_bad_duration(self, registry, duration):
        adapter = ScriptedAdapter(["{}"])
        with pytest.raises(InvalidInputError):
            run(_orchestrator(registry, adapter).run(FakeVideo(duration=duration), 2.0))
        assert adapter.calls == []

    @pytest.mark.parametrize("interval", [0, -1.0, math.nan])
    def test_bad_interval(self, registry, interval):
        adapter = ScriptedAdapter(["{}"])
        with pytest.raises(InvalidInputError):
            run(_orchestrator(registry, adapter).run(FakeVideo(), interval))
        assert adapter.calls == []

    def test_missing_credential(self, registry):
        registry.set_active("gemini")
        adapter = ScriptedAdapter(["{}"])

        with pytest.raises(ConfigurationError, match="API key"):
            run(_orchestrator(registry, adapter).run(FakeVideo(), 2.0))
        assert adapter.calls == []

    def test_no_vision_support(self, registry):
        registry.set_active("groq")
        with pytest.raises(ConfigurationError, match="image analysis"):
            run(_orchestrator(registry, ScriptedAdapter(["{}"])).run(FakeVideo(), 2.0))

    def test_no_active_provider(self, provider_configs):
        from surfcoach_agent.providers import ProviderRegistry

        registry = ProviderRegistry(provider_configs)
        with pytest.raises(ConfigurationError):
            run(_orchestrator(registry, ScriptedAdapter(["{}"])).run(FakeVideo(), 2.0))


class TestProgress:
    """Tests for the injected progress sink."""

    def test_sync_callback(self, registry):
        updates = []
        orchestrator = _orchestrator(registry, MockProviderAdapter())
        run(orchestrator.run(
            FakeVideo(duration=8.0), 2.0,
            on_progress=lambda pct, text: updates.append((pct, text)),
        ))

        assert [pct for pct, _ in updates] == [25.0, 50.0, 75.0, 100.0]
        assert updates[0][1] == "Analyzing frame 1/4..."
        assert updates[-1][1] == "Analyzing frame 4/4..."

    def test_async_callback(self, registry):
        updates = []

        async def sink(pct, text):
            updates.append(pct)

        run(_orchestrator(registry, MockProviderAdapter()).run(
            FakeVideo(duration=3.0), 1.0, on_progress=sink,
        ))
        assert updates[-1] == 100.0
        assert len(updates) == 3


class TestConcurrency:
    """Busy rejection and registry locking."""

    def test_second_run_rejected_while_busy(self, registry):
        async def scenario():
            orchestrator = _orchestrator(registry, MockProviderAdapter())
            slow_video = FakeVideo(duration=2.0, seek_delay=0.05)

            first = asyncio.create_task(orchestrator.run(slow_video, 1.0))
            await asyncio.sleep(0.01)
            assert orchestrator.is_running

            with pytest.raises(ConfigurationError, match="already in progress"):
                await orchestrator.run(FakeVideo(duration=2.0), 1.0)

            return await first

        results = run(scenario())
        assert len(results) == 2

    def test_provider_switch_rejected_during_run(self, registry):
        async def scenario():
            orchestrator = _orchestrator(registry, MockProviderAdapter())
            task = asyncio.create_task(
                orchestrator.run(FakeVideo(duration=2.0, seek_delay=0.05), 1.0)
            )
            await asyncio.sleep(0.01)

            with pytest.raises(ConfigurationError):
                registry.set_active("gemini")
            with pytest.raises(ConfigurationError):
                registry.set_credential("gemini", "key")

            await task

        run(scenario())
        registry.set_active("gemini")
        assert registry.active_id == "gemini"

    def test_seek_timeout_proceeds(self, registry):
        video = FakeVideo(duration=2.0, seek_delay=0.2)
        orchestrator = _orchestrator(registry, MockProviderAdapter(), seek_timeout_sec=0.01)
        results = run(orchestrator.run(video, 1.0))

        assert len(results) == 2
        assert video.captures == 2
        assert orchestrator.get_metrics()["seek_timeouts"] == 2


class TestQuota:
    """Quota warnings do not block a run."""

    def test_quota_exceeded_warns(self, registry, caplog):
        registry.set_credential("gemini", "key")
        registry.set_active("gemini")
        orchestrator = _orchestrator(registry, MockProviderAdapter(provider_id="gemini"))

        with caplog.at_level("WARNING"):
            results = run(orchestrator.run(FakeVideo(duration=10.0), 2.0))

        assert len(results) == 5
        assert "quota" in caplog.text
