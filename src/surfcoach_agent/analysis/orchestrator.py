"""
Analysis Orchestrator
=====================

Drives one analysis run end to end.

For each sampled timestamp t = i * interval, i in [0, ceil(duration / interval)):
    1. Seek the video to t (bounded wait, proceeds on timeout)
    2. Capture the displayed frame
    3. Build the prompt and call the active provider
    4. Decode the reply (default analysis on ParseError)
    5. Synthesize annotations when the reply carried none
    6. Report progress

Error Policy:
    - Provider call failure → ProviderError, run aborted, no results returned
    - Unparseable reply     → default FrameAnalysis for that frame, run continues

Design Rules:
    - Strictly sequential: one provider call in flight at a time
    - One run at a time; a second concurrent run is rejected (busy)
    - Provider selection is locked in the registry while a run is in flight
    - Progress sink is injected per call, never a global event bus
"""

import asyncio
import inspect
import logging
import math
import time
from typing import Awaitable, Callable, List, Optional, Union

from surfcoach_agent.analysis.annotations import AnnotationSynthesizer
from surfcoach_agent.analysis.parser import ResponseParser, default_frame_analysis
from surfcoach_agent.analysis.prompt import PromptBuilder
from surfcoach_agent.errors import (
    ConfigurationError,
    InvalidInputError,
    ParseError,
    ProviderError,
)
from surfcoach_agent.models.analysis import FrameAnalysis
from surfcoach_agent.models.frame import FrameSample
from surfcoach_agent.models.provider import ProviderConfig
from surfcoach_agent.providers import ProviderAdapter, ProviderRegistry, create_adapter
from surfcoach_agent.video.source import VideoSource


logger = logging.getLogger(__name__)


ProgressCallback = Callable[[float, str], Union[None, Awaitable[None]]]
AdapterFactory = Callable[[ProviderConfig], ProviderAdapter]


class RunMetrics:
    """Metrics for AnalysisOrchestrator observability."""

    __slots__ = (
        "runs_started",
        "runs_completed",
        "runs_failed",
        "frames_analyzed",
        "fallback_frames",
        "seek_timeouts",
        "last_elapsed_sec",
        "last_provider",
    )

    def __init__(self) -> None:
        self.runs_started: int = 0
        self.runs_completed: int = 0
        self.runs_failed: int = 0
        self.frames_analyzed: int = 0
        self.fallback_frames: int = 0
        self.seek_timeouts: int = 0
        self.last_elapsed_sec: float = 0.0
        self.last_provider: Optional[str] = None

    def to_dict(self) -> dict:
        """Export metrics as dict."""
        return {
            "runs_started": self.runs_started,
            "runs_completed": self.runs_completed,
            "runs_failed": self.runs_failed,
            "frames_analyzed": self.frames_analyzed,
            "fallback_frames": self.fallback_frames,
            "seek_timeouts": self.seek_timeouts,
            "last_elapsed_sec": round(self.last_elapsed_sec, 2),
            "last_provider": self.last_provider,
        }


class AnalysisOrchestrator:
    """
    Frame-sampling analysis loop.

    Attributes:
        registry: Provider registry (active selection is read per run)
        adapter_factory: Builds the adapter for the active provider
        prompt_builder: Builds the per-frame prompt
        parser: Decodes provider replies
        synthesizer: Fills in annotations the provider did not send
        seek_timeout_sec: Maximum wait for a seek to complete
        metrics: Run metrics

    Example:
        orchestrator = AnalysisOrchestrator(registry)
        results = await orchestrator.run(
            video,
            frame_interval=2.0,
            on_progress=lambda pct, text: print(f"{pct:5.1f}% {text}"),
        )
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        adapter_factory: AdapterFactory = create_adapter,
        prompt_builder: Optional[PromptBuilder] = None,
        parser: Optional[ResponseParser] = None,
        synthesizer: Optional[AnnotationSynthesizer] = None,
        seek_timeout_sec: float = 1.0,
    ) -> None:
        self.registry = registry
        self.adapter_factory = adapter_factory
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.parser = parser or ResponseParser()
        self.synthesizer = synthesizer or AnnotationSynthesizer()
        self.seek_timeout_sec = seek_timeout_sec

        self.metrics = RunMetrics()
        self._running: bool = False

        logger.info(f"AnalysisOrchestrator initialized: seek_timeout={seek_timeout_sec}s")

    @property
    def is_running(self) -> bool:
        return self._running

    async def run(
        self,
        video: VideoSource,
        frame_interval: float,
        on_progress: Optional[ProgressCallback] = None,
        context: Optional[str] = None,
    ) -> List[FrameAnalysis]:
        """
        Analyze a video.

        Args:
            video: Source to sample frames from
            frame_interval: Seconds between samples (> 0)
            on_progress: Called after each frame with (percent, status text);
                may be a plain function or a coroutine function
            context: Optional extra prompt context

        Returns:
            One FrameAnalysis per sampled timestamp, in timestamp order

        Raises:
            ConfigurationError: Busy, no usable active provider
            InvalidInputError: Bad interval or unknown/non-positive duration
            ProviderError: A provider call failed (run aborted)
        """
        if self._running or self.registry.locked:
            raise ConfigurationError("An analysis run is already in progress")

        duration = self._validate_input(video, frame_interval)
        config = self._resolve_provider()

        frame_count = math.ceil(round(duration / frame_interval, 9))
        if not config.quota.unlimited and frame_count > config.quota.limit:
            logger.warning(
                f"Run needs {frame_count} requests, above the {config.name} "
                f"quota of {config.quota}"
            )

        adapter = self.adapter_factory(config)

        self._running = True
        self.metrics.runs_started += 1
        self.metrics.last_provider = config.name
        started = time.monotonic()
        try:
            with self.registry.run_guard():
                results = await self._sample_frames(
                    video, adapter, config, frame_interval, frame_count,
                    on_progress, context,
                )
        except Exception:
            self.metrics.runs_failed += 1
            raise
        finally:
            self._running = False
            self.metrics.last_elapsed_sec = time.monotonic() - started

        self.metrics.runs_completed += 1
        logger.info(
            f"Analysis complete: {len(results)} frames in "
            f"{self.metrics.last_elapsed_sec:.1f}s via {config.name}"
        )
        return results

    def get_metrics(self) -> dict:
        return self.metrics.to_dict()

    # -------------------------------------------------------------------------
    # Preconditions
    # -------------------------------------------------------------------------

    @staticmethod
    def _validate_input(video: VideoSource, frame_interval: float) -> float:
        if not isinstance(frame_interval, (int, float)) or not math.isfinite(frame_interval) \
                or frame_interval <= 0:
            raise InvalidInputError(f"Frame interval must be positive, got {frame_interval!r}")

        duration = getattr(video, "duration", None)
        if not isinstance(duration, (int, float)) or not math.isfinite(duration) or duration <= 0:
            raise InvalidInputError(
                f"Video duration is unknown or invalid ({duration!r}); "
                "make sure the video is fully loaded"
            )
        return float(duration)

    def _resolve_provider(self) -> ProviderConfig:
        config = self.registry.active
        if config is None:
            raise ConfigurationError("No active provider selected")
        if not config.has_credential:
            raise ConfigurationError(f"{config.name} API key is not set")
        if not config.supports_vision:
            raise ConfigurationError(f"{config.name} does not support image analysis")
        return config

    # -------------------------------------------------------------------------
    # Sampling loop
    # -------------------------------------------------------------------------

    async def _sample_frames(
        self,
        video: VideoSource,
        adapter: ProviderAdapter,
        config: ProviderConfig,
        frame_interval: float,
        frame_count: int,
        on_progress: Optional[ProgressCallback],
        context: Optional[str],
    ) -> List[FrameAnalysis]:
        logger.info(
            f"Analyzing {frame_count} frames every {frame_interval}s with {config.name}"
        )
        results: List[FrameAnalysis] = []

        for index in range(frame_count):
            timestamp = index * frame_interval

            await self._seek(video, timestamp)
            sample = FrameSample(
                timestamp=timestamp,
                image=await video.capture_frame(),
                frame_index=index,
                total_frames=frame_count,
            )

            prompt = self.prompt_builder.build(timestamp, context)
            raw_text = await self._call_provider(adapter, config, sample, prompt)
            results.append(self._interpret(raw_text, timestamp))
            self.metrics.frames_analyzed += 1

            percent = (index + 1) / frame_count * 100
            await self._report_progress(
                on_progress, percent, f"Analyzing frame {index + 1}/{frame_count}..."
            )

        return results

    async def _seek(self, video: VideoSource, timestamp: float) -> None:
        try:
            await asyncio.wait_for(video.seek(timestamp), timeout=self.seek_timeout_sec)
        except asyncio.TimeoutError:
            self.metrics.seek_timeouts += 1
            logger.warning(
                f"Seek to {timestamp:.2f}s not confirmed within "
                f"{self.seek_timeout_sec}s, using the displayed frame"
            )

    @staticmethod
    async def _call_provider(
        adapter: ProviderAdapter,
        config: ProviderConfig,
        sample: FrameSample,
        prompt: str,
    ) -> str:
        try:
            return await adapter.analyze(sample.image, prompt)
        except ProviderError as e:
            logger.error(f"{config.name} failed on {sample!r}: {e}")
            raise
        except Exception as e:
            logger.error(f"{config.name} failed on {sample!r}: {e}")
            raise ProviderError(config.id, str(e) or type(e).__name__) from e

    def _interpret(self, raw_text: str, timestamp: float) -> FrameAnalysis:
        try:
            analysis = self.parser.decode(raw_text, timestamp)
        except ParseError as e:
            self.metrics.fallback_frames += 1
            logger.warning(f"Unparseable reply at t={timestamp:.2f}s, using default: {e}")
            return default_frame_analysis(timestamp)

        if not analysis.annotations:
            analysis = analysis.model_copy(
                update={"annotations": self.synthesizer.synthesize(analysis)}
            )
        return analysis

    @staticmethod
    async def _report_progress(
        on_progress: Optional[ProgressCallback],
        percent: float,
        text: str,
    ) -> None:
        if on_progress is None:
            return
        result = on_progress(percent, text)
        if inspect.isawaitable(result):
            await result
