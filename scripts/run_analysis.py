#!/usr/bin/env python3
"""
Surf Video Analysis Script
==========================

Standalone script that analyzes one video file with the configured provider
and prints the report as JSON.

This script:
    1. Builds the provider registry from config.yaml + environment
    2. Samples the video at the configured interval
    3. Logs progress per frame
    4. Prints (or writes) the aggregated report

Prerequisites:
    - Install the package: pip install -e .
    - Set the provider credential, e.g. export GEMINI_API_KEY=...
      (or use --provider mock for an offline run)

Usage:
    python scripts/run_analysis.py ride.mp4
    python scripts/run_analysis.py ride.mp4 --provider mock --interval 1.0
    python scripts/run_analysis.py ride.mp4 --output report.json --mock-fallback
"""

import argparse
import asyncio
import functools
import json
import logging
import os
import sys

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from surfcoach_agent.config import settings
from surfcoach_agent.errors import SurfCoachError, ProviderError
from surfcoach_agent.analysis import (
    AnalysisOrchestrator,
    AnnotationSynthesizer,
    PromptBuilder,
    ReportAggregator,
    ResponseParser,
    mock_report,
)
from surfcoach_agent.models import Report
from surfcoach_agent.providers import ProviderRegistry, create_adapter
from surfcoach_agent.video import OpenCVVideoSource


logger = logging.getLogger(__name__)


def _log_progress(percent: float, status: str) -> None:
    logger.info(f"[{percent:5.1f}%] {status}")


async def run_analysis(
    video_path: str,
    provider_id: str,
    interval: float,
    context: str,
    mock_fallback: bool,
) -> Report:
    """
    Analyze one video.

    Args:
        video_path: Local video file
        provider_id: Registry id of the provider to use
        interval: Seconds between sampled frames
        context: Extra prompt context (may be empty)
        mock_fallback: Return the demonstration report if the provider fails

    Returns:
        Aggregated report
    """
    registry = ProviderRegistry.from_settings(settings.providers)
    registry.set_active(provider_id)

    analysis = settings.analysis
    orchestrator = AnalysisOrchestrator(
        registry=registry,
        adapter_factory=functools.partial(
            create_adapter,
            timeout=analysis.request_timeout_sec,
            max_rps=analysis.max_rps,
            temperature=analysis.temperature,
            max_output_tokens=analysis.max_output_tokens,
        ),
        prompt_builder=PromptBuilder(level=analysis.level),
        parser=ResponseParser(annotation_duration=settings.render.annotation_duration_sec),
        synthesizer=AnnotationSynthesizer(duration=settings.render.annotation_duration_sec),
        seek_timeout_sec=analysis.seek_timeout_sec,
    )

    logger.info("=" * 60)
    logger.info(f"Video: {video_path}")
    logger.info(f"Provider: {registry.active.name}")
    logger.info(f"Interval: {interval}s")
    logger.info("=" * 60)

    with OpenCVVideoSource(video_path, jpeg_quality=analysis.jpeg_quality) as video:
        try:
            results = await orchestrator.run(
                video,
                frame_interval=interval,
                on_progress=_log_progress,
                context=context or None,
            )
        except ProviderError as e:
            if not mock_fallback:
                raise
            logger.warning(f"Provider failed ({e}), using demonstration report")
            return mock_report()

    metrics = orchestrator.get_metrics()
    logger.info(
        f"Frames: {metrics['frames_analyzed']}, fallbacks: {metrics['fallback_frames']}, "
        f"seek timeouts: {metrics['seek_timeouts']}, elapsed: {metrics['last_elapsed_sec']}s"
    )
    return ReportAggregator(provider_name=registry.active.name).aggregate(results)


def main():
    parser = argparse.ArgumentParser(
        description="Analyze a surfing video and print the coaching report"
    )
    parser.add_argument("video", type=str, help="Path of the video file")
    parser.add_argument(
        "--provider",
        type=str,
        default=settings.providers.active,
        help=f"Provider id (default: {settings.providers.active})",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=settings.analysis.frame_interval_sec,
        help=f"Seconds between sampled frames (default: {settings.analysis.frame_interval_sec})",
    )
    parser.add_argument(
        "--context",
        type=str,
        default="",
        help="Extra context for the prompt (e.g. 'beginner, longboard')",
    )
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Write the report to this file instead of stdout",
    )
    parser.add_argument(
        "--mock-fallback",
        action="store_true",
        help="Print the demonstration report if the provider fails",
    )

    args = parser.parse_args()

    try:
        report = asyncio.run(run_analysis(
            video_path=args.video,
            provider_id=args.provider,
            interval=args.interval,
            context=args.context,
            mock_fallback=args.mock_fallback,
        ))
    except SurfCoachError as e:
        logger.error(f"Analysis failed: {e}")
        sys.exit(1)

    payload = json.dumps(json.loads(report.model_dump_json()), indent=2, ensure_ascii=False)
    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(payload)
        logger.info(f"Report written to {args.output}")
    else:
        print(payload)

    sys.exit(0)


if __name__ == "__main__":
    main()
