"""
SurfCoachAgent
==============

AI coaching feedback for surfing videos.

This package samples frames from a surfing video, sends each frame to one of
several interchangeable vision-analysis providers, normalizes the replies
into structured per-frame analyses, aggregates them into a scored report and
renders time-anchored annotations back onto the video during playback.

Components:
    - providers: Backend registry and adapters (Gemini, Hugging Face, Zhipu, mock)
    - analysis: Prompting, reply parsing, orchestration and reporting
    - render: Annotation rendering onto canvas and overlay surfaces
    - video: Seekable video sources

Example:
    from surfcoach_agent.config import settings
    from surfcoach_agent.models import Report

    # The service is started via the FastAPI application
    # See main.py for entry point
"""

__version__ = "0.1.0"
__author__ = "SurfCoach Project"

__all__ = [
    "__version__",
]
