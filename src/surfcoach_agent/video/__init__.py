"""
Video Module
============

Video sources the analysis pipeline samples frames from.

Components:
    - VideoSource: Protocol (duration, seek, capture_frame)
    - OpenCVVideoSource: Local file source backed by OpenCV
"""

from surfcoach_agent.video.source import OpenCVVideoSource, VideoSource

__all__ = [
    "VideoSource",
    "OpenCVVideoSource",
]
