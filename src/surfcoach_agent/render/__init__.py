"""
Render Module
=============

Playback-time annotation rendering.

Components:
    - AnnotationRenderer: Time-window matching and type dispatch
    - AnnotationSurface: Protocol shared by draw targets
    - CanvasSurface: OpenCV composite of frame + annotations
    - OverlaySurface: Positioned elements exported as HTML
"""

from surfcoach_agent.render.renderer import AnnotationRenderer, collect_annotations
from surfcoach_agent.render.surfaces import (
    AnnotationSurface,
    CanvasSurface,
    OverlayElement,
    OverlaySurface,
)

__all__ = [
    "AnnotationRenderer",
    "collect_annotations",
    "AnnotationSurface",
    "CanvasSurface",
    "OverlaySurface",
    "OverlayElement",
]
