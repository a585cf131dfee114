"""
Annotation Renderer
===================

Draws the annotations active at a playback time onto a surface.

Matching:
    An annotation is active at t when |annotation.timestamp - t| < tolerance
    (0.5 s by default). Annotations closer together than the tolerance are
    all drawn; no deduplication is applied.

Design Rules:
    - Synchronous and non-blocking; safe to call on every displayed frame
    - Idempotent: rendering the same t twice yields the same drawing
    - The annotation set is replaced atomically by set_annotations()
"""

import logging
from typing import Iterable, List, Sequence, Tuple

from surfcoach_agent.models.analysis import Annotation, FrameAnalysis
from surfcoach_agent.render.surfaces import SURFACE_METHODS, AnnotationSurface


logger = logging.getLogger(__name__)


def collect_annotations(results: Iterable[FrameAnalysis]) -> List[Annotation]:
    """Flatten the annotations of a run, in frame order."""
    return [annotation for analysis in results for annotation in analysis.annotations]


class AnnotationRenderer:
    """
    Time-matched annotation renderer.

    Example:
        renderer = AnnotationRenderer()
        renderer.set_annotations(collect_annotations(results))
        renderer.render(overlay, playback_time)
    """

    def __init__(self, tolerance: float = 0.5) -> None:
        self.tolerance = tolerance
        self._annotations: Tuple[Annotation, ...] = ()
        self.render_count: int = 0

    @property
    def annotations(self) -> Tuple[Annotation, ...]:
        return self._annotations

    def set_annotations(self, annotations: Iterable[Annotation]) -> None:
        self._annotations = tuple(annotations)
        logger.debug(f"Annotation set replaced: {len(self._annotations)} annotations")

    def active_at(self, playback_time: float) -> List[Annotation]:
        return [
            annotation for annotation in self._annotations
            if abs(annotation.timestamp - playback_time) < self.tolerance
        ]

    def render(self, surface: AnnotationSurface, playback_time: float) -> Sequence[Annotation]:
        """
        Clear the surface and draw every annotation active at playback_time.

        Returns:
            The annotations that were drawn
        """
        surface.clear()

        active = self.active_at(playback_time)
        for annotation in active:
            draw = getattr(surface, SURFACE_METHODS[annotation.type])
            draw(annotation)
            if annotation.description:
                surface.draw_description(annotation)

        self.render_count += 1
        return active
