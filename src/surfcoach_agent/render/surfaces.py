"""
Annotation Surfaces
===================

Draw targets for the AnnotationRenderer.

Both surfaces consume the same Annotation objects and differ only in the
draw primitive:
    - CanvasSurface: video frame + annotations composited into one BGR image
      with OpenCV
    - OverlaySurface: positioned elements layered over the video, exported
      as an HTML fragment

Colors (BGR):
    line/text → white, arrow → green, circle → red
"""

import html
from dataclasses import dataclass
from typing import Callable, List, Optional, Protocol, Tuple

import cv2
import numpy as np

from surfcoach_agent.models.analysis import Annotation, AnnotationType
from surfcoach_agent.render.geometry import (
    CIRCLE_RADIUS,
    Point,
    arrow_geometry,
    dash_segments,
    description_anchor,
    line_segment,
    speed_line_segments,
    to_pixels,
)


WHITE = (255, 255, 255)
BLACK = (0, 0, 0)
GREEN = (0, 255, 0)
RED = (0, 0, 255)

STROKE = 3
FONT = cv2.FONT_HERSHEY_SIMPLEX
LABEL_SCALE = 0.6
DESCRIPTION_SCALE = 0.45
DESCRIPTION_PADDING = 5
DESCRIPTION_BOX_HEIGHT = 20
DESCRIPTION_ALPHA = 0.7


class AnnotationSurface(Protocol):
    """Protocol for annotation draw targets."""

    @property
    def width(self) -> int:
        ...

    @property
    def height(self) -> int:
        ...

    def clear(self) -> None:
        """Drop previous drawing state (and redraw the video frame, if any)."""
        ...

    def draw_line(self, annotation: Annotation) -> None:
        ...

    def draw_text(self, annotation: Annotation) -> None:
        ...

    def draw_arrow(self, annotation: Annotation) -> None:
        ...

    def draw_circle(self, annotation: Annotation) -> None:
        ...

    def draw_description(self, annotation: Annotation) -> None:
        ...


def _ipoint(point: Point) -> Tuple[int, int]:
    return (int(round(point[0])), int(round(point[1])))


# =============================================================================
# Canvas (composited video + annotations)
# =============================================================================

class CanvasSurface:
    """
    OpenCV drawing surface over the current video frame.

    Attributes:
        frame_provider: Returns the currently displayed BGR frame (or None)
        image: Composited BGR image after the last render

    Example:
        surface = CanvasSurface(video.current_frame, size=(1280, 720))
        renderer.render(surface, 4.0)
        ok, jpeg = cv2.imencode(".jpg", surface.image)
    """

    def __init__(
        self,
        frame_provider: Callable[[], Optional[np.ndarray]],
        size: Optional[Tuple[int, int]] = None,
    ) -> None:
        """
        Args:
            frame_provider: Callable returning the current frame
            size: Output (width, height); defaults to the frame's own size
        """
        self.frame_provider = frame_provider
        self.size = size
        self.image: np.ndarray = np.zeros((1, 1, 3), dtype=np.uint8)

    @property
    def width(self) -> int:
        return int(self.image.shape[1])

    @property
    def height(self) -> int:
        return int(self.image.shape[0])

    def clear(self) -> None:
        frame = self.frame_provider()
        if frame is None:
            width, height = self.size or (640, 360)
            self.image = np.zeros((height, width, 3), dtype=np.uint8)
        elif self.size is not None and (frame.shape[1], frame.shape[0]) != self.size:
            self.image = cv2.resize(frame, self.size)
        else:
            self.image = frame.copy()

    def draw_line(self, annotation: Annotation) -> None:
        x, y = annotation.position.x, annotation.position.y
        if annotation.style == "speed-line":
            # Fastest zone first, thinner strokes for slower zones
            for zone, (start, end) in enumerate(speed_line_segments(x, y, self.width, self.height)):
                self._dashed(start, end, WHITE, max(1, STROKE - zone))
        else:
            start, end = line_segment(x, y, self.width, self.height)
            self._dashed(start, end, WHITE, STROKE)

        if annotation.text:
            self._label(annotation.text, to_pixels(x, y, self.width, self.height), WHITE)

    def draw_text(self, annotation: Annotation) -> None:
        anchor = to_pixels(annotation.position.x, annotation.position.y, self.width, self.height)
        self._label(annotation.text, anchor, WHITE, centered=True)

    def draw_arrow(self, annotation: Annotation) -> None:
        (start, end), head = arrow_geometry(
            annotation.position.x, annotation.position.y, self.width, self.height
        )
        cv2.line(self.image, _ipoint(start), _ipoint(end), GREEN, STROKE, cv2.LINE_AA)
        cv2.fillPoly(self.image, [np.array([_ipoint(p) for p in head], dtype=np.int32)], GREEN)

        if annotation.text:
            self._label(annotation.text, start, GREEN)

    def draw_circle(self, annotation: Annotation) -> None:
        center = to_pixels(annotation.position.x, annotation.position.y, self.width, self.height)
        cv2.circle(self.image, _ipoint(center), CIRCLE_RADIUS, RED, STROKE, cv2.LINE_AA)

    def draw_description(self, annotation: Annotation) -> None:
        if not annotation.description:
            return
        tx, ty = _ipoint(description_anchor(
            annotation.position.x, annotation.position.y, self.width, self.height
        ))
        (text_w, _), _ = cv2.getTextSize(annotation.description, FONT, DESCRIPTION_SCALE, 1)

        overlay = self.image.copy()
        cv2.rectangle(
            overlay,
            (tx - DESCRIPTION_PADDING, ty - 15),
            (tx + text_w + DESCRIPTION_PADDING, ty - 15 + DESCRIPTION_BOX_HEIGHT),
            BLACK,
            -1,
        )
        cv2.addWeighted(overlay, DESCRIPTION_ALPHA, self.image, 1 - DESCRIPTION_ALPHA, 0, self.image)
        cv2.putText(self.image, annotation.description, (tx, ty),
                    FONT, DESCRIPTION_SCALE, WHITE, 1, cv2.LINE_AA)

    def to_jpeg(self, quality: int = 90) -> bytes:
        ok, buffer = cv2.imencode(".jpg", self.image, [int(cv2.IMWRITE_JPEG_QUALITY), quality])
        if not ok:
            raise ValueError("JPEG encoding failed")
        return buffer.tobytes()

    def _dashed(self, start: Point, end: Point, color, thickness: int) -> None:
        for a, b in dash_segments(start, end):
            cv2.line(self.image, _ipoint(a), _ipoint(b), color, thickness, cv2.LINE_AA)

    def _label(self, text: str, anchor: Point, color, centered: bool = False) -> None:
        x, y = _ipoint(anchor)
        if centered:
            (text_w, _), _ = cv2.getTextSize(text, FONT, LABEL_SCALE, 2)
            x -= text_w // 2
        # Black outline under the fill
        cv2.putText(self.image, text, (x, y), FONT, LABEL_SCALE, BLACK, 4, cv2.LINE_AA)
        cv2.putText(self.image, text, (x, y), FONT, LABEL_SCALE, color, 2, cv2.LINE_AA)


# =============================================================================
# Overlay (positioned elements)
# =============================================================================

@dataclass(frozen=True, slots=True)
class OverlayElement:
    """One absolutely positioned element, coordinates in percent."""

    kind: str
    x: float
    y: float
    css_class: str
    text: str = ""


class OverlaySurface:
    """
    Element layer drawn over the video.

    Positions stay in percent so the browser handles resizes; width and
    height only describe the container the layer is sized against.
    """

    def __init__(self, width: int = 100, height: int = 100) -> None:
        self._width = width
        self._height = height
        self.elements: List[OverlayElement] = []

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    def clear(self) -> None:
        self.elements = []

    def draw_line(self, annotation: Annotation) -> None:
        line_class = "speed-line" if annotation.style == "speed-line" else "action-line"
        self._add("line", annotation, f"annotation-line {line_class}")

    def draw_text(self, annotation: Annotation) -> None:
        self._add("text", annotation, "annotation-text")

    def draw_arrow(self, annotation: Annotation) -> None:
        self._add("arrow", annotation, f"annotation-arrow {annotation.style}".strip())

    def draw_circle(self, annotation: Annotation) -> None:
        self._add("circle", annotation, "annotation-circle")

    def draw_description(self, annotation: Annotation) -> None:
        if not annotation.description:
            return
        self.elements.append(OverlayElement(
            kind="description",
            x=annotation.position.x + 5,
            y=annotation.position.y + 25,
            css_class="annotation-description",
            text=annotation.description,
        ))

    def to_html(self) -> str:
        """Serialize the layer as an HTML fragment."""
        return "\n".join(self._element_html(e) for e in self.elements)

    def _add(self, kind: str, annotation: Annotation, css_class: str) -> None:
        self.elements.append(OverlayElement(
            kind=kind,
            x=annotation.position.x,
            y=annotation.position.y,
            css_class=css_class,
            text=annotation.text,
        ))

    @staticmethod
    def _element_html(element: OverlayElement) -> str:
        style = (
            f"position: absolute; left: {element.x:g}%; top: {element.y:g}%; "
            "pointer-events: none; z-index: 10;"
        )
        return (
            f'<div class="annotation {html.escape(element.kind)} '
            f'{html.escape(element.css_class)}" style="{style}">'
            f"<span>{html.escape(element.text)}</span></div>"
        )


SURFACE_METHODS = {
    AnnotationType.LINE: "draw_line",
    AnnotationType.TEXT: "draw_text",
    AnnotationType.ARROW: "draw_arrow",
    AnnotationType.CIRCLE: "draw_circle",
}
