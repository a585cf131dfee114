"""
Annotation Geometry
===================

Pixel geometry for annotation primitives.

All annotation positions are percentages of the surface size. These helpers
convert them to pixels for a given width/height; nothing here is cached, so
a resized surface always gets fresh coordinates.

Shapes:
    - Generic line: anchor → anchor + (20%, 20%), dashed
    - Speed line: three horizontal dashed segments, 30% wide, at y, y+15%, y+30%
    - Arrow: shaft anchor → anchor + (25%, 25%), triangular head at the tip
    - Circle: fixed 20px radius around the anchor
    - Description: label at anchor + (5%, 25%)
"""

import math
from typing import List, Tuple


Point = Tuple[float, float]
Segment = Tuple[Point, Point]


DASH_PATTERN = (10.0, 5.0)  # on, off (px)

LINE_OFFSET_PCT = 20.0
SPEED_LINE_WIDTH_PCT = 30.0
SPEED_LINE_SPACING_PCT = 15.0
SPEED_LINE_COUNT = 3

ARROW_OFFSET_PCT = 25.0
ARROW_HEAD_LENGTH = 15.0
ARROW_HEAD_ANGLE = math.pi / 6

CIRCLE_RADIUS = 20

DESCRIPTION_OFFSET_X_PCT = 5.0
DESCRIPTION_OFFSET_Y_PCT = 25.0


def to_pixels(x_pct: float, y_pct: float, width: int, height: int) -> Point:
    return (x_pct * width / 100.0, y_pct * height / 100.0)


def dash_segments(start: Point, end: Point, pattern: Tuple[float, float] = DASH_PATTERN) -> List[Segment]:
    """
    Split a segment into dashes.

    Args:
        start: Segment start (px)
        end: Segment end (px)
        pattern: (dash length, gap length) in px

    Returns:
        Visible dash segments, in order from start to end
    """
    on, off = pattern
    dx, dy = end[0] - start[0], end[1] - start[1]
    length = math.hypot(dx, dy)
    if length == 0:
        return []

    ux, uy = dx / length, dy / length
    dashes: List[Segment] = []
    position = 0.0
    while position < length:
        stop = min(position + on, length)
        dashes.append((
            (start[0] + ux * position, start[1] + uy * position),
            (start[0] + ux * stop, start[1] + uy * stop),
        ))
        position = stop + off
    return dashes


def line_segment(x_pct: float, y_pct: float, width: int, height: int) -> Segment:
    """Generic line from the anchor diagonally down-right."""
    return (
        to_pixels(x_pct, y_pct, width, height),
        to_pixels(x_pct + LINE_OFFSET_PCT, y_pct + LINE_OFFSET_PCT, width, height),
    )


def speed_line_segments(x_pct: float, y_pct: float, width: int, height: int) -> List[Segment]:
    """Three stacked speed-zone lines, fastest zone first (nearest the anchor)."""
    segments = []
    for i in range(SPEED_LINE_COUNT):
        row = y_pct + i * SPEED_LINE_SPACING_PCT
        segments.append((
            to_pixels(x_pct, row, width, height),
            to_pixels(x_pct + SPEED_LINE_WIDTH_PCT, row, width, height),
        ))
    return segments


def arrow_geometry(x_pct: float, y_pct: float, width: int, height: int) -> Tuple[Segment, List[Point]]:
    """
    Arrow shaft and head.

    Returns:
        (shaft segment, head triangle [tip, left, right])
    """
    start = to_pixels(x_pct, y_pct, width, height)
    end = to_pixels(x_pct + ARROW_OFFSET_PCT, y_pct + ARROW_OFFSET_PCT, width, height)

    angle = math.atan2(end[1] - start[1], end[0] - start[0])
    head = [
        end,
        (
            end[0] - ARROW_HEAD_LENGTH * math.cos(angle - ARROW_HEAD_ANGLE),
            end[1] - ARROW_HEAD_LENGTH * math.sin(angle - ARROW_HEAD_ANGLE),
        ),
        (
            end[0] - ARROW_HEAD_LENGTH * math.cos(angle + ARROW_HEAD_ANGLE),
            end[1] - ARROW_HEAD_LENGTH * math.sin(angle + ARROW_HEAD_ANGLE),
        ),
    ]
    return (start, end), head


def description_anchor(x_pct: float, y_pct: float, width: int, height: int) -> Point:
    return to_pixels(
        x_pct + DESCRIPTION_OFFSET_X_PCT,
        y_pct + DESCRIPTION_OFFSET_Y_PCT,
        width,
        height,
    )
