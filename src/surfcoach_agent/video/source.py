"""
Video Source
============

Capability interface the orchestrator samples frames from, plus an OpenCV
implementation for local files.

Capabilities:
    - duration: Length of the video in seconds
    - seek(timestamp): Move to a time; the coroutine completing is the
      seek-completion signal
    - capture_frame(): JPEG bytes of the currently displayed frame

Design Rules:
    - This is the ONLY place in the codebase that decodes video
    - Blocking OpenCV calls run in a worker thread
    - A failed read after a seek falls back to the last decoded frame
    - A seek that is still decoding never blocks capture_frame(), which
      encodes whatever frame is displayed at that moment
"""

import asyncio
import logging
import math
import threading
from typing import Optional, Protocol

import cv2
import numpy as np

from surfcoach_agent.errors import InvalidInputError


logger = logging.getLogger(__name__)


class VideoSource(Protocol):
    """Protocol for seekable, capturable video sources."""

    @property
    def duration(self) -> float:
        """Video length in seconds (0 or NaN when unknown)."""
        ...

    async def seek(self, timestamp: float) -> None:
        """Seek to a time; returns once the frame at that time is displayed."""
        ...

    async def capture_frame(self) -> bytes:
        """Encode the currently displayed frame as JPEG."""
        ...


class OpenCVVideoSource:
    """
    Video file source backed by cv2.VideoCapture.

    Attributes:
        path: Path to the video file
        jpeg_quality: JPEG quality for captured frames (1-100)
        fps: Frames per second reported by the container
        frame_count: Number of frames reported by the container

    Example:
        with OpenCVVideoSource("ride.mp4") as video:
            await video.seek(4.0)
            jpeg = await video.capture_frame()
    """

    def __init__(self, path: str, jpeg_quality: int = 80) -> None:
        """
        Open a video file and decode its first frame.

        Raises:
            InvalidInputError: If the file cannot be opened or has no decodable frame
        """
        self.path = path
        self.jpeg_quality = max(1, min(100, jpeg_quality))

        self._capture = cv2.VideoCapture(path)
        if not self._capture.isOpened():
            raise InvalidInputError(f"Cannot open video: {path}")

        self.fps = float(self._capture.get(cv2.CAP_PROP_FPS) or 0.0)
        self.frame_count = int(self._capture.get(cv2.CAP_PROP_FRAME_COUNT) or 0)

        # _io_lock serializes decoder access (set/read/release);
        # _frame_lock only guards the _current reference.
        self._io_lock = threading.Lock()
        self._frame_lock = threading.Lock()
        self._current: Optional[np.ndarray] = None

        ok, frame = self._capture.read()
        if not ok or frame is None:
            self._capture.release()
            raise InvalidInputError(f"No frame could be decoded from {path}")
        self._current = frame

        logger.info(
            f"OpenCVVideoSource opened: {path}, fps={self.fps:.2f}, "
            f"frames={self.frame_count}, duration={self.duration:.2f}s"
        )

    @property
    def duration(self) -> float:
        if self.fps <= 0 or self.frame_count <= 0:
            return math.nan
        return self.frame_count / self.fps

    async def seek(self, timestamp: float) -> None:
        await asyncio.to_thread(self._seek_and_read, timestamp)

    async def capture_frame(self) -> bytes:
        return await asyncio.to_thread(self._encode_current)

    def current_frame(self) -> np.ndarray:
        """Copy of the currently displayed BGR frame."""
        with self._frame_lock:
            return self._current.copy()

    def frame_at(self, timestamp: float) -> np.ndarray:
        """Blocking seek + read, for rendering outside an analysis run."""
        return self._seek_and_read(timestamp).copy()

    def _seek_and_read(self, timestamp: float) -> np.ndarray:
        """Decode the frame at `timestamp` and display it; returns that frame."""
        with self._io_lock:
            self._capture.set(cv2.CAP_PROP_POS_MSEC, max(0.0, timestamp) * 1000.0)
            ok, frame = self._capture.read()

        with self._frame_lock:
            if ok and frame is not None:
                self._current = frame
                return frame
            logger.warning(f"Read failed at t={timestamp:.2f}s, keeping previous frame")
            return self._current

    def _encode_current(self) -> bytes:
        # Snapshot the reference only; a seek still decoding never blocks capture
        with self._frame_lock:
            frame = self._current
        ok, buffer = cv2.imencode(
            ".jpg", frame, [int(cv2.IMWRITE_JPEG_QUALITY), self.jpeg_quality]
        )
        if not ok:
            raise InvalidInputError(f"JPEG encoding failed for {self.path}")
        return buffer.tobytes()

    def close(self) -> None:
        with self._io_lock:
            self._capture.release()

    def __enter__(self) -> "OpenCVVideoSource":
        return self

    def __exit__(self, *args) -> None:
        self.close()
