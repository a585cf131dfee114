"""
Response Parser
===============

Turns raw provider text into a structured FrameAnalysis.

Decoding:
    1. Strip markdown code fences
    2. Decode the whole text as JSON, else the first JSON object found in it
    3. Validate the required fields and map enum values (with aliases)
    4. Keep provider annotations verbatim, clamping coordinates to [0, 100]

Failure Contract:
    - `decode()` raises ParseError when the text does not match the schema
    - `parse()` never raises; it returns `default_frame_analysis(timestamp)`
"""

import json
import logging
import math
import re
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from surfcoach_agent.analysis.annotations import AnnotationSynthesizer
from surfcoach_agent.errors import ParseError
from surfcoach_agent.models.analysis import (
    Annotation,
    AnnotationPosition,
    AnnotationType,
    FrameAnalysis,
    Rating,
    SurfAction,
    SurferPosition,
)


logger = logging.getLogger(__name__)


REQUIRED_FIELDS = (
    "surfer_position",
    "body_posture",
    "wave_condition",
    "current_action",
    "action_quality",
    "timing",
)

_POSITION_ALIASES: Dict[str, SurferPosition] = {
    "crest": SurferPosition.CREST,
    "wave-crest": SurferPosition.CREST,
    "peak": SurferPosition.CREST,
    "top": SurferPosition.CREST,
    "lip": SurferPosition.CREST,
    "face": SurferPosition.FACE,
    "wave-face": SurferPosition.FACE,
    "wall": SurferPosition.FACE,
    "mid-face": SurferPosition.FACE,
    "shoulder": SurferPosition.FACE,
    "trough": SurferPosition.TROUGH,
    "wave-trough": SurferPosition.TROUGH,
    "bottom": SurferPosition.TROUGH,
    "flat": SurferPosition.TROUGH,
}

_RATING_ALIASES: Dict[str, Rating] = {
    "excellent": Rating.EXCELLENT,
    "great": Rating.EXCELLENT,
    "outstanding": Rating.EXCELLENT,
    "good": Rating.GOOD,
    "fine": Rating.GOOD,
    "ok": Rating.GOOD,
    "decent": Rating.GOOD,
    "needs-improvement": Rating.NEEDS_IMPROVEMENT,
    "needs-work": Rating.NEEDS_IMPROVEMENT,
    "poor": Rating.NEEDS_IMPROVEMENT,
    "bad": Rating.NEEDS_IMPROVEMENT,
}

_ACTION_ALIASES: Dict[str, SurfAction] = {
    "takeoff": SurfAction.TAKEOFF,
    "take-off": SurfAction.TAKEOFF,
    "pop-up": SurfAction.TAKEOFF,
    "drop-in": SurfAction.TAKEOFF,
    "glide": SurfAction.GLIDE,
    "gliding": SurfAction.GLIDE,
    "trim": SurfAction.GLIDE,
    "trimming": SurfAction.GLIDE,
    "turn": SurfAction.TURN,
    "turning": SurfAction.TURN,
    "bottom-turn": SurfAction.TURN,
    "top-turn": SurfAction.TURN,
    "carve": SurfAction.TURN,
    "cutback": SurfAction.CUTBACK,
    "cut-back": SurfAction.CUTBACK,
    "accelerate": SurfAction.ACCELERATE,
    "accelerating": SurfAction.ACCELERATE,
    "pump": SurfAction.ACCELERATE,
    "pumping": SurfAction.ACCELERATE,
    "decelerate": SurfAction.DECELERATE,
    "decelerating": SurfAction.DECELERATE,
    "stall": SurfAction.DECELERATE,
    "stalling": SurfAction.DECELERATE,
}

_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)

DEFAULT_SUGGESTIONS = (
    "Keep your current stance steady",
    "Try a more aggressive maneuver",
)


def default_frame_analysis(timestamp: float) -> FrameAnalysis:
    """
    Neutral analysis used when a reply cannot be decoded.

    position=face, posture=good, action=glide, quality=good,
    timing="accurate", two generic suggestions, and the annotations the
    synthesizer derives from those values.
    """
    base = FrameAnalysis(
        timestamp=timestamp,
        surfer_position=SurferPosition.FACE,
        body_posture=Rating.GOOD,
        wave_condition="medium-sized waves",
        current_action=SurfAction.GLIDE,
        action_quality=Rating.GOOD,
        timing="accurate",
        suggestions=list(DEFAULT_SUGGESTIONS),
    )
    annotations = AnnotationSynthesizer().synthesize(base)
    return base.model_copy(update={"annotations": annotations})


def _normalize(value: str) -> str:
    return re.sub(r"[\s_]+", "-", value.strip().lower())


def _clamp(value: float) -> float:
    return max(0.0, min(100.0, value))


def parse_time(value: Any, default: float) -> float:
    """
    Convert an annotation anchor to seconds.

    Accepts numbers, numeric strings and "m:ss" strings. Anything else
    anchors the annotation to `default` (the frame timestamp).
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, (int, float)) and math.isfinite(value):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if match := re.fullmatch(r"(\d+):(\d{1,2}(?:\.\d+)?)", text):
            return int(match.group(1)) * 60 + float(match.group(2))
        try:
            seconds = float(text)
        except ValueError:
            seconds = math.nan
        if math.isfinite(seconds):
            return seconds
    logger.debug(f"Unreadable annotation timestamp {value!r}, using {default:.2f}s")
    return default


class ResponseParser:
    """
    Decoder for provider replies.

    Attributes:
        annotation_duration: Display duration given to provider annotations
            that do not specify one
    """

    def __init__(self, annotation_duration: float = 3.0) -> None:
        self.annotation_duration = annotation_duration

    def parse(self, raw_text: str, timestamp: float) -> FrameAnalysis:
        """
        Decode a reply, falling back to the default analysis.

        Never raises.
        """
        try:
            return self.decode(raw_text, timestamp)
        except ParseError as e:
            logger.warning(f"Unparseable reply at t={timestamp:.2f}s, using default: {e}")
            return default_frame_analysis(timestamp)

    def decode(self, raw_text: str, timestamp: float) -> FrameAnalysis:
        """
        Decode a reply into a FrameAnalysis.

        Args:
            raw_text: Provider reply text
            timestamp: Frame time in seconds

        Returns:
            FrameAnalysis (annotations empty if the reply had none)

        Raises:
            ParseError: If the reply does not match the expected schema
        """
        payload = self._extract_json(raw_text)

        missing = [name for name in REQUIRED_FIELDS if payload.get(name) in (None, "")]
        if missing:
            raise ParseError(f"Missing fields: {', '.join(missing)}")

        try:
            return FrameAnalysis(
                timestamp=timestamp,
                surfer_position=self._lookup(payload, "surfer_position", _POSITION_ALIASES),
                body_posture=self._lookup(payload, "body_posture", _RATING_ALIASES),
                wave_condition=self._text(payload, "wave_condition"),
                current_action=self._action(payload["current_action"]),
                action_quality=self._lookup(payload, "action_quality", _RATING_ALIASES),
                timing=self._text(payload, "timing"),
                suggestions=self._suggestions(payload.get("suggestions")),
                annotations=self._annotations(payload.get("annotations"), timestamp),
            )
        except ValidationError as e:
            raise ParseError(f"Invalid analysis: {e}") from e

    # -------------------------------------------------------------------------
    # JSON extraction
    # -------------------------------------------------------------------------

    def _extract_json(self, raw_text: Any) -> Dict[str, Any]:
        if not isinstance(raw_text, str) or not raw_text.strip():
            raise ParseError("Empty reply")

        text = _FENCE_RE.sub("", raw_text).strip()

        try:
            payload = json.loads(text)
        except json.JSONDecodeError:
            payload = self._first_object(text)

        if not isinstance(payload, dict):
            raise ParseError(f"Expected a JSON object, got {type(payload).__name__}")
        return payload

    @staticmethod
    def _first_object(text: str) -> Dict[str, Any]:
        decoder = json.JSONDecoder()
        start = text.find("{")
        while start != -1:
            try:
                obj, _ = decoder.raw_decode(text, start)
            except json.JSONDecodeError:
                start = text.find("{", start + 1)
                continue
            if isinstance(obj, dict):
                return obj
            start = text.find("{", start + 1)
        raise ParseError("No JSON object found in reply")

    # -------------------------------------------------------------------------
    # Field mapping
    # -------------------------------------------------------------------------

    @staticmethod
    def _lookup(payload: Dict[str, Any], field: str, aliases: Dict[str, Any]):
        value = payload[field]
        if not isinstance(value, str):
            raise ParseError(f"{field} must be a string")
        try:
            return aliases[_normalize(value)]
        except KeyError:
            raise ParseError(f"Unrecognized {field}: {value!r}") from None

    @staticmethod
    def _text(payload: Dict[str, Any], field: str) -> str:
        value = payload[field]
        if not isinstance(value, str):
            raise ParseError(f"{field} must be a string")
        return value.strip()

    @staticmethod
    def _action(value: Any) -> SurfAction:
        if not isinstance(value, str):
            raise ParseError("current_action must be a string")
        key = _normalize(value)
        if key in _ACTION_ALIASES:
            return _ACTION_ALIASES[key]
        # "smooth bottom turn" and similar phrasings
        for alias, action in _ACTION_ALIASES.items():
            if alias in key:
                return action
        return SurfAction.UNKNOWN

    @staticmethod
    def _suggestions(value: Any) -> List[str]:
        if not isinstance(value, list):
            return []
        return [item.strip() for item in value if isinstance(item, str) and item.strip()]

    def _annotations(self, value: Any, timestamp: float) -> List[Annotation]:
        if not isinstance(value, list):
            return []

        annotations = []
        for entry in value:
            annotation = self._annotation(entry, timestamp)
            if annotation is not None:
                annotations.append(annotation)
        return annotations

    def _annotation(self, entry: Any, timestamp: float) -> Optional[Annotation]:
        if not isinstance(entry, dict):
            return None
        try:
            position = entry["position"]
            description = entry.get("description")
            anchor = entry.get("timestamp")
            duration = entry.get("duration")
            return Annotation(
                type=AnnotationType(entry["type"]),
                position=AnnotationPosition(
                    x=_clamp(float(position["x"])),
                    y=_clamp(float(position["y"])),
                ),
                style=str(entry.get("style") or ""),
                text=str(entry.get("text") or ""),
                description=str(description) if description else None,
                timestamp=parse_time(anchor, timestamp),
                duration=float(duration) if duration else self.annotation_duration,
            )
        except (KeyError, TypeError, ValueError) as e:
            logger.debug(f"Skipping malformed annotation at t={timestamp:.2f}s: {e}")
            return None
