"""
Prompt Builder
==============

Canonical analysis request text sent with every frame.

The prompt asks for a JSON object with the FrameAnalysis schema fields and
lists the allowed enum values, so replies can be decoded without guessing.
Exact wording is not a compatibility contract.
"""

from typing import Optional

from surfcoach_agent.models.analysis import Rating, SurfAction, SurferPosition


ANALYSIS_LEVELS = ("basic", "detailed")


def _choices(enum_cls) -> str:
    return " | ".join(member.value for member in enum_cls)


_SCHEMA = f"""{{
    "surfer_position": "{_choices(SurferPosition)}",
    "body_posture": "{_choices(Rating)}",
    "wave_condition": "short description of the wave",
    "current_action": "{' | '.join(a.value for a in SurfAction if a is not SurfAction.UNKNOWN)}",
    "action_quality": "{_choices(Rating)}",
    "timing": "timing assessment, e.g. accurate / good / delayed",
    "suggestions": ["specific suggestion 1", "specific suggestion 2"],
    "annotations": [
        {{
            "type": "line | text | arrow | circle",
            "position": {{"x": 50, "y": 30}},
            "style": "speed-line | action-arrow | balance-circle",
            "text": "short label",
            "description": "one-line explanation"
        }}
    ]
}}"""

_DETAILED_SECTIONS = """
2. Wave:
   - Shape and size of the wave
   - How much of the wave is breaking
   - Speed zones (fastest at the top, medium mid-face, slowest at the bottom)

3. Action:
   - Current maneuver type
   - Whether the maneuver is executed cleanly
   - Whether the timing is right
"""

_BASIC_SECTIONS = """
2. Action:
   - Current maneuver type and how cleanly it is executed
"""


class PromptBuilder:
    """
    Builds the per-frame analysis prompt.

    Attributes:
        level: "basic" or "detailed" (adds wave and timing checklists)
    """

    def __init__(self, level: str = "detailed") -> None:
        if level not in ANALYSIS_LEVELS:
            raise ValueError(f"level must be one of {ANALYSIS_LEVELS}, got {level!r}")
        self.level = level

    def build(self, timestamp: float, context: Optional[str] = None) -> str:
        """
        Build the prompt for one frame.

        Args:
            timestamp: Frame time in seconds
            context: Optional extra context (e.g. surfer level, spot)

        Returns:
            Prompt text
        """
        sections = _DETAILED_SECTIONS if self.level == "detailed" else _BASIC_SECTIONS
        context_line = f"\nContext: {context.strip()}\n" if context and context.strip() else ""

        return (
            "Analyze this frame from a surfing video. Focus on:\n"
            "\n"
            "1. Surfer position and posture:\n"
            "   - Where the surfer is on the wave (crest, face, trough)\n"
            "   - Body posture (stance, center of gravity, arm position)\n"
            "   - Board angle and direction\n"
            f"{sections}"
            "\n"
            "Then give concrete coaching suggestions.\n"
            f"{context_line}"
            "\n"
            "Reply with a single JSON object and nothing else, using exactly these fields:\n"
            f"{_SCHEMA}\n"
            "\n"
            "Positions are percentages of the frame (0-100). "
            "The annotations list is optional.\n"
            "\n"
            f"Timestamp: {timestamp:.2f}s\n"
        )
