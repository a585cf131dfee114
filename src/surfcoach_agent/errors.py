"""
Error Taxonomy
==============

Exceptions raised by the analysis pipeline.

Categories:
    - InvalidInputError: bad or missing video metadata (fatal, before any provider call)
    - ConfigurationError: no active provider, missing credential, no vision
      support, or a run already in progress (fatal, before any provider call)
    - ProviderError: a backend call failed (fatal, aborts the in-flight run)
    - ParseError: provider text does not match the expected schema
      (recovered per frame inside the orchestrator, never surfaced)
"""

from typing import Optional


class SurfCoachError(Exception):
    """Base class for all analysis pipeline errors."""
    pass


class InvalidInputError(SurfCoachError):
    """Raised when the video or run parameters are unusable."""
    pass


class ConfigurationError(SurfCoachError):
    """Raised when the provider setup does not allow a run."""
    pass


class ProviderError(SurfCoachError):
    """
    Raised when a provider backend call fails.

    Attributes:
        provider_id: Registry id of the failing backend
        status: HTTP status returned by the backend (None for transport failures)
        message: Backend error message, kept verbatim for diagnostics
    """

    def __init__(
        self,
        provider_id: str,
        message: str,
        status: Optional[int] = None,
    ) -> None:
        self.provider_id = provider_id
        self.status = status
        self.message = message
        if status is not None:
            super().__init__(f"{provider_id} API error {status}: {message}")
        else:
            super().__init__(f"{provider_id} API error: {message}")


class ParseError(SurfCoachError):
    """Raised when provider text cannot be decoded into a FrameAnalysis."""
    pass
