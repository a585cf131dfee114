"""
Provider Adapter Base
=====================

Shared capability interface for vision-analysis backends.

Every backend is reduced to one operation:

    analyze(image: bytes, prompt: str) -> str

The returned text is unvalidated; parsing happens upstream in the
ResponseParser.

Design Rules:
    - Non-2xx responses raise ProviderError with the backend status and message
    - Transport failures raise ProviderError with status None
    - Malformed response envelopes raise ProviderError
    - Adapters never touch registry state
"""

import asyncio
import base64
import logging
import time
from typing import Any, Dict, Optional, Protocol, Tuple

import requests

from surfcoach_agent.errors import ProviderError
from surfcoach_agent.models.provider import ProviderConfig


logger = logging.getLogger(__name__)


class ProviderAdapter(Protocol):
    """
    Protocol for provider backends.

    Implemented by:
        - GeminiAdapter, HuggingFaceAdapter, ZhipuAdapter (HTTP backends)
        - MockProviderAdapter (deterministic, offline)
    """

    provider_id: str

    async def analyze(self, image: bytes, prompt: str) -> str:
        """
        Submit one image and prompt, return the backend's reply text.

        Args:
            image: JPEG-encoded frame bytes
            prompt: Canonical analysis prompt

        Returns:
            Raw reply text (unvalidated)

        Raises:
            ProviderError: On any backend or transport failure
        """
        ...


class HttpProviderAdapter:
    """
    Base class for JSON-over-HTTP backends.

    Subclasses implement `_build_request` and `_extract_text`; this class
    handles transport, rate limiting and error mapping.

    Attributes:
        config: Provider configuration (read-only)
        timeout: Request timeout in seconds
        max_rps: Maximum requests per second (0 = no limit)
        temperature: Sampling temperature sent to the backend
        max_output_tokens: Reply length limit sent to the backend
    """

    def __init__(
        self,
        config: ProviderConfig,
        timeout: float = 30.0,
        max_rps: float = 2.0,
        temperature: float = 0.3,
        max_output_tokens: int = 1000,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.config = config
        self.provider_id = config.id
        self.timeout = timeout
        self.max_rps = max_rps
        self.min_interval = 1.0 / max_rps if max_rps > 0 else 0.0
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens

        self._session = session or requests.Session()
        self._last_call_time: float = 0.0
        self._api_call_count: int = 0
        self._api_error_count: int = 0

        logger.info(
            f"{type(self).__name__} initialized: provider={config.name}, "
            f"model={config.model}, timeout={timeout}s, max_rps={max_rps}"
        )

    async def analyze(self, image: bytes, prompt: str) -> str:
        """Submit one frame to the backend and return the reply text."""
        # Rate limiting: wait if calling too fast
        elapsed = time.monotonic() - self._last_call_time
        if elapsed < self.min_interval:
            await asyncio.sleep(self.min_interval - elapsed)

        image_b64 = base64.b64encode(image).decode("ascii")
        url, headers, payload = self._build_request(image_b64, prompt)

        try:
            data = await asyncio.to_thread(self._post, url, headers, payload)
        except ProviderError:
            self._api_error_count += 1
            raise
        finally:
            self._last_call_time = time.monotonic()

        try:
            text = self._extract_text(data)
            if not isinstance(text, str):
                raise TypeError(f"expected reply text, got {type(text).__name__}")
        except (KeyError, IndexError, TypeError) as e:
            self._api_error_count += 1
            raise ProviderError(
                self.provider_id,
                f"Malformed response envelope: {e!r}",
            ) from e

        self._api_call_count += 1
        logger.debug(f"{self.config.name}: received {len(text)} chars")
        return text

    def _post(self, url: str, headers: Dict[str, str], payload: Dict[str, Any]) -> Any:
        """Blocking POST, run in a worker thread."""
        try:
            response = self._session.post(
                url,
                headers=headers,
                json=payload,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise ProviderError(self.provider_id, f"Request failed: {e}") from e

        if not response.ok:
            raise ProviderError(
                self.provider_id,
                response.text,
                status=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise ProviderError(
                self.provider_id,
                f"Response is not JSON: {e}",
                status=response.status_code,
            ) from e

    def _build_request(
        self,
        image_b64: str,
        prompt: str,
    ) -> Tuple[str, Dict[str, str], Dict[str, Any]]:
        """Return (url, headers, json payload) for one frame."""
        raise NotImplementedError

    def _extract_text(self, data: Any) -> str:
        """Pull the reply text out of the backend's response envelope."""
        raise NotImplementedError

    def get_metrics(self) -> dict:
        """Get adapter metrics for observability."""
        return {
            "provider": self.provider_id,
            "api_call_count": self._api_call_count,
            "api_error_count": self._api_error_count,
            "max_rps": self.max_rps,
        }
