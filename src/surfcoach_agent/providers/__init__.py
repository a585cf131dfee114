"""
Providers Module
================

Interchangeable vision-analysis backends.

This module provides a black-box abstraction over third-party vision APIs.
The analysis pipeline only ever sees `analyze(image, prompt) -> text`.

Components:
    - ProviderRegistry: Backend configs and the active selection
    - ProviderAdapter: Protocol shared by all backends
    - GeminiAdapter, HuggingFaceAdapter, ZhipuAdapter: HTTP backends
    - MockProviderAdapter: Deterministic offline backend
    - create_adapter: Picks the implementation for a provider id
"""

from typing import Dict, Optional, Type

import requests

from surfcoach_agent.errors import ConfigurationError
from surfcoach_agent.models.provider import ProviderConfig
from surfcoach_agent.providers.base import HttpProviderAdapter, ProviderAdapter
from surfcoach_agent.providers.gemini import GeminiAdapter
from surfcoach_agent.providers.huggingface import HuggingFaceAdapter
from surfcoach_agent.providers.mock import MockProviderAdapter
from surfcoach_agent.providers.registry import ProviderRegistry
from surfcoach_agent.providers.zhipu import ZhipuAdapter


HTTP_ADAPTERS: Dict[str, Type[HttpProviderAdapter]] = {
    "gemini": GeminiAdapter,
    "huggingface": HuggingFaceAdapter,
    "zhipu": ZhipuAdapter,
}


def create_adapter(
    config: ProviderConfig,
    timeout: float = 30.0,
    max_rps: float = 2.0,
    temperature: float = 0.3,
    max_output_tokens: int = 1000,
    session: Optional[requests.Session] = None,
) -> ProviderAdapter:
    """
    Create the adapter for a provider.

    Fails fast if the provider cannot accept images.

    Raises:
        ConfigurationError: If the provider has no vision support or no adapter
    """
    if not config.supports_vision:
        raise ConfigurationError(f"{config.name} does not support image analysis")

    if config.id == "mock":
        return MockProviderAdapter(provider_id=config.id)

    adapter_cls = HTTP_ADAPTERS.get(config.id)
    if adapter_cls is None:
        raise ConfigurationError(f"No adapter available for provider: {config.id}")

    return adapter_cls(
        config,
        timeout=timeout,
        max_rps=max_rps,
        temperature=temperature,
        max_output_tokens=max_output_tokens,
        session=session,
    )


__all__ = [
    "ProviderRegistry",
    "ProviderAdapter",
    "HttpProviderAdapter",
    "GeminiAdapter",
    "HuggingFaceAdapter",
    "ZhipuAdapter",
    "MockProviderAdapter",
    "HTTP_ADAPTERS",
    "create_adapter",
]
