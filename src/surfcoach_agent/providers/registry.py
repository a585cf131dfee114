"""
Provider Registry
=================

Process-wide selection state for analysis backends.

The registry holds one ProviderConfig per backend and the id of the single
active provider. Configs are immutable; setting a credential swaps in a
modified copy.

While an analysis run is in flight the registry is locked: switching the
active provider or changing a credential raises ConfigurationError.

Example:
    registry = ProviderRegistry.from_settings(settings.providers)
    registry.set_credential("gemini", "my-key")
    registry.set_active("gemini")

    with registry.run_guard():
        ...  # provider state is frozen here
"""

import logging
import os
from contextlib import contextmanager
from typing import Dict, Iterable, Iterator, List, Optional

from pydantic import SecretStr

from surfcoach_agent.errors import ConfigurationError
from surfcoach_agent.models.provider import ProviderConfig, QuotaDescriptor


logger = logging.getLogger(__name__)


class ProviderRegistry:
    """
    Registry of provider configurations with one active selection.

    Attributes:
        active_id: Id of the currently selected provider (None if unset)
        locked: Whether a run is in flight
    """

    def __init__(
        self,
        providers: Iterable[ProviderConfig] = (),
        active_id: Optional[str] = None,
    ) -> None:
        self._providers: Dict[str, ProviderConfig] = {}
        self._active_id: Optional[str] = None
        self._locked: bool = False

        for config in providers:
            self.register(config)

        if active_id is not None:
            self.set_active(active_id)

    @classmethod
    def from_settings(cls, providers_settings) -> "ProviderRegistry":
        """
        Build a registry from the `providers` configuration section.

        Credentials are resolved from each entry's `credential_env`
        environment variable, falling back to an inline `credential`.

        Args:
            providers_settings: ProvidersConfig from surfcoach_agent.config

        Returns:
            Populated registry with the configured active provider
        """
        configs = []
        for provider_id, entry in providers_settings.entries.items():
            credential = None
            if entry.credential_env:
                credential = os.environ.get(entry.credential_env)
            if not credential and entry.credential:
                credential = entry.credential.get_secret_value()

            configs.append(
                ProviderConfig(
                    id=provider_id,
                    name=entry.name,
                    endpoint=entry.endpoint,
                    model=entry.model,
                    credential=SecretStr(credential) if credential else None,
                    supports_vision=entry.supports_vision,
                    quota=QuotaDescriptor(
                        limit=entry.quota_limit,
                        period=entry.quota_period,
                    ),
                )
            )

        active_id = providers_settings.active
        if active_id not in providers_settings.entries:
            logger.warning(f"Configured active provider '{active_id}' is not registered")
            active_id = None

        registry = cls(configs, active_id=active_id)
        logger.info(
            f"ProviderRegistry initialized: providers={registry.ids()}, "
            f"active={registry.active_id}"
        )
        return registry

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @property
    def active_id(self) -> Optional[str]:
        return self._active_id

    @property
    def locked(self) -> bool:
        return self._locked

    @property
    def active(self) -> Optional[ProviderConfig]:
        """Config of the active provider, or None when nothing is selected."""
        if self._active_id is None:
            return None
        return self._providers.get(self._active_id)

    def get(self, provider_id: str) -> ProviderConfig:
        """
        Look up a provider by id.

        Raises:
            ConfigurationError: If the id is not registered
        """
        try:
            return self._providers[provider_id]
        except KeyError:
            raise ConfigurationError(f"Unknown provider: {provider_id}") from None

    def ids(self) -> List[str]:
        return list(self._providers)

    def all(self) -> List[ProviderConfig]:
        return list(self._providers.values())

    def available(self) -> List[str]:
        """Ids of providers usable for a run (credential set and vision support)."""
        return [
            provider_id
            for provider_id, config in self._providers.items()
            if config.has_credential and config.supports_vision
        ]

    # -------------------------------------------------------------------------
    # Reconfiguration
    # -------------------------------------------------------------------------

    def register(self, config: ProviderConfig) -> None:
        """Add or replace a provider configuration."""
        self._ensure_unlocked("register a provider")
        self._providers[config.id] = config

    def set_credential(self, provider_id: str, credential: Optional[str]) -> None:
        """
        Replace the credential of a provider.

        Raises:
            ConfigurationError: If the id is unknown or a run is in flight
        """
        self._ensure_unlocked("change a credential")
        config = self.get(provider_id)
        secret = SecretStr(credential) if credential else None
        self._providers[provider_id] = config.model_copy(update={"credential": secret})
        logger.info(f"Credential {'set' if secret else 'cleared'} for {config.name}")

    def set_active(self, provider_id: str) -> None:
        """
        Select the active provider.

        Raises:
            ConfigurationError: If the id is unknown or a run is in flight
        """
        self._ensure_unlocked("switch providers")
        config = self.get(provider_id)
        self._active_id = provider_id
        logger.info(f"Active provider: {config.name}")

    @contextmanager
    def run_guard(self) -> Iterator[None]:
        """
        Lock provider selection for the duration of a run.

        Raises:
            ConfigurationError: If another run already holds the lock
        """
        if self._locked:
            raise ConfigurationError("An analysis run is already in progress")
        self._locked = True
        try:
            yield
        finally:
            self._locked = False

    def _ensure_unlocked(self, action: str) -> None:
        if self._locked:
            raise ConfigurationError(f"Cannot {action} while an analysis run is in progress")
