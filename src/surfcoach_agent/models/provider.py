"""
Provider Configuration Models
=============================

Static description of an analysis backend.

A ProviderConfig is immutable once registered. Reconfiguration (setting a
credential) goes through the ProviderRegistry, which swaps in a new copy.

Example:
    from pydantic import SecretStr
    from surfcoach_agent.models.provider import ProviderConfig, QuotaDescriptor

    gemini = ProviderConfig(
        id="gemini",
        name="Google Gemini",
        endpoint="https://generativelanguage.googleapis.com/v1beta/models",
        model="gemini-1.5-flash",
        credential=SecretStr("..."),
        supports_vision=True,
        quota=QuotaDescriptor(limit=1500, period="day"),
    )
"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr


class QuotaDescriptor(BaseModel):
    """
    Free-tier request quota of a backend.

    Attributes:
        limit: Requests allowed per period (None = unlimited)
        period: Period the limit applies to
    """

    model_config = ConfigDict(frozen=True)

    limit: Optional[int] = Field(
        default=None,
        ge=0,
        description="Requests per period (None means unlimited)",
    )
    period: Literal["hour", "day"] = Field(
        default="day",
        description="Quota period",
    )

    @property
    def unlimited(self) -> bool:
        return self.limit is None

    def __str__(self) -> str:
        if self.limit is None:
            return "unlimited"
        return f"{self.limit}/{self.period}"


class ProviderConfig(BaseModel):
    """
    Configuration of one vision-analysis backend.

    Attributes:
        id: Registry key, also selects the adapter implementation
        name: Human-readable display name (shown in reports)
        endpoint: Base URL of the backend API
        model: Backend model name, if the API needs one
        credential: Opaque secret (never logged or serialized in clear)
        supports_vision: Whether the backend accepts image input
        quota: Free-tier quota descriptor
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Provider registry id")
    name: str = Field(..., description="Display name")
    endpoint: str = Field(..., description="Base URL of the backend")
    model: Optional[str] = Field(default=None, description="Backend model name")
    credential: Optional[SecretStr] = Field(default=None, description="API credential")
    supports_vision: bool = Field(default=False, description="Accepts image input")
    quota: QuotaDescriptor = Field(default_factory=QuotaDescriptor)

    @property
    def has_credential(self) -> bool:
        """Whether a non-empty credential is configured."""
        return self.credential is not None and bool(
            self.credential.get_secret_value().strip()
        )

    def secret(self) -> str:
        """Return the raw credential (empty string when unset)."""
        if self.credential is None:
            return ""
        return self.credential.get_secret_value()

    def public_view(self) -> dict:
        """Export without the secret, for listings and logs."""
        return {
            "id": self.id,
            "name": self.name,
            "endpoint": self.endpoint,
            "model": self.model,
            "supports_vision": self.supports_vision,
            "has_credential": self.has_credential,
            "quota": str(self.quota),
        }
