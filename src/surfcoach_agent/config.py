"""
SurfCoachAgent Configuration
============================

This module handles configuration loading for the surf coaching agent.

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. config.yaml file
    3. Default values (lowest priority)

Environment Variable Mapping:
    SURFCOACH_PROVIDER        -> providers.active
    SURFCOACH_FRAME_INTERVAL  -> analysis.frame_interval_sec
    SURFCOACH_SEEK_TIMEOUT    -> analysis.seek_timeout_sec
    SURFCOACH_ANALYSIS_LEVEL  -> analysis.level
    SURFCOACH_AGENT_PORT      -> server.port
    SURFCOACH_LOG_LEVEL       -> logging.level
    PORT                      -> server.port (Cloud Run)

Provider credentials are never stored here in clear; each provider entry
names the environment variable its credential is read from
(`credential_env`), see ProviderRegistry.from_settings().

Example:
    from surfcoach_agent.config import settings

    print(settings.analysis.frame_interval_sec)
    print(settings.providers.active)
"""

import os
import logging
from pathlib import Path
from typing import Dict, Literal, Optional

import yaml
from pydantic import BaseModel, Field, SecretStr


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class ServiceConfig(BaseModel):
    """Service identification configuration."""

    name: str = Field(default="surfcoach-agent", description="Service name")
    version: str = Field(default="v0.1.0", description="Service version")


class AnalysisConfig(BaseModel):
    """Frame sampling and provider request configuration."""

    frame_interval_sec: float = Field(
        default=2.0,
        gt=0,
        description="Seconds between sampled frames",
    )
    seek_timeout_sec: float = Field(
        default=1.0,
        gt=0,
        description="Maximum wait for a seek to complete before capturing anyway",
    )
    level: Literal["basic", "detailed"] = Field(
        default="detailed",
        description="Prompt detail level",
    )
    jpeg_quality: int = Field(
        default=80,
        ge=1,
        le=100,
        description="JPEG quality of frames sent to providers",
    )
    request_timeout_sec: float = Field(
        default=30.0,
        gt=0,
        description="HTTP timeout per provider request",
    )
    max_rps: float = Field(
        default=2.0,
        gt=0,
        description="Maximum provider requests per second",
    )
    temperature: float = Field(default=0.3, ge=0, le=2.0, description="Sampling temperature")
    max_output_tokens: int = Field(default=1000, ge=1, description="Reply token budget")
    mock_fallback: bool = Field(
        default=False,
        description="Serve the demonstration report when a run fails",
    )


class ProviderEntry(BaseModel):
    """One analysis backend."""

    name: str = Field(..., description="Display name")
    endpoint: str = Field(..., description="Base URL of the backend API")
    model: Optional[str] = Field(default=None, description="Backend model name")
    supports_vision: bool = Field(default=False, description="Accepts image input")
    quota_limit: Optional[int] = Field(
        default=None,
        ge=0,
        description="Free-tier requests per period (None = unlimited)",
    )
    quota_period: Literal["hour", "day"] = Field(default="day")
    credential_env: Optional[str] = Field(
        default=None,
        description="Environment variable holding the API credential",
    )
    credential: Optional[SecretStr] = Field(
        default=None,
        description="Inline credential (prefer credential_env)",
    )


def _default_provider_entries() -> Dict[str, ProviderEntry]:
    return {
        "gemini": ProviderEntry(
            name="Google Gemini",
            endpoint="https://generativelanguage.googleapis.com/v1beta/models",
            model="gemini-1.5-flash",
            supports_vision=True,
            quota_limit=1500,
            quota_period="day",
            credential_env="GEMINI_API_KEY",
        ),
        "groq": ProviderEntry(
            name="Groq",
            endpoint="https://api.groq.com/openai/v1/chat/completions",
            supports_vision=False,
            quota_limit=14400,
            quota_period="day",
            credential_env="GROQ_API_KEY",
        ),
        "huggingface": ProviderEntry(
            name="Hugging Face",
            endpoint="https://api-inference.huggingface.co/models",
            model="llava-hf/llava-1.5-7b-hf",
            supports_vision=True,
            quota_limit=300,
            quota_period="hour",
            credential_env="HF_API_TOKEN",
        ),
        "zhipu": ProviderEntry(
            name="Zhipu AI",
            endpoint="https://open.bigmodel.cn/api/paas/v4/chat/completions",
            model="glm-4v",
            supports_vision=True,
            credential_env="ZHIPU_API_KEY",
        ),
        "mock": ProviderEntry(
            name="Mock (offline)",
            endpoint="mock://local",
            supports_vision=True,
            credential=SecretStr("offline"),
        ),
    }


class ProvidersConfig(BaseModel):
    """Registered providers and the active selection."""

    active: str = Field(default="gemini", description="Active provider id")
    entries: Dict[str, ProviderEntry] = Field(default_factory=_default_provider_entries)


class RenderConfig(BaseModel):
    """Annotation rendering configuration."""

    match_tolerance_sec: float = Field(
        default=0.5,
        gt=0,
        description="Annotations within this distance of playback time are drawn",
    )
    annotation_duration_sec: float = Field(
        default=3.0,
        gt=0,
        description="Display duration of synthesized annotations",
    )


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = Field(default="0.0.0.0", description="Bind host")
    port: int = Field(default=8002, ge=1, le=65535, description="Bind port")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="json", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for SurfCoachAgent.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    service: ServiceConfig = Field(default_factory=ServiceConfig)
    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig)
    providers: ProvidersConfig = Field(default_factory=ProvidersConfig)
    render: RenderConfig = Field(default_factory=RenderConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Load configuration from YAML file and environment variables.

    Priority (highest to lowest):
        1. Environment variables
        2. YAML config file
        3. Default values

    Args:
        config_path: Path to config.yaml. If None, searches common locations.

    Returns:
        Settings: Loaded configuration
    """
    if config_path is None:
        search_paths = [
            Path("config.yaml"),
            Path("config.yml"),
            Path("/app/config.yaml"),
            Path(__file__).parent.parent.parent / "config.yaml",
        ]
        for path in search_paths:
            if path.exists():
                config_path = str(path)
                break

    config_data = {}
    if config_path and Path(config_path).exists():
        logger.info(f"Loading config from: {config_path}")
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}
    else:
        logger.warning("No config file found, using defaults and environment variables")

    _apply_env_overrides(config_data)

    return Settings.model_validate(config_data)


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    # Provider selection
    if env_provider := os.environ.get("SURFCOACH_PROVIDER"):
        config_data.setdefault("providers", {})["active"] = env_provider

    # Analysis settings
    if env_interval := os.environ.get("SURFCOACH_FRAME_INTERVAL"):
        config_data.setdefault("analysis", {})["frame_interval_sec"] = float(env_interval)
    if env_seek := os.environ.get("SURFCOACH_SEEK_TIMEOUT"):
        config_data.setdefault("analysis", {})["seek_timeout_sec"] = float(env_seek)
    if env_level := os.environ.get("SURFCOACH_ANALYSIS_LEVEL"):
        config_data.setdefault("analysis", {})["level"] = env_level

    # Server settings (Cloud Run uses PORT env var)
    if env_port := os.environ.get("PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)
    elif env_port := os.environ.get("SURFCOACH_AGENT_PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)

    # Logging settings
    if env_log := os.environ.get("SURFCOACH_LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = env_log


def setup_logging(settings: Settings) -> None:
    """Configure logging based on settings."""
    log_level = getattr(logging, settings.logging.level.upper(), logging.INFO)

    if settings.logging.format == "json":
        log_format = '{"time": "%(asctime)s", "level": "%(levelname)s", "module": "%(name)s", "message": "%(message)s"}'
    else:
        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=log_level,
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
    )


# =============================================================================
# Global Settings Instance
# =============================================================================

# Global settings instance - loaded on import
settings = load_config()
setup_logging(settings)
