"""Configuration loading and API key lookup.

Configuration is always an explicitly constructed :class:`ClientConfig`
handed to the client; there is no process-wide default instance, so tests
can build independent clients with independent rate limiters.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, fields
from pathlib import Path

import keyring

KEY_NAME = "api_key"

DEFAULT_CONFIG_PATH = Path("config/client_config.json")

PROVIDERS: dict[str, dict[str, str]] = {
    "openai": {"model": "gpt-3.5-turbo", "env": "OPENAI_API_KEY"},
    "gemini": {"model": "gemini-2.5-flash", "env": "GEMINI_API_KEY"},
}


def keyring_service(provider: str) -> str:
    """Keyring service name for *provider* (e.g. ``pdfgenai-openai``)."""
    return f"pdfgenai-{provider}"


def _check_provider(provider: str) -> None:
    if provider not in PROVIDERS:
        raise ValueError(
            f"Unknown provider {provider!r}. Choose from: {', '.join(PROVIDERS)}"
        )


def get_api_key(provider: str = "openai") -> str:
    """Get the API key for *provider*: system keyring first, then env var.

    Returns:
        API key string.

    Raises:
        RuntimeError: If no key is found anywhere, with setup instructions.
    """
    _check_provider(provider)
    api_key = keyring.get_password(keyring_service(provider), KEY_NAME)
    if api_key:
        return api_key

    env_var = PROVIDERS[provider]["env"]
    api_key = os.environ.get(env_var)
    if api_key:
        return api_key

    raise RuntimeError(
        f"{provider} API key not found.\n"
        f"Set it with: pdfgenai config set-api-key YOUR_KEY --provider {provider}\n"
        f"Or: export {env_var}=your-key"
    )


# ---------------------------------------------------------------------------
# Config dataclasses
# ---------------------------------------------------------------------------


@dataclass
class RetryConfig:
    """Exponential backoff settings for one operation kind.

    Attributes:
        initial_interval: First backoff step in seconds.
        multiplier: Growth factor between steps.
        max_interval: Cap on a single backoff step.
        max_elapsed: Ceiling on total time spent retrying.
        jitter: Upper bound of the random delay added to each step.
    """

    initial_interval: float = 0.5
    multiplier: float = 1.5
    max_interval: float = 10.0
    max_elapsed: float = 60.0
    jitter: float = 0.1

    def __post_init__(self) -> None:
        if self.initial_interval < 0 or self.max_interval < 0 or self.jitter < 0:
            raise ValueError("retry intervals must not be negative")
        if self.multiplier < 1:
            raise ValueError(f"multiplier must be >= 1, got {self.multiplier!r}")
        if self.max_elapsed <= 0:
            raise ValueError(f"max_elapsed must be positive, got {self.max_elapsed!r}")


def upload_retry_defaults() -> RetryConfig:
    """Uploads: 10s max step, 1 minute ceiling."""
    return RetryConfig(max_interval=10.0, max_elapsed=60.0)


def completion_retry_defaults() -> RetryConfig:
    """Completions: 5s max step, 30 second ceiling."""
    return RetryConfig(max_interval=5.0, max_elapsed=30.0)


@dataclass
class RateLimitConfig:
    """Token bucket settings: sustained *rate* per second, *burst* capacity."""

    rate: float = 10.0
    burst: int = 20

    def __post_init__(self) -> None:
        if self.rate <= 0:
            raise ValueError(f"rate must be positive, got {self.rate!r}")
        if self.burst < 1:
            raise ValueError(f"burst must be at least 1, got {self.burst!r}")


@dataclass
class ClientConfig:
    """Everything needed to build a :class:`~pdfgenai.client.ResilientClient`."""

    provider: str = "openai"
    model: str | None = None
    api_key: str | None = None
    base_url: str | None = None
    request_timeout: float | None = None
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    upload_retry: RetryConfig = field(default_factory=upload_retry_defaults)
    completion_retry: RetryConfig = field(default_factory=completion_retry_defaults)

    def __post_init__(self) -> None:
        _check_provider(self.provider)
        if self.model is None:
            self.model = PROVIDERS[self.provider]["model"]

    def resolve_api_key(self) -> str:
        """Return the configured key, falling back to :func:`get_api_key`."""
        if self.api_key:
            return self.api_key
        return get_api_key(self.provider)


_NESTED = {
    "rate_limit": RateLimitConfig,
    "upload_retry": RetryConfig,
    "completion_retry": RetryConfig,
}


def load_client_config(
    config_path: Path | None = None, **overrides: object
) -> ClientConfig:
    """Load client configuration from JSON, falling back to defaults.

    Reads ``config/client_config.json`` when *config_path* is ``None``. A
    missing file yields defaults. Unrecognised keys are ignored; nested
    sections (``rate_limit``, ``upload_retry``, ``completion_retry``) are
    merged over their own defaults. Keyword *overrides* whose value is not
    ``None`` win over the file.

    Args:
        config_path: Optional explicit path to the JSON file.
        **overrides: Top-level field overrides (e.g. from CLI flags).

    Returns:
        ClientConfig populated from file + overrides.
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    data: dict = {}
    if config_path.exists():
        with open(config_path) as f:
            data = json.load(f)

    field_names = {f.name for f in fields(ClientConfig)}
    kwargs: dict[str, object] = {k: v for k, v in data.items() if k in field_names}

    for name, cls in _NESTED.items():
        section = kwargs.get(name)
        if isinstance(section, dict):
            defaults = ClientConfig.__dataclass_fields__[name].default_factory()  # type: ignore[misc]
            known = {f.name for f in fields(cls)}
            merged = {f.name: getattr(defaults, f.name) for f in fields(cls)}
            merged.update({k: v for k, v in section.items() if k in known})
            kwargs[name] = cls(**merged)

    kwargs.update({k: v for k, v in overrides.items() if v is not None})
    return ClientConfig(**kwargs)  # type: ignore[arg-type]
