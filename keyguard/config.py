"""Environment-driven settings for KeyGuard."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import find_dotenv, load_dotenv

from keyguard.exceptions import ConfigurationError
from keyguard.models import ScanConfig

DEFAULT_RECOMMENDER_URL = "https://api.meetneura.ai/v1/router/parallel"
DEFAULT_RECOMMENDER_MODEL = "openrouter/qwen/qwen3-coder:free"


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from e


@dataclass(frozen=True)
class Settings:
    """Process-wide settings loaded from the environment (and a .env file)."""

    recommender_api_key: str | None = None
    recommender_api_url: str = DEFAULT_RECOMMENDER_URL
    recommender_model: str = DEFAULT_RECOMMENDER_MODEL
    recommender_timeout: float = 120.0
    timeout: float = 30.0
    max_concurrency: int = 8
    rate_limit: float = 10.0
    user_agent: str = "KeyGuard/1.0 Security Scanner"

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv(find_dotenv(usecwd=True))
        return cls(
            recommender_api_key=os.getenv("NEURA_ROUTER_API_KEY") or None,
            recommender_api_url=os.getenv("NEURA_ROUTER_API_URL", DEFAULT_RECOMMENDER_URL),
            recommender_model=os.getenv("NEURA_ROUTER_API_MODEL", DEFAULT_RECOMMENDER_MODEL),
            recommender_timeout=_env_float("NEURA_ROUTER_TIMEOUT", 120.0),
            timeout=_env_float("KEYGUARD_TIMEOUT", 30.0),
            max_concurrency=int(_env_float("KEYGUARD_MAX_CONCURRENCY", 8)),
            rate_limit=_env_float("KEYGUARD_RATE_LIMIT", 10.0),
            user_agent=os.getenv("KEYGUARD_USER_AGENT", "KeyGuard/1.0 Security Scanner"),
        )

    def scan_config(self, **overrides: object) -> ScanConfig:
        """Build a ScanConfig from these settings, with per-scan overrides."""
        values: dict[str, object] = {
            "timeout": self.timeout,
            "max_concurrency": self.max_concurrency,
            "rate_limit": self.rate_limit,
            "user_agent": self.user_agent,
        }
        values.update(overrides)
        return ScanConfig(**values)

    def require_api_key(self) -> str:
        if not self.recommender_api_key:
            raise ConfigurationError("NEURA_ROUTER_API_KEY must be set")
        return self.recommender_api_key


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings.from_env()
