import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List

DEFAULT_FEED_URL = "https://raw.githubusercontent.com/jitendra-unatti/fancode/main/data/fancode.json"


def _env_float(name: str, default: float) -> float:
    """Read a positive float from the environment. Raises ValueError naming the variable."""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw.strip())
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {raw!r}") from e
    if value <= 0:
        raise ValueError(f"{name} must be > 0, got {raw!r}")
    return value


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from e
    if value <= 0:
        raise ValueError(f"{name} must be > 0, got {raw!r}")
    return value


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return list(default)
    return [item.strip() for item in raw.split(",") if item.strip()]


@dataclass
class Settings:
    """Application settings loaded from environment variables with safe defaults."""

    app_name: str = "Match Relay"
    env: str = "dev"
    log_level: str = "INFO"
    feed_url: str = DEFAULT_FEED_URL
    host: str = "0.0.0.0"
    port: int = 3000
    cache_ttl_seconds: float = 30.0
    feed_timeout_seconds: float = 5.0
    relay_timeout_seconds: float = 10.0
    user_agent: str = "Mozilla/5.0"
    default_cdn: str = "adfree_stream"
    static_dir: str = "public"
    cors_allow_origins: List[str] = field(default_factory=lambda: ["*"])

    def __post_init__(self) -> None:
        from catalog.schema import CdnVariant

        if self.default_cdn not in CdnVariant.names():
            raise ValueError(
                f"DEFAULT_CDN must be one of {', '.join(CdnVariant.names())}, got {self.default_cdn!r}"
            )

    @classmethod
    def from_env(cls) -> "Settings":
        """Create Settings from environment variables."""
        return cls(
            app_name=os.getenv("APP_NAME", cls.app_name),
            env=os.getenv("ENV", cls.env),
            log_level=os.getenv("LOG_LEVEL", cls.log_level),
            feed_url=os.getenv("FEED_URL", cls.feed_url),
            host=os.getenv("HOST", cls.host),
            port=_env_int("PORT", cls.port),
            cache_ttl_seconds=_env_float("CACHE_TTL_SECONDS", cls.cache_ttl_seconds),
            feed_timeout_seconds=_env_float("FEED_TIMEOUT_SECONDS", cls.feed_timeout_seconds),
            relay_timeout_seconds=_env_float("RELAY_TIMEOUT_SECONDS", cls.relay_timeout_seconds),
            user_agent=os.getenv("RELAY_USER_AGENT", cls.user_agent),
            default_cdn=os.getenv("DEFAULT_CDN", cls.default_cdn),
            static_dir=os.getenv("STATIC_DIR", cls.static_dir),
            cors_allow_origins=_env_list("CORS_ALLOW_ORIGINS", ["*"]),
        )


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings.from_env()
