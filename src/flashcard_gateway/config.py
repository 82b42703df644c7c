import os
from dataclasses import dataclass
from functools import lru_cache

import redis
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment variables."""

    # Upstream LLM provider
    openai_api_key: str | None = os.getenv("OPENAI_API_KEY") or None
    openai_model: str = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
    openai_base_url: str = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")
    upstream_timeout_seconds: float = float(os.getenv("UPSTREAM_TIMEOUT_SECONDS", "30"))

    # Rate limiting
    rate_limit_requests_per_minute: int = int(os.getenv("RATE_LIMIT_REQUESTS_PER_MINUTE", "10"))
    rate_limit_interval_ms: int = int(os.getenv("RATE_LIMIT_INTERVAL_MS", "60000"))
    rate_limit_max_tracked_ips: int = int(os.getenv("RATE_LIMIT_MAX_TRACKED_IPS", "500"))

    # Transcript limits
    transcript_chunk_threshold: int = int(os.getenv("TRANSCRIPT_CHUNK_THRESHOLD", "30000"))
    min_word_count: int = int(os.getenv("MIN_WORD_COUNT", "500"))
    max_word_count: int = int(os.getenv("MAX_WORD_COUNT", "50000"))
    max_file_size_mb: int = int(os.getenv("MAX_FILE_SIZE_MB", "100"))

    # Retry / backoff
    retry_max_retries: int = int(os.getenv("RETRY_MAX_RETRIES", "5"))
    retry_base_delay_ms: int = int(os.getenv("RETRY_BASE_DELAY_MS", "1000"))
    retry_max_delay_ms: int = int(os.getenv("RETRY_MAX_DELAY_MS", "30000"))
    request_deadline_seconds: float = float(os.getenv("REQUEST_DEADLINE_SECONDS", "60"))
    retry_deadline_ratio: float = float(os.getenv("RETRY_DEADLINE_RATIO", "0.8"))

    # Response cache
    cache_backend: str = os.getenv("CACHE_BACKEND", "memory")
    cache_ttl_seconds: int = int(os.getenv("CACHE_TTL_SECONDS", "300"))
    cache_max_entries: int = int(os.getenv("CACHE_MAX_ENTRIES", "1000"))
    cache_sweep_interval_seconds: float = float(os.getenv("CACHE_SWEEP_INTERVAL_SECONDS", "60"))

    # Redis (only used when CACHE_BACKEND=redis)
    redis_url: str = os.getenv("REDIS_URL", "redis://localhost:6379")
    redis_password: str | None = os.getenv("REDIS_PASSWORD")

    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_json: bool = _env_bool("LOG_JSON", "true")

    # API
    api_host: str = os.getenv("API_HOST", "0.0.0.0")
    api_port: int = int(os.getenv("API_PORT", "8000"))
    api_reload: bool = _env_bool("API_RELOAD", "false")

    @property
    def has_api_key(self) -> bool:
        """Check whether an upstream API key is configured."""
        return bool(self.openai_api_key)

    @property
    def rate_limit_interval_seconds(self) -> float:
        return self.rate_limit_interval_ms / 1000

    @property
    def max_file_size_bytes(self) -> int:
        return self.max_file_size_mb * 1024 * 1024

    def __post_init__(self) -> None:
        """Validate settings after initialization."""
        if self.rate_limit_requests_per_minute < 1:
            raise ValueError("RATE_LIMIT_REQUESTS_PER_MINUTE must be at least 1")
        if self.rate_limit_interval_ms < 1:
            raise ValueError("RATE_LIMIT_INTERVAL_MS must be positive")
        if self.rate_limit_max_tracked_ips < 1:
            raise ValueError("RATE_LIMIT_MAX_TRACKED_IPS must be at least 1")

        if self.min_word_count < 0 or self.min_word_count > self.max_word_count:
            raise ValueError(
                f"MIN_WORD_COUNT ({self.min_word_count}) must be between 0 and "
                f"MAX_WORD_COUNT ({self.max_word_count})"
            )
        # Room for three slices plus two elision markers.
        if self.transcript_chunk_threshold < 100:
            raise ValueError("TRANSCRIPT_CHUNK_THRESHOLD must be at least 100 characters")

        if self.retry_max_retries < 0:
            raise ValueError("RETRY_MAX_RETRIES must be >= 0")
        if self.retry_base_delay_ms < 0 or self.retry_max_delay_ms < self.retry_base_delay_ms:
            raise ValueError("RETRY_MAX_DELAY_MS must be >= RETRY_BASE_DELAY_MS >= 0")
        if self.request_deadline_seconds <= 0:
            raise ValueError("REQUEST_DEADLINE_SECONDS must be positive")
        if not 0 < self.retry_deadline_ratio <= 1:
            raise ValueError("RETRY_DEADLINE_RATIO must be in (0, 1]")
        if not 0 < self.upstream_timeout_seconds <= self.request_deadline_seconds * self.retry_deadline_ratio:
            raise ValueError(
                "UPSTREAM_TIMEOUT_SECONDS must be positive and at most "
                "REQUEST_DEADLINE_SECONDS * RETRY_DEADLINE_RATIO"
            )

        if self.cache_backend not in ("memory", "redis"):
            raise ValueError(f"CACHE_BACKEND must be 'memory' or 'redis', got {self.cache_backend!r}")
        if self.cache_ttl_seconds < 1 or self.cache_max_entries < 1:
            raise ValueError("CACHE_TTL_SECONDS and CACHE_MAX_ENTRIES must be positive")
        if self.cache_sweep_interval_seconds <= 0:
            raise ValueError("CACHE_SWEEP_INTERVAL_SECONDS must be positive")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def get_redis_client(settings: Settings) -> redis.Redis:
    """Create a Redis client instance."""
    return redis.from_url(
        settings.redis_url,
        password=settings.redis_password,
        decode_responses=True,
    )
