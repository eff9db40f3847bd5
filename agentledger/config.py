"""
Runtime configuration
Resolved once from environment variables at startup
"""
import os
from dataclasses import dataclass


def _database_url() -> str:
    # Priority: DB_URL (full URL) > DB_PASSWORD (construct URL)
    db_url = os.getenv("DB_URL")

    if not db_url or db_url.startswith("jdbc:"):
        db_user = os.getenv("DB_USER", "dbadmin")
        db_password = os.getenv("DB_PASSWORD", "password")
        db_host = os.getenv("DB_HOST", "localhost")
        db_port = os.getenv("DB_PORT", "5432")
        db_name = os.getenv("DB_NAME", "agentledger")
        db_url = f"postgresql://{db_user}:{db_password}@{db_host}:{db_port}/{db_name}"

    # Convert to async driver
    return db_url.replace("postgresql://", "postgresql+asyncpg://", 1)


def _redis_url() -> str:
    # Priority: REDIS_URL > construct from REDIS_HOST/PORT
    redis_url = os.getenv("REDIS_URL")
    if redis_url:
        return redis_url

    redis_host = os.getenv("REDIS_HOST", "localhost")
    redis_port = os.getenv("REDIS_PORT", "6379")
    redis_password = os.getenv("REDIS_PASSWORD")

    if redis_password:
        return f"redis://:{redis_password}@{redis_host}:{redis_port}"
    return f"redis://{redis_host}:{redis_port}"


@dataclass(frozen=True)
class Settings:
    """Process-wide settings shared by every component"""

    database_url: str
    redis_url: str

    # Ledger store
    db_pool_size: int = 5
    db_max_overflow: int = 10
    db_pool_timeout: float = 10.0
    db_command_timeout: float = 10.0

    # Aggregation cache
    redis_timeout: float = 5.0
    cache_ttl_seconds: int = 300

    # Webhooks
    webhook_timeout_seconds: float = 5.0
    webhook_max_failures: int = 3

    # Anomaly detection
    anomaly_threshold: float = 2.0
    anomaly_window_days: int = 7

    # Background worker
    worker_concurrency: int = 4
    worker_max_attempts: int = 3
    shutdown_timeout_seconds: float = 10.0

    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            database_url=_database_url(),
            redis_url=_redis_url(),
            db_pool_size=int(os.getenv("DB_POOL_SIZE", "5")),
            db_max_overflow=int(os.getenv("DB_MAX_OVERFLOW", "10")),
            db_pool_timeout=float(os.getenv("DB_POOL_TIMEOUT", "10")),
            db_command_timeout=float(os.getenv("DB_COMMAND_TIMEOUT", "10")),
            redis_timeout=float(os.getenv("REDIS_TIMEOUT", "5")),
            cache_ttl_seconds=int(os.getenv("CACHE_TTL_SECONDS", "300")),
            webhook_timeout_seconds=float(os.getenv("WEBHOOK_TIMEOUT_SECONDS", "5")),
            webhook_max_failures=int(os.getenv("WEBHOOK_MAX_FAILURES", "3")),
            anomaly_threshold=float(os.getenv("ANOMALY_THRESHOLD", "2.0")),
            anomaly_window_days=int(os.getenv("ANOMALY_WINDOW_DAYS", "7")),
            worker_concurrency=int(os.getenv("WORKER_CONCURRENCY", "4")),
            worker_max_attempts=int(os.getenv("WORKER_MAX_ATTEMPTS", "3")),
            shutdown_timeout_seconds=float(os.getenv("SHUTDOWN_TIMEOUT_SECONDS", "10")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
