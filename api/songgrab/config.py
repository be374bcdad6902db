import os
from typing import Optional

try:
    # Load environment variables from .env if present (for local runs)
    from dotenv import load_dotenv, find_dotenv  # type: ignore

    load_dotenv(find_dotenv())
except ImportError:
    pass


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    return float(raw) if raw else default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    return int(raw) if raw else default


class Settings:
    converter_api_key: Optional[str] = os.getenv("CONVERTER_API_KEY") or None
    converter_base_url: str = os.getenv("CONVERTER_BASE_URL", "https://p.oceansaver.in/ajax").rstrip("/")
    converter_poll_interval: float = _env_float("CONVERTER_POLL_INTERVAL", 5.0)
    converter_max_attempts: int = _env_int("CONVERTER_MAX_ATTEMPTS", 60)
    converter_http_timeout: float = _env_float("CONVERTER_HTTP_TIMEOUT", 20.0)
    http_user_agent: str = os.getenv("HTTP_USER_AGENT", "Mozilla/5.0")
    search_provider: str = os.getenv("SEARCH_PROVIDER", "ytdlp").lower()
    # worst case: every attempt waits the full HTTP timeout and then sleeps
    download_deadline_seconds: float = _env_float(
        "DOWNLOAD_DEADLINE_SECONDS",
        converter_max_attempts * (converter_poll_interval + converter_http_timeout),
    )
    disconnect_check_seconds: float = _env_float("DISCONNECT_CHECK_SECONDS", 1.0)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    cors_origins: str = os.getenv("CORS_ORIGINS", "*")


settings = Settings()
