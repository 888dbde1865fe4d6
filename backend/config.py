import os
from dataclasses import dataclass

from dotenv import load_dotenv


BACKEND_DIR = os.path.dirname(os.path.abspath(__file__))
PROJECT_ROOT = os.path.dirname(BACKEND_DIR)
DEFAULT_DATA_PATH = os.path.join(PROJECT_ROOT, "data")


@dataclass(frozen=True)
class AppConfig:
    data_path: str = DEFAULT_DATA_PATH
    openai_api_key: str | None = None
    openai_model: str = "gpt-4o-mini"
    explain_max_tokens: int = 300
    explain_temperature: float = 0.7
    slow_request_log_ms: float = 750.0
    rate_limit_max: int = 10
    rate_limit_window: float = 60.0
    request_cache_size: int = 128


def _env_float(name: str, default: float, minimum: float = 0.0) -> float:
    raw = os.environ.get(name, "")
    try:
        return max(minimum, float(raw))
    except (TypeError, ValueError):
        return default


def _env_int(name: str, default: int, minimum: int = 1) -> int:
    raw = os.environ.get(name, "")
    try:
        return max(minimum, int(raw))
    except (TypeError, ValueError):
        return default


def _resolve_data_path(raw: str | None) -> str:
    if not raw:
        return DEFAULT_DATA_PATH
    if not os.path.isabs(raw):
        return os.path.join(PROJECT_ROOT, raw)
    return raw


def load_config() -> AppConfig:
    """Read settings from the environment, after loading a local .env if present."""
    load_dotenv()
    return AppConfig(
        data_path=_resolve_data_path(os.environ.get("DATA_PATH")),
        openai_api_key=os.environ.get("OPENAI_API_KEY") or None,
        openai_model=os.environ.get("OPENAI_MODEL") or "gpt-4o-mini",
        explain_max_tokens=_env_int("EXPLAIN_MAX_TOKENS", 300, minimum=16),
        explain_temperature=_env_float("EXPLAIN_TEMPERATURE", 0.7, minimum=0.0),
        slow_request_log_ms=_env_float("SLOW_REQUEST_LOG_MS", 750.0, minimum=0.0),
        rate_limit_max=_env_int("RATE_LIMIT_MAX", 10, minimum=1),
        rate_limit_window=_env_float("RATE_LIMIT_WINDOW", 60.0, minimum=1.0),
        request_cache_size=_env_int("REQUEST_CACHE_SIZE", 128, minimum=1),
    )
