"""
Application configuration loaded from environment variables.

A `.env` file next to the backend directory is loaded first (if present),
then values are read with `os.getenv`. Settings are built once at startup
and injected into the services that need them.

Environment configuration:
- OPENAI_API_KEY / ANTHROPIC_API_KEY: provider credentials (at least one required)
- OPENAI_ROUTER_MODEL / OPENAI_ANSWER_MODEL: model names per pass
- ANTHROPIC_ROUTER_MODEL / ANTHROPIC_ANSWER_MODEL: model names per pass
- OPENAI_API_BASE / ANTHROPIC_API_BASE: API base URLs
- LLM_TIMEOUT_SECONDS: HTTP timeout for provider calls (default: 60)
- REDIS_URL: optional external cache store
- CACHE_TTL_SECONDS: default cache TTL (default: 3600)
- CACHE_SWEEP_INTERVAL_SECONDS: in-memory sweep interval (default: 60)
- TRIAGE_ROUTER_CACHE_ENABLED: memoize router results (default: false)
- TRIAGE_ROUTER_REPAIR_ON_PROVIDER_ERROR: send the repair prompt after a provider
  failure too, instead of falling back straight away (default: false)
- LOG_LEVEL / LOG_JSON: logging configuration
"""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

_env_path = Path(__file__).resolve().parents[2] / ".env"
if _env_path.exists():
    load_dotenv(_env_path)


def _get_bool(name: str, default: bool) -> bool:
    return os.getenv(name, str(default)).strip().lower() in {"1", "true", "yes", "on"}


def _get_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)) or default)


def _get_float(name: str, default: float) -> float:
    return float(os.getenv(name, str(default)) or default)


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the triage service."""

    openai_api_key: str = ""
    openai_api_base: str = "https://api.openai.com/v1"
    openai_router_model: str = "gpt-4o-mini"
    openai_answer_model: str = "gpt-4o"

    anthropic_api_key: str = ""
    anthropic_api_base: str = "https://api.anthropic.com/v1"
    anthropic_api_version: str = "2023-06-01"
    anthropic_router_model: str = "claude-3-haiku-20240307"
    anthropic_answer_model: str = "claude-3-5-sonnet-20241022"

    llm_timeout_seconds: float = 60.0

    redis_url: Optional[str] = None
    cache_ttl_seconds: int = 3600
    cache_sweep_interval_seconds: float = 60.0
    router_cache_enabled: bool = False
    router_repair_on_provider_error: bool = False

    log_level: str = "INFO"
    log_json: bool = True

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the current process environment."""
        return cls(
            openai_api_key=os.getenv("OPENAI_API_KEY", ""),
            openai_api_base=os.getenv("OPENAI_API_BASE", cls.openai_api_base),
            openai_router_model=os.getenv("OPENAI_ROUTER_MODEL", cls.openai_router_model),
            openai_answer_model=os.getenv("OPENAI_ANSWER_MODEL", cls.openai_answer_model),
            anthropic_api_key=os.getenv("ANTHROPIC_API_KEY", ""),
            anthropic_api_base=os.getenv("ANTHROPIC_API_BASE", cls.anthropic_api_base),
            anthropic_api_version=os.getenv("ANTHROPIC_API_VERSION", cls.anthropic_api_version),
            anthropic_router_model=os.getenv("ANTHROPIC_ROUTER_MODEL", cls.anthropic_router_model),
            anthropic_answer_model=os.getenv("ANTHROPIC_ANSWER_MODEL", cls.anthropic_answer_model),
            llm_timeout_seconds=_get_float("LLM_TIMEOUT_SECONDS", cls.llm_timeout_seconds),
            redis_url=os.getenv("REDIS_URL") or None,
            cache_ttl_seconds=_get_int("CACHE_TTL_SECONDS", cls.cache_ttl_seconds),
            cache_sweep_interval_seconds=_get_float(
                "CACHE_SWEEP_INTERVAL_SECONDS", cls.cache_sweep_interval_seconds
            ),
            router_cache_enabled=_get_bool("TRIAGE_ROUTER_CACHE_ENABLED", False),
            router_repair_on_provider_error=_get_bool(
                "TRIAGE_ROUTER_REPAIR_ON_PROVIDER_ERROR", False
            ),
            log_level=os.getenv("LOG_LEVEL", cls.log_level),
            log_json=_get_bool("LOG_JSON", True),
        )


def validate_config(settings: Settings) -> Dict[str, Any]:
    """
    Check that the service can reach at least one provider.

    Returns:
        {"valid": bool, "errors": [str, ...]}
    """
    errors: List[str] = []

    if not settings.openai_api_key and not settings.anthropic_api_key:
        errors.append(
            "At least one API key (OPENAI_API_KEY or ANTHROPIC_API_KEY) must be set"
        )

    return {
        "valid": len(errors) == 0,
        "errors": errors,
    }


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get process settings (built lazily from the environment)."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings
