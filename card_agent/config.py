"""
Centralized configuration with environment variable overrides.

Speech endpoints, resolution business rules, session retention, and
data locations are configurable here. Nothing is hardcoded in the
pipeline or tool logic.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from card_agent.logging_context import SessionIdFilter

load_dotenv()

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(name)s] [%(session_id)s] %(levelname)s: %(message)s"


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _safe_float(env_var: str, default: str) -> float:
    """Parse a float from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return float(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid float for {env_var}: {raw!r}"
        ) from None


@dataclass(frozen=True)
class SpeechConfig:
    """Remote speech-to-text, text-to-speech, and voice-chain settings."""

    base_url: str = os.getenv("SPEECH_BASE_URL", "https://api.hathora.dev/v1")
    api_key: str = os.getenv("SPEECH_API_KEY", "")
    chain_url: str = os.getenv("SPEECH_CHAIN_URL", "")
    stt_model: str = os.getenv("STT_MODEL", "deepgram:nova-2")
    tts_model: str = os.getenv("TTS_MODEL", "elevenlabs:multilingual-v2")
    tts_voice: str = os.getenv("TTS_VOICE", "alloy")
    chain_stt_model: str = os.getenv("CHAIN_STT_MODEL", "parakeet")
    chain_llm_model: str = os.getenv("CHAIN_LLM_MODEL", "qwen3")
    chain_tts_model: str = os.getenv("CHAIN_TTS_MODEL", "kokoro")
    timeout_sec: float = _safe_float("SPEECH_TIMEOUT_SEC", "30.0")


@dataclass(frozen=True)
class ResolutionConfig:
    """Business rules applied while dispatching and summarizing a case."""

    default_dispute_amount: float = _safe_float("DEFAULT_DISPUTE_AMOUNT", "89.99")
    dispute_window_days: int = _safe_int("DISPUTE_WINDOW_DAYS", "10")
    annual_fee_waiver_cap: float = _safe_float("ANNUAL_FEE_WAIVER_CAP", "200")
    temporary_credit_threshold: float = _safe_float("TEMPORARY_CREDIT_THRESHOLD", "50")
    action_timeout_sec: float = _safe_float("ACTION_TIMEOUT_SEC", "15.0")
    default_mime_type: str = os.getenv("DEFAULT_MIME_TYPE", "audio/wav")


@dataclass(frozen=True)
class SessionConfig:
    """Retention limits for the in-memory session registry."""

    ttl_sec: float = _safe_float("SESSION_TTL_SEC", "3600")
    max_sessions: int = _safe_int("MAX_SESSIONS", "1000")


@dataclass(frozen=True)
class StoreConfig:
    """Location of the customer records file."""

    customer_data_path: str = os.getenv("CUSTOMER_DATA_PATH", "data/customers.json")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    speech: SpeechConfig = field(default_factory=SpeechConfig)
    resolution: ResolutionConfig = field(default_factory=ResolutionConfig)
    sessions: SessionConfig = field(default_factory=SessionConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    agent_name: str = os.getenv("AGENT_NAME", "card-resolution-agent")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    if config.speech.timeout_sec <= 0:
        raise ValueError(
            f"SPEECH_TIMEOUT_SEC must be > 0, got {config.speech.timeout_sec}"
        )
    if config.resolution.action_timeout_sec <= 0:
        raise ValueError(
            f"ACTION_TIMEOUT_SEC must be > 0, got {config.resolution.action_timeout_sec}"
        )
    if config.resolution.dispute_window_days < 1:
        raise ValueError(
            f"DISPUTE_WINDOW_DAYS must be >= 1, got {config.resolution.dispute_window_days}"
        )
    if config.sessions.ttl_sec <= 0:
        raise ValueError(f"SESSION_TTL_SEC must be > 0, got {config.sessions.ttl_sec}")
    if config.sessions.max_sessions < 1:
        raise ValueError(f"MAX_SESSIONS must be >= 1, got {config.sessions.max_sessions}")

    for amount_name, amount_value in [
        ("DEFAULT_DISPUTE_AMOUNT", config.resolution.default_dispute_amount),
        ("ANNUAL_FEE_WAIVER_CAP", config.resolution.annual_fee_waiver_cap),
        ("TEMPORARY_CREDIT_THRESHOLD", config.resolution.temporary_credit_threshold),
    ]:
        if amount_value < 0:
            raise ValueError(f"{amount_name} must be >= 0, got {amount_value}")


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # LOG_FORMAT needs session_id on records from every logger, not only session loggers.
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, SessionIdFilter) for f in handler.filters):
            handler.addFilter(SessionIdFilter())
    logger.info("Configuration loaded for '%s'", config.agent_name)
    return config


# Singleton instance
settings = load_config()
