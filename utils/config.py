"""Environment-driven settings for the server and the console client."""

import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

DEFAULT_CORS_ORIGINS = [
    "http://localhost:3002",
    "http://localhost:5173",
    "http://127.0.0.1:3002",
    "http://127.0.0.1:5173",
]


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be a number, got '{raw}'") from exc


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer, got '{raw}'") from exc


def _list_env(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if raw is None:
        return list(default)
    return [item.strip() for item in raw.split(",") if item.strip()]


@dataclass
class Settings:
    """Server settings.

    Attributes:
        openai_api_key: Key for the model API; sessions cannot start without it.
        openai_model: Responses API model name.
        model_timeout_seconds: Upper bound for one model call.
        articles_dir: Directory holding one markdown file per article.
        log_dir: Directory for rotating log files; None logs to the console only.
        log_level: Root log level name.
        cors_origins: Origins allowed to call the HTTP and websocket endpoints.
    """

    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-5"
    model_timeout_seconds: float = 25.0
    articles_dir: str = "./databases"
    log_dir: Optional[str] = "./logs"
    log_level: str = "INFO"
    cors_origins: List[str] = field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))


@dataclass
class ClientSettings:
    """Console client settings."""

    server_url: str = "http://localhost:3001"
    reconnect_attempts: int = 5
    reconnect_delay: float = 1.0
    handshake_timeout: float = 10.0


def load_settings() -> Settings:
    """Build server settings from the environment (and `.env` if present)."""
    load_dotenv()
    log_dir = os.getenv("LOG_DIR", "./logs")
    return Settings(
        openai_api_key=os.getenv("OPENAI_API_KEY") or None,
        openai_model=os.getenv("OPENAI_MODEL", "gpt-5"),
        model_timeout_seconds=_float_env("MODEL_TIMEOUT_SECONDS", 25.0),
        articles_dir=os.getenv("ARTICLES_DIR", "./databases"),
        log_dir=log_dir or None,
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        cors_origins=_list_env("CORS_ORIGINS", DEFAULT_CORS_ORIGINS),
    )


def load_client_settings() -> ClientSettings:
    """Build console client settings from the environment."""
    load_dotenv()
    return ClientSettings(
        server_url=os.getenv("IPA_SERVER_URL", "http://localhost:3001"),
        reconnect_attempts=_int_env("IPA_RECONNECT_ATTEMPTS", 5),
        reconnect_delay=_float_env("IPA_RECONNECT_DELAY", 1.0),
        handshake_timeout=_float_env("IPA_HANDSHAKE_TIMEOUT", 10.0),
    )
