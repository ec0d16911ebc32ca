from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv, find_dotenv


# Ensure the .env at project root is loaded
load_dotenv(dotenv_path=find_dotenv(usecwd=True))

PLACEHOLDER_VALUES = {"", "your_openai_api_key", "your_spotify_client_id", "your_spotify_client_secret"}

DEFAULT_REDIRECT_URI = "http://127.0.0.1:5000/api/auth/callback"
LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"


def _env(*names: str, default: str | None = None) -> str | None:
    """Return the first configured value among ``names``, skipping placeholders."""
    for name in names:
        value = os.getenv(name)
        if value is not None and value.strip() not in PLACEHOLDER_VALUES:
            return value.strip()
    return default


@dataclass(frozen=True)
class Settings:
    spotify_client_id: str | None = None
    spotify_client_secret: str | None = None
    spotify_redirect_uri: str = DEFAULT_REDIRECT_URI
    openai_api_key: str | None = None
    openai_model: str = "gpt-4o-mini"
    frontend_url: str | None = None
    app_secret_key: bytes | str = field(default_factory=lambda: os.urandom(24))
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            spotify_client_id=_env("SPOTIPY_CLIENT_ID", "SPOTIFY_CLIENT_ID"),
            spotify_client_secret=_env("SPOTIPY_CLIENT_SECRET", "SPOTIFY_CLIENT_SECRET"),
            spotify_redirect_uri=_env("SPOTIPY_REDIRECT_URI", "SPOTIFY_REDIRECT_URI", default=DEFAULT_REDIRECT_URI),
            openai_api_key=_env("OPENAI_API_KEY"),
            openai_model=_env("OPENAI_MODEL", default="gpt-4o-mini"),
            frontend_url=_env("FRONTEND_URL"),
            app_secret_key=_env("APP_SECRET_KEY") or os.urandom(24),
            log_level=_env("LOG_LEVEL", default="INFO").upper(),
        )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
