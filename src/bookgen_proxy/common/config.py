"""Process configuration, read once at startup."""
from __future__ import annotations
import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

LOGGER = logging.getLogger("bookgen.config")

DEFAULT_PORT = 5000


def _split_origins(raw: str | None) -> tuple[str, ...]:
    if not raw:
        return ("*",)
    origins = tuple(o.strip() for o in raw.split(",") if o.strip())
    return origins or ("*",)


@dataclass(frozen=True)
class Settings:
    """Read-only settings shared by every request.

    ``token_secret`` and ``api_key`` are never defaulted; a missing value is
    reported as a server misconfiguration when a request needs it.
    """

    token_secret: str | None = None
    api_key: str | None = None
    port: int = DEFAULT_PORT
    cors_allow_origins: tuple[str, ...] = ("*",)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "Settings":
        env = os.environ if environ is None else environ
        port_raw = (env.get("PORT") or "").strip()
        try:
            port = int(port_raw) if port_raw else DEFAULT_PORT
        except ValueError:
            LOGGER.warning("Ignoring invalid PORT=%r, using %s", port_raw, DEFAULT_PORT)
            port = DEFAULT_PORT
        return cls(
            token_secret=env.get("POCKETBASE_TOKEN_SECRET") or None,
            api_key=env.get("QWEN_API_KEY") or None,
            port=port,
            cors_allow_origins=_split_origins(env.get("CORS_ALLOW_ORIGINS")),
            log_level=(env.get("LOG_LEVEL") or "INFO").strip().upper(),
        )


def load_settings() -> Settings:
    """Load ``.env`` (if any) into the environment and build Settings."""
    if not load_dotenv():
        LOGGER.warning("No .env file loaded; using process environment only")
    settings = Settings.from_env()
    if not settings.token_secret:
        LOGGER.warning("POCKETBASE_TOKEN_SECRET is not set; protected routes will fail")
    if not settings.api_key:
        LOGGER.warning("QWEN_API_KEY is not set; book generation will fail")
    return settings
