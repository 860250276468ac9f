"""Configuration helpers for the gmail_tool scripts."""
from __future__ import annotations

from dataclasses import dataclass
import os
import re
from pathlib import Path
from typing import Sequence, Tuple

from dotenv import load_dotenv

from .summaries import DEFAULT_BATCH_SIZE


DEFAULT_SCOPES: Tuple[str, ...] = (
    "https://www.googleapis.com/auth/gmail.modify",
    "https://www.googleapis.com/auth/gmail.settings.basic",
    "https://www.googleapis.com/auth/drive.readonly",
)


class ConfigError(RuntimeError):
    """Raised when configuration values are present but unusable."""


@dataclass(slots=True)
class Settings:
    """Runtime configuration for building Google services."""

    token_path: Path = Path("token.json")
    client_secret_path: Path = Path("client_secret.json")
    scopes: Sequence[str] = DEFAULT_SCOPES
    batch_size: int = DEFAULT_BATCH_SIZE
    log_level: str = "WARNING"


def _parse_scopes(value: str) -> Tuple[str, ...]:
    return tuple(s for s in re.split(r"[\s,]+", value) if s)


def load_settings(*, env_file: bool = True) -> Settings:
    """Load settings from environment variables (and a `.env` file when present).

    Recognised variables: GMAIL_TOOL_TOKEN, GMAIL_TOOL_CLIENT_SECRET,
    GMAIL_TOOL_SCOPES, GMAIL_TOOL_BATCH_SIZE and GMAIL_TOOL_LOG_LEVEL.

    Raises:
        ConfigError: if the batch size or scope list is invalid.
    """

    if env_file:
        load_dotenv()

    settings = Settings()
    token = os.getenv("GMAIL_TOOL_TOKEN")
    if token:
        settings.token_path = Path(token)
    secret = os.getenv("GMAIL_TOOL_CLIENT_SECRET")
    if secret:
        settings.client_secret_path = Path(secret)

    scopes = os.getenv("GMAIL_TOOL_SCOPES")
    if scopes is not None:
        settings.scopes = _parse_scopes(scopes)
        if not settings.scopes:
            raise ConfigError("GMAIL_TOOL_SCOPES is set but lists no scopes.")

    batch_size = os.getenv("GMAIL_TOOL_BATCH_SIZE")
    if batch_size:
        try:
            settings.batch_size = int(batch_size)
        except ValueError as exc:
            raise ConfigError(f"GMAIL_TOOL_BATCH_SIZE must be an integer, got {batch_size!r}") from exc
        if settings.batch_size < 1:
            raise ConfigError(f"GMAIL_TOOL_BATCH_SIZE must be at least 1, got {settings.batch_size}")

    settings.log_level = os.getenv("GMAIL_TOOL_LOG_LEVEL", settings.log_level).upper()
    return settings
