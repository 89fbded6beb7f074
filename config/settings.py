# config/settings.py

"""
Typed runtime settings for the dungeon bot.

Values come from the ``dungeons`` section of config.yaml, overridden by
``DUNGEON_*`` environment variables. Invalid values are reported and
replaced by their defaults; only the bot token is fatal.
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from utils.errors import ConfigError
from utils.logging import get_logger

from .config_loader import ConfigLoader

TOKEN_ENV = "DISCORD_BOT_TOKEN"
PLACEHOLDER_TOKEN = "your_bot_token_here"

MAX_PREFIX_LENGTH = 10

DEFAULT_TRIGGER_CHANNEL_NAME = "🎙️ your-dungeon"
DEFAULT_CATEGORY_NAME = "DUNGEONS"
DEFAULT_COMMAND_PREFIX = ".d "
DEFAULT_INACTIVITY_TIMEOUT = 120.0
DEFAULT_END_GRACE = 3.0
DEFAULT_SHUTDOWN_TIMEOUT = 10.0

_ENV_OVERRIDES = {
    "trigger_channel_name": "DUNGEON_TRIGGER_CHANNEL_NAME",
    "category_name": "DUNGEON_CATEGORY_NAME",
    "command_prefix": "DUNGEON_COMMAND_PREFIX",
    "inactivity_timeout_seconds": "DUNGEON_INACTIVITY_TIMEOUT_SECONDS",
    "end_grace_seconds": "DUNGEON_END_GRACE_SECONDS",
    "shutdown_timeout_seconds": "DUNGEON_SHUTDOWN_TIMEOUT_SECONDS",
}

logger = get_logger(__name__)


@dataclass(frozen=True)
class DungeonSettings:
    """Settings consumed by the lifecycle controller and the Discord adapters."""

    trigger_channel_name: str = DEFAULT_TRIGGER_CHANNEL_NAME
    category_name: str = DEFAULT_CATEGORY_NAME
    command_prefix: str = DEFAULT_COMMAND_PREFIX
    inactivity_timeout: float = DEFAULT_INACTIVITY_TIMEOUT
    end_grace: float = DEFAULT_END_GRACE
    shutdown_timeout: float = DEFAULT_SHUTDOWN_TIMEOUT

    @classmethod
    def from_sources(
        cls,
        config: Mapping[str, Any] | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> "DungeonSettings":
        """Build settings from a config section and an environment mapping.

        Args:
            config: The ``dungeons`` config section. Defaults to the loaded YAML.
            environ: Environment mapping. Defaults to ``os.environ``.
        """
        if config is None:
            ConfigLoader.load_config()
            config = ConfigLoader.section("dungeons")
        if environ is None:
            environ = os.environ

        raw = dict(config)
        for key, env_name in _ENV_OVERRIDES.items():
            if environ.get(env_name) is not None:
                raw[key] = environ[env_name]

        return cls(
            trigger_channel_name=_name(
                raw, "trigger_channel_name", DEFAULT_TRIGGER_CHANNEL_NAME
            ),
            category_name=_name(raw, "category_name", DEFAULT_CATEGORY_NAME),
            command_prefix=_prefix(raw.get("command_prefix")),
            inactivity_timeout=_seconds(
                raw, "inactivity_timeout_seconds", DEFAULT_INACTIVITY_TIMEOUT
            ),
            end_grace=_seconds(raw, "end_grace_seconds", DEFAULT_END_GRACE),
            shutdown_timeout=_seconds(
                raw, "shutdown_timeout_seconds", DEFAULT_SHUTDOWN_TIMEOUT
            ),
        )


def _name(raw: Mapping[str, Any], key: str, default: str) -> str:
    value = raw.get(key)
    if value is None:
        return default
    text = str(value)
    if not text.strip():
        logger.warning("Blank %s in config; using default '%s'", key, default)
        return default
    return text


def _seconds(raw: Mapping[str, Any], key: str, default: float) -> float:
    value = raw.get(key)
    if value is None:
        return default
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        logger.warning("Invalid %s=%r; using default %ss", key, value, default)
        return default
    if seconds <= 0:
        logger.warning("Non-positive %s=%r; using default %ss", key, value, default)
        return default
    return seconds


def _prefix(value: Any) -> str:
    """Validate the command prefix. Surrounding whitespace is significant."""
    if value is None:
        return DEFAULT_COMMAND_PREFIX
    if not isinstance(value, str) or not value.strip():
        logger.warning("Invalid command prefix %r; using default", value)
        return DEFAULT_COMMAND_PREFIX
    if "`" in value or "\n" in value:
        logger.warning("Command prefix contains backtick/newline; using default")
        return DEFAULT_COMMAND_PREFIX
    if len(value) > MAX_PREFIX_LENGTH:
        logger.warning(
            "Command prefix %r exceeds max length %s; using default",
            value,
            MAX_PREFIX_LENGTH,
        )
        return DEFAULT_COMMAND_PREFIX
    return value


def load_token(environ: Mapping[str, str] | None = None) -> str:
    """Return the bot token or raise ConfigError.

    A missing, blank or placeholder token is fatal: the bot must not try to
    connect with it.
    """
    if environ is None:
        environ = os.environ
    token = (environ.get(TOKEN_ENV) or "").strip()
    if not token:
        raise ConfigError(f"{TOKEN_ENV} not set.")
    if token == PLACEHOLDER_TOKEN:
        raise ConfigError(
            f"{TOKEN_ENV} still holds the placeholder value; "
            "set it to your bot token from the Discord developer portal."
        )
    return token
