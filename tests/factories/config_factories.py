"""
Config Factories

Factory functions for test configuration mappings and temporary YAML files.
"""

from __future__ import annotations

import contextlib
import os
import tempfile
from typing import TYPE_CHECKING, Any

import yaml

if TYPE_CHECKING:
    from collections.abc import Generator


def make_config(
    logging_level: str = "INFO",
    dungeons: dict[str, Any] | None = None,
    extra: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Create a configuration dictionary for testing.

    Examples:
        config = make_config(dungeons={"command_prefix": "!d "})
    """
    config: dict[str, Any] = {
        "logging": {"level": logging_level},
        "dungeons": {
            "trigger_channel_name": "join-here",
            "category_name": "TEST DUNGEONS",
            "command_prefix": "!d ",
            "inactivity_timeout_seconds": 30,
            "end_grace_seconds": 1,
            "shutdown_timeout_seconds": 5,
        },
    }
    if dungeons is not None:
        config["dungeons"].update(dungeons)
    if extra:
        config.update(extra)
    return config


@contextlib.contextmanager
def temp_config_file(
    config: dict[str, Any] | None = None,
    content: str | None = None,
) -> Generator[str, None, None]:
    """
    Create a temporary config file for testing.

    Args:
        config: Configuration dictionary to write as YAML
        content: Raw string content (overrides config dict)

    Yields:
        Path to the temporary config file.
    """
    fd, path = tempfile.mkstemp(suffix=".yaml")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            if content is not None:
                f.write(content)
            elif config is not None:
                yaml.safe_dump(config, f, allow_unicode=True)
        yield path
    finally:
        with contextlib.suppress(OSError):
            os.unlink(path)
