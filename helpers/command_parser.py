"""
Parsing for the text-prefix command surface.

Commands look like ``<prefix><command> [args...]``; the command word is
case-insensitive and arguments are whitespace separated.
"""

import re

_MENTION_RE = re.compile(r"^<@!?(\d+)>$")


def parse_command(content: str, prefix: str) -> tuple[str, list[str]] | None:
    """
    Split a message into (command, args) if it starts with ``prefix``.

    The prefix match is case-insensitive and whitespace inside the prefix is
    significant. Returns None for messages that are not commands.

    Examples:
        >>> parse_command(".d limit 5", ".d ")
        ('limit', ['5'])
        >>> parse_command("hello", ".d ") is None
        True
    """
    if not content or not prefix:
        return None
    if not content[: len(prefix)].lower() == prefix.lower():
        return None
    parts = content[len(prefix) :].split()
    if not parts:
        return None
    return parts[0].lower(), parts[1:]


def parse_mention(token: str | None) -> int | None:
    """Return the member id from ``<@id>``, ``<@!id>`` or a raw numeric id."""
    if not token:
        return None
    match = _MENTION_RE.match(token.strip())
    if match:
        return int(match.group(1))
    if token.strip().isdigit():
        return int(token.strip())
    return None
