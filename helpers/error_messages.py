"""
Centralized user-facing notice catalogue for dungeon commands and events.

All messages are short, actionable, and never expose internal technical
details to users. Each entry is a (title, body) pair; bodies may contain
``str.format`` placeholders filled from keyword arguments.
"""

from typing import Any

from utils.logging import get_logger
from utils.types import Notice, NoticeLevel

logger = get_logger(__name__)

ERROR_MESSAGES: dict[str, tuple[str, str]] = {
    "NOT_IN_VOICE": (
        "Not in voice",
        "You must be in a dungeon voice channel to use dungeon commands.",
    ),
    "NOT_MANAGED": (
        "Not a dungeon",
        'The voice channel "{room_name}" is not a dungeon. '
        "Commands only work in dungeon voice channels.",
    ),
    "UNKNOWN_COMMAND": (
        "Unknown command",
        "Unknown command: `{command}`. Use `{prefix}help` for available commands.",
    ),
    "NOT_OWNER": (
        "Not your dungeon",
        "Only the dungeon owner can use `{command}`.",
    ),
    "MISSING_MENTION": (
        "Missing user",
        "Please mention a user. Example: `{prefix}{command} @username`",
    ),
    "MEMBER_NOT_FOUND": ("User not found", "That user isn't a member of this server."),
    "TARGET_NOT_PRESENT": (
        "User not present",
        "That user isn't in this dungeon's voice channel.",
    ),
    "INVALID_LIMIT": (
        "Invalid limit",
        "Please provide a whole number between 0 and 99. Use 0 for no limit.",
    ),
    "EMPTY_NAME": ("Missing name", "Please provide a new name for the dungeon."),
    "NAME_TOO_LONG": (
        "Name too long",
        "Dungeon name must be {max_length} characters or less.",
    ),
    "RESERVED_NAME": (
        "Name reserved",
        "`{name}` is the name of the dungeon creation channel. Pick another name.",
    ),
    "ROOM_OCCUPIED": (
        "Dungeon occupied",
        "You can only claim a dungeon when nobody else is in it.",
    ),
    "PROVIDER_FAILED": (
        "Discord refused",
        "Discord rejected that change. Check my permissions and try again.",
    ),
    "CREATION_FAILED": (
        "Failed to Create Dungeon",
        "Sorry {member_name}, I couldn't create your dungeon. "
        "Please ask an administrator to check that I have Manage Channels, "
        "Connect and Move Members.",
    ),
    "UNKNOWN": (
        "Something went wrong",
        "An unexpected error occurred. The issue was logged.",
    ),
}

SUCCESS_MESSAGES: dict[str, tuple[str, str]] = {
    "CREATED": (
        "Dungeon Created Successfully!",
        "**{member_name}** has created a dungeon: **{room_name}**\n\n"
        "Join the voice channel and use `{prefix}help` in any text channel "
        "to see available commands.",
    ),
    "LOCKED": ("Dungeon Locked", "This dungeon is now locked. Only invited users can join."),
    "UNLOCKED": ("Dungeon Unlocked", "This dungeon is now unlocked. Anyone can join."),
    "INVITED": ("User Invited", "**{member_name}** has been invited to the dungeon!"),
    "KICKED": ("User Kicked", "**{member_name}** has been kicked from the dungeon."),
    "LIMIT_SET": ("User Limit Updated", "User limit set to: **{limit}**"),
    "RENAMED": ("Dungeon Renamed", "Dungeon renamed to: **{name}**"),
    "ENDED": ("Dungeon Ended", "This dungeon has been manually ended by the owner."),
    "CLAIMED": ("Dungeon Claimed!", "**{member_name}** has claimed this dungeon!"),
    "EXTENDED": (
        "Deletion Postponed",
        "This dungeon will now be kept for another {seconds}s of inactivity.",
    ),
    "NOT_PENDING": (
        "Nothing to Extend",
        "This dungeon is active. The {seconds}s deletion timer only starts "
        "once everyone has left.",
    ),
}


def _render(catalogue: dict[str, tuple[str, str]], code: str, kwargs: dict[str, Any]) -> tuple[str, str]:
    title, body = catalogue[code]
    try:
        return title, body.format(**kwargs)
    except (KeyError, IndexError) as e:
        # Missing kwarg: show the template rather than fail the reply
        logger.warning(f"Missing value {e} formatting notice {code}")
        return title, body


def format_user_error(code: str, **kwargs: Any) -> Notice:
    """
    Build the error notice for an error code.

    Args:
        code: Error code identifying the type of error
        **kwargs: Dynamic values to insert into the message

    Returns:
        Notice with ERROR level. Unknown codes fall back to ``UNKNOWN``.

    Examples:
        >>> format_user_error("INVALID_LIMIT").title
        'Invalid limit'
    """
    if code not in ERROR_MESSAGES:
        logger.warning(f"Unknown error code used in format_user_error: {code}")
        code = "UNKNOWN"
    title, description = _render(ERROR_MESSAGES, code, kwargs)
    return Notice(level=NoticeLevel.ERROR, title=f"❌ {title}", description=description)


def format_user_success(code: str, **kwargs: Any) -> Notice:
    """Build the success notice for a success code."""
    if code not in SUCCESS_MESSAGES:
        logger.warning(f"Unknown success code used in format_user_success: {code}")
        return Notice(
            level=NoticeLevel.SUCCESS,
            title="✅ Success",
            description="Operation completed.",
        )
    title, description = _render(SUCCESS_MESSAGES, code, kwargs)
    level = NoticeLevel.INFO if code == "NOT_PENDING" else NoticeLevel.SUCCESS
    return Notice(level=level, title=title, description=description)
