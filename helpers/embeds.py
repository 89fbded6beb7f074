"""
Embed Helper Module

Renders the core's Notice objects as Discord embeds with consistent styling,
and builds the help and info notices for the dungeon command surface.
"""

import time

import discord

from utils.logging import get_logger
from utils.types import Notice, NoticeLevel, Room

logger = get_logger(__name__)

LEVEL_COLORS = {
    NoticeLevel.SUCCESS: 0x00FF00,  # Green
    NoticeLevel.ERROR: 0xFF0000,  # Red
    NoticeLevel.INFO: 0x3498DB,  # Blue
    NoticeLevel.WARNING: 0xFFA500,  # Orange
}

COMMAND_HELP = (
    ("lock", "Lock the dungeon (only invited users can join)"),
    ("unlock", "Unlock the dungeon (anyone can join)"),
    ("invite @user", "Invite a user to a locked dungeon"),
    ("kick @user", "Remove a user from the dungeon"),
    ("limit <0-99>", "Set the user limit (0 = no limit)"),
    ("rename <name>", "Rename the dungeon"),
    ("claim", "Claim an empty dungeon"),
    ("extend", "Postpone a pending inactivity deletion"),
    ("end", "Delete the dungeon"),
    ("info", "Show dungeon details"),
)


def create_embed(title: str, description: str, color: int = 0x00FF00) -> discord.Embed:
    """
    Creates a Discord embed with the given parameters.

    Args:
        title (str): The title of the embed.
        description (str): The description/content of the embed.
        color (int, optional): The color of the embed in hexadecimal. Defaults to green.

    Returns:
        discord.Embed: The created embed object.
    """
    return discord.Embed(title=title, description=description, color=color)


def build_notice_embed(notice: Notice) -> discord.Embed:
    """Render a Notice as an embed colored by its level."""
    embed = create_embed(
        notice.title,
        notice.description,
        LEVEL_COLORS.get(notice.level, LEVEL_COLORS[NoticeLevel.INFO]),
    )
    for name, value in notice.fields:
        embed.add_field(name=name, value=value, inline=True)
    if notice.footer:
        embed.set_footer(text=notice.footer)
    return embed


def notice_as_text(notice: Notice) -> str:
    """Plain-text rendering used when an embed cannot be sent."""
    lines = [f"**{notice.title}**", notice.description]
    lines.extend(f"{name}: {value}" for name, value in notice.fields)
    return "\n".join(line for line in lines if line)


def build_help_notice(prefix: str) -> Notice:
    """Command overview using the configured prefix."""
    lines = [f"`{prefix}{usage}` - {text}" for usage, text in COMMAND_HELP]
    return Notice(
        level=NoticeLevel.INFO,
        title="🏰 Dungeon Commands",
        description="\n".join(lines),
        footer="Owner-only: everything except help, info and claim.",
    )


def _format_age(seconds: float) -> str:
    minutes, secs = divmod(int(max(seconds, 0)), 60)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours}h {minutes}m"
    if minutes:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


def build_info_notice(room: Room, *, now: float | None = None) -> Notice:
    """Details of one dungeon: owner, lock state, invites, limit and age."""
    if now is None:
        now = time.time()
    return Notice(
        level=NoticeLevel.INFO,
        title=f"🏰 {room.name}",
        description=f"Owned by <@{room.owner_id}>",
        fields=[
            ("Status", "🔒 Locked" if room.locked else "🔓 Unlocked"),
            ("Invited", str(len(room.invited))),
            ("User Limit", str(room.user_limit) if room.user_limit else "No limit"),
            ("Age", _format_age(now - room.created_at)),
        ],
    )
