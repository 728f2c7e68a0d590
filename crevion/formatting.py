"""Embed builders shared by commands and event handlers"""
from typing import Optional

import discord

from .config import (
    BOT_NAME,
    EMBED_COLOR,
    EMBED_FOOTER,
    ERROR_COLOR,
    INFO_COLOR,
    SUCCESS_COLOR,
    WARNING_COLOR,
)
from .permissions import LEVEL_EMOJIS, PermissionConfig, PermissionLevel, ROLE_LEVELS


def make_embed(title: str, description: Optional[str] = None, color: int = EMBED_COLOR, footer: Optional[str] = None) -> discord.Embed:
    embed = discord.Embed(title=title, description=description, color=color)
    embed.set_footer(text=f"{EMBED_FOOTER} | {footer}" if footer else EMBED_FOOTER)
    return embed


def success_embed(title: str, description: Optional[str] = None) -> discord.Embed:
    return make_embed(f"✅ {title}", description, SUCCESS_COLOR)


def error_embed(title: str, description: Optional[str] = None) -> discord.Embed:
    return make_embed(f"❌ {title}", description, ERROR_COLOR)


def warning_embed(title: str, description: Optional[str] = None) -> discord.Embed:
    return make_embed(f"⚠️ {title}", description, WARNING_COLOR)


def info_embed(title: str, description: Optional[str] = None) -> discord.Embed:
    return make_embed(title, description, INFO_COLOR)


def permission_denied_embed(required: Optional[PermissionLevel], current: Optional[PermissionLevel] = None) -> discord.Embed:
    """Shown when a member's level is below what the command needs.

    ``required`` is None when the permission config could not be read.
    """
    if required is None:
        return error_embed(
            "Permission Denied",
            "Permissions can't be checked right now, so this command is unavailable. Please try again later.",
        )
    embed = error_embed(
        "Permission Denied",
        "You don't have permission to use this command.",
    )
    embed.add_field(
        name="Required Level",
        value=f"{LEVEL_EMOJIS[required]} {required.display_name}",
        inline=True,
    )
    if current is not None:
        embed.add_field(
            name="Your Level",
            value=f"{LEVEL_EMOJIS[current]} {current.display_name}",
            inline=True,
        )
    return embed


def format_ids(ids, kind: str = "role", limit: int = 1024) -> str:
    """Render IDs as Discord mentions, truncated to fit an embed field."""
    if not ids:
        return "*None*"
    template = "<@&{}>" if kind == "role" else "<@{}>"
    text = ", ".join(template.format(i) for i in ids)
    if len(text) > limit:
        text = text[:limit - 3] + "..."
    return text


def permission_overview_embed(config: PermissionConfig) -> discord.Embed:
    """Full dump of the permission document for /permissions view."""
    embed = make_embed(f"🔐 {BOT_NAME} Permissions", footer="Use /permissions to change")
    embed.add_field(
        name=f"{LEVEL_EMOJIS[PermissionLevel.OWNER]} Owners",
        value=format_ids(config.owners, "user"),
        inline=False,
    )
    for level in ROLE_LEVELS:
        embed.add_field(
            name=f"{LEVEL_EMOJIS[level]} {level.display_name} Roles",
            value=format_ids(config.roles_for(level)),
            inline=False,
        )

    if config.user_overrides:
        lines = [f"<@{uid}> → {level.display_name}" for uid, level in config.user_overrides.items()]
        embed.add_field(name="👤 User Overrides", value="\n".join(lines)[:1024], inline=False)

    if config.command_overrides:
        lines = [f"`/{name}` → {level.display_name}" for name, level in sorted(config.command_overrides.items())]
        embed.add_field(name="⌨️ Command Overrides", value="\n".join(lines)[:1024], inline=False)

    embed.add_field(
        name="📏 Line Access Roles",
        value=format_ids(config.line_access_roles) if config.line_access_roles else "*Owners only*",
        inline=False,
    )
    return embed
