"""Permission Commands - Owner-only permission management

All subcommands live under /permissions and require OWNER. Every change
is written through the PermissionManager and takes effect on the next
command; nothing is cached.
"""
from typing import TYPE_CHECKING, Optional

import discord
from discord import app_commands

if TYPE_CHECKING:
    from discord.ext import commands

    from ..services import Services

from ..permissions import LEVEL_EMOJIS, PermissionLevel, ROLE_LEVELS

ROLE_LEVEL_CHOICES = [
    app_commands.Choice(name=f"{LEVEL_EMOJIS[level]} {level.display_name}", value=level.name.lower())
    for level in ROLE_LEVELS
]

ALL_LEVEL_CHOICES = [
    app_commands.Choice(name=f"{LEVEL_EMOJIS[level]} {level.display_name}", value=level.name.lower())
    for level in reversed(PermissionLevel)
]


def register_permission_commands(bot: "commands.Bot", services: "Services"):
    """Register /permissions with the bot.

    Args:
        bot: The Discord bot instance
        services: Shared services
    """
    # Import dependencies
    from ..checks import LeveledGroup
    from ..config import logger
    from ..formatting import info_embed, permission_overview_embed, success_embed, warning_embed
    from ..permission_manager import MutationStatus
    from ..permissions import Member, has_line_access, is_authorized, parse_level, required_level, resolve_user_level
    from ..ui_components import ConfirmResetView

    group = LeveledGroup(services, PermissionLevel.OWNER, name="permissions", description="Manage bot permissions (Owner only)")

    async def report(interaction: discord.Interaction, status: MutationStatus, changed: str, unchanged: str):
        logger.info(f"🔐 {interaction.user} ({interaction.user.id}): {changed} [{status.value}]")
        if status.changed:
            await interaction.response.send_message(embed=success_embed(changed), ephemeral=True)
        else:
            await interaction.response.send_message(embed=warning_embed(unchanged), ephemeral=True)

    # ============================================================================
    # VIEW
    # ============================================================================

    @group.command(name="view", description="Show owners, role levels, overrides and line access")
    async def view_command(interaction: discord.Interaction):
        config = await services.permissions.get_config()
        await interaction.response.send_message(embed=permission_overview_embed(config), ephemeral=True)

    # ============================================================================
    # ROLES
    # ============================================================================

    @group.command(name="set-role", description="Grant a permission level to a role")
    @app_commands.choices(level=ROLE_LEVEL_CHOICES)
    async def set_role_command(interaction: discord.Interaction, role: discord.Role, level: str):
        parsed = parse_level(level)
        status = await services.permissions.set_role_level(role.id, parsed)
        await report(
            interaction, status,
            f"{role.name} now grants {parsed.display_name}",
            f"{role.name} already grants {parsed.display_name}",
        )

    @group.command(name="remove-role", description="Stop a role from granting one level")
    @app_commands.choices(level=ROLE_LEVEL_CHOICES)
    async def remove_role_command(interaction: discord.Interaction, role: discord.Role, level: str):
        parsed = parse_level(level)
        status = await services.permissions.remove_role_from_level(role.id, parsed)
        await report(
            interaction, status,
            f"{role.name} no longer grants {parsed.display_name}",
            f"{role.name} was not mapped to {parsed.display_name}",
        )

    @group.command(name="clear-role", description="Remove a role from every level")
    async def clear_role_command(interaction: discord.Interaction, role: discord.Role):
        status = await services.permissions.remove_role_everywhere(role.id)
        await report(interaction, status, f"{role.name} removed from all levels", f"{role.name} was not mapped to any level")

    # ============================================================================
    # USER & COMMAND OVERRIDES
    # ============================================================================

    @group.command(name="set-user", description="Give a user an explicit level")
    @app_commands.choices(level=ALL_LEVEL_CHOICES)
    async def set_user_command(interaction: discord.Interaction, user: discord.User, level: str):
        parsed = parse_level(level)
        status = await services.permissions.set_user_override(user.id, parsed)
        await report(
            interaction, status,
            f"{user.display_name} is now {parsed.display_name}",
            f"{user.display_name} already has {parsed.display_name}",
        )

    @group.command(name="remove-user", description="Remove a user's explicit level")
    async def remove_user_command(interaction: discord.Interaction, user: discord.User):
        status = await services.permissions.remove_user_override(user.id)
        await report(interaction, status, f"Override removed for {user.display_name}", f"{user.display_name} has no override")

    @group.command(name="set-command", description="Change the level a command requires")
    @app_commands.choices(level=ALL_LEVEL_CHOICES)
    async def set_command_command(interaction: discord.Interaction, command: str, level: str):
        name = command.strip().lstrip("/").lower()
        if name not in services.registry:
            await interaction.response.send_message(embed=warning_embed("Unknown Command", f"`/{name}` is not a registered command."), ephemeral=True)
            return
        parsed = parse_level(level)
        status = await services.permissions.set_command_override(name, parsed)
        await report(
            interaction, status,
            f"/{name} now requires {parsed.display_name}",
            f"/{name} already requires {parsed.display_name}",
        )

    @group.command(name="remove-command", description="Restore a command's default level")
    async def remove_command_command(interaction: discord.Interaction, command: str):
        name = command.strip().lstrip("/").lower()
        status = await services.permissions.remove_command_override(name)
        await report(interaction, status, f"/{name} uses its default level again", f"/{name} has no override")

    @set_command_command.autocomplete("command")
    @remove_command_command.autocomplete("command")
    async def command_autocomplete(interaction: discord.Interaction, current: str):
        current = current.lower()
        return [
            app_commands.Choice(name=f"/{name}", value=name)
            for name in services.registry.names()
            if current in name
        ][:25]

    # ============================================================================
    # RESET & CHECK
    # ============================================================================

    @group.command(name="reset", description="Restore default roles and clear overrides (owners are kept)")
    async def reset_command(interaction: discord.Interaction):
        embed = warning_embed(
            "Reset Permissions?",
            "This restores the default role levels and removes every user override, command override and line access role.\n\n**Owners are kept.**",
        )
        await interaction.response.send_message(embed=embed, view=ConfirmResetView(services, interaction.user.id), ephemeral=True)

    @group.command(name="check", description="Show a member's level and whether they can run a command")
    @app_commands.guild_only()
    async def check_command(interaction: discord.Interaction, member: discord.Member, command: Optional[str] = None):
        config = await services.permissions.get_config()
        target = Member.from_discord(member)
        level = resolve_user_level(target, config)

        embed = info_embed(f"🔍 {member.display_name}")
        embed.add_field(name="Level", value=f"{LEVEL_EMOJIS[level]} {level.display_name}", inline=True)
        embed.add_field(name="Line Access", value="✅" if has_line_access(target, config) else "❌", inline=True)

        if command:
            name = command.strip().lstrip("/").lower()
            descriptor = services.registry.descriptor(name)
            needed = required_level(descriptor, config)
            allowed = is_authorized(target, descriptor, config)
            embed.add_field(
                name=f"/{name}",
                value=f"Requires {LEVEL_EMOJIS[needed]} {needed.display_name} · {'✅ Allowed' if allowed else '❌ Denied'}",
                inline=False,
            )
        await interaction.response.send_message(embed=embed, ephemeral=True)

    check_command.autocomplete("command")(command_autocomplete)

    bot.tree.add_command(group)
