"""Moderation Commands - Announcements, auto replies & auto line

- /say - Send a message as the bot (Moderator+)
- /autoreply add|remove|list|clear - Trigger phrases (Moderator+)
- /autoline add|remove|list - Line after every message (Admin+)
"""
from typing import TYPE_CHECKING, Optional

import discord
from discord import app_commands

if TYPE_CHECKING:
    from discord.ext import commands

    from ..services import Services


def register_moderation_commands(bot: "commands.Bot", services: "Services"):
    """Register moderation commands with the bot.

    Args:
        bot: The Discord bot instance
        services: Shared services
    """
    # Import dependencies
    from ..checks import LeveledGroup, require_level
    from ..config import logger
    from ..formatting import error_embed, info_embed, success_embed, warning_embed
    from ..permissions import PermissionLevel
    from ..security import sanitize_announcement

    # ============================================================================
    # SAY COMMAND
    # ============================================================================

    @require_level(services, PermissionLevel.MODERATOR)
    @bot.tree.command(name="say", description="Make the bot say something")
    @app_commands.describe(
        message="What the bot should say",
        channel="Channel to send to (default: current)",
        as_embed="Send inside an embed",
    )
    @app_commands.guild_only()
    async def say_command(
        interaction: discord.Interaction,
        message: str,
        channel: Optional[discord.TextChannel] = None,
        as_embed: bool = False,
    ):
        target = channel or interaction.channel
        text = sanitize_announcement(message.replace("\\n", "\n"))
        try:
            if as_embed:
                await target.send(embed=info_embed("📢 Announcement", text))
            else:
                await target.send(text, allowed_mentions=discord.AllowedMentions(everyone=False, roles=False))
        except discord.Forbidden:
            await interaction.response.send_message(embed=error_embed("Missing Permissions", f"I can't send messages in {target.mention}."), ephemeral=True)
            return

        logger.info(f"📢 /say by {interaction.user} in #{target}")
        await interaction.response.send_message(f"✅ Message sent to {target.mention}", ephemeral=True)

    # ============================================================================
    # AUTO REPLIES
    # ============================================================================

    autoreply_group = LeveledGroup(services, PermissionLevel.MODERATOR, name="autoreply", description="Manage auto replies")

    @autoreply_group.command(name="add", description="Add or replace an auto reply")
    @app_commands.describe(
        trigger="Phrase that triggers the reply",
        response="What the bot answers",
        mention="Mention the user in the response",
        reply="Reply to the message (default: true)",
        exact="Exact match only (default: false)",
    )
    async def autoreply_add(
        interaction: discord.Interaction,
        trigger: str,
        response: str,
        mention: bool = False,
        reply: bool = True,
        exact: bool = False,
    ):
        try:
            replaced = await services.autoreplies.add(trigger, response, mention=mention, reply=reply, exact=exact)
        except ValueError as e:
            await interaction.response.send_message(embed=error_embed("Invalid Auto Reply", str(e)), ephemeral=True)
            return

        embed = success_embed("Auto Reply Updated" if replaced else "Auto Reply Added")
        embed.add_field(name="Trigger", value=f"`{trigger[:200]}`", inline=True)
        embed.add_field(name="Match", value="Exact" if exact else "Contains", inline=True)
        embed.add_field(name="Response", value=response[:1024], inline=False)
        await interaction.response.send_message(embed=embed, ephemeral=True)

    @autoreply_group.command(name="remove", description="Remove an auto reply")
    async def autoreply_remove(interaction: discord.Interaction, trigger: str):
        if await services.autoreplies.remove(trigger):
            await interaction.response.send_message(embed=success_embed("Auto Reply Removed", f"`{trigger[:200]}`"), ephemeral=True)
        else:
            await interaction.response.send_message(embed=warning_embed("Not Found", f"No auto reply for `{trigger[:200]}`"), ephemeral=True)

    @autoreply_group.command(name="list", description="List all auto replies")
    async def autoreply_list(interaction: discord.Interaction):
        replies = await services.autoreplies.all()
        if not replies:
            await interaction.response.send_message(embed=info_embed("💬 Auto Replies", "No auto replies yet."), ephemeral=True)
            return

        lines = [
            f"• `{data.get('trigger', key)[:50]}` {'(exact)' if data.get('exact') else ''} → {data.get('response', '')[:60]} · {data.get('uses', 0)} uses"
            for key, data in replies.items()
        ]
        description = "\n".join(lines)
        if len(description) > 4000:
            description = description[:3997] + "..."
        await interaction.response.send_message(embed=info_embed(f"💬 Auto Replies ({len(replies)})", description), ephemeral=True)

    @autoreply_group.command(name="clear", description="Remove every auto reply")
    async def autoreply_clear(interaction: discord.Interaction):
        count = await services.autoreplies.clear()
        logger.info(f"🧹 {interaction.user} cleared {count} auto replies")
        await interaction.response.send_message(embed=success_embed("Auto Replies Cleared", f"Removed {count} auto replies."), ephemeral=True)

    bot.tree.add_command(autoreply_group)

    # ============================================================================
    # AUTO LINE
    # ============================================================================

    autoline_group = LeveledGroup(services, PermissionLevel.ADMIN, name="autoline", description="Post the line after every message in a channel")

    @autoline_group.command(name="add", description="Enable auto line in a channel")
    @app_commands.guild_only()
    async def autoline_add(interaction: discord.Interaction, channel: discord.TextChannel):
        if await services.autolines.add(channel.id, interaction.guild.id):
            await interaction.response.send_message(embed=success_embed("Auto Line Enabled", f"The line will follow every message in {channel.mention}."), ephemeral=True)
        else:
            await interaction.response.send_message(embed=warning_embed("Already Enabled", f"{channel.mention} already has auto line."), ephemeral=True)

    @autoline_group.command(name="remove", description="Disable auto line in a channel")
    async def autoline_remove(interaction: discord.Interaction, channel: discord.TextChannel):
        if await services.autolines.remove(channel.id):
            await interaction.response.send_message(embed=success_embed("Auto Line Disabled", channel.mention), ephemeral=True)
        else:
            await interaction.response.send_message(embed=warning_embed("Not Enabled", f"{channel.mention} doesn't have auto line."), ephemeral=True)

    @autoline_group.command(name="list", description="List auto line channels in this server")
    @app_commands.guild_only()
    async def autoline_list(interaction: discord.Interaction):
        channels = await services.autolines.for_guild(interaction.guild.id)
        if not channels:
            await interaction.response.send_message(embed=info_embed("📏 Auto Line Channels", "No channels have auto line."), ephemeral=True)
            return
        lines = [f"• <#{c['channel_id']}> · {c.get('message_count', 0)} lines" for c in channels]
        await interaction.response.send_message(embed=info_embed("📏 Auto Line Channels", "\n".join(lines)[:4000]), ephemeral=True)

    bot.tree.add_command(autoline_group)
