"""Owner Commands - Bot configuration

- /config view|set-prefix|set-status|add-owner|remove-owner|feature|set-channel
- /line-admin set|clear|add-role|remove-role|info
- /challenge post|toggle|status
"""
from datetime import datetime
from typing import TYPE_CHECKING, Optional

import discord
from discord import app_commands

if TYPE_CHECKING:
    from discord.ext import commands

    from ..services import Services

from ..config import DEFAULT_CHANNELS, DEFAULT_FEATURES

FEATURE_LABELS = {
    "ai_assistant": "🤖 AI Assistant",
    "color_extractor": "🎨 Color Extractor",
    "background_remover": "🖼️ Background Remover",
    "problem_solving": "🧩 Daily Challenge",
    "auto_replies": "💬 Auto Replies",
    "auto_line": "📏 Auto Line",
}

FEATURE_CHOICES = [app_commands.Choice(name=FEATURE_LABELS[key], value=key) for key in DEFAULT_FEATURES]
CHANNEL_CHOICES = [app_commands.Choice(name=key.replace("_", " ").title(), value=key) for key in DEFAULT_CHANNELS]
STATUS_CHOICES = [
    app_commands.Choice(name="🟢 Online", value="online"),
    app_commands.Choice(name="🌙 Idle", value="idle"),
    app_commands.Choice(name="⛔ Do Not Disturb", value="dnd"),
    app_commands.Choice(name="⚫ Invisible", value="invisible"),
]


def register_owner_commands(bot: "commands.Bot", services: "Services"):
    """Register owner commands with the bot.

    Args:
        bot: The Discord bot instance
        services: Shared services
    """
    # Import dependencies
    from ..challenges import local_now
    from ..checks import LeveledGroup
    from ..config import logger, BOT_NAME, CHALLENGE_HOUR, CHALLENGE_TIMEZONE
    from ..errors import LineFetchError
    from ..formatting import error_embed, format_ids, info_embed, make_embed, success_embed, warning_embed
    from ..line import describe_line_error, fetch_line_image
    from ..permissions import PermissionLevel

    # ============================================================================
    # /config
    # ============================================================================

    config_group = LeveledGroup(services, PermissionLevel.OWNER, name="config", description="Configure the bot (Owner only)")

    @config_group.command(name="view", description="Show the current bot configuration")
    async def config_view(interaction: discord.Interaction):
        settings = await services.settings.load()
        permissions = await services.permissions.get_config()

        embed = make_embed(f"⚙️ {BOT_NAME} Configuration")
        embed.add_field(name="Prefix", value=f"`{settings['prefix']}`", inline=True)
        embed.add_field(name="Status", value=settings["status"], inline=True)
        embed.add_field(name="👑 Owners", value=format_ids(permissions.owners, "user"), inline=False)
        embed.add_field(
            name="Features",
            value="\n".join(
                f"{'✅' if settings['features'].get(key) else '❌'} {label}"
                for key, label in FEATURE_LABELS.items()
            ),
            inline=True,
        )
        embed.add_field(
            name="Channels",
            value="\n".join(
                f"{key}: {f'<#{cid}>' if cid else '*not set*'}"
                for key, cid in settings["channels"].items()
            ),
            inline=True,
        )
        await interaction.response.send_message(embed=embed, ephemeral=True)

    @config_group.command(name="set-prefix", description="Change the prefix for text commands")
    async def config_set_prefix(interaction: discord.Interaction, prefix: str):
        try:
            await services.settings.set_prefix(prefix)
        except ValueError as e:
            await interaction.response.send_message(embed=error_embed("Invalid Prefix", str(e)), ephemeral=True)
            return
        await interaction.response.send_message(embed=success_embed("Prefix Updated", f"New prefix: `{prefix.strip()}`"), ephemeral=True)

    @config_group.command(name="set-status", description="Change the bot's presence status")
    @app_commands.choices(status=STATUS_CHOICES)
    async def config_set_status(interaction: discord.Interaction, status: str):
        await services.settings.set_status(status)
        await bot.change_presence(status=discord.Status(status), activity=discord.Game(name=f"{BOT_NAME} | /help"))
        await interaction.response.send_message(embed=success_embed("Status Updated", status), ephemeral=True)

    @config_group.command(name="add-owner", description="Make a user a bot owner")
    async def config_add_owner(interaction: discord.Interaction, user: discord.User):
        status = await services.permissions.add_owner(user.id)
        if status.changed:
            logger.info(f"👑 {interaction.user} added owner {user} ({user.id})")
            await interaction.response.send_message(embed=success_embed("Owner Added", user.mention), ephemeral=True)
        else:
            await interaction.response.send_message(embed=warning_embed("Already an Owner", user.mention), ephemeral=True)

    @config_group.command(name="remove-owner", description="Remove a bot owner")
    async def config_remove_owner(interaction: discord.Interaction, user: discord.User):
        # LastOwnerRemoval is reported by the tree error handler
        status = await services.permissions.remove_owner(user.id, actor_id=interaction.user.id)
        if status.changed:
            await interaction.response.send_message(embed=success_embed("Owner Removed", user.mention), ephemeral=True)
        else:
            await interaction.response.send_message(embed=warning_embed("Not an Owner", user.mention), ephemeral=True)

    @config_group.command(name="feature", description="Enable or disable a feature")
    @app_commands.choices(feature=FEATURE_CHOICES)
    async def config_feature(interaction: discord.Interaction, feature: str, enabled: bool):
        await services.settings.set_feature(feature, enabled)
        state = "enabled" if enabled else "disabled"
        await interaction.response.send_message(embed=success_embed(f"{FEATURE_LABELS[feature]} {state}"), ephemeral=True)

    @config_group.command(name="set-channel", description="Bind a feature to a channel (leave empty to unset)")
    @app_commands.choices(slot=CHANNEL_CHOICES)
    async def config_set_channel(
        interaction: discord.Interaction,
        slot: str,
        channel: Optional[discord.abc.GuildChannel] = None,
    ):
        await services.settings.set_channel(slot, channel.id if channel else None)
        value = channel.mention if channel else "*not set*"
        await interaction.response.send_message(embed=success_embed("Channel Updated", f"{slot}: {value}"), ephemeral=True)

    bot.tree.add_command(config_group)

    # ============================================================================
    # /line-admin
    # ============================================================================

    line_group = LeveledGroup(services, PermissionLevel.OWNER, name="line-admin", description="Manage the line image (Owner only)")

    @line_group.command(name="set", description="Set the line image URL")
    async def line_set(interaction: discord.Interaction, url: str):
        await interaction.response.defer(ephemeral=True)
        url = url.strip()
        try:
            await services.settings.set_line_url(url, interaction.user.id)
        except ValueError as e:
            await interaction.followup.send(embed=error_embed("Invalid URL", str(e)), ephemeral=True)
            return

        # Saved either way; warn if the image can't be fetched right now
        try:
            await fetch_line_image(url)
        except LineFetchError as e:
            title, details = describe_line_error(e)
            await interaction.followup.send(embed=warning_embed("Line Saved With a Problem", f"**{title}**\n{details}"), ephemeral=True)
            return

        embed = success_embed("Line Updated")
        embed.set_image(url=url)
        await interaction.followup.send(embed=embed, ephemeral=True)

    @line_group.command(name="clear", description="Remove the line image")
    async def line_clear(interaction: discord.Interaction):
        await services.settings.set_line_url(None, interaction.user.id)
        await interaction.response.send_message(embed=success_embed("Line Cleared"), ephemeral=True)

    @line_group.command(name="add-role", description="Let a role use the line trigger")
    async def line_add_role(interaction: discord.Interaction, role: discord.Role):
        status = await services.permissions.add_line_access_role(role.id)
        if status.changed:
            await interaction.response.send_message(embed=success_embed("Line Access Granted", role.mention), ephemeral=True)
        else:
            await interaction.response.send_message(embed=warning_embed("Already Has Access", role.mention), ephemeral=True)

    @line_group.command(name="remove-role", description="Stop a role from using the line trigger")
    async def line_remove_role(interaction: discord.Interaction, role: discord.Role):
        status = await services.permissions.remove_line_access_role(role.id)
        if status.changed:
            await interaction.response.send_message(embed=success_embed("Line Access Removed", role.mention), ephemeral=True)
        else:
            await interaction.response.send_message(embed=warning_embed("No Line Access", f"{role.mention} didn't have access."), ephemeral=True)

    @line_group.command(name="info", description="Show the line image and who can use it")
    async def line_info(interaction: discord.Interaction):
        settings = await services.settings.load()
        permissions = await services.permissions.get_config()
        url = await services.settings.get_line_url()

        embed = info_embed("📏 Line")
        embed.add_field(name="URL", value=f"`{url}`" if url else "*not set*", inline=False)
        updated_by = settings["line"].get("updated_by")
        if updated_by:
            embed.add_field(name="Updated By", value=f"<@{updated_by}>", inline=True)
        embed.add_field(
            name="Access",
            value=format_ids(permissions.line_access_roles) if permissions.line_access_roles else "*Owners only*",
            inline=False,
        )
        if url:
            embed.set_image(url=url)
        await interaction.response.send_message(embed=embed, ephemeral=True)

    bot.tree.add_command(line_group)

    # ============================================================================
    # /challenge
    # ============================================================================

    challenge_group = LeveledGroup(services, PermissionLevel.OWNER, name="challenge", description="Daily coding challenge (Owner only)")

    @challenge_group.command(name="post", description="Post today's challenge now")
    async def challenge_post(interaction: discord.Interaction):
        await interaction.response.defer(ephemeral=True)
        thread = await services.scheduler.post_daily_challenge(force=True)
        if thread is None:
            await interaction.followup.send(
                embed=error_embed("Not Posted", "Set a forum channel with `/config set-channel problem_solving`."),
                ephemeral=True,
            )
            return
        await interaction.followup.send(embed=success_embed("Challenge Posted", thread.mention), ephemeral=True)

    @challenge_group.command(name="toggle", description="Turn the daily challenge on or off")
    async def challenge_toggle(interaction: discord.Interaction):
        enabled = not await services.settings.is_enabled("problem_solving")
        await services.settings.set_feature("problem_solving", enabled)
        await interaction.response.send_message(
            embed=success_embed(f"Daily challenge {'enabled' if enabled else 'disabled'}"),
            ephemeral=True,
        )

    @challenge_group.command(name="status", description="Show the challenge schedule and last post")
    async def challenge_status(interaction: discord.Interaction):
        enabled = await services.settings.is_enabled("problem_solving")
        channel_id = await services.settings.get_channel("problem_solving")
        last = await services.challenges.last_post()

        embed = info_embed("🧩 Daily Challenge")
        embed.add_field(name="Status", value="✅ Enabled" if enabled else "❌ Disabled", inline=True)
        embed.add_field(name="Schedule", value=f"{CHALLENGE_HOUR:02d}:00 {CHALLENGE_TIMEZONE}", inline=True)
        embed.add_field(name="Forum", value=f"<#{channel_id}>" if channel_id else "*not set*", inline=True)
        embed.add_field(name="Local Time", value=local_now().strftime("%Y-%m-%d %H:%M"), inline=True)
        if last:
            posted = datetime.fromtimestamp(last["posted_at"]).strftime("%Y-%m-%d %H:%M") if last.get("posted_at") else last["date"]
            embed.add_field(
                name="Last Post",
                value=f"[{last['title']}]({last['url']}) · {last['difficulty']} · {posted}",
                inline=False,
            )
        await interaction.response.send_message(embed=embed, ephemeral=True)

    bot.tree.add_command(challenge_group)
