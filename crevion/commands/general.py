"""General Commands - Available to everyone

- /ping - Latency check
- /info - About the bot
- /stats - Bot statistics (Helper+)
- /help - Commands the caller can use
- /line - Post the line image (line access required)
- prefix ping / help
"""
import time
from typing import TYPE_CHECKING, Optional

import discord
from discord import app_commands

if TYPE_CHECKING:
    from discord.ext import commands

    from ..services import Services


def register_general_commands(bot: "commands.Bot", services: "Services"):
    """Register general commands with the bot.

    Args:
        bot: The Discord bot instance
        services: Shared services
    """
    # Import dependencies
    from ..checks import require_level
    from ..config import logger, BOT_NAME, BOT_VERSION
    from ..errors import ConfigUnavailable, LineFetchError
    from ..formatting import error_embed, info_embed, make_embed, warning_embed
    from ..line import describe_line_error, post_line
    from ..permissions import LEVEL_EMOJIS, Member, PermissionLevel, command_category
    from ..ui_components import HELP_CATEGORIES, HelpView

    started_at = time.time()

    def format_uptime(seconds: float) -> str:
        days, rem = divmod(int(seconds), 86400)
        hours, rem = divmod(rem, 3600)
        minutes, _ = divmod(rem, 60)
        return f"{days}d {hours}h {minutes}m"

    @require_level(services, PermissionLevel.EVERYONE)
    @bot.tree.command(name="ping", description="Check the bot's latency")
    async def ping_command(interaction: discord.Interaction):
        await interaction.response.send_message(f"🏓 Pong! `{round(bot.latency * 1000)}ms`")

    @require_level(services, PermissionLevel.EVERYONE)
    @bot.tree.command(name="info", description="About the bot")
    async def info_command(interaction: discord.Interaction):
        embed = make_embed(f"✨ {BOT_NAME}", "The assistant of the Crévion creators community.")
        embed.add_field(name="📦 Version", value=BOT_VERSION, inline=True)
        embed.add_field(name="🌐 Servers", value=str(len(bot.guilds)), inline=True)
        embed.add_field(name="⏱️ Uptime", value=format_uptime(time.time() - started_at), inline=True)
        embed.add_field(name="🤖 AI", value="✅ Available" if services.ai.is_available else "❌ Not configured", inline=True)
        if bot.user:
            embed.set_thumbnail(url=bot.user.display_avatar.url)
        await interaction.response.send_message(embed=embed)

    @require_level(services, PermissionLevel.HELPER)
    @bot.tree.command(name="stats", description="Bot statistics")
    async def stats_command(interaction: discord.Interaction):
        settings = await services.settings.load()
        stats = settings["stats"]
        autoreplies = await services.autoreplies.all()
        embed = info_embed("📊 Bot Statistics")
        embed.add_field(name="⌨️ Commands Run", value=str(stats.get("total_commands", 0)), inline=True)
        embed.add_field(name="⚠️ Errors", value=str(stats.get("total_errors", 0)), inline=True)
        embed.add_field(name="💬 Auto Replies", value=str(len(autoreplies)), inline=True)
        embed.add_field(name="🌐 Servers", value=str(len(bot.guilds)), inline=True)
        embed.add_field(name="👥 Users", value=str(sum(g.member_count or 0 for g in bot.guilds)), inline=True)
        embed.add_field(name="🏓 Latency", value=f"{round(bot.latency * 1000)}ms", inline=True)
        embed.add_field(name="⏱️ Uptime", value=format_uptime(time.time() - started_at), inline=False)
        await interaction.response.send_message(embed=embed, ephemeral=True)

    # ========================================================================
    # HELP
    # ========================================================================

    async def build_help(user):
        member = Member.from_discord(user)
        level = await services.permissions.get_user_level(member)
        try:
            overrides = (await services.permissions.get_config()).command_overrides
        except ConfigUnavailable:
            overrides = {}
        return level, overrides, services.registry.by_category(overrides, max_level=level)

    @require_level(services, PermissionLevel.EVERYONE)
    @bot.tree.command(name="help", description="Show the commands you can use")
    @app_commands.describe(command="Show details for one command")
    async def help_command(interaction: discord.Interaction, command: Optional[str] = None):
        level, overrides, categories = await build_help(interaction.user)

        if command:
            parts = command.strip().lstrip("/").split()
            name = parts[0].lower() if parts else ""
            if name not in services.registry:
                await interaction.response.send_message(embed=error_embed("Unknown Command", f"`/{name}` does not exist."), ephemeral=True)
                return
            required = overrides.get(name, services.registry.descriptor(name).default_level)
            embed = info_embed(f"/{name}")
            embed.add_field(
                name="Required Level",
                value=f"{LEVEL_EMOJIS[required]} {required.display_name} {'✅' if level >= required else '❌'}",
                inline=True,
            )
            embed.add_field(name="Category", value=HELP_CATEGORIES[command_category(required)][0], inline=True)
            await interaction.response.send_message(embed=embed, ephemeral=True)
            return

        embed = make_embed(f"📚 {BOT_NAME} Help", f"Your level: {LEVEL_EMOJIS[level]} **{level.display_name}**")
        for key, (title, _) in HELP_CATEGORIES.items():
            if categories.get(key):
                embed.add_field(name=title, value=", ".join(f"`/{n}`" for n in categories[key])[:1024], inline=False)
        await interaction.response.send_message(embed=embed, view=HelpView(categories), ephemeral=True)

    # ========================================================================
    # LINE
    # ========================================================================

    @require_level(services, PermissionLevel.EVERYONE)
    @bot.tree.command(name="line", description="Post the line image")
    @app_commands.guild_only()
    async def line_command(interaction: discord.Interaction):
        if not await services.permissions.can_use_line(Member.from_discord(interaction.user)):
            await interaction.response.send_message(embed=error_embed("No Line Access", "You don't have access to the line."), ephemeral=True)
            return

        url = await services.settings.get_line_url()
        if not url:
            await interaction.response.send_message(
                embed=warning_embed("No Line Set", "An owner can set one with `/line-admin set <url>`"),
                ephemeral=True,
            )
            return

        await interaction.response.defer(ephemeral=True)
        try:
            await post_line(interaction.channel, url)
        except LineFetchError as e:
            logger.error(f"📏 /line failed for {interaction.user}: {e}")
            title, details = describe_line_error(e)
            await interaction.followup.send(embed=error_embed(title.removeprefix("❌ "), details), ephemeral=True)
            return
        await interaction.followup.send("✅ Line sent", ephemeral=True)

    # ========================================================================
    # PREFIX COMMANDS
    # ========================================================================

    @require_level(services, PermissionLevel.EVERYONE)
    @bot.command(name="ping")
    async def ping_prefix(ctx: "commands.Context"):
        await ctx.reply(f"🏓 Pong! `{round(bot.latency * 1000)}ms`", mention_author=False)

    @require_level(services, PermissionLevel.EVERYONE)
    @bot.command(name="help")
    async def help_prefix(ctx: "commands.Context"):
        level, _, categories = await build_help(ctx.author)
        embed = make_embed(f"📚 {BOT_NAME} Help", f"Your level: {LEVEL_EMOJIS[level]} **{level.display_name}**\nUse `/help` for details.")
        for key in HELP_CATEGORIES:
            if categories.get(key):
                embed.add_field(name=HELP_CATEGORIES[key][0], value=", ".join(f"`/{n}`" for n in categories[key])[:1024], inline=False)
        await ctx.reply(embed=embed, mention_author=False)

    logger.info("📚 General commands registered")