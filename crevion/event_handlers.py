"""Event handlers for Crévion

This module contains all Discord event handlers:
- on_ready: Command sync, presence, challenge scheduler, default voice channel
- on_message: Line trigger, auto line, auto replies, feature channels
- tree.error / on_command_error: Permission denials and failures
- on_app_command_completion: Command statistics
- on_voice_state_update: Rejoin voice after a dropped connection
"""
import io
from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from .errors import CrevionError, LineFetchError, RemoveBgError

if TYPE_CHECKING:
    from .services import Services


def register_events(bot: commands.Bot, services: "Services"):
    """Register all event handlers with the bot.

    Args:
        bot: The Discord bot instance
        services: Shared services (storage, permissions, settings...)
    """
    # Import dependencies here to avoid circular imports
    from .config import (
        logger,
        ai_rate_limiter,
        image_rate_limiter,
        BOT_NAME,
        REMOVE_BG_API_KEY,
    )
    from .ai_providers import split_message
    from .challenge_scheduler import ChallengeScheduler
    from .checks import PermissionDenied, PrefixPermissionDenied
    from .formatting import error_embed, make_embed, permission_denied_embed, success_embed, warning_embed
    from .image_tools import brightness_level, extract_palette, palette_bar, remove_background, render_palette_image
    from .line import AUTO_FETCH_TIMEOUT, describe_line_error, is_line_trigger, post_line
    from .permissions import Member
    from .ui_components import AIReplyView, ChallengeView
    from .voice import VoicePresence

    scheduler = ChallengeScheduler(bot, services)
    services.scheduler = scheduler
    voice = VoicePresence(bot, services)
    services.voice = voice

    @bot.event
    async def on_ready():
        """Bot startup handler."""
        logger.info("✅ Logged in as %s!", bot.user)

        # Sync slash commands
        try:
            synced = await bot.tree.sync()
            logger.info("🔄 Synced %s slash commands", len(synced))
        except Exception as e:
            logger.error("Failed to sync commands: %s", e)

        try:
            status = await services.settings.get_status()
            await bot.change_presence(status=discord.Status(status), activity=discord.Game(name=f"{BOT_NAME} | /help"))
        except CrevionError as e:
            logger.warning(f"Could not apply stored status: {e}")

        if not scheduler.check_schedule.is_running():
            # Hint buttons on older challenge posts keep working after restarts
            bot.add_view(ChallengeView(services))
            scheduler.start()

        await voice.auto_join()

    # ========================================================================
    # MESSAGE PIPELINE
    # ========================================================================

    @bot.event
    async def on_message(message: discord.Message):
        """Route a message through line, auto line, auto replies and feature channels."""
        if message.author.bot:
            return

        try:
            if message.guild is not None:
                if await handle_line_trigger(message):
                    return
                await handle_auto_line(message)
                if await handle_auto_reply(message):
                    return
                if await handle_feature_channel(message):
                    return
        except CrevionError as e:
            logger.error(f"Error handling message {message.id}: {e}")
        except Exception as e:
            logger.error(f"Unexpected error handling message {message.id}: {e}", exc_info=True)

        await bot.process_commands(message)

    async def handle_line_trigger(message: discord.Message) -> bool:
        """Post the line image for ``line`` / ``خط``. Returns True if handled."""
        if not is_line_trigger(message.content):
            return False

        member = Member.from_discord(message.author)
        if not await services.permissions.can_use_line(member):
            # Members without line access are ignored silently
            logger.info(f"📏 {message.author} tried to use line without access")
            return True

        url = await services.settings.get_line_url()
        if not url:
            await message.reply(
                embed=warning_embed("No Line Set", "No line image has been set yet.\n\nAn owner can set one with `/line-admin set <url>`"),
                mention_author=False,
            )
            return True

        try:
            await post_line(message.channel, url)
        except LineFetchError as e:
            logger.error(f"📏 Line fetch error for {message.author}: {e}")
            if await services.permissions.is_owner(message.author.id):
                title, details = describe_line_error(e)
                embed = error_embed(title.removeprefix("❌ "), f"{details}\n\n**Current link:**\n`{url}`")
                embed.set_footer(text=f"{BOT_NAME} • Only owners see this message")
                await message.reply(embed=embed, mention_author=False)
            return True

        try:
            await message.delete()
        except discord.HTTPException:
            logger.debug("Could not delete line trigger message %s", message.id)
        logger.info(f"📏 Line sent by {message.author}")
        return True

    async def handle_auto_line(message: discord.Message):
        if not await services.settings.is_enabled("auto_line"):
            return
        if not await services.autolines.is_enabled(message.channel.id):
            return
        url = await services.settings.get_line_url()
        if not url:
            return
        try:
            await post_line(message.channel, url, AUTO_FETCH_TIMEOUT)
        except LineFetchError as e:
            logger.warning(f"Auto line failed in {message.channel.id}: {e}")
            return
        await services.autolines.increment(message.channel.id)

    async def handle_auto_reply(message: discord.Message) -> bool:
        if not await services.settings.is_enabled("auto_replies"):
            return False
        matched = await services.autoreplies.match(message.content)
        if not matched:
            return False

        content = matched["response"]
        if matched.get("mention"):
            content = f"{message.author.mention} {content}"
        if matched.get("reply", True):
            await message.reply(content, mention_author=bool(matched.get("mention")))
        else:
            await message.channel.send(content)
        return True

    async def handle_feature_channel(message: discord.Message) -> bool:
        feature = await services.settings.feature_for_channel(message.channel.id)
        if feature == "ai_assistant":
            await handle_ai_message(message)
            return True
        if feature == "color_extractor":
            return await handle_color_message(message)
        if feature == "background_remover":
            return await handle_background_message(message)
        return False

    # ========================================================================
    # FEATURE CHANNELS
    # ========================================================================

    async def handle_ai_message(message: discord.Message):
        content = message.content.strip()
        if not content:
            return
        if not services.ai.is_available:
            await message.reply("❌ The AI assistant is not configured.", mention_author=False)
            return
        if ai_rate_limiter.is_rate_limited(message.author.id):
            await message.reply("⏳ Slow down! Try again in a few seconds.", mention_author=False)
            return

        async with message.channel.typing():
            try:
                reply = await services.ai.ask(message.author.id, content)
            except CrevionError as e:
                await message.reply(e.user_message, mention_author=False)
                return

        chunks = split_message(reply.text)
        for i, chunk in enumerate(chunks):
            view = AIReplyView(services, message.author.id) if i == len(chunks) - 1 else None
            if i == 0:
                await message.reply(chunk, view=view, mention_author=False)
            else:
                await message.channel.send(chunk, view=view)
        logger.info(f"🤖 AI reply for {message.author} via {reply.provider}")

    def first_image(message: discord.Message):
        for attachment in message.attachments:
            if attachment.content_type and attachment.content_type.startswith("image/"):
                return attachment
        return None

    async def handle_color_message(message: discord.Message) -> bool:
        image = first_image(message)
        if image is None:
            return False
        if image_rate_limiter.is_rate_limited(message.author.id):
            await message.reply("⏳ Please wait a minute before sending another image.", mention_author=False)
            return True

        logger.info(f"🎨 Extracting palette for {message.author}: {image.filename}")
        try:
            swatches = extract_palette(await image.read())
            palette_png = render_palette_image(swatches)
        except (ValueError, discord.HTTPException) as e:
            embed = error_embed("Extraction Failed", f"Could not analyze colors.\n\n**Error:** {e}")
            embed.add_field(name="💡 Tips", value="• Make sure image is accessible\n• Try PNG or JPG format\n• Image should be under 8MB", inline=False)
            await message.reply(embed=embed, mention_author=False)
            return True

        embed = make_embed(
            "🎨 Color Palette Analysis",
            f"✨ Extracted **{len(swatches)}** dominant colors from your image",
            footer="Color Analysis",
        )
        embed.set_author(name=f"{message.author.display_name}'s Color Palette", icon_url=message.author.display_avatar.url)
        details = "\n".join(
            f"{i + 1}. {s.name} `{s.hex}` {palette_bar(s.percentage)} {s.percentage}%"
            for i, s in enumerate(swatches)
        )
        embed.add_field(name="🎯 Dominant Colors", value=details[:1024], inline=False)
        embed.add_field(name="📋 Quick Copy (HEX)", value=" • ".join(f"`{s.hex}`" for s in swatches), inline=False)
        embed.add_field(
            name="📊 Palette Info",
            value=f"**Dominant:** {swatches[0].name} ({swatches[0].percentage}%)\n**Brightness:** {brightness_level(swatches[0].brightness)}",
            inline=False,
        )
        embed.set_image(url="attachment://color-palette.png")
        await message.reply(embed=embed, file=discord.File(io.BytesIO(palette_png), filename="color-palette.png"), mention_author=False)
        return True

    async def handle_background_message(message: discord.Message) -> bool:
        image = first_image(message)
        if image is None:
            return False
        if not REMOVE_BG_API_KEY:
            await message.reply(
                embed=warning_embed("Service Not Configured", "Background removal service is not configured. Please contact the bot owner."),
                mention_author=False,
            )
            return True
        if image_rate_limiter.is_rate_limited(message.author.id):
            await message.reply("⏳ Please wait a minute before sending another image.", mention_author=False)
            return True

        async with message.channel.typing():
            try:
                result = await remove_background(image.url, REMOVE_BG_API_KEY)
            except RemoveBgError as e:
                await message.reply(embed=error_embed("Processing Failed", e.user_message), mention_author=False)
                return True

        embed = success_embed("Background Removed Successfully", "Your image is ready! The background has been removed.")
        embed.add_field(name="📥 Original", value=f"[View Original]({image.url})", inline=True)
        embed.add_field(name="📤 Result", value="See attachment below", inline=True)
        embed.set_image(url="attachment://no-background.png")
        await message.reply(embed=embed, file=discord.File(io.BytesIO(result), filename="no-background.png"), mention_author=False)
        logger.info(f"🖼️ Background removed for {message.author}")
        return True

    # ========================================================================
    # ERRORS & STATS
    # ========================================================================

    async def send_interaction_error(interaction: discord.Interaction, embed: discord.Embed):
        if interaction.response.is_done():
            await interaction.followup.send(embed=embed, ephemeral=True)
        else:
            await interaction.response.send_message(embed=embed, ephemeral=True)

    async def record_error():
        try:
            await services.settings.increment_stat("total_errors")
        except CrevionError as e:
            logger.warning(f"Could not record error stats: {e}")

    @bot.tree.error
    async def on_app_command_error(interaction: discord.Interaction, error: app_commands.AppCommandError):
        original = getattr(error, "original", error)

        if isinstance(error, PermissionDenied):
            await send_interaction_error(interaction, permission_denied_embed(error.required, error.current))
            return
        if isinstance(original, CrevionError):
            await send_interaction_error(interaction, error_embed("Error", original.user_message))
            return
        if isinstance(error, app_commands.NoPrivateMessage):
            await send_interaction_error(interaction, error_embed("Server Only", "This command can only be used in a server."))
            return

        logger.error(f"Error in /{interaction.command.qualified_name if interaction.command else '?'}: {original}", exc_info=original)
        await record_error()
        await send_interaction_error(interaction, error_embed("Command Failed", "An unexpected error occurred. Please try again."))

    @bot.event
    async def on_command_error(ctx: commands.Context, error: commands.CommandError):
        if isinstance(error, commands.CommandNotFound):
            return
        if isinstance(error, PrefixPermissionDenied):
            await ctx.reply(embed=permission_denied_embed(error.required, error.current), mention_author=False)
            return

        original = getattr(error, "original", error)
        if isinstance(original, CrevionError):
            await ctx.reply(embed=error_embed("Error", original.user_message), mention_author=False)
            return

        logger.error(f"Error in prefix command {ctx.command}: {original}", exc_info=original)
        await record_error()

    @bot.event
    async def on_app_command_completion(interaction: discord.Interaction, command):
        try:
            await services.settings.increment_stat("total_commands")
        except CrevionError as e:
            logger.warning(f"Could not record command stats: {e}")

    @bot.event
    async def on_command_completion(ctx: commands.Context):
        try:
            await services.settings.increment_stat("total_commands")
        except CrevionError as e:
            logger.warning(f"Could not record command stats: {e}")

    # ========================================================================
    # VOICE
    # ========================================================================

    @bot.event
    async def on_voice_state_update(member: discord.Member, before: discord.VoiceState, after: discord.VoiceState):
        if bot.user is None or member.id != bot.user.id:
            return
        if before.channel is not None and after.channel is None:
            await voice.on_disconnected(member.guild.id)
