"""AI Commands - Gemini & Claude powered assistant

- /ai ask - Ask the assistant (keeps per-user context)
- /ai clear - Forget your conversation
"""
import io
from typing import TYPE_CHECKING

import discord
from discord import app_commands

if TYPE_CHECKING:
    from discord.ext import commands

    from ..services import Services

from ..config import logger, ai_rate_limiter
from ..checks import LeveledGroup
from ..errors import CrevionError
from ..permissions import PermissionLevel
from ..ui_components import AIReplyView


def register_ai_commands(bot: "commands.Bot", services: "Services"):
    """Register AI commands with the bot.

    Args:
        bot: The Discord bot instance
        services: Shared services
    """
    ai_group = LeveledGroup(services, PermissionLevel.EVERYONE, name="ai", description="Talk to the AI assistant")

    # ============================================================================
    # ASK COMMAND
    # ============================================================================

    @ai_group.command(name="ask", description="Ask the AI assistant a question")
    @app_commands.describe(question="Your question", task="Kind of help you want")
    @app_commands.choices(task=[
        app_commands.Choice(name="General", value="general"),
        app_commands.Choice(name="Code", value="code"),
    ])
    async def ask_command(interaction: discord.Interaction, question: str, task: str = None):
        """Ask the assistant, continuing the user's conversation."""
        if not services.ai.is_available:
            await interaction.response.send_message("❌ The AI assistant is not configured.", ephemeral=True)
            return

        if ai_rate_limiter.is_rate_limited(interaction.user.id):
            await interaction.response.send_message("⏰ **Slow down!** Please wait a few seconds between questions.", ephemeral=True)
            return

        # Check prompt length
        if len(question) > 2000:
            await interaction.response.send_message("❌ Your question is too long! Please keep it under 2000 characters.", ephemeral=True)
            return

        await interaction.response.defer()
        try:
            reply = await services.ai.ask(interaction.user.id, question, task)
        except CrevionError as e:
            await interaction.followup.send(e.user_message)
            return

        view = AIReplyView(services, interaction.user.id)
        logger.info(f"🤖 /ai ask by {interaction.user} answered via {reply.provider}")

        # If response is too long for Discord, send as text file
        if len(reply.text) > 2000:
            file = discord.File(io.BytesIO(reply.text.encode("utf-8")), filename="response.txt")
            await interaction.followup.send("Response was too long, sent as file:", file=file, view=view)
        else:
            await interaction.followup.send(reply.text, view=view)

    # ============================================================================
    # CLEAR COMMAND
    # ============================================================================

    @ai_group.command(name="clear", description="Forget your conversation with the assistant")
    async def clear_command(interaction: discord.Interaction):
        turns = services.ai.history_length(interaction.user.id)
        if services.ai.clear(interaction.user.id):
            await interaction.response.send_message(f"🧹 Cleared {turns} exchange(s) from your conversation.", ephemeral=True)
        else:
            await interaction.response.send_message("ℹ️ You don't have a conversation to clear.", ephemeral=True)

    bot.tree.add_command(ai_group)
