"""Command modules for Crévion

Contains all slash command implementations organized by category.

Categories:
- general.py: /ping, /info, /stats, /help, /line and prefix commands
- ai.py: /ai ask, /ai clear
- moderation.py: /say, /autoreply, /autoline
- permissions.py: /permissions
- owner.py: /config, /line-admin, /challenge
- voice.py: /voice
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from discord.ext import commands

    from ..services import Services

def register_commands(bot: "commands.Bot", services: "Services"):
    """Register all commands with the bot.

    Args:
        bot: The Discord bot instance
        services: Shared services the commands read and edit
    """
    # Import all command registration functions
    from .general import register_general_commands
    from .ai import register_ai_commands
    from .moderation import register_moderation_commands
    from .permissions import register_permission_commands
    from .owner import register_owner_commands
    from .voice import register_voice_commands

    # Register all command categories
    register_general_commands(bot, services)
    register_ai_commands(bot, services)
    register_moderation_commands(bot, services)
    register_permission_commands(bot, services)
    register_owner_commands(bot, services)
    register_voice_commands(bot, services)
