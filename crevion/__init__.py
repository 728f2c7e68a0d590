"""Crévion - Discord bot for the Crévion creators community

This package contains the core bot functionality split into logical modules.

Structure:
- config.py: Configuration and initialization
- storage.py: Named JSON documents with atomic updates
- permissions.py: Permission levels and resolution
- permission_manager.py: Stored permission document & mutations
- checks.py: Command permission checks and registry
- bot_settings.py: Prefix, status, features, channels
- autoreply.py / line.py: Auto replies, line image & auto line
- challenges.py / challenge_scheduler.py: Daily LeetCode challenge
- ai_providers.py: Gemini & Claude integration
- image_tools.py: Color palettes & background removal
- ui_components.py: Discord UI (buttons, selects, views)
- event_handlers.py: Discord event handlers
- commands/: Slash command implementations

Usage:
    from crevion.config import logger, BOT_TOKEN
    from crevion.services import build_services
    from crevion.event_handlers import register_events
    from crevion.commands import register_commands

    services = build_services()
    bot = commands.Bot(command_prefix=..., intents=intents, help_command=None)
    register_events(bot, services)
    register_commands(bot, services)
    bot.run(BOT_TOKEN)
"""

__version__ = "2.0.0"
