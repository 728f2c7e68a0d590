#!/usr/bin/env python3
"""Crévion - Main Entry Point

Discord bot for the Crévion creators community: role based permissions,
line image, auto replies, daily coding challenges, AI assistant and
image tools.
"""
import asyncio

import discord
from discord.ext import commands

from crevion.config import BOT_TOKEN, DEFAULT_PREFIX, logger, intents
from crevion.errors import ConfigUnavailable
from crevion.event_handlers import register_events
from crevion.commands import register_commands
from crevion.services import build_services


def make_prefix_getter(services):
    """Read the prefix from settings on every message so changes apply at once."""
    async def get_prefix(bot, message):
        try:
            prefix = await services.settings.get_prefix()
        except ConfigUnavailable:
            prefix = DEFAULT_PREFIX
        return commands.when_mentioned_or(prefix)(bot, message)

    return get_prefix


def create_bot():
    services = build_services()
    bot = commands.Bot(
        command_prefix=make_prefix_getter(services),
        intents=intents,
        help_command=None,
    )

    # Register event handlers
    register_events(bot, services)

    # Register commands
    register_commands(bot, services)
    return bot


def main():
    """Main entry point for the bot."""
    if not BOT_TOKEN:
        logger.error("❌ BOT_TOKEN not found in .env file!")
        return

    logger.info("🚀 Starting Crévion...")

    # Add retry logic with EXPONENTIAL BACKOFF to prevent Cloudflare rate limiting
    max_retries = 5
    retry_count = 0

    while retry_count < max_retries:
        try:
            # A fresh bot per attempt; a closed client can't be restarted
            create_bot().run(BOT_TOKEN, reconnect=True)
            break  # Exit loop if bot stops gracefully
        except discord.LoginFailure:
            logger.error("❌ INVALID TOKEN - Bot token may be banned or revoked!")
            break  # Don't retry on auth failures
        except discord.HTTPException as e:
            retry_count += 1
            if retry_count >= max_retries:
                logger.error(f"❌ Failed after {max_retries} retries: {e}")
                break
            if e.status == 429 or "cloudflare" in str(e).lower():
                wait_time = 2 ** retry_count  # Exponential backoff: 2, 4, 8, 16 seconds
                logger.warning(f"⚠️ Rate limited by Discord/Cloudflare! Retry {retry_count}/{max_retries} in {wait_time}s...")
            else:
                wait_time = 5
                logger.error(f"⚠️ HTTP Error: {e} - Retrying {retry_count}/{max_retries}...")
            asyncio.run(asyncio.sleep(wait_time))
        except Exception as e:
            logger.error(f"❌ Unexpected error: {e}")
            retry_count += 1
            if retry_count < max_retries:
                logger.info(f"Retrying in 10 seconds... ({retry_count}/{max_retries})")
                asyncio.run(asyncio.sleep(10))
            else:
                logger.error(f"❌ Failed after {max_retries} retries")
                break


if __name__ == "__main__":
    main()
