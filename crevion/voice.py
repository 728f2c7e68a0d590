"""Voice Presence - Keep the bot sitting in a voice channel

The default channel lives in the settings document and is joined on
startup. The bot connects muted and deafened; nothing is ever played.
If Discord drops the connection the bot rejoins the default channel after
a short delay, unless an owner told it to leave.
"""
import asyncio
from typing import Optional

import discord

from .config import logger
from .errors import ConfigUnavailable

REJOIN_DELAY = 5


def is_voice_channel(channel) -> bool:
    return isinstance(channel, discord.VoiceChannel)


class VoicePresence:
    """Join, leave and rejoin voice channels for the bot."""

    def __init__(self, bot, services):
        self.bot = bot
        self.services = services
        # Guilds an owner disconnected with /voice leave
        self.left_on_purpose = set()

    async def join(self, channel):
        """Connect to ``channel``, moving there if already connected in the guild."""
        self.left_on_purpose.discard(channel.guild.id)

        voice_client = channel.guild.voice_client
        if voice_client is not None and voice_client.is_connected():
            if voice_client.channel.id != channel.id:
                await voice_client.move_to(channel)
                logger.info(f"🎤 Moved to voice channel: {channel.name}")
            return voice_client

        voice_client = await channel.connect(self_deaf=True, self_mute=True)
        logger.info(f"🎤 Joined voice channel: {channel.name}")
        return voice_client

    async def leave(self, guild) -> bool:
        """Disconnect from ``guild``. Returns False if not connected."""
        voice_client = guild.voice_client
        if voice_client is None:
            return False
        self.left_on_purpose.add(guild.id)
        await voice_client.disconnect()
        logger.info(f"🎤 Left voice in {guild.name}")
        return True

    async def default_channel(self) -> Optional[discord.VoiceChannel]:
        """The stored default voice channel if it still exists."""
        channel_id = await self.services.settings.get_default_voice()
        if not channel_id:
            return None

        channel = self.bot.get_channel(int(channel_id))
        if channel is None:
            try:
                channel = await self.bot.fetch_channel(int(channel_id))
            except discord.HTTPException as e:
                logger.warning(f"⚠️ Default voice channel {channel_id} not found: {e}")
                return None
        if not is_voice_channel(channel):
            logger.warning("⚠️ Default voice channel %s is not a voice channel", channel_id)
            return None
        return channel

    async def auto_join(self, guild_id=None):
        """Join the default channel. With ``guild_id`` only if it is in that guild."""
        try:
            channel = await self.default_channel()
        except ConfigUnavailable as e:
            logger.warning(f"Could not read the default voice channel: {e}")
            return None

        if channel is None:
            logger.info("ℹ️ No default voice channel set, skipping auto-join")
            return None
        if guild_id is not None and channel.guild.id != guild_id:
            return None

        try:
            return await self.join(channel)
        except (discord.ClientException, discord.HTTPException, asyncio.TimeoutError) as e:
            logger.error(f"❌ Error in auto-join voice: {e}")
            return None

    async def on_disconnected(self, guild_id):
        """Rejoin after Discord dropped the bot from voice."""
        if guild_id in self.left_on_purpose:
            return None
        logger.warning("⚠️ Voice connection lost, rejoining in %ss", REJOIN_DELAY)
        await asyncio.sleep(REJOIN_DELAY)
        return await self.auto_join(guild_id)
