"""Voice Commands - Keep the bot in a voice channel

- /voice join|leave|status|set-default
"""
import asyncio
from typing import TYPE_CHECKING, Optional

import discord
from discord import app_commands

if TYPE_CHECKING:
    from discord.ext import commands

    from ..services import Services


def register_voice_commands(bot: "commands.Bot", services: "Services"):
    """Register voice commands with the bot.

    Args:
        bot: The Discord bot instance
        services: Shared services
    """
    from ..checks import LeveledGroup
    from ..config import logger
    from ..formatting import error_embed, info_embed, success_embed, warning_embed
    from ..permissions import PermissionLevel

    voice_group = LeveledGroup(
        services,
        PermissionLevel.OWNER,
        name="voice",
        description="Manage the bot's voice presence (Owner only)",
        guild_only=True,
    )

    @voice_group.command(name="join", description="Join a voice channel (defaults to the saved channel)")
    async def voice_join(interaction: discord.Interaction, channel: Optional[discord.VoiceChannel] = None):
        if channel is None:
            channel = await services.voice.default_channel()
        if channel is None:
            await interaction.response.send_message(
                embed=warning_embed("No Channel", "Pick a channel or save one with `/voice set-default`"),
                ephemeral=True,
            )
            return

        await interaction.response.defer(ephemeral=True)
        try:
            await services.voice.join(channel)
        except (discord.ClientException, discord.HTTPException, asyncio.TimeoutError) as e:
            logger.error(f"❌ Could not join {channel.name}: {e}")
            await interaction.followup.send(embed=error_embed("Join Failed", str(e)), ephemeral=True)
            return
        await interaction.followup.send(embed=success_embed("Joined Voice", channel.mention), ephemeral=True)

    @voice_group.command(name="leave", description="Leave the current voice channel")
    async def voice_leave(interaction: discord.Interaction):
        if await services.voice.leave(interaction.guild):
            await interaction.response.send_message(embed=success_embed("Left Voice"), ephemeral=True)
        else:
            await interaction.response.send_message(embed=warning_embed("Not Connected", "I'm not in a voice channel."), ephemeral=True)

    @voice_group.command(name="status", description="Show the voice connection and saved channel")
    async def voice_status(interaction: discord.Interaction):
        voice_client = interaction.guild.voice_client
        default_id = await services.settings.get_default_voice()

        embed = info_embed("🎤 Voice Status")
        if voice_client is not None and voice_client.is_connected():
            embed.add_field(name="Connected", value=voice_client.channel.mention, inline=True)
            embed.add_field(name="Latency", value=f"{round(voice_client.latency * 1000)}ms", inline=True)
        else:
            embed.add_field(name="Connected", value="*no*", inline=True)
        embed.add_field(name="Default Channel", value=f"<#{default_id}>" if default_id else "*not set*", inline=False)
        await interaction.response.send_message(embed=embed, ephemeral=True)

    @voice_group.command(name="set-default", description="Save the channel to join on startup")
    async def voice_set_default(interaction: discord.Interaction, channel: discord.VoiceChannel):
        await services.settings.set_default_voice(channel.id, user_id=interaction.user.id)
        await interaction.response.send_message(embed=success_embed("Default Voice Channel", channel.mention), ephemeral=True)

    bot.tree.add_command(voice_group)
