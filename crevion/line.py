"""Line System - Separator image posted on demand or after every message

The line image URL lives in the settings document. Auto-line channels
live in their own ``autolines`` document.
"""
from __future__ import annotations

import asyncio
import io
import time
from typing import List, Optional, Tuple

import aiohttp
import discord

from .config import logger
from .errors import LineFetchError
from .storage import DocumentStore

AUTOLINES_DOCUMENT = "autolines"

LINE_TRIGGERS = ("line", "خط")
LINE_FILENAME = "line.png"
MAX_LINE_BYTES = 8 * 1024 * 1024
MANUAL_FETCH_TIMEOUT = 15
AUTO_FETCH_TIMEOUT = 5

DISCORD_CDN_HOSTS = ("cdn.discordapp.com", "media.discordapp.net", "discord.com")
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

# ============================================================================
# LINE IMAGE FETCHING
# ============================================================================

def is_line_trigger(content: str) -> bool:
    return content.strip().lower() in LINE_TRIGGERS


def validate_line_payload(url: str, content_type: Optional[str], data: bytes) -> bytes:
    """Check a downloaded line image and return its bytes.

    Discord's CDN sometimes serves images without an image/* content
    type, so the content-type check is skipped for it.
    """
    is_discord_cdn = any(host in url for host in DISCORD_CDN_HOSTS)
    if content_type and not content_type.startswith("image/") and not is_discord_cdn:
        raise LineFetchError("not_image", content_type)
    if len(data) == 0:
        raise LineFetchError("empty")
    if len(data) > MAX_LINE_BYTES:
        raise LineFetchError("too_large", f"{len(data) / 1024 / 1024:.2f}MB")
    return data


async def fetch_line_image(url: str, timeout: float = MANUAL_FETCH_TIMEOUT) -> bytes:
    """Download and validate the line image.

    Raises:
        LineFetchError: with reason timeout, http, not_image, empty,
            too_large or connection

    """
    client_timeout = aiohttp.ClientTimeout(total=timeout)
    try:
        async with aiohttp.ClientSession(timeout=client_timeout) as session:
            async with session.get(url, headers={"User-Agent": USER_AGENT}, allow_redirects=True) as response:
                if response.status != 200:
                    raise LineFetchError("http", str(response.status))
                data = await response.read()
                return validate_line_payload(url, response.headers.get("Content-Type"), data)
    except LineFetchError:
        raise
    except asyncio.TimeoutError as e:
        raise LineFetchError("timeout", f"more than {timeout:g} seconds") from e
    except aiohttp.ClientError as e:
        raise LineFetchError("connection", str(e)) from e


async def post_line(channel, url: str, timeout: float = MANUAL_FETCH_TIMEOUT) -> discord.Message:
    """Fetch the line image and send it to ``channel``."""
    data = await fetch_line_image(url, timeout)
    return await channel.send(file=discord.File(io.BytesIO(data), filename=LINE_FILENAME))


def describe_line_error(error: LineFetchError) -> Tuple[str, str]:
    """(title, details) shown to owners when the line image fails."""
    if error.reason == "timeout":
        return "❌ Line image timed out", f"The image took {error.detail} to load."
    if error.reason == "http":
        if error.detail == "404":
            return "❌ Line image not found (404)", "The saved link no longer works. The image may have been deleted."
        if error.detail == "403":
            return "❌ Access to line image denied (403)", "The server refused access. Try uploading the image to Discord."
        return f"❌ Error loading line image ({error.detail})", "The server returned an error. The link may be wrong."
    if error.reason == "not_image":
        return "❌ Link is not an image", "The saved link does not point to a valid image."
    if error.reason == "empty":
        return "❌ Line image is empty", "The saved file is empty or corrupted."
    if error.reason == "too_large":
        return "❌ Line image is too large", "The image is over 8MB. Use a smaller image."
    return "❌ Could not reach the image host", "The connection failed. Try again later."

# ============================================================================
# AUTO-LINE CHANNELS
# ============================================================================

class AutoLineChannels:
    """Channels where the line image follows every message."""

    def __init__(self, store: DocumentStore):
        self.store = store

    async def all(self) -> dict:
        return await self.store.load(AUTOLINES_DOCUMENT)

    async def add(self, channel_id, guild_id) -> bool:
        """Enable a channel. Returns False if it was already enabled."""
        channel_id = str(channel_id)

        def mutate(doc: dict) -> bool:
            if channel_id in doc:
                return False
            doc[channel_id] = {
                "guild_id": str(guild_id),
                "added_at": time.time(),
                "message_count": 0,
            }
            return True

        added = await self.store.update(AUTOLINES_DOCUMENT, mutate)
        logger.info(f"Auto line channel {channel_id}: {'added' if added else 'already enabled'}")
        return added

    async def remove(self, channel_id) -> bool:
        channel_id = str(channel_id)

        def mutate(doc: dict) -> bool:
            return doc.pop(channel_id, None) is not None

        return await self.store.update(AUTOLINES_DOCUMENT, mutate)

    async def is_enabled(self, channel_id) -> bool:
        return str(channel_id) in await self.all()

    async def for_guild(self, guild_id) -> List[dict]:
        guild_id = str(guild_id)
        return [
            {"channel_id": channel_id, **data}
            for channel_id, data in (await self.all()).items()
            if data.get("guild_id") == guild_id
        ]

    async def increment(self, channel_id):
        channel_id = str(channel_id)

        def mutate(doc: dict):
            if channel_id in doc:
                doc[channel_id]["message_count"] = doc[channel_id].get("message_count", 0) + 1

        await self.store.update(AUTOLINES_DOCUMENT, mutate)
