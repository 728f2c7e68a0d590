"""Bot Settings - Prefix, status, feature toggles & feature channels

Stored as the single ``settings`` document. Missing keys fall back to the
defaults from config.py, so a fresh install works without any setup.
"""
from __future__ import annotations

import time
from typing import Optional

from .config import (
    logger,
    DEFAULT_CHANNELS,
    DEFAULT_FEATURES,
    DEFAULT_PREFIX,
    DEFAULT_STATUS,
    DEFAULT_VOICE_CHANNEL,
)
from .storage import DocumentStore

SETTINGS_DOCUMENT = "settings"

VALID_STATUSES = ("online", "idle", "dnd", "invisible")


def default_settings() -> dict:
    return {
        "prefix": DEFAULT_PREFIX,
        "status": DEFAULT_STATUS,
        "features": dict(DEFAULT_FEATURES),
        "channels": dict(DEFAULT_CHANNELS),
        "line": {"url": None, "updated_by": None, "updated_at": None},
        "voice": {"default_channel_id": DEFAULT_VOICE_CHANNEL, "updated_by": None},
        "stats": {"total_commands": 0, "total_errors": 0},
    }


class BotSettings:
    """Accessors for the settings document."""

    def __init__(self, store: DocumentStore):
        self.store = store

    async def load(self) -> dict:
        """Settings with defaults filled in for anything not stored yet."""
        stored = await self.store.load(SETTINGS_DOCUMENT, default_settings)
        merged = default_settings()
        for key, value in stored.items():
            if isinstance(value, dict) and isinstance(merged.get(key), dict):
                merged[key] = {**merged[key], **value}
            else:
                merged[key] = value
        return merged

    async def _set(self, section: Optional[str], key: str, value):
        def mutate(doc: dict):
            target = doc.setdefault(section, {}) if section else doc
            target[key] = value

        await self.store.update(SETTINGS_DOCUMENT, mutate, default_settings)
        logger.info(f"Setting {section + '.' if section else ''}{key} = {value}")

    # ========================================================================
    # PREFIX & STATUS
    # ========================================================================

    async def get_prefix(self) -> str:
        return (await self.load()).get("prefix") or DEFAULT_PREFIX

    async def set_prefix(self, prefix: str):
        prefix = prefix.strip()
        if not prefix or len(prefix) > 5 or " " in prefix:
            raise ValueError("Prefix must be 1-5 characters without spaces")
        await self._set(None, "prefix", prefix)

    async def get_status(self) -> str:
        return (await self.load()).get("status") or DEFAULT_STATUS

    async def set_status(self, status: str):
        if status not in VALID_STATUSES:
            raise ValueError(f"Status must be one of: {', '.join(VALID_STATUSES)}")
        await self._set(None, "status", status)

    # ========================================================================
    # FEATURES & CHANNELS
    # ========================================================================

    async def is_enabled(self, feature: str) -> bool:
        return bool((await self.load())["features"].get(feature, False))

    async def set_feature(self, feature: str, enabled: bool):
        if feature not in DEFAULT_FEATURES:
            raise ValueError(f"Unknown feature: {feature}")
        await self._set("features", feature, enabled)

    async def get_channel(self, feature: str) -> str:
        return str((await self.load())["channels"].get(feature) or "")

    async def set_channel(self, feature: str, channel_id):
        if feature not in DEFAULT_CHANNELS:
            raise ValueError(f"Unknown channel slot: {feature}")
        await self._set("channels", feature, str(channel_id) if channel_id else "")

    async def feature_for_channel(self, channel_id) -> Optional[str]:
        """Enabled feature bound to ``channel_id``, if any."""
        settings = await self.load()
        channel_id = str(channel_id)
        for feature, bound in settings["channels"].items():
            if bound and str(bound) == channel_id and settings["features"].get(feature, False):
                return feature
        return None

    # ========================================================================
    # LINE IMAGE
    # ========================================================================

    async def get_line_url(self) -> Optional[str]:
        url = (await self.load())["line"].get("url")
        # Older documents stored the string 'null'
        if not url or url == "null":
            return None
        return url

    async def set_line_url(self, url: Optional[str], user_id=None):
        if url is not None and not url.startswith(("http://", "https://")):
            raise ValueError("Line URL must start with http:// or https://")

        def mutate(doc: dict):
            doc["line"] = {
                "url": url,
                "updated_by": str(user_id) if user_id else None,
                "updated_at": time.time(),
            }

        await self.store.update(SETTINGS_DOCUMENT, mutate, default_settings)
        logger.info(f"Line URL {'set' if url else 'cleared'} by {user_id}")

    # ========================================================================
    # VOICE
    # ========================================================================

    async def get_default_voice(self) -> str:
        """Voice channel joined on startup, '' if none."""
        voice = (await self.load()).get("voice") or {}
        return str(voice.get("default_channel_id") or "")

    async def set_default_voice(self, channel_id, user_id=None):
        def mutate(doc: dict):
            doc["voice"] = {
                "default_channel_id": str(channel_id) if channel_id else "",
                "updated_by": str(user_id) if user_id else None,
            }

        await self.store.update(SETTINGS_DOCUMENT, mutate, default_settings)
        logger.info(f"Default voice channel {'set to ' + str(channel_id) if channel_id else 'cleared'} by {user_id}")

    # ========================================================================
    # STATS
    # ========================================================================

    async def increment_stat(self, stat: str):
        def mutate(doc: dict):
            stats = doc.setdefault("stats", {})
            stats[stat] = stats.get(stat, 0) + 1

        await self.store.update(SETTINGS_DOCUMENT, mutate, default_settings)
