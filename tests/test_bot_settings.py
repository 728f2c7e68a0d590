"""
Tests for the settings document.

Run with: pytest tests/test_bot_settings.py -v
"""

import pytest

from crevion.bot_settings import SETTINGS_DOCUMENT, BotSettings
from crevion.config import DEFAULT_PREFIX, DEFAULT_STATUS


@pytest.fixture
def settings(store):
    return BotSettings(store)


class TestDefaults:
    @pytest.mark.asyncio
    async def test_fresh_install(self, settings):
        assert await settings.get_prefix() == DEFAULT_PREFIX
        assert await settings.get_status() == DEFAULT_STATUS
        assert await settings.get_line_url() is None

    @pytest.mark.asyncio
    async def test_missing_keys_are_filled(self, store):
        store.documents[SETTINGS_DOCUMENT] = {"prefix": "?", "features": {"auto_line": False}}
        loaded = await BotSettings(store).load()
        assert loaded["prefix"] == "?"
        assert loaded["features"]["auto_line"] is False
        assert "ai_assistant" in loaded["features"]
        assert loaded["stats"]["total_commands"] == 0


class TestPrefixAndStatus:
    @pytest.mark.asyncio
    async def test_set_prefix(self, settings):
        await settings.set_prefix(" ?? ")
        assert await settings.get_prefix() == "??"

    @pytest.mark.parametrize("prefix", ["", "   ", "toolong", "a b"])
    @pytest.mark.asyncio
    async def test_bad_prefix(self, settings, prefix):
        with pytest.raises(ValueError):
            await settings.set_prefix(prefix)

    @pytest.mark.asyncio
    async def test_status(self, settings):
        await settings.set_status("dnd")
        assert await settings.get_status() == "dnd"
        with pytest.raises(ValueError):
            await settings.set_status("away")


class TestFeaturesAndChannels:
    @pytest.mark.asyncio
    async def test_feature_toggle(self, settings):
        await settings.set_feature("ai_assistant", False)
        assert not await settings.is_enabled("ai_assistant")
        await settings.set_feature("ai_assistant", True)
        assert await settings.is_enabled("ai_assistant")

    @pytest.mark.asyncio
    async def test_unknown_feature(self, settings):
        with pytest.raises(ValueError):
            await settings.set_feature("teleport", True)

    @pytest.mark.asyncio
    async def test_feature_for_channel(self, settings):
        await settings.set_channel("color_extractor", 555)
        await settings.set_feature("color_extractor", True)
        assert await settings.get_channel("color_extractor") == "555"
        assert await settings.feature_for_channel(555) == "color_extractor"

        await settings.set_feature("color_extractor", False)
        assert await settings.feature_for_channel(555) is None

    @pytest.mark.asyncio
    async def test_unset_channel(self, settings):
        await settings.set_channel("ai_assistant", 1)
        await settings.set_channel("ai_assistant", None)
        assert await settings.get_channel("ai_assistant") == ""


class TestLineAndStats:
    @pytest.mark.asyncio
    async def test_line_url(self, settings):
        await settings.set_line_url("https://example.com/line.png", 42)
        assert await settings.get_line_url() == "https://example.com/line.png"
        assert (await settings.load())["line"]["updated_by"] == "42"

        await settings.set_line_url(None, 42)
        assert await settings.get_line_url() is None

    @pytest.mark.asyncio
    async def test_bad_line_url(self, settings):
        with pytest.raises(ValueError):
            await settings.set_line_url("ftp://example.com/line.png")

    @pytest.mark.asyncio
    async def test_legacy_null_string(self, store):
        store.documents[SETTINGS_DOCUMENT] = {"line": {"url": "null"}}
        assert await BotSettings(store).get_line_url() is None

    @pytest.mark.asyncio
    async def test_increment_stat(self, settings):
        await settings.increment_stat("total_commands")
        await settings.increment_stat("total_commands")
        assert (await settings.load())["stats"]["total_commands"] == 2


class TestVoice:
    @pytest.mark.asyncio
    async def test_no_default_voice(self, settings, monkeypatch):
        monkeypatch.setattr("crevion.bot_settings.DEFAULT_VOICE_CHANNEL", "")
        assert await settings.get_default_voice() == ""

    @pytest.mark.asyncio
    async def test_set_default_voice(self, settings, store):
        await settings.set_default_voice(555, user_id=1)
        assert await settings.get_default_voice() == "555"
        assert store.documents[SETTINGS_DOCUMENT]["voice"]["updated_by"] == "1"

    @pytest.mark.asyncio
    async def test_clear_default_voice(self, settings):
        await settings.set_default_voice(555)
        await settings.set_default_voice(None)
        assert await settings.get_default_voice() == ""

    @pytest.mark.asyncio
    async def test_null_voice_section(self, store):
        store.documents[SETTINGS_DOCUMENT] = {"voice": None}
        assert await BotSettings(store).get_default_voice() == ""

    @pytest.mark.asyncio
    async def test_voice_survives_other_settings(self, settings):
        await settings.set_default_voice(555)
        await settings.set_prefix("?")
        await settings.set_feature("auto_line", False)
        assert await settings.get_default_voice() == "555"
