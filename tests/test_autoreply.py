"""
Tests for trigger matching and the auto reply book.

Run with: pytest tests/test_autoreply.py -v
"""

import pytest

from crevion.autoreply import MAX_AUTOREPLIES, AutoReplyBook, find_match


class TestFindMatch:
    """Pure matching rules."""

    def test_contains_match_ignores_case(self):
        replies = {"hello": {"exact": False}}
        assert find_match(replies, "Well HELLO there") == "hello"

    def test_exact_match_needs_whole_message(self):
        replies = {"hi": {"exact": True}}
        assert find_match(replies, "  Hi ") == "hi"
        assert find_match(replies, "hi everyone") is None

    def test_empty_message(self):
        assert find_match({"x": {}}, "   ") is None


class TestAutoReplyBook:
    """Stored replies."""

    @pytest.mark.asyncio
    async def test_add_and_replace(self, store):
        book = AutoReplyBook(store)
        assert await book.add("Hello", "Hi!") is False
        assert await book.add("hello", "Hey!", exact=True) is True

        replies = await book.all()
        assert list(replies) == ["hello"]
        assert replies["hello"]["response"] == "Hey!"

    @pytest.mark.asyncio
    async def test_empty_trigger_rejected(self, store):
        with pytest.raises(ValueError):
            await AutoReplyBook(store).add("   ", "x")

    @pytest.mark.asyncio
    async def test_match_counts_uses(self, store):
        book = AutoReplyBook(store)
        await book.add("welcome", "Glad you're here")

        first = await book.match("welcome everyone")
        second = await book.match("WELCOME")
        assert first["response"] == "Glad you're here"
        assert second["uses"] == 2
        assert await book.match("goodbye") is None

    @pytest.mark.asyncio
    async def test_limit(self, store):
        book = AutoReplyBook(store)
        for i in range(MAX_AUTOREPLIES):
            await book.add(f"t{i}", "r")
        with pytest.raises(ValueError):
            await book.add("one more", "r")
        # Replacing an existing trigger still works at the limit
        assert await book.add("t0", "new") is True

    @pytest.mark.asyncio
    async def test_remove_and_clear(self, store):
        book = AutoReplyBook(store)
        await book.add("a", "1")
        await book.add("b", "2")
        assert await book.remove("A") is True
        assert await book.remove("A") is False
        assert await book.clear() == 1
        assert await book.all() == {}
