"""
Tests for the command registry and permission check evaluation.

Run with: pytest tests/test_checks.py -v
"""

from types import SimpleNamespace

import pytest

from crevion.checks import CommandRegistry, PermissionDenied, PrefixPermissionDenied, evaluate
from crevion.permission_manager import PermissionManager
from crevion.permissions import PermissionLevel
from crevion.storage import MemoryDocumentStore


class CountingStore(MemoryDocumentStore):
    def __init__(self):
        super().__init__()
        self.reads = 0

    async def _read(self, name):
        self.reads += 1
        return await super()._read(name)


def discord_user(user_id, *role_ids):
    return SimpleNamespace(id=user_id, roles=[SimpleNamespace(id=r) for r in role_ids])


@pytest.fixture
def registry():
    registry = CommandRegistry()
    registry.register("ping", PermissionLevel.EVERYONE)
    registry.register("stats", PermissionLevel.HELPER)
    registry.register("say", PermissionLevel.MODERATOR)
    registry.register("autoline", PermissionLevel.ADMIN)
    registry.register("Permissions", PermissionLevel.OWNER)
    return registry


class TestCommandRegistry:
    def test_lookup_is_case_insensitive(self, registry):
        assert "PERMISSIONS" in registry
        assert registry.descriptor("Stats").default_level is PermissionLevel.HELPER

    def test_unknown_command_needs_everyone(self, registry):
        assert registry.descriptor("nope").default_level is PermissionLevel.EVERYONE

    def test_by_category(self, registry):
        assert registry.by_category() == {
            "general": ["ping"],
            "creativity": ["stats"],
            "moderation": ["say"],
            "admin": ["autoline"],
            "owner": ["permissions"],
        }

    def test_by_category_with_max_level(self, registry):
        assert registry.by_category(max_level=PermissionLevel.HELPER) == {
            "general": ["ping"],
            "creativity": ["stats"],
        }

    def test_by_category_applies_overrides(self, registry):
        grouped = registry.by_category({"ping": PermissionLevel.ADMIN}, max_level=PermissionLevel.MODERATOR)
        assert "ping" not in grouped.get("general", [])
        assert grouped["moderation"] == ["say"]


class TestEvaluate:
    """Check evaluation against the stored document."""

    @pytest.mark.asyncio
    async def test_owner_allowed(self, manager, registry):
        allowed, _, _ = await evaluate(manager, discord_user(100), "permissions", registry)
        assert allowed

    @pytest.mark.asyncio
    async def test_denied_reports_levels(self, manager, registry):
        await manager.set_role_level(7, "helper")
        allowed, required, current = await evaluate(manager, discord_user(5, 7), "say", registry)
        assert not allowed
        assert required is PermissionLevel.MODERATOR
        assert current is PermissionLevel.HELPER

    @pytest.mark.asyncio
    async def test_override_raises_requirement(self, manager, registry):
        await manager.set_command_override("ping", "vip")
        allowed, required, current = await evaluate(manager, discord_user(5), "ping", registry)
        assert not allowed
        assert required is PermissionLevel.VIP
        assert current is PermissionLevel.EVERYONE

    @pytest.mark.asyncio
    async def test_user_without_roles_attribute(self, manager, registry):
        user = SimpleNamespace(id=5)
        allowed, _, _ = await evaluate(manager, user, "ping", registry)
        assert allowed

    @pytest.mark.asyncio
    async def test_storage_failure_denies(self, failing_manager, registry):
        allowed, required, current = await evaluate(failing_manager, discord_user(100), "stats", registry)
        assert not allowed
        assert required is None
        assert current is PermissionLevel.EVERYONE

    @pytest.mark.asyncio
    async def test_denial_reads_config_once(self, registry):
        store = CountingStore()
        manager = PermissionManager(store, seed_owners=["100"], builtin_roles={})
        await manager.set_role_level(7, "helper")
        store.reads = 0

        allowed, required, current = await evaluate(manager, discord_user(5, 7), "say", registry)
        assert (allowed, required, current) == (False, PermissionLevel.MODERATOR, PermissionLevel.HELPER)
        assert store.reads == 1


class TestDenials:
    def test_unknown_requirement_message(self):
        assert str(PermissionDenied(None)) == "Permission configuration unavailable"
        assert str(PrefixPermissionDenied(PermissionLevel.ADMIN)) == "Requires Admin"
