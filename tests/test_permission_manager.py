"""
Tests for the stored permission document and its admin mutations.

Run with: pytest tests/test_permission_manager.py -v
"""

import asyncio

import pytest

from crevion.errors import ConfigUnavailable, InvalidLevel, LastOwnerRemoval
from crevion.permission_manager import PERMISSIONS_DOCUMENT, MutationStatus, PermissionManager
from crevion.permissions import CommandDescriptor, Member, PermissionLevel
from crevion.storage import MemoryDocumentStore


class FlakyStore(MemoryDocumentStore):
    """In-memory store that can be switched into an outage."""

    def __init__(self):
        super().__init__()
        self.fail = False

    async def _read(self, name):
        if self.fail:
            raise ConfigUnavailable()
        return await super()._read(name)


class TestReads:
    """Snapshots are fresh on every read."""

    @pytest.mark.asyncio
    async def test_first_read_seeds_owners(self, manager, store):
        config = await manager.get_config()
        assert config.owners == ["100"]
        assert PERMISSIONS_DOCUMENT in store.documents

    @pytest.mark.asyncio
    async def test_seeded_builtin_roles(self):
        manager = PermissionManager(MemoryDocumentStore(), seed_owners=["1"], builtin_roles={"admin": [55]})
        config = await manager.get_config()
        assert config.roles["admin"] == ["55"]
        assert config.roles["member"] == []

    @pytest.mark.asyncio
    async def test_no_stale_reads(self, manager):
        member = Member.create(5, ["R1"])
        assert await manager.get_user_level(member) is PermissionLevel.EVERYONE

        await manager.set_role_level("R1", "moderator")
        assert await manager.get_user_level(member) is PermissionLevel.MODERATOR

    @pytest.mark.asyncio
    async def test_external_edits_are_seen(self, manager, store):
        await manager.get_config()
        store.documents[PERMISSIONS_DOCUMENT]["user_overrides"]["7"] = 5
        assert await manager.get_user_level(Member.create(7)) is PermissionLevel.ADMIN

    @pytest.mark.asyncio
    async def test_check_uses_command_override(self, manager):
        ping = CommandDescriptor("ping")
        member = Member.create(8)
        assert await manager.check(member, ping)

        await manager.set_command_override("Ping", "admin")
        assert not await manager.check(member, ping)
        assert await manager.get_required_level(ping) is PermissionLevel.ADMIN

    @pytest.mark.asyncio
    async def test_authorize_reports_one_snapshot(self, manager):
        await manager.set_role_level("R1", "vip")
        await manager.set_command_override("stats", "helper")
        member = Member.create(5, ["R1"])
        result = await manager.authorize(member, CommandDescriptor("stats", PermissionLevel.EVERYONE))
        assert result == (False, PermissionLevel.HELPER, PermissionLevel.VIP)

    @pytest.mark.asyncio
    async def test_is_owner(self, manager):
        assert await manager.is_owner(100)
        assert not await manager.is_owner("101")


class TestFailClosed:
    """Storage failures never grant anything above EVERYONE."""

    @pytest.mark.asyncio
    async def test_get_config_raises(self, failing_manager):
        with pytest.raises(ConfigUnavailable):
            await failing_manager.get_config()

    @pytest.mark.asyncio
    async def test_level_falls_back_to_everyone(self, failing_manager, owner):
        assert await failing_manager.get_user_level(owner) is PermissionLevel.EVERYONE

    @pytest.mark.asyncio
    async def test_check_denies_protected_commands(self, failing_manager, owner):
        assert not await failing_manager.check(owner, CommandDescriptor("permissions", PermissionLevel.OWNER))
        assert not await failing_manager.check(owner, CommandDescriptor("stats", PermissionLevel.HELPER))

    @pytest.mark.asyncio
    async def test_check_denies_everyone_commands(self, failing_manager, owner):
        assert not await failing_manager.check(owner, CommandDescriptor("ping"))

    @pytest.mark.asyncio
    async def test_tightened_command_stays_denied_during_outage(self):
        store = FlakyStore()
        manager = PermissionManager(store, seed_owners=["100"], builtin_roles={})
        ping = CommandDescriptor("ping")
        stranger = Member.create(999)

        await manager.set_command_override("ping", PermissionLevel.OWNER)
        assert not await manager.check(stranger, ping)

        store.fail = True
        assert not await manager.check(stranger, ping)
        assert await manager.authorize(stranger, ping) == (False, None, PermissionLevel.EVERYONE)
        assert await manager.get_required_level(ping) is None

        store.fail = False
        assert await manager.get_required_level(ping) is PermissionLevel.OWNER

    @pytest.mark.asyncio
    async def test_owner_and_line_checks_are_false(self, failing_manager, owner):
        assert not await failing_manager.is_owner(owner.id)
        assert not await failing_manager.can_use_line(owner)

    @pytest.mark.asyncio
    async def test_mutations_raise(self, failing_manager):
        with pytest.raises(ConfigUnavailable):
            await failing_manager.add_owner("200")


class TestOwners:
    """Owner list edits and the last-owner guard."""

    @pytest.mark.asyncio
    async def test_add_owner_is_idempotent(self, manager):
        assert await manager.add_owner(200) is MutationStatus.ADDED
        assert await manager.add_owner("200") is MutationStatus.ALREADY_PRESENT
        assert (await manager.get_config()).owners == ["100", "200"]

    @pytest.mark.asyncio
    async def test_remove_owner(self, manager):
        await manager.add_owner("200")
        assert await manager.remove_owner("200") is MutationStatus.REMOVED
        assert await manager.remove_owner("200") is MutationStatus.NOT_FOUND

    @pytest.mark.asyncio
    async def test_last_owner_cannot_be_removed(self, manager, store):
        await manager.get_config()
        with pytest.raises(LastOwnerRemoval) as exc_info:
            await manager.remove_owner("100", actor_id="100")
        assert exc_info.value.kind == "last_owner_removal"
        assert store.documents[PERMISSIONS_DOCUMENT]["owners"] == ["100"]

    @pytest.mark.asyncio
    async def test_owners_never_empty_after_mixed_edits(self, manager):
        await manager.add_owner("200")
        await manager.remove_owner("100")
        with pytest.raises(LastOwnerRemoval):
            await manager.remove_owner("200")
        assert (await manager.get_config()).owners == ["200"]


class TestRoleMutations:
    """Role table edits."""

    @pytest.mark.asyncio
    async def test_set_role_level_keeps_other_levels(self, manager):
        await manager.set_role_level("R1", "vip")
        await manager.set_role_level("R1", PermissionLevel.ADMIN)
        config = await manager.get_config()
        assert config.roles["vip"] == ["R1"]
        assert config.roles["admin"] == ["R1"]

    @pytest.mark.asyncio
    async def test_set_role_level_twice(self, manager):
        assert await manager.set_role_level(1, "helper") is MutationStatus.ADDED
        assert await manager.set_role_level("1", "helper") is MutationStatus.ALREADY_PRESENT

    @pytest.mark.asyncio
    async def test_remove_role_from_level(self, manager):
        await manager.set_role_level("R1", "helper")
        assert await manager.remove_role_from_level("R1", "helper") is MutationStatus.REMOVED
        assert await manager.remove_role_from_level("R1", "helper") is MutationStatus.NOT_FOUND

    @pytest.mark.asyncio
    async def test_remove_role_everywhere(self, manager):
        await manager.set_role_level("R1", "vip")
        await manager.set_role_level("R1", "moderator")
        assert await manager.remove_role_everywhere("R1") is MutationStatus.REMOVED
        config = await manager.get_config()
        assert all("R1" not in ids for ids in config.roles.values())
        assert await manager.remove_role_everywhere("R1") is MutationStatus.NOT_FOUND

    @pytest.mark.asyncio
    async def test_invalid_level_rejected_before_storage(self, store):
        manager = PermissionManager(store, seed_owners=["1"], builtin_roles={})
        for bad in ("owner", "everyone", "wizard", 9):
            with pytest.raises(InvalidLevel):
                await manager.set_role_level("R1", bad)
        assert PERMISSIONS_DOCUMENT not in store.documents


class TestOverrides:
    """User and command overrides."""

    @pytest.mark.asyncio
    async def test_user_override_statuses(self, manager):
        assert await manager.set_user_override(5, "vip") is MutationStatus.ADDED
        assert await manager.set_user_override(5, "vip") is MutationStatus.ALREADY_PRESENT
        assert await manager.set_user_override(5, "admin") is MutationStatus.UPDATED
        assert await manager.remove_user_override(5) is MutationStatus.REMOVED
        assert await manager.remove_user_override(5) is MutationStatus.NOT_FOUND

    @pytest.mark.asyncio
    async def test_invalid_override_level(self, manager):
        with pytest.raises(InvalidLevel):
            await manager.set_user_override(5, "god")
        with pytest.raises(InvalidLevel):
            await manager.set_command_override("ping", 12)

    @pytest.mark.asyncio
    async def test_command_override_names_are_lowercased(self, manager):
        await manager.set_command_override("  SAY ", "owner")
        config = await manager.get_config()
        assert config.command_overrides == {"say": PermissionLevel.OWNER}
        assert await manager.remove_command_override("Say") is MutationStatus.REMOVED


class TestLineAccess:
    """Line access role list."""

    @pytest.mark.asyncio
    async def test_owners_only_by_default(self, manager, owner):
        assert await manager.can_use_line(owner)
        assert not await manager.can_use_line(Member.create(5, ["R1"]))

    @pytest.mark.asyncio
    async def test_role_grants_access(self, manager):
        member = Member.create(5, ["R1"])
        assert await manager.add_line_access_role("R1") is MutationStatus.ADDED
        assert await manager.add_line_access_role("R1") is MutationStatus.ALREADY_PRESENT
        assert await manager.can_use_line(member)

        assert await manager.remove_line_access_role("R1") is MutationStatus.REMOVED
        assert not await manager.can_use_line(member)

    @pytest.mark.asyncio
    async def test_line_access_does_not_change_level(self, manager):
        await manager.add_line_access_role("R1")
        assert await manager.get_user_level(Member.create(5, ["R1"])) is PermissionLevel.EVERYONE


class TestReset:
    """Resetting to defaults."""

    @pytest.mark.asyncio
    async def test_reset_keeps_owners(self, manager):
        await manager.add_owner("200")
        await manager.set_role_level("R1", "admin")
        await manager.set_user_override("5", "vip")
        await manager.set_command_override("ping", "admin")
        await manager.add_line_access_role("R2")

        assert await manager.reset_to_defaults() is MutationStatus.RESET

        config = await manager.get_config()
        assert config.owners == ["100", "200"]
        assert config.roles["admin"] == []
        assert config.user_overrides == {}
        assert config.command_overrides == {}
        assert config.line_access_roles == []


class TestConcurrency:
    """Concurrent mutations never lose updates."""

    @pytest.mark.asyncio
    async def test_parallel_role_grants(self, manager):
        role_ids = [f"R{i}" for i in range(25)]
        statuses = await asyncio.gather(*(manager.set_role_level(r, "member") for r in role_ids))

        assert all(s is MutationStatus.ADDED for s in statuses)
        assert sorted((await manager.get_config()).roles["member"]) == sorted(role_ids)

    @pytest.mark.asyncio
    async def test_parallel_mixed_mutations(self, manager):
        await asyncio.gather(
            manager.add_owner("200"),
            manager.set_user_override("5", "helper"),
            manager.set_command_override("ping", "vip"),
            manager.add_line_access_role("R9"),
            manager.set_role_level("R1", "admin"),
        )
        config = await manager.get_config()
        assert "200" in config.owners
        assert config.user_overrides["5"] is PermissionLevel.HELPER
        assert config.command_overrides["ping"] is PermissionLevel.VIP
        assert config.line_access_roles == ["R9"]
        assert config.roles["admin"] == ["R1"]

    @pytest.mark.asyncio
    async def test_parallel_owner_removals_keep_one(self, manager):
        await manager.add_owner("200")
        results = await asyncio.gather(
            manager.remove_owner("100"),
            manager.remove_owner("200"),
            return_exceptions=True,
        )
        assert sum(isinstance(r, LastOwnerRemoval) for r in results) == 1
        assert len((await manager.get_config()).owners) == 1


class TestNullDocumentFields:
    """Mutations repair null fields in a hand-edited document."""

    @pytest.mark.asyncio
    async def test_mutations_on_null_fields(self, store):
        store.documents[PERMISSIONS_DOCUMENT] = {
            "owners": ["100"],
            "roles": {"admin": None},
            "user_overrides": None,
            "command_overrides": None,
            "line_access_roles": None,
        }
        manager = PermissionManager(store, seed_owners=["100"], builtin_roles={})

        assert await manager.set_role_level("R1", "admin") is MutationStatus.ADDED
        assert await manager.remove_role_everywhere("R9") is MutationStatus.NOT_FOUND
        assert await manager.set_user_override("5", "vip") is MutationStatus.ADDED
        assert await manager.set_command_override("ping", "helper") is MutationStatus.ADDED
        assert await manager.add_line_access_role("R2") is MutationStatus.ADDED

        config = await manager.get_config()
        assert config.roles["admin"] == ["R1"]
        assert config.line_access_roles == ["R2"]
