"""
Unit tests for permission levels and resolution.

Run with: pytest tests/test_permissions.py -v
"""

import pytest

from crevion.errors import InvalidLevel
from crevion.permissions import (
    CommandDescriptor,
    Member,
    PermissionConfig,
    PermissionLevel,
    command_category,
    has_line_access,
    is_authorized,
    parse_level,
    parse_role_level,
    required_level,
    resolve_user_level,
)


def make_config(**kwargs):
    return PermissionConfig.from_dict(kwargs)


class TestParseLevel:
    """Parsing levels at the input boundary."""

    @pytest.mark.parametrize("value,expected", [
        ("admin", PermissionLevel.ADMIN),
        ("ADMIN", PermissionLevel.ADMIN),
        (" vip ", PermissionLevel.VIP),
        (5, PermissionLevel.ADMIN),
        ("3", PermissionLevel.HELPER),
        (PermissionLevel.OWNER, PermissionLevel.OWNER),
    ])
    def test_valid_values(self, value, expected):
        assert parse_level(value) is expected

    @pytest.mark.parametrize("value", ["superuser", 7, -1, "", None, 2.5, True])
    def test_invalid_values(self, value):
        with pytest.raises(InvalidLevel) as exc_info:
            parse_level(value)
        assert exc_info.value.kind == "invalid_level"

    def test_role_levels_exclude_owner_and_everyone(self):
        assert parse_role_level("helper") is PermissionLevel.HELPER
        with pytest.raises(InvalidLevel):
            parse_role_level("owner")
        with pytest.raises(InvalidLevel):
            parse_role_level(0)

    def test_display_names(self):
        assert PermissionLevel.VIP.display_name == "VIP"
        assert PermissionLevel.MODERATOR.display_name == "Moderator"


class TestResolveUserLevel:
    """Resolution order: owner, override, highest role, everyone."""

    def test_owner_supremacy(self):
        config = make_config(
            owners=["1"],
            roles={"member": ["R1"]},
            user_overrides={"1": "member"},
        )
        owner = Member.create(1, ["R1"])
        assert resolve_user_level(owner, config) is PermissionLevel.OWNER

    def test_override_shadows_roles(self):
        config = make_config(roles={"admin": ["R1"]}, user_overrides={"2": "vip"})
        assert resolve_user_level(Member.create(2, ["R1"]), config) is PermissionLevel.VIP

    def test_override_can_lower_level(self):
        config = make_config(roles={"moderator": ["R1"]}, user_overrides={"2": 0})
        assert resolve_user_level(Member.create(2, ["R1"]), config) is PermissionLevel.EVERYONE

    def test_highest_role_wins(self):
        config = make_config(roles={"admin": ["R1"], "helper": ["R2"]})
        assert resolve_user_level(Member.create(3, ["R2", "R1"]), config) is PermissionLevel.ADMIN

    def test_role_in_several_levels(self):
        config = make_config(roles={"vip": ["R1"], "moderator": ["R1"]})
        assert resolve_user_level(Member.create(3, ["R1"]), config) is PermissionLevel.MODERATOR

    def test_no_match_is_everyone(self):
        config = make_config(roles={"admin": ["R1"]})
        assert resolve_user_level(Member.create(4, ["R9"]), config) is PermissionLevel.EVERYONE

    def test_empty_config_is_everyone(self):
        assert resolve_user_level(Member.create(4, ["R1"]), PermissionConfig()) is PermissionLevel.EVERYONE

    def test_integer_and_string_ids_match(self):
        config = make_config(owners=[123], roles={"helper": [456]})
        assert resolve_user_level(Member.create("123"), config) is PermissionLevel.OWNER
        assert resolve_user_level(Member.create(9, [456]), config) is PermissionLevel.HELPER

    def test_bad_stored_override_is_ignored(self):
        config = make_config(roles={"vip": ["R1"]}, user_overrides={"5": "wizard"})
        assert resolve_user_level(Member.create(5, ["R1"]), config) is PermissionLevel.VIP


class TestAuthorization:
    """Command requirements and authorization."""

    def test_example_scenario(self):
        config = make_config(
            owners=[],
            roles={"admin": ["R1"], "helper": ["R2"]},
            user_overrides={},
            command_overrides={"ping": "admin"},
        )
        ping = CommandDescriptor("ping", PermissionLevel.EVERYONE)
        caller = Member.create(7, ["R1", "R2"])

        assert required_level(ping, config) is PermissionLevel.ADMIN
        assert resolve_user_level(caller, config) is PermissionLevel.ADMIN
        assert is_authorized(caller, ping, config)

    def test_command_override_precedence(self):
        config = make_config(
            owners=["1"],
            roles={"member": ["RM"]},
            command_overrides={"ping": PermissionLevel.OWNER},
        )
        ping = CommandDescriptor("ping")

        assert not is_authorized(Member.create(2, ["RM"]), ping, config)
        assert is_authorized(Member.create(1), ping, config)

    def test_default_level_without_override(self):
        config = make_config(roles={"helper": ["RH"]})
        stats = CommandDescriptor("stats", PermissionLevel.HELPER)
        assert is_authorized(Member.create(2, ["RH"]), stats, config)
        assert not is_authorized(Member.create(3), stats, config)

    @pytest.mark.parametrize("user_level", list(PermissionLevel))
    def test_monotonicity(self, user_level):
        if user_level is PermissionLevel.OWNER:
            config = make_config(owners=["9"])
        else:
            config = make_config(user_overrides={"9": int(user_level)})
        caller = Member.create(9)
        for high in PermissionLevel:
            if is_authorized(caller, CommandDescriptor("x", high), config):
                for low in PermissionLevel:
                    if low <= high:
                        assert is_authorized(caller, CommandDescriptor("x", low), config)


class TestLineAccess:
    """Line access is separate from permission levels."""

    def test_owner_always_has_access(self):
        config = make_config(owners=["1"])
        assert has_line_access(Member.create(1), config)

    def test_empty_role_list_means_owners_only(self):
        config = make_config(owners=["1"], roles={"admin": ["RA"]})
        assert not has_line_access(Member.create(2, ["RA"]), config)

    def test_line_role_grants_access(self):
        config = make_config(line_access_roles=["RL"])
        assert has_line_access(Member.create(2, ["RL"]), config)
        assert not has_line_access(Member.create(3, ["RX"]), config)


class TestConfigDocument:
    """Round trip of the stored document shape."""

    def test_every_role_level_present(self):
        config = PermissionConfig.from_dict({})
        assert set(config.roles) == {"admin", "moderator", "helper", "vip", "member"}

    def test_to_dict_stores_levels_as_ints(self):
        config = make_config(user_overrides={"1": "admin"}, command_overrides={"say": "moderator"})
        data = config.to_dict()
        assert data["user_overrides"] == {"1": 5}
        assert data["command_overrides"] == {"say": 4}


@pytest.mark.parametrize("level,category", [
    (PermissionLevel.OWNER, "owner"),
    (PermissionLevel.ADMIN, "admin"),
    (PermissionLevel.MODERATOR, "moderation"),
    (PermissionLevel.HELPER, "creativity"),
    (PermissionLevel.VIP, "general"),
    (PermissionLevel.EVERYONE, "general"),
])
def test_command_category(level, category):
    assert command_category(level) == category


class TestStoredNulls:
    """Null lists in a hand-edited document read as empty."""

    def test_null_lists(self):
        config = PermissionConfig.from_dict({
            "owners": None,
            "roles": {"admin": None, "helper": ["R2"]},
            "user_overrides": None,
            "command_overrides": None,
            "line_access_roles": None,
        })
        assert config.owners == []
        assert config.roles["admin"] == []
        assert config.roles["helper"] == ["R2"]
        assert config.line_access_roles == []
        assert resolve_user_level(Member.create(1, ["R2"]), config) is PermissionLevel.HELPER

    def test_null_roles_table(self):
        assert PermissionConfig.from_dict({"roles": None}).roles["vip"] == []
