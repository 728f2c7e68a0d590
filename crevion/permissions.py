"""Permission System - Levels, Resolution & Authorization

Pure functions over a PermissionConfig snapshot. Nothing in this module
touches storage; the PermissionManager fetches a fresh snapshot for every
check and hands it in here.

Resolution order (first match wins):
1. Owners are always OWNER
2. Explicit per-user override
3. Highest level whose role list intersects the member's roles
4. EVERYONE
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Dict, FrozenSet, Iterable, List, Optional

from .errors import InvalidLevel

# ============================================================================
# PERMISSION LEVELS
# ============================================================================

class PermissionLevel(IntEnum):
    EVERYONE = 0
    MEMBER = 1
    VIP = 2
    HELPER = 3
    MODERATOR = 4
    ADMIN = 5
    OWNER = 6

    @property
    def display_name(self) -> str:
        return LEVEL_DISPLAY_NAMES[self]


LEVEL_DISPLAY_NAMES = {
    PermissionLevel.EVERYONE: "Everyone",
    PermissionLevel.MEMBER: "Member",
    PermissionLevel.VIP: "VIP",
    PermissionLevel.HELPER: "Helper",
    PermissionLevel.MODERATOR: "Moderator",
    PermissionLevel.ADMIN: "Admin",
    PermissionLevel.OWNER: "Owner",
}

LEVEL_EMOJIS = {
    PermissionLevel.EVERYONE: "🌍",
    PermissionLevel.MEMBER: "👥",
    PermissionLevel.VIP: "⭐",
    PermissionLevel.HELPER: "💎",
    PermissionLevel.MODERATOR: "🛡️",
    PermissionLevel.ADMIN: "⚙️",
    PermissionLevel.OWNER: "👑",
}

# Levels that can be granted through roles, checked highest first
ROLE_LEVELS = (
    PermissionLevel.ADMIN,
    PermissionLevel.MODERATOR,
    PermissionLevel.HELPER,
    PermissionLevel.VIP,
    PermissionLevel.MEMBER,
)


def level_key(level: PermissionLevel) -> str:
    """Storage key for a level ('admin', 'moderator', ...)."""
    return level.name.lower()


def parse_level(value) -> PermissionLevel:
    """Parse user or stored input into a PermissionLevel.

    Accepts a PermissionLevel, an int in range, a numeric string or a
    case-insensitive level name. Anything else raises InvalidLevel.
    """
    if isinstance(value, PermissionLevel):
        return value
    if isinstance(value, bool):
        raise InvalidLevel(value)
    if isinstance(value, int):
        try:
            return PermissionLevel(value)
        except ValueError:
            raise InvalidLevel(value) from None
    if isinstance(value, str):
        text = value.strip()
        if text.lstrip("-").isdigit():
            return parse_level(int(text))
        try:
            return PermissionLevel[text.upper()]
        except KeyError:
            raise InvalidLevel(value) from None
    raise InvalidLevel(value)


def parse_role_level(value) -> PermissionLevel:
    """Like parse_level, restricted to levels that roles can grant."""
    level = parse_level(value)
    if level not in ROLE_LEVELS:
        raise InvalidLevel(value)
    return level

# ============================================================================
# INPUT TYPES
# ============================================================================

@dataclass(frozen=True)
class Member:
    """A guild member as seen by the resolver: an id and held role ids."""

    id: str
    role_ids: FrozenSet[str] = frozenset()

    @classmethod
    def create(cls, member_id, role_ids: Iterable = ()) -> "Member":
        return cls(str(member_id), frozenset(str(r) for r in role_ids))

    @classmethod
    def from_discord(cls, user) -> "Member":
        """Build from a discord.Member (or a bare discord.User in DMs)."""
        roles = getattr(user, "roles", None) or []
        return cls.create(user.id, (role.id for role in roles))


@dataclass(frozen=True)
class CommandDescriptor:
    name: str
    default_level: PermissionLevel = PermissionLevel.EVERYONE

# ============================================================================
# PERMISSION CONFIG DOCUMENT
# ============================================================================

@dataclass
class PermissionConfig:
    """Snapshot of the persisted permission document."""

    owners: List[str] = field(default_factory=list)
    roles: Dict[str, List[str]] = field(default_factory=dict)
    user_overrides: Dict[str, PermissionLevel] = field(default_factory=dict)
    command_overrides: Dict[str, PermissionLevel] = field(default_factory=dict)
    line_access_roles: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "PermissionConfig":
        """Build from a stored document, dropping entries with bad levels."""
        data = data or {}
        roles = {level_key(level): [] for level in ROLE_LEVELS}
        for key, role_ids in (data.get("roles") or {}).items():
            if key in roles:
                roles[key] = [str(r) for r in role_ids or []]
        return cls(
            owners=[str(o) for o in data.get("owners") or []],
            roles=roles,
            user_overrides=_parse_level_map(data.get("user_overrides")),
            command_overrides=_parse_level_map(data.get("command_overrides")),
            line_access_roles=[str(r) for r in data.get("line_access_roles") or []],
        )

    def to_dict(self) -> dict:
        return {
            "owners": list(self.owners),
            "roles": {key: list(ids) for key, ids in self.roles.items()},
            "user_overrides": {k: int(v) for k, v in self.user_overrides.items()},
            "command_overrides": {k: int(v) for k, v in self.command_overrides.items()},
            "line_access_roles": list(self.line_access_roles),
        }

    def roles_for(self, level: PermissionLevel) -> List[str]:
        return self.roles.get(level_key(level), [])


def _parse_level_map(raw) -> Dict[str, PermissionLevel]:
    parsed = {}
    for key, value in (raw or {}).items():
        try:
            parsed[str(key)] = parse_level(value)
        except InvalidLevel:
            continue
    return parsed


def default_roles(overrides: Optional[Dict[str, List[str]]] = None) -> Dict[str, List[str]]:
    """Built-in role table: every role level present, optionally pre-filled."""
    roles = {level_key(level): [] for level in ROLE_LEVELS}
    for key, role_ids in (overrides or {}).items():
        if key in roles:
            roles[key] = [str(r) for r in role_ids]
    return roles


def default_permission_document(owners: Iterable = (), roles: Optional[Dict[str, List[str]]] = None) -> dict:
    """Document written the first time the permission store is read."""
    return {
        "owners": [str(o) for o in owners],
        "roles": default_roles(roles),
        "user_overrides": {},
        "command_overrides": {},
        "line_access_roles": [],
    }

# ============================================================================
# RESOLUTION
# ============================================================================

def resolve_user_level(member: Member, config: PermissionConfig) -> PermissionLevel:
    """Effective permission level of a member under a config snapshot."""
    if member.id in config.owners:
        return PermissionLevel.OWNER

    override = config.user_overrides.get(member.id)
    if override is not None:
        return override

    for level in ROLE_LEVELS:
        if member.role_ids.intersection(config.roles_for(level)):
            return level

    return PermissionLevel.EVERYONE


def required_level(descriptor: CommandDescriptor, config: PermissionConfig) -> PermissionLevel:
    """Command override if one is stored, else the compiled-in default."""
    return config.command_overrides.get(descriptor.name, descriptor.default_level)


def is_authorized(member: Member, descriptor: CommandDescriptor, config: PermissionConfig) -> bool:
    return resolve_user_level(member, config) >= required_level(descriptor, config)


def has_line_access(member: Member, config: PermissionConfig) -> bool:
    """Line trigger access: owners always, otherwise a line-access role.

    Independent of PermissionLevel. An empty role list means
    nobody but the owners.
    """
    if member.id in config.owners:
        return True
    return bool(member.role_ids.intersection(config.line_access_roles))


def command_category(level: PermissionLevel) -> str:
    """Help category for a command based on the level it requires."""
    if level >= PermissionLevel.OWNER:
        return "owner"
    if level >= PermissionLevel.ADMIN:
        return "admin"
    if level >= PermissionLevel.MODERATOR:
        return "moderation"
    if level >= PermissionLevel.HELPER:
        return "creativity"
    return "general"
