"""Permission Manager - Stored permission document & admin mutations

Wraps a DocumentStore holding the single ``permissions`` document.
Reads return a fresh PermissionConfig snapshot every time; nothing is
cached between commands. Mutations go through ``DocumentStore.update`` and
only report success once the new document is stored.
"""
from __future__ import annotations

from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

from .config import logger, BOT_OWNER_IDS, DEFAULT_ROLES
from .errors import ConfigUnavailable, LastOwnerRemoval
from .permissions import (
    CommandDescriptor,
    Member,
    PermissionConfig,
    PermissionLevel,
    default_permission_document,
    default_roles,
    has_line_access,
    level_key,
    parse_level,
    parse_role_level,
    required_level,
    resolve_user_level,
)
from .storage import DocumentStore

PERMISSIONS_DOCUMENT = "permissions"


def section(doc: dict, key: str, factory):
    """Container stored under ``key``, created if missing or null."""
    if doc.get(key) is None:
        doc[key] = factory()
    return doc[key]


class MutationStatus(str, Enum):
    ADDED = "added"
    UPDATED = "updated"
    REMOVED = "removed"
    ALREADY_PRESENT = "already_present"
    NOT_FOUND = "not_found"
    RESET = "reset"

    @property
    def changed(self) -> bool:
        return self not in (MutationStatus.ALREADY_PRESENT, MutationStatus.NOT_FOUND)


class PermissionManager:
    """Reads and edits the permission document stored in ``store``."""

    def __init__(
        self,
        store: DocumentStore,
        seed_owners: Iterable = BOT_OWNER_IDS,
        builtin_roles: Optional[Dict[str, List[str]]] = None,
    ):
        self.store = store
        self.seed_owners = [str(o) for o in seed_owners]
        self.builtin_roles = default_roles(DEFAULT_ROLES if builtin_roles is None else builtin_roles)

    def _default_document(self) -> dict:
        return default_permission_document(self.seed_owners, self.builtin_roles)

    async def _update(self, mutator):
        return await self.store.update(PERMISSIONS_DOCUMENT, mutator, self._default_document)

    # ========================================================================
    # READS
    # ========================================================================

    async def get_config(self) -> PermissionConfig:
        """Fresh snapshot. Raises ConfigUnavailable if storage fails."""
        document = await self.store.load(PERMISSIONS_DOCUMENT, self._default_document)
        return PermissionConfig.from_dict(document)

    async def get_user_level(self, member: Member) -> PermissionLevel:
        """Effective level, EVERYONE if the config cannot be read."""
        try:
            config = await self.get_config()
        except ConfigUnavailable:
            logger.warning("Permission config unavailable, treating %s as EVERYONE", member.id)
            return PermissionLevel.EVERYONE
        return resolve_user_level(member, config)

    async def authorize(self, member: Member, descriptor: CommandDescriptor) -> Tuple[bool, Optional[PermissionLevel], PermissionLevel]:
        """(allowed, required, current) computed from one snapshot.

        If the config cannot be read nothing is allowed and ``required`` is
        None: a stored override may have raised the command above its
        default, so the default is not a safe answer.
        """
        try:
            config = await self.get_config()
        except ConfigUnavailable:
            logger.warning("Permission config unavailable, denying /%s for %s", descriptor.name, member.id)
            return False, None, PermissionLevel.EVERYONE
        required = required_level(descriptor, config)
        current = resolve_user_level(member, config)
        return current >= required, required, current

    async def check(self, member: Member, descriptor: CommandDescriptor) -> bool:
        """Authorize a command invocation, failing closed on storage errors."""
        allowed, _, _ = await self.authorize(member, descriptor)
        return allowed

    async def get_required_level(self, descriptor: CommandDescriptor) -> Optional[PermissionLevel]:
        """Level the command needs right now, None if the config is unavailable."""
        try:
            config = await self.get_config()
        except ConfigUnavailable:
            return None
        return required_level(descriptor, config)

    async def is_owner(self, user_id) -> bool:
        try:
            config = await self.get_config()
        except ConfigUnavailable:
            return False
        return str(user_id) in config.owners

    async def can_use_line(self, member: Member) -> bool:
        try:
            config = await self.get_config()
        except ConfigUnavailable:
            return False
        return has_line_access(member, config)

    # ========================================================================
    # OWNERS
    # ========================================================================

    async def add_owner(self, user_id) -> MutationStatus:
        user_id = str(user_id)

        def mutate(doc: dict) -> MutationStatus:
            owners = section(doc, "owners", list)
            if user_id in owners:
                return MutationStatus.ALREADY_PRESENT
            owners.append(user_id)
            return MutationStatus.ADDED

        status = await self._update(mutate)
        logger.info(f"Owner {user_id}: {status.value}")
        return status

    async def remove_owner(self, user_id, actor_id=None) -> MutationStatus:
        """Remove an owner. The last remaining owner can never be removed.

        Raises:
            LastOwnerRemoval: ``user_id`` is the only owner left

        """
        user_id = str(user_id)

        def mutate(doc: dict) -> MutationStatus:
            owners = section(doc, "owners", list)
            if user_id not in owners:
                return MutationStatus.NOT_FOUND
            if len(owners) == 1:
                raise LastOwnerRemoval()
            owners.remove(user_id)
            return MutationStatus.REMOVED

        status = await self._update(mutate)
        logger.info(f"Owner {user_id}: {status.value} (by {actor_id})")
        return status

    # ========================================================================
    # ROLES
    # ========================================================================

    async def set_role_level(self, role_id, level) -> MutationStatus:
        """Grant ``level`` to holders of ``role_id``. Other levels are untouched."""
        level = parse_role_level(level)
        role_id = str(role_id)

        def mutate(doc: dict) -> MutationStatus:
            role_ids = section(section(doc, "roles", dict), level_key(level), list)
            if role_id in role_ids:
                return MutationStatus.ALREADY_PRESENT
            role_ids.append(role_id)
            return MutationStatus.ADDED

        status = await self._update(mutate)
        logger.info(f"Role {role_id} -> {level.name}: {status.value}")
        return status

    async def remove_role_from_level(self, role_id, level) -> MutationStatus:
        level = parse_role_level(level)
        role_id = str(role_id)

        def mutate(doc: dict) -> MutationStatus:
            role_ids = section(section(doc, "roles", dict), level_key(level), list)
            if role_id not in role_ids:
                return MutationStatus.NOT_FOUND
            role_ids.remove(role_id)
            return MutationStatus.REMOVED

        status = await self._update(mutate)
        logger.info(f"Role {role_id} x {level.name}: {status.value}")
        return status

    async def remove_role_everywhere(self, role_id) -> MutationStatus:
        role_id = str(role_id)

        def mutate(doc: dict) -> MutationStatus:
            removed = False
            for role_ids in section(doc, "roles", dict).values():
                if role_ids and role_id in role_ids:
                    role_ids.remove(role_id)
                    removed = True
            return MutationStatus.REMOVED if removed else MutationStatus.NOT_FOUND

        status = await self._update(mutate)
        logger.info(f"Role {role_id} removed from all levels: {status.value}")
        return status

    # ========================================================================
    # USER & COMMAND OVERRIDES
    # ========================================================================

    async def set_user_override(self, user_id, level) -> MutationStatus:
        return await self._set_override("user_overrides", str(user_id), parse_level(level))

    async def remove_user_override(self, user_id) -> MutationStatus:
        return await self._remove_override("user_overrides", str(user_id))

    async def set_command_override(self, command_name: str, level) -> MutationStatus:
        return await self._set_override("command_overrides", command_name.strip().lower(), parse_level(level))

    async def remove_command_override(self, command_name: str) -> MutationStatus:
        return await self._remove_override("command_overrides", command_name.strip().lower())

    async def _set_override(self, field: str, key: str, level: PermissionLevel) -> MutationStatus:
        def mutate(doc: dict) -> MutationStatus:
            overrides = section(doc, field, dict)
            if overrides.get(key) == int(level):
                return MutationStatus.ALREADY_PRESENT
            status = MutationStatus.UPDATED if key in overrides else MutationStatus.ADDED
            overrides[key] = int(level)
            return status

        status = await self._update(mutate)
        logger.info(f"{field}[{key}] = {level.name}: {status.value}")
        return status

    async def _remove_override(self, field: str, key: str) -> MutationStatus:
        def mutate(doc: dict) -> MutationStatus:
            overrides = section(doc, field, dict)
            if key not in overrides:
                return MutationStatus.NOT_FOUND
            del overrides[key]
            return MutationStatus.REMOVED

        status = await self._update(mutate)
        logger.info(f"{field}[{key}] removed: {status.value}")
        return status

    # ========================================================================
    # LINE ACCESS
    # ========================================================================

    async def add_line_access_role(self, role_id) -> MutationStatus:
        role_id = str(role_id)

        def mutate(doc: dict) -> MutationStatus:
            role_ids = section(doc, "line_access_roles", list)
            if role_id in role_ids:
                return MutationStatus.ALREADY_PRESENT
            role_ids.append(role_id)
            return MutationStatus.ADDED

        return await self._update(mutate)

    async def remove_line_access_role(self, role_id) -> MutationStatus:
        role_id = str(role_id)

        def mutate(doc: dict) -> MutationStatus:
            role_ids = section(doc, "line_access_roles", list)
            if role_id not in role_ids:
                return MutationStatus.NOT_FOUND
            role_ids.remove(role_id)
            return MutationStatus.REMOVED

        return await self._update(mutate)

    # ========================================================================
    # RESET
    # ========================================================================

    async def reset_to_defaults(self) -> MutationStatus:
        """Restore roles, overrides and line access. Owners are kept as-is."""
        builtin = self._default_document()

        def mutate(doc: dict) -> MutationStatus:
            for field in ("roles", "user_overrides", "command_overrides", "line_access_roles"):
                doc[field] = builtin[field]
            return MutationStatus.RESET

        status = await self._update(mutate)
        logger.info("Permissions reset to defaults (owners preserved)")
        return status
