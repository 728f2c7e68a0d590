"""Permission checks for slash and prefix commands

Every command declares the level it needs with ``require_level`` (or a
``LeveledGroup`` for command groups). The declared level is the default;
a command override stored in the permission document replaces it at
check time. Overrides are keyed by the top-level command name, so one
override covers every subcommand of a group.
"""
from collections import defaultdict
from typing import Dict, List, Optional, Tuple

from discord import app_commands
from discord.ext import commands

from .config import logger
from .permissions import CommandDescriptor, Member, PermissionLevel, command_category


def denial_reason(required: Optional[PermissionLevel]) -> str:
    if required is None:
        return "Permission configuration unavailable"
    return f"Requires {required.display_name}"


class PermissionDenied(app_commands.CheckFailure):
    """Slash command refused because the member's level is too low."""

    def __init__(self, required: Optional[PermissionLevel], current: Optional[PermissionLevel] = None):
        self.required = required
        self.current = current
        super().__init__(denial_reason(required))


class PrefixPermissionDenied(commands.CheckFailure):
    """Prefix command counterpart of PermissionDenied."""

    def __init__(self, required: Optional[PermissionLevel], current: Optional[PermissionLevel] = None):
        self.required = required
        self.current = current
        super().__init__(denial_reason(required))

# ============================================================================
# COMMAND REGISTRY
# ============================================================================

class CommandRegistry:
    """Default level of every registered top-level command."""

    def __init__(self):
        self.defaults: Dict[str, PermissionLevel] = {}

    def register(self, name: str, level: PermissionLevel):
        self.defaults[name.lower()] = level

    def __contains__(self, name: str) -> bool:
        return name.lower() in self.defaults

    def descriptor(self, name: str) -> CommandDescriptor:
        """Descriptor for a command; unknown commands need EVERYONE."""
        name = name.lower()
        return CommandDescriptor(name, self.defaults.get(name, PermissionLevel.EVERYONE))

    def names(self) -> List[str]:
        return sorted(self.defaults)

    def by_category(
        self,
        overrides: Optional[Dict[str, PermissionLevel]] = None,
        max_level: Optional[PermissionLevel] = None,
    ) -> Dict[str, List[str]]:
        """Commands grouped for the help menu by the level they require.

        With ``max_level`` only commands that level may run are listed.
        """
        overrides = overrides or {}
        grouped = defaultdict(list)
        for name in self.names():
            level = overrides.get(name, self.defaults[name])
            if max_level is not None and level > max_level:
                continue
            grouped[command_category(level)].append(name)
        return dict(grouped)

# ============================================================================
# CHECK EVALUATION
# ============================================================================

async def evaluate(permissions, user, command_name: str, registry: CommandRegistry) -> Tuple[bool, Optional[PermissionLevel], PermissionLevel]:
    """(allowed, required, current) for ``user`` running ``command_name``.

    ``required`` is None when the permission config could not be read.
    """
    member = Member.from_discord(user)
    descriptor = registry.descriptor(command_name)
    allowed, required, current = await permissions.authorize(member, descriptor)
    if not allowed:
        needed = required.name if required is not None else "config unavailable"
        logger.info(f"🚫 {user} ({member.id}) denied /{descriptor.name}: {current.name} < {needed}")
    return allowed, required, current


def root_command_name(command) -> str:
    root = getattr(command, "root_parent", None)
    return (root or command).name


def require_level(services, level: PermissionLevel):
    """Attach a permission check to a slash or prefix command.

    Apply it above ``@bot.tree.command`` / ``@bot.command`` so it receives
    the command object.
    """
    def decorator(command):
        services.registry.register(command.name, level)

        if isinstance(command, commands.Command):
            async def prefix_predicate(ctx: commands.Context) -> bool:
                allowed, required, current = await evaluate(
                    services.permissions, ctx.author, command.name, services.registry,
                )
                if not allowed:
                    raise PrefixPermissionDenied(required, current)
                return True

            command.add_check(prefix_predicate)
        else:
            async def predicate(interaction) -> bool:
                allowed, required, current = await evaluate(
                    services.permissions, interaction.user, root_command_name(interaction.command), services.registry,
                )
                if not allowed:
                    raise PermissionDenied(required, current)
                return True

            command.add_check(predicate)
        return command

    return decorator


class LeveledGroup(app_commands.Group):
    """Slash command group where every subcommand needs the same level."""

    def __init__(self, services, level: PermissionLevel, **kwargs):
        super().__init__(**kwargs)
        self.services = services
        self.required_level = level
        services.registry.register(self.name, level)

    async def interaction_check(self, interaction) -> bool:
        allowed, required, current = await evaluate(
            self.services.permissions, interaction.user, self.name, self.services.registry,
        )
        if not allowed:
            raise PermissionDenied(required, current)
        return True
