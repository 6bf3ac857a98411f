"""
antartica.engine.roles — Role Hierarchy Resolver
=================================================

Pure decision logic for "may this actor change membership of this role?".

Nothing here touches Discord or the database: callers hand in a
:class:`RoleTable` snapshot and an :class:`Actor` (built by
:mod:`antartica.engine.role_repository`) and get back a :class:`Decision`.
A denial is a normal outcome, not an exception.

Rules, in order:

1. The ``@everyone`` role (id == guild id) is never toggleable.
2. Managed roles (bot / integration / booster roles) are never toggleable.
3. Effective permissions are the union of the actor's role bits, with
   ``@everyone`` as the base.  The administrator bit expands to all bits.
4. Human moderators need Manage Roles and, unless they own the guild or
   hold administrator, a top role strictly above the target.
5. The bot needs Manage Roles and a top role strictly above the target,
   always.
6. Self-service toggles only check the role's permission threshold.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

import discord

from antartica.constants import (
    ALL_PERMISSIONS,
    PERMISSION_ADMINISTRATOR,
    PERMISSION_MANAGE_ROLES,
)

# ---------------------------------------------------------------------------
# Refusal reasons (shown to users verbatim)
# ---------------------------------------------------------------------------
REASON_EVERYONE = "You can't toggle the @everyone role."
REASON_MANAGED = "You can't toggle managed roles."
REASON_USER_MANAGE_ROLES = "You need the Manage Roles permission."
REASON_USER_HIERARCHY = "You can only manage roles below your highest role."
REASON_BOT_MANAGE_ROLES = "Bot is missing the Manage Roles permission."
REASON_BOT_HIERARCHY = "Bot cannot manage that role (role is above the bot)."
REASON_THRESHOLD = "You don't have permission to toggle that role."


# ---------------------------------------------------------------------------
# Snapshot types
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class RoleInfo:
    id: int
    position: int
    permissions: int
    managed: bool = False

    @classmethod
    def from_discord(cls, role: discord.Role) -> RoleInfo:
        return cls(
            id=role.id,
            position=role.position,
            permissions=role.permissions.value,
            managed=role.managed,
        )


@dataclass(frozen=True, slots=True)
class RoleTable:
    """Every role of one guild, keyed by role id."""

    guild_id: int
    roles: Mapping[int, RoleInfo] = field(default_factory=dict)

    @classmethod
    def from_roles(cls, guild_id: int, roles: Iterable[RoleInfo]) -> RoleTable:
        return cls(guild_id=guild_id, roles={r.id: r for r in roles})

    def get(self, role_id: int) -> RoleInfo | None:
        return self.roles.get(role_id)

    @property
    def everyone(self) -> RoleInfo | None:
        return self.roles.get(self.guild_id)

    def missing(self, role_ids: Iterable[int]) -> list[int]:
        """Return the ids in *role_ids* (plus ``@everyone``) absent from the table."""
        wanted = {self.guild_id, *role_ids}
        return sorted(rid for rid in wanted if rid not in self.roles)


@dataclass(frozen=True, slots=True)
class Actor:
    """Whoever wants to change a role: a guild member or the bot itself."""

    user_id: int
    role_ids: frozenset[int] = frozenset()
    is_owner: bool = False
    is_bot: bool = False


@dataclass(frozen=True, slots=True)
class HierarchyState:
    """Effective permission bits and top role position of one actor."""

    permissions: int
    top_position: int

    def has(self, bits: int) -> bool:
        return (self.permissions & bits) == bits

    @property
    def is_admin(self) -> bool:
        return self.has(PERMISSION_ADMINISTRATOR)


@dataclass(frozen=True, slots=True)
class Decision:
    allowed: bool
    reason: str = ""

    def __bool__(self) -> bool:
        return self.allowed


ALLOW = Decision(True)


def deny(reason: str) -> Decision:
    return Decision(False, reason)


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------
def compute_state(actor: Actor, table: RoleTable) -> HierarchyState:
    """Fold the actor's roles into a :class:`HierarchyState`.

    Role ids not present in *table* are ignored; the repository is
    responsible for handing in a complete table.
    """
    everyone = table.everyone
    permissions = everyone.permissions if everyone else 0
    top_position = everyone.position if everyone else 0

    for role_id in actor.role_ids:
        role = table.get(role_id)
        if role is None:
            continue
        permissions |= role.permissions
        if role.position > top_position:
            top_position = role.position

    if permissions & PERMISSION_ADMINISTRATOR:
        permissions = ALL_PERMISSIONS
    return HierarchyState(permissions=permissions, top_position=top_position)


def resolve(
    actor: Actor,
    table: RoleTable,
    target: RoleInfo,
    required_permissions: int = 0,
    *,
    self_service: bool = False,
) -> Decision:
    """Decide whether *actor* may add or remove *target*.

    Parameters
    ----------
    actor:
        The member (or the bot, ``actor.is_bot``) attempting the change.
    table:
        All roles of the guild.
    target:
        The role being toggled.
    required_permissions:
        Extra permission bits the caller must hold (``0`` = none).
    self_service:
        ``True`` when a member toggles a configured role on themselves;
        only the threshold is checked for them.

    Returns
    -------
    Decision
        Truthy when allowed; otherwise carries a user-facing ``reason``.
    """
    if target.id == table.guild_id:
        return deny(REASON_EVERYONE)
    if target.managed:
        return deny(REASON_MANAGED)

    state = compute_state(actor, table)

    if actor.is_bot:
        if not state.has(PERMISSION_MANAGE_ROLES):
            return deny(REASON_BOT_MANAGE_ROLES)
        if target.position >= state.top_position:
            return deny(REASON_BOT_HIERARCHY)
        return ALLOW

    if not self_service:
        if not state.has(PERMISSION_MANAGE_ROLES):
            return deny(REASON_USER_MANAGE_ROLES)
        if not (actor.is_owner or state.is_admin) and target.position >= state.top_position:
            return deny(REASON_USER_HIERARCHY)

    if required_permissions and not state.has(required_permissions):
        return deny(REASON_THRESHOLD)
    return ALLOW
