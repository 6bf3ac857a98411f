"""
antartica.services.role_service — Role Toggle Decisions & Actions
==================================================================

Glue between the pure resolver (:mod:`antartica.engine.roles`), the
read-through role repository and the platform:

- :func:`check_manage_role` — may a moderator configure this role as a
  toggle?  Both the moderator and the bot must pass.
- :func:`toggle_self_role` — a member adds or removes a configured role on
  themselves.  Nothing is sent to Discord unless every check passes.
- :func:`list_self_roles` — which configured roles the member holds and
  which they could add.

Denials come back as :class:`~antartica.engine.roles.Decision`.  A failure
to *load* role data raises :class:`~antartica.errors.LookupFailure` so the
caller can say "couldn't check" instead of "no".
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from sqlalchemy import Engine

from antartica.database.engine import run_db
from antartica.engine.role_repository import ReadThroughRoleRepository
from antartica.engine.roles import Actor, Decision, deny, resolve
from antartica.services.embeds import format_role_line
from antartica.services.role_toggle_service import get_role_toggle, list_role_toggles

logger = logging.getLogger(__name__)

REASON_NOT_SELF_ASSIGNABLE = "That role is not self-assignable."
REASON_ROLE_MISSING = "That role no longer exists."


class RolePlatform(Protocol):
    async def set_member_role(
        self, guild_id: int, user_id: int, role_id: int, *, add: bool, reason: str = "",
    ) -> None: ...


@dataclass(frozen=True, slots=True)
class ToggleOutcome:
    decision: Decision
    added: bool | None = None  # None when nothing was changed

    def __bool__(self) -> bool:
        return self.decision.allowed


# ---------------------------------------------------------------------------
# Moderator check
# ---------------------------------------------------------------------------
async def check_manage_role(
    roles: ReadThroughRoleRepository,
    guild_id: int,
    user_id: int,
    role_id: int,
    *,
    actor: Actor | None = None,
) -> Decision:
    """Decide whether *user_id* may add/remove *role_id* as a role toggle.

    The moderator is checked first, then the bot.

    Raises
    ------
    LookupFailure
        If the moderator's or the bot's role data can't be loaded.
    """
    context = await roles.load(guild_id, user_id, actor=actor, role_ids=[role_id])
    target = context.table.get(role_id)
    if target is None:
        return deny(REASON_ROLE_MISSING)

    decision = resolve(context.actor, context.table, target)
    if not decision:
        return decision
    return await check_bot_can_manage(roles, guild_id, role_id)


async def check_bot_can_manage(
    roles: ReadThroughRoleRepository, guild_id: int, role_id: int,
) -> Decision:
    bot = await roles.load_bot(guild_id, role_ids=[role_id])
    target = bot.table.get(role_id)
    if target is None:
        return deny(REASON_ROLE_MISSING)
    return resolve(bot.actor, bot.table, target)


# ---------------------------------------------------------------------------
# Self-service
# ---------------------------------------------------------------------------
async def toggle_self_role(
    engine: Engine,
    roles: ReadThroughRoleRepository,
    platform: RolePlatform,
    guild_id: int,
    user_id: int,
    role_id: int,
    *,
    actor: Actor | None = None,
) -> ToggleOutcome:
    """Add *role_id* to the member if they lack it, otherwise remove it.

    Checks, in order: the role is a configured toggle, the member meets its
    permission threshold, and the bot can manage the role.

    Raises
    ------
    LookupFailure
        If the toggle or role data can't be loaded.
    """
    toggle = await run_db(get_role_toggle, engine, guild_id, role_id)
    if toggle is None:
        return ToggleOutcome(deny(REASON_NOT_SELF_ASSIGNABLE))

    context = await roles.load(guild_id, user_id, actor=actor, role_ids=[role_id])
    target = context.table.get(role_id)
    if target is None:
        return ToggleOutcome(deny(REASON_ROLE_MISSING))

    decision = resolve(
        context.actor, context.table, target, toggle.required_permissions, self_service=True,
    )
    if not decision:
        return ToggleOutcome(decision)

    decision = await check_bot_can_manage(roles, guild_id, role_id)
    if not decision:
        return ToggleOutcome(decision)

    add = role_id not in context.actor.role_ids
    await platform.set_member_role(
        guild_id, user_id, role_id, add=add, reason="Self-service role toggle",
    )
    logger.info(
        "Role %s %s member %s in guild %s",
        role_id, "added to" if add else "removed from", user_id, guild_id,
    )
    return ToggleOutcome(decision, added=add)


async def list_self_roles(
    engine: Engine,
    roles: ReadThroughRoleRepository,
    guild_id: int,
    user_id: int,
    *,
    actor: Actor | None = None,
) -> tuple[list[str], list[str]]:
    """Return ``(have, available)`` role lines for the member.

    Toggles the member doesn't meet the threshold for, or the bot can't
    manage, are left out of both lists.  If the bot's own role data can't
    be loaded this raises :class:`LookupFailure`.
    """
    toggles = await run_db(list_role_toggles, engine, guild_id)
    if not toggles:
        return [], []

    toggle_ids = [t.role_id for t in toggles]
    context = await roles.load(guild_id, user_id, actor=actor, role_ids=toggle_ids)
    bot = await roles.load_bot(guild_id, role_ids=toggle_ids)

    have: list[str] = []
    available: list[str] = []
    for toggle in toggles:
        target = context.table.get(toggle.role_id)
        if target is None:
            logger.debug("Toggle role %s missing in guild %s", toggle.role_id, guild_id)
            continue
        if not resolve(
            context.actor, context.table, target, toggle.required_permissions,
            self_service=True,
        ):
            continue
        bot_target = bot.table.get(toggle.role_id)
        if bot_target is None or not resolve(bot.actor, bot.table, bot_target):
            continue

        line = format_role_line(toggle.role_id, toggle.description)
        if toggle.role_id in context.actor.role_ids:
            have.append(line)
        else:
            available.append(line)
    return have, available

