"""
antartica.engine.role_repository — Cache-First Role Lookups
============================================================

Feeds :func:`antartica.engine.roles.resolve` with a :class:`RoleTable` and
an :class:`Actor`.

Two sources, composed by :class:`ReadThroughRoleRepository`:

- :class:`SnapshotRoleRepository` reads discord.py's in-memory cache and
  returns ``None`` for anything it doesn't have.
- :class:`RemoteRoleRepository` asks the REST API and raises
  :class:`~antartica.errors.LookupFailure` when Discord can't answer.

If the snapshot is missing the guild, the member, ``@everyone`` or any role
the actor holds, the whole table is rebuilt from a REST roles fetch.  A REST
failure propagates so callers can tell "denied" from "couldn't check".
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, replace

import discord

from antartica.engine.roles import Actor, RoleInfo, RoleTable
from antartica.errors import LookupFailure

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RoleContext:
    """Everything the resolver needs for one decision."""

    table: RoleTable
    actor: Actor


def actor_from_member(member: discord.Member, *, owner_id: int | None = None) -> Actor:
    """Build an :class:`Actor` from a discord.py ``Member``."""
    return Actor(
        user_id=member.id,
        role_ids=frozenset(role.id for role in member.roles),
        is_owner=owner_id is not None and member.id == owner_id,
        is_bot=member.bot,
    )


def table_from_roles(guild_id: int, roles) -> RoleTable:
    return RoleTable.from_roles(guild_id, (RoleInfo.from_discord(r) for r in roles))


# ---------------------------------------------------------------------------
# Snapshot (gateway cache)
# ---------------------------------------------------------------------------
class SnapshotRoleRepository:
    """Reads roles and members from the client's gateway cache."""

    def __init__(self, client: discord.Client) -> None:
        self.client = client

    def role_table(self, guild_id: int) -> RoleTable | None:
        guild = self.client.get_guild(guild_id)
        if guild is None:
            return None
        return table_from_roles(guild_id, guild.roles)

    def actor(self, guild_id: int, user_id: int) -> Actor | None:
        guild = self.client.get_guild(guild_id)
        if guild is None:
            return None
        member = guild.get_member(user_id)
        if member is None:
            return None
        return actor_from_member(member, owner_id=guild.owner_id)

    def bot_actor(self, guild_id: int) -> Actor | None:
        guild = self.client.get_guild(guild_id)
        if guild is None or guild.me is None:
            return None
        return actor_from_member(guild.me, owner_id=guild.owner_id)


# ---------------------------------------------------------------------------
# Remote (REST)
# ---------------------------------------------------------------------------
class RemoteRoleRepository:
    """Fetches roles and members over REST."""

    def __init__(self, client: discord.Client) -> None:
        self.client = client

    async def _guild(self, guild_id: int) -> discord.Guild:
        guild = self.client.get_guild(guild_id)
        if guild is not None:
            return guild
        try:
            return await self.client.fetch_guild(guild_id)
        except discord.HTTPException as exc:
            raise LookupFailure(f"could not fetch guild {guild_id}: {exc}") from exc

    async def role_table(self, guild_id: int) -> RoleTable:
        guild = await self._guild(guild_id)
        try:
            roles = await guild.fetch_roles()
        except discord.HTTPException as exc:
            raise LookupFailure(f"could not fetch roles for guild {guild_id}: {exc}") from exc
        return table_from_roles(guild_id, roles)

    async def actor(self, guild_id: int, user_id: int) -> Actor:
        guild = await self._guild(guild_id)
        try:
            member = await guild.fetch_member(user_id)
        except discord.HTTPException as exc:
            raise LookupFailure(
                f"could not fetch member {user_id} in guild {guild_id}: {exc}"
            ) from exc
        return actor_from_member(member, owner_id=guild.owner_id)

    async def bot_actor(self, guild_id: int) -> Actor:
        if self.client.user is None:
            raise LookupFailure("bot user is not known yet")
        actor = await self.actor(guild_id, self.client.user.id)
        return replace(actor, is_bot=True)


# ---------------------------------------------------------------------------
# Read-through composition
# ---------------------------------------------------------------------------
class ReadThroughRoleRepository:
    """Snapshot first, REST when the snapshot is incomplete."""

    def __init__(self, snapshot: SnapshotRoleRepository, remote: RemoteRoleRepository) -> None:
        self.snapshot = snapshot
        self.remote = remote

    async def load(
        self,
        guild_id: int,
        user_id: int,
        *,
        actor: Actor | None = None,
        role_ids: Iterable[int] = (),
    ) -> RoleContext:
        """Return the role table and actor for *user_id* in *guild_id*.

        *actor* may be passed when the caller already holds the member
        (e.g. from an interaction payload).  *role_ids* are extra roles
        (typically the target) the table must contain.

        Raises
        ------
        LookupFailure
            If the snapshot is incomplete and REST fails.
        """
        if actor is None:
            actor = self.snapshot.actor(guild_id, user_id)
        if actor is None:
            actor = await self.remote.actor(guild_id, user_id)
        table = await self._table_for(guild_id, actor, role_ids)
        return RoleContext(table=table, actor=actor)

    async def load_bot(self, guild_id: int, *, role_ids: Iterable[int] = ()) -> RoleContext:
        """Return the role table and the bot's own :class:`Actor`."""
        actor = self.snapshot.bot_actor(guild_id)
        if actor is None:
            actor = await self.remote.bot_actor(guild_id)
        elif not actor.is_bot:
            actor = replace(actor, is_bot=True)
        table = await self._table_for(guild_id, actor, role_ids)
        return RoleContext(table=table, actor=actor)

    async def _table_for(
        self, guild_id: int, actor: Actor, role_ids: Iterable[int] = (),
    ) -> RoleTable:
        table = self.snapshot.role_table(guild_id)
        if table is not None:
            missing = table.missing({*actor.role_ids, *role_ids})
            if not missing:
                return table
            logger.debug(
                "Role snapshot for guild %s missing %s — fetching roles",
                guild_id, missing,
            )
        return await self.remote.role_table(guild_id)
