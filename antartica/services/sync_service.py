"""
antartica.services.sync_service — Static Message Synchronizer
==============================================================

Keeps live display messages in step with the data they show.

After a reaction changes a leaderboard, :meth:`refresh_leaderboards` finds
every ``leaderboard`` static message of that guild bound to the same emoji
and publishes an :class:`~antartica.engine.events.EditMessage` with a fresh
render.  :meth:`refresh_role_lists` does the same for ``role_list``
messages after a role toggle is created, updated or removed.

Only ``instant`` messages are refreshed.  ``hourly`` and ``daily`` are
stored but nothing schedules them.

Rendering reads the database, so the collection step runs on a worker
thread via :func:`run_db`; publishing happens back on the event loop.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from sqlalchemy import Engine

from antartica.constants import (
    DEFAULT_LEADERBOARD_TOP,
    MAX_LEADERBOARD_TOP,
    StaticMessageType,
    UpdateCadence,
)
from antartica.database.engine import get_session, require_engine, run_db
from antartica.database.models import StaticMessage
from antartica.engine.bus import EventBus
from antartica.engine.emoji import EmojiKey
from antartica.engine.events import EditMessage
from antartica.errors import AntarticaError
from antartica.services.embeds import build_leaderboard_embed, build_role_list_embed
from antartica.services.reaction_service import LeaderboardDelta, top_leaderboard_entries
from antartica.services.reaction_track_service import find_track
from antartica.services.role_toggle_service import list_role_toggles
from antartica.services.static_message_service import list_static_messages, load_config

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class LeaderboardConfig:
    emoji: EmojiKey
    top: int
    title: str = ""

    @classmethod
    def from_dict(cls, data: dict, default_top: int) -> LeaderboardConfig:
        """Validate a leaderboard config dict.

        ``top`` falls back to *default_top* and is capped at
        ``MAX_LEADERBOARD_TOP`` so the render fits one embed.

        Raises
        ------
        ValueError
            If the config names no emoji or has a non-integer ``top``.
        """
        key = str(data.get("emoji_key") or "").strip()
        name = str(data.get("emoji_name") or "").strip()
        if not key:
            raise ValueError("leaderboard config has no emoji_key")
        top = int(data.get("top") or 0)
        if top <= 0:
            top = default_top
        top = min(top, MAX_LEADERBOARD_TOP)
        return cls(
            emoji=EmojiKey.from_stored(key, name, bool(data.get("emoji_animated"))),
            top=top,
            title=str(data.get("title") or "").strip(),
        )


class StaticMessageSynchronizer:
    """Re-renders bound static messages and queues the edits."""

    def __init__(
        self,
        engine: Engine | None,
        bus: EventBus,
        default_top: int = DEFAULT_LEADERBOARD_TOP,
    ) -> None:
        self.engine = engine
        self.bus = bus
        self.default_top = default_top if default_top > 0 else DEFAULT_LEADERBOARD_TOP

    # -------------------------------------------------------------------
    # Rendering (sync, call through run_db)
    # -------------------------------------------------------------------
    def render_leaderboard(self, message: StaticMessage) -> EditMessage:
        """Build the edit for one leaderboard message.

        Raises
        ------
        ValueError
            If the message's config is unusable.
        """
        engine = require_engine(self.engine)
        config = LeaderboardConfig.from_dict(load_config(message), self.default_top)

        track_title = ""
        if not config.title:
            with get_session(engine) as session:
                track = find_track(session, message.guild_id, config.emoji.key)
                track_title = track.title if track else ""

        entries = top_leaderboard_entries(engine, message.guild_id, config.emoji.key, config.top)
        embed = build_leaderboard_embed(
            entries,
            emoji_display=config.emoji.display,
            title=config.title,
            track_title=track_title,
            top=config.top,
        )
        return EditMessage(
            channel_id=message.channel_id,
            message_id=message.message_id,
            embeds=(embed,),
        )

    def render_role_list(self, message: StaticMessage) -> EditMessage:
        engine = require_engine(self.engine)
        config = load_config(message)
        toggles = list_role_toggles(engine, message.guild_id)
        embed = build_role_list_embed(
            toggles,
            title=str(config.get("title") or ""),
            description=str(config.get("description") or ""),
        )
        return EditMessage(
            channel_id=message.channel_id,
            message_id=message.message_id,
            embeds=(embed,),
        )

    def render(self, message: StaticMessage) -> EditMessage:
        renderers = {
            StaticMessageType.LEADERBOARD.value: self.render_leaderboard,
            StaticMessageType.ROLE_LIST.value: self.render_role_list,
        }
        try:
            renderer = renderers[message.type]
        except KeyError:
            raise ValueError(f"unknown static message type {message.type!r}") from None
        return renderer(message)

    def collect_leaderboard_edits(self, guild_id: int, emoji_key: str) -> list[EditMessage]:
        """Edits for every instant leaderboard in *guild_id* bound to *emoji_key*."""
        messages = list_static_messages(
            require_engine(self.engine),
            guild_id,
            StaticMessageType.LEADERBOARD,
            UpdateCadence.INSTANT,
        )
        edits: list[EditMessage] = []
        for message in messages:
            try:
                config = LeaderboardConfig.from_dict(load_config(message), self.default_top)
            except (ValueError, TypeError):
                logger.warning(
                    "Invalid leaderboard config on message %s (guild %s) — skipping",
                    message.message_id, guild_id,
                )
                continue
            if config.emoji.key != emoji_key:
                continue
            try:
                edits.append(self.render_leaderboard(message))
            except AntarticaError as exc:
                logger.warning(
                    "Could not render leaderboard message %s (guild %s): %s",
                    message.message_id, guild_id, exc,
                )
        return edits

    def collect_role_list_edits(self, guild_id: int) -> list[EditMessage]:
        messages = list_static_messages(
            require_engine(self.engine),
            guild_id,
            StaticMessageType.ROLE_LIST,
            UpdateCadence.INSTANT,
        )
        edits: list[EditMessage] = []
        for message in messages:
            try:
                edits.append(self.render_role_list(message))
            except (ValueError, TypeError):
                logger.warning(
                    "Invalid role list config on message %s (guild %s) — skipping",
                    message.message_id, guild_id,
                )
            except AntarticaError as exc:
                logger.warning(
                    "Could not render role list message %s (guild %s): %s",
                    message.message_id, guild_id, exc,
                )
        return edits

    # -------------------------------------------------------------------
    # Async entry points
    # -------------------------------------------------------------------
    async def refresh_leaderboards(self, guild_id: int, emoji_key: str) -> int:
        """Queue edits for the leaderboards bound to one emoji; return the count."""
        edits = await run_db(self.collect_leaderboard_edits, guild_id, emoji_key)
        for edit in edits:
            await self.bus.publish_action(edit)
        if edits:
            logger.debug(
                "Queued %d leaderboard edit(s): guild=%s emoji=%s",
                len(edits), guild_id, emoji_key,
            )
        return len(edits)

    async def refresh_role_lists(self, guild_id: int) -> int:
        edits = await run_db(self.collect_role_list_edits, guild_id)
        for edit in edits:
            await self.bus.publish_action(edit)
        return len(edits)

    async def apply_deltas(self, deltas: Iterable[LeaderboardDelta]) -> int:
        """Refresh each (guild, emoji) touched by *deltas* exactly once."""
        seen: list[tuple[int, str]] = []
        for change in deltas:
            pair = (change.guild_id, change.emoji_key)
            if pair not in seen:
                seen.append(pair)

        queued = 0
        for guild_id, emoji_key in seen:
            queued += await self.refresh_leaderboards(guild_id, emoji_key)
        return queued

    async def render_now(self, message: StaticMessage) -> bool:
        """Render a just-created static message if its cadence is instant.

        Returns ``True`` if an edit was queued.
        """
        if message.update_cadence != UpdateCadence.INSTANT.value:
            return False
        edit = await run_db(self.render, message)
        await self.bus.publish_action(edit)
        return True

