"""
antartica.engine.events — Bus Events and Actions
=================================================

The closed set of messages that travel over the :class:`~antartica.engine.bus.EventBus`.

*Events* flow inbound (gateway → reconciler); *actions* flow outbound
(synchronizer / commands → dispatcher).  Both are frozen dataclasses so a
consumer can dispatch on ``type(item)`` against an exhaustive table: a
variant missing from that table is a programming error and raises.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import UTC, datetime

import discord

from antartica.engine.emoji import EmojiKey

__all__ = [
    "Event",
    "ReactionAdded",
    "ReactionRemoved",
    "ReactionRemovedForEmoji",
    "ReactionRemovedAll",
    "MessageDeleted",
    "InteractionReceived",
    "Action",
    "SendMessage",
    "EditMessage",
    "LogEvent",
    "LogField",
    "LogLevel",
]


# ---------------------------------------------------------------------------
# Inbound events
# ---------------------------------------------------------------------------
class Event:
    """Marker base for everything published on the events queue."""

    __slots__ = ()


@dataclass(frozen=True, slots=True)
class ReactionAdded(Event):
    """A user reacted to a message.

    ``author_id`` is ``None`` when the message author could not be resolved;
    such events can still increment an existing record but never create one.
    """

    guild_id: int
    channel_id: int
    message_id: int
    user_id: int
    author_id: int | None
    emoji: EmojiKey


@dataclass(frozen=True, slots=True)
class ReactionRemoved(Event):
    guild_id: int
    channel_id: int
    message_id: int
    user_id: int
    emoji: EmojiKey


@dataclass(frozen=True, slots=True)
class ReactionRemovedForEmoji(Event):
    """Every reaction of one emoji was cleared from a message."""

    guild_id: int
    channel_id: int
    message_id: int
    emoji: EmojiKey


@dataclass(frozen=True, slots=True)
class ReactionRemovedAll(Event):
    guild_id: int
    channel_id: int
    message_id: int


@dataclass(frozen=True, slots=True)
class MessageDeleted(Event):
    guild_id: int
    channel_id: int
    message_id: int


@dataclass(frozen=True, slots=True)
class InteractionReceived(Event):
    """Any interaction (slash command, component, …) seen on the gateway."""

    interaction_id: int
    type: str
    guild_id: int | None
    channel_id: int | None
    user_id: int


# ---------------------------------------------------------------------------
# Outbound actions
# ---------------------------------------------------------------------------
class Action:
    """Marker base for everything published on the actions queue."""

    __slots__ = ()


@dataclass(frozen=True, slots=True)
class SendMessage(Action):
    channel_id: int
    content: str = ""
    embeds: tuple[discord.Embed, ...] = ()


@dataclass(frozen=True, slots=True)
class EditMessage(Action):
    """Replace the body of an existing message (content and/or embeds)."""

    channel_id: int
    message_id: int
    content: str | None = None
    embeds: tuple[discord.Embed, ...] = ()


class LogLevel(enum.StrEnum):
    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class LogField:
    name: str
    value: str
    inline: bool = False


@dataclass(frozen=True, slots=True)
class LogEvent(Action):
    """A structured audit line, rendered by the dispatcher into the log."""

    guild_id: int | None
    category: str
    level: LogLevel
    title: str
    description: str = ""
    fields: tuple[LogField, ...] = ()
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
