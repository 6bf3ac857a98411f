"""
antartica.engine.emoji — Emoji Normalizer
==========================================

Custom emojis are identified by their snowflake, unicode emojis by the
literal character(s).  :class:`EmojiKey` folds both into one comparable
``key`` string, which is what every table and every bus event stores.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

import discord

from antartica.errors import ValidationError

# <:name:id> or <a:name:id>
CUSTOM_EMOJI_RE = re.compile(r"^<(a?):([a-zA-Z0-9_]+):([0-9]+)>$")


@dataclass(frozen=True, slots=True)
class EmojiKey:
    """A canonical emoji reference.

    ``id`` is set for custom emojis and ``None`` for unicode ones.  Two
    keys are equal when their ``key`` strings are equal, so a renamed
    custom emoji still matches its stored rows.  ``animated`` only
    affects :attr:`display`.
    """

    id: int | None
    name: str
    animated: bool = False

    @property
    def key(self) -> str:
        return str(self.id) if self.id else self.name

    @property
    def display(self) -> str:
        """Render the emoji the way Discord expects it inside a message."""
        if self.id:
            prefix = "a" if self.animated else ""
            return f"<{prefix}:{self.name}:{self.id}>"
        return self.name

    @property
    def is_custom(self) -> bool:
        return bool(self.id)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, EmojiKey):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    # -------------------------------------------------------------------
    # Constructors
    # -------------------------------------------------------------------
    @classmethod
    def from_partial(cls, emoji: discord.PartialEmoji) -> EmojiKey:
        """Build a key from a gateway payload's ``PartialEmoji``."""
        return cls(id=emoji.id, name=emoji.name or "", animated=bool(emoji.animated))

    @classmethod
    def from_stored(cls, key: str, name: str = "", animated: bool = False) -> EmojiKey:
        """Rebuild a key from its stored ``(emoji_key, emoji_name)`` pair."""
        if key.isdigit():
            return cls(id=int(key), name=name or key, animated=animated)
        return cls(id=None, name=key)


def parse_emoji(raw: str) -> EmojiKey:
    """Parse user input into an :class:`EmojiKey`.

    Accepts ``<:name:id>``, ``<a:name:id>`` or a literal unicode emoji /
    name.  Surrounding whitespace is ignored.

    Raises
    ------
    ValidationError
        If *raw* is empty.
    """
    value = (raw or "").strip()
    if not value:
        raise ValidationError("Emoji is required.")

    match = CUSTOM_EMOJI_RE.match(value)
    if match:
        return EmojiKey(
            id=int(match.group(3)), name=match.group(2), animated=match.group(1) == "a",
        )
    return EmojiKey(id=None, name=value)
