"""
antartica.services.embeds — Discord embed builders
===================================================

All embed construction lives here so cogs and the synchronizer only supply
data.  Command replies use :func:`tone_embed`; live displays use
:func:`build_leaderboard_embed` and :func:`build_role_list_embed`.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable, Sequence

import discord

from antartica.constants import (
    DEFAULT_LEADERBOARD_TITLE,
    DEFAULT_LEADERBOARD_TOP,
    DEFAULT_ROLE_LIST_TITLE,
    EMBED_DESCRIPTION_LIMIT,
    EMBED_FIELD_LIMIT,
    EMPTY_LEADERBOARD_TEXT,
    EMPTY_ROLE_LIST_TEXT,
    ROLE_LIST_MAX_FIELDS,
    SELF_TOGGLE_COMMAND,
)
from antartica.database.models import ReactionLeaderboardEntry, RoleToggle


class Tone(enum.StrEnum):
    INFO = "info"
    SUCCESS = "success"
    DECLINE = "decline"
    QUESTION = "question"
    ERROR = "error"
    WARN = "warn"
    DEBUG = "debug"
    NEUTRAL = "neutral"


TONE_COLORS: dict[Tone, int] = {
    Tone.INFO: 0x3B82F6,
    Tone.SUCCESS: 0x22C55E,
    Tone.DECLINE: 0xDC2626,
    Tone.QUESTION: 0x06B6D4,
    Tone.ERROR: 0xEF4444,
    Tone.WARN: 0xF59E0B,
    Tone.DEBUG: 0x6B7280,
    Tone.NEUTRAL: 0x9CA3AF,
}

TONE_TITLES: dict[Tone, str] = {
    Tone.INFO: "Info",
    Tone.SUCCESS: "Success",
    Tone.DECLINE: "Declined",
    Tone.QUESTION: "Question",
    Tone.ERROR: "Error",
    Tone.WARN: "Warning",
    Tone.DEBUG: "Debug",
    Tone.NEUTRAL: "Note",
}


def tone_embed(
    tone: Tone,
    description: str = "",
    *,
    title: str = "",
    fields: Iterable[tuple[str, str]] = (),
) -> discord.Embed:
    """Build a themed reply embed; blank *title* falls back to the tone's."""
    tone = Tone(tone)
    embed = discord.Embed(
        title=title.strip() or TONE_TITLES[tone],
        description=description.strip() or None,
        color=discord.Color(TONE_COLORS[tone]),
    )
    for name, value in fields:
        embed.add_field(name=name, value=value, inline=False)
    return embed


# ---------------------------------------------------------------------------
# Size limits
# ---------------------------------------------------------------------------
# Room kept free for the "…and N more" line
_OVERFLOW_RESERVE = 32


def fit_lines(lines: Sequence[str], limit: int) -> str:
    """Join *lines* with newlines, dropping the tail so the text fits *limit*.

    Dropped lines are summarised as ``…and N more``.
    """
    text = "\n".join(lines)
    if len(text) <= limit:
        return text

    budget = limit - _OVERFLOW_RESERVE
    kept: list[str] = []
    used = 0
    for line in lines:
        cost = len(line) + (1 if kept else 0)
        if used + cost > budget:
            break
        kept.append(line)
        used += cost
    kept.append(f"…and {len(lines) - len(kept)} more")
    return "\n".join(kept)


def chunk_lines(lines: Sequence[str], limit: int, max_chunks: int) -> list[str]:
    """Pack *lines* into at most *max_chunks* texts of at most *limit* chars.

    Whatever does not fit goes into the last chunk via :func:`fit_lines`.
    """
    if not lines:
        return []

    chunks: list[list[str]] = [[]]
    used = 0
    for line in lines:
        cost = len(line) + (1 if chunks[-1] else 0)
        if chunks[-1] and used + cost > limit:
            chunks.append([])
            used, cost = 0, len(line)
        chunks[-1].append(line)
        used += cost

    head = chunks[:max_chunks - 1]
    rest = [line for chunk in chunks[max_chunks - 1:] for line in chunk]
    texts = [fit_lines(chunk, limit) for chunk in head]
    if rest:
        texts.append(fit_lines(rest, limit))
    return texts


# ---------------------------------------------------------------------------
# Leaderboard
# ---------------------------------------------------------------------------
def format_leaderboard_lines(entries: Sequence[ReactionLeaderboardEntry], top: int) -> list[str]:
    """``NN. <@user> — count`` lines, rank zero-padded to the shown width."""
    shown = list(entries[:top]) if top > 0 else []
    width = len(str(len(shown)))
    return [
        f"{rank:0{width}d}. <@{entry.user_id}> — {entry.count}"
        for rank, entry in enumerate(shown, start=1)
    ]


def build_leaderboard_embed(
    entries: Sequence[ReactionLeaderboardEntry],
    *,
    emoji_display: str,
    title: str = "",
    track_title: str = "",
    top: int = DEFAULT_LEADERBOARD_TOP,
) -> discord.Embed:
    """Render a reaction leaderboard.

    Title precedence: explicit *title*, then the track's title, then
    ``"Reaction Leaderboard"``; always prefixed by the emoji.
    """
    heading = title.strip() or track_title.strip() or DEFAULT_LEADERBOARD_TITLE
    if emoji_display:
        heading = f"{emoji_display} {heading}"

    lines = format_leaderboard_lines(entries, top)
    return tone_embed(
        Tone.INFO,
        fit_lines(lines, EMBED_DESCRIPTION_LIMIT) or EMPTY_LEADERBOARD_TEXT,
        title=heading,
    )


def build_leaderboard_placeholder(emoji_display: str) -> discord.Embed:
    return tone_embed(
        Tone.NEUTRAL,
        "Leaderboard will appear here shortly.",
        title=f"{emoji_display} {DEFAULT_LEADERBOARD_TITLE}".strip(),
    )


# ---------------------------------------------------------------------------
# Role list
# ---------------------------------------------------------------------------
def format_role_line(role_id: int, description: str = "") -> str:
    description = (description or "").strip()
    if description:
        return f"<@&{role_id}> - {description}"
    return f"<@&{role_id}>"


def build_role_list_embed(
    toggles: Iterable[RoleToggle],
    *,
    title: str = "",
    description: str = "",
) -> discord.Embed:
    """Render the public list of self-assignable roles, ordered by role id.

    Long lists spill over into ``Roles (cont.)`` fields.
    """
    lines = [
        format_role_line(t.role_id, t.description)
        for t in sorted(toggles, key=lambda t: t.role_id)
    ]
    chunks = chunk_lines(lines, EMBED_FIELD_LIMIT, ROLE_LIST_MAX_FIELDS) or [EMPTY_ROLE_LIST_TEXT]
    return tone_embed(
        Tone.INFO,
        description.strip() or f"Use `/{SELF_TOGGLE_COMMAND}` to add or remove roles.",
        title=title.strip() or DEFAULT_ROLE_LIST_TITLE,
        fields=[
            ("Roles" if i == 0 else "Roles (cont.)", chunk)
            for i, chunk in enumerate(chunks)
        ],
    )


def build_self_role_embed(have: Sequence[str], available: Sequence[str]) -> discord.Embed:
    """The caller's personal view: roles they hold and roles they may add."""
    return tone_embed(
        Tone.INFO,
        f"Use `/{SELF_TOGGLE_COMMAND}` with a role to toggle it.",
        title=DEFAULT_ROLE_LIST_TITLE,
        fields=[
            ("You have", fit_lines(have, EMBED_FIELD_LIMIT) or "None"),
            ("Available", fit_lines(available, EMBED_FIELD_LIMIT) or "None"),
        ],
    )
