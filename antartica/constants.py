"""
antartica.constants — Shared Constants
=======================================

Single source of truth for permission bits, static message kinds, update
cadences, and rendering defaults.  Import from here instead of duplicating
in cogs and services.
"""

from __future__ import annotations

import enum

import discord

# ---------------------------------------------------------------------------
# Bus sizing
# ---------------------------------------------------------------------------
DEFAULT_BUS_CAPACITY = 128

# ---------------------------------------------------------------------------
# Discord permission bits (used by the role hierarchy resolver)
# ---------------------------------------------------------------------------
PERMISSION_ADMINISTRATOR: int = discord.Permissions(administrator=True).value
PERMISSION_MANAGE_ROLES: int = discord.Permissions(manage_roles=True).value
ALL_PERMISSIONS: int = discord.Permissions.all().value


# ---------------------------------------------------------------------------
# Static messages
# ---------------------------------------------------------------------------
class StaticMessageType(enum.StrEnum):
    """What a live display message renders."""
    LEADERBOARD = "leaderboard"
    ROLE_LIST = "role_list"


class UpdateCadence(enum.StrEnum):
    """How often a static message is re-rendered.

    Only ``INSTANT`` triggers renders; ``HOURLY`` and ``DAILY`` are
    accepted and stored but have no scheduler behind them.
    """
    INSTANT = "instant"
    HOURLY = "hourly"
    DAILY = "daily"


# ---------------------------------------------------------------------------
# Rendering defaults
# ---------------------------------------------------------------------------
DEFAULT_LEADERBOARD_TOP = 10
MAX_LEADERBOARD_TOP = 50
DEFAULT_LEADERBOARD_TITLE = "Reaction Leaderboard"
EMPTY_LEADERBOARD_TEXT = "No reactions tracked yet."

DEFAULT_ROLE_LIST_TITLE = "Self-assignable roles"
EMPTY_ROLE_LIST_TEXT = "No self-assignable roles are configured."

# Discord embed limits (characters)
EMBED_DESCRIPTION_LIMIT = 4096
EMBED_FIELD_LIMIT = 1024
ROLE_LIST_MAX_FIELDS = 4

# Slash command names referenced from rendered text
SELF_TOGGLE_COMMAND = "toggle-role"
