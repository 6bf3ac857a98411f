"""
antartica.bot.responses — Ephemeral Command Replies
====================================================

Shared reply helpers for slash commands, plus the error handler every
command cog installs as ``cog_app_command_error``.
"""

from __future__ import annotations

import logging

import discord
from discord import app_commands

from antartica.errors import (
    AntarticaError,
    ConfigurationError,
    LookupFailure,
    Refusal,
    ValidationError,
)
from antartica.services.embeds import Tone, tone_embed

logger = logging.getLogger(__name__)


async def respond(
    interaction: discord.Interaction,
    tone: Tone,
    message: str = "",
    *,
    embed: discord.Embed | None = None,
) -> None:
    """Send an ephemeral toned reply, as a follow-up if already responded."""
    embed = embed or tone_embed(tone, message)
    if interaction.response.is_done():
        await interaction.followup.send(embed=embed, ephemeral=True)
    else:
        await interaction.response.send_message(embed=embed, ephemeral=True)


async def handle_command_error(
    interaction: discord.Interaction, error: app_commands.AppCommandError,
) -> None:
    """Turn command failures into user-facing replies.

    Validation problems are shown verbatim; store and lookup problems get
    a generic message and a log line.  Anything else is re-raised.
    """
    original = getattr(error, "original", error)

    if isinstance(error, app_commands.NoPrivateMessage):
        await respond(interaction, Tone.DECLINE, "This command can only be used in a server.")
    elif isinstance(error, app_commands.CheckFailure):
        await respond(interaction, Tone.DECLINE, "You don't have permission to use this command.")
    elif isinstance(original, ValidationError):
        await respond(interaction, Tone.WARN, str(original))
    elif isinstance(original, Refusal):
        await respond(interaction, Tone.DECLINE, str(original))
    elif isinstance(original, ConfigurationError):
        logger.error("Command %s unavailable: %s", _command_name(interaction), original)
        await respond(interaction, Tone.ERROR, "The bot is not fully configured yet.")
    elif isinstance(original, LookupFailure):
        logger.warning("Command %s lookup failed: %s", _command_name(interaction), original)
        await respond(interaction, Tone.ERROR, "Couldn't load the data needed. Try again shortly.")
    elif isinstance(original, AntarticaError):
        logger.error("Command %s failed: %s", _command_name(interaction), original)
        await respond(interaction, Tone.ERROR, "Failed to save your changes.")
    else:
        raise error


def _command_name(interaction: discord.Interaction) -> str:
    command = interaction.command
    return command.qualified_name if command else "?"
