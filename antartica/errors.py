"""
antartica.errors — Error Taxonomy
==================================

Exceptions raised by the store, repository and command layers.

A resolver "no" is *not* an exception: :func:`antartica.engine.roles.resolve`
returns a :class:`~antartica.engine.roles.Decision`.  Exceptions here mean
something could not be determined or could not be written.
"""

from __future__ import annotations


class AntarticaError(Exception):
    """Base class for every error raised by the bot's own code."""


class ConfigurationError(AntarticaError):
    """Required setup is missing (e.g. no database engine bound)."""


class LookupFailure(AntarticaError):
    """A store or platform read failed."""


class PersistenceFailure(AntarticaError):
    """A store write failed; the aggregate is left in its previous state."""


class ValidationError(AntarticaError):
    """Malformed user input, reported straight back to the caller."""


class Refusal(AntarticaError):
    """A command was understood but declined; the message is shown as-is."""
