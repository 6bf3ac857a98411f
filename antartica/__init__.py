"""
Antartica — Reaction Leaderboards & Self-Service Roles for Discord
===================================================================
Tracks opted-in emoji reactions into per-message records and per-user
leaderboards, keeps "live" leaderboard and role-list messages in sync with
that state, and lets members toggle self-assignable roles behind a
role-hierarchy permission check.

Package layout::

    antartica/
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # Permission bits, static message kinds, defaults
    ├── errors.py          # ConfigurationError, LookupFailure, …
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + async helper
    │   └── models.py      # reaction_tracks, reaction_records, …
    ├── engine/
    │   ├── events.py      # Bus events and actions (tagged dataclasses)
    │   ├── bus.py         # Two bounded FIFO queues with backpressure
    │   ├── emoji.py       # Emoji normalizer (EmojiKey)
    │   ├── roles.py       # Pure role-hierarchy resolver
    │   └── role_repository.py  # Cache-first, REST-fallback role lookup
    ├── services/
    │   ├── reaction_service.py       # Record + leaderboard mutations
    │   ├── reconciler.py             # Bus.events consumer
    │   ├── sync_service.py           # Static-message synchronizer
    │   ├── dispatcher.py             # Bus.actions consumer
    │   ├── role_service.py           # Role toggle permission flows
    │   ├── reaction_track_service.py # reaction_tracks CRUD
    │   ├── role_toggle_service.py    # role_toggles CRUD
    │   ├── static_message_service.py # static_messages CRUD
    │   └── embeds.py                 # Embed builders
    └── bot/
        ├── core.py        # Bot subclass, cog loader, consumer tasks
        ├── platform.py    # Outbound Discord REST adapter
        └── cogs/
            ├── reactions.py       # Gateway events → Bus.events
            ├── reaction_admin.py  # /reaction …
            └── roles.py           # /role …, /toggle-role
"""

__version__ = "0.1.0"
