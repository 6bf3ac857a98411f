"""
antartica.bot.core — Bot Instance & Cog Loader
===============================================

Defines :class:`AntarticaBot`, the ``commands.Bot`` subclass that owns
every long-lived component and hands them to cogs by reference:

1. ``bot.cfg`` / ``bot.engine`` — settings and the SQLAlchemy engine.
2. ``bot.bus`` — the event/action queues between gateway and services.
3. ``bot.platform`` / ``bot.roles`` — outbound Discord calls and the
   cache-first role repository.
4. ``bot.synchronizer``, ``bot.reconciler``, ``bot.dispatcher`` — the
   consumers of the bus.

The two bus consumers run as background tasks from :meth:`setup_hook`
until :meth:`close` sets the shared stop signal.
"""

from __future__ import annotations

import asyncio
import logging
import os

import discord
from discord.ext import commands
from sqlalchemy import Engine

from antartica.bot.platform import DiscordPlatform
from antartica.config import AntarticaConfig
from antartica.engine.bus import EventBus
from antartica.engine.role_repository import (
    ReadThroughRoleRepository,
    RemoteRoleRepository,
    SnapshotRoleRepository,
)
from antartica.services.dispatcher import ActionDispatcher
from antartica.services.reconciler import ReactionReconciler
from antartica.services.sync_service import StaticMessageSynchronizer

logger = logging.getLogger(__name__)

# Cog modules to load on startup.
EXTENSIONS: list[str] = [
    "antartica.bot.cogs.reactions",
    "antartica.bot.cogs.reaction_admin",
    "antartica.bot.cogs.roles",
]


class AntarticaBot(commands.Bot):
    """Custom Bot subclass that carries project-wide state.

    Parameters
    ----------
    cfg:
        The parsed :class:`AntarticaConfig` from ``config.yaml``.
    engine:
        A SQLAlchemy :class:`Engine`.  ``None`` leaves the bot running
        with every store-backed operation failing as unconfigured.
    """

    def __init__(self, cfg: AntarticaConfig, engine: Engine | None) -> None:
        # GUILD_MESSAGE_REACTIONS comes with default(); GUILD_MEMBERS is
        # privileged and feeds the role snapshot.
        intents = discord.Intents.default()
        intents.members = True
        intents.presences = False

        super().__init__(
            command_prefix=commands.when_mentioned,
            intents=intents,
            description=cfg.bot_name,
        )

        self.cfg = cfg
        self.engine = engine

        self.bus = EventBus(cfg.bus_capacity)
        self.platform = DiscordPlatform(self)
        self.roles = ReadThroughRoleRepository(
            SnapshotRoleRepository(self), RemoteRoleRepository(self),
        )
        self.synchronizer = StaticMessageSynchronizer(engine, self.bus, cfg.leaderboard_top)
        self.reconciler = ReactionReconciler(engine, self.synchronizer, self.platform)
        self.dispatcher = ActionDispatcher(self.platform)

        self._stop = asyncio.Event()
        self._consumers: list[asyncio.Task] = []

    # -----------------------------------------------------------------------
    # Lifecycle hooks
    # -----------------------------------------------------------------------
    async def setup_hook(self) -> None:
        """Load cogs and start the bus consumers before connecting.

        A cog that fails to load is logged and skipped.
        """
        for ext in EXTENSIONS:
            try:
                await self.load_extension(ext)
                logger.info("Loaded extension: %s", ext)
            except Exception as exc:
                logger.error("Failed to load extension %s: %s", ext, exc)

        self._consumers = [
            asyncio.create_task(self.reconciler.run(self.bus, self._stop), name="reconciler"),
            asyncio.create_task(self.dispatcher.run(self.bus, self._stop), name="dispatcher"),
        ]

    async def on_ready(self) -> None:
        """Fired when the bot has connected and the cache is populated."""
        assert self.user is not None
        logger.info("Logged in as %s (ID: %s)", self.user.name, self.user.id)

        dev_guild_id = self.cfg.dev_guild_id or os.getenv("DEV_GUILD_ID")
        try:
            if dev_guild_id:
                guild = discord.Object(id=int(dev_guild_id))
                self.tree.copy_global_to(guild=guild)
                synced = await self.tree.sync(guild=guild)
                logger.info("Synced %d commands to dev guild %s", len(synced), dev_guild_id)
            else:
                synced = await self.tree.sync()
                logger.info("Synced %d commands globally", len(synced))
        except discord.HTTPException:
            logger.exception("Slash-command sync failed")

    async def close(self) -> None:
        """Graceful shutdown: stop the consumers, drain nothing further."""
        logger.info("Bot shutting down…")
        self._stop.set()
        await self.bus.close()
        if self._consumers:
            results = await asyncio.gather(*self._consumers, return_exceptions=True)
            for task, result in zip(self._consumers, results):
                if isinstance(result, Exception):
                    logger.error("Consumer %s exited with %r", task.get_name(), result)
            self._consumers = []
        await super().close()
