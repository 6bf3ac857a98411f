"""
antartica.config — YAML Configuration Loader
=============================================

Reads ``config.yaml`` for the bot's soft settings (display name, dev guild,
bus sizing, leaderboard defaults).  Secrets (``DISCORD_TOKEN``,
``DATABASE_URL``) are read from the environment instead.

Usage::

    from antartica.config import load_config

    cfg = load_config()          # reads ./config.yaml by default
    print(cfg.bus_capacity)      # 128
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml

from antartica.constants import DEFAULT_BUS_CAPACITY, DEFAULT_LEADERBOARD_TOP

DEFAULT_CONFIG_YAML = """\
# Antartica bot settings.  Secrets live in .env (DISCORD_TOKEN, DATABASE_URL).
bot_name: Antartica

# Guild to sync slash commands into while developing (leave empty for global).
dev_guild_id:

# Capacity of each in-process bus queue.
bus_capacity: 128

# Rows shown on a leaderboard message when its config does not set "top".
leaderboard_top: 10

log_level: INFO
"""


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class AntarticaConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    bot_name: str

    # Discord
    dev_guild_id: int | None = None  # Sync commands here instead of globally

    # Bus
    bus_capacity: int = DEFAULT_BUS_CAPACITY

    # Rendering
    leaderboard_top: int = DEFAULT_LEADERBOARD_TOP

    log_level: str = "INFO"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> AntarticaConfig:
    """Read *path* and return an :class:`AntarticaConfig` instance.

    Parameters
    ----------
    path:
        Filesystem path to the YAML configuration file.
        Defaults to ``config.yaml`` in the current working directory.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    KeyError
        If a required key is missing from the YAML file.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: run the bot once to generate config.yaml, then edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    bus_capacity = int(raw.get("bus_capacity") or DEFAULT_BUS_CAPACITY)
    if bus_capacity <= 0:
        bus_capacity = DEFAULT_BUS_CAPACITY

    leaderboard_top = int(raw.get("leaderboard_top") or DEFAULT_LEADERBOARD_TOP)
    if leaderboard_top <= 0:
        leaderboard_top = DEFAULT_LEADERBOARD_TOP

    return AntarticaConfig(
        bot_name=raw["bot_name"],
        dev_guild_id=int(raw["dev_guild_id"]) if raw.get("dev_guild_id") else None,
        bus_capacity=bus_capacity,
        leaderboard_top=leaderboard_top,
        log_level=str(raw.get("log_level") or "INFO").upper(),
    )


def write_default_config(path: str | Path = "config.yaml") -> Path:
    """Write the example configuration to *path* and return the resolved path.

    Existing files are never overwritten.
    """
    config_path = Path(path)
    if config_path.exists():
        raise FileExistsError(f"Refusing to overwrite {config_path.resolve()}")
    config_path.write_text(DEFAULT_CONFIG_YAML, encoding="utf-8")
    return config_path.resolve()
