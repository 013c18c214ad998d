# Transcribe Helper
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Attribution required — see LICENSE, Section 7(b).

"""
Configuration loader for Transcribe Helper.

Loads a single JSON config file.  Search order:
  1. $TRANSCRIBE_HELPER_CONFIG
  2. ~/.config/transcribe-helper/config.json
  3. config.json                    (CWD - handy for local dev)

The player list may sit at the top level or under the editor's settings
key, so both of these work:

    {"players": [{"type": "vlc", "password": "secret"}]}
    {"media.player": {"players": [{"type": "vlc", "password": "secret"}]}}

Player entries use the editor's camelCase keys (connectOnStartup,
defaultOutputID, initialOutput, ...).  load_player_configs() turns them
into immutable PlayerConfig records.

Usage:
    from transcribe_helper.lib.config import cfg, load_player_configs

    level   = cfg("logging", "level", default="INFO")
    players = load_player_configs()
"""

import json
import logging
import os
from dataclasses import dataclass, field, replace

from .errors import ConfigError

logger = logging.getLogger(__name__)

_config: dict | None = None

EDITOR_SECTION = "media.player"
SUPPORTED_TYPES = ("vlc", "spotify")

DEFAULT_VLC_HOST = "localhost"
DEFAULT_VLC_PORT = 8080
DEFAULT_OUTPUT_ID = "1"
DEFAULT_OUTPUT_NAME = "Main device"


def _search_paths() -> list[str]:
    paths = []
    env_path = os.getenv("TRANSCRIBE_HELPER_CONFIG")
    if env_path:
        paths.append(env_path)
    paths.append(os.path.join(os.path.expanduser("~"), ".config", "transcribe-helper", "config.json"))
    paths.append("config.json")
    return paths


@dataclass(frozen=True)
class PlayerConfig:
    """One configured player.  ``config_id`` is assigned on (re)load."""

    type: str
    name: str = ""
    description: str = ""
    # VLC
    host: str = DEFAULT_VLC_HOST
    port: int = DEFAULT_VLC_PORT
    password: str | None = None
    secure: bool | None = None
    show_all_playlists: bool = False
    # Spotify
    client_id: str | None = None
    client_secret: str | None = None
    redirect_url: str | None = None
    refresh_token: str | None = None
    access_token: str | None = None
    # Session behaviour
    connect_on_startup: bool = True
    default_output_id: str = DEFAULT_OUTPUT_ID
    default_output_name: str = DEFAULT_OUTPUT_NAME
    initial_output: str | None = None
    # Status bar only, carried through untouched
    button_priority_offset: int = 10
    ui_flags: dict = field(default_factory=dict, compare=False, hash=False)
    config_id: int | None = None


# editor key -> PlayerConfig field
_KEY_MAP = {
    "type": "type",
    "name": "name",
    "description": "description",
    "host": "host",
    "port": "port",
    "password": "password",
    "secure": "secure",
    "showAllPlaylists": "show_all_playlists",
    "clientID": "client_id",
    "clientId": "client_id",
    "clientSecret": "client_secret",
    "redirectURL": "redirect_url",
    "redirectUrl": "redirect_url",
    "refreshToken": "refresh_token",
    "accessToken": "access_token",
    "connectOnStartup": "connect_on_startup",
    "defaultOutputID": "default_output_id",
    "defaultOutputId": "default_output_id",
    "defaultOutputName": "default_output_name",
    "initialOutput": "initial_output",
    "buttonPriorityOffset": "button_priority_offset",
}


def player_config_from_dict(raw: dict) -> PlayerConfig:
    """Build a PlayerConfig from one editor settings entry."""
    if not isinstance(raw, dict):
        raise ConfigError("invalid", f"Player entry must be an object, got {type(raw).__name__}")

    values = {}
    ui_flags = {}
    for key, value in raw.items():
        name = _KEY_MAP.get(key)
        if name is not None:
            if value is not None:
                values[name] = value
        elif key.startswith("show"):
            ui_flags[key] = value

    player_type = str(values.pop("type", "")).strip().lower()
    if not player_type:
        raise ConfigError("invalid", "Player entry has no 'type'")

    try:
        if "port" in values:
            values["port"] = int(values["port"])
        if "button_priority_offset" in values:
            values["button_priority_offset"] = int(values["button_priority_offset"])
    except (TypeError, ValueError) as e:
        raise ConfigError("invalid", f"Invalid number in player entry: {e}") from e

    for key in ("default_output_id", "password"):
        if key in values:
            values[key] = str(values[key])
    for key in ("connect_on_startup", "show_all_playlists"):
        if key in values:
            values[key] = bool(values[key])

    return PlayerConfig(type=player_type, ui_flags=ui_flags, **values)


def assign_config_ids(configs: list[PlayerConfig]) -> list[PlayerConfig]:
    """Give every config a fresh sequential identity in list order."""
    return [replace(c, config_id=i) for i, c in enumerate(configs)]


def _player_entries(config: dict) -> list:
    players = config.get("players")
    if players is None:
        players = (config.get(EDITOR_SECTION) or {}).get("players")
    return [p for p in players or [] if p]


def load_player_configs(entries: list | None = None) -> list[PlayerConfig]:
    """Convert player entries (default: from the config file), skipping bad ones."""
    if entries is None:
        entries = _player_entries(load_config())
    configs = []
    for i, entry in enumerate(e for e in entries if e):
        try:
            configs.append(player_config_from_dict(entry))
        except ConfigError as e:
            logger.error("Ignoring player #%d: %s", i + 1, e)
    return configs


def _validate(config: dict, path: str) -> None:
    """Warn about missing or suspicious config values."""
    players = _player_entries(config)
    if not players:
        logger.warning("Config %s: no players configured", path)
    for i, p in enumerate(players):
        if not isinstance(p, dict):
            continue
        label = p.get("name") or f"Player #{i + 1}"
        ptype = str(p.get("type", "")).lower()
        if ptype not in SUPPORTED_TYPES:
            logger.warning("Config %s: %s has unknown type '%s'", path, label, ptype)
        if ptype == "vlc" and not p.get("password"):
            logger.warning("Config %s: %s has no password - VLC's HTTP interface requires one",
                           path, label)
        if ptype == "spotify" and not (p.get("clientID") or p.get("clientId")):
            logger.warning("Config %s: %s has no clientID", path, label)


def load_config(path: str | None = None) -> dict:
    """Load config from *path* or the first JSON file found. Cached after first call."""
    global _config
    if _config is not None and path is None:
        return _config

    for candidate in [path] if path else _search_paths():
        try:
            with open(candidate) as f:
                _config = json.load(f)
                logger.info("Config loaded from %s", candidate)
                _validate(_config, candidate)
                return _config
        except FileNotFoundError:
            if path:
                raise ConfigError("not_found", f"Config file not found: {path}")
            continue
        except json.JSONDecodeError as e:
            logger.error("Invalid JSON in %s: %s", candidate, e)
            if path:
                raise ConfigError("invalid", f"Invalid JSON in {path}: {e}") from e
            continue

    logger.warning("No config.json found - using empty config")
    _config = {}
    return _config


def cfg(section: str, key: str | None = None, *, default=None):
    """Read a config value.

    cfg("logging")                       → config["logging"]
    cfg("logging", "level")              → config["logging"]["level"]
    cfg("poll", "interval", default=1)   → config["poll"]["interval"] or 1
    """
    config = load_config()
    val = config.get(section)
    if key is None:
        return val if val is not None else default
    if isinstance(val, dict):
        return val.get(key, default)
    return default


def reload_config(path: str | None = None):
    """Force re-read from disk (for testing or hot-reload)."""
    global _config
    _config = None
    return load_config(path)
