# Transcribe Helper
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Attribution required — see LICENSE, Section 7(b).

"""
Players - remote media players a transcriber controls from the editor.

A player session does NOT provide the audio.  It talks to a player that is
already running (VLC with its Lua HTTP interface, a Spotify Connect device)
and mirrors its status: what is playing, where, at which volume.

Several players may be connected at once; each gets its own session with
its own transport and poll task.

Current players:
  vlc.py      - VLC media player, Lua HTTP interface (XML, basic auth)
  spotify/    - Spotify Web API (JSON, OAuth bearer tokens)
"""

from ..lib.config import PlayerConfig
from ..lib.errors import ConfigError
from ..lib.player_base import PlayerBase
from .spotify import SpotifyPlayer
from .vlc import VlcPlayer

PLAYER_TYPES: dict[str, type[PlayerBase]] = {
    VlcPlayer.type: VlcPlayer,
    SpotifyPlayer.type: SpotifyPlayer,
}


def create_player(config: PlayerConfig, **kwargs) -> PlayerBase:
    """Build a (disconnected) session for *config*.  Raises ConfigError."""
    player_cls = PLAYER_TYPES.get(config.type)
    if player_cls is None:
        raise ConfigError("unsupported", f"Unknown player type '{config.type}'")
    return player_cls(config, **kwargs)
