# Transcribe Helper
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Attribution required — see LICENSE, Section 7(b).

"""
Value types shared by the parser, the player sessions and the controller.

Status, Track, Playlist and Device are immutable snapshots.  Tracks,
playlists and devices may be *bound* to the session they came from, which
gives them their capability (``play()``, ``get_tracks()``, ``select()``).
The binding never takes part in equality, so two polls of the same player
compare equal when nothing changed.
"""

from dataclasses import dataclass, field, replace
from typing import Any

from .errors import ActionError

STATE_PLAYING = "playing"
STATE_PAUSED = "paused"
STATE_STOPPED = "stopped"


def _require_player(item, what: str):
    if item.player is None:
        raise ActionError("unsupported", f"{what} is not bound to a player")
    return item.player


@dataclass(frozen=True)
class Track:
    id: str
    name: str = ""
    artist: str | None = None
    duration: int = 0
    uri: str = ""
    description: str = ""
    player: Any = field(default=None, compare=False, repr=False)

    def bind(self, player) -> "Track":
        return replace(self, player=player)

    async def play(self) -> bool:
        """Start this track on its player."""
        return await _require_player(self, "track").select_playlist_item(self.id)


@dataclass(frozen=True)
class Playlist:
    id: str
    name: str = ""
    uri: str = ""
    description: str = ""
    tracks: tuple[Track, ...] = ()
    player: Any = field(default=None, compare=False, repr=False)

    def bind(self, player) -> "Playlist":
        return replace(self, player=player,
                       tracks=tuple(t.bind(player) for t in self.tracks))

    async def get_tracks(self) -> list[Track]:
        """Re-query the player for the current tracks of this playlist."""
        return await _require_player(self, "playlist").get_tracks(self)


@dataclass(frozen=True)
class Device:
    id: str
    name: str = ""
    is_active: bool = False
    volume: int | None = None
    player: Any = field(default=None, compare=False, repr=False)

    def bind(self, player) -> "Device":
        return replace(self, player=player)

    async def select(self) -> bool:
        """Make this device the player's output."""
        return await _require_player(self, "device").select_output(self.id)


@dataclass(frozen=True)
class Status:
    state: str = STATE_STOPPED
    volume: int = 0
    is_muted: bool = False
    repeat: bool = False
    loop: bool = False
    random: bool = False
    current_track: Track | None = None
    position: float = 0.0
    time: int = 0
    length: int = 0
    devices: tuple[Device, ...] = ()

    @property
    def is_playing(self) -> bool:
        return self.state == STATE_PLAYING
