# Transcribe Helper
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Attribution required — see LICENSE, Section 7(b).

"""
VLC player session.

Talks to VLC's Lua HTTP interface (enable with ``--extraintf http
--http-password <secret>``).  Basic auth with an empty user name.

VLC HTTP API (port 8080 by default, XML responses):
  GET /requests/status.xml                 - state, volume, time, meta
  GET /requests/status.xml?command=X&val=Y - transport controls:
        pl_play [id=N]  pl_pause  pl_forcepause  pl_forceresume  pl_stop
        pl_next  pl_previous  seek&val=S  volume&val=V (0-320, 256 = 100%)
        pl_random  pl_repeat  pl_loop  fullscreen  pl_empty
  GET /requests/playlist.xml               - playlist tree with <leaf> items

VLC has no output switching over HTTP; the session reports one fixed
device named after the configured default output.
"""

import logging
from dataclasses import replace

from ..lib.errors import ActionError
from ..lib.models import STATE_PAUSED, STATE_STOPPED, Device, Playlist, Status, Track
from ..lib.player_base import STANDARD_ACTIONS, PlayerBase
from ..lib.status import parse_vlc_playlists, parse_vlc_status
from ..lib.transport import HttpTransport

logger = logging.getLogger("transcribe-helper.vlc")

STATUS_PATH = "/requests/status.xml"
PLAYLIST_PATH = "/requests/playlist.xml"

VLC_MAX_VOLUME = 320
VLC_FULL_VOLUME = 256

# Simple one-shot commands, no arguments
_COMMANDS = {
    "pause": "pl_forcepause",
    "next": "pl_next",
    "previous": "pl_previous",
    "toggle_shuffle": "pl_random",
    "toggle_repeat": "pl_repeat",
}

_CUSTOM_ACTIONS = {
    "stop": ("pl_stop", "Stop playback"),
    "toggle_loop": ("pl_loop", "Loop the whole playlist"),
    "fullscreen": ("fullscreen", "Toggle fullscreen video"),
    "empty_playlist": ("pl_empty", "Remove every item from the playlist"),
}


class VlcPlayer(PlayerBase):
    """VLC media player over the Lua HTTP/XML interface."""

    type = "vlc"
    name = "VLC"
    capabilities = STANDARD_ACTIONS
    volume_range = (0, VLC_MAX_VOLUME)
    default_unmute_volume = VLC_FULL_VOLUME

    def create_transport(self) -> HttpTransport:
        return HttpTransport(
            self.config.host,
            self.config.port,
            password=self.config.password,
            secure=self.config.secure,
        )

    # ── VLC HTTP helpers ──

    async def _command(self, command: str, **params) -> bytes:
        """Run one status.xml command.  VLC answers with the new status."""
        return await self.transport.request("GET", STATUS_PATH, {"command": command, **params})

    def _default_device(self, volume: int | None = None) -> Device:
        return Device(
            id=str(self.config.default_output_id),
            name=self.config.default_output_name,
            is_active=True,
            volume=volume,
        )

    # ── PlayerBase abstract methods ──

    async def fetch_status(self) -> Status:
        status = parse_vlc_status(await self.transport.request("GET", STATUS_PATH))
        return replace(status, devices=(self._default_device(status.volume),))

    async def send_command(self, action: str, *args) -> None:
        state = self.current_status.state if self.current_status else STATE_STOPPED

        if action in _COMMANDS:
            await self._command(_COMMANDS[action])
        elif action == "play":
            # pl_forceresume does nothing on a stopped player
            await self._command("pl_play" if state == STATE_STOPPED else "pl_forceresume")
        elif action == "toggle_play":
            if state == STATE_STOPPED:
                await self._command("pl_play")
            elif state == STATE_PAUSED:
                await self._command("pl_forceresume")
            else:
                await self._command("pl_forcepause")
        elif action == "seek":
            await self._command("seek", val=args[0])
        elif action in ("set_volume", "toggle_mute"):
            await self._command("volume", val=args[0])
        elif action == "select_output":
            if args[0] != str(self.config.default_output_id):
                raise ActionError("not_found", f"{self.display_name} has no output {args[0]!r}")
        elif action == "select_playlist_item":
            await self._command("pl_play", id=args[0])
        else:
            raise ActionError("unsupported", f"{self.display_name} does not support {action}")

    async def query_devices(self) -> list[Device]:
        volume = self.current_status.volume if self.current_status else None
        return [self._default_device(volume)]

    async def query_playlists(self) -> list[Playlist]:
        playlists = parse_vlc_playlists(await self.transport.request("GET", PLAYLIST_PATH))
        logger.debug("%s: %d playlists", self.display_name, len(playlists))
        if self.config.show_all_playlists:
            return playlists
        # Only the play queue; the media library is rarely what a transcriber wants
        return playlists[:1]

    async def query_tracks(self, playlist: Playlist) -> list[Track]:
        playlists = parse_vlc_playlists(await self.transport.request("GET", PLAYLIST_PATH))
        for candidate in playlists:
            if candidate.id == playlist.id:
                return list(candidate.tracks)
        raise ActionError("not_found", f"Playlist {playlist.id!r} is gone from {self.display_name}")

    # ── Player-specific actions ──

    def custom_actions(self) -> dict[str, str]:
        return {name: description for name, (_, description) in _CUSTOM_ACTIONS.items()}

    async def run_custom_action(self, name: str) -> None:
        command, _ = _CUSTOM_ACTIONS[name]
        await self._command(command)
