# Transcribe Helper
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Attribution required — see LICENSE, Section 7(b).

"""
Spotify player session.

Drives whatever Spotify Connect device is active on the account through the
Web API (JSON, bearer token):

  GET  /v1/me/player                  - playback state (204 = nothing playing)
  PUT  /v1/me/player/play | pause     - transport controls
  POST /v1/me/player/next | previous
  PUT  /v1/me/player/seek?position_ms=N
  PUT  /v1/me/player/volume?volume_percent=N
  PUT  /v1/me/player/shuffle?state=B
  PUT  /v1/me/player/repeat?state=off|context|track
  PUT  /v1/me/player {"device_ids": [...]}   - transfer playback
  GET  /v1/me/player/devices
  GET  /v1/me/playlists, /v1/playlists/{id}/tracks  (paged via "next")
"""

import logging

from ...lib.errors import ActionError, TransportError
from ...lib.models import Device, Playlist, Status, Track
from ...lib.player_base import STANDARD_ACTIONS, PlayerBase
from ...lib.status import (
    parse_spotify_devices,
    parse_spotify_playlists,
    parse_spotify_tracks,
    parse_status,
)
from ...lib.transport import HttpTransport
from .auth import SpotifyAuth

log = logging.getLogger("transcribe-helper.spotify")

API_HOST = "api.spotify.com"
API_PORT = 443
PAGE_SIZE = 50

# repeat_state cycle used by toggle_repeat
_REPEAT_NEXT = {"off": "context", "context": "track", "track": "off"}


class SpotifyPlayer(PlayerBase):
    """Spotify Connect playback over the Web API."""

    type = "spotify"
    name = "Spotify"
    capabilities = STANDARD_ACTIONS
    volume_range = (0, 100)
    default_unmute_volume = 50

    def __init__(self, config, transport=None, *, auth: SpotifyAuth | None = None, **kwargs):
        super().__init__(config, transport, **kwargs)
        self.auth = auth if auth is not None else SpotifyAuth.from_config(config, self.transport)
        # track id -> (track uri, playlist uri), filled by get_tracks()
        self._track_context: dict[str, tuple[str, str]] = {}

    def create_transport(self) -> HttpTransport:
        return HttpTransport(API_HOST, API_PORT, secure=True)

    # ── Web API helpers ──

    async def _api(self, method: str, path: str, query: dict | None = None, *, json=None) -> bytes:
        token = await self.auth.get_token()
        return await self.transport.request(
            method, path, query,
            json=json,
            headers={"Authorization": f"Bearer {token}"},
        )

    async def _api_command(self, method: str, path: str, query: dict | None = None, *, json=None):
        try:
            await self._api(method, path, query, json=json)
        except TransportError as e:
            # 404 means no active device (or an unknown device id)
            if e.status == 404:
                raise ActionError("not_found", f"{self.display_name}: no such device or no active device") from e
            raise

    async def _paged(self, path: str, parse, query: dict | None = None) -> list:
        items = []
        next_url = path
        while next_url:
            page, next_url = parse(await self._api("GET", next_url, query))
            items.extend(page)
            query = None  # "next" already carries offset and limit
        return items

    def _repeat_state(self) -> str:
        status = self.current_status
        if status is None:
            return "off"
        if status.repeat:
            return "track"
        return "context" if status.loop else "off"

    # ── PlayerBase abstract methods ──

    async def fetch_status(self) -> Status:
        body = await self._api("GET", "/v1/me/player")
        if not body.strip():
            # 204: no device is playing anything
            return Status()
        return parse_status(body)

    async def send_command(self, action: str, *args) -> None:
        status = self.current_status or Status()

        if action == "play":
            await self._api_command("PUT", "/v1/me/player/play")
        elif action == "pause":
            await self._api_command("PUT", "/v1/me/player/pause")
        elif action == "toggle_play":
            verb = "pause" if status.is_playing else "play"
            await self._api_command("PUT", f"/v1/me/player/{verb}")
        elif action == "next":
            await self._api_command("POST", "/v1/me/player/next")
        elif action == "previous":
            await self._api_command("POST", "/v1/me/player/previous")
        elif action == "seek":
            await self._api_command("PUT", "/v1/me/player/seek", {"position_ms": args[0] * 1000})
        elif action in ("set_volume", "toggle_mute"):
            await self._api_command("PUT", "/v1/me/player/volume", {"volume_percent": args[0]})
        elif action == "toggle_shuffle":
            await self._api_command("PUT", "/v1/me/player/shuffle", {"state": not status.random})
        elif action == "toggle_repeat":
            await self._api_command("PUT", "/v1/me/player/repeat",
                                    {"state": _REPEAT_NEXT[self._repeat_state()]})
        elif action == "select_output":
            await self._api_command("PUT", "/v1/me/player",
                                    json={"device_ids": [args[0]], "play": status.is_playing})
        elif action == "select_playlist_item":
            await self._api_command("PUT", "/v1/me/player/play", json=self._play_body(args[0]))
        else:
            raise ActionError("unsupported", f"{self.display_name} does not support {action}")

    def _play_body(self, track_id: str) -> dict:
        track_uri, context_uri = self._track_context.get(track_id, ("", ""))
        track_uri = track_uri or f"spotify:track:{track_id}"
        if context_uri:
            return {"context_uri": context_uri, "offset": {"uri": track_uri}}
        return {"uris": [track_uri]}

    async def query_devices(self) -> list[Device]:
        return parse_spotify_devices(await self._api("GET", "/v1/me/player/devices"))

    async def query_playlists(self) -> list[Playlist]:
        return await self._paged("/v1/me/playlists", parse_spotify_playlists, {"limit": PAGE_SIZE})

    async def query_tracks(self, playlist: Playlist) -> list[Track]:
        tracks = await self._paged(f"/v1/playlists/{playlist.id}/tracks", parse_spotify_tracks,
                                   {"limit": PAGE_SIZE})
        for track in tracks:
            if track.id:
                self._track_context[track.id] = (track.uri, playlist.uri)
        log.debug("%s: %d tracks in %s", self.display_name, len(tracks), playlist.name)
        return tracks

    # ── Player-specific actions ──

    def custom_actions(self) -> dict[str, str]:
        return {"refresh_token": "Refresh the Spotify access token now"}

    async def run_custom_action(self, name: str) -> None:
        await self.auth.refresh()
