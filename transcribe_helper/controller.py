# Transcribe Helper
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Attribution required — see LICENSE, Section 7(b).

"""
Transcribe Helper controller - owns the configured players and the live
sessions, and turns editor commands into session calls.

The editor side (prompts, status bar, key bindings) is not part of this
module.  Everything a prompt needs comes back as a list of Candidate
records; the chosen record's ``value`` goes back into the matching call:

    controller = MediaPlayerController(load_player_configs())
    await controller.reload()
    session = controller.sessions[0]
    devices = await controller.device_candidates(session)
    await controller.select_output(session, devices[0].value)

Sessions register when their connect succeeds and unregister themselves,
exactly once, when they disconnect (explicitly or because the player went
away).
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable

from .lib.config import PlayerConfig, assign_config_ids
from .lib.errors import ConfigError, ConnectError
from .lib.events import DISCONNECTED
from .lib.models import Device, Playlist, Track
from .lib.player_base import PlayerBase
from .lib.search import normalize_string, parse_search_terms, search_by_name
from .lib.timestamps import seconds_to_seek, seconds_to_timestamp, timestamp_for_insertion
from .players import create_player

logger = logging.getLogger("transcribe-helper")

SEARCH_KINDS = ("tracks", "playlists")


def _default_log(message: str):
    logger.info("%s", message)


@dataclass(frozen=True)
class Candidate:
    """One entry of a selection prompt."""

    label: str
    description: str = ""
    value: Any = None
    detail: str = ""


def config_label(config: PlayerConfig) -> str:
    if config.name and config.name.strip():
        return config.name.strip()
    return f"Player #{(config.config_id or 0) + 1}"


def playlist_label(playlist: Playlist) -> str:
    return playlist.name or f"Playlist {playlist.id}"


def track_label(track: Track, index: int) -> str:
    return track.name or f"Track #{index + 1}"


def device_label(device: Device) -> str:
    return device.name or f"Device {device.id}"


class MediaPlayerController:
    """Registry of player sessions plus the editor-facing commands."""

    def __init__(self, configs: list[PlayerConfig] | None = None, *,
                 log: Callable[[str], None] | None = None,
                 player_factory: Callable[[PlayerConfig], PlayerBase] = create_player):
        self._configs = assign_config_ids(configs or [])
        self._sessions: dict[int, PlayerBase] = {}
        self._connecting: set[int] = set()
        self._player_factory = player_factory
        self.log = log or _default_log

    # ── Registry ──

    @property
    def configs(self) -> list[PlayerConfig]:
        return list(self._configs)

    @property
    def sessions(self) -> list[PlayerBase]:
        return list(self._sessions.values())

    @property
    def connected_sessions(self) -> list[PlayerBase]:
        return [s for s in self._sessions.values() if s.is_connected]

    def session_for(self, config: PlayerConfig) -> PlayerBase | None:
        return self._sessions.get(config.config_id)

    def connectable_configs(self) -> list[PlayerConfig]:
        """Configured players without a live (or pending) session."""
        return [c for c in self._configs
                if c.config_id not in self._sessions and c.config_id not in self._connecting]

    def config_candidates(self) -> list[Candidate]:
        return [
            Candidate(label=config_label(c), description=c.description or c.type, value=c)
            for c in self.connectable_configs()
        ]

    def session_candidates(self) -> list[Candidate]:
        candidates = []
        for session in self._sessions.values():
            status = session.current_status
            track = status.current_track if status else None
            candidates.append(Candidate(
                label=config_label(session.config),
                description=session.config.description or session.type,
                value=session,
                detail=track.name if track and track.name else (status.state if status else ""),
            ))
        return candidates

    async def connect(self, config: PlayerConfig) -> PlayerBase:
        """Connect one configured player and register its session.

        Raises ConnectError (nothing registered) or ConfigError.
        """
        if config.config_id is None:
            raise ConfigError("invalid", f"{config_label(config)} was not loaded by this controller")
        if config.config_id in self._sessions or config.config_id in self._connecting:
            raise ConnectError("already_connected", f"{config_label(config)} is already connected")

        session = self._player_factory(config)
        self._connecting.add(config.config_id)
        try:
            await session.connect()
        finally:
            self._connecting.discard(config.config_id)

        self._sessions[config.config_id] = session
        session.once(DISCONNECTED, self._on_disconnected)
        self.log(f"Connected to {config_label(config)}")
        return session

    def _on_disconnected(self, session: PlayerBase, error=None):
        if self._sessions.get(session.config_id) is not session:
            return
        del self._sessions[session.config_id]
        if error is not None:
            self.log(f"Lost connection to {config_label(session.config)}: {error}")
        else:
            self.log(f"Disconnected from {config_label(session.config)}")

    async def disconnect(self, session: PlayerBase) -> bool:
        """Tear down one session and drop it from the registry."""
        disconnected = await session.disconnect()
        # A session that never reached Connected emits nothing
        self._on_disconnected(session)
        return disconnected

    async def teardown(self):
        for session in list(self._sessions.values()):
            await self.disconnect(session)

    async def reload(self, configs: list[PlayerConfig] | None = None) -> list[PlayerBase]:
        """Drop every session, renumber the configs and reconnect in order.

        Only configs with ``connect_on_startup`` are connected; a failing
        player is logged and the rest still connect.
        """
        await self.teardown()
        self._configs = assign_config_ids(self._configs if configs is None else configs)

        for config in self._configs:
            if not config.connect_on_startup:
                continue
            try:
                await self.connect(config)
            except (ConnectError, ConfigError) as e:
                self.log(f"Could not connect to {config_label(config)}: {e}")
        return self.sessions

    # ── Search ──

    async def _all_tracks(self, session: PlayerBase) -> list[Track]:
        tracks = []
        for playlist in await session.get_playlists():
            tracks.extend(playlist.tracks or await playlist.get_tracks())
        return tracks

    async def search(self, kind: str, session: PlayerBase, expression: str) -> list:
        """Tracks or playlists whose name contains every search term."""
        if kind not in SEARCH_KINDS:
            raise ValueError(f"Unknown search kind {kind!r}, expected one of {SEARCH_KINDS}")
        terms = parse_search_terms(expression)
        if kind == "tracks":
            items = await self._all_tracks(session)
        else:
            items = await session.get_playlists()
        return search_by_name(terms, items)

    async def search_tracks(self, session: PlayerBase, expression: str) -> list[Track]:
        return await self.search("tracks", session, expression)

    async def search_playlists(self, session: PlayerBase, expression: str) -> list[Playlist]:
        return await self.search("playlists", session, expression)

    # ── Output selection ──

    async def device_candidates(self, session: PlayerBase) -> list[Candidate]:
        """Devices of *session*: inactive first, then by name."""
        devices = sorted(await session.get_devices(),
                         key=lambda d: (d.is_active, normalize_string(device_label(d))))
        return [
            Candidate(
                label=device_label(d),
                description="active" if d.is_active else "",
                value=d,
                detail=f"volume {d.volume}" if d.volume is not None else "",
            )
            for d in devices
        ]

    async def select_output(self, session: PlayerBase, device) -> bool:
        device_id = device.id if isinstance(device, Device) else device
        return await session.select_output(device_id)

    # ── Playlist selection ──

    async def playlist_candidates(self, session: PlayerBase) -> list[Candidate]:
        return [
            Candidate(
                label=playlist_label(p),
                description=p.description,
                value=p,
                detail=f"{len(p.tracks)} tracks" if p.tracks else "",
            )
            for p in await session.get_playlists()
        ]

    async def track_candidates(self, playlist: Playlist) -> list[Candidate]:
        return [
            Candidate(
                label=track_label(t, i),
                description=t.artist or "",
                value=t,
                detail=seconds_to_timestamp(t.duration) if t.duration > 0 else "",
            )
            for i, t in enumerate(await playlist.get_tracks())
        ]

    async def select_playlist_item(self, session: PlayerBase, track) -> bool:
        track_id = track.id if isinstance(track, Track) else track
        return await session.select_playlist_item(track_id)

    # ── Custom actions ──

    def action_candidates(self, session: PlayerBase) -> list[Candidate]:
        return [
            Candidate(label=description, description=name, value=name)
            for name, description in session.custom_actions().items()
        ]

    async def execute_player_action(self, session: PlayerBase, name: str) -> bool:
        return await session.execute_action(name)

    # ── Timestamps ──

    def _single_session(self, what: str) -> PlayerBase | None:
        sessions = self.connected_sessions
        if len(sessions) != 1:
            self.log(f"Cannot {what}: {len(sessions)} players connected, need exactly one")
            return None
        return sessions[0]

    def insert_timestamp(self) -> str | None:
        """Text to insert at the cursor, e.g. "[1:02:03]", or None."""
        session = self._single_session("insert timestamp")
        if session is None or session.current_status is None:
            return None
        return timestamp_for_insertion(session.current_status.time)

    async def jump_to_timestamp(self, selected_text: str) -> bool:
        """Seek the single connected player to the timestamp in *selected_text*."""
        seconds = seconds_to_seek(selected_text)
        if seconds is None:
            self.log(f"No timestamp in {selected_text!r}")
            return False
        session = self._single_session("jump to timestamp")
        if session is None:
            return False
        return await session.seek(seconds)
