# Transcribe Helper
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Attribution required — see LICENSE, Section 7(b).

"""
PlayerBase - shared session plumbing for Transcribe Helper players.

A player session owns one connection to one configured player: its
transport, its latest status snapshot, its poll task and its event channel
(``connected``, ``disconnected``, ``statusUpdate``).

    Disconnected ──connect()──> Connecting ──ok──> Connected
         ^                          │                  │
         └──────── failure ─────────┘   disconnect() / lost connection

Subclass contract:

    class MyPlayer(PlayerBase):
        type = "myplayer"
        name = "My Player"
        capabilities = STANDARD_ACTIONS - {"toggle_repeat"}
        volume_range = (0, 100)

        def create_transport(self) -> HttpTransport: ...
        async def fetch_status(self) -> Status: ...
        async def send_command(self, action, *args) -> None: ...
        async def query_devices(self) -> list[Device]: ...
        async def query_playlists(self) -> list[Playlist]: ...
        async def query_tracks(self, playlist) -> list[Track]: ...

Built-in (no override needed):
    connect() / disconnect()        - lifecycle, poll task, events
    play() ... select_playlist_item - one command, then a status refresh
    get_devices() / get_playlists() / get_tracks() - fresh round trips
    execute_action(name)            - dispatch to custom_actions()

Optional overrides:
    custom_actions()          - {name: description} of extra actions
    run_custom_action(name)   - carry one of them out

Status fetches are serialized per session (one lock) and the poll loop
skips a tick while a fetch is still outstanding.  Every disconnect bumps a
generation counter; a response that belongs to an older generation is
dropped instead of being written into ``current_status``.
"""

import asyncio
import enum
import logging

from .config import PlayerConfig
from .errors import ActionError, ConnectError, ParseError, TransportError
from .events import CONNECTED, DISCONNECTED, STATUS_UPDATE, EventChannel
from .models import Device, Playlist, Status, Track
from .search import normalize_string
from .transport import HttpTransport

log = logging.getLogger(__name__)

POLL_INTERVAL = 1.0  # seconds between status polls

STANDARD_ACTIONS = frozenset({
    "play",
    "pause",
    "toggle_play",
    "next",
    "previous",
    "seek",
    "set_volume",
    "toggle_mute",
    "toggle_shuffle",
    "toggle_repeat",
    "select_output",
    "select_playlist_item",
})

# Transport failures after which a session is torn down instead of retried
UNRECOVERABLE = frozenset({"network", "auth"})


class SessionState(enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class PlayerBase:
    # ── Subclass must set these ──
    type: str = ""
    name: str = ""
    capabilities: frozenset = STANDARD_ACTIONS
    volume_range: tuple[int, int] = (0, 100)
    default_unmute_volume: int = 50

    def __init__(self, config: PlayerConfig, transport: HttpTransport | None = None, *,
                 poll_interval: float = POLL_INTERVAL):
        self.config = config
        self.config_id = config.config_id
        self.poll_interval = poll_interval
        self.transport = transport if transport is not None else self.create_transport()
        self.events = EventChannel()
        # Common state - subclasses can add more in their own __init__
        self.state = SessionState.DISCONNECTED
        self.current_status: Status | None = None
        self.last_error: Exception | None = None
        self._poll_task: asyncio.Task | None = None
        self._fetch_lock = asyncio.Lock()
        self._fetch_in_flight = False
        self._generation = 0
        self._volume_before_mute: int | None = None

    def __repr__(self):
        return f"<{type(self).__name__} {self.display_name!r} {self.state.value}>"

    @property
    def display_name(self) -> str:
        return (self.config.name or "").strip() or self.name

    @property
    def is_connected(self) -> bool:
        return self.state is SessionState.CONNECTED

    # ── Event subscription ──

    def on(self, event: str, handler):
        return self.events.on(event, handler)

    def once(self, event: str, handler):
        return self.events.once(event, handler)

    def off(self, event: str, handler=None):
        self.events.off(event, handler)

    # ── Abstract methods (subclass must implement) ──

    def create_transport(self) -> HttpTransport:
        raise NotImplementedError

    async def fetch_status(self) -> Status:
        """One status round trip, fully parsed."""
        raise NotImplementedError

    async def send_command(self, action: str, *args) -> None:
        """Issue the transport command for one of ``capabilities``."""
        raise NotImplementedError

    async def query_devices(self) -> list[Device]:
        raise NotImplementedError

    async def query_playlists(self) -> list[Playlist]:
        raise NotImplementedError

    async def query_tracks(self, playlist: Playlist) -> list[Track]:
        raise NotImplementedError

    # ── Optional overrides ──

    def custom_actions(self) -> dict[str, str]:
        """Extra actions this player offers: {name: description}."""
        return {}

    async def run_custom_action(self, name: str) -> None:
        raise ActionError("unsupported", f"{self.display_name} has no action {name!r}")

    # ── Lifecycle ──

    async def connect(self) -> bool:
        """Fetch the first status and start polling.  Raises ConnectError."""
        if self.state is SessionState.CONNECTED:
            return True
        if self.state is SessionState.CONNECTING:
            raise ConnectError("busy", f"{self.display_name} is already connecting")

        self.state = SessionState.CONNECTING
        generation = self._generation
        log.info("Connecting to %s (%s)", self.display_name, self.type)
        try:
            await self.transport.open()
            status = await self._fetch_serialized()
        except (TransportError, ParseError) as e:
            if generation != self._generation:
                raise ConnectError(
                    "cancelled", f"{self.display_name} was disconnected while connecting") from e
            self.state = SessionState.DISCONNECTED
            await self.transport.close()
            self.last_error = e
            log.warning("Could not connect to %s: %s", self.display_name, e)
            raise ConnectError(e.reason, f"Could not connect to {self.display_name}: {e}") from e

        if generation != self._generation:
            raise ConnectError("cancelled", f"{self.display_name} was disconnected while connecting")

        self.current_status = status
        self.last_error = None
        self.state = SessionState.CONNECTED
        log.info("Connected to %s (%s, volume %d)", self.display_name, status.state, status.volume)
        self.events.emit(CONNECTED, self)

        await self._apply_initial_output()
        if not self.is_connected:
            raise ConnectError("cancelled", f"{self.display_name} was disconnected while connecting")
        self._poll_task = asyncio.create_task(self._poll_loop())
        return True

    async def disconnect(self, error: Exception | None = None) -> bool:
        """Stop polling, close the transport, emit ``disconnected``.

        Returns False (and does nothing) when already disconnected.
        """
        if self.state is SessionState.DISCONNECTED:
            return False
        was_connected = self.state is SessionState.CONNECTED
        self._generation += 1
        self.state = SessionState.DISCONNECTED
        self.last_error = error

        task, self._poll_task = self._poll_task, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        await self.transport.close()
        if error is not None:
            log.warning("Disconnected from %s: %s", self.display_name, error)
        else:
            log.info("Disconnected from %s", self.display_name)
        if was_connected:
            self.events.emit(DISCONNECTED, self, error)
        return True

    async def _apply_initial_output(self):
        wanted = normalize_string(self.config.initial_output)
        if not wanted:
            return
        try:
            devices = await self.get_devices()
            match = next((d for d in devices if normalize_string(d.name) == wanted), None)
            if match is None:
                log.warning("Initial output %r not found on %s", self.config.initial_output,
                            self.display_name)
                return
            if not match.is_active:
                await match.select()
            log.info("Initial output of %s: %s", self.display_name, match.name)
        except ActionError as e:
            log.warning("Could not select initial output on %s: %s", self.display_name, e)

    # ── Status ──

    async def _fetch_serialized(self) -> Status:
        async with self._fetch_lock:
            self._fetch_in_flight = True
            try:
                return await self.fetch_status()
            finally:
                self._fetch_in_flight = False

    async def _refresh(self) -> Status | None:
        generation = self._generation
        status = await self._fetch_serialized()
        if generation != self._generation or not self.is_connected:
            log.debug("Dropping late status for %s", self.display_name)
            return self.current_status
        previous, self.current_status = self.current_status, status
        if status != previous:
            self.events.emit(STATUS_UPDATE, self, status)
        return status

    async def refresh(self) -> Status | None:
        """Fetch the status now.  Raises ActionError."""
        self._require_connected("refresh")
        try:
            return await self._refresh()
        except (TransportError, ParseError) as e:
            raise ActionError("transport", f"Status refresh of {self.display_name} failed: {e}") from e

    async def _poll_loop(self):
        log.info("Polling %s every %.1fs", self.display_name, self.poll_interval)
        while self.is_connected:
            try:
                await asyncio.sleep(self.poll_interval)
                if self._fetch_in_flight:
                    continue
                await self._refresh()
            except asyncio.CancelledError:
                break
            except TransportError as e:
                if e.reason in UNRECOVERABLE:
                    await self.disconnect(error=e)
                    break
                log.warning("Status poll of %s failed: %s", self.display_name, e)
            except ParseError as e:
                log.warning("Unreadable status from %s: %s", self.display_name, e)
            except Exception as e:
                log.error("Error in status poll of %s: %s", self.display_name, e)

    # ── Actions ──

    def _require_connected(self, action: str):
        if not self.is_connected:
            raise ActionError("not_connected", f"Cannot {action}: {self.display_name} is not connected")

    def _require_generation(self, action: str, generation: int):
        if generation != self._generation or not self.is_connected:
            raise ActionError("not_connected", f"Cannot {action}: {self.display_name} was disconnected")

    async def _run(self, action: str, command, *args) -> bool:
        generation = self._generation
        try:
            self._require_generation(action, generation)
            await command(*args)
            self._require_generation(action, generation)
            await self._refresh()
        except (TransportError, ParseError) as e:
            self._require_generation(action, generation)
            raise ActionError("transport", f"{action} failed on {self.display_name}: {e}") from e
        log.info("%s: %s %s", self.display_name, action, " ".join(str(a) for a in args))
        return True

    async def _run_action(self, action: str, *args) -> bool:
        self._require_connected(action)
        if action not in self.capabilities:
            raise ActionError("unsupported", f"{self.display_name} does not support {action}")
        return await self._run(action, lambda *a: self.send_command(action, *a), *args)

    def clamp_volume(self, level) -> int:
        low, high = self.volume_range
        return max(low, min(high, int(level)))

    async def play(self) -> bool:
        return await self._run_action("play")

    async def pause(self) -> bool:
        return await self._run_action("pause")

    async def toggle_play(self) -> bool:
        return await self._run_action("toggle_play")

    async def next(self) -> bool:
        return await self._run_action("next")

    async def previous(self) -> bool:
        return await self._run_action("previous")

    async def seek(self, seconds) -> bool:
        return await self._run_action("seek", max(0, int(seconds)))

    async def set_volume(self, level) -> bool:
        return await self._run_action("set_volume", self.clamp_volume(level))

    async def toggle_mute(self) -> bool:
        """Mute by remembering the volume and setting it to the minimum."""
        self._require_connected("toggle_mute")
        current = self.current_status.volume if self.current_status else 0
        low, _ = self.volume_range
        if current > low:
            self._volume_before_mute = current
            target = low
        else:
            target = self._volume_before_mute or self.default_unmute_volume
            self._volume_before_mute = None
        return await self._run_action("toggle_mute", self.clamp_volume(target))

    async def toggle_shuffle(self) -> bool:
        return await self._run_action("toggle_shuffle")

    async def toggle_repeat(self) -> bool:
        return await self._run_action("toggle_repeat")

    async def select_output(self, device_id) -> bool:
        return await self._run_action("select_output", str(device_id))

    async def select_playlist_item(self, track_id) -> bool:
        return await self._run_action("select_playlist_item", str(track_id))

    async def execute_action(self, name: str) -> bool:
        """Run one of ``custom_actions()``."""
        self._require_connected(name)
        if name not in self.custom_actions():
            raise ActionError("unsupported", f"{self.display_name} has no action {name!r}")
        return await self._run(name, self.run_custom_action, name)

    # ── Queries ──

    async def _query(self, what: str, query, *args):
        self._require_connected(f"get {what}")
        try:
            return await query(*args)
        except (TransportError, ParseError) as e:
            raise ActionError("transport", f"Could not get {what} of {self.display_name}: {e}") from e

    async def get_devices(self) -> list[Device]:
        devices = await self._query("devices", self.query_devices)
        return [d.bind(self) for d in devices]

    async def get_playlists(self) -> list[Playlist]:
        playlists = await self._query("playlists", self.query_playlists)
        return [p.bind(self) for p in playlists]

    async def get_tracks(self, playlist: Playlist) -> list[Track]:
        tracks = await self._query("tracks", self.query_tracks, playlist)
        return [t.bind(self) for t in tracks]
