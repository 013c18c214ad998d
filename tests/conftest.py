"""Fake VLC and Spotify HTTP servers plus a transport-free stub player."""

import asyncio

import aiohttp
import pytest
from aiohttp import web

from transcribe_helper.lib.config import PlayerConfig
from transcribe_helper.lib.errors import TransportError
from transcribe_helper.lib.models import Status
from transcribe_helper.lib.player_base import PlayerBase
from transcribe_helper.lib.transport import HttpTransport
from transcribe_helper.players.spotify import SpotifyAuth, SpotifyPlayer
from transcribe_helper.players.vlc import VlcPlayer

VLC_PLAYLIST_XML = """<?xml version="1.0" encoding="utf-8" standalone="yes" ?>
<node ro="rw" name="" id="0">
  <node ro="ro" name="Playlist" id="1">
    <leaf ro="rw" name="Interview Alice part one" id="4" duration="1800" uri="file:///a1.mp3"/>
    <leaf ro="rw" name="Interview Bob" id="5" duration="95" uri="file:///b.mp3"/>
    <leaf ro="rw" name="" id="6" duration="-1" uri="file:///unknown.mp3"/>
    <leaf ro="rw" name="Alice outro" id="7" duration="30" uri="file:///a2.mp3"/>
  </node>
  <node ro="ro" name="Media Library" id="2">
    <leaf ro="rw" name="Old recording" id="9" duration="600" uri="file:///old.mp3"/>
  </node>
</node>
"""


class FakeVlc:
    """Just enough of VLC's Lua HTTP interface."""

    def __init__(self, password="secret"):
        self.password = password
        self.state = "paused"
        self.volume = 256
        self.time = 10
        self.length = 1800
        self.random = False
        self.repeat = False
        self.loop = False
        self.current_id = 4
        self.title = "Interview Alice part one"
        self.commands = []
        self.status_requests = 0
        self.status_code = 200
        self.server = None

    def app(self):
        app = web.Application()
        app.router.add_get("/requests/status.xml", self.handle_status)
        app.router.add_get("/requests/playlist.xml", self.handle_playlist)
        return app

    def _authorized(self, request):
        expected = aiohttp.BasicAuth("", self.password).encode()
        return request.headers.get("Authorization") == expected

    def _apply(self, command, query):
        if command == "pl_forcepause":
            self.state = "paused"
        elif command in ("pl_forceresume", "pl_play"):
            self.state = "playing"
            if "id" in query:
                self.current_id = int(query["id"])
        elif command == "pl_pause":
            self.state = "paused" if self.state == "playing" else "playing"
        elif command == "pl_stop":
            self.state = "stopped"
        elif command == "seek":
            self.time = int(query["val"])
        elif command == "volume":
            self.volume = int(query["val"])
        elif command == "pl_random":
            self.random = not self.random
        elif command == "pl_repeat":
            self.repeat = not self.repeat
        elif command == "pl_loop":
            self.loop = not self.loop

    def status_xml(self):
        return f"""<?xml version="1.0" encoding="utf-8" standalone="yes" ?>
<root>
  <fullscreen>false</fullscreen>
  <volume>{self.volume}</volume>
  <time>{self.time}</time>
  <length>{self.length}</length>
  <position>{self.time / self.length if self.length else 0}</position>
  <state>{self.state}</state>
  <random>{str(self.random).lower()}</random>
  <repeat>{str(self.repeat).lower()}</repeat>
  <loop>{str(self.loop).lower()}</loop>
  <currentplid>{self.current_id}</currentplid>
  <version>3.0.20 Vetinari</version>
  <information>
    <category name="meta">
      <info name="title">{self.title}</info>
      <info name="artist">Field Recordings</info>
      <info name="filename">a1.mp3</info>
    </category>
  </information>
</root>
"""

    async def handle_status(self, request):
        if not self._authorized(request):
            return web.Response(status=401)
        self.status_requests += 1
        if self.status_code != 200:
            return web.Response(status=self.status_code)
        command = request.query.get("command")
        if command:
            self.commands.append((command, request.query.get("val") or request.query.get("id")))
            self._apply(command, request.query)
        return web.Response(text=self.status_xml(), content_type="text/xml")

    async def handle_playlist(self, request):
        if not self._authorized(request):
            return web.Response(status=401)
        return web.Response(text=VLC_PLAYLIST_XML, content_type="text/xml")


class FakeSpotify:
    """Just enough of the Spotify Web API and accounts service."""

    def __init__(self):
        self.tokens = {"initial-token"}
        self.token_status = 200
        self.token_requests = []
        self.requests = []
        self.player_status = 200
        self.command_status = 204
        self.state = {
            "is_playing": False,
            "progress_ms": 65000,
            "shuffle_state": False,
            "repeat_state": "off",
            "device": {"id": "dev-laptop", "name": "Laptop", "is_active": True, "volume_percent": 40},
            "item": {
                "id": "t1",
                "name": "Episode 12",
                "uri": "spotify:track:t1",
                "duration_ms": 600000,
                "artists": [{"name": "The Podcast"}],
                "album": {"name": "Season 2"},
            },
        }
        self.devices = [
            {"id": "dev-laptop", "name": "Laptop", "is_active": True, "volume_percent": 40},
            {"id": "dev-kitchen", "name": "kitchen speaker", "is_active": False, "volume_percent": 70},
        ]
        self.server = None

    def app(self):
        app = web.Application()
        app.router.add_post("/api/token", self.handle_token)
        app.router.add_get("/v1/me/player", self.handle_player)
        app.router.add_put("/v1/me/player", self.handle_command)
        app.router.add_get("/v1/me/player/devices", self.handle_devices)
        app.router.add_route("*", "/v1/me/player/{command}", self.handle_command)
        app.router.add_get("/v1/me/playlists", self.handle_playlists)
        app.router.add_get("/v1/playlists/{id}/tracks", self.handle_tracks)
        return app

    def _authorized(self, request):
        header = request.headers.get("Authorization", "")
        return header.startswith("Bearer ") and header[len("Bearer "):] in self.tokens

    async def handle_token(self, request):
        form = await request.post()
        self.token_requests.append((dict(form), request.headers.get("Authorization")))
        if self.token_status != 200:
            return web.json_response({"error": "invalid_grant"}, status=self.token_status)
        self.tokens.add("fresh-token")
        return web.json_response({"access_token": "fresh-token", "expires_in": 3600})

    async def handle_player(self, request):
        if not self._authorized(request):
            return web.Response(status=401)
        if self.player_status == 204 or self.state is None:
            return web.Response(status=204)
        if self.player_status != 200:
            return web.Response(status=self.player_status)
        return web.json_response(self.state)

    async def handle_command(self, request):
        if not self._authorized(request):
            return web.Response(status=401)
        body = await request.json() if request.can_read_body else None
        command = request.match_info.get("command", "transfer")
        self.requests.append((request.method, command, dict(request.query), body))
        if self.command_status >= 400:
            return web.json_response({"error": {"status": self.command_status}},
                                     status=self.command_status)
        if command == "play":
            self.state["is_playing"] = True
        elif command == "pause":
            self.state["is_playing"] = False
        elif command == "volume":
            self.state["device"]["volume_percent"] = int(request.query["volume_percent"])
        elif command == "shuffle":
            self.state["shuffle_state"] = request.query["state"] == "true"
        elif command == "repeat":
            self.state["repeat_state"] = request.query["state"]
        elif command == "seek":
            self.state["progress_ms"] = int(request.query["position_ms"])
        return web.Response(status=204)

    async def handle_devices(self, request):
        if not self._authorized(request):
            return web.Response(status=401)
        return web.json_response({"devices": self.devices})

    async def handle_playlists(self, request):
        if not self._authorized(request):
            return web.Response(status=401)
        if request.query.get("offset") == "1":
            return web.json_response({
                "items": [{"id": "pl2", "name": "Raw tape", "uri": "spotify:playlist:pl2"}],
                "next": None,
            })
        return web.json_response({
            "items": [{"id": "pl1", "name": "Interviews", "uri": "spotify:playlist:pl1",
                       "description": "To transcribe"}],
            "next": str(request.url.with_query({"offset": "1", "limit": "1"})),
        })

    async def handle_tracks(self, request):
        if not self._authorized(request):
            return web.Response(status=401)
        return web.json_response({
            "items": [
                {"track": {"id": "t1", "name": "Episode 12", "uri": "spotify:track:t1",
                           "duration_ms": 600000, "artists": [{"name": "The Podcast"}]}},
                {"track": None},
                {"track": {"id": "t2", "name": "Episode 13", "uri": "spotify:track:t2",
                           "duration_ms": 720000, "artists": []}},
            ],
            "next": None,
        })


class StubPlayer(PlayerBase):
    """In-memory player for controller tests; never touches the network."""

    type = "stub"
    name = "Stub"

    def __init__(self, config, *, status=None, devices=None, playlists=None, fail_connect=False):
        super().__init__(config, poll_interval=60)
        self.status = status or Status(state="paused", volume=50, time=3723)
        self.devices = devices or []
        self.playlists = playlists or []
        self.fail_connect = fail_connect
        self.sent = []

    def create_transport(self):
        return HttpTransport("localhost", 9)

    async def fetch_status(self):
        if self.fail_connect:
            raise TransportError("network", "connection refused")
        return self.status

    async def send_command(self, action, *args):
        self.sent.append((action, *args))
        if action == "seek":
            self.status = Status(state=self.status.state, volume=self.status.volume, time=args[0])

    async def query_devices(self):
        return list(self.devices)

    async def query_playlists(self):
        return list(self.playlists)

    async def query_tracks(self, playlist):
        return list(playlist.tracks)

    def custom_actions(self):
        return {"stop": "Stop playback"}

    async def run_custom_action(self, name):
        self.sent.append(("custom", name))


# ── Fixtures ──

@pytest.fixture
async def vlc(aiohttp_server):
    fake = FakeVlc()
    fake.server = await aiohttp_server(fake.app())
    return fake


@pytest.fixture
async def spotify(aiohttp_server):
    fake = FakeSpotify()
    fake.server = await aiohttp_server(fake.app())
    return fake


def vlc_config(fake, **overrides) -> PlayerConfig:
    values = dict(type="vlc", name="Desk VLC", host=fake.server.host, port=fake.server.port,
                  password=fake.password)
    values.update(overrides)
    return PlayerConfig(**values)


def make_vlc_player(fake, *, poll_interval=60, **overrides) -> VlcPlayer:
    return VlcPlayer(vlc_config(fake, **overrides), poll_interval=poll_interval)


def make_spotify_player(fake, *, poll_interval=60, **overrides) -> SpotifyPlayer:
    values = dict(type="spotify", name="Spotify", client_id="client-1", access_token="initial-token")
    values.update(overrides)
    config = PlayerConfig(**values)
    transport = HttpTransport(fake.server.host, fake.server.port)
    auth = SpotifyAuth.from_config(config, transport, token_url=str(fake.server.make_url("/api/token")))
    return SpotifyPlayer(config, transport, auth=auth, poll_interval=poll_interval)


@pytest.fixture
async def vlc_player(vlc):
    player = make_vlc_player(vlc)
    await player.connect()
    yield player
    await player.disconnect()


@pytest.fixture
async def spotify_player(spotify):
    player = make_spotify_player(spotify)
    await player.connect()
    yield player
    await player.disconnect()


async def wait_for(predicate, timeout=2.0):
    """Poll *predicate* until true or fail the test."""
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            pytest.fail("condition not reached in time")
        await asyncio.sleep(0.01)

