# Transcribe Helper
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Attribution required — see LICENSE, Section 7(b).

"""
Decoders for player status documents.

VLC Lua HTTP interface (XML):
  /requests/status.xml    <root><state/><volume/><time/><length/>...
                          <information><category name="meta"><info name="title">...
  /requests/playlist.xml  <node><node name="Playlist"><leaf id= name= duration= uri=/>...

Spotify Web API (JSON):
  /v1/me/player           {"is_playing", "progress_ms", "device", "item", ...}
  /v1/me/player/devices   {"devices": [...]}
  /v1/me/playlists        {"items": [...], "next": ...}
  /v1/playlists/{id}/tracks

Parsing is all-or-nothing: a document either yields a complete Status or
raises ParseError.  Optional fields default to 0 / False / None, unknown
fields are ignored and list order is kept exactly as in the payload.
"""

import json
from xml.etree import ElementTree

from .errors import ParseError
from .models import (
    STATE_PAUSED,
    STATE_PLAYING,
    STATE_STOPPED,
    Device,
    Playlist,
    Status,
    Track,
)

_VLC_STATES = {
    "playing": STATE_PLAYING,
    "paused": STATE_PAUSED,
    "stopped": STATE_STOPPED,
}


# ── Lenient scalar helpers ──

def _to_int(value, default: int = 0) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return default


def _to_float(value, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _to_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("true", "1", "yes", "on")


def _xml_text(root: ElementTree.Element, tag: str, default: str = "") -> str:
    """Get text content of a child element."""
    el = root.find(tag)
    return el.text.strip() if el is not None and el.text else default


def _decode(raw) -> bytes:
    if raw is None:
        raise ParseError("malformed_xml", "empty document")
    if isinstance(raw, str):
        raw = raw.encode("utf-8")
    raw = raw.strip()
    if not raw:
        raise ParseError("malformed_xml", "empty document")
    return raw


def _load_xml(raw) -> ElementTree.Element:
    try:
        return ElementTree.fromstring(_decode(raw))
    except ElementTree.ParseError as e:
        raise ParseError("malformed_xml", f"Invalid XML: {e}") from e


def _load_json(raw):
    try:
        return json.loads(_decode(raw))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ParseError("malformed_json", f"Invalid JSON: {e}") from e


# ── Generic entry point ──

def parse_status(raw) -> Status:
    """Decode a VLC (XML) or Spotify (JSON) status document."""
    body = _decode(raw)
    if body.startswith(b"<"):
        return parse_vlc_status(body)
    if body.startswith(b"{"):
        return parse_spotify_status(_load_json(body))
    raise ParseError("malformed_xml", "Document is neither XML nor JSON")


# ── VLC ──

def parse_vlc_status(raw) -> Status:
    """Decode /requests/status.xml."""
    root = _load_xml(raw)
    if root.tag != "root":
        raise ParseError("missing_field", f"Unexpected root element <{root.tag}>")

    raw_state = _xml_text(root, "state")
    if not raw_state:
        raise ParseError("missing_field", "status.xml has no <state>")
    vol_str = _xml_text(root, "volume")
    if not vol_str:
        raise ParseError("missing_field", "status.xml has no <volume>")
    try:
        volume = int(float(vol_str))
    except ValueError as e:
        raise ParseError("missing_field", f"Non-numeric <volume>: {vol_str!r}") from e

    state = _VLC_STATES.get(raw_state.lower(), STATE_STOPPED)
    length = _to_int(_xml_text(root, "length"))

    meta = {}
    for info in root.findall("./information/category[@name='meta']/info"):
        name = info.get("name")
        if name and info.text:
            meta[name.lower()] = info.text.strip()

    current_id = _to_int(_xml_text(root, "currentplid"), default=-1)
    current_track = None
    if current_id >= 0 or meta:
        current_track = Track(
            id=str(current_id) if current_id >= 0 else "",
            name=meta.get("title") or meta.get("filename", ""),
            artist=meta.get("artist"),
            duration=length,
            description=meta.get("album", ""),
        )

    return Status(
        state=state,
        volume=volume,
        is_muted=volume == 0,
        repeat=_to_bool(_xml_text(root, "repeat")),
        loop=_to_bool(_xml_text(root, "loop")),
        random=_to_bool(_xml_text(root, "random")),
        current_track=current_track,
        position=_to_float(_xml_text(root, "position")),
        time=_to_int(_xml_text(root, "time")),
        length=length,
    )


def _vlc_leaf_to_track(leaf: ElementTree.Element) -> Track:
    duration = _to_int(leaf.get("duration"))
    return Track(
        id=leaf.get("id", ""),
        name=leaf.get("name", ""),
        duration=max(duration, 0),
        uri=leaf.get("uri", ""),
    )


def parse_vlc_playlists(raw) -> list[Playlist]:
    """Decode /requests/playlist.xml into its top-level nodes.

    VLC reports "Playlist" first and "Media Library" second; every leaf
    below a node (at any depth) becomes one of its tracks.
    """
    root = _load_xml(raw)
    if root.tag != "node":
        raise ParseError("missing_field", f"Unexpected root element <{root.tag}>")

    playlists = []
    for node in root.findall("node"):
        playlists.append(Playlist(
            id=node.get("id", ""),
            name=node.get("name", ""),
            tracks=tuple(_vlc_leaf_to_track(leaf) for leaf in node.iter("leaf")),
        ))
    return playlists


# ── Spotify ──

def _spotify_device(data: dict) -> Device:
    volume = data.get("volume_percent")
    return Device(
        id=str(data.get("id") or ""),
        name=data.get("name") or "",
        is_active=bool(data.get("is_active")),
        volume=_to_int(volume) if volume is not None else None,
    )


def _spotify_track(data: dict) -> Track:
    artists = ", ".join(a["name"] for a in data.get("artists") or [] if a and a.get("name"))
    album = data.get("album") or {}
    return Track(
        id=str(data.get("id") or ""),
        name=data.get("name") or "",
        artist=artists or None,
        duration=_to_int(data.get("duration_ms")) // 1000,
        uri=data.get("uri") or "",
        description=album.get("name") or "",
    )


def parse_spotify_status(data) -> Status:
    """Decode /v1/me/player (already JSON-decoded)."""
    if not isinstance(data, dict):
        raise ParseError("missing_field", "Player state is not an object")
    if "is_playing" not in data:
        raise ParseError("missing_field", "Player state has no 'is_playing'")

    item = data.get("item") or None
    device = data.get("device") or None
    progress_ms = _to_int(data.get("progress_ms"))
    duration_ms = _to_int(item.get("duration_ms")) if item else 0

    if data.get("is_playing"):
        state = STATE_PLAYING
    elif item:
        state = STATE_PAUSED
    else:
        state = STATE_STOPPED

    devices = ()
    volume = 0
    if device:
        devices = (_spotify_device(device),)
        volume = devices[0].volume or 0

    repeat_state = data.get("repeat_state") or "off"
    return Status(
        state=state,
        volume=volume,
        is_muted=bool(device) and volume == 0,
        repeat=repeat_state == "track",
        loop=repeat_state == "context",
        random=bool(data.get("shuffle_state")),
        current_track=_spotify_track(item) if item else None,
        position=progress_ms / duration_ms if duration_ms else 0.0,
        time=progress_ms // 1000,
        length=duration_ms // 1000,
        devices=devices,
    )


def parse_spotify_devices(raw) -> list[Device]:
    data = _load_json(raw)
    if not isinstance(data, dict) or "devices" not in data:
        raise ParseError("missing_field", "Device list has no 'devices'")
    return [_spotify_device(d) for d in data["devices"] or [] if d]


def parse_spotify_playlists(raw) -> tuple[list[Playlist], str | None]:
    """Decode one page of /v1/me/playlists.  Returns (playlists, next_url)."""
    data = _load_json(raw)
    if not isinstance(data, dict) or "items" not in data:
        raise ParseError("missing_field", "Playlist page has no 'items'")
    playlists = []
    for pl in data["items"] or []:
        if not pl:
            continue
        playlists.append(Playlist(
            id=str(pl.get("id") or ""),
            name=pl.get("name") or "",
            uri=pl.get("uri") or "",
            description=pl.get("description") or "",
        ))
    return playlists, data.get("next")


def parse_spotify_tracks(raw) -> tuple[list[Track], str | None]:
    """Decode one page of /v1/playlists/{id}/tracks.  Returns (tracks, next_url)."""
    data = _load_json(raw)
    if not isinstance(data, dict) or "items" not in data:
        raise ParseError("missing_field", "Track page has no 'items'")
    tracks = []
    for item in data["items"] or []:
        track = (item or {}).get("track")
        if not track:
            continue
        tracks.append(_spotify_track(track))
    return tracks, data.get("next")
