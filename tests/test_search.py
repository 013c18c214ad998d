import pytest

from transcribe_helper.lib.models import Playlist, Track
from transcribe_helper.lib.search import (
    does_search_match,
    normalize_string,
    parse_search_terms,
    search_playlists,
    search_tracks,
)


def test_normalize_string():
    assert normalize_string("  Interview\tALICE \n ") == "interview alice"
    assert normalize_string(None) == ""


def test_parse_search_terms_dedupes_and_keeps_order():
    assert parse_search_terms("Bob  alice BOB") == ["bob", "alice"]
    assert parse_search_terms("   ") == []


@pytest.mark.parametrize("terms, text, expected", [
    (["alice", "interview"], "Interview with Alice", True),
    (["alice", "bob"], "Interview with Alice", False),
    (["VIEW"], "Interview", True),
    ([], "anything", True),
    ("alice", "ALICE", True),
])
def test_does_search_match(terms, text, expected):
    assert does_search_match(terms, text) is expected


def test_search_tracks_and_playlists():
    tracks = [Track(id="1", name="Alice part one"), Track(id="2", name="Bob"), Track(id="3", name="alice two")]
    assert [t.id for t in search_tracks(["alice"], tracks)] == ["1", "3"]
    assert [t.id for t in search_tracks(["alice", "one"], tracks)] == ["1"]

    playlists = [Playlist(id="p", name="Raw tape"), Playlist(id="q", name="Interviews")]
    assert [p.id for p in search_playlists(["tape"], playlists)] == ["p"]
