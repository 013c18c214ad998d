# Transcribe Helper
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Attribution required — see LICENSE, Section 7(b).

"""
Search matching for tracks and playlists.

A search expression is split into terms; a candidate matches when *every*
term occurs somewhere in its normalized name:

    search_tracks(["foo", "bar"], tracks)   # names containing foo AND bar
"""

import re


def normalize_string(value) -> str:
    """Lower-case, trimmed, inner whitespace collapsed."""
    if value is None:
        return ""
    return re.sub(r"\s+", " ", str(value)).strip().lower()


def parse_search_terms(expression) -> list[str]:
    """Split a search expression into distinct normalized terms (order kept)."""
    terms = []
    for part in normalize_string(expression).split(" "):
        if part and part not in terms:
            terms.append(part)
    return terms


def does_search_match(terms, search_in) -> bool:
    """True if every term occurs in *search_in*.  No terms matches everything."""
    if isinstance(terms, str):
        terms = [terms]
    haystack = normalize_string(search_in)
    needles = [normalize_string(t) for t in terms or []]
    return all(n in haystack for n in needles if n)


def search_by_name(terms, candidates) -> list:
    """Candidates (tracks, playlists, devices) whose name matches every term."""
    return [c for c in candidates if c is not None and does_search_match(terms, c.name)]


search_tracks = search_by_name
search_playlists = search_by_name
