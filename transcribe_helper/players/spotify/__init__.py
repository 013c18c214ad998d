# Transcribe Helper
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Attribution required — see LICENSE, Section 7(b).

"""Spotify Web API player: session (player.py) and token handling (auth.py)."""

from .auth import SpotifyAuth, register_app_url
from .player import SpotifyPlayer

__all__ = ["SpotifyAuth", "SpotifyPlayer", "register_app_url"]
