# Transcribe Helper
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Attribution required — see LICENSE, Section 7(b).

"""Control VLC or Spotify playback from a text editor while transcribing."""

__version__ = "1.0.0"
