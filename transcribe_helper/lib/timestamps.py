# Transcribe Helper
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Attribution required — see LICENSE, Section 7(b).

"""
Timestamp helpers for transcription.

  seconds_to_timestamp(3661)            -> "1:01:01"
  parse_timestamp("see [12:34] here")   -> 754
  timestamp_for_insertion(65)           -> "[1:05]"
  seconds_to_seek("[1:05] speaker A")   -> 65
"""

import re

_TIMESTAMP_RE = re.compile(r"\d+(?::\d{1,2})+")


def seconds_to_timestamp(seconds: int) -> str:
    """Convert seconds to M:SS or H:MM:SS."""
    total = int(seconds)
    if total < 0:
        raise ValueError(f"negative seconds: {seconds}")
    if total >= 3600:
        h = total // 3600
        m = (total % 3600) // 60
        s = total % 60
        return f"{h}:{m:02d}:{s:02d}"
    return f"{total // 60}:{total % 60:02d}"


def parse_timestamp(text) -> int | None:
    """Return the seconds of the first timestamp found in *text*, or None.

    Every component is a sexagesimal digit, the last one being seconds, so
    "1:02:03" is 3723 and "123:45" is 7425.
    """
    if not text:
        return None
    match = _TIMESTAMP_RE.search(str(text))
    if match is None:
        return None
    seconds = 0
    for part in match.group(0).split(":"):
        seconds = seconds * 60 + int(part)
    return seconds


def timestamp_for_insertion(current_time) -> str:
    """Text inserted at the cursor for the current playback time."""
    return f"[{seconds_to_timestamp(int(current_time or 0))}]"


def seconds_to_seek(selected_text) -> int | None:
    """Seek target for the selected editor text (None = nothing to do)."""
    return parse_timestamp(selected_text)
