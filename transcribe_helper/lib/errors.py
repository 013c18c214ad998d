# Transcribe Helper
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Attribution required — see LICENSE, Section 7(b).

"""
Error taxonomy for Transcribe Helper.

Every error carries a short machine-readable ``reason`` so callers (the
controller, the editor glue) can decide between warning and info messages
without parsing text.

  TransportError  network | timeout | http_status | auth
  ParseError      malformed_xml | malformed_json | missing_field
  ConnectError    wraps a Transport/Parse failure during the first status fetch
  ActionError     not_connected | unsupported | not_found | transport
  ConfigError     invalid player configuration
"""


class HelperError(Exception):
    """Base for all Transcribe Helper exceptions."""

    def __init__(self, reason: str, message: str | None = None):
        self.reason = reason
        super().__init__(message or reason)


class TransportError(HelperError):
    """HTTP round trip to a player failed."""

    def __init__(self, reason: str, message: str | None = None, *, status: int | None = None):
        super().__init__(reason, message)
        self.status = status


class ParseError(HelperError):
    """A status/playlist document could not be decoded."""


class ConnectError(HelperError):
    """Initial handshake with a player failed."""


class ActionError(HelperError):
    """A player command or query could not be carried out."""


class ConfigError(HelperError):
    """A player configuration entry is unusable."""
