# Transcribe Helper
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Attribution required — see LICENSE, Section 7(b).

"""
Spotify token management - the ONE place for token refresh.

Tokens are obtained outside Transcribe Helper (the user registers an app and
authorizes it once; register_app_url() builds the link).  The session is
configured with the resulting refresh token and/or access token and keeps
the access token fresh itself.

Usage:
    auth = SpotifyAuth.from_config(config, transport)
    token = await auth.get_token()
"""

import json
import logging
import time
import urllib.parse

import aiohttp

from ...lib.config import PlayerConfig
from ...lib.errors import ConfigError, ParseError, TransportError
from ...lib.transport import HttpTransport

log = logging.getLogger("transcribe-helper.spotify")

TOKEN_URL = "https://accounts.spotify.com/api/token"
AUTHORIZE_URL = "https://accounts.spotify.com/authorize"
DEFAULT_REDIRECT_URL = "http://127.0.0.1:8888/callback"
SCOPES = " ".join([
    "user-read-playback-state",
    "user-modify-playback-state",
    "user-read-currently-playing",
    "playlist-read-private",
    "playlist-read-collaborative",
])
EXPIRY_MARGIN = 300  # refresh five minutes before Spotify would reject


def register_app_url(config: PlayerConfig) -> str:
    """Build the authorization URL a user opens to grant the app access."""
    if not config.client_id:
        raise ConfigError("invalid", "Spotify player has no clientID")
    params = urllib.parse.urlencode({
        "client_id": config.client_id,
        "response_type": "code",
        "redirect_uri": config.redirect_url or DEFAULT_REDIRECT_URL,
        "scope": SCOPES,
    })
    return f"{AUTHORIZE_URL}?{params}"


class SpotifyAuth:
    """Manages Spotify access tokens with automatic refresh (async)."""

    def __init__(self, transport: HttpTransport, *, client_id=None, client_secret=None,
                 refresh_token=None, access_token=None, expires_in=3600,
                 token_url: str = TOKEN_URL):
        self.transport = transport
        self.token_url = token_url
        self.revoked = False
        self.set_credentials(client_id, client_secret, refresh_token, access_token, expires_in)

    @classmethod
    def from_config(cls, config: PlayerConfig, transport: HttpTransport, **kwargs):
        return cls(
            transport,
            client_id=config.client_id,
            client_secret=config.client_secret,
            refresh_token=config.refresh_token,
            access_token=config.access_token,
            **kwargs,
        )

    def set_credentials(self, client_id, client_secret, refresh_token,
                        access_token=None, expires_in=3600):
        self._client_id = client_id
        self._client_secret = client_secret
        self._refresh_token = refresh_token
        self._access_token = access_token
        self._token_expiry = time.monotonic() + expires_in - EXPIRY_MARGIN if access_token else 0
        self.revoked = False

    @property
    def is_configured(self) -> bool:
        return bool(self._access_token or (self._client_id and self._refresh_token))

    async def get_token(self) -> str:
        """Get a valid access token, refreshing if needed."""
        if self._access_token and time.monotonic() < self._token_expiry:
            return self._access_token
        return await self.refresh()

    async def refresh(self) -> str:
        """Exchange the refresh token for a new access token."""
        if not self._refresh_token or not self._client_id:
            raise TransportError("auth", "Spotify access token expired and no refresh token configured")

        data = {"grant_type": "refresh_token", "refresh_token": self._refresh_token}
        auth = None
        if self._client_secret:
            auth = aiohttp.BasicAuth(self._client_id, self._client_secret)
        else:
            data["client_id"] = self._client_id

        try:
            body = await self.transport.request("POST", self.token_url, data=data, auth=auth)
        except TransportError as e:
            if e.status == 400:
                self.revoked = True
                log.error("Spotify refresh token rejected - re-authorization required")
                raise TransportError("auth", f"Token refresh rejected: {e}", status=e.status) from e
            raise

        try:
            result = json.loads(body)
            access_token = result["access_token"]
        except (ValueError, TypeError, KeyError) as e:
            raise ParseError("malformed_json", f"Unexpected token response: {e}") from e

        expires_in = int(result.get("expires_in", 3600))
        self._access_token = access_token
        self._token_expiry = time.monotonic() + expires_in - EXPIRY_MARGIN

        # Spotify may rotate the refresh token
        new_rt = result.get("refresh_token")
        if new_rt and new_rt != self._refresh_token:
            self._refresh_token = new_rt
            log.info("Refresh token rotated")

        log.info("Access token refreshed (expires in %ds)", expires_in)
        return self._access_token
