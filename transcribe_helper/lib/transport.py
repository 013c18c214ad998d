# Transcribe Helper
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Attribution required — see LICENSE, Section 7(b).

"""
HTTP transport between a player session and the remote player.

One transport per session, one aiohttp session per transport.  Every
request buffers the whole body (status documents are small) and failures
come back as a TransportError with a reason:

  network      connection refused / reset / DNS
  timeout      no answer within the request timeout
  http_status  non-2xx answer (status kept on the exception)
  auth         401/403 answer or unusable credentials

Usage:
    transport = HttpTransport("localhost", 8080, password="secret")
    await transport.open()
    body = await transport.request("GET", "/requests/status.xml")
    await transport.close()
"""

import asyncio
import logging

import aiohttp

from .errors import TransportError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0  # seconds per request
USER_AGENT = "TranscribeHelper-Transport/1.0"


def _clean_query(query: dict | None) -> dict | None:
    """Drop None values and stringify the rest (aiohttp wants str params)."""
    if not query:
        return None
    cleaned = {}
    for key, value in query.items():
        if value is None:
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        cleaned[key] = str(value)
    return cleaned


class HttpTransport:
    """Authenticated GET/POST/PUT against one player endpoint."""

    def __init__(self, host: str, port: int, *, password: str | None = None,
                 secure: bool | None = None, timeout: float = DEFAULT_TIMEOUT):
        self.host = (host or "localhost").strip()
        self.port = int(port)
        # TLS when asked for explicitly, otherwise only on the HTTPS port
        self.secure = self.port == 443 if secure is None else bool(secure)
        scheme = "https" if self.secure else "http"
        self.base_url = f"{scheme}://{self.host}:{self.port}"
        self.timeout = timeout
        self._password = password
        self._session: aiohttp.ClientSession | None = None

    @property
    def is_open(self) -> bool:
        return self._session is not None

    async def open(self):
        """Create the underlying aiohttp session (idempotent)."""
        if self._session is not None:
            return
        connector = aiohttp.TCPConnector(
            limit=4,
            ttl_dns_cache=300,
            keepalive_timeout=30,
        )
        self._session = aiohttp.ClientSession(
            connector=connector,
            timeout=aiohttp.ClientTimeout(total=self.timeout),
            headers={"User-Agent": USER_AGENT},
        )
        logger.debug("Transport ready -> %s", self.base_url)

    async def close(self):
        """Close the aiohttp session (idempotent)."""
        session, self._session = self._session, None
        if session is not None:
            await session.close()
            logger.debug("Transport closed -> %s", self.base_url)

    def _basic_auth(self) -> aiohttp.BasicAuth | None:
        """Basic credentials: empty user name, configured password."""
        if self._password is None or self._password == "":
            return None
        try:
            auth = aiohttp.BasicAuth("", str(self._password))
            auth.encode()
        except ValueError as e:
            raise TransportError("auth", f"Unusable credentials: {e}") from e
        return auth

    async def request(self, method: str, path: str, query: dict | None = None, *,
                      json=None, data=None, headers: dict | None = None,
                      auth: aiohttp.BasicAuth | None = None) -> bytes:
        """Perform one request and return the raw response body.

        The transport must be open; a closed one is never reopened here.
        """
        if self._session is None:
            raise TransportError("network", f"{method} {path}: transport closed")

        if path.startswith(("http://", "https://")):
            url = path
        else:
            url = f"{self.base_url}{path}"
        if auth is None:
            auth = self._basic_auth()

        try:
            async with self._session.request(
                method, url,
                params=_clean_query(query),
                json=json,
                data=data,
                headers=headers,
                auth=auth,
            ) as resp:
                body = await resp.read()
                logger.debug("%s %s -> HTTP %d (%d bytes)", method, path, resp.status, len(body))
                if resp.status in (401, 403):
                    raise TransportError(
                        "auth", f"{method} {path}: HTTP {resp.status}", status=resp.status)
                if not 200 <= resp.status < 300:
                    raise TransportError(
                        "http_status", f"{method} {path}: HTTP {resp.status}", status=resp.status)
                return body
        except asyncio.TimeoutError as e:
            raise TransportError("timeout", f"{method} {path}: timed out after {self.timeout}s") from e
        except aiohttp.ClientError as e:
            raise TransportError("network", f"{method} {path}: {e}") from e
