"""HTTP transport for the stocking schedule."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Protocol

import aiohttp

from pytrout._constants import USER_AGENT
from pytrout.exceptions import TroutParseError, TroutTransportError

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by remote sources.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementation (`HttpTransport`) concrete.
    """

    async def get_text(self, url: str, params: Mapping[str, str]) -> str:
        ...


class HttpTransport:
    """aiohttp transport that maps every failure to :class:`TroutTransportError`."""

    def __init__(
        self,
        http_session: aiohttp.ClientSession,
        *,
        timeout: float = 30.0,
    ) -> None:
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    async def get_text(self, url: str, params: Mapping[str, str]) -> str:
        headers = {
            "accept": "text/html,application/xhtml+xml",
            "user-agent": USER_AGENT,
        }
        _logger.debug("GET %s params=%s", url, dict(params))

        try:
            async with self._http.get(url, params=dict(params), headers=headers, timeout=self._timeout) as resp:
                if resp.status != 200:
                    body = await resp.text(errors="replace")
                    raise TroutTransportError(
                        f"HTTP {resp.status} from {url}: {body[:200]}",
                        status_code=resp.status,
                        url=url,
                    )
                try:
                    text = await resp.text()
                except UnicodeDecodeError as exc:
                    raise TroutParseError(
                        f"Undecodable response from {url}: {exc}",
                        status_code=resp.status,
                        url=url,
                    ) from exc
        except TroutTransportError:
            raise
        except TimeoutError as exc:
            raise TroutTransportError(f"Request to {url} timed out", url=url) from exc
        except aiohttp.ClientError as exc:
            raise TroutTransportError(f"Request to {url} failed: {exc}", url=url) from exc

        return text
