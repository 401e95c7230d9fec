import asyncio
import logging
from dataclasses import dataclass
from typing import AsyncIterator, Mapping, Optional, Tuple
from urllib.parse import urljoin

import aiohttp

from .errors import MidStreamFailure, TooManyRedirects, UpstreamTransportFailure
from .policy import PolicyConfig, validate_target


logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class UpstreamProbe:
    """What one upstream response says about the resource."""

    final_url: str
    mime_type: str
    byte_length: Optional[int]
    content_disposition: Optional[str]
    raw_headers: Mapping[str, str]

    @classmethod
    def from_response(cls, final_url: str, headers: Mapping[str, str]) -> "UpstreamProbe":
        return cls(
            final_url=final_url,
            mime_type=headers.get("Content-Type") or "",
            byte_length=_parse_length(headers.get("Content-Length")),
            content_disposition=headers.get("Content-Disposition"),
            raw_headers=headers,
        )


def _parse_length(raw: Optional[str]) -> Optional[int]:
    if raw is None:
        return None
    try:
        value = int(raw.strip())
    except ValueError:
        return None
    return value if value >= 0 else None


class UpstreamStream:
    """An upstream GET whose headers are in and whose body is still unread."""

    def __init__(self, response: aiohttp.ClientResponse, probe: UpstreamProbe):
        self._response = response
        self.probe = probe
        self._finished = False
        self._closed = False

    async def iter_body(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> AsyncIterator[bytes]:
        """Yield the body chunk by chunk; the connection is released when iteration stops."""
        try:
            async for chunk in self._response.content.iter_chunked(chunk_size):
                yield chunk
            self._finished = True
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            logger.error("Upstream body broke mid-stream for url=%s: %s", self.probe.final_url, exc)
            raise MidStreamFailure(str(exc)) from exc
        finally:
            self.close()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._finished:
            self._response.release()
        else:
            # Unread body: drop the connection instead of returning it to the pool
            self._response.close()


def _is_redirect(status: int) -> bool:
    # Any 3xx with a Location except 304 Not Modified
    return 300 <= status < 400 and status != 304


class UpstreamClient:
    """Thin wrapper over one shared ``aiohttp.ClientSession``.

    Redirects are followed by hand so every hop passes the same URL
    validation and guards as the client-supplied URL. No timeouts and
    no retries are applied.
    """

    def __init__(self, session: aiohttp.ClientSession):
        self._session = session

    @classmethod
    def create(cls, max_connections: int = 0) -> "UpstreamClient":
        connector = aiohttp.TCPConnector(limit=max_connections)
        session = aiohttp.ClientSession(
            connector=connector,
            timeout=aiohttp.ClientTimeout(total=None),
        )
        return cls(session)

    async def close(self) -> None:
        await self._session.close()

    async def probe(self, url: str, policy: PolicyConfig) -> UpstreamProbe:
        final_url, response = await self._follow("HEAD", url, policy)
        try:
            return UpstreamProbe.from_response(final_url, response.headers)
        finally:
            response.release()

    async def open_stream(self, url: str, policy: PolicyConfig) -> UpstreamStream:
        final_url, response = await self._follow("GET", url, policy)
        return UpstreamStream(response, UpstreamProbe.from_response(final_url, response.headers))

    async def _follow(
        self, method: str, url: str, policy: PolicyConfig
    ) -> Tuple[str, aiohttp.ClientResponse]:
        current = url
        redirects = 0
        while True:
            response = await self._send(method, current)
            location = response.headers.get("Location")
            if not _is_redirect(response.status) or not location:
                return current, response

            response.release()
            if redirects >= policy.max_redirects:
                raise TooManyRedirects(detail=f"more than {policy.max_redirects} redirects from {url}")
            redirects += 1
            next_url = urljoin(current, location)
            logger.debug("Redirect %s/%s: %s -> %s", redirects, policy.max_redirects, current, next_url)
            current = validate_target(next_url, policy)

    async def _send(self, method: str, url: str) -> aiohttp.ClientResponse:
        try:
            return await self._session.request(method, url, allow_redirects=False)
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise UpstreamTransportFailure(detail=f"{method} {url}: {exc!r}") from exc
