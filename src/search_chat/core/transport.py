"""
One-shot server-sent event subscriptions over httpx.
"""
from __future__ import annotations

import contextlib
from typing import AsyncGenerator, AsyncIterator, Optional, Protocol
from urllib.parse import quote

import httpx

from search_chat.core.logging_setup import get_logger

logger = get_logger(__name__)

# characters encodeURIComponent leaves alone
ENCODE_URI_SAFE = "-_.!~*'()"


class TransportError(Exception):
    """The subscription could not be opened or broke while streaming."""


class Subscription(Protocol):
    def __aiter__(self) -> AsyncIterator[str]: ...

    async def aclose(self) -> None: ...


class Transport(Protocol):
    def open(self, address: str) -> Subscription: ...


def build_stream_url(base_url: str, query: str, checkpoint_id: Optional[str] = None) -> str:
    url = f"{base_url.rstrip('/')}/{quote(query, safe=ENCODE_URI_SAFE)}"
    if checkpoint_id:
        url += f"?checkpoint_id={quote(checkpoint_id, safe=ENCODE_URI_SAFE)}"
    return url


async def iter_sse_data(lines: AsyncIterator[str]) -> AsyncIterator[str]:
    """
    Yield the data payload of every event in an SSE line stream.

    Multi-line data fields are joined with newlines. Comments and the
    event/id/retry fields are ignored; an event cut off by the end of the
    stream is dropped.
    """
    data: list[str] = []
    async for line in lines:
        if not line:
            if data:
                yield "\n".join(data)
                data = []
            continue
        if line.startswith(":"):
            continue

        name, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if name == "data":
            data.append(value)


class HttpxSubscription:
    def __init__(self, client: httpx.AsyncClient, address: str, owns_client: bool = False):
        self._client = client
        self._address = address
        self._owns_client = owns_client
        self._stack = contextlib.AsyncExitStack()
        self._frames: Optional[AsyncGenerator[str, None]] = None
        self._closed = False

    def __aiter__(self) -> AsyncIterator[str]:
        if self._frames is None:
            self._frames = self._stream()
        return self._frames

    async def _stream(self) -> AsyncGenerator[str, None]:
        try:
            response = await self._stack.enter_async_context(
                self._client.stream("GET", self._address, headers={"Accept": "text/event-stream"})
            )
            if not response.is_success:
                raise TransportError(f"stream request failed with HTTP {response.status_code}")

            async for frame in iter_sse_data(response.aiter_lines()):
                yield frame
        except (httpx.HTTPError, httpx.InvalidURL, httpx.StreamError) as e:
            raise TransportError(str(e) or type(e).__name__) from e

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True

        if self._frames is not None:
            await self._frames.aclose()
        await self._stack.aclose()
        if self._owns_client:
            await self._client.aclose()


class HttpxTransport:
    """
    Opens each subscription on a shared AsyncClient when one is given,
    otherwise on a client of its own that is closed with the subscription.
    """

    def __init__(self, client: Optional[httpx.AsyncClient] = None, timeout: float = 60.0):
        self._client = client
        self._timeout = timeout

    def open(self, address: str) -> HttpxSubscription:
        logger.debug("subscription_opening", address=address)
        if self._client is not None:
            return HttpxSubscription(self._client, address)

        client = httpx.AsyncClient(timeout=httpx.Timeout(self._timeout))
        return HttpxSubscription(client, address, owns_client=True)
