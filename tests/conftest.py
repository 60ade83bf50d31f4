import json
from typing import Any, List, Optional, Union

import pytest

from search_chat.core.transport import TransportError


def frame(**payload: Any) -> str:
    return json.dumps(payload)


class FakeSubscription:
    """Replays scripted frames; an exception in the script is raised in place."""

    def __init__(self, script: List[Union[str, Exception]]):
        self.script = script
        self.delivered: List[str] = []
        self.closed = False

    def __aiter__(self):
        return self._frames()

    async def _frames(self):
        for item in self.script:
            if isinstance(item, Exception):
                raise item
            self.delivered.append(item)
            yield item

    async def aclose(self) -> None:
        self.closed = True


class FakeTransport:
    def __init__(self, *scripts: List[Union[str, Exception]], open_error: Optional[Exception] = None):
        self.scripts = list(scripts)
        self.open_error = open_error
        self.addresses: List[str] = []
        self.subscriptions: List[FakeSubscription] = []

    def open(self, address: str) -> FakeSubscription:
        self.addresses.append(address)
        if self.open_error is not None:
            raise self.open_error
        subscription = FakeSubscription(self.scripts.pop(0))
        self.subscriptions.append(subscription)
        return subscription


@pytest.fixture
def weather_script():
    return [
        frame(type="checkpoint", checkpoint_id="c1"),
        frame(type="search_start", query="weather today"),
        frame(type="search_results", urls=["w1.example"]),
        frame(type="content", content="It is sunny"),
        frame(type="end"),
    ]


@pytest.fixture
def broken_connection():
    return TransportError("connection reset")
