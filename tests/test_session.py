"""Tests for StreamSession and ChatClient driven by a scripted transport."""
import asyncio
import json

import pytest

from conftest import FakeTransport, frame
from search_chat.core.config import ClientConfig
from search_chat.core.session import ChatClient, SessionState, StreamSession
from search_chat.core.store import CONNECT_FAILED, REQUEST_FAILED, ConversationStore

BASE_URL = "https://backend.example/chat_stream"


def make_session(transport, store=None):
    return StreamSession(store or ConversationStore(), transport, BASE_URL)


@pytest.mark.asyncio
async def test_weather_scenario(weather_script):
    transport = FakeTransport(weather_script)
    session = make_session(transport)

    state = await session.run("weather today")

    answer = session.store.get(session.turn_id)
    assert state is SessionState.CLOSED_SUCCESS
    assert answer.content == "It is sunny"
    assert answer.loading is False
    assert answer.search_info.stages == ("searching", "reading", "writing")
    assert answer.search_info.urls == ("w1.example",)
    assert session.store.checkpoint_id == "c1"
    assert transport.subscriptions[0].closed is True
    assert transport.addresses == [f"{BASE_URL}/weather%20today"]


@pytest.mark.asyncio
async def test_frames_after_end_are_not_read():
    transport = FakeTransport([
        frame(type="content", content="done"),
        frame(type="end"),
        frame(type="content", content=" extra"),
    ])
    session = make_session(transport)

    await session.run("q")

    assert session.store.get(session.turn_id).content == "done"
    assert len(transport.subscriptions[0].delivered) == 2


@pytest.mark.asyncio
async def test_malformed_frame_is_tolerated():
    transport = FakeTransport([
        "{not json",
        frame(type="content", content="hi"),
        frame(type="mystery"),
        frame(type="end"),
    ])
    session = make_session(transport)

    state = await session.run("q")

    assert state is SessionState.CLOSED_SUCCESS
    assert session.store.get(session.turn_id).content == "hi"


@pytest.mark.asyncio
async def test_search_error_does_not_end_stream():
    transport = FakeTransport([
        frame(type="search_start", query="q"),
        frame(type="search_error", error="search backend unavailable"),
        frame(type="content", content="Answering from memory"),
        frame(type="end"),
    ])
    session = make_session(transport)

    await session.run("q")

    answer = session.store.get(session.turn_id)
    assert answer.content == "Answering from memory"
    assert answer.search_info.stages == ("searching", "error", "writing")
    assert answer.search_info.error == "search backend unavailable"


@pytest.mark.asyncio
async def test_transport_error_before_content(broken_connection):
    transport = FakeTransport([broken_connection])
    session = make_session(transport)

    state = await session.run("q")

    answer = session.store.get(session.turn_id)
    assert state is SessionState.CLOSED_ERROR
    assert answer.content == REQUEST_FAILED
    assert answer.loading is False
    assert session.error == "connection reset"
    assert transport.subscriptions[0].closed is True


@pytest.mark.asyncio
async def test_transport_error_keeps_partial_content(broken_connection):
    transport = FakeTransport([frame(type="content", content="It is su"), broken_connection])
    session = make_session(transport)

    state = await session.run("q")

    answer = session.store.get(session.turn_id)
    assert state is SessionState.CLOSED_ERROR
    assert answer.content == "It is su"
    assert answer.loading is False


@pytest.mark.asyncio
async def test_open_failure(broken_connection):
    transport = FakeTransport(open_error=broken_connection)
    session = make_session(transport)

    state = await session.run("q")

    assert state is SessionState.CLOSED_ERROR
    assert session.store.get(session.turn_id).content == CONNECT_FAILED


@pytest.mark.asyncio
async def test_stream_closed_without_end():
    transport = FakeTransport([frame(type="content", content="partial")])
    session = make_session(transport)

    state = await session.run("q")

    answer = session.store.get(session.turn_id)
    assert state is SessionState.CLOSED_ERROR
    assert answer.content == "partial"
    assert answer.final is True


@pytest.mark.asyncio
async def test_session_runs_once(weather_script):
    session = make_session(FakeTransport(weather_script))
    await session.run("weather today")

    with pytest.raises(RuntimeError):
        await session.run("again")


@pytest.mark.asyncio
async def test_opening_moves_to_streaming_on_first_frame():
    seen = []
    store = ConversationStore()
    transport = FakeTransport([frame(type="content", content="a"), frame(type="end")])
    session = make_session(transport, store)
    store.subscribe(lambda turns: seen.append(session.state))

    await session.run("q")

    # start_turn and begin_answer notify while idle, the content frame while streaming
    assert seen == [SessionState.IDLE, SessionState.IDLE, SessionState.STREAMING, SessionState.STREAMING]


@pytest.mark.asyncio
async def test_cancellation_closes_subscription():
    release = asyncio.Event()

    class StallingSubscription:
        closed = False

        def __aiter__(self):
            return self._frames()

        async def _frames(self):
            yield frame(type="content", content="par")
            await release.wait()
            yield frame(type="end")

        async def aclose(self):
            self.closed = True

    subscription = StallingSubscription()

    class StallingTransport:
        def open(self, address):
            return subscription

    session = make_session(StallingTransport())
    task = asyncio.create_task(session.run("q"))
    await asyncio.sleep(0.01)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task

    assert subscription.closed is True
    assert session.state is SessionState.CLOSED_ERROR
    assert session.store.get(session.turn_id).content == "par"


@pytest.mark.asyncio
async def test_client_chains_checkpoint(weather_script):
    transport = FakeTransport(
        weather_script,
        [frame(type="checkpoint", checkpoint_id="c2"), frame(type="content", content="Yes"), frame(type="end")],
    )
    client = ChatClient(ClientConfig(base_url=BASE_URL, greeting=None), transport=transport)

    await client.ask("weather today")
    second = await client.ask("and tomorrow?")

    assert transport.addresses[1] == f"{BASE_URL}/and%20tomorrow%3F?checkpoint_id=c1"
    assert client.store.checkpoint_id == "c2"
    assert second.turn_id == 4
    assert client.busy is False


@pytest.mark.asyncio
async def test_client_seeds_greeting(weather_script):
    client = ChatClient(ClientConfig(base_url=BASE_URL), transport=FakeTransport(weather_script))

    session = await client.ask("weather today")

    turns = client.store.snapshot()
    assert turns[0].content == "Hi there, how can I help you?"
    assert session.turn_id == 3


@pytest.mark.asyncio
async def test_deeply_nested_urls_do_not_stop_the_stream():
    transport = FakeTransport([
        frame(type="content", content="hi"),
        json.dumps({"type": "search_results", "urls": "[" * 100000}),
        frame(type="end"),
    ])
    client = ChatClient(ClientConfig(base_url=BASE_URL, greeting=None), transport=transport)

    session = await client.ask("q")

    assert session.state is SessionState.CLOSED_SUCCESS
    assert client.store.get(session.turn_id).content == "hi"
    assert client.busy is False


@pytest.mark.asyncio
async def test_unexpected_error_closes_session(monkeypatch):
    def explode(raw):
        raise KeyError("boom")

    monkeypatch.setattr("search_chat.core.session.decode_frame", explode)
    transport = FakeTransport([frame(type="content", content="hi"), frame(type="end")])
    client = ChatClient(ClientConfig(base_url=BASE_URL, greeting=None), transport=transport)

    session = await client.ask("q")

    answer = client.store.get(session.turn_id)
    assert session.state is SessionState.CLOSED_ERROR
    assert "KeyError" in session.error
    assert answer.content == REQUEST_FAILED
    assert answer.loading is False
    assert client.store.active_turn_id is None
    assert client.busy is False
    assert transport.subscriptions[0].closed is True


@pytest.mark.asyncio
async def test_failing_render_sink_does_not_break_session(weather_script):
    client = ChatClient(ClientConfig(base_url=BASE_URL, greeting=None), transport=FakeTransport(weather_script))

    def broken_sink(turns):
        raise RuntimeError("widget gone")

    client.store.subscribe(broken_sink)

    session = await client.ask("weather today")

    assert session.state is SessionState.CLOSED_SUCCESS
    assert client.store.get(session.turn_id).content == "It is sunny"
    assert client.busy is False
