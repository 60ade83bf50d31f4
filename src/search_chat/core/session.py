import asyncio
from enum import Enum
from typing import Optional

from search_chat.core.config import ClientConfig
from search_chat.core.decoder import decode_frame
from search_chat.core.domain import End
from search_chat.core.logging_setup import get_logger
from search_chat.core.store import CONNECT_FAILED, REQUEST_FAILED, ConversationStore
from search_chat.core.transport import (
    HttpxTransport,
    Subscription,
    Transport,
    TransportError,
    build_stream_url,
)

logger = get_logger(__name__)


class SessionState(Enum):
    IDLE = 'idle'
    OPENING = 'opening'
    STREAMING = 'streaming'
    CLOSED_SUCCESS = 'closed_success'
    CLOSED_ERROR = 'closed_error'

    @property
    def closed(self) -> bool:
        return self in (SessionState.CLOSED_SUCCESS, SessionState.CLOSED_ERROR)


class StreamSession:
    """
    Lifetime of one subscription for one assistant answer.

    idle -> opening -> streaming -> closed_success | closed_error
    """

    def __init__(self, store: ConversationStore, transport: Transport, base_url: str):
        self.store = store
        self.transport = transport
        self.base_url = base_url

        self.state = SessionState.IDLE
        self.turn_id: Optional[int] = None
        self.error: Optional[str] = None

    async def run(self, query: str) -> SessionState:
        """
        Submit `query` and stream the answer into the store until the `end`
        event or a transport failure. A session can only be run once.
        """
        if self.state is not SessionState.IDLE:
            raise RuntimeError(f'session already used (state={self.state.value})')

        self.store.start_turn(query)
        self.turn_id = self.store.begin_answer()
        address = build_stream_url(self.base_url, query, self.store.checkpoint_id)

        self.state = SessionState.OPENING
        subscription: Optional[Subscription] = None
        try:
            try:
                subscription = self.transport.open(address)
            except TransportError as e:
                self._fail(str(e), CONNECT_FAILED)
                return self.state
            await self._pump(subscription)
        except TransportError as e:
            self._fail(str(e))
        except asyncio.CancelledError:
            self._fail('cancelled')
            raise
        except Exception as e:
            logger.exception('session_crashed', turn_id=self.turn_id, state=self.state.value)
            self._fail(f'{type(e).__name__}: {e}')
        finally:
            if subscription is not None:
                await subscription.aclose()
            logger.info('session_closed', turn_id=self.turn_id, state=self.state.value, error=self.error)

        return self.state

    async def _pump(self, subscription: Subscription) -> None:
        async for frame in subscription:
            if self.state is SessionState.OPENING:
                self.state = SessionState.STREAMING

            event = decode_frame(frame)
            self.store.apply_event(self.turn_id, event)

            if isinstance(event, End):
                self.state = SessionState.CLOSED_SUCCESS
                return

        raise TransportError('stream closed before the end event')

    def _fail(self, reason: str, placeholder: str = REQUEST_FAILED) -> None:
        logger.warning('stream_failed', turn_id=self.turn_id, state=self.state.value, reason=reason)
        self.error = reason
        self.state = SessionState.CLOSED_ERROR
        self.store.fail_answer(self.turn_id, placeholder)


class ChatClient:
    """
    Owns the conversation and hands out one StreamSession per query, so a
    follow-up query is sent with the checkpoint of the previous answer.
    """

    def __init__(
        self,
        config: ClientConfig,
        transport: Optional[Transport] = None,
        store: Optional[ConversationStore] = None,
    ):
        self.config = config
        self.transport = transport or HttpxTransport(timeout=config.timeout)
        self.store = store or ConversationStore(greeting=config.greeting)
        self.current: Optional[StreamSession] = None

    @property
    def busy(self) -> bool:
        return self.current is not None and not self.current.state.closed

    async def ask(self, query: str) -> StreamSession:
        session = StreamSession(self.store, self.transport, self.config.base_url)
        self.current = session
        await session.run(query)
        return session
