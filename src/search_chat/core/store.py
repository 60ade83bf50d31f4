from dataclasses import replace
from typing import Callable, List, Optional

from search_chat.core import assembler
from search_chat.core.domain import Checkpoint, Decoded
from search_chat.core.logging_setup import get_logger
from search_chat.models import Turn, pending_answer, user_turn

logger = get_logger(__name__)

RenderSink = Callable[[tuple[Turn, ...]], None]

REQUEST_FAILED = "⚠️ Error: request failed."
CONNECT_FAILED = "Sorry, there was an error connecting to the server."


class ConversationStore:
    """
    Ordered, append-only list of turns plus the checkpoint that chains the
    next query to the backend's context.

    Only the active assistant turn can change, and every change replaces the
    stored Turn with a new value. Sinks registered with `subscribe` get the
    full snapshot after each change.
    """

    def __init__(self, greeting: Optional[str] = None):
        self._turns: List[Turn] = []
        self._active_turn_id: Optional[int] = None
        self._checkpoint_id: Optional[str] = None
        self._sinks: List[RenderSink] = []

        if greeting:
            self._turns.append(Turn(turn_id=1, role='assistant', content=greeting))

    @property
    def checkpoint_id(self) -> Optional[str]:
        return self._checkpoint_id

    @property
    def active_turn_id(self) -> Optional[int]:
        return self._active_turn_id

    def subscribe(self, sink: RenderSink) -> None:
        self._sinks.append(sink)

    def snapshot(self) -> tuple[Turn, ...]:
        return tuple(self._turns)

    def get(self, turn_id: int) -> Optional[Turn]:
        for turn in self._turns:
            if turn.turn_id == turn_id:
                return turn
        return None

    def start_turn(self, text: str) -> int:
        turn_id = self._next_id()
        self._turns.append(user_turn(turn_id, text))
        self._notify()
        return turn_id

    def begin_answer(self) -> int:
        turn_id = self._next_id()
        self._turns.append(pending_answer(turn_id))
        self._active_turn_id = turn_id
        self._notify()
        return turn_id

    def set_checkpoint(self, checkpoint_id: str) -> None:
        self._checkpoint_id = checkpoint_id

    def apply_event(self, turn_id: int, event: Decoded) -> None:
        """
        Apply one decoded event to the active answer. Events addressed to any
        other turn, or arriving after the answer was finalised, are dropped.
        """
        index = self._active_index(turn_id)
        if index is None:
            logger.debug("stray_event_dropped", turn_id=turn_id, event_type=type(event).__name__)
            return

        if isinstance(event, Checkpoint):
            self.set_checkpoint(event.checkpoint_id)

        current = self._turns[index]
        updated = assembler.apply(current, event)
        if updated.final:
            self._active_turn_id = None
        if updated != current:
            self._turns[index] = updated
            self._notify()

    def fail_answer(self, turn_id: int, placeholder: str = REQUEST_FAILED) -> None:
        """
        Close the active answer after a transport failure. Content that already
        streamed is kept; an empty answer gets `placeholder` instead.
        """
        index = self._active_index(turn_id)
        if index is None:
            return

        current = self._turns[index]
        self._turns[index] = replace(
            current,
            content=current.content or placeholder,
            loading=False,
            final=True,
        )
        self._active_turn_id = None
        self._notify()

    def _next_id(self) -> int:
        return max((t.turn_id for t in self._turns), default=0) + 1

    def _active_index(self, turn_id: int) -> Optional[int]:
        if turn_id != self._active_turn_id:
            return None
        for i, turn in enumerate(self._turns):
            if turn.turn_id == turn_id:
                return i
        return None

    def _notify(self) -> None:
        snapshot = self.snapshot()
        for sink in self._sinks:
            try:
                sink(snapshot)
            except Exception:
                logger.exception("render_sink_failed", sink=repr(sink))
