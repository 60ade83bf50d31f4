"""
Folds decoded stream events into the assistant turn they belong to.
"""
from dataclasses import replace

from search_chat.core import search_tracker
from search_chat.core.domain import (
    Content,
    Decoded,
    DecodeFailure,
    End,
    SearchError,
    SearchResults,
    SearchStart,
)
from search_chat.core.logging_setup import get_logger
from search_chat.models import WRITING, Turn

logger = get_logger(__name__)


def apply(turn: Turn, event: Decoded) -> Turn:
    """
    Return the turn as it looks after `event`.

    Pure apart from logging: the input turn is never modified. A final turn
    is returned unchanged, which makes a repeated `End` a no-op. Checkpoint
    events carry no turn state; the conversation store records them.
    """
    if turn.final:
        if isinstance(event, End) and turn.loading:
            return replace(turn, loading=False)
        return turn

    if isinstance(event, Content):
        return replace(turn, content=turn.content + event.delta, loading=False)

    if isinstance(event, (SearchStart, SearchResults)):
        return replace(turn, search_info=search_tracker.advance(turn.search_info, event))

    if isinstance(event, SearchError):
        # the stream may still continue after this
        return replace(
            turn,
            search_info=search_tracker.advance(turn.search_info, event),
            loading=False,
        )

    if isinstance(event, End):
        search_info = turn.search_info
        if search_info is not None and search_info.started:
            search_info = search_tracker.append_stage(search_info, WRITING)
        return replace(turn, search_info=search_info, loading=False, final=True)

    if isinstance(event, DecodeFailure):
        logger.warning("frame_decode_failed", turn_id=turn.turn_id, reason=event.reason, raw=event.raw)

    return turn
