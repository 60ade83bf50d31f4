"""
Data models for the search chat client.
"""
from dataclasses import dataclass
from typing import Literal, Optional

Role = Literal['user', 'assistant']

SEARCHING = 'searching'
READING = 'reading'
ERROR = 'error'
WRITING = 'writing'


@dataclass(frozen=True)
class SearchActivity:
    """
    Web search progress attached to an assistant turn.

    `stages` only ever grows; `urls` is replaced whenever new results arrive.
    """
    stages: tuple[str, ...] = ()
    query: str = ""
    urls: tuple[str, ...] = ()
    error: Optional[str] = None

    @property
    def started(self) -> bool:
        return bool(self.stages)


@dataclass(frozen=True)
class Turn:
    """
    Represents a single message in the conversation, either the user's query
    or the assistant's (possibly still streaming) answer.
    """
    turn_id: int
    role: Role
    content: str = ""
    loading: bool = False
    search_info: Optional[SearchActivity] = None
    final: bool = True

    @property
    def is_user(self) -> bool:
        return self.role == 'user'


def user_turn(turn_id: int, text: str) -> Turn:
    return Turn(turn_id=turn_id, role='user', content=text)


def pending_answer(turn_id: int) -> Turn:
    return Turn(
        turn_id=turn_id,
        role='assistant',
        loading=True,
        search_info=SearchActivity(),
        final=False,
    )
