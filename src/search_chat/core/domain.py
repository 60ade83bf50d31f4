"""
chat_stream 백엔드가 보내는 SSE frame을 decode한 event들, assembler 전용 데이터 도메인
"""

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class Checkpoint:
    checkpoint_id: str


@dataclass(frozen=True)
class Content:
    delta: str


@dataclass(frozen=True)
class SearchStart:
    query: str


@dataclass(frozen=True)
class SearchResults:
    urls: tuple[str, ...]


@dataclass(frozen=True)
class SearchError:
    message: str


@dataclass(frozen=True)
class End:
    pass


@dataclass(frozen=True)
class Unknown:
    tag: str


@dataclass(frozen=True)
class DecodeFailure:
    """A frame that could not be turned into a StreamEvent."""
    raw: str
    reason: str


StreamEvent = Union[
    Checkpoint, Content, SearchStart, SearchResults, SearchError, End, Unknown,
]

Decoded = Union[StreamEvent, DecodeFailure]
