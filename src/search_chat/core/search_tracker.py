"""
Search activity state machine for a single assistant answer.
"""
from dataclasses import replace
from typing import Optional

from search_chat.core.domain import Decoded, SearchError, SearchResults, SearchStart
from search_chat.models import ERROR, READING, SEARCHING, SearchActivity


def append_stage(activity: Optional[SearchActivity], stage: str) -> SearchActivity:
    if activity is None:
        return SearchActivity(stages=(stage,))
    return replace(activity, stages=activity.stages + (stage,))


def advance(activity: Optional[SearchActivity], event: Decoded) -> Optional[SearchActivity]:
    """
    Fold one event into the search activity. Events that are not search
    events return `activity` as is.

    An activity with no stages yet is the placeholder an answer starts with,
    so it is treated the same as no activity at all.
    """
    prior = activity if activity is not None and activity.started else None

    if isinstance(event, SearchStart):
        if prior is None:
            return SearchActivity(stages=(SEARCHING,), query=event.query)
        return replace(append_stage(prior, SEARCHING), query=event.query)

    if isinstance(event, SearchResults):
        return replace(append_stage(prior, READING), urls=event.urls)

    if isinstance(event, SearchError):
        return replace(append_stage(prior, ERROR), error=event.message)

    return activity
