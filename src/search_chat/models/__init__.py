"""
Data models for the search chat client.
"""
from .turn import (
    ERROR,
    READING,
    SEARCHING,
    WRITING,
    Role,
    SearchActivity,
    Turn,
    pending_answer,
    user_turn,
)

__all__ = [
    "ERROR",
    "READING",
    "SEARCHING",
    "WRITING",
    "Role",
    "SearchActivity",
    "Turn",
    "pending_answer",
    "user_turn",
]
