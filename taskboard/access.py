from __future__ import annotations

from .db import Board, TaskList
from .errors import Unauthorized


def owner_of(container: Board | TaskList) -> str:
    """Return the user who owns ``container``, following list -> board."""
    if isinstance(container, TaskList):
        return container.board.owner
    return container.owner


def require_owner(container: Board | TaskList, user_id: str) -> None:
    # the message names no ids
    if owner_of(container) != user_id:
        raise Unauthorized(f"{type(container).__name__} is not owned by the acting user")
