"""Position arithmetic for dense per-container orderings.

Positions inside a container are always the contiguous sequence ``0..n-1``.
The functions here are pure: given an insert, delete or move they return the
shifts that keep that invariant, leaving the moved item itself to the caller.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .errors import InvalidPosition


class Operation(str, Enum):
    INSERT = "insert"
    DELETE = "delete"
    MOVE = "move"


@dataclass(frozen=True)
class Shift:
    """Add ``delta`` to every position in ``[start, stop)`` of a container.

    ``stop`` of ``None`` means the range is open ended.
    """

    container_id: str
    start: int
    stop: Optional[int]
    delta: int

    def covers(self, position: int) -> bool:
        return position >= self.start and (self.stop is None or position < self.stop)


def valid_max(operation: Operation, size: int, same_container: bool = False) -> int:
    """Largest position accepted for ``operation`` in a container of ``size`` items.

    ``size`` is counted before the operation. A move inside one container
    excludes the moved item, so the last slot is ``size - 1``.
    """
    if operation is Operation.MOVE and same_container:
        return size - 1
    if operation is Operation.DELETE:
        return size - 1
    return size


def validate_position(position: int, operation: Operation, size: int, same_container: bool = False) -> int:
    upper = valid_max(operation, size, same_container)
    if position < 0 or position > upper:
        raise InvalidPosition(position, upper)
    return position


def insert_shifts(container_id: str, position: int) -> list[Shift]:
    return [Shift(container_id, position, None, +1)]


def delete_shifts(container_id: str, position: int) -> list[Shift]:
    return [Shift(container_id, position + 1, None, -1)]


def move_shifts(
    old_container_id: str,
    old_position: int,
    new_container_id: str,
    new_position: int,
) -> list[Shift]:
    if old_container_id != new_container_id:
        return [
            Shift(old_container_id, old_position + 1, None, -1),
            Shift(new_container_id, new_position, None, +1),
        ]
    if old_position < new_position:
        return [Shift(old_container_id, old_position + 1, new_position + 1, -1)]
    if old_position > new_position:
        return [Shift(old_container_id, new_position, old_position, +1)]
    return []


def compute_shifts(
    operation: Operation,
    old_container_id: Optional[str],
    old_position: Optional[int],
    new_container_id: Optional[str],
    new_position: Optional[int],
    container_size: int,
) -> list[Shift]:
    """Validate the requested position and return the shifts it requires.

    ``container_size`` is the size of the container the position is validated
    against, before the operation: the target for inserts and moves, the
    source for deletes.
    """
    if operation is Operation.INSERT:
        validate_position(new_position, operation, container_size)
        return insert_shifts(new_container_id, new_position)
    if operation is Operation.DELETE:
        validate_position(old_position, operation, container_size)
        return delete_shifts(old_container_id, old_position)
    same = old_container_id == new_container_id
    validate_position(new_position, operation, container_size, same_container=same)
    return move_shifts(old_container_id, old_position, new_container_id, new_position)

