"""Typed failures raised by the reordering core.

Each error carries a stable ``code`` and the HTTP status the API layer maps it
to. Business-rule failures (not found, unauthorized, invalid position) are
raised before any write is issued; ``Conflict`` and ``StoreFailure`` come from
the store while the transaction is being flushed or committed.
"""

from __future__ import annotations

from typing import Any, Optional


class TaskboardError(Exception):
    code = "error"
    status_code = 500
    retryable = False

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class NotFound(TaskboardError):
    code = "not_found"
    status_code = 404


class ItemNotFound(NotFound):
    pass


class ContainerNotFound(NotFound):
    pass


class Unauthorized(TaskboardError):
    code = "forbidden"
    status_code = 403


class InvalidPosition(TaskboardError):
    code = "invalid_position"
    status_code = 422

    def __init__(self, position: int, valid_max: int) -> None:
        super().__init__(
            f"position {position} outside 0..{valid_max}",
            {"position": position, "validMax": valid_max},
        )
        self.position = position
        self.valid_max = valid_max


class Conflict(TaskboardError):
    code = "conflict"
    status_code = 409
    retryable = True


class StoreFailure(TaskboardError):
    code = "store_failure"
    status_code = 500
