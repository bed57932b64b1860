"""Transaction-scoped access to ordered items.

A store wraps one SQLAlchemy session that is already inside a transaction
(see ``unit_of_work``) and exposes the handful of primitives the reordering
coordinator is allowed to use. ``CardStore`` orders cards inside lists,
``ListStore`` orders lists inside boards.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, ClassVar, Iterator

from sqlalchemy import func, select, update
from sqlalchemy.exc import DBAPIError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from .db import Base, Board, Card, TaskList, now_utc
from .errors import Conflict, ContainerNotFound, ItemNotFound, StoreFailure
from .ordering import Shift

logger = logging.getLogger(__name__)

# serialization_failure, deadlock_detected, lock_not_available
CONFLICT_SQLSTATES = frozenset({"40001", "40P01", "55P03"})


def _is_conflict(exc: DBAPIError) -> bool:
    orig = exc.orig
    sqlstate = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if sqlstate in CONFLICT_SQLSTATES:
        return True
    return isinstance(exc, OperationalError) and "database is locked" in str(orig)


@contextmanager
def unit_of_work(session: Session) -> Iterator[Session]:
    """Run the block in one transaction, committing on success.

    Store errors are translated: concurrent modification becomes ``Conflict``,
    anything else from the database becomes ``StoreFailure``. Other exceptions
    roll the transaction back and propagate unchanged.
    """
    try:
        with session.begin():
            yield session
    except StaleDataError as exc:
        logger.warning("version check failed, transaction rolled back: %s", exc)
        raise Conflict("the board was modified concurrently, retry the operation") from exc
    except DBAPIError as exc:
        if _is_conflict(exc):
            logger.warning("serialization conflict, transaction rolled back: %s", exc.orig)
            raise Conflict("the board was modified concurrently, retry the operation") from exc
        logger.exception("database error, transaction rolled back")
        raise StoreFailure("the operation could not be stored") from exc
    except SQLAlchemyError as exc:
        logger.exception("session error, transaction rolled back")
        raise StoreFailure("the operation could not be stored") from exc


class PositionStore:
    model: ClassVar[type[Base]]
    container_model: ClassVar[type[Base]]
    container_field: ClassVar[str]
    kind: ClassVar[str]

    def __init__(self, session: Session) -> None:
        self.session = session

    @property
    def _container_column(self):
        return getattr(self.model, self.container_field)

    def container_id_of(self, item: Any) -> str:
        return getattr(item, self.container_field)

    # === Containers ===
    def get_container(self, container_id: str) -> Any:
        container = self.session.get(self.container_model, container_id)
        if container is None:
            raise ContainerNotFound(
                f"{self.container_model.__name__} {container_id} not found",
                {"containerId": container_id},
            )
        return container

    def lock_container(self, container_id: str) -> Any:
        # The loaded version is checked against the row: a stale copy in the
        # identity map raises StaleDataError instead of being refreshed.
        container = self.session.get(self.container_model, container_id, with_for_update=True)
        if container is None:
            raise ContainerNotFound(
                f"{self.container_model.__name__} {container_id} not found",
                {"containerId": container_id},
            )
        return container

    def touch_container(self, container: Any) -> None:
        """Claim the container's next version before any position is written."""
        container.updated_at = now_utc()
        self.session.flush()

    def count_items(self, container_id: str) -> int:
        stmt = select(func.count()).select_from(self.model).where(self._container_column == container_id)
        return self.session.execute(stmt).scalar_one()

    # === Items ===
    def get_item(self, item_id: str) -> Any:
        item = self.session.get(self.model, item_id, populate_existing=True)
        if item is None:
            raise ItemNotFound(f"{self.kind} {item_id} not found", {"itemId": item_id})
        return item

    def list_items_ordered_by_position(self, container_id: str) -> list[Any]:
        stmt = (
            select(self.model)
            .where(self._container_column == container_id)
            .order_by(self.model.position, self.model.id)
        )
        return list(self.session.scalars(stmt))

    def shift_positions(self, shift: Shift) -> int:
        stmt = update(self.model).where(
            self._container_column == shift.container_id,
            self.model.position >= shift.start,
        )
        if shift.stop is not None:
            stmt = stmt.where(self.model.position < shift.stop)
        stmt = stmt.values(position=self.model.position + shift.delta)
        result = self.session.execute(stmt)
        logger.debug(
            "shifted %d %s(s) in %s [%s, %s) by %+d",
            result.rowcount, self.kind, shift.container_id, shift.start, shift.stop, shift.delta,
        )
        return result.rowcount

    def write_item(self, item: Any, **fields: Any) -> Any:
        for name, value in fields.items():
            setattr(item, name, value)
        self.session.flush()
        return item

    def add_item(self, container_id: str, position: int, fields: dict[str, Any]) -> Any:
        item = self.model(**fields, position=position, **{self.container_field: container_id})
        self.session.add(item)
        self.session.flush()
        return item

    def remove_item(self, item: Any) -> None:
        self.session.delete(item)
        self.session.flush()


class CardStore(PositionStore):
    model = Card
    container_model = TaskList
    container_field = "list_id"
    kind = "card"


class ListStore(PositionStore):
    model = TaskList
    container_model = Board
    container_field = "board_id"
    kind = "list"
