"""Insert, delete and move items while keeping positions dense.

These are the only functions that change an item's container or position.
Each one expects ``store`` to be bound to a session inside ``unit_of_work`` so
that locking, validation, shifting and the final write commit or roll back
together. Affected containers are locked in sorted id order and their version
is bumped before the first shift, so concurrent operations on the same
container either wait for each other or fail with ``Conflict``.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from .access import require_owner
from .db import now_utc
from .errors import Conflict
from .ordering import Operation, compute_shifts
from .persistence import PositionStore

logger = logging.getLogger(__name__)


def _lock_owned(store: PositionStore, container_ids: set[str], acting_user_id: str) -> dict[str, Any]:
    containers = {}
    for container_id in sorted(container_ids):
        container = store.lock_container(container_id)
        require_owner(container, acting_user_id)
        containers[container_id] = container
    return containers


def insert_item(
    store: PositionStore,
    acting_user_id: str,
    container_id: str,
    fields: dict[str, Any],
    position: Optional[int] = None,
) -> Any:
    """Create an item in ``container_id``, appending unless ``position`` is given."""
    containers = _lock_owned(store, {container_id}, acting_user_id)
    size = store.count_items(container_id)
    if position is None:
        position = size
    shifts = compute_shifts(Operation.INSERT, None, None, container_id, position, size)

    store.touch_container(containers[container_id])
    for shift in shifts:
        store.shift_positions(shift)
    item = store.add_item(container_id, position, fields)
    logger.info("inserted %s %s into %s at %d", store.kind, item.id, container_id, position)
    return item


def delete_item(store: PositionStore, acting_user_id: str, item_id: str) -> None:
    container_id = store.container_id_of(store.get_item(item_id))
    containers = _lock_owned(store, {container_id}, acting_user_id)
    item = store.get_item(item_id)
    if store.container_id_of(item) != container_id:
        raise Conflict(f"{store.kind} {item_id} was moved concurrently", {"itemId": item_id})
    size = store.count_items(container_id)
    position = item.position
    shifts = compute_shifts(Operation.DELETE, container_id, position, None, None, size)

    store.touch_container(containers[container_id])
    store.remove_item(item)
    for shift in shifts:
        store.shift_positions(shift)
    logger.info("deleted %s %s from %s at %d", store.kind, item_id, container_id, position)


def move_item(
    store: PositionStore,
    item_id: str,
    source_container_id: str,
    target_container_id: str,
    new_position: int,
    acting_user_id: str,
) -> Any:
    """Move an item to ``new_position`` in ``target_container_id``.

    ``source_container_id`` is the container the caller believes the item is
    in; if the item has since moved to another container of the actor the
    call fails with ``Conflict``, and with ``Unauthorized`` if that container
    belongs to someone else. Moving an item onto its current slot writes nothing.
    """
    containers = _lock_owned(store, {source_container_id, target_container_id}, acting_user_id)
    item = store.get_item(item_id)
    actual_container_id = store.container_id_of(item)
    if actual_container_id != source_container_id:
        require_owner(store.get_container(actual_container_id), acting_user_id)
        raise Conflict(
            f"{store.kind} {item_id} is no longer in {source_container_id}",
            {"itemId": item_id, "containerId": actual_container_id},
        )

    same_container = source_container_id == target_container_id
    old_position = item.position
    size = store.count_items(target_container_id)
    shifts = compute_shifts(
        Operation.MOVE, source_container_id, old_position, target_container_id, new_position, size
    )
    if same_container and old_position == new_position:
        logger.debug("%s %s already at %d, nothing to move", store.kind, item_id, new_position)
        return item

    for container in containers.values():
        store.touch_container(container)
    for shift in shifts:
        store.shift_positions(shift)
    fields: dict[str, Any] = {"position": new_position}
    if not same_container:
        fields[store.container_field] = target_container_id
        fields["last_moved_at"] = now_utc()
    item = store.write_item(item, **fields)
    logger.info(
        "moved %s %s from %s@%d to %s@%d",
        store.kind, item_id, source_container_id, old_position, target_container_id, new_position,
    )
    return item
