"""Create, edit (full replace) and delete rental orders.

Every write runs inside a single ``session_scope`` transaction, so the
update / delete-items / insert-items sequence of an edit either lands as a whole
or not at all. Validation happens before any session is opened.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from rental.core.currency import parse_decimal, to_decimal
from rental.core.errors import (
    InvalidTransitionError,
    OrderNotFoundError,
    PartialWriteError,
    StoreError,
)
from rental.data import repo
from rental.data.db import session_scope
from rental.data.models import Order, OrderItem
from rental.domain.aggregation import compute_order_total
from rental.domain.drafts import OrderDraft, draft_from_order, draft_warnings, validate_draft

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrdersChanged:
    action: str  # "created" | "updated" | "deleted"
    order_id: str


class OrderEvents:
    """Minimal signal: views connect a slot and re-fetch when orders change."""

    def __init__(self) -> None:
        self._slots: List[Callable[[OrdersChanged], None]] = []

    def connect(self, slot: Callable[[OrdersChanged], None]) -> None:
        if slot not in self._slots:
            self._slots.append(slot)

    def disconnect(self, slot: Callable[[OrdersChanged], None]) -> None:
        if slot in self._slots:
            self._slots.remove(slot)

    def emit(self, event: OrdersChanged) -> None:
        for slot in list(self._slots):
            slot(event)


# Process-wide default; callers may pass their own OrderEvents instead
order_events = OrderEvents()


@dataclass
class OrderWithItems:
    order: Order
    items: List[OrderItem]

    @property
    def id(self) -> str:
        return self.order.id

    @property
    def items_total(self) -> Decimal:
        return compute_order_total(self.items)


@contextmanager
def _store_errors(action: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        logger.exception("Failed to %s", action)
        raise StoreError(f"Failed to {action}") from exc


def _clean(value: Optional[str]) -> Optional[str]:
    value = (value or "").strip()
    return value or None


def _order_values(draft: OrderDraft) -> Dict[str, Any]:
    return {
        "customer_name": draft.customer_name.strip(),
        "customer_phone": draft.customer_phone.strip(),
        "customer_address": _clean(draft.customer_address),
        "rental_start_date": draft.rental_start_date,
        "rental_end_date": draft.rental_end_date,
        "total_amount": draft.total_amount,
        "notes": _clean(draft.notes),
    }


def _item_rows(draft: OrderDraft) -> List[Dict[str, Any]]:
    return [
        {
            "car_type": item.car_type.strip(),
            "quantity": item.quantity,
            "daily_rate": parse_decimal(item.daily_rate),
            "days": item.days,
            "subtotal": item.subtotal,
        }
        for item in draft.items
    ]


def _check(draft: OrderDraft) -> None:
    validate_draft(draft)
    for warning in draft_warnings(draft):
        logger.warning("Accepting order draft for %s: %s", draft.customer_name, warning)


def create_order(draft: OrderDraft, events: Optional[OrderEvents] = None) -> OrderWithItems:
    """Validate the draft, then insert the order and all of its items in one transaction."""
    _check(draft)
    values = _order_values(draft)
    values["order_date"] = draft.order_date or date.today()

    with _store_errors("create order"), session_scope() as s:
        order = repo.insert_order(s, values)
        items = repo.insert_items(s, order.id, _item_rows(draft))

    logger.info("Created order %s (%d items, total %s)", order.id, len(items), order.total_amount)
    (events or order_events).emit(OrdersChanged("created", order.id))
    return OrderWithItems(order, items)


def update_order(order_id: str, draft: OrderDraft, events: Optional[OrderEvents] = None) -> OrderWithItems:
    """Replace an order's scalar fields and its whole item set.

    Sequence: update the order (with the recomputed total), delete all of its
    items, insert the draft's items as new rows. Prior item ids are not kept.
    """
    _check(draft)
    values = _order_values(draft)
    if draft.order_date is not None:
        values["order_date"] = draft.order_date

    with _store_errors("update order"), session_scope() as s:
        order = repo.update_order(s, order_id, values)
        if order is None:
            raise OrderNotFoundError(order_id)
        removed = repo.delete_items(s, order_id)
        items = repo.insert_items(s, order_id, _item_rows(draft))

    logger.info(
        "Updated order %s (replaced %d items with %d, total %s)",
        order_id, removed, len(items), order.total_amount,
    )
    (events or order_events).emit(OrdersChanged("updated", order_id))
    return OrderWithItems(order, items)


def delete_order(order_id: str, events: Optional[OrderEvents] = None) -> None:
    """Delete an order's items and then the order itself, in one transaction."""
    with _store_errors("delete order"), session_scope() as s:
        removed = repo.delete_items(s, order_id)
        if not repo.delete_order(s, order_id):
            raise OrderNotFoundError(order_id)

    logger.info("Deleted order %s and %d items", order_id, removed)
    (events or order_events).emit(OrdersChanged("deleted", order_id))


def get_order_with_items(order_id: str) -> OrderWithItems:
    with _store_errors("load order"), session_scope() as s:
        order = repo.get_order(s, order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        items = repo.list_items(s, order_id)
    return OrderWithItems(order, items)


def list_orders_with_items() -> List[OrderWithItems]:
    """All orders, newest order_date first, each with its items."""
    with _store_errors("list orders"), session_scope() as s:
        rows = repo.list_orders_with_items(s)
    return [OrderWithItems(order, items) for order, items in rows]


def list_orders() -> List[Order]:
    with _store_errors("list orders"), session_scope() as s:
        return repo.list_orders(s)


def load_draft(order_id: str) -> OrderDraft:
    """Load an order's scalar fields and current items into an editable draft."""
    found = get_order_with_items(order_id)
    return draft_from_order(found.order, found.items)


def audit_orders(repair: bool = False) -> List[PartialWriteError]:
    """Find orders without items or whose stored total disagrees with their items.

    With ``repair=True`` drifted totals are rewritten from the items. Orders
    without items cannot be repaired here and are only reported.
    """
    problems: List[PartialWriteError] = []
    with _store_errors("audit orders"), session_scope() as s:
        for order, items in repo.list_orders_with_items(s):
            if not items:
                problems.append(PartialWriteError(order.id, "order has no items"))
                continue
            expected = compute_order_total(items)
            stored = to_decimal(order.total_amount)
            if stored != expected:
                problems.append(
                    PartialWriteError(order.id, f"stored total {stored} != items total {expected}")
                )
                if repair:
                    repo.update_order(s, order.id, {"total_amount": expected})
    for problem in problems:
        logger.warning("%s", problem)
    return problems


class OrderState(str, Enum):
    CREATING = "creating"
    PERSISTED = "persisted"
    EDITING = "editing"
    DELETED = "deleted"


class OrderEditor:
    """Authoring state of a single order.

    CREATING -> PERSISTED on save; PERSISTED -> EDITING via start_edit();
    EDITING -> PERSISTED on save; any state -> DELETED on delete(). A failed
    save leaves the state and the draft untouched so the caller can retry.
    """

    def __init__(self, draft: Optional[OrderDraft] = None, events: Optional[OrderEvents] = None) -> None:
        self.state = OrderState.CREATING
        self.order_id: Optional[str] = None
        self.draft: OrderDraft = draft or OrderDraft()
        self.events = events

    @classmethod
    def for_order(cls, order_id: str, events: Optional[OrderEvents] = None) -> "OrderEditor":
        editor = cls(events=events)
        editor.order_id = order_id
        editor.state = OrderState.PERSISTED
        return editor

    def start_edit(self) -> OrderDraft:
        if self.state is not OrderState.PERSISTED or self.order_id is None:
            raise InvalidTransitionError(f"cannot edit an order in state {self.state.value}")
        self.draft = load_draft(self.order_id)
        self.state = OrderState.EDITING
        return self.draft

    def save(self) -> OrderWithItems:
        if self.state is OrderState.CREATING:
            saved = create_order(self.draft, events=self.events)
            self.order_id = saved.id
        elif self.state is OrderState.EDITING and self.order_id is not None:
            saved = update_order(self.order_id, self.draft, events=self.events)
        else:
            raise InvalidTransitionError(f"cannot save an order in state {self.state.value}")
        self.state = OrderState.PERSISTED
        return saved

    def cancel_edit(self) -> None:
        if self.state is OrderState.EDITING:
            self.state = OrderState.PERSISTED

    def delete(self) -> None:
        if self.state is OrderState.DELETED:
            raise InvalidTransitionError("order is already deleted")
        if self.order_id is not None:
            delete_order(self.order_id, events=self.events)
        self.state = OrderState.DELETED
