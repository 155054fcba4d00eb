"""Record-level operations against the ``orders`` and ``order_items`` tables.

Each function works inside a caller-supplied session so that several of them can
share one transaction (see ``rental.services.orders``). None of them commit.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlmodel import Session, select
from sqlalchemy.orm import selectinload

from rental.data.models import Order, OrderItem

# Scalar fields an edit may rewrite; id, created_at and the item set are handled separately
MUTABLE_ORDER_FIELDS = (
	"customer_name",
	"customer_phone",
	"customer_address",
	"order_date",
	"rental_start_date",
	"rental_end_date",
	"total_amount",
	"notes",
)


def list_orders(s: Session) -> List[Order]:
	"""Return orders ordered by order_date DESC (newest created first on equal dates)."""
	stmt = select(Order).order_by(Order.order_date.desc(), Order.created_at.desc())
	return list(s.exec(stmt).all())


def list_items(s: Session, order_id: str) -> List[OrderItem]:
	"""Return the items of one order in creation order."""
	stmt = (
		select(OrderItem)
		.where(OrderItem.order_id == order_id)
		.order_by(OrderItem.created_at.asc(), OrderItem.line_no.asc())
	)
	return list(s.exec(stmt).all())


def list_orders_with_items(s: Session) -> List[Tuple[Order, List[OrderItem]]]:
	"""Orders by order_date DESC, each paired with its items in creation order."""
	stmt = (
		select(Order)
		.options(selectinload(Order.items))  # type: ignore[arg-type]
		.order_by(Order.order_date.desc(), Order.created_at.desc())
	)
	return [(order, list(order.items)) for order in s.exec(stmt).all()]


def get_order(s: Session, order_id: str) -> Optional[Order]:
	return s.get(Order, order_id)


def insert_order(s: Session, values: Dict[str, Any]) -> Order:
	"""Insert one order row and return it with its generated id."""
	order = Order(**values)
	s.add(order)
	# Ensure PK and defaults are populated before items reference them
	s.flush()
	s.refresh(order)
	return order


def insert_items(s: Session, order_id: str, rows: Iterable[Dict[str, Any]]) -> List[OrderItem]:
	"""Insert N item rows for an order; line_no follows the given order."""
	now = datetime.now(timezone.utc)
	items = [
		OrderItem(order_id=order_id, line_no=n, created_at=now, **row)
		for n, row in enumerate(rows)
	]
	s.add_all(items)
	s.flush()
	return items


def update_order(s: Session, order_id: str, values: Dict[str, Any]) -> Optional[Order]:
	"""Rewrite an order's mutable fields by id. Returns None if the order does not exist."""
	order = s.get(Order, order_id)
	if order is None:
		return None
	for key, val in values.items():
		if key not in MUTABLE_ORDER_FIELDS:
			raise ValueError(f"Field is not updatable: {key}")
		setattr(order, key, val)
	order.updated_at = datetime.now(timezone.utc)
	s.add(order)
	s.flush()
	return order


def delete_items(s: Session, order_id: str) -> int:
	"""Delete every item belonging to an order. Returns the number of rows removed."""
	items = list_items(s, order_id)
	for it in items:
		s.delete(it)
	s.flush()
	return len(items)


def delete_order(s: Session, order_id: str) -> int:
	"""Delete one order row by id. Returns 1 if deleted, 0 if not found.

	Items are expected to be gone already (see services.orders.delete_order);
	the FK's ON DELETE CASCADE covers rows written by other clients.
	"""
	order = s.get(Order, order_id)
	if order is None:
		return 0
	s.delete(order)
	s.flush()
	return 1
