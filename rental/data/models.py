from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional, List

from sqlmodel import Field, SQLModel, Relationship
from sqlalchemy.orm import relationship
from sqlalchemy import Column, ForeignKey, String, event

from rental.domain.aggregation import compute_subtotal


def _new_id() -> str:
	return str(uuid.uuid4())


def _utcnow() -> datetime:
	return datetime.now(timezone.utc)


class Order(SQLModel, table=True):
	__tablename__ = "orders"

	id: str = Field(default_factory=_new_id, primary_key=True, max_length=36)
	customer_name: str
	customer_phone: str
	customer_address: Optional[str] = None
	order_date: date = Field(default_factory=date.today, index=True)
	rental_start_date: date
	rental_end_date: date
	# Cached sum of item subtotals, rewritten on every save
	total_amount: Decimal = Field(default=Decimal("0"), max_digits=14, decimal_places=2)
	notes: Optional[str] = None
	created_at: datetime = Field(default_factory=_utcnow)
	updated_at: datetime = Field(default_factory=_utcnow)

	items: List["OrderItem"] = Relationship(
		sa_relationship=relationship(
			"OrderItem",
			back_populates="order",
			cascade="all, delete-orphan",
			passive_deletes=True,
			order_by=lambda: [OrderItem.created_at, OrderItem.line_no],
		)
	)


class OrderItem(SQLModel, table=True):
	__tablename__ = "order_items"

	id: str = Field(default_factory=_new_id, primary_key=True, max_length=36)
	order_id: str = Field(
		sa_column=Column(String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True),
	)
	car_type: str
	quantity: int = 1
	daily_rate: Decimal = Field(default=Decimal("0"), max_digits=14, decimal_places=2)
	days: int = 1
	# Stored subtotal = quantity * daily_rate * days (computed on insert/update)
	subtotal: Decimal = Field(default=Decimal("0"), max_digits=16, decimal_places=2)
	# Position within the order; breaks created_at ties for items inserted together
	line_no: int = 0
	created_at: datetime = Field(default_factory=_utcnow)

	order: Optional["Order"] = Relationship(sa_relationship=relationship("Order", back_populates="items"))


@event.listens_for(OrderItem, "before_insert")
@event.listens_for(OrderItem, "before_update")
def _compute_item_subtotal(mapper, connection, target: OrderItem):  # type: ignore[no-redef]
	target.subtotal = compute_subtotal(target.quantity, target.daily_rate, target.days)
