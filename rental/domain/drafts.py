from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from rental.core.currency import MoneyParseError, parse_decimal, round_money_dec, to_decimal
from rental.core.dates import as_date
from rental.core.errors import ValidationError
from rental.domain.aggregation import compute_order_total, compute_subtotal


@dataclass
class ItemDraft:
	car_type: str
	quantity: int = 1
	daily_rate: Any = Decimal("0")
	days: int = 1
	# Id of the stored item this draft was loaded from; never reused on save
	id: Optional[str] = None

	@property
	def subtotal(self) -> Decimal:
		return compute_subtotal(self.quantity, self.daily_rate, self.days)


@dataclass
class OrderDraft:
	"""Editable snapshot of an order: scalar fields plus the full item list."""

	customer_name: str = ""
	customer_phone: str = ""
	customer_address: Optional[str] = None
	rental_start_date: Optional[date] = None
	rental_end_date: Optional[date] = None
	notes: Optional[str] = None
	# None on create means "today"; on edit the stored value is kept
	order_date: Optional[date] = None
	items: List[ItemDraft] = field(default_factory=list)

	@property
	def total_amount(self) -> Decimal:
		return compute_order_total(self.items)


def _is_whole(value: Any) -> bool:
	return isinstance(value, int) and not isinstance(value, bool)


def _blank(value: Optional[str]) -> bool:
	return not (value or "").strip()


def _text_reason(value: Any, label: str, required: bool = True) -> Optional[str]:
	if value is not None and not isinstance(value, str):
		return f"{label} must be text"
	if required and _blank(value):
		return f"{label} is required"
	return None


def validate_draft(draft: OrderDraft) -> None:
	"""Raise ValidationError listing every violated precondition; return None if the draft may be saved."""
	reasons: List[str] = []
	for value, label, required in (
		(draft.customer_name, "customer name", True),
		(draft.customer_phone, "customer phone", True),
		(draft.customer_address, "customer address", False),
		(draft.notes, "notes", False),
	):
		reason = _text_reason(value, label, required)
		if reason:
			reasons.append(reason)
	if draft.rental_start_date is None:
		reasons.append("rental start date is required")
	if draft.rental_end_date is None:
		reasons.append("rental end date is required")
	if not draft.items:
		reasons.append("at least one item is required")

	for n, item in enumerate(draft.items, 1):
		reason = _text_reason(item.car_type, f"item {n}: car type")
		if reason:
			reasons.append(reason)
		if not _is_whole(item.quantity) or item.quantity < 1:
			reasons.append(f"item {n}: quantity must be a whole number of at least 1")
		if not _is_whole(item.days) or item.days < 1:
			reasons.append(f"item {n}: days must be a whole number of at least 1")
		try:
			rate = parse_decimal(item.daily_rate)
			if rate < 0:
				reasons.append(f"item {n}: daily rate must not be negative")
			# Stored with 2 decimals; finer rates would make the total drift from its items
			elif rate != round_money_dec(rate):
				reasons.append(f"item {n}: daily rate must have at most 2 decimal places")
		except MoneyParseError:
			reasons.append(f"item {n}: daily rate must be a number")
		except InvalidOperation:
			reasons.append(f"item {n}: daily rate is too large")

	if reasons:
		raise ValidationError(reasons)


def draft_warnings(draft: OrderDraft) -> List[str]:
	"""Non-blocking anomalies. A rental ending before it starts is accepted as entered."""
	warnings: List[str] = []
	start, end = draft.rental_start_date, draft.rental_end_date
	if start is not None and end is not None and end < start:
		warnings.append(f"rental end date {end.isoformat()} is before start date {start.isoformat()}")
	return warnings


def draft_from_order(order: Any, items: List[Any]) -> OrderDraft:
	"""Load a stored order and its items into an editable draft."""
	return OrderDraft(
		customer_name=order.customer_name,
		customer_phone=order.customer_phone,
		customer_address=order.customer_address,
		rental_start_date=order.rental_start_date,
		rental_end_date=order.rental_end_date,
		notes=order.notes,
		order_date=order.order_date,
		items=[
			ItemDraft(
				id=it.id,
				car_type=it.car_type,
				quantity=it.quantity,
				daily_rate=to_decimal(it.daily_rate),
				days=it.days,
			)
			for it in items
		],
	)


def _optional_date(raw: Dict[str, Any], key: str, reasons: List[str]) -> Optional[date]:
	val = raw.get(key)
	if val in (None, ""):
		return None
	try:
		return as_date(val)
	except (TypeError, ValueError):
		reasons.append(f"{key.replace('_', ' ')} is not a valid date: {val!r}")
		return None


def _whole_or_raw(val: Any) -> Any:
	# Accept "2" from form/JSON input; anything else is left for validate_draft to reject
	if isinstance(val, str) and val.strip().isdigit():
		return int(val.strip())
	return val


def _text_or_raw(val: Any) -> Any:
	# Missing text becomes ""; non-strings pass through so validate_draft names them
	return "" if val is None else val


def draft_from_dict(raw: Dict[str, Any]) -> OrderDraft:
	"""Build a draft from a JSON-like mapping using the store's field names.

	Raises ValidationError when the mapping is not shaped like an order (items not
	a list of objects, unparseable dates). Field values are checked by validate_draft.
	"""
	if not isinstance(raw, dict):
		raise ValidationError(["order draft must be an object"])
	reasons: List[str] = []
	items_raw = raw.get("items", raw.get("order_items", [])) or []
	if not isinstance(items_raw, list):
		reasons.append("items must be a list")
		items_raw = []
	for n, it in enumerate(items_raw, 1):
		if not isinstance(it, dict):
			reasons.append(f"item {n}: must be an object with car_type, quantity, daily_rate and days")

	start = _optional_date(raw, "rental_start_date", reasons)
	end = _optional_date(raw, "rental_end_date", reasons)
	order_date = _optional_date(raw, "order_date", reasons)
	if reasons:
		raise ValidationError(reasons)

	return OrderDraft(
		customer_name=_text_or_raw(raw.get("customer_name")),
		customer_phone=_text_or_raw(raw.get("customer_phone")),
		customer_address=raw.get("customer_address"),
		rental_start_date=start,
		rental_end_date=end,
		notes=raw.get("notes"),
		order_date=order_date,
		items=[
			ItemDraft(
				car_type=_text_or_raw(it.get("car_type")),
				quantity=_whole_or_raw(it.get("quantity", 1)),
				daily_rate=it.get("daily_rate", 0),
				days=_whole_or_raw(it.get("days", 1)),
			)
			for it in items_raw
		],
	)
