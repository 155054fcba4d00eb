from __future__ import annotations

from decimal import Decimal, ROUND_HALF_EVEN, InvalidOperation
from typing import Optional, Iterable


class MoneyParseError(ValueError):
	pass


def to_decimal(x: object) -> Decimal:
	"""Best-effort conversion to Decimal via str to avoid binary float artifacts."""
	try:
		return Decimal(str(x))
	except (InvalidOperation, ValueError, TypeError):
		return Decimal("0")


def parse_decimal(x: object) -> Decimal:
	"""Strict conversion to Decimal; raises MoneyParseError for non-numeric input."""
	if isinstance(x, bool) or x is None:
		raise MoneyParseError(f"not a number: {x!r}")
	try:
		d = Decimal(str(x).strip())
	except (InvalidOperation, ValueError, TypeError) as exc:
		raise MoneyParseError(f"not a number: {x!r}") from exc
	if not d.is_finite():
		raise MoneyParseError(f"not a finite number: {x!r}")
	return d


def round_money_dec(x: float | Decimal) -> Decimal:
	"""Round to 2 decimals and return Decimal for high-precision internal math."""
	d = to_decimal(x)
	return d.quantize(Decimal("0.01"), rounding=ROUND_HALF_EVEN)


def fmt_money(x: float | Decimal, width: Optional[int] = None) -> str:
	"""
	Format monetary value with two decimals. If width is provided, return a right-aligned string.
	"""
	s = f"{round_money_dec(x):.2f}"
	return s.rjust(width) if isinstance(width, int) and width > 0 else s


def fmt_idr(x: float | Decimal, symbol: str = "Rp") -> str:
	"""Format an amount the way id-ID renders IDR: 'Rp 1.200.000' (no fraction digits)."""
	d = to_decimal(x).quantize(Decimal("1"), rounding=ROUND_HALF_EVEN)
	sign = "-" if d < 0 else ""
	grouped = f"{abs(d):,.0f}".replace(",", ".")
	return f"{sign}{symbol} {grouped}" if symbol else f"{sign}{grouped}"


def sum_money(values: Iterable[float | Decimal]) -> Decimal:
	"""Accumulate monetary values using Decimal and banker's rounding at the end."""
	total = Decimal("0")
	for v in values:
		total += to_decimal(v)
	return round_money_dec(total)
