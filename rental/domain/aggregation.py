"""Totals and monthly rollups for rental orders.

All functions here are pure: they take plain objects (ORM rows, drafts or
mappings with the same field names) and return new values. Money is handled as
``Decimal`` throughout.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Tuple

from rental.core.currency import round_money_dec, sum_money, to_decimal
from rental.core.dates import as_date, month_label


def _field(obj: Any, name: str, default: Any = None) -> Any:
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


def compute_subtotal(quantity: int, daily_rate: Any, days: int) -> Decimal:
    """quantity x daily_rate x days. Range checks belong to the caller (see drafts.validate_draft)."""
    return Decimal(int(quantity)) * to_decimal(daily_rate) * Decimal(int(days))


def item_subtotal(item: Any) -> Decimal:
    """Subtotal of a stored or draft item; derived from its fields when not carried."""
    subtotal = _field(item, "subtotal")
    if subtotal is not None:
        return to_decimal(subtotal)
    return compute_subtotal(
        _field(item, "quantity", 0),
        _field(item, "daily_rate", 0),
        _field(item, "days", 0),
    )


def compute_order_total(items: Iterable[Any]) -> Decimal:
    """Sum of item subtotals. An empty list gives 0 (validation rejects such orders)."""
    total = Decimal("0")
    for item in items:
        total += item_subtotal(item)
    return total


@dataclass(frozen=True)
class MonthlyStatistic:
    month: str
    year: int
    month_index: int
    order_count: int
    total_revenue: Decimal

    @property
    def average_order(self) -> Decimal:
        """Average revenue per order in this month."""
        if not self.order_count:
            return Decimal("0")
        return round_money_dec(self.total_revenue / self.order_count)


@dataclass(frozen=True)
class ReportTotals:
    total_orders: int
    total_revenue: Decimal
    average_revenue_per_month: Decimal


def group_by_month(orders: Iterable[Any], year: int) -> List[MonthlyStatistic]:
    """Roll the orders of ``year`` up into one statistic per month that has orders.

    Months without orders are not synthesized; the result is ordered January first.
    """
    buckets: Dict[Tuple[int, int], List[Any]] = {}
    for order in orders:
        order_date = as_date(_field(order, "order_date"))
        if order_date.year != year:
            continue
        key = (order_date.year, order_date.month - 1)
        bucket = buckets.setdefault(key, [0, Decimal("0")])
        bucket[0] += 1
        bucket[1] += to_decimal(_field(order, "total_amount", 0))

    return [
        MonthlyStatistic(
            month=month_label(month_index),
            year=y,
            month_index=month_index,
            order_count=count,
            total_revenue=revenue,
        )
        for (y, month_index), (count, revenue) in sorted(buckets.items(), key=lambda kv: kv[0][1])
    ]


def list_available_years(orders: Iterable[Any]) -> List[int]:
    """Distinct order-date years, most recent first."""
    years = {as_date(_field(order, "order_date")).year for order in orders}
    return sorted(years, reverse=True)


def aggregate_totals(statistics: Iterable[MonthlyStatistic]) -> ReportTotals:
    """Totals across months; the average divides by months with data, not by 12."""
    stats = list(statistics)
    total_orders = sum(s.order_count for s in stats)
    total_revenue = sum_money(s.total_revenue for s in stats)
    if not stats:
        average = Decimal("0")
    else:
        average = round_money_dec(total_revenue / len(stats))
    return ReportTotals(
        total_orders=total_orders,
        total_revenue=total_revenue,
        average_revenue_per_month=average,
    )
