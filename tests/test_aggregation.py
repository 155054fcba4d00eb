from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from rental.domain.aggregation import (
    MonthlyStatistic,
    aggregate_totals,
    compute_order_total,
    compute_subtotal,
    group_by_month,
    list_available_years,
)
from rental.domain.drafts import ItemDraft


def _order(d: date, total) -> dict:
    return {"order_date": d, "total_amount": Decimal(str(total))}


def test_compute_subtotal_multiplies_quantity_rate_days() -> None:
    for q, r, d in [(1, 0, 1), (2, 300000, 2), (3, Decimal("125000.50"), 4), (1, "99.99", 7)]:
        assert compute_subtotal(q, r, d) == Decimal(q) * Decimal(str(r)) * Decimal(d)
    assert compute_subtotal(2, 300000, 2) == Decimal("1200000")


def test_compute_subtotal_has_no_float_drift() -> None:
    assert compute_subtotal(3, 0.1, 1) == Decimal("0.3")


def test_compute_order_total_sums_subtotals() -> None:
    items = [
        ItemDraft(car_type="Avanza", quantity=2, daily_rate=300000, days=2),
        ItemDraft(car_type="Brio", quantity=1, daily_rate=250000, days=3),
    ]
    assert compute_order_total(items) == Decimal("1950000")
    assert compute_order_total(items) == sum(i.subtotal for i in items)


def test_compute_order_total_uses_stored_subtotal_when_present() -> None:
    rows = [{"subtotal": Decimal("500.00")}, {"subtotal": "250.50"}]
    assert compute_order_total(rows) == Decimal("750.50")


def test_compute_order_total_of_empty_list_is_zero() -> None:
    assert compute_order_total([]) == Decimal("0")


def test_group_by_month_march_rollup() -> None:
    orders = [_order(date(2024, 3, 1), 500000), _order(date(2024, 3, 15), 700000)]

    stats = group_by_month(orders, 2024)

    assert stats == [
        MonthlyStatistic(month="Maret", year=2024, month_index=2, order_count=2, total_revenue=Decimal("1200000"))
    ]
    totals = aggregate_totals(stats)
    assert totals.total_orders == 2
    assert totals.total_revenue == Decimal("1200000")
    assert totals.average_revenue_per_month == Decimal("1200000")


def test_group_by_month_sorts_by_month_and_skips_empty_months() -> None:
    orders = [
        _order(date(2024, 11, 2), 100),
        _order(date(2024, 1, 20), 200),
        _order(date(2023, 6, 1), 999),
        _order(date(2024, 11, 30), 300),
        _order(date(2024, 5, 5), 400),
    ]

    stats = group_by_month(orders, 2024)

    assert [s.month_index for s in stats] == [0, 4, 10]
    assert [s.month for s in stats] == ["Januari", "Mei", "November"]
    assert all(s.order_count > 0 for s in stats)
    assert stats[-1].order_count == 2
    assert stats[-1].total_revenue == Decimal("400")
    assert stats[-1].average_order == Decimal("200")


def test_group_by_month_accepts_strings_and_datetimes() -> None:
    orders = [
        {"order_date": "2024-07-04", "total_amount": 10},
        {"order_date": datetime(2024, 7, 9, 15, 30), "total_amount": 5},
    ]
    (july,) = group_by_month(orders, 2024)
    assert july.month == "Juli"
    assert july.order_count == 2
    assert july.total_revenue == Decimal("15")


def test_group_by_month_without_orders_in_year_is_empty() -> None:
    assert group_by_month([_order(date(2023, 3, 1), 1)], 2024) == []
    assert group_by_month([], 2024) == []


def test_list_available_years_distinct_and_descending() -> None:
    orders = [
        _order(date(2022, 1, 1), 1),
        _order(date(2024, 3, 1), 1),
        _order(date(2022, 8, 1), 1),
        _order(date(2023, 12, 31), 1),
    ]
    assert list_available_years(orders) == [2024, 2023, 2022]
    assert list_available_years([]) == []


def test_aggregate_totals_of_nothing_is_zero() -> None:
    totals = aggregate_totals([])
    assert (totals.total_orders, totals.total_revenue, totals.average_revenue_per_month) == (0, 0, 0)


def test_aggregate_totals_averages_over_months_with_data_only() -> None:
    stats = group_by_month(
        [_order(date(2024, 1, 5), 300), _order(date(2024, 2, 5), 100), _order(date(2024, 2, 6), 200)],
        2024,
    )
    totals = aggregate_totals(stats)
    assert totals.total_orders == 3
    assert totals.total_revenue == Decimal("600")
    # two months with data, not twelve
    assert totals.average_revenue_per_month == Decimal("300")


def test_aggregate_totals_revenue_is_in_cents() -> None:
    stats = group_by_month(
        [_order(date(2024, 4, 1), "0.10"), _order(date(2024, 6, 1), "0.2")],
        2024,
    )
    totals = aggregate_totals(stats)
    assert str(totals.total_revenue) == "0.30"
    assert totals.average_revenue_per_month == Decimal("0.15")
