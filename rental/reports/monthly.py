from __future__ import annotations

import csv
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any, Iterable, List, Optional

from rental.core.currency import fmt_idr, fmt_money
from rental.domain.aggregation import (
	MonthlyStatistic,
	ReportTotals,
	aggregate_totals,
	group_by_month,
	list_available_years,
)


@dataclass
class MonthlyReport:
	year: int
	available_years: List[int] = field(default_factory=list)
	statistics: List[MonthlyStatistic] = field(default_factory=list)
	totals: ReportTotals = field(default_factory=lambda: aggregate_totals([]))

	@property
	def is_empty(self) -> bool:
		return not self.statistics


def build_monthly_report(orders: Iterable[Any], year: Optional[int] = None) -> MonthlyReport:
	"""Monthly statistics of ``year`` (default: the current calendar year) plus the year selector values."""
	rows = list(orders)
	selected = int(year) if year is not None else date.today().year
	stats = group_by_month(rows, selected)
	return MonthlyReport(
		year=selected,
		available_years=list_available_years(rows),
		statistics=stats,
		totals=aggregate_totals(stats),
	)


def format_monthly_report(report: MonthlyReport, symbol: str = "Rp") -> str:
	"""Plain-text table: month, order count, revenue, average per order, then a TOTAL row."""
	if report.is_empty:
		return f"Belum ada data untuk tahun {report.year}"

	header = ("Bulan", "Jumlah Order", "Total Pendapatan", "Rata-rata Order")
	body = [
		(
			f"{s.month} {s.year}",
			f"{s.order_count} order",
			fmt_idr(s.total_revenue, symbol),
			fmt_idr(s.average_order, symbol),
		)
		for s in report.statistics
	]
	footer = (
		"TOTAL",
		f"{report.totals.total_orders} order",
		fmt_idr(report.totals.total_revenue, symbol),
		fmt_idr(report.totals.average_revenue_per_month, symbol),
	)
	rows = [header, *body, footer]
	widths = [max(len(r[i]) for r in rows) for i in range(len(header))]

	def _fmt(r) -> str:
		return "  ".join([r[0].ljust(widths[0])] + [c.rjust(w) for c, w in zip(r[1:], widths[1:])])

	rule = "-" * (sum(widths) + 2 * (len(widths) - 1))
	lines = [f"Laporan Bulanan {report.year}", _fmt(header), rule]
	lines += [_fmt(r) for r in body]
	lines += [rule, _fmt(footer)]
	return "\n".join(lines)


def export_monthly_report_csv(report: MonthlyReport, path: str | Path) -> int:
	"""Write the report to CSV. Returns number of month rows written (TOTAL row excluded).

	Columns: month,year,order_count,total_revenue,average_order
	"""
	p = Path(path)
	p.parent.mkdir(parents=True, exist_ok=True)
	count = 0
	with p.open("w", encoding="utf-8", newline="") as f:
		w = csv.writer(f)
		w.writerow(["month", "year", "order_count", "total_revenue", "average_order"])  # header
		for s in report.statistics:
			w.writerow([s.month, s.year, s.order_count, fmt_money(s.total_revenue), fmt_money(s.average_order)])
			count += 1
		w.writerow([
			"TOTAL",
			report.year,
			report.totals.total_orders,
			fmt_money(report.totals.total_revenue),
			fmt_money(report.totals.average_revenue_per_month),
		])
	return count
