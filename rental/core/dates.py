from __future__ import annotations

from datetime import date, datetime
from typing import Any

# Month names as rendered by the id-ID locale
MONTH_NAMES_ID = (
    "Januari",
    "Februari",
    "Maret",
    "April",
    "Mei",
    "Juni",
    "Juli",
    "Agustus",
    "September",
    "Oktober",
    "November",
    "Desember",
)


def month_label(month_index: int) -> str:
    """Indonesian month name for a zero-based month index."""
    return MONTH_NAMES_ID[month_index]


def as_date(val: Any) -> date:
    """Coerce a date, datetime or ISO string into a date."""
    if isinstance(val, datetime):
        return val.date()
    if isinstance(val, date):
        return val
    return parse_date(str(val))


def parse_date(text: str) -> date:
    """Parse 'YYYY-MM-DD' (a trailing time part is ignored)."""
    text = (text or "").strip()
    if not text:
        raise ValueError("empty date")
    return date.fromisoformat(text[:10])


def fmt_date_long(val: Any) -> str:
    """Format as '10 Januari 2024'; empty string for None."""
    if val is None:
        return ""
    d = as_date(val)
    return f"{d.day:02d} {month_label(d.month - 1)} {d.year}"
