from __future__ import annotations

from datetime import date
from pathlib import Path

import pytest

import rental.data.db as db
from rental.domain.drafts import ItemDraft, OrderDraft


@pytest.fixture()
def test_db_url(tmp_path: Path) -> str:
    return f"sqlite:///{(tmp_path / 'test.sqlite').as_posix()}"


@pytest.fixture()
def engine(test_db_url: str):
    eng = db.make_engine(test_db_url)
    db.set_engine(eng)
    db.create_db_and_tables()
    yield eng
    db.set_engine(None)


@pytest.fixture()
def budi_draft() -> OrderDraft:
    return OrderDraft(
        customer_name="Budi",
        customer_phone="0812xxx",
        rental_start_date=date(2024, 1, 10),
        rental_end_date=date(2024, 1, 12),
        items=[ItemDraft(car_type="Avanza", quantity=2, daily_rate=300000, days=2)],
    )
