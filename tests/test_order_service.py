from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.exc import SQLAlchemyError

import rental.services.orders as order_service
from rental.core.errors import (
    InvalidTransitionError,
    OrderNotFoundError,
    StoreError,
    ValidationError,
)
from rental.data import repo
from rental.data.db import session_scope
from rental.domain.drafts import ItemDraft, OrderDraft
from rental.services.orders import OrderEditor, OrderEvents, OrderState


def _brio_only(draft: OrderDraft) -> OrderDraft:
    draft.items = [ItemDraft(car_type="Brio", quantity=1, daily_rate=250000, days=3)]
    return draft


def test_create_order_persists_total_and_items(engine, budi_draft) -> None:
    saved = order_service.create_order(budi_draft)

    found = order_service.get_order_with_items(saved.id)
    assert found.order.customer_name == "Budi"
    assert found.order.total_amount == Decimal("1200000")
    assert found.order.order_date == date.today()
    assert len(found.items) == 1
    item = found.items[0]
    assert (item.car_type, item.quantity, item.days) == ("Avanza", 2, 2)
    assert item.daily_rate == Decimal("300000")
    assert item.subtotal == Decimal("1200000")
    assert item.order_id == saved.id


def test_create_order_keeps_item_entry_order(engine, budi_draft) -> None:
    budi_draft.items = [
        ItemDraft(car_type=name, quantity=1, daily_rate=100000, days=1)
        for name in ("Xenia", "Avanza", "Brio", "Innova")
    ]
    saved = order_service.create_order(budi_draft)

    found = order_service.get_order_with_items(saved.id)
    assert [it.car_type for it in found.items] == ["Xenia", "Avanza", "Brio", "Innova"]
    assert found.order.total_amount == Decimal("400000")


def test_update_order_replaces_items(engine, budi_draft) -> None:
    budi_draft.items.append(ItemDraft(car_type="Xenia", quantity=1, daily_rate=275000, days=2))
    saved = order_service.create_order(budi_draft)
    assert len(saved.items) == 2
    old_ids = {it.id for it in saved.items}

    draft = _brio_only(order_service.load_draft(saved.id))
    order_service.update_order(saved.id, draft)

    found = order_service.get_order_with_items(saved.id)
    assert found.order.total_amount == Decimal("750000")
    assert [(it.car_type, it.quantity, it.days) for it in found.items] == [("Brio", 1, 3)]
    assert found.items[0].subtotal == Decimal("750000")
    assert not old_ids & {it.id for it in found.items}


def test_update_order_keeps_order_date_and_id(engine, budi_draft) -> None:
    budi_draft.order_date = date(2024, 1, 9)
    saved = order_service.create_order(budi_draft)

    draft = order_service.load_draft(saved.id)
    draft.order_date = None
    draft.customer_name = "Budi Santoso"
    order_service.update_order(saved.id, draft)

    found = order_service.get_order_with_items(saved.id)
    assert found.id == saved.id
    assert found.order.order_date == date(2024, 1, 9)
    assert found.order.customer_name == "Budi Santoso"


def test_resaving_an_unchanged_draft_is_idempotent(engine, budi_draft) -> None:
    saved = order_service.create_order(budi_draft)

    def snapshot():
        found = order_service.get_order_with_items(saved.id)
        return (
            found.order.total_amount,
            [(it.car_type, it.quantity, it.daily_rate, it.days, it.subtotal) for it in found.items],
        )

    before = snapshot()
    for _ in range(2):
        order_service.update_order(saved.id, order_service.load_draft(saved.id))
        assert snapshot() == before


def test_stored_total_matches_items(engine, budi_draft) -> None:
    budi_draft.items.append(ItemDraft(car_type="Innova", quantity=1, daily_rate="450000.50", days=2))
    saved = order_service.create_order(budi_draft)

    found = order_service.get_order_with_items(saved.id)
    assert found.order.total_amount == found.items_total == Decimal("2101001.00")


def test_sub_cent_daily_rate_is_rejected_and_nothing_is_stored(engine, budi_draft) -> None:
    budi_draft.items = [ItemDraft(car_type="Avanza", quantity=1, daily_rate="0.005", days=1) for _ in range(3)]

    with pytest.raises(ValidationError) as ei:
        order_service.create_order(budi_draft)

    assert ei.value.reasons == [
        f"item {n}: daily rate must have at most 2 decimal places" for n in (1, 2, 3)
    ]
    assert order_service.list_orders() == []


def test_saved_cent_rates_pass_the_audit(engine, budi_draft) -> None:
    budi_draft.items = [ItemDraft(car_type="Avanza", quantity=3, daily_rate="0.01", days=1) for _ in range(3)]
    saved = order_service.create_order(budi_draft)

    found = order_service.get_order_with_items(saved.id)
    assert found.order.total_amount == found.items_total == saved.order.total_amount == Decimal("0.09")
    assert order_service.audit_orders() == []


def test_delete_order_removes_order_and_items(engine, budi_draft) -> None:
    saved = order_service.create_order(budi_draft)

    order_service.delete_order(saved.id)

    with pytest.raises(OrderNotFoundError):
        order_service.get_order_with_items(saved.id)
    with session_scope() as s:
        assert repo.list_items(s, saved.id) == []


def test_missing_order_raises_not_found(engine, budi_draft) -> None:
    with pytest.raises(OrderNotFoundError):
        order_service.update_order("no-such-order", budi_draft)
    with pytest.raises(OrderNotFoundError):
        order_service.delete_order("no-such-order")
    with pytest.raises(OrderNotFoundError) as ei:
        order_service.get_order_with_items("no-such-order")
    assert ei.value.order_id == "no-such-order"


def test_invalid_draft_is_rejected_before_the_store_is_touched(engine, monkeypatch) -> None:
    def _no_store():
        raise AssertionError("store must not be called for an invalid draft")

    monkeypatch.setattr(order_service, "session_scope", _no_store)

    with pytest.raises(ValidationError) as ei:
        order_service.create_order(OrderDraft(customer_name="Budi", customer_phone="0812xxx"))
    assert "at least one item is required" in ei.value.reasons
    assert "rental start date is required" in ei.value.reasons

    bad = OrderDraft(
        customer_name="Budi",
        customer_phone="0812xxx",
        rental_start_date=date(2024, 1, 10),
        rental_end_date=date(2024, 1, 12),
        items=[ItemDraft(car_type="Avanza", quantity=0, daily_rate=-1, days=1)],
    )
    with pytest.raises(ValidationError):
        order_service.update_order("any", bad)


def test_end_before_start_is_accepted(engine, budi_draft) -> None:
    budi_draft.rental_start_date, budi_draft.rental_end_date = date(2024, 1, 12), date(2024, 1, 10)
    saved = order_service.create_order(budi_draft)
    assert saved.order.rental_end_date < saved.order.rental_start_date


def test_failed_item_insert_rolls_back_the_order(engine, budi_draft, monkeypatch) -> None:
    def _boom(s, order_id, rows):
        raise SQLAlchemyError("disk full")

    monkeypatch.setattr(repo, "insert_items", _boom)

    with pytest.raises(StoreError):
        order_service.create_order(budi_draft)
    assert order_service.list_orders() == []


def test_failed_edit_keeps_previous_items(engine, budi_draft, monkeypatch) -> None:
    saved = order_service.create_order(budi_draft)
    draft = _brio_only(order_service.load_draft(saved.id))

    def _boom(s, order_id, rows):
        raise SQLAlchemyError("connection lost")

    monkeypatch.setattr(repo, "insert_items", _boom)
    with pytest.raises(StoreError):
        order_service.update_order(saved.id, draft)

    found = order_service.get_order_with_items(saved.id)
    assert [it.car_type for it in found.items] == ["Avanza"]
    assert found.order.total_amount == Decimal("1200000")


def test_list_orders_newest_order_date_first(engine, budi_draft) -> None:
    for d in (date(2024, 1, 5), date(2024, 3, 1), date(2023, 12, 31)):
        budi_draft.order_date = d
        order_service.create_order(budi_draft)

    assert [o.order_date for o in order_service.list_orders()] == [
        date(2024, 3, 1),
        date(2024, 1, 5),
        date(2023, 12, 31),
    ]
    rows = order_service.list_orders_with_items()
    assert [len(r.items) for r in rows] == [1, 1, 1]


def test_writes_emit_change_events(engine, budi_draft) -> None:
    events = OrderEvents()
    seen = []
    events.connect(seen.append)

    saved = order_service.create_order(budi_draft, events=events)
    order_service.update_order(saved.id, budi_draft, events=events)
    order_service.delete_order(saved.id, events=events)

    assert [(e.action, e.order_id) for e in seen] == [
        ("created", saved.id),
        ("updated", saved.id),
        ("deleted", saved.id),
    ]

    events.disconnect(seen.append)
    order_service.create_order(budi_draft, events=events)
    assert len(seen) == 3


def test_editor_create_edit_delete_lifecycle(engine, budi_draft) -> None:
    editor = OrderEditor(budi_draft)
    assert editor.state is OrderState.CREATING

    saved = editor.save()
    assert editor.state is OrderState.PERSISTED
    assert editor.order_id == saved.id

    with pytest.raises(InvalidTransitionError):
        editor.save()

    draft = editor.start_edit()
    assert editor.state is OrderState.EDITING
    assert [it.car_type for it in draft.items] == ["Avanza"]
    _brio_only(draft)
    editor.save()
    assert editor.state is OrderState.PERSISTED
    assert order_service.get_order_with_items(saved.id).order.total_amount == Decimal("750000")

    editor.delete()
    assert editor.state is OrderState.DELETED
    with pytest.raises(InvalidTransitionError):
        editor.delete()
    with pytest.raises(InvalidTransitionError):
        editor.start_edit()
    with pytest.raises(InvalidTransitionError):
        editor.save()


def test_editor_failed_save_keeps_state(engine, budi_draft) -> None:
    saved = order_service.create_order(budi_draft)
    editor = OrderEditor.for_order(saved.id)
    draft = editor.start_edit()
    draft.items = []

    with pytest.raises(ValidationError):
        editor.save()
    assert editor.state is OrderState.EDITING

    editor.cancel_edit()
    assert editor.state is OrderState.PERSISTED
    assert len(order_service.get_order_with_items(saved.id).items) == 1


def test_editor_delete_of_unsaved_draft_touches_nothing(engine, budi_draft) -> None:
    editor = OrderEditor(budi_draft)
    editor.delete()
    assert editor.state is OrderState.DELETED
    assert order_service.list_orders() == []


def test_audit_reports_and_repairs_drift(engine, budi_draft) -> None:
    saved = order_service.create_order(budi_draft)
    with session_scope() as s:
        repo.update_order(s, saved.id, {"total_amount": Decimal("1")})
        orphan = repo.insert_order(s, {
            "customer_name": "Siti",
            "customer_phone": "0813",
            "rental_start_date": date(2024, 2, 1),
            "rental_end_date": date(2024, 2, 2),
            "total_amount": Decimal("0"),
        })
        orphan_id = orphan.id

    problems = order_service.audit_orders()
    assert {p.order_id for p in problems} == {saved.id, orphan_id}

    order_service.audit_orders(repair=True)
    assert order_service.get_order_with_items(saved.id).order.total_amount == Decimal("1200000")

    remaining = order_service.audit_orders()
    assert [(p.order_id, p.detail) for p in remaining] == [(orphan_id, "order has no items")]
