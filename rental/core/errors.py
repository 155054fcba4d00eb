from __future__ import annotations

from typing import Iterable, List


class RentalError(Exception):
    """Base class for errors surfaced to the user as a single message."""


class ValidationError(RentalError, ValueError):
    """A create/edit precondition failed; nothing was written."""

    def __init__(self, reasons: Iterable[str]):
        self.reasons: List[str] = list(reasons)
        super().__init__("; ".join(self.reasons) or "invalid order")


class InvalidTransitionError(RentalError):
    """An editor action is not allowed in its current state (e.g. saving a deleted order)."""


class StoreError(RentalError):
    """The data store rejected or could not complete a read/write."""


class OrderNotFoundError(StoreError):
    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(f"Order not found: {order_id}")


class PartialWriteError(StoreError):
    """An order was found without items, or with a total that disagrees with its items."""

    def __init__(self, order_id: str, detail: str):
        self.order_id = order_id
        self.detail = detail
        super().__init__(f"Order {order_id} is inconsistent: {detail}")
