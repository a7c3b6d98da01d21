from __future__ import annotations

from dataclasses import dataclass

from app.models import ItemStatus


@dataclass(frozen=True)
class ItemCounters:
    order_qty: int
    stock_qty: int
    order_completed: int = 0
    stock_completed: int = 0
    status: ItemStatus = ItemStatus.NOT_STARTED


@dataclass(frozen=True)
class AllocationResult:
    qty_completed: int
    add_to_order: int
    add_to_stock: int
    qty_discarded: int
    order_completed: int
    stock_completed: int
    status: ItemStatus

    @property
    def allocated(self) -> int:
        return self.add_to_order + self.add_to_stock


def _validate_counters(counters: ItemCounters) -> None:
    if counters.order_qty < 0 or counters.stock_qty < 0:
        raise ValueError('Assigned quantities cannot be negative')
    if counters.order_completed < 0 or counters.stock_completed < 0:
        raise ValueError('Completed quantities cannot be negative')


def remaining_capacity(counters: ItemCounters) -> int:
    order_remaining = max(0, counters.order_qty - counters.order_completed)
    stock_remaining = max(0, counters.stock_qty - counters.stock_completed)
    return order_remaining + stock_remaining


def derive_item_status(
    *,
    order_qty: int,
    stock_qty: int,
    order_completed: int,
    stock_completed: int,
    previous_status: ItemStatus,
    allocated: int,
) -> ItemStatus:
    if order_completed >= order_qty and stock_completed >= stock_qty:
        return ItemStatus.COMPLETE
    if allocated > 0 or previous_status != ItemStatus.NOT_STARTED:
        return ItemStatus.PARTIALLY_COMPLETE
    return ItemStatus.NOT_STARTED


def allocate_completion(counters: ItemCounters, qty_completed: int) -> AllocationResult:
    """Split newly finished units across the order bucket first, then stock.

    Units beyond the remaining capacity of both buckets are reported back as
    ``qty_discarded``; they never raise a counter above its assigned quantity.
    """
    _validate_counters(counters)
    if qty_completed < 0:
        raise ValueError('Completed quantity cannot be negative')

    order_remaining = max(0, counters.order_qty - counters.order_completed)
    stock_remaining = max(0, counters.stock_qty - counters.stock_completed)

    add_to_order = min(qty_completed, order_remaining)
    add_to_stock = min(qty_completed - add_to_order, stock_remaining)

    new_order_completed = counters.order_completed + add_to_order
    new_stock_completed = counters.stock_completed + add_to_stock

    status = derive_item_status(
        order_qty=counters.order_qty,
        stock_qty=counters.stock_qty,
        order_completed=new_order_completed,
        stock_completed=new_stock_completed,
        previous_status=counters.status,
        allocated=add_to_order + add_to_stock,
    )

    return AllocationResult(
        qty_completed=qty_completed,
        add_to_order=add_to_order,
        add_to_stock=add_to_stock,
        qty_discarded=qty_completed - add_to_order - add_to_stock,
        order_completed=new_order_completed,
        stock_completed=new_stock_completed,
        status=status,
    )
