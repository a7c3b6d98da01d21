from __future__ import annotations

import unittest

from app.models import ItemStatus
from app.services.allocation_service import (
    ItemCounters,
    allocate_completion,
    derive_item_status,
    remaining_capacity,
)


class AllocationServiceTests(unittest.TestCase):
    def test_order_bucket_fills_before_stock(self) -> None:
        result = allocate_completion(ItemCounters(order_qty=10, stock_qty=5), 12)
        self.assertEqual(result.add_to_order, 10)
        self.assertEqual(result.add_to_stock, 2)
        self.assertEqual(result.order_completed, 10)
        self.assertEqual(result.stock_completed, 2)
        self.assertEqual(result.qty_discarded, 0)
        self.assertEqual(result.status, ItemStatus.PARTIALLY_COMPLETE)

    def test_second_report_completes_stock(self) -> None:
        counters = ItemCounters(
            order_qty=10,
            stock_qty=5,
            order_completed=10,
            stock_completed=2,
            status=ItemStatus.PARTIALLY_COMPLETE,
        )
        result = allocate_completion(counters, 3)
        self.assertEqual(result.order_completed, 10)
        self.assertEqual(result.stock_completed, 5)
        self.assertEqual(result.status, ItemStatus.COMPLETE)

    def test_overage_is_discarded_not_carried(self) -> None:
        result = allocate_completion(ItemCounters(order_qty=2, stock_qty=1), 10)
        self.assertEqual(result.order_completed, 2)
        self.assertEqual(result.stock_completed, 1)
        self.assertEqual(result.qty_discarded, 7)
        self.assertEqual(result.status, ItemStatus.COMPLETE)

    def test_report_on_complete_item_stays_complete(self) -> None:
        counters = ItemCounters(
            order_qty=3,
            stock_qty=0,
            order_completed=3,
            status=ItemStatus.COMPLETE,
        )
        result = allocate_completion(counters, 4)
        self.assertEqual(result.allocated, 0)
        self.assertEqual(result.qty_discarded, 4)
        self.assertEqual(result.status, ItemStatus.COMPLETE)

    def test_stock_only_item(self) -> None:
        result = allocate_completion(ItemCounters(order_qty=0, stock_qty=12), 5)
        self.assertEqual(result.add_to_order, 0)
        self.assertEqual(result.add_to_stock, 5)
        self.assertEqual(result.status, ItemStatus.PARTIALLY_COMPLETE)

    def test_working_item_becomes_partially_complete(self) -> None:
        counters = ItemCounters(order_qty=5, stock_qty=0, status=ItemStatus.WORKING)
        result = allocate_completion(counters, 1)
        self.assertEqual(result.status, ItemStatus.PARTIALLY_COMPLETE)

    def test_same_inputs_give_same_result(self) -> None:
        counters = ItemCounters(order_qty=7, stock_qty=3, order_completed=2)
        self.assertEqual(allocate_completion(counters, 6), allocate_completion(counters, 6))

    def test_allocation_conserves_quantity_within_capacity(self) -> None:
        for order_qty in range(0, 4):
            for stock_qty in range(0, 4):
                for order_completed in range(0, order_qty + 1):
                    for stock_completed in range(0, stock_qty + 1):
                        counters = ItemCounters(
                            order_qty=order_qty,
                            stock_qty=stock_qty,
                            order_completed=order_completed,
                            stock_completed=stock_completed,
                        )
                        capacity = remaining_capacity(counters)
                        for qty in range(0, 9):
                            result = allocate_completion(counters, qty)
                            self.assertEqual(result.allocated, min(qty, capacity))
                            self.assertEqual(result.allocated + result.qty_discarded, qty)
                            self.assertLessEqual(result.order_completed, order_qty)
                            self.assertLessEqual(result.stock_completed, stock_qty)
                            self.assertGreaterEqual(result.order_completed, order_completed)
                            self.assertGreaterEqual(result.stock_completed, stock_completed)
                            self.assertNotEqual(result.status, ItemStatus.WORKING)

    def test_negative_quantity_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            allocate_completion(ItemCounters(order_qty=1, stock_qty=1), -1)

    def test_negative_counters_are_rejected(self) -> None:
        with self.assertRaises(ValueError):
            allocate_completion(ItemCounters(order_qty=-1, stock_qty=1), 1)

    def test_zero_allocation_keeps_not_started(self) -> None:
        status = derive_item_status(
            order_qty=4,
            stock_qty=0,
            order_completed=0,
            stock_completed=0,
            previous_status=ItemStatus.NOT_STARTED,
            allocated=0,
        )
        self.assertEqual(status, ItemStatus.NOT_STARTED)


if __name__ == '__main__':
    unittest.main()
