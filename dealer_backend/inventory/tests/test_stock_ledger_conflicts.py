# inventory/tests/test_stock_ledger_conflicts.py

from __future__ import annotations

from unittest import mock

from django.db.models import QuerySet
from django.test import TransactionTestCase, override_settings

from core.exceptions import ConcurrentModification
from core.tests.fixtures import make_dealership, make_manufacturer, make_vehicle, stock
from inventory.models import StockBatch, StockMovement
from inventory.services.stock_ledger import AllocationLine, Owner, allocate, reverse

_real_update = QuerySet.update


def lose_batch_updates(*, lose_at: set[int]):
    """
    Patch QuerySet.update so the n-th StockBatch conditional update (1-based,
    counted across retries) matches no row, as if another writer changed the
    batch between our read and our write.
    """
    seen = {"n": 0}

    def update(qs, **kwargs):
        if qs.model is StockBatch:
            seen["n"] += 1
            if seen["n"] in lose_at:
                return 0
        return _real_update(qs, **kwargs)

    return mock.patch.object(QuerySet, "update", autospec=True, side_effect=update), seen


@override_settings(CONCURRENCY_MAX_RETRIES=2, CONCURRENCY_BACKOFF_SECONDS=0)
class StockLedgerConflictTests(TransactionTestCase):
    """
    Conditional batch updates under a competing writer.

    GUARANTEES:
    - a lost update raises ConcurrentModification and is retried
    - a failed attempt leaves no decremented batch and no movement behind
    - exhausted retries surface ConcurrentModification with stock untouched
    """

    def setUp(self):
        self.vehicle = make_vehicle(make_manufacturer())
        self.owner = Owner.dealer(make_dealership())
        self.b1 = stock(self.vehicle, self.owner, 2, minutes_ago=30)
        self.b2 = stock(self.vehicle, self.owner, 5, minutes_ago=10)

    def _remaining(self):
        self.b1.refresh_from_db()
        self.b2.refresh_from_db()
        return self.b1.remaining_quantity, self.b2.remaining_quantity

    def _movements(self, reason):
        return StockMovement.objects.filter(reason=reason).count()

    def test_allocation_retried_after_lost_update(self):
        # first attempt: b1 succeeds, b2 loses the race -> whole attempt rolls back
        patcher, seen = lose_batch_updates(lose_at={2})
        with patcher:
            lines = allocate(vehicle=self.vehicle, owner=self.owner, quantity=4, reference="ORDER:C1")

        self.assertEqual(seen["n"], 4)
        self.assertEqual(lines, [AllocationLine(self.b1.pk, 2), AllocationLine(self.b2.pk, 2)])
        self.assertEqual(self._remaining(), (0, 3))
        self.assertEqual(self._movements(StockMovement.Reason.ALLOCATION), 2)

    def test_allocation_gives_up_without_partial_writes(self):
        patcher, _ = lose_batch_updates(lose_at={2, 4, 6})
        with patcher:
            with self.assertRaises(ConcurrentModification):
                allocate(vehicle=self.vehicle, owner=self.owner, quantity=4, reference="ORDER:C2")

        self.assertEqual(self._remaining(), (2, 5))
        self.assertEqual(self._movements(StockMovement.Reason.ALLOCATION), 0)

    def test_reversal_retried_after_lost_update(self):
        lines = allocate(vehicle=self.vehicle, owner=self.owner, quantity=4, reference="ORDER:C3")

        patcher, seen = lose_batch_updates(lose_at={2})
        with patcher:
            restored = reverse(lines=lines, reference="ORDER:C3")

        self.assertEqual(seen["n"], 4)
        self.assertEqual(sum(ln.quantity for ln in restored), 4)
        self.assertEqual(self._remaining(), (2, 5))
        self.assertEqual(self._movements(StockMovement.Reason.REVERSAL), 2)
