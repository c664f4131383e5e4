# Overview: Pytest coverage for payment status rules and FIFO due allocation.

import pytest

from backoffice.errors import InvalidInputError, LimitExceededError
from backoffice.money import format_cents
from backoffice.services.allocation import allocate_fifo, due_amount, payment_status


class TestPaymentStatus:

    @pytest.mark.parametrize("received,total,expected", [
        (0, 200, "pending"),
        (1, 200, "partial"),
        (199, 200, "partial"),
        (200, 200, "paid"),
        (250, 200, "paid"),
        (0, 0, "paid"),
    ])
    def test_status_is_function_of_received_and_total(self, received, total, expected):
        assert payment_status(received, total) == expected

    def test_due_never_negative(self):
        assert due_amount(50, 200) == 150
        assert due_amount(200, 200) == 0
        assert due_amount(300, 200) == 0


class TestAllocateFifo:

    def test_oldest_bill_filled_first(self):
        assert allocate_fifo([100, 50, 200], 120) == [100, 20, 0]

    def test_exact_total_clears_everything(self):
        assert allocate_fifo([100, 50, 200], 350) == [100, 50, 200]

    def test_allocation_sums_to_amount(self):
        applied = allocate_fifo([30, 0, 45, 10], 70)
        assert sum(applied) == 70
        assert applied == [30, 0, 40, 0]

    def test_amount_over_total_due_is_rejected(self):
        with pytest.raises(LimitExceededError) as exc:
            allocate_fifo([100, 50, 200], 400)
        assert exc.value.details == {"amount_cents": 400, "total_due_cents": 350}
        assert format_cents(400) in exc.value.message
        assert format_cents(350) in exc.value.message

    @pytest.mark.parametrize("amount", [0, -5])
    def test_non_positive_amount_is_rejected(self, amount):
        with pytest.raises(InvalidInputError):
            allocate_fifo([100], amount)

    def test_negative_due_is_rejected(self):
        with pytest.raises(InvalidInputError):
            allocate_fifo([100, -1], 10)


def test_format_cents():
    assert format_cents(1234567) == "₹12,345.67"
    assert format_cents(-5) == "-₹0.05"
