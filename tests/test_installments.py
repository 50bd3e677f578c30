"""Tests for the installment expander."""

import pytest
from datetime import date

from ledger.errors import InstallmentError
from ledger.installments import (
    expand_credit_purchase,
    expand_expense_installments,
    expand_income_installments,
    installment_amount,
)
from ledger.models.entities import (
    ExpenseStatus,
    IncomeStatus,
    InstallmentValueMode,
)


class TestInstallmentAmount:

    def test_total_amount_is_split(self):
        assert installment_amount(1000.0, 4, InstallmentValueMode.TOTAL_AMOUNT) == 250.0

    def test_per_installment_is_kept(self):
        assert installment_amount(250.0, 4, InstallmentValueMode.PER_INSTALLMENT) == 250.0

    @pytest.mark.parametrize("count", [0, -1])
    def test_count_below_one_rejected(self, count):
        with pytest.raises(InstallmentError):
            installment_amount(100.0, count, InstallmentValueMode.TOTAL_AMOUNT)

    def test_mode_given_as_stored_value(self, make_expense):
        """Test the plain stored value selects the same mode as the enum."""
        assert installment_amount(1000.0, 4, "total_amount") == 250.0
        batch = expand_expense_installments(make_expense(amount=1000.0), 4, "total_amount")
        assert sum(e.amount for e in batch.records) == pytest.approx(1000.0)


class TestExpenseInstallments:
    """Tests for expanding a debit expense."""

    def test_total_amount_sums_back(self, make_expense):
        batch = expand_expense_installments(
            make_expense(amount=1000.0), 3, InstallmentValueMode.TOTAL_AMOUNT
        )
        assert sum(e.amount for e in batch.records) == pytest.approx(1000.0)

    def test_monthly_due_dates_keep_purchase_date(self, make_expense):
        batch = expand_expense_installments(make_expense(), 3)
        assert [e.due_date for e in batch.records] == [
            date(2025, 1, 10),
            date(2025, 2, 10),
            date(2025, 3, 10),
        ]
        assert {e.date for e in batch.records} == {date(2025, 1, 10)}

    def test_descriptions_and_numbering(self, make_expense):
        batch = expand_expense_installments(make_expense(description="Lente"), 2)
        assert [e.description for e in batch.records] == ["Lente (1/2)", "Lente (2/2)"]
        assert [e.installment_number for e in batch.records] == [1, 2]
        assert all(e.total_installments == 2 for e in batch.records)

    def test_shared_group_and_unique_ids(self, make_expense):
        batch = expand_expense_installments(make_expense(), 4)
        assert len({e.installment_group_id for e in batch.records}) == 1
        assert len({e.id for e in batch.records}) == 4
        assert all(e.installments for e in batch.records)

    def test_every_installment_starts_pending(self, make_expense):
        batch = expand_expense_installments(
            make_expense(status=ExpenseStatus.PAID, paid_date=date(2025, 1, 10)), 3
        )
        assert all(e.status is ExpenseStatus.PENDING for e in batch.records)
        assert all(e.paid_date is None for e in batch.records)

    def test_end_of_month_clamping(self, make_expense):
        """Test that day 31 clamps per month without drifting."""
        template = make_expense(date=date(2025, 1, 31), due_date=date(2025, 1, 31))
        batch = expand_expense_installments(template, 4)
        assert [e.due_date for e in batch.records] == [
            date(2025, 1, 31),
            date(2025, 2, 28),
            date(2025, 3, 31),
            date(2025, 4, 30),
        ]

    def test_explicit_group_id(self, make_expense):
        batch = expand_expense_installments(make_expense(), 2, group_id="grp")
        assert {e.installment_group_id for e in batch.records} == {"grp"}

    def test_missing_dates_rejected(self, make_expense):
        with pytest.raises(InstallmentError):
            expand_expense_installments(make_expense(date=None, due_date=None), 2)


class TestCreditPurchase:
    """Tests for expanding a credit-card purchase."""

    def test_first_due_date_follows_card_cycle(self, make_credit_expense, card):
        template = make_credit_expense(date=date(2025, 1, 28), due_date=None)
        batch = expand_credit_purchase(template, card, 3)
        assert [e.due_date for e in batch.records] == [
            date(2025, 3, 5),
            date(2025, 4, 5),
            date(2025, 5, 5),
        ]
        assert all(e.card_id == card.id for e in batch.records)

    def test_total_amount_split(self, make_credit_expense, card):
        batch = expand_credit_purchase(
            make_credit_expense(amount=900.0), card, 3, InstallmentValueMode.TOTAL_AMOUNT
        )
        assert [e.amount for e in batch.records] == [300.0, 300.0, 300.0]

    def test_purchase_date_required(self, make_credit_expense, card):
        with pytest.raises(InstallmentError):
            expand_credit_purchase(make_credit_expense(date=None), card, 2)


class TestIncomeInstallments:
    """Tests for expanding a receivable."""

    def test_dates_and_competence_shift(self, make_income):
        template = make_income(amount=1200.0, competence_date=date(2025, 1, 1))
        batch = expand_income_installments(template, 3)
        assert [i.amount for i in batch.records] == [400.0, 400.0, 400.0]
        assert [i.date for i in batch.records] == [
            date(2025, 1, 15),
            date(2025, 2, 15),
            date(2025, 3, 15),
        ]
        assert [i.competence_date for i in batch.records] == [
            date(2025, 1, 1),
            date(2025, 2, 1),
            date(2025, 3, 1),
        ]

    def test_without_competence_date(self, make_income):
        batch = expand_income_installments(make_income(), 2)
        assert all(i.competence_date is None for i in batch.records)

    def test_every_installment_pending(self, make_income):
        batch = expand_income_installments(make_income(status=IncomeStatus.RECEIVED), 2)
        assert all(i.status is IncomeStatus.PENDING for i in batch.records)

    def test_per_installment_mode(self, make_income):
        batch = expand_income_installments(
            make_income(amount=100.0), 3, InstallmentValueMode.PER_INSTALLMENT
        )
        assert sum(i.amount for i in batch.records) == pytest.approx(300.0)
