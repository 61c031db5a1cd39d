"""
LoanPortfolioSelector: dashboard aggregates computed from the loan table.
"""

from decimal import Decimal

from credit_modules.loans.models import LoanStatus
from credit_modules.loans.selectors import LoanPortfolioSelector


class TestPortfolioSummary:

    def test_empty_portfolio(self, session):
        summary = LoanPortfolioSelector(session).summary()
        assert summary.total_loans == 0
        assert summary.default_rate == Decimal("0")
        assert summary.repayment_rate == Decimal("0")
        assert summary.outstanding_balance == Decimal("0")

    def test_mixed_book(self, session, loan_manager, ledger, farmer, other_farmer):
        completed = loan_manager.create(farmer.id, "farmer", 100000, "5", purpose="Seeds")
        loan_manager.approve(completed.id, "cash", "Counter 1")
        ledger.record_payment(completed.id, 100000)

        active = loan_manager.create(farmer.id, "farmer", 200000, "10", purpose="Tools")
        loan_manager.approve(active.id, "mobile_money", "0772000001")
        ledger.record_payment(active.id, 50000)

        defaulted = loan_manager.create(other_farmer.id, "farmer", 100000, "5", purpose="Hoes")
        loan_manager.approve(defaulted.id, "cash", "Counter 2")
        loan_manager.mark_defaulted(defaulted.id)

        loan_manager.create(other_farmer.id, "farmer", 100000, "0", purpose="Pending")

        summary = LoanPortfolioSelector(session).summary()
        assert summary.total_loans == 4
        assert summary.active_loans == 1
        assert summary.completed_loans == 1
        assert summary.defaulted_loans == 1
        assert summary.pending_loans == 1
        assert summary.total_amount == Decimal("500000")
        assert summary.total_disbursed == Decimal("400000")
        assert summary.total_repaid == Decimal("150000")
        assert summary.outstanding_balance == Decimal("250000")
        assert summary.default_rate == Decimal("25.00")
        assert summary.repayment_rate == Decimal("37.50")
        assert summary.average_interest_rate == Decimal("5.00")

    def test_status_filter(self, session, loan_manager, active_loan, farmer):
        loan_manager.create(farmer.id, "farmer", 1000, purpose="Tools")
        summary = LoanPortfolioSelector(session).summary(status=LoanStatus.ACTIVE)
        assert summary.total_loans == 1
        assert summary.total_disbursed == Decimal("100000")
        assert summary.pending_loans == 0
