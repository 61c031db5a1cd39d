"""
Tests for LoanLifecycleManager.

Validates:
- Loan creation defaults (rate, due date, number)
- Borrower resolution for farmers and organizations
- approve / deny / mark_defaulted transitions and their failures
- Queries by id, number, status and borrower
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from credit_kernel.exceptions import InvalidTransitionError, NotFoundError, ValidationError
from credit_modules.loans.models import BorrowerType, DisbursementMethod, LoanStatus


class TestCreate:

    def test_defaults(self, loan_manager, farmer):
        loan = loan_manager.create(farmer.id, "farmer", Decimal("100000"), purpose="Fertilizer")
        assert loan.status is LoanStatus.PENDING
        assert loan.repaid_amount == Decimal("0")
        assert loan.interest_rate == Decimal("5")
        assert loan.request_date == date(2024, 1, 15)
        assert loan.due_date == date(2024, 7, 15)
        assert loan.loan_number == "LOAN-000001"

    def test_amount_and_rate_quantized(self, loan_manager, farmer, session):
        loan = loan_manager.create(farmer.id, "farmer", "250000.125", "7.123456", purpose="Tools")
        session.expire_all()
        stored = loan_manager.get(loan.id)
        assert stored.amount == loan.amount == Decimal("250000.13")
        assert stored.interest_rate == loan.interest_rate == Decimal("7.1235")

    def test_sub_cent_amount_refused(self, loan_manager, farmer):
        with pytest.raises(ValidationError) as exc_info:
            loan_manager.create(farmer.id, "farmer", Decimal("0.0000000001"), purpose="Tools")
        assert exc_info.value.field == "amount"
        assert loan_manager.list() == []

    def test_numbers_increase(self, loan_manager, farmer):
        first = loan_manager.create(farmer.id, "farmer", 1000, purpose="Tools")
        second = loan_manager.create(farmer.id, "farmer", 2000, purpose="Seeds")
        assert (first.loan_number, second.loan_number) == ("LOAN-000001", "LOAN-000002")

    def test_organization_borrower(self, loan_manager, organization):
        loan = loan_manager.create(
            organization.id,
            BorrowerType.ORGANIZATION,
            Decimal("2000000"),
            interest_rate="7.5",
            purpose="Washing station",
            due_date=date(2025, 1, 15),
        )
        assert loan.borrower_type is BorrowerType.ORGANIZATION
        assert loan.interest_rate == Decimal("7.5")
        assert loan.due_date == date(2025, 1, 15)

    def test_borrower_type_must_match(self, loan_manager, organization):
        with pytest.raises(ValidationError) as exc_info:
            loan_manager.create(organization.id, "farmer", 1000, purpose="Tools")
        assert exc_info.value.field == "borrower_id"

    def test_unknown_borrower_type(self, loan_manager, farmer):
        with pytest.raises(ValidationError):
            loan_manager.create(farmer.id, "cooperative_member", 1000, purpose="Tools")

    def test_due_date_before_request(self, loan_manager, farmer):
        with pytest.raises(ValidationError) as exc_info:
            loan_manager.create(
                farmer.id, "farmer", 1000, purpose="Tools", due_date=date(2023, 12, 1)
            )
        assert exc_info.value.field == "due_date"

    def test_failed_create_consumes_no_number(self, loan_manager, farmer):
        with pytest.raises(ValidationError):
            loan_manager.create(farmer.id, "farmer", 0, purpose="Tools")
        loan = loan_manager.create(farmer.id, "farmer", 1000, purpose="Tools")
        assert loan.loan_number == "LOAN-000001"


class TestApprove:

    def test_activates(self, loan_manager, farmer):
        loan = loan_manager.create(farmer.id, "farmer", 1000, purpose="Tools")
        approved = loan_manager.approve(loan.id, DisbursementMethod.BANK_TRANSFER, "ACC-123")
        assert approved.status is LoanStatus.ACTIVE
        assert approved.approval_date == date(2024, 1, 15)
        assert approved.approved_by == "officer-test"
        assert approved.version == loan.version + 1

    def test_blank_account_details_leave_loan_pending(self, loan_manager, farmer):
        loan = loan_manager.create(farmer.id, "farmer", 1000, purpose="Tools")
        with pytest.raises(ValidationError) as exc_info:
            loan_manager.approve(loan.id, "cash", "")
        assert exc_info.value.field == "account_details"
        assert loan_manager.get(loan.id).status is LoanStatus.PENDING

    def test_already_active(self, loan_manager, active_loan):
        with pytest.raises(InvalidTransitionError):
            loan_manager.approve(active_loan.id, "cash", "Counter 1")

    def test_unknown_method(self, loan_manager, farmer):
        loan = loan_manager.create(farmer.id, "farmer", 1000, purpose="Tools")
        with pytest.raises(ValidationError):
            loan_manager.approve(loan.id, "goats", "Counter 1")

    def test_missing_loan(self, loan_manager):
        with pytest.raises(NotFoundError):
            loan_manager.approve(uuid4(), "cash", "Counter 1")


class TestDenyAndDefault:

    def test_deny(self, loan_manager, farmer):
        loan = loan_manager.create(farmer.id, "farmer", 1000, purpose="Tools")
        denied = loan_manager.deny(loan.id, "No collateral")
        assert denied.status is LoanStatus.DENIED
        assert denied.denial_reason == "No collateral"

    def test_denied_is_terminal(self, loan_manager, farmer):
        loan = loan_manager.create(farmer.id, "farmer", 1000, purpose="Tools")
        loan_manager.deny(loan.id, "No collateral")
        with pytest.raises(InvalidTransitionError):
            loan_manager.approve(loan.id, "cash", "Counter 1")

    def test_mark_defaulted(self, loan_manager, active_loan, captured_logs):
        defaulted = loan_manager.mark_defaulted(active_loan.id)
        assert defaulted.status is LoanStatus.DEFAULTED
        warnings = [r for r in captured_logs() if r["message"] == "loan_marked_defaulted"]
        assert warnings[0]["level"] == "WARNING"
        assert Decimal(warnings[0]["outstanding"]) == Decimal("100000")

    def test_pending_cannot_default(self, loan_manager, farmer):
        loan = loan_manager.create(farmer.id, "farmer", 1000, purpose="Tools")
        with pytest.raises(InvalidTransitionError):
            loan_manager.mark_defaulted(loan.id)


class TestQueries:

    def test_get_by_number(self, loan_manager, active_loan):
        assert loan_manager.get_by_number(active_loan.loan_number).id == active_loan.id

    def test_get_by_unknown_number(self, loan_manager):
        with pytest.raises(NotFoundError):
            loan_manager.get_by_number("LOAN-999999")

    def test_list_filters(self, loan_manager, farmer, other_farmer, active_loan):
        pending = loan_manager.create(other_farmer.id, "farmer", 500, purpose="Seeds")
        assert [l.id for l in loan_manager.list(status="pending")] == [pending.id]
        assert [l.id for l in loan_manager.list(borrower_id=farmer.id)] == [active_loan.id]
        assert {l.id for l in loan_manager.list()} == {pending.id, active_loan.id}
