"""
Concurrent writers on one entity.

Each test drives two sessions against a shared file database.  Session B
loads the entity first, session A then commits a change, and B's write is
made against the stale version it already holds.  The version column turns
that into a StaleDataError, which the unit of work retries on fresh state.

Validates:
- Two assessments of one pending request: exactly one wins
- A payment made against a stale loan is re-applied, not lost
- Conflicts exhaust into ConflictError when retries are disabled
- Losing attempts publish nothing
"""

import os
from dataclasses import replace
from decimal import Decimal

import pytest

from credit_kernel.db.engine import build_engine, create_tables, drop_tables
from credit_kernel.exceptions import ConflictError, InvalidTransitionError
from credit_kernel.services.change_feed import Collection
from credit_modules.credit.models import AssessmentOutcome, CreditRequestStatus
from credit_modules.credit.orm import CreditRequestModel
from credit_modules.credit.service import CreditRequestWorkflow
from credit_modules.loans.ledger import RepaymentLedger
from credit_modules.loans.models import LoanStatus
from credit_modules.loans.orm import LoanModel

pytestmark = pytest.mark.concurrency


@pytest.fixture
def engine(tmp_path):
    """Shared database that two connections can see."""
    url = os.environ.get("DATABASE_URL") or f"sqlite+pysqlite:///{tmp_path / 'credit.db'}"
    eng = build_engine(url)
    create_tables(eng)
    yield eng
    drop_tables(eng)
    eng.dispose()


@pytest.fixture
def session_b(session_factory):
    sess = session_factory()
    yield sess
    sess.rollback()
    sess.close()


def _workflow(session, config, clock, feed=None, actor="officer-b"):
    return CreditRequestWorkflow(
        session, config=config, clock=clock, change_feed=feed, actor_id=actor
    )


def _ledger(session, config, clock, feed=None):
    return RepaymentLedger(
        session, config=config, clock=clock, change_feed=feed, actor_id="cashier-b"
    )


class TestConcurrentAssessment:

    def test_exactly_one_assessment_wins(
        self, credit_workflow, session_b, config, deterministic_clock, change_feed, farmer
    ):
        request = credit_workflow.submit(farmer.id, Decimal("500000"), "Farm Inputs")
        session_b.get(CreditRequestModel, request.id)

        credit_workflow.assess(
            request.id, AssessmentOutcome.APPROVED,
            approved_amount=Decimal("450000"), interest_rate=Decimal("5"),
        )

        seen = []
        change_feed.subscribe(Collection.CREDIT_REQUESTS, seen.append)
        rival = _workflow(session_b, config, deterministic_clock, change_feed)
        with pytest.raises(InvalidTransitionError) as exc_info:
            rival.assess(request.id, AssessmentOutcome.REJECTED, notes="Too large")

        assert exc_info.value.current_state == "approved"
        final = credit_workflow.get(request.id)
        assert final.status is CreditRequestStatus.APPROVED
        assert final.decision.decision_by == "officer-test"
        assert seen == []

    def test_conflict_logged_before_retry(
        self, credit_workflow, session_b, config, deterministic_clock, farmer, captured_logs
    ):
        request = credit_workflow.submit(farmer.id, Decimal("1000"), "Tools")
        session_b.get(CreditRequestModel, request.id)
        credit_workflow.assess(request.id, AssessmentOutcome.REJECTED)

        with pytest.raises(InvalidTransitionError):
            _workflow(session_b, config, deterministic_clock).assess(
                request.id, AssessmentOutcome.REJECTED
            )

        conflicts = [
            r for r in captured_logs() if r["message"] == "optimistic_conflict_detected"
        ]
        assert len(conflicts) == 1
        assert conflicts[0]["attempt"] == 1
        assert conflicts[0]["operation"] == "assess_credit_request"
        assert conflicts[0]["entity_id"] == str(request.id)
        assert conflicts[0]["farmer_id"] == str(farmer.id)


class TestConcurrentPayments:

    def test_stale_payment_is_reapplied(
        self, ledger, loan_manager, session, session_b, config, deterministic_clock, active_loan
    ):
        session_b.get(LoanModel, active_loan.id)
        ledger.record_payment(active_loan.id, Decimal("60000"))

        payment, loan = _ledger(session_b, config, deterministic_clock).record_payment(
            active_loan.id, Decimal("40000")
        )

        assert payment.line_number == 2
        assert loan.repaid_amount == Decimal("100000")
        assert loan.status is LoanStatus.COMPLETED

        session.expire_all()
        payments = ledger.payments(active_loan.id)
        assert [p.amount for p in payments] == [Decimal("60000"), Decimal("40000")]
        assert sum(p.amount for p in payments) == loan_manager.get(active_loan.id).repaid_amount

    def test_conflict_error_when_retries_exhausted(
        self, ledger, session_b, config, deterministic_clock, active_loan, captured_logs
    ):
        session_b.get(LoanModel, active_loan.id)
        ledger.record_payment(active_loan.id, Decimal("60000"))

        single_attempt = replace(config, conflict_max_attempts=1)
        with pytest.raises(ConflictError) as exc_info:
            _ledger(session_b, single_attempt, deterministic_clock).record_payment(
                active_loan.id, Decimal("40000")
            )

        assert exc_info.value.attempts == 1
        assert exc_info.value.retryable
        assert [p.line_number for p in ledger.payments(active_loan.id)] == [1]
        conflict = next(
            r for r in captured_logs() if r["message"] == "optimistic_conflict_detected"
        )
        assert conflict["loan_number"] == active_loan.loan_number
        assert conflict["actor_id"] == "cashier-b"
