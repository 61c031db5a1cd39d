"""
Loan Workflows.

State machine for the loan lifecycle and the pure transition functions
``(current Loan, command) -> new Loan`` that the lifecycle manager and the
repayment ledger apply.  Nothing here touches the session.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date
from uuid import UUID

from credit_kernel.db.types import ZERO
from credit_kernel.domain.workflow import Guard, Transition, Workflow, require_transition
from credit_kernel.exceptions import InvalidStateError, ValidationError
from credit_kernel.logging_config import get_logger
from credit_modules.loans.calculations import derive_status
from credit_modules.loans.models import (
    ApproveLoan,
    CreateLoan,
    Loan,
    LoanStatus,
    RecordPayment,
)

logger = get_logger("modules.loans.workflows")

ENTITY_TYPE = "Loan"


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

ACCOUNT_DETAILS_PRESENT = Guard(
    name="account_details_present",
    description="Disbursement account details are recorded",
)

FULLY_REPAID = Guard(
    name="fully_repaid",
    description="Repaid amount covers the principal",
)

PENDING_PAYMENTS_ALLOWED = Guard(
    name="pending_payments_allowed",
    description="Configuration accepts payments before activation",
)


# -----------------------------------------------------------------------------
# Loan Workflow
# -----------------------------------------------------------------------------

LOAN_WORKFLOW = Workflow(
    name="loan",
    description="Loan lifecycle from request to closure",
    initial_state=LoanStatus.PENDING.value,
    states=tuple(s.value for s in LoanStatus),
    transitions=(
        Transition("pending", "active", action="approve", guard=ACCOUNT_DETAILS_PRESENT),
        Transition("pending", "denied", action="deny"),
        Transition("active", "active", action="record_payment"),
        Transition("active", "completed", action="record_payment", guard=FULLY_REPAID),
        Transition("pending", "active", action="record_payment", guard=PENDING_PAYMENTS_ALLOWED),
        Transition("pending", "completed", action="record_payment", guard=PENDING_PAYMENTS_ALLOWED),
        Transition("active", "defaulted", action="mark_defaulted"),
    ),
    terminal_states=("completed", "defaulted", "denied"),
)

logger.info(
    "loan_workflow_registered",
    extra={
        "workflow_name": LOAN_WORKFLOW.name,
        "state_count": len(LOAN_WORKFLOW.states),
        "transition_count": len(LOAN_WORKFLOW.transitions),
        "initial_state": LOAN_WORKFLOW.initial_state,
    },
)


# -----------------------------------------------------------------------------
# Command validation
# -----------------------------------------------------------------------------


def validate_create(command: CreateLoan) -> None:
    if command.amount <= 0:
        raise ValidationError("amount", "must be greater than zero")
    if command.interest_rate < 0:
        raise ValidationError("interest_rate", "cannot be negative")
    if not command.purpose or not command.purpose.strip():
        raise ValidationError("purpose", "is required")


def validate_payment(command: RecordPayment) -> None:
    if command.amount <= 0:
        raise ValidationError("amount", "payment amount must be greater than zero")


# -----------------------------------------------------------------------------
# Transitions
# -----------------------------------------------------------------------------


def new_loan(
    loan_id: UUID,
    loan_number: str,
    command: CreateLoan,
    request_date: date,
    due_date: date,
) -> Loan:
    """A freshly opened loan: pending, nothing repaid."""
    validate_create(command)
    return Loan(
        id=loan_id,
        loan_number=loan_number,
        borrower_id=command.borrower_id,
        borrower_type=command.borrower_type,
        amount=command.amount,
        interest_rate=command.interest_rate,
        purpose=command.purpose.strip(),
        request_date=request_date,
        due_date=due_date,
        status=LoanStatus.PENDING,
        repaid_amount=ZERO,
        credit_request_id=command.credit_request_id,
        notes=command.notes or "",
    )


def apply_approval(loan: Loan, command: ApproveLoan, approved_on: date, approved_by: str) -> Loan:
    """
    pending -> active.

    Blank account details are rejected before the state check so the
    caller learns about the missing input first.
    """
    if not command.account_details or not command.account_details.strip():
        raise ValidationError(
            "account_details", "account details are required", entity_id=str(loan.id)
        )
    require_transition(LOAN_WORKFLOW, ENTITY_TYPE, loan.id, loan.status.value, "approve")
    return replace(
        loan,
        status=LoanStatus.ACTIVE,
        approval_date=approved_on,
        start_date=approved_on,
        approved_by=approved_by,
        disbursement_method=command.disbursement_method,
        account_details=command.account_details.strip(),
        disbursement_notes=command.notes,
    )


def apply_denial(loan: Loan, reason: str) -> Loan:
    """pending -> denied."""
    if not reason or not reason.strip():
        raise ValidationError("reason", "a denial reason is required", entity_id=str(loan.id))
    require_transition(LOAN_WORKFLOW, ENTITY_TYPE, loan.id, loan.status.value, "deny")
    return replace(loan, status=LoanStatus.DENIED, denial_reason=reason.strip())


def apply_default(loan: Loan) -> Loan:
    """active -> defaulted (administrative)."""
    require_transition(LOAN_WORKFLOW, ENTITY_TYPE, loan.id, loan.status.value, "mark_defaulted")
    return replace(loan, status=LoanStatus.DEFAULTED)


def apply_payment(loan: Loan, command: RecordPayment, accept_pending: bool) -> Loan:
    """
    Add a repayment and re-derive status.

    Overpayment is accepted as-is; the loan simply completes.

    Raises:
        InvalidStateError: If the loan does not accept payments.
    """
    validate_payment(command)
    accepting = {LoanStatus.ACTIVE}
    if accept_pending:
        accepting.add(LoanStatus.PENDING)
    if loan.status not in accepting:
        raise InvalidStateError(
            entity_type=ENTITY_TYPE,
            entity_id=str(loan.id),
            current_state=loan.status.value,
            action="record_payment",
        )

    repaid = loan.repaid_amount + command.amount
    status = derive_status(repaid, loan.amount)
    require_transition(
        LOAN_WORKFLOW, ENTITY_TYPE, loan.id, loan.status.value, "record_payment", status.value
    )
    return replace(
        loan,
        repaid_amount=repaid,
        status=status,
        last_payment_date=command.payment_date,
        last_payment_amount=command.amount,
        payment_count=loan.payment_count + 1,
    )


def is_overpaid(loan: Loan) -> bool:
    return loan.repaid_amount > loan.amount
