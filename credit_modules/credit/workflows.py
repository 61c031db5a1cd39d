"""
Credit Request Workflows.

State machine for credit requests and the pure transitions applied by
``CreditRequestWorkflow``.  No path returns to ``pending``.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date
from decimal import Decimal
from uuid import UUID

from credit_kernel.domain.workflow import Guard, Transition, Workflow, require_transition
from credit_kernel.exceptions import ValidationError
from credit_kernel.logging_config import get_logger
from credit_modules.credit.models import (
    AssessCreditRequest,
    AssessmentOutcome,
    CreditDecision,
    CreditRequest,
    CreditRequestStatus,
    DisbursementDetails,
    DisbursementRecord,
    SubmitCreditRequest,
)

logger = get_logger("modules.credit.workflows")

ENTITY_TYPE = "CreditRequest"


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

DECISION_TERMS_SET = Guard(
    name="decision_terms_set",
    description="Approved amount and interest rate are recorded",
)

LOAN_CREATED = Guard(
    name="loan_created",
    description="The loan was created in the same transaction",
)


# -----------------------------------------------------------------------------
# Credit Request Workflow
# -----------------------------------------------------------------------------

CREDIT_REQUEST_WORKFLOW = Workflow(
    name="credit_request",
    description="Credit request from submission to disbursement",
    initial_state=CreditRequestStatus.PENDING.value,
    states=tuple(s.value for s in CreditRequestStatus),
    transitions=(
        Transition("pending", "approved", action="assess", guard=DECISION_TERMS_SET),
        Transition("pending", "rejected", action="assess"),
        Transition("approved", "disbursed", action="disburse", guard=LOAN_CREATED),
    ),
    terminal_states=("rejected", "disbursed"),
)

logger.info(
    "credit_request_workflow_registered",
    extra={
        "workflow_name": CREDIT_REQUEST_WORKFLOW.name,
        "state_count": len(CREDIT_REQUEST_WORKFLOW.states),
        "transition_count": len(CREDIT_REQUEST_WORKFLOW.transitions),
        "initial_state": CREDIT_REQUEST_WORKFLOW.initial_state,
    },
)


# -----------------------------------------------------------------------------
# Command validation
# -----------------------------------------------------------------------------


def validate_submission(command: SubmitCreditRequest) -> None:
    if command.amount_requested <= 0:
        raise ValidationError("amount_requested", "must be greater than zero")
    if not command.purpose or not command.purpose.strip():
        raise ValidationError("purpose", "is required")
    for index, item in enumerate(command.inputs):
        if not item.input_type or not item.input_type.strip():
            raise ValidationError(f"inputs[{index}].input_type", "is required")
        if item.quantity <= 0:
            raise ValidationError(f"inputs[{index}].quantity", "must be greater than zero")
        if item.estimated_cost < 0:
            raise ValidationError(f"inputs[{index}].estimated_cost", "cannot be negative")


def validate_assessment(command: AssessCreditRequest, request_id: UUID) -> None:
    if command.outcome is not AssessmentOutcome.APPROVED:
        return
    if command.approved_amount is None:
        raise ValidationError(
            "approved_amount", "is required when approving", entity_id=str(request_id)
        )
    if command.approved_amount <= 0:
        raise ValidationError(
            "approved_amount", "must be greater than zero", entity_id=str(request_id)
        )
    if command.interest_rate is None:
        raise ValidationError(
            "interest_rate", "is required when approving", entity_id=str(request_id)
        )
    if command.interest_rate < 0:
        raise ValidationError(
            "interest_rate", "cannot be negative", entity_id=str(request_id)
        )


# -----------------------------------------------------------------------------
# Transitions
# -----------------------------------------------------------------------------


def new_credit_request(
    request_id: UUID, command: SubmitCreditRequest, request_date: date
) -> CreditRequest:
    validate_submission(command)
    return CreditRequest(
        id=request_id,
        farmer_id=command.farmer_id,
        amount_requested=command.amount_requested,
        purpose=command.purpose.strip(),
        request_date=request_date,
        status=CreditRequestStatus.PENDING,
        inputs=tuple(command.inputs),
    )


def apply_assessment(
    request: CreditRequest,
    command: AssessCreditRequest,
    decided_on: date,
    decided_by: str,
) -> CreditRequest:
    """
    pending -> approved | rejected.

    On rejection the approved amount and rate are not recorded even when
    supplied.
    """
    target = CreditRequestStatus(command.outcome.value)
    require_transition(
        CREDIT_REQUEST_WORKFLOW, ENTITY_TYPE, request.id,
        request.status.value, "assess", target.value,
    )
    validate_assessment(command, request.id)
    approving = command.outcome is AssessmentOutcome.APPROVED
    decision = CreditDecision(
        decision=command.outcome,
        decision_date=decided_on,
        decision_by=decided_by,
        approved_amount=command.approved_amount if approving else None,
        interest_rate=command.interest_rate if approving else None,
        notes=command.notes or "",
    )
    return replace(request, status=target, decision=decision)


def loan_terms(request: CreditRequest, default_interest_rate: Decimal) -> tuple[Decimal, Decimal]:
    """Principal and rate for the loan a disbursement creates."""
    decision = request.decision
    amount = request.amount_requested
    rate = default_interest_rate
    if decision is not None:
        if decision.approved_amount is not None:
            amount = decision.approved_amount
        if decision.interest_rate is not None:
            rate = decision.interest_rate
    return amount, rate


def check_disbursable(request: CreditRequest) -> None:
    require_transition(
        CREDIT_REQUEST_WORKFLOW, ENTITY_TYPE, request.id, request.status.value, "disburse"
    )


def apply_disbursement(
    request: CreditRequest,
    details: DisbursementDetails,
    loan_id: UUID,
    disbursed_on: date,
) -> CreditRequest:
    """approved -> disbursed, recording the new loan."""
    check_disbursable(request)
    record = DisbursementRecord(
        disbursement_date=disbursed_on,
        method=details.method,
        loan_id=loan_id,
        reference=details.reference,
        notes=details.notes or "",
    )
    return replace(request, status=CreditRequestStatus.DISBURSED, disbursement=record)
