"""
Credit Request Domain Models.

The nouns of credit assessment: a farmer's request, the itemized inputs it
finances, the assessment decision, and the disbursement record that links
it to the loan it became.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from credit_modules.loans.models import DisbursementMethod


class CreditRequestStatus(str, Enum):
    """Credit request lifecycle states."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    DISBURSED = "disbursed"


class AssessmentOutcome(str, Enum):
    APPROVED = "approved"
    REJECTED = "rejected"


@dataclass(frozen=True)
class CreditInput:
    """A farm input the requested credit will pay for."""
    input_type: str
    quantity: Decimal
    unit: str = "unit"
    estimated_cost: Decimal = Decimal("0")


@dataclass(frozen=True)
class CreditDecision:
    """The recorded outcome of an assessment."""
    decision: AssessmentOutcome
    decision_date: date
    decision_by: str
    approved_amount: Decimal | None = None
    interest_rate: Decimal | None = None
    notes: str = ""


@dataclass(frozen=True)
class DisbursementRecord:
    """How and when approved funds were released, and the loan created."""
    disbursement_date: date
    method: DisbursementMethod
    loan_id: UUID
    reference: str | None = None
    notes: str = ""


@dataclass(frozen=True)
class CreditRequest:
    """A farmer's application for financing."""
    id: UUID
    farmer_id: UUID
    amount_requested: Decimal
    purpose: str
    request_date: date
    status: CreditRequestStatus = CreditRequestStatus.PENDING
    inputs: tuple[CreditInput, ...] = field(default_factory=tuple)
    decision: CreditDecision | None = None
    disbursement: DisbursementRecord | None = None
    version: int = 0

    @property
    def inputs_estimated_total(self) -> Decimal:
        return sum((i.estimated_cost for i in self.inputs), Decimal("0"))


# -----------------------------------------------------------------------------
# Commands
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class SubmitCreditRequest:
    farmer_id: UUID
    amount_requested: Decimal
    purpose: str
    inputs: tuple[CreditInput, ...] = ()


@dataclass(frozen=True)
class AssessCreditRequest:
    """
    An assessment decision.

    ``approved_amount`` and ``interest_rate`` are required when approving
    and ignored when rejecting.
    """
    outcome: AssessmentOutcome
    approved_amount: Decimal | None = None
    interest_rate: Decimal | None = None
    notes: str = ""


@dataclass(frozen=True)
class DisbursementDetails:
    """Details captured when releasing funds for an approved request."""
    method: DisbursementMethod
    disbursement_date: date | None = None
    reference: str | None = None
    notes: str = ""
