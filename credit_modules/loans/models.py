"""
Loan Domain Models.

The nouns of lending: loans, repayments, and the statement and portfolio
views derived from them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from credit_kernel.logging_config import get_logger

logger = get_logger("modules.loans.models")


class LoanStatus(str, Enum):
    """Loan lifecycle states."""
    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"
    DEFAULTED = "defaulted"
    DENIED = "denied"


class BorrowerType(str, Enum):
    FARMER = "farmer"
    ORGANIZATION = "organization"


class DisbursementMethod(str, Enum):
    """How approved funds reach the borrower."""
    BANK_TRANSFER = "bank_transfer"
    MOBILE_MONEY = "mobile_money"
    CASH = "cash"
    CHEQUE = "cheque"


class PaymentMethod(str, Enum):
    """How a repayment was received."""
    CASH = "cash"
    MOBILE_MONEY = "mobile_money"
    BANK_TRANSFER = "bank_transfer"
    CHEQUE = "cheque"
    HARVEST_DEDUCTION = "harvest_deduction"


@dataclass(frozen=True)
class Loan:
    """A loan to a farmer or organization."""
    id: UUID
    loan_number: str
    borrower_id: UUID
    borrower_type: BorrowerType
    amount: Decimal
    interest_rate: Decimal
    purpose: str
    request_date: date
    due_date: date
    status: LoanStatus = LoanStatus.PENDING
    repaid_amount: Decimal = Decimal("0")
    approval_date: date | None = None
    start_date: date | None = None
    approved_by: str | None = None
    disbursement_method: DisbursementMethod | None = None
    account_details: str | None = None
    disbursement_notes: str | None = None
    last_payment_date: date | None = None
    last_payment_amount: Decimal | None = None
    payment_count: int = 0
    credit_request_id: UUID | None = None
    notes: str = ""
    denial_reason: str | None = None
    version: int = 0

    def __post_init__(self):
        if self.repaid_amount < 0:
            raise ValueError(
                f"repaid_amount ({self.repaid_amount}) cannot be negative"
            )


@dataclass(frozen=True)
class Payment:
    """An immutable repayment entry in a loan's ledger."""
    id: UUID
    loan_id: UUID
    line_number: int
    amount: Decimal
    payment_date: date
    method: PaymentMethod
    note: str = ""
    recorded_by: str = "system"
    recorded_at: datetime | None = None


# -----------------------------------------------------------------------------
# Commands
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class CreateLoan:
    """Parameters for opening a loan."""
    borrower_id: UUID
    borrower_type: BorrowerType
    amount: Decimal
    interest_rate: Decimal
    purpose: str
    due_date: date | None = None
    notes: str = ""
    credit_request_id: UUID | None = None


@dataclass(frozen=True)
class ApproveLoan:
    """Parameters for activating a pending loan."""
    disbursement_method: DisbursementMethod
    account_details: str
    notes: str | None = None


@dataclass(frozen=True)
class RecordPayment:
    """Parameters for a repayment."""
    amount: Decimal
    payment_date: date
    method: PaymentMethod
    note: str = ""


# -----------------------------------------------------------------------------
# Derived views
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class StatementLine:
    """One payment with the balance remaining after it."""
    payment: Payment
    cumulative_repaid: Decimal
    balance_after: Decimal


@dataclass(frozen=True)
class RepaymentStatement:
    """A loan's repayment history with running balances."""
    loan: Loan
    lines: tuple[StatementLine, ...] = field(default_factory=tuple)
    total_paid: Decimal = Decimal("0")
    outstanding_balance: Decimal = Decimal("0")
    progress_percent: Decimal = Decimal("0")

    @property
    def reconciles(self) -> bool:
        """True when the ledger sum equals the loan's repaid amount."""
        return self.total_paid == self.loan.repaid_amount


@dataclass(frozen=True)
class PortfolioSummary:
    """Aggregate figures over a set of loans."""
    total_loans: int = 0
    active_loans: int = 0
    completed_loans: int = 0
    defaulted_loans: int = 0
    pending_loans: int = 0
    total_amount: Decimal = Decimal("0")
    total_disbursed: Decimal = Decimal("0")
    total_repaid: Decimal = Decimal("0")
    outstanding_balance: Decimal = Decimal("0")
    average_interest_rate: Decimal = Decimal("0")
    default_rate: Decimal = Decimal("0")
    repayment_rate: Decimal = Decimal("0")
