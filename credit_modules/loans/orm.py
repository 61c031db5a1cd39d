"""
SQLAlchemy ORM persistence models for the Loans module.

Responsibility
--------------
Database-backed persistence for loans and their repayment ledger.

Invariants enforced
-------------------
* All monetary fields use ``Decimal`` (Numeric(38,9)) -- NEVER float.
* Enum fields stored as String(30) for readability and portability.
* ``LoanModel.version`` is the optimistic concurrency token: every UPDATE
  is conditional on the version that was read.
* ``PaymentModel`` is append-only (``__immutable__``); the kernel's
  immutability listeners reject UPDATE and DELETE.
* ``(loan_id, line_number)`` is unique, so two writers cannot both append
  the same ledger position.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from credit_kernel.db.base import TrackedBase
from credit_modules.loans.models import (
    BorrowerType,
    DisbursementMethod,
    Loan,
    LoanStatus,
    Payment,
    PaymentMethod,
)

# ---------------------------------------------------------------------------
# LoanModel
# ---------------------------------------------------------------------------


class LoanModel(TrackedBase):
    """
    A loan to a farmer or organization.

    Maps to the ``Loan`` DTO in ``credit_modules.loans.models``.

    Guarantees:
        - ``loan_number`` is unique.
        - ``borrower_id`` has no FK: it references a farmer or an
          organization depending on ``borrower_type``.
    """

    __tablename__ = "loans"

    __table_args__ = (
        UniqueConstraint("loan_number", name="uq_loan_number"),
        Index("idx_loan_borrower", "borrower_id"),
        Index("idx_loan_status", "status"),
        Index("idx_loan_credit_request", "credit_request_id"),
    )

    loan_number: Mapped[str] = mapped_column(String(50), nullable=False)
    borrower_id: Mapped[UUID] = mapped_column(nullable=False)
    borrower_type: Mapped[str] = mapped_column(String(30), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    interest_rate: Mapped[Decimal] = mapped_column(nullable=False)
    purpose: Mapped[str] = mapped_column(String(500), nullable=False)
    request_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="pending")
    repaid_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    # Approval / disbursement
    approval_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    approved_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    disbursement_method: Mapped[str | None] = mapped_column(String(30), nullable=True)
    account_details: Mapped[str | None] = mapped_column(String(255), nullable=True)
    disbursement_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Repayment tracking
    last_payment_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    last_payment_amount: Mapped[Decimal | None] = mapped_column(nullable=True)
    payment_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    credit_request_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("credit_requests.id"),
        nullable=True,
    )
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    denial_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def to_dto(self) -> Loan:
        return Loan(
            id=self.id,
            loan_number=self.loan_number,
            borrower_id=self.borrower_id,
            borrower_type=BorrowerType(self.borrower_type),
            amount=self.amount,
            interest_rate=self.interest_rate,
            purpose=self.purpose,
            request_date=self.request_date,
            due_date=self.due_date,
            status=LoanStatus(self.status),
            repaid_amount=self.repaid_amount,
            approval_date=self.approval_date,
            start_date=self.start_date,
            approved_by=self.approved_by,
            disbursement_method=(
                DisbursementMethod(self.disbursement_method)
                if self.disbursement_method else None
            ),
            account_details=self.account_details,
            disbursement_notes=self.disbursement_notes,
            last_payment_date=self.last_payment_date,
            last_payment_amount=self.last_payment_amount,
            payment_count=self.payment_count,
            credit_request_id=self.credit_request_id,
            notes=self.notes,
            denial_reason=self.denial_reason,
            version=self.version,
        )

    @classmethod
    def from_dto(cls, dto: Loan, created_by: str) -> "LoanModel":
        model = cls(
            id=dto.id,
            loan_number=dto.loan_number,
            borrower_id=dto.borrower_id,
            borrower_type=dto.borrower_type.value,
            amount=dto.amount,
            interest_rate=dto.interest_rate,
            purpose=dto.purpose,
            request_date=dto.request_date,
            due_date=dto.due_date,
            credit_request_id=dto.credit_request_id,
            created_by=created_by,
        )
        model.update_from_dto(dto, updated_by=None)
        return model

    def update_from_dto(self, dto: Loan, updated_by: str | None) -> None:
        """Copy the mutable lifecycle fields of ``dto`` onto this row."""
        self.status = dto.status.value
        self.repaid_amount = dto.repaid_amount
        self.approval_date = dto.approval_date
        self.start_date = dto.start_date
        self.approved_by = dto.approved_by
        self.disbursement_method = (
            dto.disbursement_method.value if dto.disbursement_method else None
        )
        self.account_details = dto.account_details
        self.disbursement_notes = dto.disbursement_notes
        self.last_payment_date = dto.last_payment_date
        self.last_payment_amount = dto.last_payment_amount
        self.payment_count = dto.payment_count
        self.notes = dto.notes
        self.denial_reason = dto.denial_reason
        if updated_by is not None:
            self.updated_by = updated_by

    def __repr__(self) -> str:
        return f"<LoanModel {self.loan_number} [{self.status}]>"


# ---------------------------------------------------------------------------
# PaymentModel
# ---------------------------------------------------------------------------


class PaymentModel(TrackedBase):
    """
    A repayment against a loan.  Append-only.

    Maps to the ``Payment`` DTO in ``credit_modules.loans.models``.
    """

    __tablename__ = "payments"
    __immutable__ = True

    __table_args__ = (
        UniqueConstraint("loan_id", "line_number", name="uq_payment_loan_line"),
        Index("idx_payment_loan", "loan_id"),
        Index("idx_payment_date", "payment_date"),
    )

    loan_id: Mapped[UUID] = mapped_column(ForeignKey("loans.id"), nullable=False)
    line_number: Mapped[int] = mapped_column(Integer, nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    payment_date: Mapped[date] = mapped_column(Date, nullable=False)
    method: Mapped[str] = mapped_column(String(30), nullable=False)
    note: Mapped[str] = mapped_column(Text, nullable=False, default="")
    recorded_by: Mapped[str] = mapped_column(String(100), nullable=False)
    recorded_at: Mapped[datetime] = mapped_column(nullable=False)

    def to_dto(self) -> Payment:
        return Payment(
            id=self.id,
            loan_id=self.loan_id,
            line_number=self.line_number,
            amount=self.amount,
            payment_date=self.payment_date,
            method=PaymentMethod(self.method),
            note=self.note,
            recorded_by=self.recorded_by,
            recorded_at=self.recorded_at,
        )

    def __repr__(self) -> str:
        return f"<PaymentModel loan={self.loan_id} #{self.line_number} {self.amount}>"
