"""
SQLAlchemy ORM persistence models for the Credit module.

Invariants enforced
-------------------
* All monetary fields use ``Decimal`` (Numeric(38,9)) -- NEVER float.
* ``CreditRequestModel.version`` is the optimistic concurrency token.
* Decision and disbursement sub-records are flattened onto the request row;
  the itemized inputs live in ``credit_request_inputs``.
* ``loan_id`` carries no FK (the loans table references requests instead).
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from credit_kernel.db.base import TrackedBase
from credit_modules.credit.models import (
    AssessmentOutcome,
    CreditDecision,
    CreditInput,
    CreditRequest,
    CreditRequestStatus,
    DisbursementRecord,
)
from credit_modules.loans.models import DisbursementMethod

# ---------------------------------------------------------------------------
# CreditRequestModel
# ---------------------------------------------------------------------------


class CreditRequestModel(TrackedBase):
    """
    A farmer's credit request.

    Maps to the ``CreditRequest`` DTO in ``credit_modules.credit.models``.
    """

    __tablename__ = "credit_requests"

    __table_args__ = (
        Index("idx_credit_request_farmer", "farmer_id"),
        Index("idx_credit_request_status", "status"),
        Index("idx_credit_request_date", "request_date"),
    )

    farmer_id: Mapped[UUID] = mapped_column(ForeignKey("farmers.id"), nullable=False)
    amount_requested: Mapped[Decimal] = mapped_column(nullable=False)
    purpose: Mapped[str] = mapped_column(String(500), nullable=False)
    request_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="pending")

    # Decision
    decision: Mapped[str | None] = mapped_column(String(30), nullable=True)
    decision_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    decision_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    approved_amount: Mapped[Decimal | None] = mapped_column(nullable=True)
    interest_rate: Mapped[Decimal | None] = mapped_column(nullable=True)
    decision_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Disbursement
    disbursement_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    disbursement_method: Mapped[str | None] = mapped_column(String(30), nullable=True)
    disbursement_reference: Mapped[str | None] = mapped_column(String(100), nullable=True)
    disbursement_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    loan_id: Mapped[UUID | None] = mapped_column(nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    inputs: Mapped[list["CreditRequestInputModel"]] = relationship(
        "CreditRequestInputModel",
        back_populates="credit_request",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="CreditRequestInputModel.line_number",
    )

    __mapper_args__ = {"version_id_col": version}

    def to_dto(self) -> CreditRequest:
        decision = None
        if self.decision is not None:
            decision = CreditDecision(
                decision=AssessmentOutcome(self.decision),
                decision_date=self.decision_date,
                decision_by=self.decision_by,
                approved_amount=self.approved_amount,
                interest_rate=self.interest_rate,
                notes=self.decision_notes or "",
            )
        disbursement = None
        if self.disbursement_date is not None:
            disbursement = DisbursementRecord(
                disbursement_date=self.disbursement_date,
                method=DisbursementMethod(self.disbursement_method),
                loan_id=self.loan_id,
                reference=self.disbursement_reference,
                notes=self.disbursement_notes or "",
            )
        return CreditRequest(
            id=self.id,
            farmer_id=self.farmer_id,
            amount_requested=self.amount_requested,
            purpose=self.purpose,
            request_date=self.request_date,
            status=CreditRequestStatus(self.status),
            inputs=tuple(i.to_dto() for i in self.inputs),
            decision=decision,
            disbursement=disbursement,
            version=self.version,
        )

    @classmethod
    def from_dto(cls, dto: CreditRequest, created_by: str) -> "CreditRequestModel":
        model = cls(
            id=dto.id,
            farmer_id=dto.farmer_id,
            amount_requested=dto.amount_requested,
            purpose=dto.purpose,
            request_date=dto.request_date,
            created_by=created_by,
            inputs=[
                CreditRequestInputModel(
                    line_number=index + 1,
                    input_type=item.input_type,
                    quantity=item.quantity,
                    unit=item.unit,
                    estimated_cost=item.estimated_cost,
                    created_by=created_by,
                )
                for index, item in enumerate(dto.inputs)
            ],
        )
        model.update_from_dto(dto, updated_by=None)
        return model

    def update_from_dto(self, dto: CreditRequest, updated_by: str | None) -> None:
        """Copy status, decision and disbursement from ``dto``; inputs are fixed."""
        self.status = dto.status.value
        decision = dto.decision
        self.decision = decision.decision.value if decision else None
        self.decision_date = decision.decision_date if decision else None
        self.decision_by = decision.decision_by if decision else None
        self.approved_amount = decision.approved_amount if decision else None
        self.interest_rate = decision.interest_rate if decision else None
        self.decision_notes = decision.notes if decision else None
        disbursement = dto.disbursement
        self.disbursement_date = disbursement.disbursement_date if disbursement else None
        self.disbursement_method = disbursement.method.value if disbursement else None
        self.disbursement_reference = disbursement.reference if disbursement else None
        self.disbursement_notes = disbursement.notes if disbursement else None
        self.loan_id = disbursement.loan_id if disbursement else None
        if updated_by is not None:
            self.updated_by = updated_by

    def __repr__(self) -> str:
        return f"<CreditRequestModel {self.id} [{self.status}]>"


# ---------------------------------------------------------------------------
# CreditRequestInputModel
# ---------------------------------------------------------------------------


class CreditRequestInputModel(TrackedBase):
    """An itemized input on a credit request."""

    __tablename__ = "credit_request_inputs"

    __table_args__ = (
        Index("idx_credit_input_request", "credit_request_id"),
    )

    credit_request_id: Mapped[UUID] = mapped_column(
        ForeignKey("credit_requests.id"), nullable=False
    )
    line_number: Mapped[int] = mapped_column(Integer, nullable=False)
    input_type: Mapped[str] = mapped_column(String(100), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(nullable=False)
    unit: Mapped[str] = mapped_column(String(30), nullable=False, default="unit")
    estimated_cost: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    credit_request: Mapped[CreditRequestModel] = relationship(
        "CreditRequestModel", back_populates="inputs"
    )

    def to_dto(self) -> CreditInput:
        return CreditInput(
            input_type=self.input_type,
            quantity=self.quantity,
            unit=self.unit,
            estimated_cost=self.estimated_cost,
        )
