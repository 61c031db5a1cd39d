"""
Loan Lifecycle Service (``credit_modules.loans.service``).

Responsibility
--------------
Opens loans, activates them on approval, denies or defaults them by
administrative action, and answers loan queries.  Repayments and the
status they derive live in ``RepaymentLedger``.

Architecture position
---------------------
**Modules layer** -- ``LoanLifecycleManager`` is the public entry point for
loan state changes other than payments.  It applies the pure transitions in
``credit_modules.loans.workflows`` and persists through
``EntityRepository``.

Invariants enforced
-------------------
* Each public method owns the transaction boundary (commit on success,
  rollback on failure) unless constructed with ``auto_commit=False``, in
  which case it joins the caller's transaction (used by disbursement).
* Validation and state checks run before any write.
* Loan numbers come from the locked ``loan_number`` sequence.

Failure modes
-------------
* ``ValidationError`` -- bad amount/rate/purpose, unresolvable borrower,
  blank account details.
* ``InvalidTransitionError`` -- action illegal in the loan's state.
* ``NotFoundError`` -- unknown loan id or number.
* ``ConflictError`` / ``TransientError`` -- see ``_unit_of_work``.

Usage::

    manager = LoanLifecycleManager(session, config=config, clock=clock)
    loan = manager.create(
        borrower_id=farmer.id, borrower_type=BorrowerType.FARMER,
        amount=Decimal("100000"), interest_rate=Decimal("5"),
        purpose="Fertilizer",
    )
    loan = manager.approve(loan.id, DisbursementMethod.MOBILE_MONEY, "0772000000")
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from credit_kernel.db.types import (
    MONEY_DECIMAL_PLACES,
    RATE_DECIMAL_PLACES,
    quantize_money,
)
from credit_kernel.domain.calendar import add_months
from credit_kernel.exceptions import ValidationError
from credit_kernel.logging_config import get_logger
from credit_kernel.services.change_feed import ChangeEvent, ChangeType, Collection
from credit_kernel.services.sequence_service import SequenceService
from credit_modules._unit_of_work import TransactionalService
from credit_modules.loans.models import (
    ApproveLoan,
    BorrowerType,
    CreateLoan,
    DisbursementMethod,
    Loan,
    LoanStatus,
)
from credit_modules.loans.orm import LoanModel
from credit_modules.loans.workflows import (
    ENTITY_TYPE,
    apply_approval,
    apply_default,
    apply_denial,
    new_loan,
    validate_create,
)

logger = get_logger("modules.loans.service")


def loan_event(loan: Loan, change_type: ChangeType, action: str) -> ChangeEvent:
    return ChangeEvent(
        collection=Collection.LOANS,
        entity_id=loan.id,
        change_type=change_type,
        document=loan,
        action=action,
    )


class LoanLifecycleManager(TransactionalService):
    """
    Loan state changes other than repayment.

    Contract
    --------
    * Every write returns the updated ``Loan`` DTO.
    * Queries return DTOs, never ORM rows.
    """

    # =========================================================================
    # Create
    # =========================================================================

    def create(
        self,
        borrower_id: UUID,
        borrower_type: BorrowerType | str,
        amount: Decimal | int | str,
        interest_rate: Decimal | int | str | None = None,
        purpose: str = "",
        due_date: date | None = None,
        notes: str = "",
        credit_request_id: UUID | None = None,
    ) -> Loan:
        """
        Open a pending loan with nothing repaid.

        ``interest_rate`` defaults to the configured rate and ``due_date``
        to ``default_loan_term_months`` after the request date.
        """
        command = CreateLoan(
            borrower_id=borrower_id,
            borrower_type=_borrower_type(borrower_type),
            amount=_money("amount", amount),
            interest_rate=(
                self._config.default_interest_rate
                if interest_rate is None
                else _rate("interest_rate", interest_rate)
            ),
            purpose=purpose,
            due_date=due_date,
            notes=notes,
            credit_request_id=credit_request_id,
        )

        def work():
            validate_create(command)
            self._check_borrower(command.borrower_id, command.borrower_type)
            request_date = self._clock.today()
            due = command.due_date or add_months(
                request_date, self._config.default_loan_term_months
            )
            if due < request_date:
                raise ValidationError("due_date", "cannot be before the request date")
            loan_number = SequenceService(self._session).next_number(
                SequenceService.LOAN_NUMBER,
                self._config.loan_number_prefix,
                self._config.number_width,
            )
            loan = new_loan(uuid4(), loan_number, command, request_date, due)
            model = self._repository.add_loan(LoanModel.from_dto(loan, self._actor_id))
            created = model.to_dto()
            self._annotate(created)
            logger.info(
                "loan_created",
                extra={
                    "loan_id": str(created.id),
                    "loan_number": created.loan_number,
                    "borrower_type": created.borrower_type.value,
                    "amount": str(created.amount),
                    "due_date": created.due_date,
                },
            )
            return created, [loan_event(created, ChangeType.CREATED, "create")]

        return self._run_atomic("create_loan", ENTITY_TYPE, None, work)

    # =========================================================================
    # Transitions
    # =========================================================================

    def approve(
        self,
        loan_id: UUID,
        disbursement_method: DisbursementMethod | str,
        account_details: str,
        notes: str | None = None,
    ) -> Loan:
        """pending -> active; blank account details are a ValidationError."""
        command = ApproveLoan(
            disbursement_method=_disbursement_method(disbursement_method),
            account_details=account_details,
            notes=notes,
        )

        def work():
            model = self._repository.get_loan(loan_id)
            self._annotate(model)
            loan = apply_approval(
                model.to_dto(), command, self._clock.today(), self._actor_id
            )
            return self._save(model, loan, "approve")

        result = self._run_atomic("approve_loan", ENTITY_TYPE, loan_id, work)
        logger.info(
            "loan_approved",
            extra={
                "loan_id": str(result.id),
                "loan_number": result.loan_number,
                "disbursement_method": result.disbursement_method,
            },
        )
        return result

    def deny(self, loan_id: UUID, reason: str) -> Loan:
        """pending -> denied."""

        def work():
            model = self._repository.get_loan(loan_id)
            self._annotate(model)
            return self._save(model, apply_denial(model.to_dto(), reason), "deny")

        result = self._run_atomic("deny_loan", ENTITY_TYPE, loan_id, work)
        logger.info("loan_denied", extra={"loan_id": str(result.id)})
        return result

    def mark_defaulted(self, loan_id: UUID) -> Loan:
        """active -> defaulted.  Administrative override, never automatic."""

        def work():
            model = self._repository.get_loan(loan_id)
            self._annotate(model)
            return self._save(model, apply_default(model.to_dto()), "mark_defaulted")

        result = self._run_atomic("mark_loan_defaulted", ENTITY_TYPE, loan_id, work)
        logger.warning(
            "loan_marked_defaulted",
            extra={
                "loan_id": str(result.id),
                "outstanding": str(result.amount - result.repaid_amount),
            },
        )
        return result

    # =========================================================================
    # Queries
    # =========================================================================

    def get(self, loan_id: UUID) -> Loan:
        return self._repository.get_loan(loan_id).to_dto()

    def get_by_number(self, loan_number: str) -> Loan:
        return self._repository.get_loan_by_number(loan_number).to_dto()

    def list(
        self,
        status: LoanStatus | str | None = None,
        borrower_id: UUID | None = None,
    ) -> Sequence[Loan]:
        return [
            m.to_dto()
            for m in self._repository.list_loans(status=status, borrower_id=borrower_id)
        ]

    # =========================================================================
    # Helpers
    # =========================================================================

    def _save(self, model: LoanModel, loan: Loan, action: str):
        model.update_from_dto(loan, self._actor_id)
        self._session.flush()
        saved = model.to_dto()
        return saved, [loan_event(saved, ChangeType.UPDATED, action)]

    def _check_borrower(self, borrower_id: UUID, borrower_type: BorrowerType) -> None:
        if borrower_type is BorrowerType.FARMER:
            found = self._repository.find_farmer(borrower_id)
        else:
            found = self._repository.find_organization(borrower_id)
        if found is None:
            raise ValidationError(
                "borrower_id",
                f"no {borrower_type.value} with id {borrower_id}",
            )


def _money(field: str, value, decimal_places: int = MONEY_DECIMAL_PLACES) -> Decimal:
    try:
        return quantize_money(value, decimal_places)
    except ValueError as exc:
        raise ValidationError(field, str(exc)) from exc


def _rate(field: str, value) -> Decimal:
    return _money(field, value, RATE_DECIMAL_PLACES)


def _borrower_type(value: BorrowerType | str) -> BorrowerType:
    try:
        return BorrowerType(value)
    except ValueError as exc:
        raise ValidationError("borrower_type", f"unknown borrower type {value!r}") from exc


def _disbursement_method(value: DisbursementMethod | str) -> DisbursementMethod:
    try:
        return DisbursementMethod(value)
    except ValueError as exc:
        raise ValidationError(
            "disbursement_method", f"unknown disbursement method {value!r}"
        ) from exc
