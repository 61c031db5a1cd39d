"""
Repayment Ledger (``credit_modules.loans.ledger``).

Responsibility
--------------
Records repayments as immutable ledger entries, keeps the loan's repaid
amount equal to the sum of its payments, and re-derives loan status after
every accepted payment.  Also answers progress, outstanding balance,
payment history, and statement queries.

Invariants enforced
-------------------
* ``repaid_amount`` never decreases and equals the sum of the loan's
  payments (payment append and loan update share one transaction, and the
  loan's version column serializes concurrent payments).
* After every payment ``repaid_amount >= amount`` implies ``completed``.
* Overpayment is accepted and recorded as-is.
* Payments are never updated or deleted (kernel immutability listeners).

Failure modes
-------------
* ``InvalidStateError`` -- loan is completed, defaulted, denied, or pending
  while ``accept_payments_on_pending`` is off.
* ``ValidationError`` -- non-positive amount, unknown method.
* ``NotFoundError`` -- unknown loan.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from credit_kernel.exceptions import ValidationError
from credit_kernel.logging_config import get_logger
from credit_kernel.services.change_feed import ChangeEvent, ChangeType, Collection
from credit_modules._unit_of_work import TransactionalService
from credit_modules.loans import calculations
from credit_modules.loans.models import (
    Loan,
    Payment,
    PaymentMethod,
    RecordPayment,
    RepaymentStatement,
)
from credit_modules.loans.orm import PaymentModel
from credit_modules.loans.service import _money, loan_event
from credit_modules.loans.workflows import ENTITY_TYPE, apply_payment, is_overpaid

logger = get_logger("modules.loans.ledger")


class RepaymentLedger(TransactionalService):
    """
    Append-only repayment ledger per loan.

    Contract
    --------
    * ``record_payment`` returns the new ``Payment`` and the updated ``Loan``.
    * ``progress`` and ``outstanding_balance`` are pure over a ``Loan`` DTO.
    """

    def record_payment(
        self,
        loan_id: UUID,
        amount: Decimal | int | str,
        date: date | None = None,
        method: PaymentMethod | str = PaymentMethod.CASH,
        note: str = "",
    ) -> tuple[Payment, Loan]:
        """
        Append a payment and update the loan.

        ``date`` defaults to today.  The payment, the loan's new repaid
        amount and status, and ``last_payment_date/amount`` commit together.
        """
        command = RecordPayment(
            amount=_money("amount", amount),
            payment_date=date or self._clock.today(),
            method=_payment_method(method),
            note=note or "",
        )

        def work():
            model = self._repository.get_loan(loan_id)
            self._annotate(model)
            before = model.to_dto()
            after = apply_payment(
                before, command, self._config.accept_payments_on_pending
            )
            model.update_from_dto(after, self._actor_id)
            # Version check on the loan before the ledger line is written.
            self._session.flush()
            payment_model = self._repository.add_payment(
                PaymentModel(
                    id=uuid4(),
                    loan_id=model.id,
                    line_number=after.payment_count,
                    amount=command.amount,
                    payment_date=command.payment_date,
                    method=command.method.value,
                    note=command.note,
                    recorded_by=self._actor_id,
                    recorded_at=self._clock.now(),
                    created_by=self._actor_id,
                )
            )
            payment = payment_model.to_dto()
            loan = model.to_dto()

            logger.info(
                "loan_payment_recorded",
                extra={
                    "loan_id": str(loan.id),
                    "loan_number": loan.loan_number,
                    "amount": str(payment.amount),
                    "repaid_amount": str(loan.repaid_amount),
                    "status_before": before.status.value,
                    "status_after": loan.status.value,
                },
            )
            if is_overpaid(loan):
                logger.warning(
                    "loan_overpaid",
                    extra={
                        "loan_id": str(loan.id),
                        "overpayment": str(loan.repaid_amount - loan.amount),
                    },
                )

            events = [
                ChangeEvent(
                    collection=Collection.PAYMENTS,
                    entity_id=payment.id,
                    change_type=ChangeType.CREATED,
                    document=payment,
                    action="record_payment",
                ),
                loan_event(loan, ChangeType.UPDATED, "record_payment"),
            ]
            return (payment, loan), events

        return self._run_atomic("record_payment", ENTITY_TYPE, loan_id, work)

    # =========================================================================
    # Queries
    # =========================================================================

    def progress(self, loan: Loan) -> Decimal:
        """Repayment progress in percent, clamped to [0, 100]."""
        return calculations.progress_percent(loan)

    def outstanding_balance(self, loan: Loan) -> Decimal:
        return calculations.outstanding_balance(loan)

    def payments(self, loan_id: UUID) -> Sequence[Payment]:
        """Payment history in the order it was recorded."""
        self._repository.get_loan(loan_id)
        return [p.to_dto() for p in self._repository.list_payments(loan_id)]

    def statement(self, loan_id: UUID) -> RepaymentStatement:
        """Loan, payments with running balances, and reconciliation state."""
        loan = self._repository.get_loan(loan_id).to_dto()
        payments = [p.to_dto() for p in self._repository.list_payments(loan_id)]
        lines = calculations.running_balances(loan, payments)
        total_paid = lines[-1].cumulative_repaid if lines else Decimal("0")
        statement = RepaymentStatement(
            loan=loan,
            lines=lines,
            total_paid=total_paid,
            outstanding_balance=calculations.outstanding_balance(loan),
            progress_percent=calculations.progress_percent(loan),
        )
        if not statement.reconciles:
            logger.error(
                "loan_ledger_out_of_balance",
                extra={
                    "loan_id": str(loan.id),
                    "ledger_total": str(total_paid),
                    "repaid_amount": str(loan.repaid_amount),
                },
            )
        return statement


def _payment_method(value: PaymentMethod | str) -> PaymentMethod:
    try:
        return PaymentMethod(value)
    except ValueError as exc:
        raise ValidationError("method", f"unknown payment method {value!r}") from exc
