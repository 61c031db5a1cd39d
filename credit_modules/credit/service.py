"""
Credit Request Service (``credit_modules.credit.service``).

Responsibility
--------------
Receives farmers' credit requests, records assessment decisions, and
disburses approved requests into loans.

Architecture position
---------------------
**Modules layer** -- ``CreditRequestWorkflow`` owns the transaction
boundary for credit requests.  Disbursement drives a
``LoanLifecycleManager`` that joins this service's transaction, so the
request flip and the loan it creates commit or roll back together.

Invariants enforced
-------------------
* ``pending -> {approved, rejected}`` and ``approved -> disbursed`` only.
* A disbursed request references exactly one loan, created in the same
  transaction, and that loan references the request back.
* Validation runs before any write.

Failure modes
-------------
* ``ValidationError`` -- unresolvable farmer, non-positive amount, blank
  purpose, bad inputs, missing decision terms on approval, a disbursement
  date before the request or so far back that the loan would open overdue.
* ``InvalidTransitionError`` -- assessing a decided request, disbursing an
  unapproved one.
* ``NotFoundError`` -- unknown request id.
* ``ConflictError`` / ``TransientError`` -- see ``_unit_of_work``.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import replace
from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from credit_kernel.db.types import quantize_money
from credit_kernel.domain.calendar import add_months
from credit_kernel.exceptions import ValidationError
from credit_kernel.logging_config import get_logger
from credit_kernel.services.change_feed import ChangeEvent, ChangeType, Collection
from credit_modules._unit_of_work import TransactionalService
from credit_modules.credit.models import (
    AssessCreditRequest,
    AssessmentOutcome,
    CreditInput,
    CreditRequest,
    CreditRequestStatus,
    DisbursementDetails,
    SubmitCreditRequest,
)
from credit_modules.credit.orm import CreditRequestModel
from credit_modules.credit.workflows import (
    ENTITY_TYPE,
    apply_assessment,
    apply_disbursement,
    check_disbursable,
    loan_terms,
    new_credit_request,
)
from credit_modules.loans.models import BorrowerType, DisbursementMethod
from credit_modules.loans.service import LoanLifecycleManager, _money, _rate

logger = get_logger("modules.credit.service")


def credit_request_event(
    request: CreditRequest, change_type: ChangeType, action: str
) -> ChangeEvent:
    return ChangeEvent(
        collection=Collection.CREDIT_REQUESTS,
        entity_id=request.id,
        change_type=change_type,
        document=request,
        action=action,
    )


class CreditRequestWorkflow(TransactionalService):
    """
    Credit request lifecycle: submit, assess, disburse.

    Usage::

        workflow = CreditRequestWorkflow(session, config=config, clock=clock)
        request = workflow.submit(farmer.id, Decimal("500000"), "Fertilizer")
        request = workflow.assess(
            request.id, AssessmentOutcome.APPROVED,
            approved_amount=Decimal("450000"), interest_rate=Decimal("5"),
        )
        request = workflow.disburse(
            request.id, DisbursementDetails(method=DisbursementMethod.MOBILE_MONEY),
        )
    """

    # =========================================================================
    # Submit
    # =========================================================================

    def submit(
        self,
        farmer_id: UUID,
        amount_requested: Decimal | int | str,
        purpose: str,
        inputs: Iterable[CreditInput | Mapping] = (),
    ) -> CreditRequest:
        """Create a pending request with no decision."""
        command = SubmitCreditRequest(
            farmer_id=farmer_id,
            amount_requested=_money("amount_requested", amount_requested),
            purpose=purpose or "",
            inputs=tuple(_credit_input(i) for i in inputs),
        )

        def work():
            if self._repository.find_farmer(command.farmer_id) is None:
                raise ValidationError("farmer_id", f"no farmer with id {command.farmer_id}")
            request = new_credit_request(uuid4(), command, self._clock.today())
            model = self._repository.add_credit_request(
                CreditRequestModel.from_dto(request, self._actor_id)
            )
            created = model.to_dto()
            self._annotate(created)
            logger.info(
                "credit_request_submitted",
                extra={
                    "credit_request_id": str(created.id),
                    "farmer_id": str(created.farmer_id),
                    "amount_requested": str(created.amount_requested),
                    "input_count": len(created.inputs),
                },
            )
            return created, [credit_request_event(created, ChangeType.CREATED, "submit")]

        return self._run_atomic("submit_credit_request", ENTITY_TYPE, None, work)

    # =========================================================================
    # Assess
    # =========================================================================

    def assess(
        self,
        request_id: UUID,
        outcome: AssessmentOutcome | str,
        approved_amount: Decimal | int | str | None = None,
        interest_rate: Decimal | int | str | None = None,
        notes: str = "",
    ) -> CreditRequest:
        """
        Record the assessment decision.

        Approved amount and interest rate are required when approving and
        dropped when rejecting.
        """
        try:
            outcome = AssessmentOutcome(outcome)
        except ValueError as exc:
            raise ValidationError("outcome", f"unknown outcome {outcome!r}") from exc
        command = AssessCreditRequest(
            outcome=outcome,
            approved_amount=(
                None if approved_amount is None
                else _money("approved_amount", approved_amount)
            ),
            interest_rate=(
                None if interest_rate is None
                else _rate("interest_rate", interest_rate)
            ),
            notes=notes or "",
        )

        def work():
            model = self._repository.get_credit_request(request_id)
            self._annotate(model)
            request = apply_assessment(
                model.to_dto(), command, self._clock.today(), self._actor_id
            )
            model.update_from_dto(request, self._actor_id)
            self._session.flush()
            saved = model.to_dto()
            return saved, [credit_request_event(saved, ChangeType.UPDATED, "assess")]

        result = self._run_atomic("assess_credit_request", ENTITY_TYPE, request_id, work)
        logger.info(
            "credit_request_assessed",
            extra={
                "credit_request_id": str(result.id),
                "decision": result.status.value,
                "approved_amount": (
                    str(result.decision.approved_amount)
                    if result.decision and result.decision.approved_amount is not None
                    else None
                ),
            },
        )
        return result

    # =========================================================================
    # Disburse
    # =========================================================================

    def disburse(self, request_id: UUID, details: DisbursementDetails) -> CreditRequest:
        """
        approved -> disbursed, creating the pending loan in the same transaction.

        The loan takes the approved amount (or the requested amount) and the
        decided rate (or the configured default), and falls due
        ``default_loan_term_months`` after the disbursement date.
        """
        try:
            method = DisbursementMethod(details.method)
        except ValueError as exc:
            raise ValidationError(
                "method", f"unknown disbursement method {details.method!r}"
            ) from exc

        loans = LoanLifecycleManager(
            self._session,
            config=self._config,
            clock=self._clock,
            actor_id=self._actor_id,
            auto_commit=False,
        )

        def work():
            loans.take_deferred_events()
            model = self._repository.get_credit_request(request_id)
            self._annotate(model)
            request = model.to_dto()
            check_disbursable(request)

            today = self._clock.today()
            disbursed_on = details.disbursement_date or today
            due_date = add_months(disbursed_on, self._config.default_loan_term_months)
            _check_disbursement_date(request, disbursed_on, due_date, today)
            amount, rate = loan_terms(request, self._config.default_interest_rate)
            loan = loans.create(
                borrower_id=request.farmer_id,
                borrower_type=BorrowerType.FARMER,
                amount=amount,
                interest_rate=rate,
                purpose=request.purpose,
                due_date=due_date,
                notes=details.notes or "",
                credit_request_id=request.id,
            )

            updated = apply_disbursement(
                request,
                DisbursementDetails(
                    method=method,
                    disbursement_date=disbursed_on,
                    reference=details.reference,
                    notes=details.notes or "",
                ),
                loan.id,
                disbursed_on,
            )
            model.update_from_dto(updated, self._actor_id)
            self._session.flush()
            saved = model.to_dto()

            logger.info(
                "credit_request_disbursed",
                extra={
                    "credit_request_id": str(saved.id),
                    "loan_id": str(loan.id),
                    "loan_number": loan.loan_number,
                    "amount": str(loan.amount),
                    "method": method.value,
                },
            )
            events = [credit_request_event(saved, ChangeType.UPDATED, "disburse")]
            events.extend(loans.take_deferred_events())
            return saved, events

        return self._run_atomic("disburse_credit_request", ENTITY_TYPE, request_id, work)

    # =========================================================================
    # Queries
    # =========================================================================

    def get(self, request_id: UUID) -> CreditRequest:
        return self._repository.get_credit_request(request_id).to_dto()

    def list(
        self,
        status: CreditRequestStatus | str | None = None,
        farmer_id: UUID | None = None,
    ) -> Sequence[CreditRequest]:
        """Requests newest first."""
        return [
            m.to_dto()
            for m in self._repository.list_credit_requests(status=status, farmer_id=farmer_id)
        ]


def _check_disbursement_date(
    request: CreditRequest, disbursed_on: date, due_date: date, today: date
) -> None:
    """The loan opens today, so its due date may not already have passed."""
    if disbursed_on < request.request_date:
        raise ValidationError(
            "disbursement_date",
            f"{disbursed_on} is before the request date {request.request_date}",
            entity_id=str(request.id),
        )
    if due_date < today:
        raise ValidationError(
            "disbursement_date",
            f"{disbursed_on} is too far back: the loan would fall due on "
            f"{due_date}, before it opens on {today}",
            entity_id=str(request.id),
        )


def _credit_input(value: CreditInput | Mapping) -> CreditInput:
    if isinstance(value, CreditInput):
        return replace(
            value, estimated_cost=_money("inputs", value.estimated_cost)
        )
    try:
        return CreditInput(
            input_type=str(value.get("input_type") or value.get("type") or ""),
            quantity=Decimal(str(value.get("quantity", 0))),
            unit=str(value.get("unit") or "unit"),
            estimated_cost=quantize_money(value.get("estimated_cost", 0)),
        )
    except (ValueError, ArithmeticError) as exc:
        raise ValidationError("inputs", f"malformed input {dict(value)!r}") from exc
