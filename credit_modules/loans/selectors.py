"""
Module: credit_modules.loans.selectors
Responsibility: Read-only loan portfolio aggregation for the cooperative's
    lending dashboard.
Architecture position: Modules > Loans.  Read-only (``BaseSelector``
    contract); never flushes or commits.

Invariants enforced:
    - Aggregates are computed in SQL over the ``loans`` table at query time.
      No stored portfolio totals exist.
    - Ratios are zero, never a division error, on an empty portfolio.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import case, func, select

from credit_kernel.db.types import ZERO, HUNDRED, round_money
from credit_kernel.selectors.base import BaseSelector
from credit_modules.loans.models import LoanStatus, PortfolioSummary
from credit_modules.loans.orm import LoanModel

# Loans that have left pending through approval.
_DISBURSED_STATUSES = (
    LoanStatus.ACTIVE.value,
    LoanStatus.COMPLETED.value,
    LoanStatus.DEFAULTED.value,
)


def _count(status: LoanStatus):
    return func.sum(case((LoanModel.status == status.value, 1), else_=0))


class LoanPortfolioSelector(BaseSelector):
    """Portfolio-level loan figures."""

    def summary(self, status: LoanStatus | str | None = None) -> PortfolioSummary:
        """
        Aggregate the loan book, optionally restricted to one status.

        ``default_rate`` is defaulted loans over all loans, and
        ``repayment_rate`` is total repaid over total disbursed, both in
        percent.
        """
        stmt = select(
            func.count(LoanModel.id),
            _count(LoanStatus.ACTIVE),
            _count(LoanStatus.COMPLETED),
            _count(LoanStatus.DEFAULTED),
            _count(LoanStatus.PENDING),
            func.coalesce(func.sum(LoanModel.amount), 0),
            func.coalesce(
                func.sum(
                    case(
                        (LoanModel.status.in_(_DISBURSED_STATUSES), LoanModel.amount),
                        else_=0,
                    )
                ),
                0,
            ),
            func.coalesce(func.sum(LoanModel.repaid_amount), 0),
            func.avg(LoanModel.interest_rate),
        )
        if status is not None:
            stmt = stmt.where(LoanModel.status == LoanStatus(status).value)

        (
            total,
            active,
            completed,
            defaulted,
            pending,
            total_amount,
            disbursed,
            repaid,
            average_rate,
        ) = self.session.execute(stmt).one()

        total = int(total or 0)
        total_amount = Decimal(str(total_amount))
        disbursed = Decimal(str(disbursed))
        repaid = Decimal(str(repaid))
        defaulted = int(defaulted or 0)

        return PortfolioSummary(
            total_loans=total,
            active_loans=int(active or 0),
            completed_loans=int(completed or 0),
            defaulted_loans=defaulted,
            pending_loans=int(pending or 0),
            total_amount=total_amount,
            total_disbursed=disbursed,
            total_repaid=repaid,
            outstanding_balance=max(ZERO, disbursed - repaid),
            average_interest_rate=(
                round_money(Decimal(str(average_rate))) if average_rate is not None else ZERO
            ),
            default_rate=(
                round_money(Decimal(defaulted) / Decimal(total) * HUNDRED) if total else ZERO
            ),
            repayment_rate=(
                round_money(repaid / disbursed * HUNDRED) if disbursed > 0 else ZERO
            ),
        )
