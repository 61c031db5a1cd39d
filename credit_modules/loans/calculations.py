"""
Loan repayment calculations.

Pure functions over ``Loan`` DTOs; no I/O.  Status derivation lives here so
the ledger and the lifecycle manager agree on a single rule.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal

from credit_kernel.db.types import HUNDRED, ZERO, round_money
from credit_modules.loans.models import (
    Loan,
    LoanStatus,
    Payment,
    StatementLine,
)


def derive_status(repaid_amount: Decimal, amount: Decimal) -> LoanStatus:
    """Status implied by repayments: completed once the principal is covered."""
    return LoanStatus.COMPLETED if repaid_amount >= amount else LoanStatus.ACTIVE


def progress_percent(loan: Loan) -> Decimal:
    """
    Repayment progress, clamped to [0, 100].

    A non-positive principal counts as fully repaid.
    """
    if loan.amount <= 0:
        return HUNDRED
    ratio = loan.repaid_amount / loan.amount * HUNDRED
    return round_money(min(max(ratio, ZERO), HUNDRED))


def outstanding_balance(loan: Loan) -> Decimal:
    """Principal still owed; never negative (overpayment shows as zero)."""
    return max(loan.amount - loan.repaid_amount, ZERO)


def running_balances(loan: Loan, payments: Iterable[Payment]) -> tuple[StatementLine, ...]:
    """Pair each payment with the cumulative repaid and the balance after it."""
    lines = []
    cumulative = ZERO
    for payment in payments:
        cumulative += payment.amount
        lines.append(
            StatementLine(
                payment=payment,
                cumulative_repaid=cumulative,
                balance_after=max(loan.amount - cumulative, ZERO),
            )
        )
    return tuple(lines)
