"""
Loans Module (``credit_modules.loans``).

Responsibility
--------------
Loan lifecycle (create, approve, deny, default), the append-only repayment
ledger with derived loan status, and portfolio reporting.

Architecture position
---------------------
**Modules layer** -- DTOs and pure transitions live in ``models`` and
``workflows``; ``service.LoanLifecycleManager`` and
``ledger.RepaymentLedger`` own the transaction boundary;
``selectors.LoanPortfolioSelector`` is read-only.

Invariants enforced
-------------------
* ``0 <= repaid_amount`` and repaid equals the sum of recorded payments.
* ``repaid_amount >= amount`` implies ``completed`` after every payment.
* Completed, defaulted, and denied loans accept no further transitions.

Services are imported from their own modules so that loading the DTOs does
not pull in the persistence layer.
"""

from credit_modules.loans.models import (
    BorrowerType,
    DisbursementMethod,
    Loan,
    LoanStatus,
    Payment,
    PaymentMethod,
    PortfolioSummary,
    RepaymentStatement,
    StatementLine,
)
from credit_modules.loans.workflows import LOAN_WORKFLOW

__all__ = [
    "BorrowerType",
    "DisbursementMethod",
    "LOAN_WORKFLOW",
    "Loan",
    "LoanStatus",
    "Payment",
    "PaymentMethod",
    "PortfolioSummary",
    "RepaymentStatement",
    "StatementLine",
]
