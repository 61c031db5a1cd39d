"""
Credit Module (``credit_modules.credit``).

Responsibility
--------------
Farmer credit requests: submission with itemized inputs, assessment
decisions, and disbursement into a loan.

Architecture position
---------------------
**Modules layer** -- DTOs in ``models``, the state machine and pure
transitions in ``workflows``, persistence in ``orm``.  The
``service.CreditRequestWorkflow`` facade owns the transaction boundary and
is imported from its own module.

Invariants enforced
-------------------
* No path returns a request to ``pending``.
* ``rejected`` and ``disbursed`` are terminal.
* Disbursement and loan creation commit together.
"""

from credit_modules.credit.models import (
    AssessmentOutcome,
    CreditDecision,
    CreditInput,
    CreditRequest,
    CreditRequestStatus,
    DisbursementDetails,
    DisbursementRecord,
)
from credit_modules.credit.workflows import CREDIT_REQUEST_WORKFLOW

__all__ = [
    "AssessmentOutcome",
    "CREDIT_REQUEST_WORKFLOW",
    "CreditDecision",
    "CreditInput",
    "CreditRequest",
    "CreditRequestStatus",
    "DisbursementDetails",
    "DisbursementRecord",
]
