"""
Credit Modules.

Workflow modules over the Credit Kernel.  Each module contains:
- Domain models (the nouns, as frozen DTOs)
- Workflows (state machines and pure transitions)
- ORM persistence models
- A service facade that owns the transaction boundary

Modules:
- Credit: Farmer credit requests, assessment, disbursement
- Loans: Loan lifecycle, repayment ledger, portfolio reporting
- Procurement: Farm-input orders, invoices, exports

Shared by all modules: ``repository.EntityRepository`` for typed
persistence access and ``_unit_of_work.TransactionalService`` for commit,
rollback, and optimistic conflict retry.
"""

from credit_modules import credit, loans, procurement

__all__ = ["credit", "loans", "procurement"]
