"""
Procurement Module (``credit_modules.procurement``).

Responsibility
--------------
Farm-input orders placed with registered suppliers on behalf of farmers:
items and totals, the approval gate, delivery status, and the invoice,
export, and statistics projections.

Architecture position
---------------------
**Modules layer** -- DTOs in ``models``, the order state machine in
``workflows``, pure projections in ``projections``.  The
``service.InputOrderProcurement`` facade owns the transaction boundary and
is imported from its own module.

Invariants enforced
-------------------
* ``total_amount == sum(quantity * unit_price)`` at every observable state.
* ``approved`` never changes ``status`` and vice versa.
"""

from credit_modules.procurement.models import (
    InputOrder,
    InvoiceData,
    InvoiceLine,
    InvoiceRenderer,
    OrderExportRow,
    OrderItem,
    OrderStats,
    OrderStatus,
)
from credit_modules.procurement.workflows import INPUT_ORDER_WORKFLOW

__all__ = [
    "INPUT_ORDER_WORKFLOW",
    "InputOrder",
    "InvoiceData",
    "InvoiceLine",
    "InvoiceRenderer",
    "OrderExportRow",
    "OrderItem",
    "OrderStats",
    "OrderStatus",
]
