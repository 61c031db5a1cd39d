"""
Procurement Domain Models.

The nouns of input procurement: orders of farm inputs from registered
suppliers, their line items, and the invoice/export/statistics projections
handed to renderers and dashboards.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Protocol, runtime_checkable
from uuid import UUID

from credit_kernel.domain.dtos import FarmerInfo, InputCategory, SupplierInfo
from credit_kernel.logging_config import get_logger

logger = get_logger("modules.procurement.models")


class OrderStatus(str, Enum):
    """Input order states."""
    PENDING = "pending"
    APPROVED = "approved"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class OrderItem:
    """A line item on an input order."""
    item_code: str
    name: str
    category: InputCategory
    unit_price: Decimal
    quantity: int
    unit: str = "unit"

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class InputOrder:
    """A procurement order for farm inputs."""
    id: UUID
    order_number: str
    invoice_number: str
    farmer_id: UUID
    supplier_id: UUID
    order_date: date
    items: tuple[OrderItem, ...] = field(default_factory=tuple)
    total_amount: Decimal = Decimal("0")
    status: OrderStatus = OrderStatus.PENDING
    approved: bool = False
    expected_delivery_date: date | None = None
    credit_request_id: UUID | None = None
    notes: str = ""
    item_revision: int = 1
    version: int = 0


# -----------------------------------------------------------------------------
# Projections
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class InvoiceLine:
    line_number: int
    item_code: str
    description: str
    category: InputCategory
    quantity: int
    unit: str
    unit_price: Decimal
    line_total: Decimal


@dataclass(frozen=True)
class InvoiceData:
    """Everything an invoice renderer needs; no presentation decisions."""
    invoice_number: str
    order_number: str
    order_date: date
    expected_delivery_date: date | None
    farmer: FarmerInfo
    supplier: SupplierInfo
    lines: tuple[InvoiceLine, ...]
    total_amount: Decimal
    currency: str
    status: OrderStatus
    approved: bool
    notes: str = ""


@dataclass(frozen=True)
class OrderExportRow:
    """Flat per-order row consumed by CSV/spreadsheet renderers."""
    order_number: str
    farmer_name: str
    supplier_name: str
    items: str
    order_date: date
    expected_delivery_date: date | None
    amount: Decimal
    status: OrderStatus
    approved: bool

    # Column headings in export order
    HEADERS = (
        "Order ID",
        "Farmer",
        "Supplier",
        "Items",
        "Order Date",
        "Expected Delivery",
        "Amount",
        "Status",
        "Approved",
    )

    def as_tuple(self) -> tuple:
        return (
            self.order_number,
            self.farmer_name,
            self.supplier_name,
            self.items,
            self.order_date.isoformat(),
            self.expected_delivery_date.isoformat() if self.expected_delivery_date else "",
            str(self.amount),
            self.status.value,
            "Yes" if self.approved else "No",
        )


@dataclass(frozen=True)
class OrderStats:
    total_orders: int = 0
    pending: int = 0
    delivered: int = 0
    approved: int = 0
    total_value: Decimal = Decimal("0")


@runtime_checkable
class InvoiceRenderer(Protocol):
    """External collaborator that turns invoice data into document bytes."""

    def render(self, invoice: InvoiceData) -> bytes: ...
