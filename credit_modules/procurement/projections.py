"""
Input order projections: invoice data, export rows, and order statistics.

Pure functions.  Rendering the results to PDF/CSV bytes belongs to an
external ``InvoiceRenderer``; the engine only supplies the data.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from decimal import Decimal
from uuid import UUID

from credit_kernel.domain.dtos import FarmerInfo, SupplierInfo
from credit_modules.procurement.models import (
    InputOrder,
    InvoiceData,
    InvoiceLine,
    OrderExportRow,
    OrderStats,
    OrderStatus,
)


def build_invoice(
    order: InputOrder,
    farmer: FarmerInfo,
    supplier: SupplierInfo,
    currency: str,
) -> InvoiceData:
    lines = tuple(
        InvoiceLine(
            line_number=index + 1,
            item_code=item.item_code,
            description=item.name,
            category=item.category,
            quantity=item.quantity,
            unit=item.unit,
            unit_price=item.unit_price,
            line_total=item.line_total,
        )
        for index, item in enumerate(order.items)
    )
    return InvoiceData(
        invoice_number=order.invoice_number,
        order_number=order.order_number,
        order_date=order.order_date,
        expected_delivery_date=order.expected_delivery_date,
        farmer=farmer,
        supplier=supplier,
        lines=lines,
        total_amount=order.total_amount,
        currency=currency,
        status=order.status,
        approved=order.approved,
        notes=order.notes,
    )


def export_rows(
    orders: Iterable[InputOrder],
    farmer_names: Mapping[UUID, str],
    supplier_names: Mapping[UUID, str],
) -> list[OrderExportRow]:
    """
    One flat row per order.

    Unknown farmers or suppliers render as ``"Unknown"`` rather than
    dropping the order from the export.
    """
    return [
        OrderExportRow(
            order_number=order.order_number,
            farmer_name=farmer_names.get(order.farmer_id, "Unknown"),
            supplier_name=supplier_names.get(order.supplier_id, "Unknown"),
            items=", ".join(item.name for item in order.items),
            order_date=order.order_date,
            expected_delivery_date=order.expected_delivery_date,
            amount=order.total_amount,
            status=order.status,
            approved=order.approved,
        )
        for order in orders
    ]


def order_stats(orders: Iterable[InputOrder]) -> OrderStats:
    total = pending = delivered = approved = 0
    value = Decimal("0")
    for order in orders:
        total += 1
        value += order.total_amount
        if order.status is OrderStatus.PENDING:
            pending += 1
        elif order.status is OrderStatus.DELIVERED:
            delivered += 1
        if order.approved:
            approved += 1
    return OrderStats(
        total_orders=total,
        pending=pending,
        delivered=delivered,
        approved=approved,
        total_value=value,
    )
