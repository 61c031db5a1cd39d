"""
Input Order Procurement Service (``credit_modules.procurement.service``).

Responsibility
--------------
Places farm-input orders with registered suppliers on behalf of farmers,
maintains their items and totals, the approval gate, and the delivery
status, and projects orders into invoice data, export rows, and summary
statistics.

Architecture position
---------------------
**Modules layer** -- ``InputOrderProcurement`` owns the transaction
boundary for input orders.  Projections are pure and live in
``projections``; document rendering is delegated to an external
``InvoiceRenderer``.

Invariants enforced
-------------------
* ``total_amount == sum(quantity * unit_price)`` after every write.
* Order and invoice numbers share one allocated sequence value.
* ``approved`` is independent of ``status``.
* Delivered and cancelled orders accept no item changes.

Failure modes
-------------
* ``ValidationError`` -- empty or malformed items, unresolvable farmer,
  unknown or inactive supplier, credit request of another farmer.
* ``InvalidTransitionError`` -- item change on a closed order; illegal
  status move when ``enforce_order_pipeline`` is on.
* ``NotFoundError`` -- unknown order id or catalog product.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import replace
from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from credit_kernel.db.types import quantize_money
from credit_kernel.domain.dtos import InputCategory
from credit_kernel.exceptions import NotFoundError, ValidationError
from credit_kernel.logging_config import get_logger
from credit_kernel.services.change_feed import ChangeEvent, ChangeType, Collection
from credit_kernel.services.sequence_service import (
    SequenceService,
    format_document_number,
)
from credit_modules._unit_of_work import TransactionalService
from credit_modules.procurement import projections
from credit_modules.procurement.models import (
    InputOrder,
    InvoiceData,
    InvoiceRenderer,
    OrderExportRow,
    OrderItem,
    OrderStats,
    OrderStatus,
)
from credit_modules.procurement.orm import InputOrderModel
from credit_modules.procurement.workflows import (
    ENTITY_TYPE,
    apply_approval,
    apply_items,
    apply_status,
    compute_total,
    validate_items,
)

logger = get_logger("modules.procurement.service")


def order_event(order: InputOrder, change_type: ChangeType, action: str) -> ChangeEvent:
    return ChangeEvent(
        collection=Collection.INPUT_ORDERS,
        entity_id=order.id,
        change_type=change_type,
        document=order,
        action=action,
    )


class InputOrderProcurement(TransactionalService):
    """
    Input order lifecycle and projections.

    Usage::

        procurement = InputOrderProcurement(session, config=config, clock=clock)
        order = procurement.create_order(
            farmer.id, supplier.id,
            [procurement.item_from_catalog(supplier.id, "NPK-50", 2)],
        )
        order = procurement.set_approval(order.id, True)
        order = procurement.advance_status(order.id, OrderStatus.SHIPPED)
    """

    # =========================================================================
    # Create
    # =========================================================================

    def create_order(
        self,
        farmer_id: UUID,
        supplier_id: UUID,
        items: Iterable[OrderItem | Mapping],
        expected_delivery_date: date | None = None,
        credit_request_id: UUID | None = None,
        notes: str = "",
    ) -> InputOrder:
        """
        Place a pending, unapproved order.

        Items may be ``OrderItem`` instances or mappings with ``item_code``,
        ``name``, ``category``, ``unit_price``, ``quantity`` and ``unit``.
        """
        order_items = _order_items(items)

        def work():
            validate_items(order_items)
            if self._repository.find_farmer(farmer_id) is None:
                raise ValidationError("farmer_id", f"no farmer with id {farmer_id}")
            supplier = self._repository.find_supplier(supplier_id)
            if supplier is None:
                raise ValidationError("supplier_id", f"no supplier with id {supplier_id}")
            if not supplier.is_active:
                raise ValidationError("supplier_id", f"supplier {supplier.name} is inactive")
            if credit_request_id is not None:
                self._check_credit_request(credit_request_id, farmer_id)

            order_date = self._clock.today()
            value = SequenceService(self._session).next_value(SequenceService.ORDER_NUMBER)
            width = self._config.number_width
            order = InputOrder(
                id=uuid4(),
                order_number=format_document_number(
                    self._config.order_number_prefix, value, width
                ),
                invoice_number=format_document_number(
                    self._config.invoice_number_prefix, value, width
                ),
                farmer_id=farmer_id,
                supplier_id=supplier_id,
                order_date=order_date,
                items=order_items,
                total_amount=compute_total(order_items),
                status=OrderStatus.PENDING,
                approved=False,
                expected_delivery_date=expected_delivery_date,
                credit_request_id=credit_request_id,
                notes=notes or "",
            )
            model = self._repository.add_input_order(
                InputOrderModel.from_dto(order, self._actor_id)
            )
            created = model.to_dto()
            self._annotate(created)
            logger.info(
                "input_order_created",
                extra={
                    "order_id": str(created.id),
                    "order_number": created.order_number,
                    "invoice_number": created.invoice_number,
                    "item_count": len(created.items),
                    "total_amount": str(created.total_amount),
                },
            )
            return created, [order_event(created, ChangeType.CREATED, "create")]

        return self._run_atomic("create_input_order", ENTITY_TYPE, None, work)

    def item_from_catalog(
        self,
        supplier_id: UUID,
        product_code: str,
        quantity: int,
        unit_price: Decimal | None = None,
    ) -> OrderItem:
        """
        Build an order item from a supplier's catalog product.

        ``unit_price`` overrides the catalog price when given.

        Raises:
            NotFoundError: If the supplier has no such product.
            ValidationError: If the product is inactive.
        """
        product = self._repository.get_supplier_product(supplier_id, product_code)
        if not product.is_active:
            raise ValidationError("product_code", f"product {product_code} is inactive")
        info = product.to_dto()
        return OrderItem(
            item_code=info.product_code,
            name=info.name,
            category=info.category,
            unit_price=_unit_price(
                "unit_price", info.unit_price if unit_price is None else unit_price
            ),
            quantity=quantity,
            unit=info.unit,
        )

    # =========================================================================
    # Updates
    # =========================================================================

    def update_items(self, order_id: UUID, items: Iterable[OrderItem | Mapping]) -> InputOrder:
        """Replace the items and recompute the total; closed orders refuse."""
        order_items = _order_items(items)

        def work():
            model = self._repository.get_input_order(order_id)
            self._annotate(model)
            order = apply_items(model.to_dto(), order_items)
            return self._save(model, order, "update_items")

        result = self._run_atomic("update_input_order_items", ENTITY_TYPE, order_id, work)
        logger.info(
            "input_order_items_updated",
            extra={
                "order_number": result.order_number,
                "item_count": len(result.items),
                "total_amount": str(result.total_amount),
            },
        )
        return result

    def set_approval(self, order_id: UUID, approved: bool) -> InputOrder:
        """Set the approval gate.  Status is untouched."""

        def work():
            model = self._repository.get_input_order(order_id)
            self._annotate(model)
            return self._save(model, apply_approval(model.to_dto(), approved), "set_approval")

        result = self._run_atomic("set_input_order_approval", ENTITY_TYPE, order_id, work)
        logger.info(
            "input_order_approval_set",
            extra={"order_number": result.order_number, "approved": result.approved},
        )
        return result

    def advance_status(self, order_id: UUID, next_status: OrderStatus | str) -> InputOrder:
        """
        Move the order to ``next_status``.

        Any status is accepted unless ``enforce_order_pipeline`` is set, in
        which case only input-order workflow transitions are.
        """
        try:
            target = OrderStatus(next_status)
        except ValueError as exc:
            raise ValidationError("status", f"unknown order status {next_status!r}") from exc
        strict = self._config.enforce_order_pipeline

        def work():
            model = self._repository.get_input_order(order_id)
            self._annotate(model)
            before = model.to_dto()
            order = apply_status(before, target, strict)
            result = self._save(model, order, "advance_status")
            logger.info(
                "input_order_status_changed",
                extra={
                    "order_number": before.order_number,
                    "from_status": before.status.value,
                    "to_status": target.value,
                    "strict": strict,
                },
            )
            return result

        return self._run_atomic("advance_input_order_status", ENTITY_TYPE, order_id, work)

    # =========================================================================
    # Projections
    # =========================================================================

    def build_invoice(self, order: InputOrder) -> InvoiceData:
        """Invoice data for ``order`` with its farmer and supplier resolved."""
        farmer = self._repository.get_farmer(order.farmer_id).to_dto()
        supplier = self._repository.get_supplier(order.supplier_id).to_dto()
        return projections.build_invoice(order, farmer, supplier, self._config.currency)

    def render_invoice(self, order_id: UUID, renderer: InvoiceRenderer) -> bytes:
        """Hand the invoice data to ``renderer`` and return the document bytes."""
        if not isinstance(renderer, InvoiceRenderer):
            raise TypeError(f"{type(renderer).__name__} does not implement render()")
        invoice = self.build_invoice(self.get(order_id))
        document = renderer.render(invoice)
        logger.info(
            "invoice_rendered",
            extra={
                "invoice_number": invoice.invoice_number,
                "renderer": type(renderer).__name__,
                "size_bytes": len(document),
            },
        )
        return document

    def export_rows(self, orders: Iterable[InputOrder]) -> list[OrderExportRow]:
        orders = list(orders)
        farmer_names: dict[UUID, str] = {}
        supplier_names: dict[UUID, str] = {}
        for order in orders:
            if order.farmer_id not in farmer_names:
                farmer = self._repository.find_farmer(order.farmer_id)
                if farmer is not None:
                    farmer_names[order.farmer_id] = farmer.full_name
            if order.supplier_id not in supplier_names:
                supplier = self._repository.find_supplier(order.supplier_id)
                if supplier is not None:
                    supplier_names[order.supplier_id] = supplier.name
        return projections.export_rows(orders, farmer_names, supplier_names)

    def order_stats(self, orders: Iterable[InputOrder]) -> OrderStats:
        return projections.order_stats(orders)

    # =========================================================================
    # Queries
    # =========================================================================

    def get(self, order_id: UUID) -> InputOrder:
        return self._repository.get_input_order(order_id).to_dto()

    def list(
        self,
        status: OrderStatus | str | None = None,
        farmer_id: UUID | None = None,
        supplier_id: UUID | None = None,
        category: InputCategory | str | None = None,
    ) -> Sequence[InputOrder]:
        """Orders newest first; ``category`` matches any item's category."""
        return [
            m.to_dto()
            for m in self._repository.list_input_orders(
                status=status,
                farmer_id=farmer_id,
                supplier_id=supplier_id,
                category=category,
            )
        ]

    # =========================================================================
    # Helpers
    # =========================================================================

    def _save(self, model: InputOrderModel, order: InputOrder, action: str):
        model.update_from_dto(order, self._actor_id)
        self._session.flush()
        saved = model.to_dto()
        return saved, [order_event(saved, ChangeType.UPDATED, action)]

    def _check_credit_request(self, credit_request_id: UUID, farmer_id: UUID) -> None:
        try:
            request = self._repository.get_credit_request(credit_request_id)
        except NotFoundError as exc:
            raise ValidationError(
                "credit_request_id", f"no credit request with id {credit_request_id}"
            ) from exc
        if request.farmer_id != farmer_id:
            raise ValidationError(
                "credit_request_id", "credit request belongs to another farmer"
            )


def _order_items(items: Iterable[OrderItem | Mapping]) -> tuple[OrderItem, ...]:
    return tuple(_order_item(index, item) for index, item in enumerate(items))


def _order_item(index: int, value: OrderItem | Mapping) -> OrderItem:
    if isinstance(value, OrderItem):
        return replace(
            value, unit_price=_unit_price(f"items[{index}].unit_price", value.unit_price)
        )
    item_code = str(value.get("item_code") or f"ITEM-{index + 1}")
    try:
        return OrderItem(
            item_code=item_code,
            name=str(value.get("name") or item_code),
            category=InputCategory(value.get("category", InputCategory.OTHER)),
            unit_price=quantize_money(value.get("unit_price", 0)),
            quantity=value.get("quantity", 0),
            unit=str(value.get("unit") or "unit"),
        )
    except (ValueError, ArithmeticError) as exc:
        raise ValidationError(f"items[{index}]", str(exc)) from exc


def _unit_price(field: str, value) -> Decimal:
    try:
        return quantize_money(value)
    except ValueError as exc:
        raise ValidationError(field, str(exc)) from exc
