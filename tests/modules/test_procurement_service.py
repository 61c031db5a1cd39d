"""
Tests for InputOrderProcurement.

Validates:
- Order creation, totals, and shared order/invoice numbering
- Farmer, supplier and credit-request checks
- Item updates, approval gate, and status moves (permissive and strict)
- Catalog items, invoice rendering, export rows and statistics
- Listing by status, farmer, supplier and category
"""

from dataclasses import replace
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from credit_kernel.domain.dtos import InputCategory
from credit_kernel.exceptions import InvalidTransitionError, NotFoundError, ValidationError
from credit_kernel.services.change_feed import ChangeType, Collection
from credit_modules.credit.models import AssessmentOutcome
from credit_modules.procurement.models import InvoiceData, OrderItem, OrderStatus
from credit_modules.procurement.service import InputOrderProcurement

SIMPLE_ITEMS = [
    {"unit_price": 50000, "quantity": 2},
    {"unit_price": 15000, "quantity": 1},
]


class PdfStub:
    """Renderer that records the invoice it was given."""

    def __init__(self):
        self.rendered = []

    def render(self, invoice: InvoiceData) -> bytes:
        self.rendered.append(invoice)
        return f"%PDF {invoice.invoice_number}".encode()


@pytest.fixture
def order(procurement, farmer, supplier):
    return procurement.create_order(farmer.id, supplier.id, SIMPLE_ITEMS)


@pytest.fixture
def strict_procurement(session, strict_config, deterministic_clock):
    return InputOrderProcurement(session, config=strict_config, clock=deterministic_clock)


class TestCreateOrder:

    def test_total_from_items(self, order):
        assert order.total_amount == Decimal("115000")
        assert order.status is OrderStatus.PENDING
        assert order.approved is False
        assert [i.item_code for i in order.items] == ["ITEM-1", "ITEM-2"]
        assert order.items[0].name == "ITEM-1"
        assert order.items[0].category is InputCategory.OTHER

    def test_order_and_invoice_share_number(self, procurement, farmer, supplier, order):
        second = procurement.create_order(farmer.id, supplier.id, SIMPLE_ITEMS)
        assert (order.order_number, order.invoice_number) == ("ORD-000001", "INV-000001")
        assert (second.order_number, second.invoice_number) == ("ORD-000002", "INV-000002")

    def test_catalog_items(self, procurement, farmer, supplier):
        items = [
            procurement.item_from_catalog(supplier.id, "NPK-50", 2),
            procurement.item_from_catalog(supplier.id, "SEED-SL28", 10, unit_price=Decimal("1400")),
        ]
        created = procurement.create_order(
            farmer.id, supplier.id, items, expected_delivery_date=date(2024, 2, 1)
        )
        assert created.total_amount == Decimal("114000")
        assert created.items[0].unit == "bag"
        assert created.items[1].category is InputCategory.SEEDS
        assert created.expected_delivery_date == date(2024, 2, 1)

    def test_high_scale_prices_rounded(self, procurement, farmer, supplier, session):
        created = procurement.create_order(
            farmer.id, supplier.id,
            [{"name": "Seedlings", "unit_price": "0.3333333333", "quantity": 3},
             OrderItem("HOE", "Hoe", InputCategory.TOOLS, Decimal("12000.005"), 2)],
        )
        assert [i.unit_price for i in created.items] == [Decimal("0.33"), Decimal("12000.01")]

        session.expire_all()
        stored = procurement.get(created.id)
        assert stored.total_amount == created.total_amount == Decimal("24001.01")
        assert stored.total_amount == sum(i.unit_price * i.quantity for i in stored.items)

    def test_catalog_price_override_rounded(self, procurement, supplier):
        item = procurement.item_from_catalog(supplier.id, "NPK-50", 1, unit_price="1399.999")
        assert item.unit_price == Decimal("1400.00")

    def test_malformed_catalog_price(self, procurement, supplier):
        with pytest.raises(ValidationError) as exc_info:
            procurement.item_from_catalog(supplier.id, "NPK-50", 1, unit_price="cheap")
        assert exc_info.value.field == "unit_price"

    def test_unknown_catalog_product(self, procurement, supplier):
        with pytest.raises(NotFoundError):
            procurement.item_from_catalog(supplier.id, "NOPE", 1)

    def test_inactive_catalog_product(self, procurement, repository, session, supplier):
        repository.add_supplier_product(
            supplier.id, "OLD-1", "Discontinued", "tools", Decimal("10"), is_active=False
        )
        session.commit()
        with pytest.raises(ValidationError):
            procurement.item_from_catalog(supplier.id, "OLD-1", 1)

    def test_empty_items(self, procurement, farmer, supplier):
        with pytest.raises(ValidationError):
            procurement.create_order(farmer.id, supplier.id, [])

    def test_malformed_item(self, procurement, farmer, supplier):
        with pytest.raises(ValidationError) as exc_info:
            procurement.create_order(
                farmer.id, supplier.id, [{"unit_price": "cheap", "quantity": 1}]
            )
        assert exc_info.value.field == "items[0]"

    def test_unknown_farmer(self, procurement, supplier):
        with pytest.raises(ValidationError) as exc_info:
            procurement.create_order(uuid4(), supplier.id, SIMPLE_ITEMS)
        assert exc_info.value.field == "farmer_id"

    def test_inactive_supplier(self, procurement, farmer, inactive_supplier):
        with pytest.raises(ValidationError) as exc_info:
            procurement.create_order(farmer.id, inactive_supplier.id, SIMPLE_ITEMS)
        assert exc_info.value.field == "supplier_id"
        assert procurement.list() == []

    def test_linked_credit_request(self, procurement, credit_workflow, farmer, supplier):
        request = credit_workflow.submit(farmer.id, Decimal("115000"), "Inputs")
        created = procurement.create_order(
            farmer.id, supplier.id, SIMPLE_ITEMS, credit_request_id=request.id
        )
        assert created.credit_request_id == request.id

    def test_credit_request_of_other_farmer(
        self, procurement, credit_workflow, farmer, other_farmer, supplier
    ):
        request = credit_workflow.submit(other_farmer.id, Decimal("1000"), "Inputs")
        with pytest.raises(ValidationError) as exc_info:
            procurement.create_order(
                farmer.id, supplier.id, SIMPLE_ITEMS, credit_request_id=request.id
            )
        assert exc_info.value.field == "credit_request_id"

    def test_unknown_credit_request(self, procurement, farmer, supplier):
        with pytest.raises(ValidationError):
            procurement.create_order(
                farmer.id, supplier.id, SIMPLE_ITEMS, credit_request_id=uuid4()
            )

    def test_created_event(self, procurement, change_feed, farmer, supplier):
        seen = []
        change_feed.subscribe(Collection.INPUT_ORDERS, seen.append)
        created = procurement.create_order(farmer.id, supplier.id, SIMPLE_ITEMS)
        assert [(e.change_type, e.entity_id) for e in seen] == [(ChangeType.CREATED, created.id)]


class TestUpdates:

    def test_update_items_recomputes_total(self, procurement, order):
        updated = procurement.update_items(
            order.id, [{"item_code": "HOE", "name": "Hoe", "category": "tools",
                        "unit_price": "12000", "quantity": 3}]
        )
        assert updated.total_amount == Decimal("36000")
        assert updated.item_revision == 2
        assert procurement.get(order.id).items[0].name == "Hoe"

    def test_update_items_idempotent(self, procurement, order):
        first = procurement.update_items(order.id, SIMPLE_ITEMS)
        second = procurement.update_items(order.id, SIMPLE_ITEMS)
        assert first.total_amount == second.total_amount == Decimal("115000")
        assert first.items == second.items

    def test_update_items_empty(self, procurement, order):
        with pytest.raises(ValidationError):
            procurement.update_items(order.id, [])

    def test_closed_order_refuses_items(self, procurement, order):
        procurement.advance_status(order.id, OrderStatus.DELIVERED)
        with pytest.raises(InvalidTransitionError):
            procurement.update_items(order.id, SIMPLE_ITEMS)
        assert procurement.get(order.id).total_amount == Decimal("115000")

    def test_approval_leaves_status(self, procurement, order):
        approved = procurement.set_approval(order.id, True)
        assert approved.approved is True
        assert approved.status is OrderStatus.PENDING
        assert procurement.set_approval(order.id, False).approved is False

    def test_permissive_status(self, procurement, order):
        delivered = procurement.advance_status(order.id, "delivered")
        assert delivered.status is OrderStatus.DELIVERED
        assert delivered.approved is False

    def test_unknown_status(self, procurement, order):
        with pytest.raises(ValidationError):
            procurement.advance_status(order.id, "lost")

    def test_strict_pipeline(self, strict_procurement, order):
        with pytest.raises(InvalidTransitionError):
            strict_procurement.advance_status(order.id, OrderStatus.DELIVERED)
        for status in (OrderStatus.APPROVED, OrderStatus.SHIPPED, OrderStatus.DELIVERED):
            moved = strict_procurement.advance_status(order.id, status)
        assert moved.status is OrderStatus.DELIVERED

    def test_status_change_logged(self, procurement, order, captured_logs):
        procurement.advance_status(order.id, OrderStatus.SHIPPED)
        records = [r for r in captured_logs() if r["message"] == "input_order_status_changed"]
        assert records[0]["from_status"] == "pending"
        assert records[0]["to_status"] == "shipped"
        assert records[0]["strict"] is False


class TestProjections:

    def test_render_invoice(self, procurement, order):
        renderer = PdfStub()
        document = procurement.render_invoice(order.id, renderer)
        assert document == b"%PDF INV-000001"
        invoice = renderer.rendered[0]
        assert invoice.farmer.full_name == "Nakato Sarah"
        assert invoice.supplier.name == "Elgon Agro Inputs"
        assert invoice.total_amount == Decimal("115000")
        assert invoice.currency == "UGX"

    def test_render_requires_renderer(self, procurement, order):
        with pytest.raises(TypeError):
            procurement.render_invoice(order.id, object())

    def test_export_rows(self, procurement, order):
        row = procurement.export_rows([order])[0]
        assert row.farmer_name == "Nakato Sarah"
        assert row.supplier_name == "Elgon Agro Inputs"
        assert row.items == "ITEM-1, ITEM-2"
        assert row.approved is False

    def test_export_rows_unknown_farmer(self, procurement, order):
        orphan = replace(order, farmer_id=uuid4())
        assert procurement.export_rows([orphan])[0].farmer_name == "Unknown"

    def test_order_stats(self, procurement, farmer, supplier, order):
        second = procurement.create_order(farmer.id, supplier.id, SIMPLE_ITEMS)
        procurement.advance_status(second.id, OrderStatus.DELIVERED)
        procurement.set_approval(second.id, True)
        stats = procurement.order_stats(procurement.list())
        assert stats.total_orders == 2
        assert stats.pending == 1
        assert stats.delivered == 1
        assert stats.approved == 1
        assert stats.total_value == Decimal("230000")


class TestQueries:

    def test_list_filters(self, procurement, farmer, other_farmer, supplier):
        fertilizer = procurement.create_order(
            farmer.id, supplier.id, [procurement.item_from_catalog(supplier.id, "NPK-50", 1)]
        )
        seeds = procurement.create_order(
            other_farmer.id, supplier.id,
            [OrderItem("SEED-SL28", "SL28", InputCategory.SEEDS, Decimal("1500"), 100)],
        )
        procurement.advance_status(seeds.id, OrderStatus.SHIPPED)

        assert [o.id for o in procurement.list(category="fertilizer")] == [fertilizer.id]
        assert [o.id for o in procurement.list(farmer_id=other_farmer.id)] == [seeds.id]
        assert [o.id for o in procurement.list(status=OrderStatus.SHIPPED)] == [seeds.id]
        assert len(procurement.list(supplier_id=supplier.id)) == 2

    def test_get_missing(self, procurement):
        with pytest.raises(NotFoundError):
            procurement.get(uuid4())

    def test_assessment_does_not_touch_orders(self, procurement, credit_workflow, farmer, supplier):
        request = credit_workflow.submit(farmer.id, Decimal("1000"), "Inputs")
        created = procurement.create_order(
            farmer.id, supplier.id, SIMPLE_ITEMS, credit_request_id=request.id
        )
        credit_workflow.assess(request.id, AssessmentOutcome.REJECTED)
        assert procurement.get(created.id) == created
