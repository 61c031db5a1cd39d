"""
SQLAlchemy ORM persistence models for the Procurement module.

Invariants enforced
-------------------
* All monetary fields use ``Decimal`` (Numeric(38,9)) -- NEVER float.
* ``order_number`` and ``invoice_number`` are unique.
* ``InputOrderModel.version`` is the optimistic concurrency token; item
  replacements bump ``item_revision`` so they always version the order row.
* ``InputOrderItemModel`` belongs to exactly one ``InputOrderModel``.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, Date, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from credit_kernel.db.base import TrackedBase
from credit_kernel.domain.dtos import InputCategory
from credit_modules.procurement.models import InputOrder, OrderItem, OrderStatus

# ---------------------------------------------------------------------------
# InputOrderModel
# ---------------------------------------------------------------------------


class InputOrderModel(TrackedBase):
    """
    A farm-input order.

    Maps to the ``InputOrder`` DTO in ``credit_modules.procurement.models``.
    """

    __tablename__ = "input_orders"

    __table_args__ = (
        UniqueConstraint("order_number", name="uq_input_order_number"),
        UniqueConstraint("invoice_number", name="uq_input_order_invoice"),
        Index("idx_input_order_farmer", "farmer_id"),
        Index("idx_input_order_supplier", "supplier_id"),
        Index("idx_input_order_status", "status"),
    )

    order_number: Mapped[str] = mapped_column(String(50), nullable=False)
    invoice_number: Mapped[str] = mapped_column(String(50), nullable=False)
    farmer_id: Mapped[UUID] = mapped_column(ForeignKey("farmers.id"), nullable=False)
    supplier_id: Mapped[UUID] = mapped_column(ForeignKey("suppliers.id"), nullable=False)
    credit_request_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("credit_requests.id"), nullable=True
    )
    order_date: Mapped[date] = mapped_column(Date, nullable=False)
    expected_delivery_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    total_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="pending")
    approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    item_revision: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    items: Mapped[list["InputOrderItemModel"]] = relationship(
        "InputOrderItemModel",
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="InputOrderItemModel.line_number",
    )

    __mapper_args__ = {"version_id_col": version}

    def to_dto(self) -> InputOrder:
        return InputOrder(
            id=self.id,
            order_number=self.order_number,
            invoice_number=self.invoice_number,
            farmer_id=self.farmer_id,
            supplier_id=self.supplier_id,
            order_date=self.order_date,
            items=tuple(i.to_dto() for i in self.items),
            total_amount=self.total_amount,
            status=OrderStatus(self.status),
            approved=self.approved,
            expected_delivery_date=self.expected_delivery_date,
            credit_request_id=self.credit_request_id,
            notes=self.notes,
            item_revision=self.item_revision,
            version=self.version,
        )

    @classmethod
    def from_dto(cls, dto: InputOrder, created_by: str) -> "InputOrderModel":
        return cls(
            id=dto.id,
            order_number=dto.order_number,
            invoice_number=dto.invoice_number,
            farmer_id=dto.farmer_id,
            supplier_id=dto.supplier_id,
            credit_request_id=dto.credit_request_id,
            order_date=dto.order_date,
            expected_delivery_date=dto.expected_delivery_date,
            total_amount=dto.total_amount,
            status=dto.status.value,
            approved=dto.approved,
            notes=dto.notes,
            item_revision=dto.item_revision,
            items=_item_models(dto.items, created_by),
            created_by=created_by,
        )

    def update_from_dto(self, dto: InputOrder, updated_by: str) -> None:
        """Copy mutable fields; items are replaced only when the revision moved."""
        self.status = dto.status.value
        self.approved = dto.approved
        self.total_amount = dto.total_amount
        if dto.item_revision != self.item_revision:
            self.items = _item_models(dto.items, updated_by)
            self.item_revision = dto.item_revision
        self.updated_by = updated_by

    def __repr__(self) -> str:
        return f"<InputOrderModel {self.order_number} [{self.status}]>"


def _item_models(items: tuple[OrderItem, ...], actor: str) -> list["InputOrderItemModel"]:
    return [
        InputOrderItemModel(
            line_number=index + 1,
            item_code=item.item_code,
            name=item.name,
            category=item.category.value,
            unit=item.unit,
            unit_price=item.unit_price,
            quantity=item.quantity,
            line_total=item.line_total,
            created_by=actor,
        )
        for index, item in enumerate(items)
    ]


# ---------------------------------------------------------------------------
# InputOrderItemModel
# ---------------------------------------------------------------------------


class InputOrderItemModel(TrackedBase):
    """A line item on an input order."""

    __tablename__ = "input_order_items"

    __table_args__ = (
        Index("idx_input_order_item_order", "order_id"),
        Index("idx_input_order_item_category", "category"),
    )

    order_id: Mapped[UUID] = mapped_column(ForeignKey("input_orders.id"), nullable=False)
    line_number: Mapped[int] = mapped_column(Integer, nullable=False)
    item_code: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(30), nullable=False)
    unit: Mapped[str] = mapped_column(String(30), nullable=False, default="unit")
    unit_price: Mapped[Decimal] = mapped_column(nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    line_total: Mapped[Decimal] = mapped_column(nullable=False)

    order: Mapped[InputOrderModel] = relationship("InputOrderModel", back_populates="items")

    def to_dto(self) -> OrderItem:
        return OrderItem(
            item_code=self.item_code,
            name=self.name,
            category=InputCategory(self.category),
            unit_price=self.unit_price,
            quantity=self.quantity,
            unit=self.unit,
        )
