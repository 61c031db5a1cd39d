"""
Module: credit_kernel.models.supplier
Responsibility: ORM persistence for input suppliers and their product
    catalogs.  Input orders reference a supplier and may be built from
    catalog products.
Architecture position: Kernel > Models.

Invariants enforced:
    - product_code is unique within a supplier's catalog
      (uq_supplier_product_code).
    - Catalog prices are Decimal, never float.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from credit_kernel.db.base import TrackedBase
from credit_kernel.domain.dtos import InputCategory, SupplierInfo, SupplierProductInfo


class Supplier(TrackedBase):
    """
    A registered farm-input supplier.

    Guarantees:
        - Only active suppliers accept new orders (checked by procurement).
    """

    __tablename__ = "suppliers"

    __table_args__ = (
        Index("idx_supplier_category", "category"),
        Index("idx_supplier_active", "is_active"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(30), nullable=False)
    contact_person: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone_number: Mapped[str | None] = mapped_column(String(30), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    products: Mapped[list["SupplierProduct"]] = relationship(
        "SupplierProduct",
        back_populates="supplier",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="SupplierProduct.product_code",
    )

    def to_dto(self) -> SupplierInfo:
        return SupplierInfo(
            id=self.id,
            name=self.name,
            category=InputCategory(self.category),
            contact_person=self.contact_person,
            phone_number=self.phone_number,
            email=self.email,
            location=self.location,
            is_active=self.is_active,
            products=tuple(p.to_dto() for p in self.products),
        )

    def __repr__(self) -> str:
        return f"<Supplier {self.name} [{self.category}]>"


class SupplierProduct(TrackedBase):
    """A product line in a supplier's catalog."""

    __tablename__ = "supplier_products"

    __table_args__ = (
        UniqueConstraint("supplier_id", "product_code", name="uq_supplier_product_code"),
    )

    supplier_id: Mapped[UUID] = mapped_column(ForeignKey("suppliers.id"), nullable=False)
    product_code: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(30), nullable=False)
    unit: Mapped[str] = mapped_column(String(30), nullable=False, default="unit")
    unit_price: Mapped[Decimal] = mapped_column(nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    supplier: Mapped[Supplier] = relationship("Supplier", back_populates="products")

    def to_dto(self) -> SupplierProductInfo:
        return SupplierProductInfo(
            id=self.id,
            supplier_id=self.supplier_id,
            product_code=self.product_code,
            name=self.name,
            category=InputCategory(self.category),
            unit=self.unit,
            unit_price=self.unit_price,
            is_active=self.is_active,
        )

    def __repr__(self) -> str:
        return f"<SupplierProduct {self.product_code}: {self.name}>"
