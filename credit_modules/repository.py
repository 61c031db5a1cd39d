"""
EntityRepository -- typed load/save/query per entity.

Responsibility
--------------
One method set per entity type, replacing string-keyed collection access.
The repository carries no business rules: workflow services decide what
may change, the repository only loads, stages, and filters rows.

Architecture position
---------------------
**Modules layer** -- flush-only (``BaseService`` contract).  The owning
workflow service commits or rolls back.

Conventions
-----------
* ``get_*`` raises ``NotFoundError(entity_type, entity_id)``.
* ``list_*`` takes keyword filters; workflow entities come back newest
  first, reference entities in name order.
* ``add_farmer``/``add_organization``/``add_supplier``/
  ``add_supplier_product`` register reference data for seeding and tests.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from credit_kernel.db.types import quantize_money
from credit_kernel.domain.dtos import CoffeeType, Gender, InputCategory, OrganizationType
from credit_kernel.exceptions import NotFoundError
from credit_kernel.logging_config import get_logger
from credit_kernel.models import Farmer, Organization, Supplier, SupplierProduct
from credit_kernel.services.base import BaseService
from credit_modules.credit.orm import CreditRequestModel
from credit_modules.loans.orm import LoanModel, PaymentModel
from credit_modules.procurement.orm import InputOrderItemModel, InputOrderModel

logger = get_logger("modules.repository")


def _value(enum_or_str) -> str | None:
    if enum_or_str is None:
        return None
    return getattr(enum_or_str, "value", enum_or_str)


class EntityRepository(BaseService):
    """Typed persistence access for every engine entity."""

    # =========================================================================
    # Farmers
    # =========================================================================

    def get_farmer(self, farmer_id: UUID) -> Farmer:
        farmer = self.session.get(Farmer, farmer_id)
        if farmer is None:
            raise NotFoundError("Farmer", str(farmer_id))
        return farmer

    def find_farmer(self, farmer_id: UUID) -> Farmer | None:
        return self.session.get(Farmer, farmer_id)

    def list_farmers(
        self,
        *,
        district: str | None = None,
        organization_id: UUID | None = None,
        active_only: bool = False,
    ) -> Sequence[Farmer]:
        stmt = select(Farmer)
        if district is not None:
            stmt = stmt.where(Farmer.district == district)
        if organization_id is not None:
            stmt = stmt.where(Farmer.organization_id == organization_id)
        if active_only:
            stmt = stmt.where(Farmer.is_active.is_(True))
        return self.session.scalars(stmt.order_by(Farmer.full_name, Farmer.id)).all()

    def add_farmer(
        self,
        full_name: str,
        phone_number: str,
        district: str,
        *,
        gender: Gender | str | None = None,
        id_number: str | None = None,
        address: str | None = None,
        gps_coordinates: str | None = None,
        farm_size_acres: Decimal | None = None,
        coffee_type: CoffeeType | str | None = None,
        trees_count: int | None = None,
        organization_id: UUID | None = None,
        is_active: bool = True,
        created_by: str = "system",
    ) -> Farmer:
        farmer = Farmer(
            full_name=full_name,
            phone_number=phone_number,
            district=district,
            gender=_value(gender),
            id_number=id_number,
            address=address,
            gps_coordinates=gps_coordinates,
            farm_size_acres=farm_size_acres,
            coffee_type=_value(coffee_type),
            trees_count=trees_count,
            organization_id=organization_id,
            is_active=is_active,
            created_by=created_by,
        )
        self.session.add(farmer)
        self.session.flush()
        logger.info("farmer_registered", extra={"farmer_id": str(farmer.id)})
        return farmer

    # =========================================================================
    # Organizations
    # =========================================================================

    def get_organization(self, organization_id: UUID) -> Organization:
        organization = self.session.get(Organization, organization_id)
        if organization is None:
            raise NotFoundError("Organization", str(organization_id))
        return organization

    def find_organization(self, organization_id: UUID) -> Organization | None:
        return self.session.get(Organization, organization_id)

    def list_organizations(
        self,
        *,
        organization_type: OrganizationType | str | None = None,
        active_only: bool = False,
    ) -> Sequence[Organization]:
        stmt = select(Organization)
        if organization_type is not None:
            stmt = stmt.where(Organization.organization_type == _value(organization_type))
        if active_only:
            stmt = stmt.where(Organization.is_active.is_(True))
        return self.session.scalars(stmt.order_by(Organization.name, Organization.id)).all()

    def add_organization(
        self,
        name: str,
        organization_type: OrganizationType | str,
        *,
        registration_number: str | None = None,
        district: str | None = None,
        is_active: bool = True,
        created_by: str = "system",
    ) -> Organization:
        organization = Organization(
            name=name,
            organization_type=_value(OrganizationType(organization_type)),
            registration_number=registration_number,
            district=district,
            is_active=is_active,
            created_by=created_by,
        )
        self.session.add(organization)
        self.session.flush()
        logger.info("organization_registered", extra={"organization_id": str(organization.id)})
        return organization

    # =========================================================================
    # Suppliers and catalog
    # =========================================================================

    def get_supplier(self, supplier_id: UUID) -> Supplier:
        supplier = self.session.get(Supplier, supplier_id)
        if supplier is None:
            raise NotFoundError("Supplier", str(supplier_id))
        return supplier

    def find_supplier(self, supplier_id: UUID) -> Supplier | None:
        return self.session.get(Supplier, supplier_id)

    def list_suppliers(
        self,
        *,
        category: InputCategory | str | None = None,
        active_only: bool = False,
    ) -> Sequence[Supplier]:
        stmt = select(Supplier)
        if category is not None:
            stmt = stmt.where(Supplier.category == _value(category))
        if active_only:
            stmt = stmt.where(Supplier.is_active.is_(True))
        return self.session.scalars(stmt.order_by(Supplier.name, Supplier.id)).all()

    def add_supplier(
        self,
        name: str,
        category: InputCategory | str,
        *,
        contact_person: str | None = None,
        phone_number: str | None = None,
        email: str | None = None,
        location: str | None = None,
        is_active: bool = True,
        created_by: str = "system",
    ) -> Supplier:
        supplier = Supplier(
            name=name,
            category=_value(InputCategory(category)),
            contact_person=contact_person,
            phone_number=phone_number,
            email=email,
            location=location,
            is_active=is_active,
            created_by=created_by,
        )
        self.session.add(supplier)
        self.session.flush()
        logger.info("supplier_registered", extra={"supplier_id": str(supplier.id)})
        return supplier

    def get_supplier_product(self, supplier_id: UUID, product_code: str) -> SupplierProduct:
        product = self.session.scalars(
            select(SupplierProduct).where(
                SupplierProduct.supplier_id == supplier_id,
                SupplierProduct.product_code == product_code,
            )
        ).one_or_none()
        if product is None:
            raise NotFoundError("SupplierProduct", f"{supplier_id}/{product_code}")
        return product

    def add_supplier_product(
        self,
        supplier_id: UUID,
        product_code: str,
        name: str,
        category: InputCategory | str,
        unit_price: Decimal,
        *,
        unit: str = "unit",
        is_active: bool = True,
        created_by: str = "system",
    ) -> SupplierProduct:
        supplier = self.get_supplier(supplier_id)
        product = SupplierProduct(
            supplier_id=supplier.id,
            product_code=product_code,
            name=name,
            category=_value(InputCategory(category)),
            unit=unit,
            unit_price=quantize_money(unit_price),
            is_active=is_active,
            created_by=created_by,
        )
        supplier.products.append(product)
        self.session.flush()
        return product

    # =========================================================================
    # Credit requests
    # =========================================================================

    def get_credit_request(self, request_id: UUID) -> CreditRequestModel:
        request = self.session.get(CreditRequestModel, request_id)
        if request is None:
            raise NotFoundError("CreditRequest", str(request_id))
        return request

    def list_credit_requests(
        self,
        *,
        status: str | None = None,
        farmer_id: UUID | None = None,
    ) -> Sequence[CreditRequestModel]:
        stmt = select(CreditRequestModel)
        if status is not None:
            stmt = stmt.where(CreditRequestModel.status == _value(status))
        if farmer_id is not None:
            stmt = stmt.where(CreditRequestModel.farmer_id == farmer_id)
        stmt = stmt.order_by(
            CreditRequestModel.request_date.desc(),
            CreditRequestModel.created_at.desc(),
            CreditRequestModel.id,
        )
        return self.session.scalars(stmt).all()

    def add_credit_request(self, request: CreditRequestModel) -> CreditRequestModel:
        self.session.add(request)
        self.session.flush()
        return request

    # =========================================================================
    # Loans and payments
    # =========================================================================

    def get_loan(self, loan_id: UUID) -> LoanModel:
        loan = self.session.get(LoanModel, loan_id)
        if loan is None:
            raise NotFoundError("Loan", str(loan_id))
        return loan

    def get_loan_by_number(self, loan_number: str) -> LoanModel:
        loan = self.session.scalars(
            select(LoanModel).where(LoanModel.loan_number == loan_number)
        ).one_or_none()
        if loan is None:
            raise NotFoundError("Loan", loan_number)
        return loan

    def list_loans(
        self,
        *,
        status: str | None = None,
        borrower_id: UUID | None = None,
        borrower_type: str | None = None,
    ) -> Sequence[LoanModel]:
        stmt = select(LoanModel)
        if status is not None:
            stmt = stmt.where(LoanModel.status == _value(status))
        if borrower_id is not None:
            stmt = stmt.where(LoanModel.borrower_id == borrower_id)
        if borrower_type is not None:
            stmt = stmt.where(LoanModel.borrower_type == _value(borrower_type))
        stmt = stmt.order_by(LoanModel.request_date.desc(), LoanModel.loan_number.desc())
        return self.session.scalars(stmt).all()

    def add_loan(self, loan: LoanModel) -> LoanModel:
        self.session.add(loan)
        self.session.flush()
        return loan

    def list_payments(self, loan_id: UUID) -> Sequence[PaymentModel]:
        """A loan's payments in ledger order (oldest first)."""
        stmt = (
            select(PaymentModel)
            .where(PaymentModel.loan_id == loan_id)
            .order_by(PaymentModel.line_number)
        )
        return self.session.scalars(stmt).all()

    def add_payment(self, payment: PaymentModel) -> PaymentModel:
        self.session.add(payment)
        self.session.flush()
        return payment

    # =========================================================================
    # Input orders
    # =========================================================================

    def get_input_order(self, order_id: UUID) -> InputOrderModel:
        order = self.session.get(InputOrderModel, order_id)
        if order is None:
            raise NotFoundError("InputOrder", str(order_id))
        return order

    def list_input_orders(
        self,
        *,
        status: str | None = None,
        farmer_id: UUID | None = None,
        supplier_id: UUID | None = None,
        category: str | None = None,
        ordered_from: date | None = None,
        ordered_to: date | None = None,
    ) -> Sequence[InputOrderModel]:
        stmt = select(InputOrderModel)
        if status is not None:
            stmt = stmt.where(InputOrderModel.status == _value(status))
        if farmer_id is not None:
            stmt = stmt.where(InputOrderModel.farmer_id == farmer_id)
        if supplier_id is not None:
            stmt = stmt.where(InputOrderModel.supplier_id == supplier_id)
        if category is not None:
            stmt = stmt.where(
                InputOrderModel.items.any(InputOrderItemModel.category == _value(category))
            )
        if ordered_from is not None:
            stmt = stmt.where(InputOrderModel.order_date >= ordered_from)
        if ordered_to is not None:
            stmt = stmt.where(InputOrderModel.order_date <= ordered_to)
        stmt = stmt.order_by(InputOrderModel.order_date.desc(), InputOrderModel.order_number.desc())
        return self.session.scalars(stmt).all()

    def add_input_order(self, order: InputOrderModel) -> InputOrderModel:
        self.session.add(order)
        self.session.flush()
        return order
