"""
Module: credit_kernel.models.farmer
Responsibility: ORM persistence for farmers, the borrowers and order
    recipients every workflow resolves against.
Architecture position: Kernel > Models.  May import from db/ and the domain
    DTOs only.  MUST NOT import from services/, selectors/, or outer layers.

Invariants enforced:
    - phone_number is unique (uq_farmer_phone).
    - Farmers are read-mostly: workflows read them, registration lives
      outside the credit engine (EntityRepository.add_farmer seeds them).
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from credit_kernel.db.base import TrackedBase
from credit_kernel.domain.dtos import CoffeeType, FarmerInfo, Gender


class Farmer(TrackedBase):
    """
    A coffee farmer registered with the cooperative.

    Guarantees:
        - full_name, phone_number and district are always present.
        - organization_id, when set, references an Organization.
    """

    __tablename__ = "farmers"

    __table_args__ = (
        UniqueConstraint("phone_number", name="uq_farmer_phone"),
        Index("idx_farmer_district", "district"),
        Index("idx_farmer_organization", "organization_id"),
    )

    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    gender: Mapped[str | None] = mapped_column(String(20), nullable=True)
    phone_number: Mapped[str] = mapped_column(String(30), nullable=False)
    id_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    district: Mapped[str] = mapped_column(String(100), nullable=False)

    # Location
    address: Mapped[str | None] = mapped_column(String(500), nullable=True)
    gps_coordinates: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Farm
    farm_size_acres: Mapped[Decimal | None] = mapped_column(nullable=True)
    coffee_type: Mapped[str | None] = mapped_column(String(20), nullable=True)
    trees_count: Mapped[int | None] = mapped_column(Integer, nullable=True)

    organization_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("organizations.id"),
        nullable=True,
    )

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def to_dto(self) -> FarmerInfo:
        return FarmerInfo(
            id=self.id,
            full_name=self.full_name,
            phone_number=self.phone_number,
            district=self.district,
            gender=Gender(self.gender) if self.gender else None,
            id_number=self.id_number,
            address=self.address,
            gps_coordinates=self.gps_coordinates,
            farm_size_acres=self.farm_size_acres,
            coffee_type=CoffeeType(self.coffee_type) if self.coffee_type else None,
            trees_count=self.trees_count,
            organization_id=self.organization_id,
            is_active=self.is_active,
        )

    def __repr__(self) -> str:
        return f"<Farmer {self.full_name} ({self.district})>"
