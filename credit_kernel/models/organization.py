"""
Module: credit_kernel.models.organization
Responsibility: ORM persistence for farmer organizations (cooperatives and
    SACCOs), which can hold loans in their own name.
Architecture position: Kernel > Models.
"""

from sqlalchemy import Boolean, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from credit_kernel.db.base import TrackedBase
from credit_kernel.domain.dtos import OrganizationInfo, OrganizationType


class Organization(TrackedBase):
    """A cooperative or SACCO that farmers belong to."""

    __tablename__ = "organizations"

    __table_args__ = (
        Index("idx_organization_type", "organization_type"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    organization_type: Mapped[str] = mapped_column(String(20), nullable=False)
    registration_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    district: Mapped[str | None] = mapped_column(String(100), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def to_dto(self) -> OrganizationInfo:
        return OrganizationInfo(
            id=self.id,
            name=self.name,
            organization_type=OrganizationType(self.organization_type),
            registration_number=self.registration_number,
            district=self.district,
            is_active=self.is_active,
        )

    def __repr__(self) -> str:
        return f"<Organization {self.name} ({self.organization_type})>"
