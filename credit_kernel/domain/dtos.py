"""
DTOs -- Reference-entity data transfer objects.

Responsibility:
    Immutable views of the read-mostly reference entities (farmers,
    organizations, suppliers and their catalog products) that the
    credit, loan, and procurement workflows resolve ids against.

Architecture position:
    Kernel > Domain -- pure value objects, zero I/O.  Built from ORM rows
    by ``to_dto()`` on the kernel models; services never hand ORM rows
    to callers.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from uuid import UUID


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class CoffeeType(str, Enum):
    """Coffee variety grown on a farm."""

    ARABICA = "arabica"
    ROBUSTA = "robusta"


class OrganizationType(str, Enum):
    """Farmer organizations that can borrow in their own name."""

    COOPERATIVE = "cooperative"
    SACCO = "sacco"


class InputCategory(str, Enum):
    """Farm-input catalog categories."""

    SEEDS = "seeds"
    FERTILIZER = "fertilizer"
    TOOLS = "tools"
    PESTICIDES = "pesticides"
    OTHER = "other"


@dataclass(frozen=True)
class FarmerInfo:
    id: UUID
    full_name: str
    phone_number: str
    district: str
    gender: Gender | None = None
    id_number: str | None = None
    address: str | None = None
    gps_coordinates: str | None = None
    farm_size_acres: Decimal | None = None
    coffee_type: CoffeeType | None = None
    trees_count: int | None = None
    organization_id: UUID | None = None
    is_active: bool = True


@dataclass(frozen=True)
class OrganizationInfo:
    id: UUID
    name: str
    organization_type: OrganizationType
    registration_number: str | None = None
    district: str | None = None
    is_active: bool = True


@dataclass(frozen=True)
class SupplierProductInfo:
    """A catalog entry offered by a supplier."""

    id: UUID
    supplier_id: UUID
    product_code: str
    name: str
    category: InputCategory
    unit: str
    unit_price: Decimal
    is_active: bool = True


@dataclass(frozen=True)
class SupplierInfo:
    id: UUID
    name: str
    category: InputCategory
    contact_person: str | None = None
    phone_number: str | None = None
    email: str | None = None
    location: str | None = None
    is_active: bool = True
    products: tuple[SupplierProductInfo, ...] = ()
