"""Reference-entity models for the credit kernel."""

from credit_kernel.models.farmer import Farmer
from credit_kernel.models.organization import Organization
from credit_kernel.models.supplier import Supplier, SupplierProduct
from credit_kernel.services.sequence_service import SequenceCounter

__all__ = [
    "Farmer",
    "Organization",
    "Supplier",
    "SupplierProduct",
    "SequenceCounter",
]
