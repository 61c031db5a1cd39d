"""Read-only selectors."""

from credit_kernel.selectors.base import BaseSelector

__all__ = ["BaseSelector"]
