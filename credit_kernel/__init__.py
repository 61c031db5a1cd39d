"""
Credit Kernel

The shared core of the coffee cooperative credit engine:
- Declarative persistence with optimistic versioning
- Typed, code-carrying exceptions
- Structured JSON logging
- Deterministic clock and workflow primitives
- Reference entities (farmers, organizations, suppliers)
"""

__version__ = "0.1.0"
