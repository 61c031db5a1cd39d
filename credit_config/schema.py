"""
Engine configuration schema.

``EngineConfig`` is the frozen runtime artifact every workflow service
reads its tunables from: currency, loan defaults, document-number
formats, the optimistic-retry budget, and the two product decisions
that are deliberately configurable (payments on pending loans, strict
input-order pipeline).
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from decimal import Decimal, InvalidOperation
from typing import Any, Self

from credit_kernel.logging_config import get_logger

logger = get_logger("config.schema")


@dataclass(frozen=True)
class EngineConfig:
    """
    Configuration for the credit and loan lifecycle engine.

    Field defaults mirror ``sets/default.yaml``.  Override for tests with
    ``dataclasses.replace`` or ``EngineConfig.from_dict``.
    """

    currency: str = "UGX"

    # Loans
    default_interest_rate: Decimal = Decimal("5")
    default_loan_term_months: int = 6
    accept_payments_on_pending: bool = True

    # Document numbers
    loan_number_prefix: str = "LOAN"
    order_number_prefix: str = "ORD"
    invoice_number_prefix: str = "INV"
    number_width: int = 6

    # Optimistic concurrency
    conflict_max_attempts: int = 3

    # Input orders
    enforce_order_pipeline: bool = False

    # Identity of the loaded source (set by the loader)
    checksum: str | None = None

    def __post_init__(self):
        if not self.currency or len(self.currency) != 3:
            raise ValueError(f"currency must be a 3-letter code, got {self.currency!r}")
        if self.default_interest_rate < 0:
            raise ValueError("default_interest_rate must be >= 0")
        if self.default_loan_term_months < 1:
            raise ValueError("default_loan_term_months must be >= 1")
        if self.number_width < 1:
            raise ValueError("number_width must be >= 1")
        if self.conflict_max_attempts < 1:
            raise ValueError("conflict_max_attempts must be >= 1")
        for name in ("loan_number_prefix", "order_number_prefix", "invoice_number_prefix"):
            if not getattr(self, name):
                raise ValueError(f"{name} must be non-empty")

        logger.info(
            "engine_config_initialized",
            extra={
                "currency": self.currency,
                "default_loan_term_months": self.default_loan_term_months,
                "conflict_max_attempts": self.conflict_max_attempts,
                "accept_payments_on_pending": self.accept_payments_on_pending,
                "enforce_order_pipeline": self.enforce_order_pipeline,
            },
        )

    @classmethod
    def with_defaults(cls) -> Self:
        """Create config with the cooperative's standard defaults."""
        logger.info("engine_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """
        Create config from a dictionary (e.g. a parsed YAML document).

        Raises:
            ValueError: On unknown keys or values of the wrong type.
        """
        logger.info(
            "engine_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown configuration keys: {', '.join(unknown)}")

        values = dict(data)
        if "default_interest_rate" in values:
            values["default_interest_rate"] = _parse_decimal(
                "default_interest_rate", values["default_interest_rate"]
            )
        for name in ("default_loan_term_months", "number_width", "conflict_max_attempts"):
            if name in values:
                values[name] = _parse_int(name, values[name])
        for name in ("accept_payments_on_pending", "enforce_order_pipeline"):
            if name in values and not isinstance(values[name], bool):
                raise ValueError(f"{name} must be a boolean, got {values[name]!r}")
        return cls(**values)


def _parse_decimal(name: str, value: Any) -> Decimal:
    if isinstance(value, bool):
        raise ValueError(f"{name} must be a number, got {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"{name} must be a number, got {value!r}") from exc


def _parse_int(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    return value
