"""
Structured logging as the engine emits it.

Validates:
- JSON envelope, bound context and extras on one line
- Engine DTOs, Decimals, UUIDs and enums serialized as text
- Engine exceptions expose code, retryable flag and their fields
- Context annotations are scoped to the operation that made them
- Service events carry the loan, order and invoice numbers they concern
"""

import json
import logging
import sys
from decimal import Decimal
from io import StringIO

import pytest

from credit_kernel.exceptions import ConflictError, InvalidStateError, TransientError
from credit_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    document_context,
    get_logger,
    reset_logging,
)
from credit_modules.loans.models import LoanStatus
from credit_modules.procurement.models import OrderStatus


def _format(logger_name: str, message: str, exc_info=None, **extra) -> dict:
    record = logging.LogRecord(
        logger_name, logging.INFO, __file__, 0, message, (), exc_info
    )
    record.__dict__.update(extra)
    return json.loads(StructuredFormatter().format(record))


class TestStructuredFormatter:

    def test_envelope_context_and_extras(self):
        with LogContext.bind(operation="record_payment", loan_number="LOAN-000007"):
            record = _format("credit_kernel.modules.loans.ledger", "loan_payment_recorded",
                             line_number=3)
        assert record["level"] == "INFO"
        assert record["logger"] == "credit_kernel.modules.loans.ledger"
        assert record["message"] == "loan_payment_recorded"
        assert record["operation"] == "record_payment"
        assert record["loan_number"] == "LOAN-000007"
        assert record["line_number"] == 3
        assert record["ts"].endswith("+00:00")

    def test_loan_dto_serialized(self, active_loan):
        record = _format("credit_kernel.test", "loan_snapshot", loan=active_loan)
        loan = record["loan"]
        assert loan["loan_number"] == "LOAN-000001"
        assert Decimal(loan["amount"]) == Decimal("100000")
        assert loan["status"] == "active"
        assert loan["borrower_type"] == "farmer"
        assert loan["due_date"] == "2024-07-15"
        assert loan["id"] == str(active_loan.id)

    def test_conflict_error_fields(self):
        try:
            raise ConflictError(entity_type="Loan", entity_id="loan-1", attempts=3)
        except ConflictError:
            record = _format("credit_kernel.test", "gave_up", exc_info=sys.exc_info())
        assert record["exc_type"] == "ConflictError"
        assert record["exc_code"] == "CONCURRENT_MODIFICATION"
        assert record["exc_retryable"] is True
        assert record["exc_attempts"] == 3
        assert record["exc_entity_id"] == "loan-1"
        assert "traceback" in record

    def test_transient_error_keeps_operation_apart(self):
        try:
            raise TransientError("record_payment", "database is locked")
        except TransientError:
            with LogContext.bind(operation="record_payment"):
                record = _format("credit_kernel.test", "failed", exc_info=sys.exc_info())
        assert record["operation"] == "record_payment"
        assert record["exc_operation"] == "record_payment"
        assert record["exc_retryable"] is True

    def test_plain_exception_has_no_code(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = _format("credit_kernel.test", "failed", exc_info=sys.exc_info())
        assert record["exc_type"] == "ValueError"
        assert "exc_code" not in record
        assert "exc_retryable" not in record


class TestLogContext:

    def test_bind_discards_annotations(self):
        with LogContext.bind(operation="approve_loan"):
            LogContext.set(loan_number="LOAN-000002")
            assert LogContext.get_all() == {
                "operation": "approve_loan",
                "loan_number": "LOAN-000002",
            }
        assert LogContext.get_all() == {}

    def test_unknown_field_rejected(self):
        with pytest.raises(ValueError):
            LogContext.set(loan_id="x")

    def test_document_context_for_order(self, procurement, farmer, supplier):
        order = procurement.create_order(
            farmer.id, supplier.id, [{"unit_price": 1000, "quantity": 1}]
        )
        assert document_context(order) == {
            "order_number": "ORD-000001",
            "invoice_number": "INV-000001",
            "farmer_id": str(farmer.id),
        }

    def test_nothing_leaks_after_operation(self, ledger, active_loan):
        ledger.record_payment(active_loan.id, Decimal("1000"))
        assert LogContext.get_all() == {}


class TestServiceEvents:

    def test_payment_recorded_names_loan(self, ledger, active_loan, farmer, captured_logs):
        ledger.record_payment(active_loan.id, Decimal("60000"))
        record = next(
            r for r in captured_logs() if r["message"] == "loan_payment_recorded"
        )
        assert record["operation"] == "record_payment"
        assert record["actor_id"] == "officer-test"
        assert record["loan_number"] == "LOAN-000001"
        assert record["borrower_id"] == str(farmer.id)
        assert record["status_before"] == LoanStatus.ACTIVE.value

    def test_overpayment_warning(self, ledger, active_loan, captured_logs):
        ledger.record_payment(active_loan.id, Decimal("120000"))
        record = next(r for r in captured_logs() if r["message"] == "loan_overpaid")
        assert record["level"] == "WARNING"
        assert record["loan_number"] == "LOAN-000001"
        assert Decimal(record["overpayment"]) == Decimal("20000")

    def test_rollback_names_loan(self, ledger, loan_manager, active_loan, captured_logs):
        loan_manager.mark_defaulted(active_loan.id)
        with pytest.raises(InvalidStateError):
            ledger.record_payment(active_loan.id, Decimal("10"))
        record = next(r for r in captured_logs() if r["message"] == "transaction_rolled_back")
        assert record["operation"] == "record_payment"
        assert record["loan_number"] == "LOAN-000001"

    def test_order_status_names_documents(self, procurement, farmer, supplier, captured_logs):
        order = procurement.create_order(
            farmer.id, supplier.id, [{"unit_price": 1000, "quantity": 1}]
        )
        procurement.advance_status(order.id, OrderStatus.SHIPPED)
        record = next(
            r for r in captured_logs() if r["message"] == "input_order_status_changed"
        )
        assert record["operation"] == "advance_input_order_status"
        assert record["order_number"] == "ORD-000001"
        assert record["invoice_number"] == "INV-000001"
        assert record["farmer_id"] == str(farmer.id)


class TestConfigureLogging:

    @pytest.fixture(autouse=True)
    def _fresh_logging(self):
        reset_logging()
        yield
        reset_logging()
        configure_logging(level=logging.DEBUG)

    def test_idempotent(self):
        configure_logging(stream=StringIO())
        configure_logging(stream=StringIO())
        assert len(logging.getLogger("credit_kernel").handlers) == 1

    def test_level_by_name(self):
        stream = StringIO()
        configure_logging(stream=stream, level="warning")
        get_logger("modules.loans.ledger").info("loan_payment_recorded")
        get_logger("modules.loans.ledger").warning("loan_overpaid")
        lines = [json.loads(line) for line in stream.getvalue().splitlines()]
        assert [line["message"] for line in lines] == ["loan_overpaid"]
        assert lines[0]["logger"] == "credit_kernel.modules.loans.ledger"
