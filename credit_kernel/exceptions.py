"""
Typed Exception Hierarchy for the Credit Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the credit engine (a UI layer, an API adapter, a batch script)
must be able to tell a bad input apart from an illegal transition, a missing
record, or a storage hiccup that is worth retrying. Parsing message strings
for that is fragile, so:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (entity id, attempted transition)

Example:
    try:
        workflow.assess(request_id, AssessmentOutcome.APPROVED, ...)
    except InvalidTransitionError as e:
        show(f"Request {e.entity_id} is already {e.current_state}")
    except TransientError:
        retry_later()

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    CreditEngineError (base)
    |
    +-- ValidationError
    |
    +-- InvalidTransitionError
    |   +-- InvalidStateError
    |
    +-- NotFoundError
    |
    +-- ConcurrencyError
    |   +-- ConflictError
    |
    +-- TransientError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Code                     | When Raised                              | Retry?
-------------------------|------------------------------------------|-----------
VALIDATION_ERROR         | Malformed or missing required input      | No
INVALID_TRANSITION       | Operation illegal in current entity state| After re-read
INVALID_STATE            | Payment against a closed/denied loan     | After re-read
NOT_FOUND                | Referenced entity id does not resolve    | No
CONCURRENT_MODIFICATION  | Optimistic version check failed          | After re-read
TRANSIENT_STORAGE_ERROR  | Storage/network failure or timeout       | With backoff
IMMUTABILITY_VIOLATION   | Update/delete of an append-only record   | No

===============================================================================
"""


class CreditEngineError(Exception):
    """
    Base exception for all credit engine errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "CREDIT_ENGINE_ERROR"
    retryable: bool = False


class ValidationError(CreditEngineError):
    """Input is malformed or a required value is missing. Caller's fault."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, field: str, reason: str, entity_id: str | None = None):
        self.field = field
        self.reason = reason
        self.entity_id = entity_id
        super().__init__(f"Invalid {field}: {reason}")


class InvalidTransitionError(CreditEngineError):
    """Operation is not legal in the entity's current state."""

    code: str = "INVALID_TRANSITION"

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        current_state: str,
        action: str,
        target_state: str | None = None,
    ):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.current_state = current_state
        self.action = action
        self.target_state = target_state
        target = f" -> {target_state}" if target_state else ""
        super().__init__(
            f"Cannot {action} {entity_type} {entity_id} in state "
            f"'{current_state}'{target}"
        )


class InvalidStateError(InvalidTransitionError):
    """Entity is in a state that does not accept the operation at all."""

    code: str = "INVALID_STATE"


class NotFoundError(CreditEngineError):
    """Referenced entity id does not resolve."""

    code: str = "NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} not found: {entity_id}")


class ConcurrencyError(CreditEngineError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"
    retryable = True


class ConflictError(ConcurrencyError):
    """A concurrent write to the same entity was detected."""

    code: str = "CONCURRENT_MODIFICATION"

    def __init__(self, entity_type: str, entity_id: str, attempts: int = 1):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.attempts = attempts
        super().__init__(
            f"Concurrent modification of {entity_type} {entity_id} "
            f"(gave up after {attempts} attempt(s))"
        )


class TransientError(CreditEngineError):
    """Storage or network failure. Safe to retry with backoff."""

    code: str = "TRANSIENT_STORAGE_ERROR"
    retryable = True

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        super().__init__(f"Transient failure during {operation}: {reason}")


class ImmutabilityError(CreditEngineError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """
    Attempted to modify or delete an immutable record.

    Payments are append-only ledger entries.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
