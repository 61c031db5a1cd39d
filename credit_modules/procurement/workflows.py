"""
Input Order Workflows.

The input-order state machine and the pure transitions applied by
``InputOrderProcurement``.

Status changes are permissive by default: an operator may set any status,
matching how orders are handled in the field.  With
``EngineConfig.enforce_order_pipeline`` the workflow below is enforced and
``delivered``/``cancelled`` become terminal.  The ``approved`` flag is a
separate gate and never changes ``status``.
"""

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal
from uuid import UUID

from credit_kernel.domain.workflow import Guard, Transition, Workflow
from credit_kernel.exceptions import InvalidTransitionError, ValidationError
from credit_kernel.logging_config import get_logger
from credit_modules.procurement.models import InputOrder, OrderItem, OrderStatus

logger = get_logger("modules.procurement.workflows")

ENTITY_TYPE = "InputOrder"

# Orders in these states no longer accept item changes.
CLOSED_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

SUPPLIER_CONFIRMED = Guard(
    name="supplier_confirmed",
    description="Supplier has confirmed availability",
)

GOODS_RECEIVED = Guard(
    name="goods_received",
    description="Farmer acknowledged receipt of the inputs",
)


# -----------------------------------------------------------------------------
# Input Order Workflow
# -----------------------------------------------------------------------------

INPUT_ORDER_WORKFLOW = Workflow(
    name="input_order",
    description="Farm-input order from placement to delivery",
    initial_state=OrderStatus.PENDING.value,
    states=tuple(s.value for s in OrderStatus),
    transitions=(
        Transition("pending", "approved", action="approve", guard=SUPPLIER_CONFIRMED),
        Transition("approved", "shipped", action="ship"),
        Transition("shipped", "delivered", action="deliver", guard=GOODS_RECEIVED),
        Transition("pending", "cancelled", action="cancel"),
        Transition("approved", "cancelled", action="cancel"),
        Transition("shipped", "cancelled", action="cancel"),
    ),
    terminal_states=("delivered", "cancelled"),
)

logger.info(
    "input_order_workflow_registered",
    extra={
        "workflow_name": INPUT_ORDER_WORKFLOW.name,
        "state_count": len(INPUT_ORDER_WORKFLOW.states),
        "transition_count": len(INPUT_ORDER_WORKFLOW.transitions),
        "initial_state": INPUT_ORDER_WORKFLOW.initial_state,
    },
)


# -----------------------------------------------------------------------------
# Items
# -----------------------------------------------------------------------------


def validate_items(items: tuple[OrderItem, ...], entity_id: UUID | None = None) -> None:
    """
    At least one item; whole quantities of at least one; prices non-negative.

    Raises:
        ValidationError: On the first offending item.
    """
    eid = str(entity_id) if entity_id is not None else None
    if not items:
        raise ValidationError("items", "at least one item is required", entity_id=eid)
    for index, item in enumerate(items):
        if not item.name or not item.name.strip():
            raise ValidationError(f"items[{index}].name", "is required", entity_id=eid)
        if isinstance(item.quantity, bool) or not isinstance(item.quantity, int):
            raise ValidationError(
                f"items[{index}].quantity", "must be a whole number", entity_id=eid
            )
        if item.quantity < 1:
            raise ValidationError(
                f"items[{index}].quantity", "must be at least 1", entity_id=eid
            )
        if item.unit_price < 0:
            raise ValidationError(
                f"items[{index}].unit_price", "cannot be negative", entity_id=eid
            )


def compute_total(items: tuple[OrderItem, ...]) -> Decimal:
    """Sum of quantity x unit price over all items."""
    return sum((item.line_total for item in items), Decimal("0"))


# -----------------------------------------------------------------------------
# Transitions
# -----------------------------------------------------------------------------


def apply_items(order: InputOrder, items: tuple[OrderItem, ...]) -> InputOrder:
    """Replace the item list and recompute the total."""
    if order.status in CLOSED_STATUSES:
        raise InvalidTransitionError(
            entity_type=ENTITY_TYPE,
            entity_id=str(order.id),
            current_state=order.status.value,
            action="update_items",
        )
    validate_items(items, order.id)
    return replace(
        order,
        items=tuple(items),
        total_amount=compute_total(items),
        item_revision=order.item_revision + 1,
    )


def apply_approval(order: InputOrder, approved: bool) -> InputOrder:
    """Toggle the approval gate; status is untouched."""
    return replace(order, approved=bool(approved))


def apply_status(order: InputOrder, next_status: OrderStatus, strict: bool) -> InputOrder:
    """
    Move ``order`` to ``next_status``.

    Permissive mode accepts any status; strict mode requires a workflow
    transition between the two states.
    """
    if strict:
        if not INPUT_ORDER_WORKFLOW.allows(order.status.value, next_status.value):
            raise InvalidTransitionError(
                entity_type=ENTITY_TYPE,
                entity_id=str(order.id),
                current_state=order.status.value,
                action="advance_status",
                target_state=next_status.value,
            )
    elif order.status in CLOSED_STATUSES and next_status is not order.status:
        logger.warning(
            "input_order_closed_status_changed",
            extra={
                "order_number": order.order_number,
                "from_status": order.status.value,
                "to_status": next_status.value,
            },
        )
    return replace(order, status=next_status)
