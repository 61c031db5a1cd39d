"""
Canonical workflow types (``credit_kernel.domain.workflow``).

Responsibility
--------------
Pure value objects for workflow state machines.  Used by every module
(credit requests, loans, input orders) so that Guard, Transition, and
Workflow are defined once, together with the lookup that decides whether
an action is legal from a given state.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``services/``, ``selectors/``, or outer layers.

Invariants enforced
-------------------
* Transitions reference only states in ``Workflow.states``.
* ``initial_state`` is a member of ``states``.
* Terminal states have no outgoing transitions.
"""

from __future__ import annotations

from dataclasses import dataclass

from credit_kernel.exceptions import InvalidTransitionError


@dataclass(frozen=True)
class Guard:
    """A condition that must be satisfied before a transition fires.

    Contract: frozen, descriptive only.
    Non-goals: does not evaluate the condition -- the owning service does.
    """
    name: str
    description: str


@dataclass(frozen=True)
class Transition:
    """A valid state transition in a workflow."""
    from_state: str
    to_state: str
    action: str
    guard: Guard | None = None


@dataclass(frozen=True)
class Workflow:
    """A state machine definition for a document lifecycle.

    Contract: frozen; ``transitions`` reference only states in ``states``.
    Guarantees: ``initial_state`` is a member of ``states``.
    """
    name: str
    description: str
    initial_state: str
    states: tuple[str, ...]
    transitions: tuple[Transition, ...]
    terminal_states: tuple[str, ...] = ()

    def __post_init__(self):
        if self.initial_state not in self.states:
            raise ValueError(
                f"Workflow {self.name}: initial state "
                f"'{self.initial_state}' is not a declared state"
            )
        for t in self.transitions:
            if t.from_state not in self.states or t.to_state not in self.states:
                raise ValueError(
                    f"Workflow {self.name}: transition {t.action} "
                    f"references an undeclared state"
                )
            if t.from_state in self.terminal_states:
                raise ValueError(
                    f"Workflow {self.name}: terminal state "
                    f"'{t.from_state}' has outgoing transition {t.action}"
                )

    def transitions_from(self, state: str) -> tuple[Transition, ...]:
        return tuple(t for t in self.transitions if t.from_state == state)

    def find(self, from_state: str, action: str) -> Transition | None:
        """Return the transition for ``action`` out of ``from_state``, if any."""
        for t in self.transitions:
            if t.from_state == from_state and t.action == action:
                return t
        return None

    def allows(self, from_state: str, to_state: str) -> bool:
        return any(
            t.from_state == from_state and t.to_state == to_state
            for t in self.transitions
        )

    def is_terminal(self, state: str) -> bool:
        return state in self.terminal_states


def require_transition(
    workflow: Workflow,
    entity_type: str,
    entity_id: object,
    current_state: str,
    action: str,
    target_state: str | None = None,
) -> Transition:
    """
    Resolve the transition for ``action`` or raise.

    When ``target_state`` is given the transition must also land there
    (used where one action can branch, e.g. assessing to approved or
    rejected).

    Raises:
        InvalidTransitionError: If no matching transition exists.
    """
    for t in workflow.transitions_from(current_state):
        if t.action == action and (target_state is None or t.to_state == target_state):
            return t
    raise InvalidTransitionError(
        entity_type=entity_type,
        entity_id=str(entity_id),
        current_state=current_state,
        action=action,
        target_state=target_state,
    )
