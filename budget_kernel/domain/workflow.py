"""
Canonical workflow types (``budget_kernel.domain.workflow``).

Responsibility
--------------
Pure value objects for approval state machines, and the one approval
workflow shared by cost allocations, budget amendments and change orders:

    draft --submit--> pending --approve--> approved
                              --reject---> rejected

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``services/``, ``selectors/``, or outer layers.

Invariants enforced
-------------------
* Transitions reference only states in ``Workflow.states``.
* ``initial_state`` is a member of ``states``.
* Terminal states have no outgoing transitions.
* An action requested from a state with no matching transition raises
  ``InvalidTransitionError``; it is never a silent no-op.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from budget_kernel.domain.roles import Capability
from budget_kernel.exceptions import InvalidTransitionError, UnknownWorkflowActionError


class ApprovalStatus(str, Enum):
    """Lifecycle states of an approvable record."""

    DRAFT = "draft"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


TERMINAL_APPROVAL_STATUSES: frozenset[ApprovalStatus] = frozenset({
    ApprovalStatus.APPROVED,
    ApprovalStatus.REJECTED,
})


@dataclass(frozen=True)
class Guard:
    """A condition that must be satisfied before a transition fires.

    Descriptive only; the facade owning the transition evaluates it.
    """
    name: str
    description: str


@dataclass(frozen=True)
class Transition:
    """A valid state transition in a workflow.

    ``capability`` is what the acting role must carry.
    ``requires_comment`` makes a non-empty comment mandatory.
    """
    from_state: str
    to_state: str
    action: str
    capability: Capability
    guard: Guard | None = None
    requires_comment: bool = False


@dataclass(frozen=True)
class Workflow:
    """A state machine definition for a document lifecycle."""
    name: str
    description: str
    initial_state: str
    states: tuple[str, ...]
    transitions: tuple[Transition, ...]
    terminal_states: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.initial_state not in self.states:
            raise ValueError(f"{self.name}: initial state {self.initial_state} not in states")
        for t in self.transitions:
            if t.from_state not in self.states or t.to_state not in self.states:
                raise ValueError(f"{self.name}: transition {t.action} references unknown state")
            if t.from_state in self.terminal_states:
                raise ValueError(f"{self.name}: terminal state {t.from_state} has outgoing {t.action}")

    @property
    def actions(self) -> frozenset[str]:
        return frozenset(t.action for t in self.transitions)

    def sources_for(self, action: str) -> tuple[str, ...]:
        return tuple(t.from_state for t in self.transitions if t.action == action)

    def capability_for(self, action: str) -> Capability:
        """Capability required for ``action``, independent of current state."""
        for t in self.transitions:
            if t.action == action:
                return t.capability
        raise UnknownWorkflowActionError(self.name, action)

    def resolve(
        self,
        current_state: str,
        action: str,
        entity_type: str,
        entity_id: str,
    ) -> Transition:
        """Return the transition for ``action`` from ``current_state``.

        Raises:
            UnknownWorkflowActionError: action not defined by this workflow.
            InvalidTransitionError: action not allowed from current_state.
        """
        if action not in self.actions:
            raise UnknownWorkflowActionError(self.name, action)
        for t in self.transitions:
            if t.from_state == current_state and t.action == action:
                return t
        raise InvalidTransitionError(
            entity_type,
            entity_id,
            current_state,
            action,
            allowed_from=self.sources_for(action),
        )


HAS_COMMENT = Guard("has_comment", "Rejection carries a non-empty comment")


def approval_workflow(name: str, description: str, entry_capability: Capability) -> Workflow:
    """draft -> pending -> approved|rejected, submit gated by ``entry_capability``."""
    return Workflow(
        name=name,
        description=description,
        initial_state=ApprovalStatus.DRAFT.value,
        states=tuple(s.value for s in ApprovalStatus),
        transitions=(
            Transition("draft", "pending", action="submit", capability=entry_capability),
            Transition("pending", "approved", action="approve",
                       capability=Capability.APPROVAL_ACTIONS),
            Transition("pending", "rejected", action="reject",
                       capability=Capability.APPROVAL_ACTIONS,
                       guard=HAS_COMMENT, requires_comment=True),
        ),
        terminal_states=tuple(s.value for s in TERMINAL_APPROVAL_STATUSES),
    )
