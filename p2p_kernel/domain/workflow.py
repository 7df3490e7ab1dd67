"""
Canonical workflow types (``p2p_kernel.domain.workflow``).

Responsibility
--------------
Pure value objects for document state machines (receipt, invoice,
payment) plus the single transition function services use to move a
document between states.  Status columns are never assigned directly;
every change goes through ``Workflow.apply``.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``services/``, ``selectors/``, or outer layers.

Invariants enforced
-------------------
* Transitions reference only states in ``Workflow.states``.
* ``initial_state`` is a member of ``states``.
* Terminal states have no outgoing transitions.

Failure modes
-------------
* ``InvalidTransitionError`` when an action is not defined from the
  current state.
* ``ValueError`` at definition time for malformed workflows.
"""

from __future__ import annotations

from dataclasses import dataclass

from p2p_kernel.exceptions import InvalidTransitionError


@dataclass(frozen=True)
class Guard:
    """A condition that must hold before a transition fires.

    Contract: frozen, descriptive only.
    Non-goals: does not evaluate the condition -- the owning service does.
    """
    name: str
    description: str


@dataclass(frozen=True)
class Transition:
    """A valid state transition in a workflow.

    ``posts_entry=True`` marks a transition that writes a journal entry.
    """
    from_state: str
    to_state: str
    action: str
    guard: Guard | None = None
    posts_entry: bool = False


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
            raise ValueError(
                f"{self.name}: initial state '{self.initial_state}' not in states"
            )
        for t in self.transitions:
            if t.from_state not in self.states or t.to_state not in self.states:
                raise ValueError(
                    f"{self.name}: transition {t.from_state}->{t.to_state} "
                    "references an unknown state"
                )
            if t.from_state in self.terminal_states:
                raise ValueError(
                    f"{self.name}: terminal state '{t.from_state}' has an outgoing transition"
                )

    def find(self, from_state: str, action: str) -> Transition | None:
        """Return the transition for ``action`` from ``from_state``, if defined."""
        for t in self.transitions:
            if t.from_state == from_state and t.action == action:
                return t
        return None

    def can(self, from_state: str, action: str) -> bool:
        return self.find(from_state, action) is not None

    def apply(self, from_state: str, action: str) -> str:
        """Return the next state or raise InvalidTransitionError."""
        transition = self.find(from_state, action)
        if transition is None:
            raise InvalidTransitionError(self.name, from_state, action)
        return transition.to_state

    def actions_from(self, from_state: str) -> tuple[str, ...]:
        return tuple(t.action for t in self.transitions if t.from_state == from_state)
