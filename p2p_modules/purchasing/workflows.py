"""
Purchasing Workflows (``p2p_modules.purchasing.workflows``).

Responsibility
--------------
State machine for the purchase receipt lifecycle.  ``posts_entry=True``
marks the transition that writes the receipt's journal entry.

Architecture position
---------------------
**Modules layer** -- declarative workflow definitions.  Imports Guard,
Transition and Workflow from ``p2p_kernel.domain.workflow``.
"""

from p2p_kernel.domain.workflow import Guard, Transition, Workflow
from p2p_kernel.logging_config import get_logger

logger = get_logger("modules.purchasing.workflows")


HAS_ITEMS = Guard(
    name="has_items",
    description="Receipt has at least one received line",
)

RECEIPT_WORKFLOW = Workflow(
    name="purchase_receipt",
    description="Purchase receipt from draft to posted",
    initial_state="draft",
    states=("draft", "pending", "received", "posted", "cancelled"),
    terminal_states=("posted", "cancelled"),
    transitions=(
        Transition("draft", "pending", action="submit", guard=HAS_ITEMS),
        Transition("draft", "received", action="receive", guard=HAS_ITEMS),
        Transition("pending", "received", action="receive", guard=HAS_ITEMS),
        Transition("received", "posted", action="post", posts_entry=True),
        Transition("draft", "cancelled", action="cancel"),
        Transition("pending", "cancelled", action="cancel"),
        Transition("received", "cancelled", action="cancel"),
    ),
)

logger.info(
    "purchasing_receipt_workflow_registered",
    extra={
        "workflow_name": RECEIPT_WORKFLOW.name,
        "state_count": len(RECEIPT_WORKFLOW.states),
        "transition_count": len(RECEIPT_WORKFLOW.transitions),
    },
)
