"""
Payables Workflows (``p2p_modules.payables.workflows``).

Responsibility
--------------
State machines for the vendor invoice and vendor payment lifecycles.
Guards name the preconditions the services check before a transition;
``posts_entry=True`` marks transitions that write journal entries.

Architecture position
---------------------
**Modules layer** -- declarative workflow definitions.  Imports Guard,
Transition and Workflow from ``p2p_kernel.domain.workflow``.
"""

from p2p_kernel.domain.workflow import Guard, Transition, Workflow
from p2p_kernel.logging_config import get_logger

logger = get_logger("modules.payables.workflows")


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

FULLY_SETTLED = Guard(
    name="fully_settled",
    description="amount_paid equals the invoice total",
)

NOTHING_PAID = Guard(
    name="nothing_paid",
    description="No payment has been applied to the invoice",
)

SUFFICIENT_FUNDS = Guard(
    name="sufficient_funds",
    description="Bank account balance covers the payment (unless overdraft is allowed)",
)


# -----------------------------------------------------------------------------
# Invoice Workflow
# -----------------------------------------------------------------------------

INVOICE_WORKFLOW = Workflow(
    name="vendor_invoice",
    description="Vendor invoice from receipt to settlement",
    initial_state="pending",
    states=("pending", "approved", "paid", "cancelled"),
    terminal_states=("cancelled",),
    transitions=(
        Transition("pending", "approved", action="approve"),
        Transition("pending", "paid", action="settle", guard=FULLY_SETTLED),
        Transition("approved", "paid", action="settle", guard=FULLY_SETTLED),
        Transition("paid", "approved", action="reopen"),
        Transition("paid", "pending", action="reopen_unapproved"),
        Transition("pending", "cancelled", action="cancel", guard=NOTHING_PAID),
        Transition("approved", "cancelled", action="cancel", guard=NOTHING_PAID),
    ),
)

logger.info(
    "payables_invoice_workflow_registered",
    extra={
        "workflow_name": INVOICE_WORKFLOW.name,
        "state_count": len(INVOICE_WORKFLOW.states),
        "transition_count": len(INVOICE_WORKFLOW.transitions),
    },
)


# -----------------------------------------------------------------------------
# Payment Workflow
# -----------------------------------------------------------------------------

PAYMENT_WORKFLOW = Workflow(
    name="vendor_payment",
    description="Vendor payment from submission to posting or void",
    initial_state="pending",
    states=("pending", "approved", "rejected", "posted", "voided"),
    terminal_states=("rejected", "voided"),
    transitions=(
        Transition("pending", "approved", action="approve"),
        Transition("pending", "rejected", action="reject"),
        Transition("pending", "posted", action="post", guard=SUFFICIENT_FUNDS, posts_entry=True),
        Transition("approved", "posted", action="post", guard=SUFFICIENT_FUNDS, posts_entry=True),
        Transition("posted", "voided", action="void", posts_entry=True),
    ),
)

logger.info(
    "payables_payment_workflow_registered",
    extra={
        "workflow_name": PAYMENT_WORKFLOW.name,
        "state_count": len(PAYMENT_WORKFLOW.states),
        "transition_count": len(PAYMENT_WORKFLOW.transitions),
    },
)
