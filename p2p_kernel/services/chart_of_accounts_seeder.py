"""
Default chart of accounts for a new organization.

A two-level chart: one header account per class (1000 Assets ... 6000
Operating expenses) and the postable accounts beneath it.  Every account
the purchase-to-pay engines resolve by role carries its system role, so a
freshly seeded organization can receive and pay without further setup.

Seeding is idempotent: accounts whose code already exists are left alone,
and an existing account configuration is never overwritten.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm import Session

from p2p_kernel.logging_config import get_logger
from p2p_kernel.models.account import AccountClass, SystemRole
from p2p_kernel.models.account_configuration import ROLE_SLOTS
from p2p_kernel.services.account_configuration_service import (
    AccountConfigurationService,
    AccountMapping,
)
from p2p_kernel.services.chart_of_accounts import ChartOfAccountsService

logger = get_logger("services.chart_of_accounts_seeder")

# (code, name, class, role, parent code)
DEFAULT_ACCOUNTS: tuple[tuple[str, str, AccountClass, SystemRole | None, str | None], ...] = (
    ("1000", "Assets", AccountClass.ASSET, None, None),
    ("1101", "Cash on hand", AccountClass.ASSET, SystemRole.CASH, "1000"),
    ("1102", "Bank", AccountClass.ASSET, SystemRole.BANK, "1000"),
    ("1201", "Accounts receivable", AccountClass.ASSET, SystemRole.ACCOUNTS_RECEIVABLE, "1000"),
    ("1300", "Inventory", AccountClass.ASSET, SystemRole.INVENTORY, "1000"),
    ("1400", "VAT receivable", AccountClass.ASSET, SystemRole.TAX_RECEIVABLE, "1000"),
    ("2000", "Liabilities", AccountClass.LIABILITY, None, None),
    ("2101", "Accounts payable", AccountClass.LIABILITY, SystemRole.ACCOUNTS_PAYABLE, "2000"),
    ("2200", "VAT payable", AccountClass.LIABILITY, SystemRole.TAX_PAYABLE, "2000"),
    ("2300", "Other taxes payable", AccountClass.LIABILITY, None, "2000"),
    ("3000", "Equity", AccountClass.EQUITY, None, None),
    ("3100", "Share capital", AccountClass.EQUITY, None, "3000"),
    ("3200", "Retained earnings", AccountClass.EQUITY, None, "3000"),
    ("4000", "Revenue", AccountClass.REVENUE, None, None),
    ("4100", "Sales", AccountClass.REVENUE, SystemRole.SALES_REVENUE, "4000"),
    ("4200", "Other income", AccountClass.REVENUE, None, "4000"),
    ("4300", "Purchase discounts", AccountClass.REVENUE, SystemRole.PURCHASE_DISCOUNT, "4000"),
    ("5000", "Cost of sales", AccountClass.EXPENSE, None, None),
    ("5100", "Cost of goods sold", AccountClass.EXPENSE, SystemRole.COGS, "5000"),
    ("6000", "Operating expenses", AccountClass.EXPENSE, None, None),
    ("6100", "Administrative expenses", AccountClass.EXPENSE, None, "6000"),
    ("6200", "Selling expenses", AccountClass.EXPENSE, None, "6000"),
)


def seed_default_accounts(
    session: Session,
    organization_id: UUID,
    actor_id: UUID,
    configure: bool = True,
) -> list[str]:
    """
    Create the default chart; returns the codes created.

    With ``configure`` and no configuration on file, the role-tagged
    accounts are also written as the organization's default accounts.
    The caller owns the transaction.
    """
    chart = ChartOfAccountsService(session)
    created: list[str] = []
    ids_by_code: dict[str, UUID] = {}

    for code, name, account_class, role, parent_code in DEFAULT_ACCOUNTS:
        existing = chart.get_by_code(organization_id, code)
        if existing is not None:
            ids_by_code[code] = existing.id
            continue
        account = chart.create_account(
            organization_id=organization_id,
            code=code,
            name=name,
            account_class=account_class,
            actor_id=actor_id,
            system_role=role,
            parent_account_id=ids_by_code.get(parent_code) if parent_code else None,
        )
        ids_by_code[code] = account.id
        created.append(code)

    configured = False
    if configure:
        accounts = AccountConfigurationService(session, chart=chart)
        if accounts.get_configuration(organization_id) is None:
            slots = {
                ROLE_SLOTS[role]: ids_by_code[code]
                for code, _, _, role, _ in DEFAULT_ACCOUNTS
                if role is not None
            }
            accounts.upsert_configuration(organization_id, AccountMapping(**slots), actor_id)
            configured = True

    logger.info(
        "default_accounts_seeded",
        extra={
            "organization_id": str(organization_id),
            "created_codes": created,
            "configured": configured,
        },
    )
    return created
