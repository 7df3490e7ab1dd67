"""
AccountConfigurationService -- per-tenant role -> account mapping.

Responsibility:
    Upserts the organization's default accounts and resolves the account
    to use for a role at posting time.

Architecture position:
    Kernel > Services -- imperative shell.  Consumed by the receiving and
    payment engines and by the accounting facade.

Invariants enforced:
    - Every configured account belongs to the organization.
    - Every configured account has the class its slot expects
      (SLOT_CLASSES).
    - Resolution order: call-site override -> configured slot -> active
      account tagged with the role -> MissingAccountMappingError.

Failure modes:
    - UnknownAccountError for foreign or missing account ids.
    - AccountClassMismatchError for a wrong-class slot.
    - MissingAccountMappingError when nothing resolves.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from p2p_kernel.domain.clock import Clock
from p2p_kernel.exceptions import (
    AccountClassMismatchError,
    MissingAccountMappingError,
    UnknownAccountError,
)
from p2p_kernel.logging_config import get_logger
from p2p_kernel.models.account import SystemRole
from p2p_kernel.models.account_configuration import (
    ROLE_SLOTS,
    SLOT_CLASSES,
    AccountConfiguration,
)
from p2p_kernel.services.base import BaseService
from p2p_kernel.services.chart_of_accounts import ChartOfAccountsService

logger = get_logger("services.account_configuration")


@dataclass(frozen=True)
class AccountMapping:
    """Account id per role slot. ``None`` leaves the slot unmapped."""

    inventory_account_id: UUID | None = None
    accounts_payable_account_id: UUID | None = None
    accounts_receivable_account_id: UUID | None = None
    sales_revenue_account_id: UUID | None = None
    cost_of_goods_sold_account_id: UUID | None = None
    tax_payable_account_id: UUID | None = None
    tax_receivable_account_id: UUID | None = None
    cash_account_id: UUID | None = None
    default_bank_account_id: UUID | None = None
    purchase_discount_account_id: UUID | None = None


class AccountConfigurationService(BaseService):
    """
    Maintains and resolves an organization's default accounts.

    Guarantees:
        - One configuration row per organization; upsert replaces every slot.
        - resolve_account never returns an inactive or foreign account.
    """

    def __init__(
        self,
        session: Session,
        chart: ChartOfAccountsService | None = None,
        clock: Clock | None = None,
    ):
        super().__init__(session, clock)
        self._chart = chart or ChartOfAccountsService(session, clock)

    def get_configuration(self, organization_id: UUID) -> AccountMapping | None:
        config = self._load(organization_id)
        if config is None:
            return None
        return AccountMapping(**config.slot_values())

    def upsert_configuration(
        self,
        organization_id: UUID,
        mapping: AccountMapping,
        actor_id: UUID,
    ) -> AccountMapping:
        values = asdict(mapping)
        for slot, account_id in values.items():
            if account_id is None:
                continue
            account = self._chart.get_account(organization_id, account_id)
            _, expected = SLOT_CLASSES[slot]
            if account.account_class not in {c.value for c in expected}:
                raise AccountClassMismatchError(
                    slot=slot,
                    account_id=account_id,
                    actual=account.account_class,
                    expected=tuple(c.value for c in expected),
                )

        config = self._load(organization_id)
        created = config is None
        if created:
            config = AccountConfiguration(organization_id=organization_id, created_by_id=actor_id)
            self.session.add(config)
        else:
            config.updated_by_id = actor_id
        for slot, account_id in values.items():
            setattr(config, slot, account_id)
        self.session.flush()

        logger.info(
            "account_configuration_upserted",
            extra={
                "organization_id": str(organization_id),
                "was_created": created,
                "mapped_slots": sorted(s for s, v in values.items() if v is not None),
            },
        )
        return AccountMapping(**config.slot_values())

    def resolve_account(
        self,
        organization_id: UUID,
        role: SystemRole,
        override: UUID | None = None,
    ) -> UUID:
        """Pick the account for ``role`` (override, configuration, role tag)."""
        if override is not None:
            self._chart.require_postable(organization_id, [override])
            return override

        config = self._load(organization_id)
        if config is not None:
            configured = getattr(config, ROLE_SLOTS[role])
            if configured is not None:
                try:
                    self._chart.require_postable(organization_id, [configured])
                    return configured
                except UnknownAccountError:
                    logger.warning(
                        "configured_account_unusable",
                        extra={
                            "organization_id": str(organization_id),
                            "role": role.value,
                            "account_id": str(configured),
                        },
                    )

        tagged = self._chart.find_by_role(organization_id, role)
        if tagged is not None:
            return tagged.id

        raise MissingAccountMappingError(organization_id, role.value)

    def _load(self, organization_id: UUID) -> AccountConfiguration | None:
        return self.session.execute(
            select(AccountConfiguration).where(
                AccountConfiguration.organization_id == organization_id
            )
        ).scalar_one_or_none()
