"""
ChartOfAccountsService -- per-organization account registry.

Responsibility:
    Creates, looks up and deactivates ledger accounts.  Provides the
    postability check the Ledger uses before writing lines.

Architecture position:
    Kernel > Services -- imperative shell.  Leaf dependency of the account
    configuration, the ledger and both engines.

Invariants enforced:
    - (organization_id, code) unique; checked up front and backed by
      uq_accounts_org_code for concurrent creators.
    - A parent account must belong to the same organization.
    - Postable means: same organization AND active.

Failure modes:
    - DuplicateAccountCodeError on an existing code.
    - UnknownAccountError when an id is foreign, missing or inactive.
"""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from p2p_kernel.domain.dtos import AccountInfo
from p2p_kernel.exceptions import DuplicateAccountCodeError, UnknownAccountError
from p2p_kernel.logging_config import get_logger
from p2p_kernel.models.account import Account, AccountClass, SystemRole
from p2p_kernel.services.base import BaseService

logger = get_logger("services.chart_of_accounts")


class ChartOfAccountsService(BaseService):
    """
    Account registry scoped by organization.

    Guarantees:
        - Returned accounts are AccountInfo DTOs, never ORM rows.
        - Role lookup only ever returns active accounts.
    """

    def create_account(
        self,
        organization_id: UUID,
        code: str,
        name: str,
        account_class: AccountClass,
        actor_id: UUID,
        system_role: SystemRole | None = None,
        currency: str = "MXN",
        description: str | None = None,
        parent_account_id: UUID | None = None,
        is_active: bool = True,
    ) -> AccountInfo:
        if self._find_by_code(organization_id, code) is not None:
            raise DuplicateAccountCodeError(organization_id, code)
        if parent_account_id is not None:
            self._get_model(organization_id, parent_account_id)

        account = Account(
            organization_id=organization_id,
            code=code,
            name=name,
            account_class=AccountClass(account_class).value,
            system_role=SystemRole(system_role).value if system_role else None,
            currency=currency,
            description=description,
            parent_account_id=parent_account_id,
            is_active=is_active,
            created_by_id=actor_id,
        )
        try:
            with self.session.begin_nested():
                self.session.add(account)
                self.session.flush()
        except IntegrityError:
            raise DuplicateAccountCodeError(organization_id, code) from None

        logger.info(
            "account_created",
            extra={
                "organization_id": str(organization_id),
                "account_id": str(account.id),
                "code": code,
                "account_class": account.account_class,
                "system_role": account.system_role,
            },
        )
        return account.to_dto()

    def get_account(self, organization_id: UUID, account_id: UUID) -> AccountInfo:
        return self._get_model(organization_id, account_id).to_dto()

    def get_by_code(self, organization_id: UUID, code: str) -> AccountInfo | None:
        account = self._find_by_code(organization_id, code)
        return account.to_dto() if account else None

    def find_by_role(self, organization_id: UUID, role: SystemRole) -> AccountInfo | None:
        """Lowest-coded active account tagged with ``role``, if any."""
        account = self.session.execute(
            select(Account)
            .where(
                Account.organization_id == organization_id,
                Account.system_role == SystemRole(role).value,
                Account.is_active.is_(True),
            )
            .order_by(Account.code)
            .limit(1)
        ).scalar_one_or_none()
        return account.to_dto() if account else None

    def list_accounts(self, organization_id: UUID, active_only: bool = False) -> list[AccountInfo]:
        stmt = select(Account).where(Account.organization_id == organization_id)
        if active_only:
            stmt = stmt.where(Account.is_active.is_(True))
        return [a.to_dto() for a in self.session.execute(stmt.order_by(Account.code)).scalars()]

    def deactivate_account(self, organization_id: UUID, account_id: UUID, actor_id: UUID) -> AccountInfo:
        account = self._get_model(organization_id, account_id)
        account.is_active = False
        account.updated_by_id = actor_id
        self.session.flush()
        logger.info(
            "account_deactivated",
            extra={"organization_id": str(organization_id), "account_id": str(account_id)},
        )
        return account.to_dto()

    def require_postable(
        self, organization_id: UUID, account_ids: Iterable[UUID]
    ) -> dict[UUID, AccountInfo]:
        """Return every requested account, or raise on the first unusable one."""
        wanted = set(account_ids)
        found = {
            a.id: a
            for a in self.session.execute(
                select(Account).where(
                    Account.id.in_(wanted),
                    Account.organization_id == organization_id,
                )
            ).scalars()
        }
        for account_id in sorted(wanted, key=str):
            account = found.get(account_id)
            if account is None:
                raise UnknownAccountError(account_id, organization_id)
            if not account.is_active:
                raise UnknownAccountError(account_id, organization_id, reason="inactive")
        return {account_id: account.to_dto() for account_id, account in found.items()}

    def _find_by_code(self, organization_id: UUID, code: str) -> Account | None:
        return self.session.execute(
            select(Account).where(
                Account.organization_id == organization_id,
                Account.code == code,
            )
        ).scalar_one_or_none()

    def _get_model(self, organization_id: UUID, account_id: UUID) -> Account:
        account = self.session.get(Account, account_id)
        if account is None or account.organization_id != organization_id:
            raise UnknownAccountError(account_id, organization_id)
        return account
