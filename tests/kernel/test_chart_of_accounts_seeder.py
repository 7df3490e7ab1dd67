"""
Tests for the default chart of accounts seeder.

Seeding creates a two-level chart whose role-tagged accounts satisfy every
role the engines resolve, writes the default account configuration once,
and leaves existing accounts and configuration alone on a second run.
"""

from uuid import uuid4

from p2p_kernel.models.account import AccountClass, SystemRole
from p2p_kernel.services.account_configuration_service import (
    AccountConfigurationService,
    AccountMapping,
)
from p2p_kernel.services.chart_of_accounts import ChartOfAccountsService
from p2p_kernel.services.chart_of_accounts_seeder import DEFAULT_ACCOUNTS, seed_default_accounts


class TestChartSeeder:
    def test_seeds_every_default_account(self, session, org_id, test_actor_id):
        created = seed_default_accounts(session, org_id, test_actor_id)

        assert created == [code for code, *_ in DEFAULT_ACCOUNTS]
        chart = ChartOfAccountsService(session)
        inventory = chart.get_by_code(org_id, "1300")
        assert inventory.account_class == AccountClass.ASSET.value
        assert inventory.system_role == SystemRole.INVENTORY.value
        assert inventory.parent_account_id == chart.get_by_code(org_id, "1000").id
        assert chart.get_by_code(org_id, "2000").parent_account_id is None

    def test_every_role_resolves(self, session, org_id, test_actor_id):
        seed_default_accounts(session, org_id, test_actor_id)

        chart = ChartOfAccountsService(session)
        accounts = AccountConfigurationService(session)
        expected = {role: code for code, _, _, role, _ in DEFAULT_ACCOUNTS if role is not None}
        assert set(expected) == set(SystemRole)
        for role, code in expected.items():
            assert accounts.resolve_account(org_id, role) == chart.get_by_code(org_id, code).id

    def test_configuration_written(self, session, org_id, test_actor_id):
        seed_default_accounts(session, org_id, test_actor_id)

        chart = ChartOfAccountsService(session)
        mapping = AccountConfigurationService(session).get_configuration(org_id)
        assert mapping.accounts_payable_account_id == chart.get_by_code(org_id, "2101").id
        assert mapping.default_bank_account_id == chart.get_by_code(org_id, "1102").id
        assert mapping.purchase_discount_account_id == chart.get_by_code(org_id, "4300").id

    def test_without_configuration(self, session, org_id, test_actor_id):
        seed_default_accounts(session, org_id, test_actor_id, configure=False)

        assert AccountConfigurationService(session).get_configuration(org_id) is None

    def test_seeding_is_idempotent(self, session, org_id, test_actor_id):
        seed_default_accounts(session, org_id, test_actor_id)

        assert seed_default_accounts(session, org_id, test_actor_id) == []
        assert len(ChartOfAccountsService(session).list_accounts(org_id)) == len(DEFAULT_ACCOUNTS)

    def test_existing_account_and_configuration_kept(self, session, org_id, test_actor_id,
                                                     create_account):
        own_ap = create_account("2101", "Trade creditors", AccountClass.LIABILITY)
        AccountConfigurationService(session).upsert_configuration(
            org_id, AccountMapping(accounts_payable_account_id=own_ap.id), test_actor_id
        )

        created = seed_default_accounts(session, org_id, test_actor_id)

        assert "2101" not in created
        kept = ChartOfAccountsService(session).get_by_code(org_id, "2101")
        assert kept.name == "Trade creditors"
        assert kept.parent_account_id is None
        mapping = AccountConfigurationService(session).get_configuration(org_id)
        assert mapping == AccountMapping(accounts_payable_account_id=own_ap.id)

    def test_organizations_seeded_separately(self, session, org_id, test_actor_id):
        other_org = uuid4()
        seed_default_accounts(session, org_id, test_actor_id)

        assert seed_default_accounts(session, other_org, test_actor_id) == [
            code for code, *_ in DEFAULT_ACCOUNTS
        ]

    def test_seeding_logged(self, session, org_id, test_actor_id, captured_logs):
        created = seed_default_accounts(session, org_id, test_actor_id)

        record = next(r for r in captured_logs() if r["message"] == "default_accounts_seeded")
        assert record["level"] == "INFO"
        assert record["created_codes"] == created
        assert record["configured"] is True
