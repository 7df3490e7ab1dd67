"""Services for the purchase-to-pay kernel (write side)."""

from p2p_kernel.services.account_configuration_service import (
    AccountConfigurationService,
    AccountMapping,
)
from p2p_kernel.services.chart_of_accounts import ChartOfAccountsService
from p2p_kernel.services.chart_of_accounts_seeder import DEFAULT_ACCOUNTS, seed_default_accounts
from p2p_kernel.services.ledger_service import LedgerService
from p2p_kernel.services.number_series_seeder import DEFAULT_SERIES, seed_default_series
from p2p_kernel.services.number_series_service import NumberSeriesService
from p2p_kernel.services.sequence_service import SequenceService

__all__ = [
    "AccountConfigurationService",
    "AccountMapping",
    "ChartOfAccountsService",
    "DEFAULT_ACCOUNTS",
    "DEFAULT_SERIES",
    "LedgerService",
    "NumberSeriesService",
    "SequenceService",
    "seed_default_accounts",
    "seed_default_series",
]
