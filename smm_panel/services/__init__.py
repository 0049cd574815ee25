from .catalog import CatalogSync
from .ledger import LedgerStore
from .orders import OrderOrchestrator
from .providers import HttpSMMProvider, ProviderGateway
from .reconciliation import ReconciliationSweeper
from .repository import PanelRepository
from .users import UserService
from .verification import EmailVerificationService, LoggingNotifier, Notifier

__all__ = [
    "CatalogSync",
    "EmailVerificationService",
    "HttpSMMProvider",
    "LedgerStore",
    "LoggingNotifier",
    "Notifier",
    "OrderOrchestrator",
    "PanelRepository",
    "ProviderGateway",
    "ReconciliationSweeper",
    "UserService",
]
