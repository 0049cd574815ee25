class InvalidOrderRequestError(Exception):
    """Raised when an order has a bad link or a quantity outside the service limits."""

class ServiceNotFoundError(Exception):
    """Raised when a service id is missing from the catalog or is inactive."""

class OrderNotFoundError(Exception):
    """Raised when an order id is missing or belongs to another user."""

class UserNotFoundError(Exception):
    """Raised when a user id is missing from the store."""

class EmailAlreadyRegisteredError(Exception):
    """Raised when registering an email that already has an account."""

class InsufficientFundsError(Exception):
    """Raised when a debit would drop a balance below zero."""

class TransactionNotFoundError(Exception):
    """Raised when a transaction id is missing from the ledger."""

class InvalidTransactionStateError(Exception):
    """Raised when a ledger entry cannot make the requested status transition."""

class ProviderError(Exception):
    """Raised by a single provider for transport, parse or provider-reported errors."""

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider

class NoProviderAvailableError(Exception):
    """Raised when every configured provider failed or none is available."""

class UpstreamPlacementFailedError(Exception):
    """Raised when an order could not be placed with any provider."""

class PersistenceFailureError(Exception):
    """Raised when an acknowledged order could not be stored and charged."""

class InvalidVerificationTokenError(Exception):
    """Raised when a verification token is unknown, used or expired."""
