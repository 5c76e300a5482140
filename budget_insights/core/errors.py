"""
Error taxonomy shared by the analytics library, the record store adapters and
the HTTP layer.
"""


class BudgetInsightsError(Exception):
    """Base class for every error raised by this package."""


class AuthRequiredError(BudgetInsightsError):
    """No authenticated owner context was supplied."""


class InvalidRecordError(BudgetInsightsError, ValueError):
    """Malformed or out-of-domain input (negative amount, empty title, ...)."""


class NotFoundError(BudgetInsightsError):
    """A referenced record does not exist."""


class ExternalServiceError(BudgetInsightsError):
    """The reasoning service failed, timed out or returned nothing usable."""


class StoreError(BudgetInsightsError):
    """The record store failed a read or write."""


def require_owner(owner_id) -> str:
    if not owner_id:
        raise AuthRequiredError("User not authenticated")
    return owner_id
