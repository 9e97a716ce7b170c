"""Typed failures raised by the two-factor subsystem.

Each error carries a stable, user-facing message and the HTTP status the
API layer should answer with. Storage and driver errors are never wrapped
in these classes.
"""
from fastapi import status


class TwoFactorError(Exception):
    """Base class for two-factor business-rule failures."""

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotConfiguredError(TwoFactorError):
    """The requested method has never been set up."""


class NotEnabledError(TwoFactorError):
    """The method exists but is not active."""


class InvalidCredentialError(TwoFactorError):
    """A supplied code or token does not verify."""

    status_code = status.HTTP_401_UNAUTHORIZED


class ExpiredCodeError(TwoFactorError):
    """A time-bound code has lapsed."""


class DependencyFailureError(TwoFactorError):
    """An outbound call (SMS delivery) failed."""


class UserNotFoundError(TwoFactorError):
    """The referenced user does not exist."""

    status_code = status.HTTP_401_UNAUTHORIZED


class ChallengeIssuedError(TwoFactorError):
    """A fresh code was sent; the caller must resubmit with it."""


class SmsDeliveryError(Exception):
    """Raised by SMS senders when a message could not be handed off."""


class RecordNotFoundError(Exception):
    """Raised by the record store when updating a user without a record."""

    def __init__(self, user_id: str):
        super().__init__(f"No two-factor record for user {user_id}")
        self.user_id = user_id
