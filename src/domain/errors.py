"""Domain errors raised by stores and the transfer state machine.

Use cases translate these into Result error codes; nothing here knows about
HTTP.
"""


class PointsError(Exception):
    """Base class for points service errors"""


class ValidationError(PointsError):
    """Malformed or out-of-range input. Never retried."""


class SameUserError(ValidationError):
    """Sender and receiver are the same user"""


class InvalidTransitionError(ValidationError):
    """Transfer status change not allowed by the state machine"""


class NotFoundError(PointsError):
    """Referenced user or transfer does not exist"""


class InsufficientFundsError(PointsError):
    """Sender balance is lower than the transfer amount"""

    def __init__(self, user_id: int, balance: int, required: int):
        self.user_id = user_id
        self.balance = balance
        self.required = required
        super().__init__(
            f"Insufficient points. Required: {required}, Available: {balance}"
        )


class ConcurrentUpdateError(PointsError):
    """Another writer appended to the same user's ledger first"""


class StorageError(PointsError):
    """Underlying store failed to read or write"""
