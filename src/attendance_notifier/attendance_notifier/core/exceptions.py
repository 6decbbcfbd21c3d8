class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class NotFoundError(DomainError):
    """Raised when a referenced entity does not exist."""


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""


class DeliveryError(Exception):
    """Base for email transport failures."""

    def __init__(self, message: str, *, rejected: tuple[str, ...] = ()):
        super().__init__(message)
        self.rejected = tuple(rejected)


class TransientDeliveryError(DeliveryError):
    """Network timeout, temporary SMTP rejection: a retry may succeed."""


class PermanentDeliveryError(DeliveryError):
    """Invalid address, permanent bounce: retrying cannot succeed."""
