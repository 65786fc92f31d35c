"""Domain-level exceptions.

All checkout failures are expressed as subclasses of DomainException so
the CLI layer (and any UI) can catch them uniformly and display
user-friendly messages.
"""

from __future__ import annotations


class DomainException(Exception):
    """Base class for all checkout errors."""


class ValidationError(DomainException):
    """A local rule or invariant was violated.

    ``field_errors`` maps a field name to its message so a form can
    highlight every offending input at once.  Never reaches the network.
    """

    def __init__(self, message: str, field_errors: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.field_errors: dict[str, str] = dict(field_errors or {})

    @classmethod
    def from_fields(cls, field_errors: dict[str, str]) -> ValidationError:
        fields = ", ".join(field_errors)
        return cls(f"Invalid or missing fields: {fields}", field_errors)


class EntityNotFoundError(DomainException):
    """A requested entity does not exist."""


class InvalidTransition(DomainException):
    """An action was attempted from a checkout state that does not allow it."""


class CheckoutInProgress(DomainException):
    """The attempt lock is held; the operation was not issued again."""


class ResolverUnavailable(DomainException):
    """A degraded, non-fatal collaborator (shipping quote, postal lookup) failed."""


class NetworkError(DomainException):
    """Generic transient failure talking to the backend."""


class RateLimited(DomainException):
    """The backend rejected rapid repeated attempts."""

    def __init__(self, retry_after: float, message: str | None = None) -> None:
        super().__init__(
            message or f"Too many attempts, try again in {int(retry_after)}s"
        )
        self.retry_after = retry_after


class CouponRejected(DomainException):
    """The coupon could not be applied; ``reason`` says why."""

    def __init__(self, reason, message: str | None = None) -> None:
        super().__init__(message or f"Coupon rejected: {reason.value}")
        self.reason = reason


class TokenizationFailed(DomainException):
    """Card tokenization was refused by the backend or the token was reused."""


class GatewayRejected(DomainException):
    """The gateway rejected a card payment.  The order is retained."""

    def __init__(self, reason, detail: str | None = None) -> None:
        super().__init__(f"Payment rejected: {reason.value}")
        self.reason = reason
        self.detail = detail


class ArtifactUnavailable(DomainException):
    """The instant-transfer QR artifact never became available."""


class PaymentExpired(DomainException):
    """An instant-transfer payment passed its expiry without approval."""
