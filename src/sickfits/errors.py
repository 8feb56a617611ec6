"""Typed failures raised by resolvers and collaborators.

Strawberry reports any of these in the GraphQL ``errors`` array using the
exception message, so messages are written for the storefront user.
"""


class StorefrontError(Exception):
    """Base class for storefront failures."""

    pass


class AuthError(StorefrontError):
    """Raised when the caller is not authenticated, not authorized, or presents bad credentials."""

    pass


class NotFoundError(StorefrontError):
    """Raised when a referenced entity does not exist."""

    pass


class ValidationError(StorefrontError):
    """Raised for mismatched input or a constraint violation reported by storage."""

    pass


class PaymentError(StorefrontError):
    """Raised when the payment gateway rejects or fails a request."""

    pass
