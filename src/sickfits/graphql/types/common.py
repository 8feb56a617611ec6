"""
Shared GraphQL payload types
"""

import strawberry


@strawberry.type
class SuccessMessage:
    """Acknowledgement returned by mutations that have no entity to return."""

    message: str
