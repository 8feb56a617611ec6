"""
Cart GraphQL type definitions
"""

from uuid import UUID

import strawberry

from .item import Item


@strawberry.type
class CartItem:
    """A (user, item, quantity) line awaiting checkout."""

    id: UUID
    user_id: UUID
    quantity: int
    item: Item | None
