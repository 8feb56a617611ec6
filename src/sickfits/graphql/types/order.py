"""
Order GraphQL type definitions
"""

from datetime import datetime
from uuid import UUID

import strawberry


@strawberry.type
class OrderItem:
    """Snapshot of a cart line taken at checkout."""

    id: UUID
    title: str
    description: str
    image: str | None
    large_image: str | None
    price: int
    quantity: int


@strawberry.type
class Order:
    """A paid order."""

    id: UUID
    user_id: UUID
    total: int
    charge: str
    items: list[OrderItem]
    created_at: datetime
