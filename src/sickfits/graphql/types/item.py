"""
Item GraphQL type definitions
"""

from datetime import datetime
from uuid import UUID

import strawberry


@strawberry.type
class Item:
    """A sellable product. Prices are in cents."""

    id: UUID
    user_id: UUID
    title: str
    description: str
    image: str | None
    large_image: str | None
    price: int
    created_at: datetime
    updated_at: datetime
