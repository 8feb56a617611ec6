"""
Tests for how resolver failures are reported to GraphQL clients
"""

from unittest.mock import patch

import pytest

from sickfits.errors import AuthError
from sickfits.graphql.schema import INTERNAL_ERROR_MESSAGE, build_schema

ITEMS_QUERY = "query { items { id } }"


@pytest.mark.asyncio
async def test_storefront_errors_keep_their_message():
    schema = build_schema(debug=False)
    with patch(
        "sickfits.graphql.resolvers.item.resolve_items",
        side_effect=AuthError("You must be logged in to do that!"),
    ):
        result = await schema.execute(ITEMS_QUERY)

    assert result.errors[0].message == "You must be logged in to do that!"


@pytest.mark.asyncio
async def test_unexpected_errors_are_masked_in_production():
    schema = build_schema(debug=False)
    with patch(
        "sickfits.graphql.resolvers.item.resolve_items",
        side_effect=RuntimeError("relation \"items\" does not exist"),
    ):
        result = await schema.execute(ITEMS_QUERY)

    assert result.errors[0].message == INTERNAL_ERROR_MESSAGE


@pytest.mark.asyncio
async def test_unexpected_errors_are_visible_in_debug():
    schema = build_schema(debug=True)
    with patch(
        "sickfits.graphql.resolvers.item.resolve_items",
        side_effect=RuntimeError("boom"),
    ):
        result = await schema.execute(ITEMS_QUERY)

    assert result.errors[0].message == "boom"
