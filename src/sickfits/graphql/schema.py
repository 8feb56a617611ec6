"""
Storefront GraphQL schema and its FastAPI router
"""

from typing import Any

import strawberry
from fastapi import Request, Response
from graphql import GraphQLError, get_introspection_query, graphql_sync
from graphql import validate_schema as gql_validate_schema
from strawberry.extensions import MaskErrors
from strawberry.fastapi import GraphQLRouter

from ..auth.middleware import get_auth_context
from ..config import settings
from ..errors import StorefrontError
from ..logging import get_logger
from .mutations.root import Mutation
from .queries.root import Query

logger = get_logger(__name__)

INTERNAL_ERROR_MESSAGE = "Something went wrong. Please try again."


def is_internal_error(error: GraphQLError) -> bool:
    """Errors raised by anything other than the storefront's own failures.

    Storefront failures carry messages meant for the shopper; everything else
    (driver errors, bugs) is hidden outside debug mode.
    """
    original = error.original_error
    return original is not None and not isinstance(original, StorefrontError)


def build_schema(debug: bool | None = None) -> strawberry.Schema:
    debug = settings.debug if debug is None else debug
    extensions = (
        []
        if debug
        else [MaskErrors(should_mask_error=is_internal_error, error_message=INTERNAL_ERROR_MESSAGE)]
    )
    return strawberry.Schema(query=Query, mutation=Mutation, extensions=extensions)


schema = build_schema()


def validate_schema() -> None:
    """Resolve every type reference at startup so a broken schema fails fast.

    Raises:
        RuntimeError: If validation or introspection reports errors
    """
    graphql_schema = schema._schema

    problems = [str(e) for e in gql_validate_schema(graphql_schema)]
    if not problems:
        result = graphql_sync(graphql_schema, get_introspection_query())
        problems = [str(e) for e in result.errors or []]

    if problems:
        logger.error("GraphQL schema validation failed", errors=problems)
        raise RuntimeError(f"Invalid GraphQL schema: {'; '.join(problems)}")

    logger.info("GraphQL schema validated", types=len(graphql_schema.type_map))


async def get_context(request: Request, response: Response) -> dict[str, Any]:
    """Per-request resolver context.

    ``response`` receives the session cookie. Resolvers fall back to mailer and
    payment gateway instances built from settings when the context has none.
    """
    return {
        "request": request,
        "response": response,
        "auth": await get_auth_context(request),
    }


def create_graphql_router() -> GraphQLRouter[dict[str, Any], None]:
    return GraphQLRouter(
        schema,
        path="/graphql",
        graphql_ide="graphiql" if settings.debug else None,
        context_getter=get_context,
    )
