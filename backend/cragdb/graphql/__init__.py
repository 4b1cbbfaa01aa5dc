"""
CragDB Backend — GraphQL Layer
================================

What:  The public API: a Strawberry schema served by FastAPI at /graphql.

    context.py      request session, current user, data loaders
    permissions.py  IsAuthenticated / IsAdmin
    inputs.py       Strawberry inputs → pydantic service inputs
    types.py        Strawberry output types
    errors.py       error codes and masking
    schema.py       Query / Mutation roots
"""

from strawberry.fastapi import GraphQLRouter

from cragdb.graphql.context import GraphQLContext, get_context
from cragdb.graphql.schema import schema


def create_graphql_router() -> GraphQLRouter:
    return GraphQLRouter(schema, context_getter=get_context)


__all__ = ["GraphQLContext", "create_graphql_router", "get_context", "schema"]
