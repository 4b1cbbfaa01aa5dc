"""
CragDB Backend — GraphQL Error Translation
============================================

What:  Gives every GraphQL error a stable `extensions.code` and hides
       unexpected failures from clients.
How:   A schema extension post-processes the operation result, in the same
       spirit as the REST exception handlers in main.py:

    original error                    message sent         extensions.code
    ─────────────────────────────────────────────────────────────────────────
    CragDBError (services)            exc.message          exc.code
    pydantic.ValidationError (inputs) first problem        VALIDATION_ERROR
    GraphQL errors (syntax, perms)    unchanged            unchanged
    anything else                     generic              INTERNAL_ERROR

The full error (with stack trace) is logged server-side for the last row only;
domain errors are logged at the level that matches their severity.
"""

import logging
from typing import List, Optional

from graphql import GraphQLError
from pydantic import ValidationError as PydanticValidationError
from strawberry.extensions import SchemaExtension

from cragdb.exceptions import CragDBError, DatabaseError
from cragdb.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)

GENERIC_MESSAGE = "An unexpected error occurred. Please try again or contact support."


def _describe(exc: PydanticValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"{location}: {first['msg']}" if location else first["msg"]


def translate_error(error: GraphQLError) -> GraphQLError:
    original = error.original_error
    rid = request_id_var.get("")

    if original is None or isinstance(original, GraphQLError):
        return error

    if isinstance(original, CragDBError):
        if isinstance(original, DatabaseError):
            logger.error("[%s] Database error: %s | Context: %s", rid, original.message, original.context)
        else:
            logger.info("[%s] %s: %s", rid, original.code, original.message)
        return _rebuild(error, original.message, original.code)

    if isinstance(original, PydanticValidationError):
        return _rebuild(error, _describe(original), "VALIDATION_ERROR")

    logger.error("[%s] Unexpected error: %s", rid, original, exc_info=original)
    return _rebuild(error, GENERIC_MESSAGE, "INTERNAL_ERROR")


def _rebuild(error: GraphQLError, message: str, code: str) -> GraphQLError:
    return GraphQLError(
        message,
        nodes=error.nodes,
        source=error.source,
        positions=error.positions,
        path=error.path,
        original_error=None,
        extensions={"code": code},
    )


class ErrorTranslation(SchemaExtension):
    def on_operation(self):
        yield
        result = self.execution_context.result
        errors: Optional[List[GraphQLError]] = getattr(result, "errors", None)
        if errors:
            result.errors = [translate_error(error) for error in errors]
