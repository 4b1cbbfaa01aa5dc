# Middleware package init
"""
CragDB Backend — Middleware Package
=====================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain:
    Request → [Request ID] → [Access Log] → [GZip] → [CORS] → Route / GraphQL

    The request id is assigned first so every log line of the request,
    including the access log entry, carries it.
"""
