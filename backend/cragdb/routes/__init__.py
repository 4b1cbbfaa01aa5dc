# Routes package init
"""
CragDB Backend — REST Routes Package
======================================

What:  The few plain HTTP endpoints next to the GraphQL API.

Route Inventory:
    - health.py:  GET /health   (database + query cache status)

Everything domain-related is served by the GraphQL router at /graphql.
"""
