# Schemas package init
"""
Validated inputs (pydantic) and structured query filters consumed by the services.
"""
