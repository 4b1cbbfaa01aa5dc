# Services package init
"""
CragDB Backend — Services Layer
=================================

What:  Business logic between the GraphQL resolvers and the database.
How:   Services take a session, validated inputs (schemas/inputs.py) and the
       viewer, and return ORM entities or plain aggregates. Multi-entity
       writes run through the transactional orchestrator (transaction.py).

Building blocks:
    - slug.py:           URL-safe, scope-unique slugs
    - positions.py:      sibling position shifting for sectors and routes
    - publish_status.py: visibility, status cascade, contribution flag
    - queries.py:        filter variants → SQL, aggregates
    - query_cache.py:    cache for aggregate reads, invalidated on commit
    - transaction.py:    atomic(): one commit per write, rollback on failure

Service Inventory:
    - CragService, SectorService, RouteService: the contributable hierarchy
    - CountryService, PeakService, IceFallService: geography
    - CommentService, ActivityService, ClubMemberService
"""
