"""
CragDB Backend — GraphQL Request Context
==========================================

What:  Per-request state every resolver sees: the database session, the
       current user (if any) and the request-scoped data loaders.
How:   `get_context` is the GraphQLRouter's context_getter. FastAPI injects
       the session (`get_db_session`) exactly like it does for REST routes.
Who:   Resolvers read it via `info.context`.

Authentication:
    Happens upstream. The gateway forwards the authenticated user's id in
    `settings.auth_user_header`; a missing, malformed or unknown id means
    an anonymous request.

Session access:
    GraphQL resolves sibling fields concurrently, while an AsyncSession
    allows one operation at a time. Resolvers therefore borrow the session
    through `context.session()`, which serializes access per request.
"""

import asyncio
import logging
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, List, Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from strawberry.dataloader import DataLoader
from strawberry.fastapi import BaseContext

from cragdb.config import settings
from cragdb.database import get_db_session
from cragdb.models.user import User
from cragdb.schemas.viewer import Viewer
from cragdb.services.route_service import route_service

logger = logging.getLogger(__name__)


class GraphQLContext(BaseContext):
    def __init__(self, db: AsyncSession, user: Optional[User] = None):
        super().__init__()
        self.db = db
        self.user = user
        self.viewer: Optional[Viewer] = Viewer.of(user)
        self._lock = asyncio.Lock()

        self.ticks_loader = DataLoader(load_fn=self._loader(route_service.count_ticks))
        self.tries_loader = DataLoader(load_fn=self._loader(route_service.count_tries))
        self.climbers_loader = DataLoader(
            load_fn=self._loader(route_service.count_distinct_climbers)
        )

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        async with self._lock:
            yield self.db

    def _loader(self, count):
        async def load(route_ids: List[uuid.UUID]) -> List[int]:
            async with self.session() as db:
                counts: Dict[uuid.UUID, int] = await count(db, route_ids)
            return [counts.get(route_id, 0) for route_id in route_ids]

        return load


async def _current_user(request: Request, db: AsyncSession) -> Optional[User]:
    raw = request.headers.get(settings.auth_user_header)
    if not raw:
        return None
    try:
        user_id = uuid.UUID(raw)
    except ValueError:
        logger.warning("Ignoring malformed %s header: %r", settings.auth_user_header, raw)
        return None

    user = await db.get(User, user_id)
    if user is None:
        logger.warning("Forwarded user %s does not exist; treating request as anonymous", user_id)
    return user


async def get_context(
    request: Request, db: AsyncSession = Depends(get_db_session)
) -> GraphQLContext:
    return GraphQLContext(db=db, user=await _current_user(request, db))
