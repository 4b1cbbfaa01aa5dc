"""
CragDB Backend — Comment Service
==================================

What:  Comments, condition reports and warnings on crags, routes and ice falls.
How:   The target must exist at create time; only the author or an admin may
       edit or delete a comment.
Who:   Called by GraphQL resolvers (graphql/schema.py).
"""

import datetime
import logging
import uuid
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cragdb.exceptions import ForbiddenError, NotFoundError
from cragdb.models.comment import Comment
from cragdb.models.crag import Crag, Route
from cragdb.models.enums import CommentType
from cragdb.models.ice_fall import IceFall
from cragdb.schemas.inputs import CreateCommentInput, FindCommentsInput, UpdateCommentInput
from cragdb.schemas.viewer import Viewer
from cragdb.services import queries
from cragdb.services.transaction import atomic

logger = logging.getLogger(__name__)


class CommentService:
    async def find(self, db: AsyncSession, params: FindCommentsInput) -> List[Comment]:
        """Comments matching `params`, newest first."""
        result = await db.scalars(queries.build_comments_query(params.to_filters()))
        return list(result.all())

    async def find_one_by_id(self, db: AsyncSession, comment_id: uuid.UUID) -> Comment:
        comment = await db.get(Comment, comment_id)
        if comment is None:
            raise NotFoundError(resource="comment", resource_id=str(comment_id))
        return comment

    async def exposed_warnings(
        self, db: AsyncSession, today: Optional[datetime.date] = None
    ) -> List[Comment]:
        """Warnings whose exposed_until is today or later, most recently edited first."""
        today = today or datetime.date.today()
        result = await db.scalars(
            select(Comment)
            .where(Comment.type == CommentType.WARNING, Comment.exposed_until >= today)
            .order_by(Comment.updated_at.desc())
        )
        return list(result.all())

    async def create(
        self, db: AsyncSession, data: CreateCommentInput, viewer: Viewer
    ) -> Comment:
        async with atomic(db, touches=("comment",)):
            for model, target_id in (
                (Crag, data.crag_id),
                (Route, data.route_id),
                (IceFall, data.ice_fall_id),
            ):
                if target_id is not None and await db.get(model, target_id) is None:
                    raise NotFoundError(resource=model.__tablename__, resource_id=str(target_id))

            comment = Comment(
                user_id=viewer.user_id,
                type=data.type,
                content=data.content,
                crag_id=data.crag_id,
                route_id=data.route_id,
                ice_fall_id=data.ice_fall_id,
                exposed_until=data.exposed_until,
            )
            db.add(comment)
            await db.flush()

        logger.info("Comment created: %s (%s)", comment.id, comment.type.value)
        return comment

    async def update(
        self, db: AsyncSession, data: UpdateCommentInput, viewer: Viewer
    ) -> Comment:
        async with atomic(db, touches=("comment",)):
            comment = await self._editable(db, data.id, viewer)
            for field, value in data.changes().items():
                setattr(comment, field, value)
            await db.flush()

        return comment

    async def delete(self, db: AsyncSession, comment_id: uuid.UUID, viewer: Viewer) -> bool:
        async with atomic(db, touches=("comment",)):
            comment = await self._editable(db, comment_id, viewer)
            await db.delete(comment)
            await db.flush()

        logger.info("Comment deleted: %s", comment_id)
        return True

    async def _editable(
        self, db: AsyncSession, comment_id: uuid.UUID, viewer: Viewer
    ) -> Comment:
        comment = await self.find_one_by_id(db, comment_id)
        if comment.user_id != viewer.user_id and not viewer.is_admin:
            raise ForbiddenError(
                message="Only the author or an admin can change this comment",
                context={"comment_id": str(comment_id), "user_id": str(viewer.user_id)},
            )
        return comment


# Singleton instance
comment_service = CommentService()
