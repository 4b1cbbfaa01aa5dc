"""
CragDB Backend — Club Member Service
======================================

What:  Adding members to a club (by user id or by e-mail) and removing them.
How:   Only an admin member of the club may do either. Adding someone twice
       hits the (club, user) unique constraint, which the transaction
       orchestrator reports as ConflictError.
"""

import logging
import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from cragdb.exceptions import ForbiddenError, NotFoundError
from cragdb.models.club import Club, ClubMember
from cragdb.models.user import User
from cragdb.schemas.inputs import CreateClubMemberByEmailInput, CreateClubMemberInput
from cragdb.schemas.viewer import Viewer
from cragdb.services.transaction import atomic

logger = logging.getLogger(__name__)


class ClubMemberService:
    async def create(
        self, db: AsyncSession, data: CreateClubMemberInput, viewer: Viewer
    ) -> ClubMember:
        async with atomic(db, touches=("club_member",)):
            await self._require_club_admin(db, data.club_id, viewer)
            if await db.get(User, data.user_id) is None:
                raise NotFoundError(resource="user", resource_id=str(data.user_id))
            member = await self._add(db, data.club_id, data.user_id, data.admin)

        return member

    async def create_by_email(
        self, db: AsyncSession, data: CreateClubMemberByEmailInput, viewer: Viewer
    ) -> ClubMember:
        async with atomic(db, touches=("club_member",)):
            await self._require_club_admin(db, data.club_id, viewer)
            user = await db.scalar(
                select(User).where(func.lower(User.email) == data.email.strip().lower())
            )
            if user is None:
                raise NotFoundError(resource="user", context={"email": data.email})
            member = await self._add(db, data.club_id, user.id, data.admin)

        return member

    async def delete(self, db: AsyncSession, member_id: uuid.UUID, viewer: Viewer) -> bool:
        async with atomic(db, touches=("club_member",)):
            member = await db.get(ClubMember, member_id)
            if member is None:
                raise NotFoundError(resource="club_member", resource_id=str(member_id))
            await self._require_club_admin(db, member.club_id, viewer)

            await db.delete(member)
            await db.flush()

        logger.info("Club member removed: %s", member_id)
        return True

    async def _add(
        self, db: AsyncSession, club_id: uuid.UUID, user_id: uuid.UUID, admin: bool
    ) -> ClubMember:
        member = ClubMember(club_id=club_id, user_id=user_id, admin=admin)
        db.add(member)
        await db.flush()
        logger.info("Club member added: user %s to club %s", user_id, club_id)
        return member

    async def _require_club_admin(
        self, db: AsyncSession, club_id: uuid.UUID, viewer: Viewer
    ) -> None:
        if await db.get(Club, club_id) is None:
            raise NotFoundError(resource="club", resource_id=str(club_id))

        is_admin = await db.scalar(
            select(ClubMember.admin).where(
                ClubMember.club_id == club_id, ClubMember.user_id == viewer.user_id
            )
        )
        if not is_admin:
            raise ForbiddenError(
                message="Only club admins can manage members",
                context={"club_id": str(club_id), "user_id": str(viewer.user_id)},
            )


# Singleton instance
club_member_service = ClubMemberService()
