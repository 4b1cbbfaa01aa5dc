"""
CragDB Backend — User Model
=============================

What:  The `user` table: contributors, their roles and the contribution flag.
Who:   Owners of crags/sectors/routes, authors of comments and ascent logs.

Authentication happens upstream; this table only stores what the domain
needs: identity, roles for access control and `has_unpublished_contributions`,
which the transactional orchestrator recomputes on every contributable write.
"""

from typing import List

from sqlalchemy import JSON, Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from cragdb.database import Base
from cragdb.models.mixins import TimestampMixin, UUIDPrimaryKeyMixin

ADMIN_ROLE = "admin"


class User(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "user"

    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    last_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    roles: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    # True iff the user owns at least one crag, sector or route that is not
    # published yet (draft or in_review).
    has_unpublished_contributions: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )

    @property
    def is_admin(self) -> bool:
        return ADMIN_ROLE in (self.roles or [])

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}')>"
