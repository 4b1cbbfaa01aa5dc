"""The caller of a service operation, as far as visibility and ownership care."""

import dataclasses
import uuid
from typing import Optional

from cragdb.models.user import User


@dataclasses.dataclass(frozen=True)
class Viewer:
    """
    Authenticated caller. Anonymous callers are represented by `None`.

    A plain value (not the ORM `User`): it survives a rollback untouched,
    whereas ORM instances are expired by it.
    """

    user_id: uuid.UUID
    is_admin: bool = False

    @classmethod
    def of(cls, user: Optional[User]) -> Optional["Viewer"]:
        if user is None:
            return None
        return cls(user_id=user.id, is_admin=user.is_admin)
