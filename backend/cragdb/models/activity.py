"""
CragDB Backend — Activities & Ascent Logs
===========================================

What:  `activity` (a day out at a crag) and `activity_route` (one ascent log
       entry: which route, which ascent type).
How:   The difficulty-vote cleanup lives in the database as an AFTER DELETE
       trigger on activity_route. Alembic (002) installs it on PostgreSQL;
       the DDL events below install the same trigger whenever the schema is
       built from metadata (tests on SQLite, ad-hoc PostgreSQL setups).

Trigger contract:
    After an activity_route row is deleted, if the (user, route) pair has no
    remaining ascent of type redpoint/flash/onsight/repeat, that user's
    difficulty vote for the route is deleted. Application code never
    replicates this.
"""

import uuid
import datetime
from typing import Optional

from sqlalchemy import DDL, Date, ForeignKey, String, Text, Uuid, event
from sqlalchemy.orm import Mapped, mapped_column

from cragdb.database import Base
from cragdb.models.enums import (
    TICK_ASCENT_TYPES,
    ActivityType,
    AscentType,
    PublishType,
    enum_column,
)
from cragdb.models.mixins import TimestampMixin, UUIDPrimaryKeyMixin


class Activity(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "activity"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True
    )
    crag_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("crag.id", ondelete="SET NULL"), nullable=True, index=True
    )
    type: Mapped[ActivityType] = mapped_column(
        enum_column(ActivityType), nullable=False, default=ActivityType.CRAG
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    date: Mapped[datetime.date] = mapped_column(Date, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class ActivityRoute(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "activity_route"

    activity_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("activity.id", ondelete="CASCADE"), nullable=True, index=True
    )
    route_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("route.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True
    )
    ascent_type: Mapped[AscentType] = mapped_column(enum_column(AscentType), nullable=False)
    publish: Mapped[PublishType] = mapped_column(
        enum_column(PublishType), nullable=False, default=PublishType.PUBLIC
    )
    date: Mapped[datetime.date] = mapped_column(Date, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


# ── Difficulty Vote Cleanup Trigger ───────────────────────────────────────
_TICK_TYPES_SQL = ", ".join(
    f"'{t.value}'" for t in sorted(TICK_ASCENT_TYPES, key=lambda t: t.value)
)

POSTGRES_TRIGGER_FUNCTION = f"""
CREATE OR REPLACE FUNCTION delete_difficulty_vote()
    RETURNS TRIGGER
    LANGUAGE plpgsql
    AS
$$
DECLARE
    ticks_left INTEGER;
BEGIN
    SELECT count(*) INTO ticks_left FROM activity_route
    WHERE route_id = OLD.route_id
    AND user_id = OLD.user_id
    AND ascent_type IN ({_TICK_TYPES_SQL});

    IF (ticks_left > 0) THEN
        RETURN NULL;
    END IF;

    DELETE FROM difficulty_vote
    WHERE user_id = OLD.user_id
    AND route_id = OLD.route_id;

    RETURN NULL;
END
$$;
"""

POSTGRES_TRIGGER = """
CREATE TRIGGER delete_difficulty_vote
    AFTER DELETE
    ON activity_route
    FOR EACH ROW
    EXECUTE PROCEDURE delete_difficulty_vote();
"""

SQLITE_TRIGGER = f"""
CREATE TRIGGER IF NOT EXISTS delete_difficulty_vote
    AFTER DELETE ON activity_route
    FOR EACH ROW
    WHEN (
        SELECT count(*) FROM activity_route
        WHERE route_id = OLD.route_id
        AND user_id = OLD.user_id
        AND ascent_type IN ({_TICK_TYPES_SQL})
    ) = 0
BEGIN
    DELETE FROM difficulty_vote
    WHERE user_id = OLD.user_id
    AND route_id = OLD.route_id;
END;
"""

event.listen(
    ActivityRoute.__table__,
    "after_create",
    DDL(POSTGRES_TRIGGER_FUNCTION).execute_if(dialect="postgresql"),
)
event.listen(
    ActivityRoute.__table__,
    "after_create",
    DDL(POSTGRES_TRIGGER).execute_if(dialect="postgresql"),
)
event.listen(
    ActivityRoute.__table__,
    "after_create",
    DDL(SQLITE_TRIGGER).execute_if(dialect="sqlite"),
)
