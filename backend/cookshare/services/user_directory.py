"""
CookShare Backend — User Directory
====================================

What:  Read-only lookup of user display fields (name, avatar, bio, email).
Who:   GroupService and GroupPostService, when enriching groups, members,
       join requests, posts and comments for display.

Degradation:
    Enrichment is cosmetic. If the users table cannot be read the lookup
    logs a warning and returns no users; callers then render the
    placeholder name ("Unknown User" / "Unknown") and a null avatar
    instead of failing the whole request. The failed SELECT is confined
    to a savepoint, so the writes and reads around it are unaffected.
"""

import logging
from typing import Dict, Iterable, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cookshare.models.user import User

logger = logging.getLogger(__name__)


class UserDirectory:
    async def find_users_by_ids(
        self, db: AsyncSession, user_ids: Iterable[Optional[str]]
    ) -> Dict[str, User]:
        """
        Batch lookup keyed by user id.

        One `WHERE id IN (...)` query regardless of how many ids are asked
        for; duplicates and None are dropped. Missing users are simply
        absent from the returned mapping.
        """
        ids = sorted({str(user_id) for user_id in user_ids if user_id is not None})
        if not ids:
            return {}

        # The lookup runs in a SAVEPOINT: a failed SELECT rolls back only the
        # savepoint and the request's transaction stays usable.
        savepoint = await db.begin_nested()
        try:
            result = await db.execute(select(User).where(User.id.in_(ids)))
            users = {user.id: user for user in result.scalars().all()}
        except SQLAlchemyError as exc:
            await savepoint.rollback()
            logger.warning("User lookup failed for %d ids, using placeholders: %s", len(ids), exc)
            return {}

        await savepoint.commit()
        return users

    async def find_user_by_id(self, db: AsyncSession, user_id: Optional[str]) -> Optional[User]:
        users = await self.find_users_by_ids(db, [user_id])
        return users.get(str(user_id)) if user_id is not None else None


user_directory = UserDirectory()
