"""
HelpFlow Backend: Profile Read Service
=======================================

What:  Read-side lookups for the dashboard: one profile by identity id.
Who:   Called by routes/profiles.py. Profiles are written only by the
       webhook services and the checkout service.
"""

import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from helpflow.exceptions import NotFoundError, PersistenceError
from helpflow.models.profile import Profile

logger = logging.getLogger(__name__)


class ProfileService:

    async def get_by_clerk_user_id(self, db: AsyncSession, clerk_user_id: str) -> Profile:
        """
        Raises:
            NotFoundError: no profile mirrors this identity user (yet)
            PersistenceError: query failed
        """
        try:
            result = await db.execute(select(Profile).where(Profile.clerk_user_id == clerk_user_id))
        except SQLAlchemyError as e:
            logger.error("Failed to fetch profile %s: %s", clerk_user_id, str(e))
            raise PersistenceError(context={"operation": "get_profile", "error_type": type(e).__name__}) from e

        profile = result.scalar_one_or_none()
        if profile is None:
            raise NotFoundError(resource="Profile", resource_id=clerk_user_id)
        return profile
