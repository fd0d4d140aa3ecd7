"""
Cat Service - cat profiles with AI recommendations attached
"""

import logging
from typing import List

from sqlalchemy.ext.asyncio import AsyncSession

from crud.cat import CatRepository
from database_models import Cat
from models.results import Found, NotFound, Result
from services.recommendation_service import RecommendationError, RecommendationService

logger = logging.getLogger(__name__)

# Profile changes that invalidate the stored recommendations
RECOMPUTE_FIELDS = ("weight", "target_weight", "activity_level")


class CatService:

    def __init__(self, db: AsyncSession, recommender: RecommendationService):
        self.db = db
        self.repo = CatRepository(db)
        self.recommender = recommender

    async def list_cats(self, user_id: int) -> Result:
        cats: List[Cat] = await self.repo.list_for_user(user_id)
        if not cats:
            return NotFound("No cats found for this user.")
        return Found([cat.to_dict() for cat in cats])

    async def _refresh_recommendations(self, cat: Cat) -> None:
        try:
            recommendations = await self.recommender.get_recommendations(cat.profile())
        except RecommendationError as e:
            logger.warning(f"Keeping cat {cat.id} without fresh recommendations: {e}")
            return
        await self.repo.set_recommendations(cat, recommendations)

    async def create(self, user_id: int, fields: dict) -> Result:
        cat = await self.repo.create(user_id, fields)
        await self._refresh_recommendations(cat)
        record = cat.to_dict()
        await self.db.commit()
        logger.info(f"Cat {cat.id} created for user {user_id}")
        return Found(record)

    async def update(self, cat_id: int, user_id: int, fields: dict) -> Result:
        lookup = await self.repo.lookup(cat_id, user_id)
        if not isinstance(lookup, Found):
            return lookup

        before = {key: getattr(lookup.value, key) for key in RECOMPUTE_FIELDS}
        result = await self.repo.update(cat_id, user_id, fields)
        if not isinstance(result, Found):
            return result

        cat = result.value
        if any(getattr(cat, key) != before[key] for key in RECOMPUTE_FIELDS):
            await self._refresh_recommendations(cat)

        record = cat.to_dict()
        await self.db.commit()
        return Found(record)

    async def delete(self, cat_id: int, user_id: int) -> Result:
        result = await self.repo.delete(cat_id, user_id)
        if isinstance(result, Found):
            await self.db.commit()
            logger.info(f"Cat {cat_id} deleted for user {user_id}")
        return result

    async def chat(self, cat_id: int, user_id: int, messages: list, language: str = "en") -> Result:
        """Chat about one of the user's cats; other users' cats read as missing."""
        lookup = await self.repo.lookup(cat_id, user_id)
        if not isinstance(lookup, Found):
            return NotFound("Cat not found")
        reply = await self.recommender.chat(lookup.value.to_dict(), messages, language)
        return Found(reply)
