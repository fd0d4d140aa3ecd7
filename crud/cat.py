"""
CatRepository - owner-scoped CRUD for cat profiles
"""

from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from database_models import Cat
from models.results import Found, NotFound, Result, Unauthorized


class CatRepository:
    """Repository class for Cat database operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_for_user(self, user_id: int) -> List[Cat]:
        result = await self.db.execute(
            select(Cat).where(Cat.user_id == user_id).order_by(Cat.id)
        )
        return list(result.scalars().all())

    async def create(self, user_id: int, fields: dict) -> Cat:
        cat = Cat(user_id=user_id, **fields)
        self.db.add(cat)
        await self.db.flush()
        await self.db.refresh(cat)
        return cat

    async def lookup(self, cat_id: int, user_id: int) -> Result:
        cat = await self.db.get(Cat, cat_id)
        if cat is None:
            return NotFound("Cat not found")
        if cat.user_id != user_id:
            return Unauthorized("User not authorized to modify this cat")
        return Found(cat)

    async def update(self, cat_id: int, user_id: int, fields: dict) -> Result:
        lookup = await self.lookup(cat_id, user_id)
        if not isinstance(lookup, Found):
            return lookup

        cat = lookup.value
        for key, value in fields.items():
            if key in Cat.PROFILE_FIELDS:
                setattr(cat, key, value)
        await self.db.flush()
        await self.db.refresh(cat)
        return Found(cat)

    async def set_recommendations(self, cat: Cat, recommendations: dict) -> Cat:
        for key in Cat.RECOMMENDATION_FIELDS:
            if key in recommendations:
                setattr(cat, key, recommendations[key])
        await self.db.flush()
        await self.db.refresh(cat)
        return cat

    async def delete(self, cat_id: int, user_id: int) -> Result:
        lookup = await self.lookup(cat_id, user_id)
        if not isinstance(lookup, Found):
            return lookup
        await self.db.delete(lookup.value)
        await self.db.flush()
        return lookup
