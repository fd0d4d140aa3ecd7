"""
UserRepository for database operations on User model
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from database_models import User


class EmailAlreadyRegistered(Exception):
    """Raised when the unique email constraint rejects a signup."""


class UserRepository:
    """
    Users are keyed by lower-cased email; lookups normalise the same way.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user_by_email(self, email: str) -> Optional[User]:
        """
        Retrieve a user by email address.

        Args:
            email: User's email address (case-insensitive search)

        Returns:
            User object if found, None otherwise
        """
        result = await self.db.execute(
            select(User).where(User.email == email.lower())
        )
        return result.scalar_one_or_none()

    async def get_user_by_id(self, user_id: int) -> Optional[User]:
        return await self.db.get(User, user_id)

    async def create_user(self, user_data: dict) -> User:
        """
        Create a new user in the database.

        Args:
            user_data: Dictionary containing user data. Must include:
                - email: str
                - hashed_password: str
                - first_name: str
                - last_name: str
                Optional:
                - phone_number: str

        Returns:
            Created User object

        Raises:
            EmailAlreadyRegistered: if the email is already taken
        """
        user = User(
            email=user_data["email"].lower(),
            hashed_password=user_data["hashed_password"],
            first_name=user_data["first_name"],
            last_name=user_data["last_name"],
            phone_number=user_data.get("phone_number"),
        )
        self.db.add(user)
        try:
            await self.db.flush()  # Flush to get the ID without committing
        except IntegrityError as e:
            await self.db.rollback()
            raise EmailAlreadyRegistered(user_data["email"]) from e
        await self.db.refresh(user)
        return user
