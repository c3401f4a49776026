'''

'''
from typing import Annotated
from uuid import UUID
from fastapi import Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..database.engine import get_db_session
from ..database import models as db_models
from ..common.logger import log
from ..common.security_utils import HashedPassword
from ..models import user as user_models


class UserService:
    """
    Service for user-related database operations.
    """
    def __init__(self, db: Annotated[AsyncSession, Depends(get_db_session)]):
        self.db = db

    async def get_user_by_email(self, email: str) -> db_models.Users | None:
        log.info(f"Fetching user profile for email: {email}")
        try:
            stmt = select(db_models.Users).filter(db_models.Users.email == email.strip().lower())
            result = await self.db.execute(stmt)
            return result.scalars().first()
        except Exception as e:
            log.error(f"Database error fetching user by email {email}: {e}", exc_info=True)
            raise

    async def get_user_by_id(self, user_id: UUID) -> db_models.Users | None:
        log.info(f"Fetching user profile for ID: {user_id}")
        try:
            return await self.db.get(db_models.Users, user_id)
        except Exception as e:
            log.error(f"Database error fetching user by ID {user_id}: {e}", exc_info=True)
            raise

    async def create_user(self, data: user_models.UserCreate) -> db_models.Users:
        """
        Creates a new user with a hashed password.
        Raises 409 if the email is already registered.
        """
        email = data.email.strip().lower()
        log.info(f"Attempting to create user with email: {email}")

        if await self.get_user_by_email(email):
            log.warning(f"Signup rejected, email already registered: {email}")
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="User with this email already exists"
            )

        new_user = db_models.Users(
            name=data.name.strip(),
            email=email,
            password=HashedPassword.get_hash(data.password)
        )
        self.db.add(new_user)
        try:
            await self.db.flush()
        except IntegrityError:
            await self.db.rollback()
            log.warning(f"Signup race lost, email already registered: {email}")
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Email already registered"
            )
        await self.db.refresh(new_user)
        log.info(f"User {new_user.id} created.")
        return new_user

    async def update_password_hash(self, user: db_models.Users, new_hash: str) -> None:
        """Stores a re-hashed password after the hashing parameters changed."""
        log.info(f"Upgrading password hash for user {user.id}.")
        user.password = new_hash
        await self.db.flush()
