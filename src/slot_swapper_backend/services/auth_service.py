'''

'''
from typing import Annotated
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm

from .security import JWTHandler
from .user_service import UserService
from ..common.security_utils import HashedPassword
from ..models import token as token_models
from ..models import user as user_models
from ..common.logger import log

class LoginService:
    """
    Service for handling signup, login and token issuance.
    Depends on the UserService to fetch user data.
    """
    def __init__(
        self,
        user_service: Annotated[UserService, Depends(UserService)]
    ):
        self.user_service = user_service

    async def login_user(self, form_data: OAuth2PasswordRequestForm) -> token_models.Token:
        log.info(f"Attempting login for user: {form_data.username}")

        user = await self.user_service.get_user_by_email(form_data.username)

        valid, new_hash = (False, None)
        if user:
            valid, new_hash = HashedPassword.verify_and_update(form_data.password, user.password)

        if not valid:
            log.warning(f"Login failed for user: {form_data.username} - Incorrect email or password")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Incorrect email or password",
                headers={"WWW-Authenticate": "Bearer"},
            )

        if new_hash:
            await self.user_service.update_password_hash(user, new_hash)

        access_token = JWTHandler.create_access_token(subject=user.email)
        log.info(f"Login successful for user: {form_data.username}")

        return token_models.Token(access_token=access_token, token_type="bearer")

    async def register_user(self, data: user_models.UserCreate) -> token_models.AuthResponse:
        new_user = await self.user_service.create_user(data)
        access_token = JWTHandler.create_access_token(subject=new_user.email)
        return token_models.AuthResponse(
            access_token=access_token,
            token_type="bearer",
            user=user_models.UserRead.model_validate(new_user)
        )
