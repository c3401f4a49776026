'''
API endpoints for Authentication: registration, login and the current user.
'''
from typing import Annotated
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm

from ..database import models as db_models
from ..services.auth_service import LoginService
from ..services.security import verify_token_and_get_user
from ..models import token as token_models
from ..models import user as user_models
from ..common.logger import log

class AuthRoutes:
    """
    A class to encapsulate all authentication endpoints.
    """
    def __init__(self):
        self.router = APIRouter(
            prefix="/auth",
            tags=["Authentication"]
        )
        self._register_routes()

    def _register_routes(self):
        """Registers all the API routes for this class."""
        self.router.add_api_route(
            "/register",
            self.register,
            methods=["POST"],
            response_model=token_models.AuthResponse,
            status_code=status.HTTP_201_CREATED,
            summary="User Signup"
        )
        self.router.add_api_route(
            "/login",
            self.login_for_access_token,
            methods=["POST"],
            response_model=token_models.Token,
            summary="Login for Access Token"
        )
        self.router.add_api_route(
            "/me",
            self.read_current_user,
            methods=["GET"],
            response_model=user_models.UserRead,
            summary="Current User"
        )

    async def register(
        self,
        user_data: user_models.UserCreate,
        login_service: Annotated[LoginService, Depends(LoginService)]
    ):
        """
        Creates a new user and returns it together with an access token.
        """
        log.info(f"Signup requested for {user_data.email}")
        return await login_service.register_user(user_data)

    async def login_for_access_token(
        self,
        form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
        login_service: Annotated[LoginService, Depends(LoginService)]
    ):
        """
        Authenticates a user and returns an access token.
        Uses OAuth2PasswordRequestForm (username = email & password fields).
        """
        try:
            return await login_service.login_user(form_data)
        except HTTPException as e:
            raise e
        except Exception as e:
            log.error(f"Unexpected error during login: {e}", exc_info=True)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="An internal server error occurred during login.",
            )

    async def read_current_user(
        self,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)]
    ):
        """Returns the user the token was issued to."""
        return user_models.UserRead.model_validate(current_user)

# Instantiate the class and export its router
auth_routes = AuthRoutes()
router = auth_routes.router
