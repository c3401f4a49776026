import pytest
from fastapi import HTTPException
from fastapi.security import OAuth2PasswordRequestForm
from passlib.context import CryptContext

from slot_swapper_backend.common.security_utils import HashedPassword
from slot_swapper_backend.database import models as db_models
from slot_swapper_backend.models import user as user_models
from slot_swapper_backend.services.auth_service import LoginService
from slot_swapper_backend.services.security import JWTHandler
from slot_swapper_backend.services.user_service import UserService

from tests.constants import TEST_ALICE_EMAIL, TEST_PASSWORD


@pytest.mark.anyio
class TestUserService:

    async def test_create_user_hashes_password(self, user_service: UserService):
        user = await user_service.create_user(
            user_models.UserCreate(name="Dana", email="Dana@Example.com", password=TEST_PASSWORD)
        )
        assert user.email == "dana@example.com"
        assert user.password != TEST_PASSWORD
        assert HashedPassword.verify(TEST_PASSWORD, user.password)

    async def test_create_duplicate_user(self, user_service: UserService, alice: db_models.Users):
        with pytest.raises(HTTPException) as e:
            await user_service.create_user(
                user_models.UserCreate(name="Alice", email=TEST_ALICE_EMAIL.upper(), password=TEST_PASSWORD)
            )
        assert e.value.status_code == 409

    async def test_lookup_is_case_insensitive(self, user_service: UserService, alice: db_models.Users):
        user = await user_service.get_user_by_email(" ALICE@example.com ")
        assert user is not None
        assert user.id == alice.id


@pytest.mark.anyio
class TestLoginService:

    async def test_login_issues_token(self, user_service: UserService, alice: db_models.Users):
        login_service = LoginService(user_service=user_service)
        token = await login_service.login_user(
            OAuth2PasswordRequestForm(username=TEST_ALICE_EMAIL, password=TEST_PASSWORD)
        )
        assert token.token_type == "bearer"
        assert JWTHandler.decode_token(token.access_token).sub == TEST_ALICE_EMAIL

    async def test_login_unknown_user(self, user_service: UserService):
        login_service = LoginService(user_service=user_service)
        with pytest.raises(HTTPException) as e:
            await login_service.login_user(
                OAuth2PasswordRequestForm(username="nobody@example.com", password=TEST_PASSWORD)
            )
        assert e.value.status_code == 401

    async def test_login_upgrades_weak_hash(
        self,
        user_service: UserService,
        alice: db_models.Users,
        monkeypatch
    ):
        stronger = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=5, bcrypt__min_rounds=5)
        monkeypatch.setattr(HashedPassword, "pwd_context", stronger)
        old_hash = alice.password

        login_service = LoginService(user_service=user_service)
        await login_service.login_user(OAuth2PasswordRequestForm(username=TEST_ALICE_EMAIL, password=TEST_PASSWORD))

        user = await user_service.get_user_by_email(TEST_ALICE_EMAIL)
        assert user.password != old_hash
        assert user.password.startswith("$2b$05$")
