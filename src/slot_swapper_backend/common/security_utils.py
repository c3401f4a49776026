'''
Password hashing, kept out of the services so user_service and security
can both import it without a cycle.
'''
from typing import Optional

from passlib.context import CryptContext

from .config import settings


class HashedPassword:
    pwd_context = CryptContext(
        schemes=["bcrypt"],
        deprecated="auto",
        bcrypt__rounds=settings.BCRYPT_ROUNDS,
        bcrypt__min_rounds=settings.BCRYPT_ROUNDS
    )

    @classmethod
    def verify(cls, plain_password: str, hashed_password: str) -> bool:
        return cls.pwd_context.verify(plain_password, hashed_password)

    @classmethod
    def get_hash(cls, password: str) -> str:
        return cls.pwd_context.hash(password)

    @classmethod
    def verify_and_update(cls, plain_password: str, hashed_password: str) -> tuple[bool, Optional[str]]:
        """
        Verifies the password and, when the stored hash uses outdated
        parameters (e.g. fewer rounds), returns a fresh hash to store.
        """
        return cls.pwd_context.verify_and_update(plain_password, hashed_password)
