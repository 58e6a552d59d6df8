from typing import AsyncIterator, Optional, Union, cast

from fastapi import Depends, Request
from fastapi_users import FastAPIUsers, InvalidPasswordException
from fastapi_users.authentication import (
    AuthenticationBackend,
    BearerTransport,
    JWTStrategy,
)
from fastapi_users.authentication.transport import Transport
from fastapi_users_db_sqlalchemy import SQLAlchemyUserDatabase
from fastapi_users.manager import BaseUserManager, IntegerIDMixin
from fastapi_users import schemas as fa_schemas

from pydantic import EmailStr, computed_field

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings, generation_config
from app.core.db.base import get_session
from app.core.db.schemas.auth import User
from app.core.logging import get_logger


logger = get_logger(__name__)

MIN_PASSWORD_LENGTH = 8


class UserRead(fa_schemas.BaseUser[int]):
    id: int
    email: EmailStr

    @computed_field  # type: ignore[misc]
    @property
    def is_admin(self) -> bool:
        return generation_config.is_admin(self.email)


class UserCreate(fa_schemas.BaseUserCreate):
    email: EmailStr
    password: str


class UserUpdate(fa_schemas.BaseUserUpdate):
    email: Optional[EmailStr] = None
    password: Optional[str] = None


async def get_user_db(
    session: AsyncSession = Depends(get_session),
) -> AsyncIterator[SQLAlchemyUserDatabase]:
    yield SQLAlchemyUserDatabase(session, User)


class UserManager(IntegerIDMixin, BaseUserManager[User, int]):  # type: ignore[type-arg]
    reset_password_token_secret = settings.app.jwt_secret
    verification_token_secret = settings.app.jwt_secret

    async def validate_password(
        self, password: str, user: Union[UserCreate, User]
    ) -> None:
        if len(password) < MIN_PASSWORD_LENGTH:
            raise InvalidPasswordException(
                reason=f"Password should be at least {MIN_PASSWORD_LENGTH} characters"
            )
        if user.email.split("@")[0].lower() in password.lower():
            raise InvalidPasswordException(reason="Password should not contain e-mail")

    async def on_after_register(
        self, user: User, request: Optional[Request] = None
    ) -> None:
        logger.info("User %d registered", user.id)

    async def on_after_forgot_password(
        self, user: User, token: str, request: Optional[Request] = None
    ) -> None:
        logger.info("Password reset requested for user %d", user.id)


async def get_user_manager(
    user_db: SQLAlchemyUserDatabase = Depends(get_user_db),
) -> AsyncIterator[UserManager]:
    yield UserManager(user_db)


# Auth backend: JWT over Bearer, using versioned path for login
bearer_transport = BearerTransport(tokenUrl=f"{settings.app.version}/auth/login")


def get_jwt_strategy() -> JWTStrategy:
    return JWTStrategy(
        secret=settings.app.jwt_secret,
        lifetime_seconds=settings.jwt.token_lifetime_seconds,
    )


auth_backend = AuthenticationBackend(
    name="jwt",
    transport=cast(Transport, bearer_transport),
    get_strategy=get_jwt_strategy,
)


fastapi_users = FastAPIUsers[User, int](  # type: ignore[type-arg]
    get_user_manager,
    [auth_backend],
)

# Resolves to None instead of raising, so the entitlement gate owns the 401
optional_current_user = fastapi_users.current_user(active=True, optional=True)
