"""Registration, login and user listing."""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.domain.enums import UserRole
from src.domain.errors import AuthError, ConflictError, NotFoundError
from src.domain.security import hash_password, verify_password
from src.infrastructure.models import UserModel
from src.infrastructure.repositories import UserRepository

logger = logging.getLogger(__name__)


class AccountService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.users = UserRepository(session)

    async def register(
        self,
        username: str,
        password: str,
        name: str,
        role: UserRole,
        plate: str | None = None,
    ) -> UserModel:
        if await self.users.get_by_username(username):
            raise ConflictError("Username already taken")

        user = UserModel(
            username=username,
            password_hash=hash_password(password),
            name=name,
            role=role,
            plate=plate,
            active_trip_id=None,
        )
        try:
            await self.users.create(user)
        except IntegrityError as exc:
            # A concurrent registration won the unique constraint
            raise ConflictError("Username already taken") from exc

        logger.info("Registered %s %s", role.value, username)
        return user

    async def login(self, username: str, password: str) -> UserModel:
        user = await self.users.get_by_username(username)
        if user is None:
            raise NotFoundError("User not found")
        if not verify_password(password, user.password_hash):
            logger.warning("Failed login for %s", username)
            raise AuthError("Invalid password")
        return user

    async def list_users(self) -> list[UserModel]:
        return await self.users.list_all()
