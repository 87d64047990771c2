"""User accounts: lookup by username, registration and credential checks."""

from __future__ import annotations

import asyncio
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..database import run_in_transaction
from ..db_models import User
from ..errors import AuthenticationError, ConflictError
from ..models import Credentials
from ..utils import hash_password, verify_password

logger = logging.getLogger(__name__)


class IdentityService:
    """Durable storage of user accounts keyed by username."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        password_hash_iterations: int,
    ):
        self._session_factory = session_factory
        self._password_hash_iterations = password_hash_iterations

    @staticmethod
    async def find_by_username(session: AsyncSession, username: str) -> User | None:
        result = await session.execute(select(User).where(User.username == username))
        return result.scalar_one_or_none()

    async def register(self, credentials: Credentials) -> str:
        """Create an account and return its username.

        Raises ``ConflictError`` when the username is already taken.
        """

        # Hashing is CPU bound; keep it off the event loop and outside the
        # transaction.
        password_hash = await asyncio.to_thread(
            hash_password,
            credentials.password,
            iterations=self._password_hash_iterations,
        )

        async def _work(session: AsyncSession) -> str:
            if await self.find_by_username(session, credentials.username) is not None:
                raise ConflictError("Username already taken")
            user = User(username=credentials.username, password_hash=password_hash)
            session.add(user)
            await session.flush()
            return user.username

        username = await run_in_transaction(
            self._session_factory, _work, attempts=2, description="registration"
        )
        logger.info("Registered user %s", username)
        return username

    async def authenticate(self, credentials: Credentials) -> str:
        """Return the username when the password matches, else raise."""

        async def _work(session: AsyncSession) -> User | None:
            return await self.find_by_username(session, credentials.username)

        user = await run_in_transaction(
            self._session_factory, _work, description="login"
        )
        if user is None or not await asyncio.to_thread(
            verify_password, credentials.password, user.password_hash
        ):
            logger.warning("Rejected login for %s", credentials.username)
            raise AuthenticationError("Invalid username or password")
        return user.username
