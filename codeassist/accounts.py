"""Accounts: username/password registration and login.

Passwords are hashed with bcrypt in a worker thread so the event loop keeps
serving other requests while the hash is computed.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

import bcrypt
from pymongo.errors import DuplicateKeyError, PyMongoError

from codeassist.config import MIN_BCRYPT_ROUNDS
from codeassist.errors import (
    DuplicateUsernameError,
    InvalidCredentialsError,
    PersistenceError,
)
from codeassist.schemas import UserAccount

if TYPE_CHECKING:
    from pymongo.asynchronous.collection import AsyncCollection

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------


BCRYPT_MAX_BYTES = 72


def _password_bytes(password: str) -> bytes:
    # bcrypt only reads the first 72 bytes; newer releases raise instead of truncating
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


async def hash_password(password: str, rounds: int = MIN_BCRYPT_ROUNDS) -> str:
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = await asyncio.to_thread(bcrypt.hashpw, _password_bytes(password), salt)
    return hashed.decode("utf-8")


async def verify_password(password: str, hashed: str) -> bool:
    try:
        return await asyncio.to_thread(
            bcrypt.checkpw, _password_bytes(password), hashed.encode("utf-8")
        )
    except ValueError:
        # Malformed stored hash
        return False


# ---------------------------------------------------------------------------
# User stores
# ---------------------------------------------------------------------------


class UserStore(ABC):
    @abstractmethod
    async def get(self, username: str) -> UserAccount | None:
        """Return the account for ``username``, or None."""

    @abstractmethod
    async def create(self, account: UserAccount) -> None:
        """Insert ``account``. Raises DuplicateUsernameError if taken."""


class InMemoryUserStore(UserStore):
    def __init__(self) -> None:
        self._accounts: dict[str, UserAccount] = {}
        self._lock = asyncio.Lock()

    async def get(self, username: str) -> UserAccount | None:
        return self._accounts.get(username)

    async def create(self, account: UserAccount) -> None:
        async with self._lock:
            if account.username in self._accounts:
                raise DuplicateUsernameError(account.username)
            self._accounts[account.username] = account

    def __len__(self) -> int:
        return len(self._accounts)


class MongoUserStore(UserStore):
    """``users`` collection with a unique index on ``username``."""

    def __init__(self, collection: AsyncCollection):
        self._collection = collection

    async def ensure_indexes(self) -> None:
        try:
            await self._collection.create_index("username", unique=True)
        except PyMongoError as e:
            raise PersistenceError(f"Could not index users collection: {e}") from e

    async def get(self, username: str) -> UserAccount | None:
        try:
            doc = await self._collection.find_one({"username": username}, {"_id": 0})
        except PyMongoError as e:
            raise PersistenceError(f"Could not look up user '{username}': {e}") from e
        return UserAccount(**doc) if doc else None

    async def create(self, account: UserAccount) -> None:
        try:
            await self._collection.insert_one(account.model_dump())
        except DuplicateKeyError as e:
            raise DuplicateUsernameError(account.username) from e
        except PyMongoError as e:
            raise PersistenceError(f"Could not create user '{account.username}': {e}") from e


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class AccountService:
    def __init__(self, store: UserStore, bcrypt_rounds: int = MIN_BCRYPT_ROUNDS):
        self.store = store
        self.bcrypt_rounds = bcrypt_rounds

    async def register(self, username: str, password: str) -> None:
        """Create an account. Raises DuplicateUsernameError if the name is taken."""
        if await self.store.get(username) is not None:
            raise DuplicateUsernameError(username)
        hashed = await hash_password(password, self.bcrypt_rounds)
        # The store re-checks uniqueness, which catches concurrent registrations
        await self.store.create(UserAccount(username=username, password=hashed))
        logger.info(f"Registered user '{username}'")

    async def login(self, username: str, password: str) -> None:
        """Check credentials. Raises InvalidCredentialsError on any mismatch."""
        account = await self.store.get(username)
        if account is None or not await verify_password(password, account.password):
            raise InvalidCredentialsError("Invalid username or password")
