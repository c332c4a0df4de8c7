"""
Credential store adapters.

The session layer only talks to `CredentialStore`. `BeanieCredentialStore`
persists users in MongoDB; `InMemoryCredentialStore` keeps them in a dict and
is used for tests and local runs without a database.
"""
import asyncio

from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime

import pytz

from beanie import PydanticObjectId
from beanie.operators import Or, Set
from bson import ObjectId
from bson.errors import InvalidId
from pymongo.errors import DuplicateKeyError, PyMongoError

from typing import Dict, Optional

from models.users import User
from schema.users import NewUser, UserIdentity
from security.passwords import verify_password_async


class CredentialStoreError(Exception):
    """Raised when the underlying store cannot serve a request."""


class DuplicateIdentityError(CredentialStoreError):
    """Raised when a username or email is already taken."""


# Fields callers may change through `update_profile`
PROFILE_FIELDS = {"full_name", "email", "avatar", "cover_image"}


class CredentialStore(ABC):
    """Lookup and the few mutations the session layer performs on stored users."""

    @abstractmethod
    async def find_by_identifier(self, identifier: str) -> Optional[UserIdentity]:
        """Find a user whose username or email equals `identifier` (already lower-cased)."""

    @abstractmethod
    async def find_by_id(self, user_id: str) -> Optional[UserIdentity]:
        """Find a user by id. Unknown or malformed ids yield None."""

    @abstractmethod
    async def find_conflict(self, username: str, email: str) -> Optional[UserIdentity]:
        """Find any user already holding `username` or `email`."""

    @abstractmethod
    async def create(self, new_user: NewUser) -> UserIdentity:
        """Insert a user. Raises `DuplicateIdentityError` on a uniqueness clash."""

    @abstractmethod
    async def persist_refresh_token(self, user_id: str, token: Optional[str]) -> None:
        """Unconditionally set (or clear, with None) the stored refresh token."""

    @abstractmethod
    async def swap_refresh_token(self, user_id: str, expected: str, new: str) -> bool:
        """Replace the stored refresh token with `new` only if it still equals `expected`.

        Returns:
            bool: True if this call performed the swap.
        """

    @abstractmethod
    async def update_password_hash(self, user_id: str, password_hash: str) -> None:
        """Replace the stored password hash."""

    @abstractmethod
    async def update_profile(self, user_id: str, **fields) -> Optional[UserIdentity]:
        """Update public profile fields and return the updated user."""

    async def verify_password(self, stored_hash: str, candidate: str) -> bool:
        """Check `candidate` against the one-way `stored_hash`, off the event loop."""
        return await verify_password_async(candidate, stored_hash)


def _to_identity(user: User) -> UserIdentity:
    return UserIdentity(
        id=str(user.id),
        username=user.username,
        email=user.email,
        full_name=user.full_name,
        avatar=user.avatar,
        cover_image=user.cover_image,
        watch_history=[str(video_id) for video_id in user.watch_history],
        password_hash=user.password,
        refresh_token=user.refresh_token,
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


def _object_id(user_id: str) -> Optional[PydanticObjectId]:
    try:
        return PydanticObjectId(user_id)
    except (InvalidId, TypeError):
        return None


@contextmanager
def _translate_errors(operation: str):
    try:
        yield
    except DuplicateKeyError as e:
        raise DuplicateIdentityError(f"{operation}: username or email already taken") from e
    except PyMongoError as e:
        raise CredentialStoreError(f"{operation} failed: {e.__class__.__name__}") from e


class BeanieCredentialStore(CredentialStore):
    """MongoDB-backed store using the `User` document."""

    async def find_by_identifier(self, identifier: str) -> Optional[UserIdentity]:
        with _translate_errors("find_by_identifier"):
            user = await User.find_one(Or(User.username == identifier, User.email == identifier))
        return _to_identity(user) if user else None

    async def find_by_id(self, user_id: str) -> Optional[UserIdentity]:
        object_id = _object_id(user_id)
        if object_id is None:
            return None

        with _translate_errors("find_by_id"):
            user = await User.get(object_id)
        return _to_identity(user) if user else None

    async def find_conflict(self, username: str, email: str) -> Optional[UserIdentity]:
        with _translate_errors("find_conflict"):
            user = await User.find_one(Or(User.username == username, User.email == email))
        return _to_identity(user) if user else None

    async def create(self, new_user: NewUser) -> UserIdentity:
        user = User(
            **new_user.model_dump(exclude={"password_hash"}),
            password=new_user.password_hash,
        )
        with _translate_errors("create"):
            await user.insert()
        return _to_identity(user)

    async def persist_refresh_token(self, user_id: str, token: Optional[str]) -> None:
        object_id = _object_id(user_id)
        if object_id is None:
            return

        with _translate_errors("persist_refresh_token"):
            await User.find_one(User.id == object_id).update(
                Set({User.refresh_token: token, User.updated_at: datetime.now(pytz.utc)})
            )

    async def swap_refresh_token(self, user_id: str, expected: str, new: str) -> bool:
        object_id = _object_id(user_id)
        if object_id is None:
            return False

        # Single conditional update: the filter on the current value makes it a compare-and-swap
        with _translate_errors("swap_refresh_token"):
            result = await User.find_one(
                User.id == object_id, User.refresh_token == expected
            ).update(Set({User.refresh_token: new, User.updated_at: datetime.now(pytz.utc)}))

        return result is not None and result.modified_count == 1

    async def update_password_hash(self, user_id: str, password_hash: str) -> None:
        object_id = _object_id(user_id)
        if object_id is None:
            return

        with _translate_errors("update_password_hash"):
            await User.find_one(User.id == object_id).update(
                Set({User.password: password_hash, User.updated_at: datetime.now(pytz.utc)})
            )

    async def update_profile(self, user_id: str, **fields) -> Optional[UserIdentity]:
        object_id = _object_id(user_id)
        if object_id is None:
            return None

        changes = {key: value for key, value in fields.items() if key in PROFILE_FIELDS}
        changes["updated_at"] = datetime.now(pytz.utc)

        with _translate_errors("update_profile"):
            await User.find_one(User.id == object_id).update(Set(changes))
            user = await User.get(object_id)
        return _to_identity(user) if user else None


class InMemoryCredentialStore(CredentialStore):
    """Dict-backed store. Mutations run under one asyncio lock."""

    def __init__(self):
        self._users: Dict[str, UserIdentity] = {}
        self._lock = asyncio.Lock()

    async def find_by_identifier(self, identifier: str) -> Optional[UserIdentity]:
        await asyncio.sleep(0)  # yield like a network round-trip would
        for user in self._users.values():
            if identifier in (user.username, user.email):
                return user.model_copy(deep=True)
        return None

    async def find_by_id(self, user_id: str) -> Optional[UserIdentity]:
        await asyncio.sleep(0)
        user = self._users.get(user_id)
        return user.model_copy(deep=True) if user else None

    async def find_conflict(self, username: str, email: str) -> Optional[UserIdentity]:
        await asyncio.sleep(0)
        for user in self._users.values():
            if user.username == username or user.email == email:
                return user.model_copy(deep=True)
        return None

    async def create(self, new_user: NewUser) -> UserIdentity:
        async with self._lock:
            if any(
                user.username == new_user.username or user.email == new_user.email
                for user in self._users.values()
            ):
                raise DuplicateIdentityError("create: username or email already taken")

            now = datetime.now(pytz.utc)
            user = UserIdentity(id=str(ObjectId()), created_at=now, updated_at=now, **new_user.model_dump())
            self._users[user.id] = user
            return user.model_copy(deep=True)

    async def persist_refresh_token(self, user_id: str, token: Optional[str]) -> None:
        async with self._lock:
            user = self._users.get(user_id)
            if user is not None:
                user.refresh_token = token

    async def swap_refresh_token(self, user_id: str, expected: str, new: str) -> bool:
        async with self._lock:
            user = self._users.get(user_id)
            if user is None or user.refresh_token != expected:
                return False
            user.refresh_token = new
            return True

    async def update_password_hash(self, user_id: str, password_hash: str) -> None:
        async with self._lock:
            user = self._users.get(user_id)
            if user is not None:
                user.password_hash = password_hash
                user.updated_at = datetime.now(pytz.utc)

    async def update_profile(self, user_id: str, **fields) -> Optional[UserIdentity]:
        async with self._lock:
            user = self._users.get(user_id)
            if user is None:
                return None

            email = fields.get("email")
            if email and any(
                other.email == email for other in self._users.values() if other.id != user_id
            ):
                raise DuplicateIdentityError("update_profile: email already taken")

            for key, value in fields.items():
                if key in PROFILE_FIELDS:
                    setattr(user, key, value)
            user.updated_at = datetime.now(pytz.utc)
            return user.model_copy(deep=True)
