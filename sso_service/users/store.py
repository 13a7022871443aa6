"""
Credential store.

UserStore is the persistence interface the user service depends on.
SQLAlchemyUserStore implements it on top of SQLAlchemy's asyncio extension.
Email uniqueness is enforced by the table's unique constraint, so a
duplicate-key IntegrityError is the authoritative conflict signal.
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from sso_service.base_microservice import Base
from sso_service.exceptions import ConflictError, StoreError
from sso_service.users.models import SSOUserModel, UserRecord

logger = logging.getLogger(__name__)

# Columns a caller may write. id and created_at are assigned by the store.
WRITABLE_FIELDS = ("name", "email", "hashed_password", "company", "roles")


class UserStore(ABC):
    """Persistence interface for user records."""

    @abstractmethod
    async def find_by_email(self, email: str) -> Optional[UserRecord]:
        """Return the user with this email, or None."""

    @abstractmethod
    async def find_by_id(self, user_id: str) -> Optional[UserRecord]:
        """Return the user with this id, or None."""

    @abstractmethod
    async def insert(self, fields: Dict[str, Any]) -> UserRecord:
        """
        Create a user.

        Raises:
            ConflictError: If the email is already in use
        """

    @abstractmethod
    async def update(self, user_id: str, fields: Dict[str, Any]) -> Optional[UserRecord]:
        """
        Apply a partial update. Returns None if the user does not exist.

        Raises:
            ConflictError: If the new email is already in use
        """

    @abstractmethod
    async def delete(self, user_id: str) -> bool:
        """Delete a user. Returns False if the user does not exist."""

    @abstractmethod
    async def list_page(self, offset: int, limit: int) -> List[UserRecord]:
        """Users ordered by creation time."""

    @abstractmethod
    async def count(self) -> int:
        """Total number of users."""

    async def create_schema(self) -> None:
        """Create backing tables if needed."""

    async def close(self) -> None:
        """Release connections."""


class SQLAlchemyUserStore(UserStore):
    """
    SQLAlchemy implementation of UserStore.

    Every call runs in its own session and is bounded by ``timeout`` seconds.
    Calls are never retried here; a failed write surfaces as an error.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        engine: Optional[AsyncEngine] = None,
        timeout: float = 5.0
    ):
        self._session_factory = session_factory
        self._engine = engine
        self.timeout = timeout

    @classmethod
    def from_url(cls, database_url: str, timeout: float = 5.0, **engine_kwargs) -> "SQLAlchemyUserStore":
        """Build a store with its own engine for the given connection string."""
        engine = create_async_engine(database_url, echo=False, **engine_kwargs)
        session_factory = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
        return cls(session_factory, engine=engine, timeout=timeout)

    async def _run(self, operation: str, coro):
        try:
            return await asyncio.wait_for(coro, timeout=self.timeout)
        except asyncio.TimeoutError as e:
            logger.error("Store call %s timed out after %ss", operation, self.timeout)
            raise StoreError(f"Store call {operation} timed out") from e
        except SQLAlchemyError as e:
            logger.error("Store call %s failed: %s", operation, e.__class__.__name__)
            raise StoreError(f"Store call {operation} failed") from e

    async def create_schema(self) -> None:
        if self._engine is None:
            return
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Ensured table: %s", SSOUserModel.__tablename__)

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()

    async def find_by_email(self, email: str) -> Optional[UserRecord]:
        return await self._run("find_by_email", self._find_one(SSOUserModel.email == email))

    async def find_by_id(self, user_id: str) -> Optional[UserRecord]:
        return await self._run("find_by_id", self._find_one(SSOUserModel.id == user_id))

    async def _find_one(self, criterion) -> Optional[UserRecord]:
        async with self._session_factory() as session:
            result = await session.execute(select(SSOUserModel).where(criterion))
            model = result.scalar_one_or_none()
            if model is None:
                return None
            return UserRecord.from_model(model)

    async def insert(self, fields: Dict[str, Any]) -> UserRecord:
        return await self._run("insert", self._insert(fields))

    async def _insert(self, fields: Dict[str, Any]) -> UserRecord:
        values = {k: v for k, v in fields.items() if k in WRITABLE_FIELDS}
        values["roles"] = list(values.get("roles") or [])
        async with self._session_factory() as session:
            model = SSOUserModel(**values)
            session.add(model)
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise ConflictError("Email already in use") from e
            await session.refresh(model)
            logger.info("Created user: %s", model.id)
            return UserRecord.from_model(model)

    async def update(self, user_id: str, fields: Dict[str, Any]) -> Optional[UserRecord]:
        return await self._run("update", self._update(user_id, fields))

    async def _update(self, user_id: str, fields: Dict[str, Any]) -> Optional[UserRecord]:
        async with self._session_factory() as session:
            result = await session.execute(select(SSOUserModel).where(SSOUserModel.id == user_id))
            model = result.scalar_one_or_none()
            if model is None:
                return None

            for key, value in fields.items():
                if key not in WRITABLE_FIELDS:
                    continue
                setattr(model, key, list(value) if key == "roles" else value)

            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise ConflictError("Email already in use") from e
            await session.refresh(model)
            logger.debug("Updated user: %s", user_id)
            return UserRecord.from_model(model)

    async def delete(self, user_id: str) -> bool:
        return await self._run("delete", self._delete(user_id))

    async def _delete(self, user_id: str) -> bool:
        async with self._session_factory() as session:
            result = await session.execute(select(SSOUserModel).where(SSOUserModel.id == user_id))
            model = result.scalar_one_or_none()
            if model is None:
                return False
            await session.delete(model)
            await session.commit()
            logger.info("Deleted user: %s", user_id)
            return True

    async def list_page(self, offset: int, limit: int) -> List[UserRecord]:
        return await self._run("list_page", self._list_page(offset, limit))

    async def _list_page(self, offset: int, limit: int) -> List[UserRecord]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(SSOUserModel)
                .order_by(SSOUserModel.created_at, SSOUserModel.id)
                .offset(offset)
                .limit(limit)
            )
            return [UserRecord.from_model(m) for m in result.scalars().all()]

    async def count(self) -> int:
        return await self._run("count", self._count())

    async def _count(self) -> int:
        async with self._session_factory() as session:
            result = await session.execute(select(func.count()).select_from(SSOUserModel))
            return result.scalar_one()
