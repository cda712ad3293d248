"""
Base repository class providing common database operations.

Model-specific repositories inherit the read/write plumbing here and supply
`translate_error` to decide which domain exception a failed write becomes.

The repository never commits. It flushes so constraint and version checks run
inside the caller's transaction; committing is the unit-of-work owner's job.
"""

import logging
import time
from typing import Any, Generic, Type, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from studybridge.database.base import Base
from studybridge.exceptions.base import RepositoryError
from studybridge.exceptions.mapper import persistence_error_handler

# Type variable for the model class
ModelType = TypeVar("ModelType", bound=Base)

logger = logging.getLogger(__name__)


class BaseRepository(Generic[ModelType]):
    """
    Generic base repository.

    Type Parameters:
        ModelType: The SQLAlchemy model class this repository manages.
    """

    def __init__(self, model: Type[ModelType], db: AsyncSession):
        self.model = model
        self.db = db

    # =================================================================================================================
    # Read Operations
    # =================================================================================================================

    async def find_one(self, *criteria) -> ModelType | None:
        """
        Return the single entity matching all `criteria`, or None.

        Raises:
            RepositoryError: If the query fails.
        """
        try:
            result = await self.db.execute(select(self.model).where(*criteria).limit(1))
            return result.scalars().first()
        except SQLAlchemyError as e:
            logger.error(
                "repo.find_one.failed",
                extra={"model": self.model.__name__, "error_type": type(e).__name__},
            )
            raise RepositoryError(f"Failed to retrieve {self.model.__name__}") from e

    # =================================================================================================================
    # Write Operations
    # =================================================================================================================

    async def translate_error(self, exc: BaseException, entity: Any, **kwargs: Any) -> BaseException:
        """Pick the exception to raise for a failed write. The default leaves it untouched."""
        return exc

    async def save(self, entity: ModelType, snapshot: Any = None, **kwargs: Any) -> ModelType:
        """
        Add `entity` to the session and flush it.

        `snapshot` is what `translate_error` receives in place of the entity; pass a detached
        copy when the translation needs values the rollback would expire. Extra keyword
        arguments are forwarded to `translate_error`.
        """
        start = time.perf_counter()

        async def _translate(exc: BaseException, failed: Any) -> BaseException:
            return await self.translate_error(exc, failed, **kwargs)

        async with persistence_error_handler(self.db, _translate, snapshot if snapshot is not None else entity):
            self.db.add(entity)
            await self.db.flush()

        logger.info(
            "repo.save.success",
            extra={
                "model": self.model.__name__,
                "id": getattr(entity, "id", None),
                "duration_ms": int((time.perf_counter() - start) * 1000),
            },
        )
        return entity
