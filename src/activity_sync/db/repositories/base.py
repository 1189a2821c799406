"""Base repository pattern implementation for async SQLAlchemy.

Provides common session handling, error wrapping, and the idempotent
upsert shared by every repository.
"""

from collections.abc import Iterable, Mapping, Sequence
from typing import Any, Generic, TypeVar

from sqlalchemy import Result, func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from activity_sync.db.exceptions import StorageError
from activity_sync.db.models import Base

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """Base repository with common async session handling.

    All repositories should inherit from this class to get
    consistent session management and common query patterns.

    Usage:
        class ReviewRepository(BaseRepository[Review]):
            def __init__(self, session: AsyncSession) -> None:
                super().__init__(session, Review)

            async def upsert_many(self, rows: list[dict[str, Any]]) -> int:
                return await self._upsert(rows, index_elements=["id"])

    Every statement goes through ``_execute`` so SQLAlchemy failures
    surface as ``StorageError``.
    """

    def __init__(self, session: AsyncSession, model_class: type[ModelT]) -> None:
        """Initialize the repository with a session.

        Args:
            session: Async SQLAlchemy session (caller manages lifecycle)
            model_class: The SQLAlchemy model class this repository manages
        """
        self._session = session
        self._model_class = model_class

    @property
    def session(self) -> AsyncSession:
        """Access the underlying session."""
        return self._session

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    async def _execute(self, stmt: Any, operation: str) -> Result[Any]:
        """Execute a statement, wrapping database errors.

        Args:
            stmt: SQLAlchemy statement
            operation: Short description used in the error message

        Raises:
            StorageError: If the database rejects the statement
        """
        try:
            return await self._session.execute(stmt)
        except SQLAlchemyError as e:
            raise StorageError(operation, str(e)) from e

    async def _upsert(
        self,
        rows: Sequence[Mapping[str, Any]],
        *,
        index_elements: Iterable[str],
        keep_existing_when_null: Iterable[str] = (),
    ) -> int:
        """Insert rows, overwriting on conflict (last write wins).

        All rows go out in a single statement, so the batch is applied
        entirely or not at all.

        Args:
            rows: Column-name to value mappings (same keys in every row)
            index_elements: Columns of the unique constraint to match on
            keep_existing_when_null: Columns whose stored value survives an
                incoming NULL

        Returns:
            Number of rows written
        """
        if not rows:
            return 0

        keys = set(index_elements)
        keep = set(keep_existing_when_null)
        table = self._model_class.__table__
        insert = self._dialect_insert()
        stmt = insert(table).values(list(rows))

        update_columns: dict[str, Any] = {}
        for column in table.columns:
            if column.name in keys or column.primary_key:
                continue
            if column.name not in rows[0] and column.default is None and column.onupdate is None:
                continue
            excluded = stmt.excluded[column.name]
            if column.name in keep:
                update_columns[column.name] = func.coalesce(excluded, column)
            else:
                update_columns[column.name] = excluded

        stmt = stmt.on_conflict_do_update(index_elements=list(keys), set_=update_columns)
        await self._execute(stmt, f"upsert into {table.name}")
        return len(rows)

    def _dialect_insert(self) -> Any:
        """The INSERT construct supporting ON CONFLICT for the bound dialect."""
        if self._session.get_bind().dialect.name == "postgresql":
            return postgresql.insert
        return sqlite.insert

    # -------------------------------------------------------------------------
    # Utility Methods
    # -------------------------------------------------------------------------

    async def flush(self) -> None:
        """Flush pending changes to the database.

        This executes SQL but does not commit the transaction.
        """
        try:
            await self._session.flush()
        except SQLAlchemyError as e:
            raise StorageError("flush", str(e)) from e

    async def count(self) -> int:
        """Count total entities of this type."""
        stmt = select(func.count()).select_from(self._model_class)
        result = await self._execute(stmt, f"count {self._model_class.__tablename__}")
        return result.scalar() or 0
