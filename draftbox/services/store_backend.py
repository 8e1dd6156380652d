"""Store backends: durable storage of the ordered draft collection.

A backend only knows about rows. Locking, upsert rules and visibility are
the Draft Service's job; every backend method here assumes the caller holds
the write gate whenever it mutates.
"""

import dataclasses
from abc import ABC, abstractmethod
from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from draftbox.models.draft import DraftRow
from draftbox.services.draft_record import DRAFT_FIELDS, MUTABLE_FIELDS, DraftRecord


class StoreBackendError(Exception):
    """The underlying storage operation failed."""


class RowNotFoundError(StoreBackendError):
    """No row exists at the requested position."""


def _check_update_fields(fields: dict[str, Any]) -> None:
    unknown = set(fields) - set(DRAFT_FIELDS)
    if unknown:
        raise ValueError(f"Unknown draft fields: {sorted(unknown)}")
    immutable = set(fields) - MUTABLE_FIELDS
    if immutable:
        raise ValueError(f"Fields cannot be updated: {sorted(immutable)}")


class StoreBackend(ABC):
    """Abstract ordered collection of draft records addressed by row position."""

    @abstractmethod
    async def scan(self) -> list[tuple[int, DraftRecord]]:
        """Return every record with its row position, in insertion order."""
        ...

    @abstractmethod
    async def find_by_id(self, draft_id: str) -> int | None:
        """Return the row position of the record with exactly this id."""
        ...

    @abstractmethod
    async def read(self, position: int) -> DraftRecord:
        """Return the record stored at a row position."""
        ...

    @abstractmethod
    async def append(self, record: DraftRecord) -> int:
        """Add a record after all existing ones and return its row position."""
        ...

    @abstractmethod
    async def update_fields(self, position: int, fields: dict[str, Any]) -> None:
        """Overwrite only the named fields of the record at a row position."""
        ...

    @abstractmethod
    async def row_count(self) -> int:
        ...

    @abstractmethod
    async def remove(self, position: int) -> None:
        """Physically remove a row. Administrative purge only."""
        ...


class InMemoryStoreBackend(StoreBackend):
    """List-backed store for single-process deployments and tests.

    Row positions are stable, monotonically increasing integers rather than
    list offsets, so a purge does not shift the positions of later rows.

    Args:
        indexed: Keep an id -> position map for lookups. When False,
            `find_by_id` does a linear scan of the id column instead.
    """

    def __init__(self, indexed: bool = True) -> None:
        self._indexed = indexed
        self._rows: list[tuple[int, DraftRecord]] = []
        self._offsets: dict[int, int] = {}
        self._index: dict[str, int] = {}
        self._next_position = 1

    def _rebuild(self) -> None:
        self._offsets = {pos: i for i, (pos, _) in enumerate(self._rows)}
        self._index = {rec.id: pos for pos, rec in self._rows}

    def _offset(self, position: int) -> int:
        try:
            return self._offsets[position]
        except KeyError:
            raise RowNotFoundError(f"No row at position {position}") from None

    async def scan(self) -> list[tuple[int, DraftRecord]]:
        return [(pos, dataclasses.replace(rec)) for pos, rec in self._rows]

    async def find_by_id(self, draft_id: str) -> int | None:
        if self._indexed:
            return self._index.get(draft_id)
        for pos, rec in self._rows:
            if rec.id == draft_id:
                return pos
        return None

    async def read(self, position: int) -> DraftRecord:
        _, rec = self._rows[self._offset(position)]
        return dataclasses.replace(rec)

    async def append(self, record: DraftRecord) -> int:
        if record.id in self._index:
            raise StoreBackendError(f"Duplicate draft id {record.id}")
        position = self._next_position
        self._next_position += 1
        self._rows.append((position, dataclasses.replace(record)))
        self._offsets[position] = len(self._rows) - 1
        self._index[record.id] = position
        return position

    async def update_fields(self, position: int, fields: dict[str, Any]) -> None:
        _check_update_fields(fields)
        offset = self._offset(position)
        _, current = self._rows[offset]
        # Swap in a whole new object so readers see either the old or new version.
        self._rows[offset] = (position, dataclasses.replace(current, **fields))

    async def row_count(self) -> int:
        return len(self._rows)

    async def remove(self, position: int) -> None:
        offset = self._offset(position)
        del self._rows[offset]
        self._rebuild()


def _row_to_record(row: DraftRow) -> DraftRecord:
    return DraftRecord(**{name: getattr(row, name) for name in DRAFT_FIELDS})


class SQLStoreBackend(StoreBackend):
    """Single `drafts` table accessed through SQLAlchemy's async ORM.

    Every call runs in its own session and commits before returning, so a
    write made under the gate is visible to any read issued after release.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def scan(self) -> list[tuple[int, DraftRecord]]:
        try:
            async with self._session_factory() as db:
                result = await db.execute(select(DraftRow).order_by(DraftRow.position))
                return [(row.position, _row_to_record(row)) for row in result.scalars().all()]
        except SQLAlchemyError as e:
            raise StoreBackendError(f"scan failed: {type(e).__name__}") from e

    async def find_by_id(self, draft_id: str) -> int | None:
        try:
            async with self._session_factory() as db:
                result = await db.execute(select(DraftRow.position).where(DraftRow.id == draft_id))
                return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise StoreBackendError(f"find_by_id failed: {type(e).__name__}") from e

    async def read(self, position: int) -> DraftRecord:
        try:
            async with self._session_factory() as db:
                row = await db.get(DraftRow, position)
        except SQLAlchemyError as e:
            raise StoreBackendError(f"read failed: {type(e).__name__}") from e
        if row is None:
            raise RowNotFoundError(f"No row at position {position}")
        return _row_to_record(row)

    async def append(self, record: DraftRecord) -> int:
        row = DraftRow(**{name: getattr(record, name) for name in DRAFT_FIELDS})
        try:
            async with self._session_factory() as db:
                db.add(row)
                await db.flush()
                position = row.position
                await db.commit()
        except SQLAlchemyError as e:
            raise StoreBackendError(f"append failed: {type(e).__name__}") from e
        return position

    async def update_fields(self, position: int, fields: dict[str, Any]) -> None:
        _check_update_fields(fields)
        values = {getattr(DraftRow, name): value for name, value in fields.items()}
        try:
            async with self._session_factory() as db:
                result = await db.execute(
                    update(DraftRow).where(DraftRow.position == position).values(values)
                )
                await db.commit()
        except SQLAlchemyError as e:
            raise StoreBackendError(f"update_fields failed: {type(e).__name__}") from e
        if result.rowcount == 0:
            raise RowNotFoundError(f"No row at position {position}")

    async def row_count(self) -> int:
        try:
            async with self._session_factory() as db:
                result = await db.execute(select(func.count()).select_from(DraftRow))
                return int(result.scalar_one())
        except SQLAlchemyError as e:
            raise StoreBackendError(f"row_count failed: {type(e).__name__}") from e

    async def remove(self, position: int) -> None:
        try:
            async with self._session_factory() as db:
                await db.execute(delete(DraftRow).where(DraftRow.position == position))
                await db.commit()
        except SQLAlchemyError as e:
            raise StoreBackendError(f"remove failed: {type(e).__name__}") from e
