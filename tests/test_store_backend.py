"""Unit tests for the store backends."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from draftbox.models.draft import DraftRow
from draftbox.services.draft_record import DRAFT_COLUMNS, DRAFT_FIELDS, DraftRecord
from draftbox.services.store_backend import (
    InMemoryStoreBackend,
    RowNotFoundError,
    SQLStoreBackend,
    StoreBackendError,
)

T0 = datetime(2025, 4, 1, 9, 0, tzinfo=timezone.utc)


def _make_record(draft_id: str, **overrides) -> DraftRecord:
    defaults = {
        "id": draft_id,
        "title": f"Title {draft_id}",
        "class_label": "3-A",
        "author_name": "Hanako",
        "content": "body",
        "created_at": T0,
        "updated_at": T0,
        "deleted_at": None,
    }
    defaults.update(overrides)
    return DraftRecord(**defaults)


class TestSchema:
    def test_every_field_has_a_column(self):
        assert set(DRAFT_COLUMNS) == set(DRAFT_FIELDS)

    def test_persisted_column_names(self):
        assert [DRAFT_COLUMNS[f] for f in DRAFT_FIELDS] == [
            "id", "title", "class", "name", "content", "created_at", "updated_at", "deleted_at",
        ]

    def test_orm_columns_match_schema(self):
        column_names = {c.name for c in DraftRow.__table__.columns}
        assert column_names == set(DRAFT_COLUMNS.values()) | {"position"}
        for field, column in DRAFT_COLUMNS.items():
            assert DraftRow.__mapper__.attrs[field].columns[0].name == column


@pytest.mark.parametrize("indexed", [True, False])
class TestInMemoryStoreBackend:
    @pytest.mark.asyncio
    async def test_empty_store(self, indexed):
        store = InMemoryStoreBackend(indexed=indexed)
        assert await store.row_count() == 0
        assert await store.scan() == []
        assert await store.find_by_id("u1") is None

    @pytest.mark.asyncio
    async def test_scan_preserves_insertion_order(self, indexed):
        store = InMemoryStoreBackend(indexed=indexed)
        for draft_id in ("c", "a", "b"):
            await store.append(_make_record(draft_id))
        ids = [rec.id for _, rec in await store.scan()]
        assert ids == ["c", "a", "b"]

    @pytest.mark.asyncio
    async def test_find_by_id_is_exact_match(self, indexed):
        store = InMemoryStoreBackend(indexed=indexed)
        await store.append(_make_record("draft-10"))
        pos = await store.append(_make_record("draft-1"))
        assert await store.find_by_id("draft-1") == pos
        assert await store.find_by_id("draft") is None
        assert await store.find_by_id("DRAFT-1") is None
        assert await store.find_by_id("draft-1 ") is None

    @pytest.mark.asyncio
    async def test_update_fields_touches_only_named_fields(self, indexed):
        store = InMemoryStoreBackend(indexed=indexed)
        pos = await store.append(_make_record("u1"))
        await store.append(_make_record("u2"))

        await store.update_fields(pos, {"title": "New title"})

        updated = await store.read(pos)
        assert updated == _make_record("u1", title="New title")
        assert [rec.id for _, rec in await store.scan()] == ["u1", "u2"]

    @pytest.mark.asyncio
    async def test_update_rejects_write_once_fields(self, indexed):
        store = InMemoryStoreBackend(indexed=indexed)
        pos = await store.append(_make_record("u1"))
        with pytest.raises(ValueError):
            await store.update_fields(pos, {"id": "u9"})
        with pytest.raises(ValueError):
            await store.update_fields(pos, {"created_at": T0})
        with pytest.raises(ValueError):
            await store.update_fields(pos, {"colour": "red"})

    @pytest.mark.asyncio
    async def test_scan_returns_copies(self, indexed):
        store = InMemoryStoreBackend(indexed=indexed)
        await store.append(_make_record("u1"))
        (_, rec), = await store.scan()
        rec.title = "mutated outside the store"
        (_, again), = await store.scan()
        assert again.title == "Title u1"

    @pytest.mark.asyncio
    async def test_unknown_position_raises(self, indexed):
        store = InMemoryStoreBackend(indexed=indexed)
        with pytest.raises(RowNotFoundError):
            await store.read(42)
        with pytest.raises(RowNotFoundError):
            await store.update_fields(42, {"title": "x"})

    @pytest.mark.asyncio
    async def test_duplicate_id_rejected(self, indexed):
        store = InMemoryStoreBackend(indexed=indexed)
        await store.append(_make_record("u1"))
        with pytest.raises(StoreBackendError):
            await store.append(_make_record("u1"))

    @pytest.mark.asyncio
    async def test_remove_keeps_order_and_positions(self, indexed):
        store = InMemoryStoreBackend(indexed=indexed)
        p1 = await store.append(_make_record("u1"))
        p2 = await store.append(_make_record("u2"))
        p3 = await store.append(_make_record("u3"))

        await store.remove(p2)

        assert [(p, r.id) for p, r in await store.scan()] == [(p1, "u1"), (p3, "u3")]
        assert await store.find_by_id("u2") is None
        assert await store.find_by_id("u3") == p3
        assert await store.row_count() == 2
        p4 = await store.append(_make_record("u4"))
        assert p4 > p3


def _session_factory(session: AsyncMock) -> MagicMock:
    factory = MagicMock()
    factory.return_value.__aenter__ = AsyncMock(return_value=session)
    factory.return_value.__aexit__ = AsyncMock(return_value=False)
    return factory


class TestSQLStoreBackend:
    @pytest.mark.asyncio
    async def test_find_by_id_returns_position(self):
        session = AsyncMock()
        result = MagicMock()
        result.scalar_one_or_none.return_value = 7
        session.execute.return_value = result
        store = SQLStoreBackend(_session_factory(session))

        assert await store.find_by_id("u1") == 7
        session.execute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_scan_converts_rows(self):
        row = DraftRow(position=3, **{name: getattr(_make_record("u1"), name) for name in DRAFT_FIELDS})
        session = AsyncMock()
        result = MagicMock()
        result.scalars.return_value.all.return_value = [row]
        session.execute.return_value = result
        store = SQLStoreBackend(_session_factory(session))

        assert await store.scan() == [(3, _make_record("u1"))]

    @pytest.mark.asyncio
    async def test_append_commits_and_returns_position(self):
        session = AsyncMock()
        session.add = MagicMock()

        async def _flush():
            session.add.call_args.args[0].position = 11

        session.flush.side_effect = _flush
        store = SQLStoreBackend(_session_factory(session))

        assert await store.append(_make_record("u1")) == 11
        session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_update_of_missing_row_raises(self):
        session = AsyncMock()
        result = MagicMock()
        result.rowcount = 0
        session.execute.return_value = result
        store = SQLStoreBackend(_session_factory(session))

        with pytest.raises(RowNotFoundError):
            await store.update_fields(5, {"title": "x"})

    @pytest.mark.asyncio
    async def test_update_rejects_write_once_fields_before_touching_db(self):
        session = AsyncMock()
        store = SQLStoreBackend(_session_factory(session))

        with pytest.raises(ValueError):
            await store.update_fields(5, {"created_at": T0})
        session.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_database_errors_are_wrapped(self):
        session = AsyncMock()
        session.execute.side_effect = OperationalError("SELECT 1", {}, Exception("connection lost"))
        store = SQLStoreBackend(_session_factory(session))

        with pytest.raises(StoreBackendError, match="OperationalError"):
            await store.row_count()
