"""FastAPI dependency injection."""

import logging

from fastapi import Depends
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from draftbox.config import Settings, get_settings
from draftbox.services.draft_service import DraftService
from draftbox.services.store_backend import InMemoryStoreBackend, SQLStoreBackend, StoreBackend
from draftbox.services.write_gate import WriteGate, get_write_gate

logger = logging.getLogger(__name__)

# Store, gate and engine (initialized in lifespan, or lazily on first request)
_engine = None
_store: StoreBackend | None = None
_gate: WriteGate | None = None
_draft_service: DraftService | None = None


def init_store(settings: Settings) -> DraftService:
    """Build the store backend, write gate and draft service. Called from lifespan."""
    global _engine, _store, _gate, _draft_service
    if settings.store_backend == "sql":
        _engine = create_async_engine(
            settings.database_url,
            echo=settings.debug,
            pool_size=20,
            max_overflow=10,
            pool_pre_ping=True,
        )
        _store = SQLStoreBackend(async_sessionmaker(_engine, expire_on_commit=False))
    else:
        _store = InMemoryStoreBackend()
    _gate = get_write_gate(settings)
    _draft_service = DraftService.from_settings(_store, _gate, settings)
    logger.info(
        "Draft store ready (backend=%s, gate=%s)", settings.store_backend, settings.write_gate_backend
    )
    return _draft_service


async def shutdown_store() -> None:
    """Dispose of the database engine. Called from lifespan."""
    global _engine, _store, _gate, _draft_service
    if _engine:
        await _engine.dispose()
    _engine = None
    _store = None
    _gate = None
    _draft_service = None


async def get_draft_service(settings: Settings = Depends(get_settings)) -> DraftService:
    # Runs on the event loop, so the lazy init cannot race and build a second gate.
    if _draft_service is None:
        return init_store(settings)
    return _draft_service
