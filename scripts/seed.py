"""Seed script: populates the dev database with a few sample drafts."""

import asyncio

from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from draftbox.config import get_settings
from draftbox.models.base import Base
from draftbox.models.draft import DraftRow
from draftbox.services.draft_service import DraftService
from draftbox.services.store_backend import SQLStoreBackend
from draftbox.services.write_gate import get_write_gate

SEED_DRAFTS = [
    ("Summer reading report", "3-A", "Dev Student", "The book I chose this summer was..."),
    ("Field trip essay", "3-B", "Dev Student", "On the way to the museum we..."),
    ("Science fair notes", "3-A", "Second Student", "Hypothesis: plants grow faster when..."),
]


async def seed():
    settings = get_settings()
    engine = create_async_engine(settings.database_url, echo=False)
    session_factory = async_sessionmaker(engine, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with session_factory() as db:
        result = await db.execute(select(DraftRow.position).limit(1))
        if result.scalar():
            print("Drafts table is not empty — skipping.")
            await engine.dispose()
            return

    service = DraftService.from_settings(SQLStoreBackend(session_factory), get_write_gate(settings), settings)
    for title, class_label, author_name, content in SEED_DRAFTS:
        result = await service.save_or_update(None, title, class_label, author_name, content)
        print(f"{result.outcome.value}: {title} -> {result.draft_id}")

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(seed())
