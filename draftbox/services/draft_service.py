"""Draft service: upsert, soft delete, recent listing and load.

The service is the only writer of draft state. Every mutating call runs its
whole read-modify-write sequence inside one held write gate token; reads are
not gated.
"""

import enum
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable
from zoneinfo import ZoneInfo

from draftbox.metrics import (
    drafts_archived_total,
    drafts_purged_total,
    drafts_saved_total,
    write_gate_busy_total,
    write_gate_wait_seconds,
)
from draftbox.services.draft_record import EDITABLE_FIELDS, DraftRecord, generate_draft_id
from draftbox.services.store_backend import RowNotFoundError, StoreBackend
from draftbox.services.write_gate import GateToken, WriteGate, WriteGateBusy

logger = logging.getLogger(__name__)

BUSY_MESSAGE = "The draft store is busy right now. Please try again in a moment."
NOT_FOUND_MESSAGE = "Draft not found."
ARCHIVED_MESSAGE = "This draft has been archived and can no longer be opened."
NOT_ARCHIVED_MESSAGE = "Only archived drafts can be purged. Archive the draft first."


class DraftOutcome(str, enum.Enum):
    SUCCESS = "success"
    BUSY = "busy"
    NOT_FOUND = "not_found"
    ARCHIVED = "archived"
    CONFLICT = "conflict"
    ERROR = "error"


@dataclass
class DraftContent:
    """Editable fields of a draft, as returned by load."""

    id: str
    title: str
    class_label: str
    author_name: str
    content: str


@dataclass
class DraftResult:
    """Outcome of a service call. Expected failures are values, not exceptions."""

    outcome: DraftOutcome
    message: str
    draft_id: str | None = None
    draft: DraftContent | None = None

    @property
    def ok(self) -> bool:
        return self.outcome is DraftOutcome.SUCCESS


@dataclass
class DraftListItem:
    id: str
    title: str
    author_name: str
    updated_at: datetime
    updated_at_display: str


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # Some drivers hand back naive datetimes; everything is stored as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class DraftService:
    """Orchestrates the draft store behind a single write gate.

    Args:
        store: Backend holding the draft rows.
        gate: The one write gate shared by every writer of `store`.
        save_timeout: Seconds to wait for the gate on save/update.
        delete_timeout: Seconds to wait for the gate on delete and purge.
        list_limit: Maximum number of drafts returned by the listing.
        display_timezone: IANA zone used to format listing timestamps.
        display_format: strftime format for listing timestamps.
        clock: Returns the current aware UTC time.
        id_factory: Returns a fresh opaque draft id.
    """

    def __init__(
        self,
        store: StoreBackend,
        gate: WriteGate,
        *,
        save_timeout: float = 10.0,
        delete_timeout: float = 5.0,
        list_limit: int = 50,
        display_timezone: str = "UTC",
        display_format: str = "%Y/%m/%d %H:%M",
        clock: Callable[[], datetime] = _utc_now,
        id_factory: Callable[[], str] = generate_draft_id,
    ) -> None:
        self._store = store
        self._gate = gate
        self._save_timeout = save_timeout
        self._delete_timeout = delete_timeout
        self._list_limit = list_limit
        self._display_tz = ZoneInfo(display_timezone)
        self._display_format = display_format
        self._clock = clock
        self._id_factory = id_factory

    @classmethod
    def from_settings(cls, store: StoreBackend, gate: WriteGate, settings) -> "DraftService":
        return cls(
            store,
            gate,
            save_timeout=settings.save_lock_timeout_seconds,
            delete_timeout=settings.delete_lock_timeout_seconds,
            list_limit=settings.draft_list_limit,
            display_timezone=settings.display_timezone,
            display_format=settings.display_datetime_format,
        )

    @property
    def store(self) -> StoreBackend:
        return self._store

    @property
    def gate(self) -> WriteGate:
        return self._gate

    # -- helpers --

    def _observe_wait(self, operation: str, started: float, token: GateToken) -> None:
        write_gate_wait_seconds.labels(operation=operation).observe(max(0.0, token.acquired_at - started))

    def _busy(self, operation: str) -> DraftResult:
        write_gate_busy_total.labels(operation=operation).inc()
        logger.warning("Write gate busy, rejecting %s", operation)
        return DraftResult(DraftOutcome.BUSY, BUSY_MESSAGE)

    def _fault(self, operation: str, draft_id: str | None, exc: Exception) -> DraftResult:
        logger.exception("Draft %s failed for id=%s", operation, draft_id or "<new>")
        return DraftResult(
            DraftOutcome.ERROR,
            f"Could not {operation} the draft ({type(exc).__name__}).",
            draft_id=draft_id or None,
        )

    async def _new_id(self) -> str:
        draft_id = self._id_factory()
        while await self._store.find_by_id(draft_id) is not None:
            draft_id = self._id_factory()
        return draft_id

    # -- writes --

    async def save_or_update(
        self,
        draft_id: str | None,
        title: str,
        class_label: str,
        author_name: str,
        content: str,
    ) -> DraftResult:
        """Update the draft with `draft_id`, or create a new one.

        An id that does not match any stored draft is treated as a request
        to create a new draft. Updating an archived draft un-archives it.
        """
        draft_id = (draft_id or "").strip()
        started = time.monotonic()
        try:
            async with self._gate.hold(self._save_timeout) as token:
                self._observe_wait("save", started, token)

                position = await self._store.find_by_id(draft_id) if draft_id else None
                now = self._clock()

                if position is not None:
                    existing = await self._store.read(position)
                    updated_at = max(now, _as_utc(existing.updated_at))
                    await self._store.update_fields(
                        position,
                        {
                            "title": title,
                            "class_label": class_label,
                            "author_name": author_name,
                            "content": content,
                            "updated_at": updated_at,
                            "deleted_at": None,
                        },
                    )
                    drafts_saved_total.labels(operation="update").inc()
                    logger.info(
                        "Draft updated id=%s restored=%s", draft_id, existing.deleted_at is not None
                    )
                    return DraftResult(DraftOutcome.SUCCESS, "Draft saved.", draft_id=draft_id)

                new_id = await self._new_id()
                await self._store.append(
                    DraftRecord(
                        id=new_id,
                        title=title,
                        class_label=class_label,
                        author_name=author_name,
                        content=content,
                        created_at=now,
                        updated_at=now,
                        deleted_at=None,
                    )
                )
                drafts_saved_total.labels(operation="create").inc()
                if draft_id:
                    logger.info("Draft id=%s not found, created id=%s", draft_id, new_id)
                else:
                    logger.info("Draft created id=%s", new_id)
                return DraftResult(DraftOutcome.SUCCESS, "Draft saved.", draft_id=new_id)
        except WriteGateBusy:
            return self._busy("save")
        except Exception as e:
            return self._fault("save", draft_id, e)

    async def delete_draft(self, draft_id: str) -> DraftResult:
        """Archive a draft by stamping `deleted_at`. No other field is touched."""
        started = time.monotonic()
        try:
            async with self._gate.hold(self._delete_timeout) as token:
                self._observe_wait("delete", started, token)

                position = await self._store.find_by_id(draft_id)
                if position is None:
                    return DraftResult(DraftOutcome.NOT_FOUND, NOT_FOUND_MESSAGE, draft_id=draft_id)

                await self._store.update_fields(position, {"deleted_at": self._clock()})
                drafts_archived_total.inc()
                logger.info("Draft archived id=%s", draft_id)
                return DraftResult(DraftOutcome.SUCCESS, "Draft deleted.", draft_id=draft_id)
        except WriteGateBusy:
            return self._busy("delete")
        except Exception as e:
            return self._fault("delete", draft_id, e)

    async def purge_draft(self, draft_id: str) -> DraftResult:
        """Physically remove an archived draft. Administrative use only."""
        started = time.monotonic()
        try:
            async with self._gate.hold(self._delete_timeout) as token:
                self._observe_wait("purge", started, token)

                position = await self._store.find_by_id(draft_id)
                if position is None:
                    return DraftResult(DraftOutcome.NOT_FOUND, NOT_FOUND_MESSAGE, draft_id=draft_id)

                record = await self._store.read(position)
                if not record.is_archived:
                    return DraftResult(DraftOutcome.CONFLICT, NOT_ARCHIVED_MESSAGE, draft_id=draft_id)

                await self._store.remove(position)
                drafts_purged_total.inc()
                logger.info("Draft purged id=%s", draft_id)
                return DraftResult(DraftOutcome.SUCCESS, "Draft permanently removed.", draft_id=draft_id)
        except WriteGateBusy:
            return self._busy("purge")
        except Exception as e:
            return self._fault("purge", draft_id, e)

    # -- reads --

    async def get_draft_list(self) -> list[DraftListItem]:
        """Most recently updated active drafts, newest first.

        Returns an empty list on backend failure instead of raising.
        """
        try:
            if await self._store.row_count() == 0:
                return []
            rows = await self._store.scan()
        except Exception:
            logger.exception("Draft listing failed")
            return []

        active = [record for _, record in rows if record.deleted_at is None]
        # sorted() is stable, including with reverse=True, so equal timestamps keep scan order.
        active = sorted(active, key=lambda r: _as_utc(r.updated_at), reverse=True)
        recent = active[: self._list_limit]

        return [
            DraftListItem(
                id=r.id,
                title=r.title,
                author_name=r.author_name,
                updated_at=r.updated_at,
                updated_at_display=self.format_timestamp(r.updated_at),
            )
            for r in recent
        ]

    async def load_draft(self, draft_id: str) -> DraftResult:
        """Load a draft's editable fields. Archived drafts are refused."""
        try:
            position = await self._store.find_by_id(draft_id)
            record = await self._store.read(position) if position is not None else None
        except RowNotFoundError:
            # Purged between the lookup and the read.
            record = None
        except Exception as e:
            return self._fault("load", draft_id, e)

        if record is None:
            return DraftResult(DraftOutcome.NOT_FOUND, NOT_FOUND_MESSAGE, draft_id=draft_id)
        if record.is_archived:
            return DraftResult(DraftOutcome.ARCHIVED, ARCHIVED_MESSAGE, draft_id=draft_id)

        return DraftResult(
            DraftOutcome.SUCCESS,
            "Draft loaded.",
            draft_id=record.id,
            draft=DraftContent(**{name: getattr(record, name) for name in EDITABLE_FIELDS}),
        )

    def format_timestamp(self, value: datetime) -> str:
        return _as_utc(value).astimezone(self._display_tz).strftime(self._display_format)
