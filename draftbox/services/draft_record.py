"""Draft record entity and the fixed column schema shared by every backend."""

import uuid
from dataclasses import dataclass
from datetime import datetime

# Ordered field list. Every backend stores exactly these fields in this order.
DRAFT_FIELDS: tuple[str, ...] = (
    "id",
    "title",
    "class_label",
    "author_name",
    "content",
    "created_at",
    "updated_at",
    "deleted_at",
)

# Persisted column name for each field.
DRAFT_COLUMNS: dict[str, str] = {
    "id": "id",
    "title": "title",
    "class_label": "class",
    "author_name": "name",
    "content": "content",
    "created_at": "created_at",
    "updated_at": "updated_at",
    "deleted_at": "deleted_at",
}

# Fields an update may replace. `id` and `created_at` are write-once.
MUTABLE_FIELDS: frozenset[str] = frozenset(DRAFT_FIELDS) - {"id", "created_at"}

# Fields returned when a draft is loaded for editing.
EDITABLE_FIELDS: tuple[str, ...] = ("id", "title", "class_label", "author_name", "content")


def generate_draft_id() -> str:
    return uuid.uuid4().hex


@dataclass
class DraftRecord:
    """A single stored draft."""

    id: str
    title: str
    class_label: str
    author_name: str
    content: str
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None = None

    @property
    def is_archived(self) -> bool:
        return self.deleted_at is not None
