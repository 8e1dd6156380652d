"""Draft table: one flat, append-mostly collection of draft rows."""

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from draftbox.models.base import Base


class DraftRow(Base):
    __tablename__ = "drafts"

    # Row locator. Autoincrement keeps scan order equal to insertion order.
    position: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True, index=True)
    title: Mapped[str] = mapped_column(Text, nullable=False, default="")
    class_label: Mapped[str] = mapped_column("class", Text, nullable=False, default="")
    author_name: Mapped[str] = mapped_column("name", Text, nullable=False, default="")
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<DraftRow {self.id} position={self.position}>"
