"""Draft schemas.

Field aliases keep the wire names (`class`, `name`, `updatedAt`) used by the
browser client while the Python side uses descriptive attribute names.
"""

from typing import Literal

from pydantic import BaseModel, Field

from draftbox.services.draft_service import DraftContent, DraftListItem


class DraftSaveRequest(BaseModel):
    id: str | None = None
    title: str = ""
    class_label: str = Field(default="", alias="class")
    author_name: str = Field(default="", alias="name")
    content: str = ""

    model_config = {"populate_by_name": True}


class DraftSaveResponse(BaseModel):
    status: Literal["success", "error"]
    message: str
    id: str | None = None


class DraftSummary(BaseModel):
    id: str
    title: str
    author_name: str = Field(alias="name")
    updated_at: str = Field(alias="updatedAt")

    model_config = {"populate_by_name": True}

    @classmethod
    def from_item(cls, item: DraftListItem) -> "DraftSummary":
        return cls(
            id=item.id,
            title=item.title,
            author_name=item.author_name,
            updated_at=item.updated_at_display,
        )


class DraftData(BaseModel):
    id: str
    title: str
    class_label: str = Field(alias="class")
    author_name: str = Field(alias="name")
    content: str

    model_config = {"populate_by_name": True}

    @classmethod
    def from_content(cls, draft: DraftContent) -> "DraftData":
        return cls(
            id=draft.id,
            title=draft.title,
            class_label=draft.class_label,
            author_name=draft.author_name,
            content=draft.content,
        )


class DraftLoadResponse(BaseModel):
    status: Literal["success", "error"]
    message: str | None = None
    data: DraftData | None = None


class DraftStatusResponse(BaseModel):
    status: Literal["success", "error"]
    message: str
