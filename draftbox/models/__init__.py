"""Draftbox database models."""

from draftbox.models.base import Base
from draftbox.models.draft import DraftRow

__all__ = [
    "Base",
    "DraftRow",
]
