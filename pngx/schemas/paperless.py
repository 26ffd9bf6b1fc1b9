"""Pydantic models mirroring Paperless-ngx API response shapes.

All models are frozen: a record never changes after it is decoded.
Fields the server omits fall back to the defaults declared here.
"""

from datetime import date, datetime
from enum import StrEnum
from typing import ClassVar, Generic, TypeVar

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field, NonNegativeInt

T = TypeVar("T")


class DocumentVersion(StrEnum):
    """Which file of a document to download."""

    ORIGINAL = "original"
    ARCHIVED = "archived"


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True)


class Page(_Record, Generic[T]):
    """One page of a paginated list response."""

    count: NonNegativeInt
    next: str | None = None
    previous: str | None = None
    results: list[T] = Field(default_factory=list)


class Document(_Record):
    """A document stored in Paperless-ngx.

    List endpoints are queried with a ``fields`` filter, so ``content`` is
    usually absent there and only present on single-document fetches.
    """

    id: NonNegativeInt
    title: str
    content: str | None = None
    correspondent: int | None = None
    document_type: int | None = None
    tags: list[int] = Field(default_factory=list)
    created: date | None = None
    added: AwareDatetime | None = None
    archive_serial_number: int | None = None
    original_file_name: str | None = None


class Tag(_Record):
    """A tag used to categorize documents."""

    table_headers: ClassVar[tuple[str, ...]] = ("ID", "Name", "Color", "Documents")

    id: NonNegativeInt
    name: str
    slug: str | None = None
    color: str | None = None
    is_inbox_tag: bool | None = None
    document_count: int | None = None

    def table_row(self) -> list[str]:
        return [
            str(self.id),
            self.name,
            self.color or "",
            "" if self.document_count is None else str(self.document_count),
        ]


class Correspondent(_Record):
    """A sender or recipient associated with documents."""

    table_headers: ClassVar[tuple[str, ...]] = ("ID", "Name", "Documents")

    id: NonNegativeInt
    name: str
    slug: str | None = None
    document_count: int | None = None

    def table_row(self) -> list[str]:
        return [
            str(self.id),
            self.name,
            "" if self.document_count is None else str(self.document_count),
        ]


class DocumentType(_Record):
    """A classification for documents (invoice, letter, ...)."""

    table_headers: ClassVar[tuple[str, ...]] = ("ID", "Name", "Documents")

    id: NonNegativeInt
    name: str
    slug: str | None = None
    document_count: int | None = None

    def table_row(self) -> list[str]:
        return [
            str(self.id),
            self.name,
            "" if self.document_count is None else str(self.document_count),
        ]


class UiSettingsUser(_Record):
    username: str
    first_name: str | None = None
    last_name: str | None = None

    def display_name(self) -> str:
        """Return "First Last" when either is set, otherwise the username."""
        first = (self.first_name or "").strip()
        last = (self.last_name or "").strip()
        if not first and not last:
            return self.username
        return f"{first} {last}".strip()


class UiSettingsVersion(_Record):
    version: str


class UiSettings(_Record):
    """The subset of ``/api/ui_settings/`` the CLI needs."""

    user: UiSettingsUser
    settings: UiSettingsVersion
