"""Resolve tag, correspondent and document-type IDs on documents to names.

A ``NameResolver`` is a point-in-time snapshot: it is built once per command
from full enumerations of the three reference collections and is read-only
afterwards. Documents resolved through it may reference IDs deleted since;
lookups never fail.
"""

import logging
from collections.abc import Iterable, Mapping
from datetime import date, datetime
from types import MappingProxyType
from typing import TYPE_CHECKING, ClassVar

from pydantic import BaseModel, ConfigDict, Field

from pngx.schemas.paperless import Correspondent, Document, DocumentType, Tag

if TYPE_CHECKING:
    from pngx.integrations.paperless import PaperlessClient

logger = logging.getLogger(__name__)


class NameResolver:
    """Read-only ID → name lookups for tags, correspondents and document types."""

    def __init__(
        self,
        tags: Mapping[int, str],
        correspondents: Mapping[int, str],
        document_types: Mapping[int, str],
    ) -> None:
        self._tags = MappingProxyType(dict(tags))
        self._correspondents = MappingProxyType(dict(correspondents))
        self._document_types = MappingProxyType(dict(document_types))

    @classmethod
    def from_records(
        cls,
        tags: Iterable[Tag],
        correspondents: Iterable[Correspondent],
        document_types: Iterable[DocumentType],
    ) -> "NameResolver":
        return cls(
            {t.id: t.name for t in tags},
            {c.id: c.name for c in correspondents},
            {dt.id: dt.name for dt in document_types},
        )

    @classmethod
    def fetch(cls, client: "PaperlessClient") -> "NameResolver":
        """Collect all tags, correspondents and document types from the server.

        Any failure propagates; no partially built resolver is returned.
        """
        tags, _ = client.collect_tags()
        correspondents, _ = client.collect_correspondents()
        document_types, _ = client.collect_document_types()
        logger.debug(
            "Name lookups: %d tag(s), %d correspondent(s), %d document type(s)",
            len(tags),
            len(correspondents),
            len(document_types),
        )
        return cls.from_records(tags, correspondents, document_types)

    def tag_name(self, tag_id: int) -> str:
        """Return the tag's name, or ``#<id>`` for an unknown tag."""
        return self._tags.get(tag_id, f"#{tag_id}")

    def correspondent_name(self, correspondent_id: int) -> str | None:
        return self._correspondents.get(correspondent_id)

    def document_type_name(self, document_type_id: int) -> str | None:
        return self._document_types.get(document_type_id)


class ResolvedDocument(BaseModel):
    """A document with its foreign keys denormalised to display names."""

    model_config = ConfigDict(frozen=True)

    table_headers: ClassVar[tuple[str, ...]] = (
        "ID",
        "Title",
        "Correspondent",
        "Type",
        "Created",
        "Tags",
    )

    id: int
    title: str
    correspondent: int | None = None
    correspondent_name: str | None = None
    document_type: int | None = None
    document_type_name: str | None = None
    tags: list[int] = Field(default_factory=list)
    tag_names: list[str] = Field(default_factory=list)
    created: date | None = None
    added: datetime | None = None
    archive_serial_number: int | None = None
    original_file_name: str | None = None

    def table_row(self) -> list[str]:
        return [
            str(self.id),
            self.title,
            self.correspondent_name or "",
            self.document_type_name or "",
            self.created.isoformat() if self.created else "",
            ", ".join(self.tag_names),
        ]

    def detail_fields(self) -> list[tuple[str, str]]:
        """Field/value pairs for the single-document detail view."""
        fields = [
            ("ID", str(self.id)),
            ("Title", self.title),
            ("Created", self.created.isoformat() if self.created else "N/A"),
            ("Added", self.added.isoformat() if self.added else "N/A"),
            ("Correspondent", self.correspondent_name or "N/A"),
            ("Document Type", self.document_type_name or "N/A"),
            ("Tags", ", ".join(self.tag_names)),
        ]
        if self.original_file_name:
            fields.append(("Original File", self.original_file_name))
        if self.archive_serial_number is not None:
            fields.append(("ASN", str(self.archive_serial_number)))
        return fields


def resolve_document(doc: Document, names: NameResolver) -> ResolvedDocument:
    return ResolvedDocument(
        id=doc.id,
        title=doc.title,
        correspondent=doc.correspondent,
        correspondent_name=(
            names.correspondent_name(doc.correspondent) if doc.correspondent is not None else None
        ),
        document_type=doc.document_type,
        document_type_name=(
            names.document_type_name(doc.document_type) if doc.document_type is not None else None
        ),
        tags=list(doc.tags),
        tag_names=[names.tag_name(tag_id) for tag_id in doc.tags],
        created=doc.created,
        added=doc.added,
        archive_serial_number=doc.archive_serial_number,
        original_file_name=doc.original_file_name,
    )


def resolve_documents(docs: Iterable[Document], names: NameResolver) -> list[ResolvedDocument]:
    """Resolve each document's references, keeping input order."""
    return [resolve_document(doc, names) for doc in docs]
