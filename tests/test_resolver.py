"""Tests for resolving document references to display names."""

import pytest

from conftest import page_body
from pngx.errors import UnauthorizedError
from pngx.resolver import NameResolver, resolve_documents
from pngx.schemas.paperless import Correspondent, Document, DocumentType, Tag


def _resolver():
    return NameResolver.from_records(
        [Tag(id=1, name="Invoice")],
        [Correspondent(id=3, name="Acme Corp")],
        [DocumentType(id=4, name="Receipt")],
    )


class TestLookups:
    def test_known_tag(self):
        assert _resolver().tag_name(1) == "Invoice"

    def test_unknown_tag_gets_placeholder(self):
        assert _resolver().tag_name(99) == "#99"

    def test_known_correspondent_and_type(self):
        names = _resolver()
        assert names.correspondent_name(3) == "Acme Corp"
        assert names.document_type_name(4) == "Receipt"

    def test_unknown_correspondent_and_type_are_none(self):
        names = _resolver()
        assert names.correspondent_name(42) is None
        assert names.document_type_name(42) is None

    def test_snapshot_is_read_only(self):
        names = _resolver()
        with pytest.raises(TypeError):
            names._tags[2] = "Injected"

    def test_source_mapping_changes_do_not_leak(self):
        tags = {1: "Invoice"}
        names = NameResolver(tags, {}, {})
        tags[1] = "Changed"
        assert names.tag_name(1) == "Invoice"


class TestResolveDocuments:
    def test_tags_resolve_with_fallback(self):
        doc = Document(id=1, title="Bill", tags=[1, 99])
        [resolved] = resolve_documents([doc], _resolver())
        assert resolved.tag_names == ["Invoice", "#99"]
        assert resolved.tags == [1, 99]

    def test_foreign_keys_resolve(self):
        doc = Document(id=1, title="Bill", correspondent=3, document_type=4)
        [resolved] = resolve_documents([doc], _resolver())
        assert resolved.correspondent_name == "Acme Corp"
        assert resolved.document_type_name == "Receipt"

    def test_missing_references_stay_absent(self):
        doc = Document(id=1, title="Bill", correspondent=77, document_type=None)
        [resolved] = resolve_documents([doc], _resolver())
        assert resolved.correspondent == 77
        assert resolved.correspondent_name is None
        assert resolved.document_type_name is None

    def test_order_preserved(self):
        docs = [Document(id=i, title=str(i)) for i in (5, 2, 9)]
        assert [d.id for d in resolve_documents(docs, _resolver())] == [5, 2, 9]


class TestFetch:
    def test_fetch_builds_all_lookups(self, client, fake):
        fake.add("/api/tags/", page_body([{"id": 1, "name": "Invoice", "slug": "invoice"}]))
        fake.add("/api/correspondents/", page_body([{"id": 3, "name": "Acme Corp"}]))
        fake.add("/api/document_types/", page_body([{"id": 4, "name": "Receipt"}]))

        names = NameResolver.fetch(client)

        assert names.tag_name(1) == "Invoice"
        assert names.correspondent_name(3) == "Acme Corp"
        assert names.document_type_name(4) == "Receipt"
        assert all("page" not in r.url.params for r in fake.requests)
        assert len(fake.requests) == 3

    def test_any_failure_aborts(self, client, fake):
        fake.add("/api/tags/", page_body([{"id": 1, "name": "Invoice"}]))
        fake.add("/api/correspondents/", {"detail": "forbidden"}, status=403)
        fake.add("/api/document_types/", page_body([]))

        with pytest.raises(UnauthorizedError):
            NameResolver.fetch(client)
