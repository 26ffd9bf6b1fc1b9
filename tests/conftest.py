"""Shared fixtures for pngx tests."""

import json

import httpx
import pytest

from pngx.integrations.paperless import PaperlessClient

BASE_URL = "http://paperless.test"
TOKEN = "test-token"


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch, tmp_path):
    """Keep tests away from the real credentials file and PNGX_* variables."""
    import os

    for key in list(os.environ):
        if key.startswith("PNGX_"):
            monkeypatch.delenv(key)
    monkeypatch.setattr("pngx.cli.CONFIG_FILE_PATH", tmp_path / "config" / "config.env")
    monkeypatch.setattr("pngx.config.CONFIG_FILE_PATH", tmp_path / "config" / "config.env")


class FakePaperless:
    """Route table for ``httpx.MockTransport`` that records every request.

    Routes are keyed by path; a value is either a response factory taking the
    request, or a JSON-serialisable body returned with status 200. Paginated
    routes can be keyed by ``(path, page)`` to match a ``page`` query param.
    """

    def __init__(self) -> None:
        self.routes: dict = {}
        self.requests: list[httpx.Request] = []

    def add(self, path, body=None, *, status: int = 200, page: str | None = None, handler=None):
        key = (path, page) if page is not None else path
        if handler is None:
            content = body if isinstance(body, bytes) else json.dumps(body).encode()
            handler = lambda request: httpx.Response(status, content=content)  # noqa: E731
        self.routes[key] = handler

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        page = request.url.params.get("page")
        handler = self.routes.get((request.url.path, page)) or self.routes.get(request.url.path)
        if handler is None:
            return httpx.Response(404, json={"detail": "Not found."})
        return handler(request)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture()
def fake():
    return FakePaperless()


@pytest.fixture()
def client(fake):
    with PaperlessClient(BASE_URL, TOKEN, transport=fake.transport()) as c:
        yield c


def page_body(results, *, count=None, next=None, previous=None):
    return {
        "count": len(results) if count is None else count,
        "next": next,
        "previous": previous,
        "results": results,
    }


def doc_body(doc_id, **overrides):
    body = {
        "id": doc_id,
        "title": f"Document {doc_id}",
        "correspondent": None,
        "document_type": None,
        "tags": [],
        "created": "2024-01-01",
        "added": "2024-01-01T00:00:00Z",
        "archive_serial_number": None,
        "original_file_name": f"doc{doc_id}.pdf",
    }
    body.update(overrides)
    return body
