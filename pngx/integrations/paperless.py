"""Synchronous client for the Paperless-ngx REST API."""

import logging
from typing import BinaryIO, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from pngx.errors import (
    DeserializationError,
    InvalidAddressError,
    LocalIoError,
    SchemeMismatchError,
    error_for_status,
    error_for_transport,
)
from pngx.schemas.paperless import (
    Correspondent,
    Document,
    DocumentType,
    DocumentVersion,
    Page,
    Tag,
    UiSettings,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

DEFAULT_PAGE_SIZE = 100
API_ACCEPT = "application/json; version=9"
DOWNLOAD_CHUNK_SIZE = 65536

# Attributes needed to render document lists; skips the (large) OCR content.
DOCUMENT_LIST_FIELDS = (
    "id,title,correspondent,document_type,tags,created,added,"
    "archive_serial_number,original_file_name"
)

_DOWNLOAD_PATHS = {
    DocumentVersion.ORIGINAL: "api/documents/{doc_id}/download/",
    DocumentVersion.ARCHIVED: "api/documents/{doc_id}/preview/",
}


def _parse_base_url(base_url: str) -> httpx.URL:
    """Parse the configured server address, normalised to end in ``/``.

    The trailing slash keeps relative joins inside a sub-path deployment
    (``https://host/paperless/`` + ``api/tags/``).
    """
    try:
        url = httpx.URL(base_url)
    except httpx.InvalidURL as exc:
        raise InvalidAddressError(f"'{base_url}': {exc}") from exc
    if url.scheme not in ("http", "https") or not url.host:
        raise InvalidAddressError(f"'{base_url}' is not an absolute http(s) URL")
    if not url.path.endswith("/"):
        url = url.copy_with(path=url.path + "/")
    return url


def _raise_for_status(response: httpx.Response) -> None:
    if not response.is_success:
        raise error_for_status(response.status_code, response.reason_phrase)


def _describe_validation_error(exc: ValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first["loc"]) or "<root>"
    more = exc.error_count() - 1
    suffix = f" (and {more} more)" if more else ""
    return f"{first['msg']} at {location}{suffix}"


class PaperlessClient:
    """Blocking HTTP client for Paperless-ngx.

    Every request carries ``Authorization: Token <token>``; JSON requests
    also pin the API version through the ``Accept`` header. Failures are
    raised as :class:`pngx.errors.ApiError` subclasses and never retried.

    Usage::

        with PaperlessClient(base_url, token) as client:
            docs, total = client.collect_documents(limit=25)
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """
        Args:
            base_url: Absolute server address, e.g. ``https://paperless.example.com``.
            token: API token.
            page_size: ``page_size`` hint sent to list endpoints.
            timeout: Per-request timeout in seconds; ``None`` disables it.
            transport: Optional httpx transport (tests use ``httpx.MockTransport``).

        Raises:
            InvalidAddressError: If ``base_url`` is not an absolute http(s) URL.
        """
        self._base_url = _parse_base_url(base_url)
        self._page_size = page_size
        self._client = httpx.Client(
            headers={"Authorization": f"Token {token}"},
            timeout=timeout,
            follow_redirects=True,
            transport=transport,
        )

    def __enter__(self) -> "PaperlessClient":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    @property
    def base_url(self) -> httpx.URL:
        return self._base_url

    # ------------------------------------------------------------------
    # Request helpers
    # ------------------------------------------------------------------

    def _url(self, path: str, **params: str | int) -> httpx.URL:
        url = self._base_url.join(path)
        if params:
            url = url.copy_merge_params({k: str(v) for k, v in params.items()})
        return url

    def _get(self, url: httpx.URL, schema: type[M]) -> M:
        """GET a JSON resource and decode it as ``schema``."""
        logger.debug("GET %s", url)
        try:
            response = self._client.get(url, headers={"Accept": API_ACCEPT})
        except httpx.HTTPError as exc:
            raise error_for_transport(exc) from exc
        _raise_for_status(response)
        try:
            return schema.model_validate_json(response.content)
        except ValidationError as exc:
            raise DeserializationError(_describe_validation_error(exc)) from exc

    def _next_page_url(self, ref: str) -> httpx.URL:
        """Resolve a ``next`` reference and check it keeps the base scheme."""
        try:
            url = self._base_url.join(ref)
        except httpx.InvalidURL as exc:
            raise InvalidAddressError(f"'{ref}': {exc}") from exc
        if url.scheme != self._base_url.scheme:
            raise SchemeMismatchError(expected=self._base_url.scheme, returned=url.scheme)
        return url

    def collect(
        self,
        url: httpx.URL,
        item_schema: type[M],
        limit: int | None = None,
    ) -> tuple[list[M], int]:
        """Follow ``next`` links from a first page until done or ``limit`` is reached.

        Args:
            url: Fully parameterised first-page URL.
            item_schema: Model each item in ``results`` is decoded as.
            limit: Maximum number of items to return; ``None`` means all.
                ``0`` still fetches the first page so the total is known.

        Returns:
            Tuple of (items in page order, total count reported by the first page).

        Raises:
            SchemeMismatchError: If a ``next`` link changes scheme. Raised
                before that page is requested.
        """
        if limit is not None and limit < 0:
            raise ValueError(f"limit must be >= 0, got {limit}")

        page_schema = Page[item_schema]
        first = self._get(url, page_schema)
        total = first.count
        results = list(first.results)

        if limit is not None and len(results) >= limit:
            return results[:limit], total

        next_ref = first.next
        pages = 1
        while next_ref and (limit is None or len(results) < limit):
            page = self._get(self._next_page_url(next_ref), page_schema)
            pages += 1
            results.extend(page.results)
            next_ref = page.next

        if limit is not None:
            del results[limit:]
        logger.debug("Collected %d of %d item(s) over %d page(s)", len(results), total, pages)
        return results, total

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def _documents_url(self) -> httpx.URL:
        return self._url(
            "api/documents/", fields=DOCUMENT_LIST_FIELDS, page_size=self._page_size
        )

    def _inbox_url(self) -> httpx.URL:
        return self._url(
            "api/documents/",
            is_in_inbox="true",
            fields=DOCUMENT_LIST_FIELDS,
            page_size=self._page_size,
        )

    def _search_url(self, query: str) -> httpx.URL:
        return self._url("api/documents/", query=query, page_size=self._page_size)

    def documents(self) -> Page[Document]:
        """Fetch the first page of documents."""
        return self._get(self._documents_url(), Page[Document])

    def collect_documents(self, limit: int | None = None) -> tuple[list[Document], int]:
        """Fetch documents across pages up to ``limit``."""
        return self.collect(self._documents_url(), Document, limit)

    def inbox_documents(self) -> Page[Document]:
        """Fetch the first page of documents carrying an inbox tag."""
        return self._get(self._inbox_url(), Page[Document])

    def collect_inbox_documents(self, limit: int | None = None) -> tuple[list[Document], int]:
        """Fetch inbox documents across pages up to ``limit``."""
        return self.collect(self._inbox_url(), Document, limit)

    def search(self, query: str) -> Page[Document]:
        """Fetch the first page of a full-text search."""
        return self._get(self._search_url(query), Page[Document])

    def collect_search(self, query: str, limit: int | None = None) -> tuple[list[Document], int]:
        """Fetch full-text search results across pages up to ``limit``."""
        return self.collect(self._search_url(query), Document, limit)

    def document(self, doc_id: int) -> Document:
        """Fetch a single document by ID, including its content."""
        return self._get(self._url(f"api/documents/{doc_id}/"), Document)

    def document_content(self, doc_id: int) -> str:
        """Return a document's extracted text, or ``""`` if it has none."""
        return self.document(doc_id).content or ""

    def download_document(self, doc_id: int, version: DocumentVersion, sink: BinaryIO) -> int:
        """Stream a document file into ``sink``.

        Args:
            doc_id: Paperless document ID.
            version: Original upload or archived (processed) file.
            sink: Writable binary stream.

        Returns:
            Number of bytes written.

        Raises:
            LocalIoError: If writing to ``sink`` fails.
        """
        url = self._url(_DOWNLOAD_PATHS[version].format(doc_id=doc_id))
        logger.debug("GET %s (streaming)", url)
        written = 0
        try:
            with self._client.stream("GET", url) as response:
                _raise_for_status(response)
                for chunk in response.iter_bytes(DOWNLOAD_CHUNK_SIZE):
                    try:
                        sink.write(chunk)
                    except OSError as exc:
                        raise LocalIoError(str(exc)) from exc
                    written += len(chunk)
        except httpx.HTTPError as exc:
            raise error_for_transport(exc) from exc
        logger.info("Downloaded document %d (%s): %d bytes", doc_id, version.value, written)
        return written

    def get_document_url(self, doc_id: int) -> str:
        """Return the browser URL for viewing a document in the Paperless-ngx UI."""
        return str(self._base_url.join(f"documents/{doc_id}/details"))

    # ------------------------------------------------------------------
    # Tags, correspondents, document types
    # ------------------------------------------------------------------

    def tags(self) -> Page[Tag]:
        return self._get(self._url("api/tags/", page_size=self._page_size), Page[Tag])

    def collect_tags(self, limit: int | None = None) -> tuple[list[Tag], int]:
        return self.collect(self._url("api/tags/", page_size=self._page_size), Tag, limit)

    def correspondents(self) -> Page[Correspondent]:
        return self._get(
            self._url("api/correspondents/", page_size=self._page_size), Page[Correspondent]
        )

    def collect_correspondents(self, limit: int | None = None) -> tuple[list[Correspondent], int]:
        return self.collect(
            self._url("api/correspondents/", page_size=self._page_size), Correspondent, limit
        )

    def document_types(self) -> Page[DocumentType]:
        return self._get(
            self._url("api/document_types/", page_size=self._page_size), Page[DocumentType]
        )

    def collect_document_types(self, limit: int | None = None) -> tuple[list[DocumentType], int]:
        return self.collect(
            self._url("api/document_types/", page_size=self._page_size), DocumentType, limit
        )

    # ------------------------------------------------------------------
    # Server
    # ------------------------------------------------------------------

    def ui_settings(self) -> UiSettings:
        """Fetch UI settings: the authenticated user and the server version."""
        return self._get(self._url("api/ui_settings/"), UiSettings)

    def server_version(self) -> str:
        return self.ui_settings().settings.version
