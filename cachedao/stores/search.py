"""Search service client for Elasticsearch's REST API.

Handles:
- Get-or-create of indices (created once per client)
- Document types as a namespace within an index
- Add/replace and delete of documents by id

Failures surface as SearchError; callers decide whether they are fatal.
"""

import logging
from typing import Any
from urllib.parse import quote

import httpx

from cachedao.exceptions import SearchError
from cachedao.models.indexable import IndexableDocument
from cachedao.settings import get_settings

logger = logging.getLogger(__name__)

# Field carrying the document type inside each stored document
TYPE_FIELD = "doc_type"


def _segment(value: str | int) -> str:
    """Percent-encode one URL path segment (ids may contain /, ? or control chars)."""
    return quote(str(value), safe="")


class SearchType:
    """Documents of one type inside an index."""

    def __init__(self, index: "SearchIndex", name: str):
        self.index = index
        self.name = name

    def _path(self, doc_id: str | int) -> str:
        return f"/{_segment(self.index.name)}/_doc/{_segment(doc_id)}"

    def add_document(self, document: IndexableDocument) -> None:
        """Add or replace a document by its id."""
        body = dict(document.data)
        body[TYPE_FIELD] = self.name
        self.index.client._request("PUT", self._path(document.id), json=body)

    def delete_by_id(self, doc_id: str | int) -> None:
        """Delete a document by id; deleting a missing document is not an error."""
        self.index.client._request(
            "DELETE",
            self._path(doc_id),
            allowed_statuses=(404,),
        )

    def get_document(self, doc_id: str | int) -> dict[str, Any] | None:
        """Get a stored document's source, or None if it does not exist."""
        response = self.index.client._request(
            "GET",
            self._path(doc_id),
            allowed_statuses=(404,),
        )
        if response.status_code == 404:
            return None
        data = response.json()
        if not data.get("found", True):
            return None
        source = data.get("_source") or {}
        if source.get(TYPE_FIELD, self.name) != self.name:
            return None
        return source


class SearchIndex:
    def __init__(self, client: "SearchClient", name: str):
        self.client = client
        self.name = name
        self._types: dict[str, SearchType] = {}
        self._exists = False

    def create(self) -> None:
        """Create the index unless it already exists (once per client)."""
        if self._exists:
            return
        response = self.client._request("PUT", f"/{_segment(self.name)}", allowed_statuses=(400,))
        if response.status_code == 400 and "resource_already_exists_exception" not in response.text:
            raise SearchError(f"Failed to create index {self.name}: {response.text[:200]}")
        self._exists = True

    def get_type(self, name: str) -> SearchType:
        if name not in self._types:
            self._types[name] = SearchType(self, name)
        return self._types[name]

    def refresh(self) -> None:
        """Make recent writes visible to searches."""
        self.client._request("POST", f"/{_segment(self.name)}/_refresh")

    def delete(self) -> None:
        """Delete the whole index (for testing only)."""
        self.client._request("DELETE", f"/{_segment(self.name)}", allowed_statuses=(404,))
        self._exists = False


class SearchClient:
    """Client for an Elasticsearch-compatible REST endpoint."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize client.

        Args:
            base_url: Search service URL (defaults to settings.search_url).
            timeout: Request timeout in seconds.
            transport: Optional httpx transport (e.g. httpx.MockTransport in tests).
        """
        settings = get_settings()
        self.base_url = (base_url or settings.search_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.search_timeout
        self._transport = transport
        self._http_client: httpx.Client | None = None
        self._indices: dict[str, SearchIndex] = {}

    def _get_client(self) -> httpx.Client:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.Client(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._http_client

    def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            self._http_client.close()
            self._http_client = None

    def get_index(self, name: str, create: bool = True) -> SearchIndex:
        """Get an index handle, creating the index on first use."""
        index = self._indices.get(name)
        if index is None:
            index = SearchIndex(self, name)
            self._indices[name] = index
        if create:
            index.create()
        return index

    def _request(
        self,
        method: str,
        path: str,
        *,
        allowed_statuses: tuple[int, ...] = (),
        **kwargs: Any,
    ) -> httpx.Response:
        try:
            response = self._get_client().request(method, path, **kwargs)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise SearchError(f"{method} {path} failed: {e}") from e

        if response.status_code >= 400 and response.status_code not in allowed_statuses:
            logger.debug(f"Search API error: {response.status_code} - {response.text[:200]}")
            raise SearchError(f"{method} {path} failed: {response.status_code} - {response.text[:200]}")
        return response
