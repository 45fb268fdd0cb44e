"""Tests for the search REST client using httpx.MockTransport."""

import httpx
import pytest

from cachedao import IndexableDocument, SearchError
from cachedao.stores.search import TYPE_FIELD, SearchClient


def test_get_index_creates_index_once(search_client, search_server):
    search_client.get_index("articles")
    search_client.get_index("articles")

    assert search_server.requests.count(("PUT", "/articles")) == 1
    assert "articles" in search_server.indices


def test_existing_index_is_accepted(search_client, search_server):
    search_server.indices.add("articles")

    index = search_client.get_index("articles")

    assert index.name == "articles"


def test_add_document_puts_by_id_with_type(search_client, search_server):
    doc_type = search_client.get_index("articles").get_type("article")

    doc_type.add_document(IndexableDocument(id=5, data={"title": "Hello"}))

    assert search_server.documents["articles"]["5"] == {"title": "Hello", TYPE_FIELD: "article"}
    assert doc_type.get_document(5) == {"title": "Hello", TYPE_FIELD: "article"}
    assert search_client.get_index("articles").get_type("other").get_document(5) is None


def test_delete_missing_document_is_not_an_error(search_client, search_server):
    doc_type = search_client.get_index("articles").get_type("article")

    doc_type.delete_by_id("nope")

    assert ("DELETE", "/articles/_doc/nope") in search_server.requests
    assert doc_type.get_document("nope") is None


def test_server_errors_raise_search_error(search_client, search_server):
    search_server.fail = True

    with pytest.raises(SearchError) as exc_info:
        search_client.get_index("articles")

    assert "503" in str(exc_info.value)


def test_transport_errors_raise_search_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = SearchClient("http://search.test", transport=httpx.MockTransport(handler))

    with pytest.raises(SearchError):
        client.get_index("articles")
    client.close()


def test_document_ids_are_path_encoded(search_client, search_server):
    doc_type = search_client.get_index("articles").get_type("article")

    doc_type.add_document(IndexableDocument(id="a/b?c", data={"title": "Hello"}))
    doc_type.delete_by_id("note\n1")

    assert ("PUT", "/articles/_doc/a%2Fb%3Fc") in search_server.requests
    assert ("DELETE", "/articles/_doc/note%0A1") in search_server.requests
    assert search_server.documents["articles"]["a/b?c"]["title"] == "Hello"


def test_invalid_urls_raise_search_error(search_client):
    with pytest.raises(SearchError):
        search_client._request("GET", "/articles/_doc/bad\npath")
