"""
Unit tests for HttpPageFetcher feed parsing.
"""

import pytest

from pagemirror.exceptions import ProtocolError, TransportError
from pagemirror.fetchers import HttpPageFetcher
from pagemirror.library import Track
from pagemirror.pagination import PagingIterator

import httpx


@pytest.fixture
def fetcher(http_client, options):
    return HttpPageFetcher(http_client, "trackfeed", Track, options)


def feed(*ids, token=None):
    body = {"data": {"items": [{"id": i, "title": f"Song {i}"} for i in ids]}}
    if token is not None:
        body["nextPageToken"] = token
    return body


@pytest.mark.unit
class TestHttpPageFetcher:
    def test_first_page_request_has_no_start_token(self, fetcher, transport):
        transport.queue(200, feed("t1", token="tok"))

        page = fetcher(None)

        assert transport.json_bodies() == [{"max-results": "2"}]
        assert str(transport.requests[0].url) == "https://music.test/sj/v2.5/trackfeed"
        assert [t.id for t in page.items] == ["t1"]
        assert page.next_cursor == "tok"

    def test_cursor_is_sent_as_start_token(self, fetcher, transport):
        transport.queue(200, feed("t2"))

        page = fetcher("tok")

        assert transport.json_bodies() == [{"max-results": "2", "start-token": "tok"}]
        assert page.has_more is False

    def test_missing_data_is_empty_last_page(self, fetcher, transport):
        transport.queue(200, {"kind": "sj#trackList"})

        page = fetcher(None)

        assert page.items == []
        assert page.has_more is False

    def test_empty_token_ends_collection(self, fetcher, transport):
        transport.queue(200, feed("t1", token=""))

        assert fetcher(None).next_cursor is None

    def test_items_keep_unknown_fields(self, fetcher, transport):
        transport.queue(200, {"data": {"items": [{"id": "t1", "storeId": "Tabc", "year": 1999}]}})

        track = fetcher(None).items[0]

        assert track.store_id == "Tabc"
        assert track.is_library_only is False
        assert track.model_extra == {"year": 1999}

    def test_invalid_item_is_protocol_error(self, fetcher, transport):
        transport.queue(200, {"data": {"items": [{"title": "no id"}]}})

        with pytest.raises(ProtocolError, match="unexpected response shape"):
            fetcher(None)

    def test_status_error_is_protocol_error(self, fetcher, transport):
        transport.queue(401, {"error": "unauthorized"})

        with pytest.raises(ProtocolError) as exc_info:
            fetcher(None)

        assert exc_info.value.status_code == 401

    def test_network_error_is_transport_error(self, fetcher, transport):
        transport.queue_error(httpx.ConnectError("unreachable"))

        with pytest.raises(TransportError):
            fetcher(None)

    def test_drives_paging_iterator(self, fetcher, transport):
        transport.queue(200, feed("t1", "t2", token="p2"))
        transport.queue(200, feed(token="p3"))
        transport.queue(200, feed("t3"))

        tracks = PagingIterator(fetcher).collect_all()

        assert [t.id for t in tracks] == ["t1", "t2", "t3"]
        assert len(transport.requests) == 3
