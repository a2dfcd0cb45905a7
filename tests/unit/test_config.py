"""
Unit tests for ClientOptions and the collection endpoint table.
"""

import dataclasses

import pytest

from pagemirror.config import (
    DEFAULT_BASE_URL,
    LIBRARY_TRACKS,
    PLAYLIST_ENTRIES,
    PLAYLISTS,
    ClientOptions,
)


@pytest.mark.unit
class TestClientOptions:
    """Test ClientOptions dataclass."""

    def test_defaults(self) -> None:
        options = ClientOptions()

        assert options.base_url == DEFAULT_BASE_URL
        assert options.page_size == -1
        assert options.timeout == 30.0

    @pytest.mark.parametrize(
        "base_url, path",
        [
            ("https://music.test/api/", "trackfeed"),
            ("https://music.test/api", "trackfeed"),
            ("https://music.test/api/", "/trackfeed"),
        ],
    )
    def test_url_for_joins_with_single_slash(self, base_url, path) -> None:
        options = ClientOptions(base_url=base_url)

        assert options.url_for(path) == "https://music.test/api/trackfeed"

    def test_options_are_per_instance(self) -> None:
        first = ClientOptions(page_size=10)
        second = ClientOptions()

        assert first.page_size == 10
        assert second.page_size == -1


@pytest.mark.unit
class TestCollectionEndpoints:
    @pytest.mark.parametrize(
        "endpoints, feed, batch",
        [
            (LIBRARY_TRACKS, "trackfeed", "trackbatch"),
            (PLAYLISTS, "playlistfeed", "playlistbatch"),
            (PLAYLIST_ENTRIES, "plentryfeed", "plentriesbatch"),
        ],
    )
    def test_paths(self, endpoints, feed, batch) -> None:
        assert endpoints.feed_path == feed
        assert endpoints.batch_path == batch

    def test_endpoints_are_immutable(self) -> None:
        with pytest.raises(dataclasses.FrozenInstanceError):
            LIBRARY_TRACKS.feed_path = "other"  # type: ignore[misc]
