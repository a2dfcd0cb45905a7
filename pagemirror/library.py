"""
Music library collections built on the generic caches.

Every collaborator (page sources, batch clients, planner) is passed in; use the
over_http() constructors to wire them to an authenticated httpx.Client.
"""

from collections.abc import Iterable, Sequence
from typing import cast

import httpx
from pydantic import BaseModel, ConfigDict, Field

from ._logging import logger, redact_key
from .cache import CollectionCache, IncrementalLookupCache
from .config import LIBRARY_TRACKS, PLAYLIST_ENTRIES, PLAYLISTS, ClientOptions
from .fetchers import HttpPageFetcher
from .models import MutationBatch, MutationOutcome, MutationRecord, OrderedEntry
from .mutations import BatchMutationClient
from .pagination import PageFetcher, PagingIterator
from .planner import OrderedInsertionPlanner, materialize_order

# --- ENTITIES ---
# Only the fields the caches and ordering rely on; everything else is kept as extras.


class Track(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str
    title: str | None = None
    store_id: str | None = Field(default=None, alias="storeId")
    uuid: str | None = None

    @property
    def is_library_only(self) -> bool:
        """True for tracks that exist only in the user's library (e.g. uploads)."""
        return self.store_id is None and self.uuid is None


class PlaylistEntry(OrderedEntry):
    playlist_id: str = Field(alias="playlistId")
    track_id: str = Field(alias="trackId")


class PlaylistSummary(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str
    name: str | None = None
    deleted: bool = False


def library_only(tracks: list[Track]) -> list[Track]:
    return [t for t in tracks if t.is_library_only]


# --- COLLECTIONS ---


class TrackLibrary:
    """The user's track library with incremental lookups by track id."""

    def __init__(self, page_source: PageFetcher[Track], caching_enabled: bool = True) -> None:
        self.cache: IncrementalLookupCache[Track] = IncrementalLookupCache(
            page_source,
            key=lambda t: t.id,
            page_filter=library_only,
            name=LIBRARY_TRACKS.name,
            caching_enabled=caching_enabled,
        )

    @classmethod
    def over_http(
        cls, client: httpx.Client, options: ClientOptions | None = None, caching_enabled: bool = True
    ) -> "TrackLibrary":
        fetcher = HttpPageFetcher(client, LIBRARY_TRACKS.feed_path, Track, options)
        return cls(fetcher, caching_enabled=caching_enabled)

    def get_track(self, track_id: str) -> Track | None:
        return self.cache.find(track_id)

    def tracks(self) -> list[Track]:
        return self.cache.get_all()

    def enable_caching(self, enabled: bool = True) -> None:
        self.cache.enable_caching(enabled)


class PlaylistEntries:
    """
    Entries of the user's private playlists.

    The entry feed covers every private playlist at once and can only be read
    as a whole, so it is cached as one snapshot. Inserts are planned as linked
    runs and sent as one batch.
    """

    def __init__(
        self,
        page_source: PageFetcher[PlaylistEntry],
        mutations: BatchMutationClient,
        planner: OrderedInsertionPlanner | None = None,
        caching_enabled: bool = True,
    ) -> None:
        self.mutations = mutations
        self.planner = planner or OrderedInsertionPlanner()
        self.cache: CollectionCache[PlaylistEntry] = CollectionCache.from_fetcher(
            page_source,
            name=PLAYLIST_ENTRIES.name,
            key=lambda e: e.id,
            caching_enabled=caching_enabled,
        )

    @classmethod
    def over_http(
        cls, client: httpx.Client, options: ClientOptions | None = None, caching_enabled: bool = True
    ) -> "PlaylistEntries":
        return cls(
            HttpPageFetcher(client, PLAYLIST_ENTRIES.feed_path, PlaylistEntry, options),
            BatchMutationClient(client, PLAYLIST_ENTRIES.batch_path, options),
            caching_enabled=caching_enabled,
        )

    def contents(self, playlist_id: str, max_results: int = 0) -> list[PlaylistEntry]:
        """
        Returns the live entries of one playlist in list order.

        Args:
            playlist_id: Playlist to read
            max_results: Return at most this many entries (0 for all)
        """
        entries = [e for e in self.cache.get_all() if e.playlist_id == playlist_id]
        ordered = cast(list[PlaylistEntry], materialize_order(entries))
        if max_results > 0:
            ordered = ordered[:max_results]
        return ordered

    def add_tracks(self, playlist_id: str, track_ids: Sequence[str]) -> MutationOutcome:
        """
        Appends tracks to the end of a playlist in one batch.

        The cache is invalidated once any entry was created, since the server
        assigns the final entry ids.

        Raises:
            PartialMutationFailure: If some entries were rejected
        """
        current = self.contents(playlist_id)
        tail_id = current[-1].id if current else None
        payloads = [
            {
                "playlistId": playlist_id,
                "trackId": track_id,
                # Store tracks ("T..." ids) and library tracks use different sources
                "source": 2 if track_id.startswith("T") else 1,
                "deleted": False,
                "creationTimestamp": "-1",
                "lastModifiedTimestamp": "0",
            }
            for track_id in track_ids
        ]
        batch = self.planner.plan_append(tail_id, payloads)
        logger.info(
            "Adding tracks to playlist",
            extra={
                "collection": self.cache.name,
                "playlist_hash": redact_key(playlist_id),
                "count": len(batch),
            },
        )

        outcome = self.mutations.submit(batch)
        if outcome.succeeded:
            self.cache.invalidate()
        return outcome.raise_for_failures()

    def remove_entries(self, entries: Iterable[PlaylistEntry]) -> MutationOutcome:
        """
        Deletes entries (possibly from several playlists) in one batch.

        Entries the server confirmed are removed from the snapshot right away;
        rejected ones stay.

        Raises:
            PartialMutationFailure: If some deletions were rejected
        """
        doomed = list(entries)
        batch = MutationBatch(records=[MutationRecord.delete(e.id) for e in doomed])
        outcome = self.mutations.submit(batch)

        confirmed = {r.target_id for r in outcome.succeeded}
        self.cache.remove([e for e in doomed if e.id in confirmed])
        return outcome.raise_for_failures()

    def enable_caching(self, enabled: bool = True) -> None:
        self.cache.enable_caching(enabled)

    def refresh(self) -> list[PlaylistEntry]:
        return self.cache.refresh()


class Playlists:
    """Creation, deletion and listing of the user's playlists."""

    def __init__(
        self,
        page_source: PageFetcher[PlaylistSummary],
        mutations: BatchMutationClient,
        planner: OrderedInsertionPlanner | None = None,
    ) -> None:
        self.page_source = page_source
        self.mutations = mutations
        self.planner = planner or OrderedInsertionPlanner()

    @classmethod
    def over_http(cls, client: httpx.Client, options: ClientOptions | None = None) -> "Playlists":
        return cls(
            HttpPageFetcher(client, PLAYLISTS.feed_path, PlaylistSummary, options),
            BatchMutationClient(client, PLAYLISTS.batch_path, options),
        )

    def list_all(self) -> list[PlaylistSummary]:
        """Lists every playlist, uncached."""
        playlists = PagingIterator(self.page_source, name=PLAYLISTS.name).collect_all()
        return [p for p in playlists if not p.deleted]

    def create(
        self, name: str, description: str | None = None, share_state: str = "PRIVATE"
    ) -> str:
        """
        Creates a user playlist.

        Returns:
            The id the server assigned (or the client id if it echoed none).
        """
        payload = {
            "name": name,
            "description": description or "",
            "shareState": share_state,
            "type": "USER_GENERATED",
            "deleted": False,
            "creationTimestamp": "-1",
            "lastModifiedTimestamp": "0",
        }
        # A playlist is not part of a chain; the planner only supplies the id
        record = self.planner.plan_append(None, [payload]).records[0]
        outcome = self.mutations.submit(MutationBatch(records=[record]), raise_on_failure=True)
        result = outcome.results[0]
        return result.server_id or result.target_id

    def delete(self, playlist_ids: Iterable[str]) -> MutationOutcome:
        """
        Deletes playlists together with their entries.

        Raises:
            PartialMutationFailure: If some deletions were rejected
        """
        batch = MutationBatch(records=[MutationRecord.delete(pid) for pid in playlist_ids])
        return self.mutations.submit(batch, raise_on_failure=True)
