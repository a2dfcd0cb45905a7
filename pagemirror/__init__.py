from .cache import CacheEvent, CacheState, CollectionCache, IncrementalLookupCache, transition
from .config import (
    LIBRARY_TRACKS,
    PLAYLIST_ENTRIES,
    PLAYLISTS,
    ClientOptions,
    CollectionEndpoints,
)
from .exceptions import (
    NotFoundError,
    PagemirrorError,
    PartialMutationFailure,
    ProtocolError,
    TransportError,
)
from .fetchers import HttpPageFetcher
from .ids import id_sort_key, time_ordered_id
from .library import PlaylistEntries, PlaylistEntry, Playlists, PlaylistSummary, Track, TrackLibrary
from .models import (
    MutationBatch,
    MutationItemResult,
    MutationKind,
    MutationOutcome,
    MutationRecord,
    OrderedEntry,
)
from .mutations import BatchMutationClient
from .pagination import Page, PageFetcher, PageFilter, PagingIterator
from .planner import OrderedInsertionPlanner, materialize_order

__all__ = [
    # Pagination
    "Page",
    "PageFetcher",
    "PageFilter",
    "PagingIterator",
    "HttpPageFetcher",
    # Caches
    "CollectionCache",
    "IncrementalLookupCache",
    "CacheState",
    "CacheEvent",
    "transition",
    # Ordered lists and mutations
    "OrderedEntry",
    "OrderedInsertionPlanner",
    "materialize_order",
    "time_ordered_id",
    "id_sort_key",
    "MutationKind",
    "MutationRecord",
    "MutationBatch",
    "MutationItemResult",
    "MutationOutcome",
    "BatchMutationClient",
    # Library
    "Track",
    "PlaylistEntry",
    "PlaylistSummary",
    "TrackLibrary",
    "PlaylistEntries",
    "Playlists",
    # Configuration
    "ClientOptions",
    "CollectionEndpoints",
    "LIBRARY_TRACKS",
    "PLAYLISTS",
    "PLAYLIST_ENTRIES",
    # Exceptions
    "PagemirrorError",
    "TransportError",
    "ProtocolError",
    "NotFoundError",
    "PartialMutationFailure",
]
