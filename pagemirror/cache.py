"""
Client-side snapshots of paginated remote collections.

CollectionCache materializes a whole collection on first read and keeps it
until it is invalidated or caching is switched off. IncrementalLookupCache adds
key lookups that only fetch as many pages as needed to find the key.

State machine (see transition()):

    UNINITIALIZED --refreshed--> READY --invalidate--> UNINITIALIZED
    any --disable--> DISABLED --enable--> UNINITIALIZED

Local add/remove calls mirror mutations the caller has already confirmed with
the server; they never touch the network.
"""

import threading
from collections.abc import Callable, Hashable, Iterable
from enum import Enum
from typing import Any, Generic, TypeVar

from ._logging import logger, redact_key
from .exceptions import NotFoundError
from .pagination import PageFetcher, PageFilter, PagingIterator

T = TypeVar("T")


class CacheState(str, Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    DISABLED = "disabled"


class CacheEvent(str, Enum):
    REFRESHED = "refreshed"
    ENABLE = "enable"
    DISABLE = "disable"
    INVALIDATE = "invalidate"
    LOCAL_MUTATION = "local_mutation"


_TRANSITIONS: dict[tuple[CacheState, CacheEvent], CacheState] = {
    (CacheState.UNINITIALIZED, CacheEvent.REFRESHED): CacheState.READY,
    (CacheState.UNINITIALIZED, CacheEvent.ENABLE): CacheState.UNINITIALIZED,
    (CacheState.UNINITIALIZED, CacheEvent.DISABLE): CacheState.DISABLED,
    (CacheState.UNINITIALIZED, CacheEvent.INVALIDATE): CacheState.UNINITIALIZED,
    (CacheState.UNINITIALIZED, CacheEvent.LOCAL_MUTATION): CacheState.UNINITIALIZED,
    (CacheState.READY, CacheEvent.REFRESHED): CacheState.READY,
    (CacheState.READY, CacheEvent.ENABLE): CacheState.READY,
    (CacheState.READY, CacheEvent.DISABLE): CacheState.DISABLED,
    (CacheState.READY, CacheEvent.INVALIDATE): CacheState.UNINITIALIZED,
    (CacheState.READY, CacheEvent.LOCAL_MUTATION): CacheState.READY,
    # Nothing is retained while disabled, so only ENABLE leaves this state
    (CacheState.DISABLED, CacheEvent.REFRESHED): CacheState.DISABLED,
    (CacheState.DISABLED, CacheEvent.ENABLE): CacheState.UNINITIALIZED,
    (CacheState.DISABLED, CacheEvent.DISABLE): CacheState.DISABLED,
    (CacheState.DISABLED, CacheEvent.INVALIDATE): CacheState.DISABLED,
    (CacheState.DISABLED, CacheEvent.LOCAL_MUTATION): CacheState.DISABLED,
}


def transition(state: CacheState, event: CacheEvent) -> CacheState:
    """
    Returns the state a cache moves to when event happens in state.

    Raises:
        ValueError: If the pair is not part of the table
    """
    try:
        return _TRANSITIONS[(state, event)]
    except KeyError:
        raise ValueError(f"No transition from {state!s} on {event!s}") from None


class CollectionCache(Generic[T]):
    """
    Lazily materialized snapshot of a remote collection.

    Readers always get a copy, taken either before a refresh starts or after it
    completed. Only one refresh runs at a time; callers arriving while it runs
    wait for it and reuse its result instead of draining the collection again.

    Args:
        refresher: Returns the complete collection (usually a full pagination drain)
        name: Collection name used in logs and errors
        key: Identity of an item; when given, remove() matches by key
        caching_enabled: Initial caching mode
    """

    def __init__(
        self,
        refresher: Callable[[], list[T]],
        name: str = "collection",
        key: Callable[[T], Hashable] | None = None,
        caching_enabled: bool = True,
    ) -> None:
        self.refresher = refresher
        self.name = name
        self.key = key

        self._items: list[T] = []
        # Keys of _items; only maintained when a key function is set
        self._keys: set[Hashable] = set()
        self._state = CacheState.UNINITIALIZED if caching_enabled else CacheState.DISABLED
        # Bumped whenever the snapshot is discarded; a refresh that started under
        # an older generation must not publish its result.
        self._generation = 0
        # Local mutations made while a refresh is loading, replayed after the swap
        self._pending: list[tuple[str, list[T]]] | None = None

        self._lock = threading.RLock()
        self._refresh_lock = threading.Lock()
        self.refresh_count = 0

    @classmethod
    def from_fetcher(
        cls,
        fetcher: PageFetcher[T],
        page_filter: PageFilter[T] | None = None,
        name: str = "collection",
        key: Callable[[T], Hashable] | None = None,
        caching_enabled: bool = True,
    ) -> "CollectionCache[T]":
        """Builds a cache whose refresh drains the collection page by page."""

        def drain() -> list[T]:
            # Each refresh is its own scan and owns its iterator
            return PagingIterator(fetcher, page_filter, name).collect_all()

        return cls(drain, name=name, key=key, caching_enabled=caching_enabled)

    # --- STATE ---

    @property
    def state(self) -> CacheState:
        return self._state

    @property
    def caching_enabled(self) -> bool:
        return self._state is not CacheState.DISABLED

    @property
    def ready(self) -> bool:
        return self._state is CacheState.READY

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def _apply(self, event: CacheEvent) -> CacheState:
        """Moves to the next state and drops the snapshot when leaving it behind."""
        previous = self._state
        self._state = transition(previous, event)
        discard = event is CacheEvent.INVALIDATE or (
            event in (CacheEvent.DISABLE, CacheEvent.ENABLE) and previous is not self._state
        )
        if discard:
            self._items = []
            self._keys = set()
            self._generation += 1
        if previous is not self._state:
            logger.debug(
                "Cache state changed",
                extra={
                    "collection": self.name,
                    "from_state": previous.value,
                    "to_state": self._state.value,
                    "event": event.value,
                },
            )
        return self._state

    # --- CONTROL SURFACE ---

    def enable_caching(self, enabled: bool = True) -> None:
        """
        Switches caching on or off.

        Disabling drops the snapshot; every read then re-derives the collection
        from scratch until caching is enabled again.
        """
        with self._lock:
            self._apply(CacheEvent.ENABLE if enabled else CacheEvent.DISABLE)

    def invalidate(self) -> None:
        """Discards the snapshot; the next read performs a full refresh."""
        with self._lock:
            self._apply(CacheEvent.INVALIDATE)

    def get_all(self) -> list[T]:
        """
        Returns the whole collection, refreshing first if no complete snapshot exists.

        Raises:
            TransportError, ProtocolError: If the refresh fails. The previous
                snapshot is left untouched.
        """
        with self._lock:
            if self._state is CacheState.READY:
                return list(self._items)

        with self._refresh_lock:
            # Another caller may have finished the refresh while we waited
            with self._lock:
                if self._state is CacheState.READY:
                    return list(self._items)
            return self._refresh_locked()

    def refresh(self) -> list[T]:
        """
        Forces a full refresh, even if the snapshot is complete.

        Useful after mutations made outside this process. On failure the
        previous snapshot stays in place.
        """
        with self._refresh_lock:
            return self._refresh_locked()

    def _refresh_locked(self) -> list[T]:
        with self._lock:
            generation = self._generation
            storing = self._state is not CacheState.DISABLED
            if storing:
                self._pending = []

        logger.info(
            "Refreshing collection",
            extra={"collection": self.name, "operation": "refresh", "store": storing},
        )
        try:
            items = list(self.refresher())
        except BaseException:
            with self._lock:
                self._pending = None
            raise

        with self._lock:
            pending = self._pending or []
            self._pending = None
            self.refresh_count += 1
            if not storing or generation != self._generation:
                # Disabled or invalidated while loading: hand the result out, keep nothing
                return items
            self._items = items
            self._keys = {self.key(item) for item in items} if self.key is not None else set()
            for op, batch in pending:
                if op == "add":
                    self._add_locked(batch, skip_known=True)
                else:
                    self._remove_locked(batch)
            self._apply(CacheEvent.REFRESHED)
            self._on_refreshed()

            logger.info(
                "Refresh complete",
                extra={
                    "collection": self.name,
                    "operation": "refresh",
                    "count": len(self._items),
                    "replayed": len(pending),
                },
            )
            return list(self._items)

    def _on_refreshed(self) -> None:
        """Hook for subclasses; called with the lock held after a stored refresh."""

    # --- LOCAL MIRRORING ---

    def add(self, items: Iterable[T]) -> None:
        """
        Appends items the caller has already created on the server.
        Has no effect while caching is disabled.
        """
        batch = list(items)
        with self._lock:
            if self._state is CacheState.DISABLED:
                return
            if self._pending is not None:
                self._pending.append(("add", batch))
            self._add_locked(batch)
            self._apply(CacheEvent.LOCAL_MUTATION)

    def remove(self, items: Iterable[T]) -> None:
        """
        Removes items the caller has already deleted on the server.
        Every occurrence is removed; matching uses the key function when one is set.
        """
        batch = list(items)
        with self._lock:
            if self._state is CacheState.DISABLED:
                return
            if self._pending is not None:
                self._pending.append(("remove", batch))
            self._remove_locked(batch)
            self._apply(CacheEvent.LOCAL_MUTATION)

    def _add_locked(self, batch: list[T], skip_known: bool = False) -> None:
        if self.key is None:
            # Without a key there is no identity to de-duplicate on
            self._items.extend(batch)
            return
        for item in batch:
            item_key = self.key(item)
            if skip_known and item_key in self._keys:
                continue
            self._keys.add(item_key)
            self._items.append(item)

    def _remove_locked(self, batch: list[T]) -> None:
        if self.key is not None:
            doomed = {self.key(item) for item in batch}
            if doomed & self._keys:
                self._items = [item for item in self._items if self.key(item) not in doomed]
                self._keys -= doomed
        else:
            self._items = [item for item in self._items if item not in batch]


class IncrementalLookupCache(CollectionCache[T]):
    """
    Collection cache with key lookups that fetch only as far as needed.

    find() first scans the snapshot, then keeps pulling pages from where the
    previous lookup stopped, appending each page to the snapshot, until the key
    shows up or the collection runs out. With caching disabled every lookup
    restarts from the first page and nothing is kept.

    Args:
        page_source: Fetches one page for a cursor
        key: Extracts the lookup key from an item
        page_filter: Drops ineligible items from every fetched page
        name: Collection name used in logs and errors
        caching_enabled: Initial caching mode
    """

    def __init__(
        self,
        page_source: PageFetcher[T],
        key: Callable[[T], Hashable],
        page_filter: PageFilter[T] | None = None,
        name: str = "collection",
        caching_enabled: bool = True,
    ) -> None:
        self.page_source = page_source
        self.page_filter = page_filter
        self.iterator: PagingIterator[T] = PagingIterator(page_source, page_filter, name)

        def drain() -> list[T]:
            return PagingIterator(page_source, page_filter, name).collect_all()

        super().__init__(drain, name=name, key=key, caching_enabled=caching_enabled)
        self.lookup_key = key
        # Generation of the snapshot that the iterator position belongs to
        self._scan_generation = self._generation

    def _on_refreshed(self) -> None:
        # The snapshot is complete; incremental scanning is no longer needed
        self.iterator.reset()

    def find(self, key: Any) -> T | None:
        """
        Looks up an item by key.

        Returns:
            The first item whose key matches, or None if the collection has none.

        Raises:
            TransportError, ProtocolError: If a page fetch fails. Pages fetched
                before the failure stay in the snapshot.
        """
        # The incremental iterator belongs to one scan at a time
        with self._refresh_lock:
            with self._lock:
                caching = self._state is not CacheState.DISABLED
                generation = self._generation
                if not caching or generation != self._scan_generation:
                    # Stale position from a discarded snapshot or an earlier uncached scan
                    self.iterator.reset()
                    self._scan_generation = generation
                if caching:
                    if key in self._keys:
                        for item in self._items:
                            if self.lookup_key(item) == key:
                                logger.debug(
                                    "Cache hit",
                                    extra={
                                        "collection": self.name,
                                        "key_hash": redact_key(key),
                                    },
                                )
                                return item
                    if self._state is CacheState.READY:
                        return None

            return self._scan_pages(key, caching, generation)

    def _scan_pages(self, key: Any, caching: bool, generation: int) -> T | None:
        pages = 0
        while self.iterator.has_next:
            batch = self.iterator.next_batch()
            pages += 1

            with self._lock:
                # Skip persisting if the snapshot was discarded mid-scan
                if caching and generation == self._generation:
                    self._add_locked(batch, skip_known=True)
                    if not self.iterator.has_next:
                        # Walked to the end: the snapshot now holds everything
                        self._apply(CacheEvent.REFRESHED)

            for item in batch:
                if self.lookup_key(item) == key:
                    logger.debug(
                        "Found after fetching pages",
                        extra={
                            "collection": self.name,
                            "key_hash": redact_key(key),
                            "pages": pages,
                        },
                    )
                    return item

        logger.info(
            "Key not found in collection",
            extra={"collection": self.name, "key_hash": redact_key(key), "pages": pages},
        )
        return None

    def require(self, key: Any) -> T:
        """
        Like find(), but a missing key is an error.

        Raises:
            NotFoundError: If no item has this key
        """
        item = self.find(key)
        if item is None:
            raise NotFoundError(key, collection=self.name)
        return item

    def contains(self, key: Any) -> bool:
        """Membership test by key."""
        return self.find(key) is not None
