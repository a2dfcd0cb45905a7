"""
Planning of ordered-list insertions.

The server keeps list order as predecessor/successor links between entries.
A run of new entries is spliced in by giving every new entry a client-generated
id and linking each one to its neighbours, so the whole run travels as one
batch without re-sending the existing list.
"""

from collections.abc import Callable, Iterable, Sequence
from typing import Any
from uuid import UUID

from ._logging import logger, redact_key
from .ids import id_sort_key, time_ordered_id
from .models import MutationBatch, MutationRecord, OrderedEntry


class OrderedInsertionPlanner:
    """
    Builds create records for a contiguous run of new list entries.

    Ids come from id_factory (time-ordered UUIDs by default), so the new ids sort
    in insertion order even without looking at the links. The planner never
    talks to the server. Ids of a batch that the server rejects are simply
    dropped; the factory never hands them out again.
    """

    def __init__(self, id_factory: Callable[[], UUID | str] = time_ordered_id) -> None:
        self.id_factory = id_factory

    def _new_id(self) -> str:
        return str(self.id_factory())

    def plan_insert(
        self,
        after_id: str | None,
        before_id: str | None,
        payloads: Iterable[dict[str, Any]],
        open_tail: bool = False,
    ) -> MutationBatch:
        """
        Plans the insertion of payloads between two existing entries.

        Args:
            after_id: Entry the run follows (None to insert at the head)
            before_id: Entry the run precedes (None to insert at the tail)
            payloads: Entry bodies, in the order they should appear
            open_tail: Only with before_id=None. Pre-generates the id of a future
                entry and links the last record to it, so a later append can
                continue the chain. The id is returned as continuation_id.

        Returns:
            One create record per payload, in list order.

        Raises:
            ValueError: If open_tail is combined with before_id
        """
        if open_tail and before_id is not None:
            raise ValueError("open_tail only applies when inserting at the tail")

        bodies = list(payloads)
        if not bodies:
            return MutationBatch()

        ids = [self._new_id() for _ in bodies]
        if open_tail:
            tail_link: str | None = self._new_id()
        else:
            tail_link = before_id

        records = []
        for i, body in enumerate(bodies):
            preceding = after_id if i == 0 else ids[i - 1]
            following = ids[i + 1] if i + 1 < len(ids) else tail_link
            records.append(
                MutationRecord.create(
                    target_id=ids[i],
                    payload=body,
                    preceding_id=preceding,
                    following_id=following,
                )
            )

        logger.debug(
            "Planned insertion",
            extra={
                "operation": "plan_insert",
                "count": len(records),
                "after_hash": redact_key(after_id),
                "before_hash": redact_key(before_id),
                "open_tail": open_tail,
            },
        )
        return MutationBatch(records=records, continuation_id=tail_link if open_tail else None)

    def plan_append(
        self,
        tail_id: str | None,
        payloads: Iterable[dict[str, Any]],
        open_tail: bool = False,
    ) -> MutationBatch:
        """
        Plans appending payloads after the current tail of a list.

        Args:
            tail_id: Id of the current last entry (None for an empty list)
            payloads: Entry bodies, in the order they should appear
            open_tail: See plan_insert()
        """
        return self.plan_insert(tail_id, None, payloads, open_tail=open_tail)


def _fallback_key(entry: OrderedEntry) -> tuple[int, int, str]:
    for candidate in (entry.client_id, entry.id):
        if candidate:
            try:
                return (0, id_sort_key(candidate), entry.id)
            except ValueError:
                continue
    # Not a time-based id: keep these after the time-ordered ones
    return (1, 0, entry.id)


def materialize_order(entries: Sequence[OrderedEntry]) -> list[OrderedEntry]:
    """
    Returns the live entries of one list in chain order.

    The chain is followed from the head (the entry whose predecessor is unknown)
    through following_id links, falling back to preceding_id links when an entry
    carries no successor. Soft-deleted entries still relay the walk but are not
    returned. Entries the walk never reaches are appended sorted by their
    time-ordered id; that fallback is a best guess, and it is logged.
    """
    if not entries:
        return []

    by_id: dict[str, OrderedEntry] = {}
    for entry in entries:
        by_id[entry.id] = entry
        if entry.client_id:
            by_id.setdefault(entry.client_id, entry)

    successors: dict[str, OrderedEntry] = {}
    for entry in entries:
        if entry.preceding_id and entry.preceding_id in by_id:
            successors.setdefault(by_id[entry.preceding_id].id, entry)

    heads = [e for e in entries if not e.preceding_id or e.preceding_id not in by_id]
    heads.sort(key=_fallback_key)

    ordered: list[OrderedEntry] = []
    visited: set[str] = set()
    for head in heads:
        current: OrderedEntry | None = head
        while current is not None and current.id not in visited:
            visited.add(current.id)
            ordered.append(current)
            nxt = by_id.get(current.following_id) if current.following_id else None
            if nxt is None or nxt.id in visited:
                nxt = successors.get(current.id)
            current = nxt

    stray = [e for e in entries if e.id not in visited]
    if stray:
        logger.warning(
            "Entries not reachable through links, ordered by id time",
            extra={"operation": "materialize_order", "count": len(stray)},
        )
        ordered.extend(sorted(stray, key=_fallback_key))

    return [e for e in ordered if not e.deleted]
