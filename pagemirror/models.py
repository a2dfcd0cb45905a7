"""
Data model for ordered lists and batch mutations.

Records are plain pydantic models; converting them to the wire format is the
job of MutationSerializer.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .exceptions import PartialMutationFailure


class MutationKind(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class OrderedEntry(BaseModel):
    """
    One link of a server-held ordered list.

    Soft-deleted entries keep their links until the server compacts them but
    are skipped when the list order is materialized.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str
    preceding_id: str | None = Field(default=None, alias="precedingEntryId")
    following_id: str | None = Field(default=None, alias="followingEntryId")
    client_id: str | None = Field(default=None, alias="clientId")
    deleted: bool = False


class MutationRecord(BaseModel):
    """
    A single create, update or delete against one collection.

    For creates, target_id is the client-generated id of the new entry and the
    link fields splice it into the list.
    """

    model_config = ConfigDict(frozen=True)

    kind: MutationKind
    target_id: str
    payload: dict[str, Any] = Field(default_factory=dict)
    preceding_id: str | None = None
    following_id: str | None = None

    @classmethod
    def create(
        cls,
        target_id: str,
        payload: dict[str, Any] | None = None,
        preceding_id: str | None = None,
        following_id: str | None = None,
    ) -> "MutationRecord":
        return cls(
            kind=MutationKind.CREATE,
            target_id=target_id,
            payload=payload or {},
            preceding_id=preceding_id,
            following_id=following_id,
        )

    @classmethod
    def update(cls, target_id: str, payload: dict[str, Any]) -> "MutationRecord":
        return cls(kind=MutationKind.UPDATE, target_id=target_id, payload=payload)

    @classmethod
    def delete(cls, target_id: str) -> "MutationRecord":
        return cls(kind=MutationKind.DELETE, target_id=target_id)


class MutationBatch(BaseModel):
    """
    Ordered records submitted together as one request.

    Attributes:
        records: The mutations, in submission order
        continuation_id: Id already referenced as following_id by the last
            record when the run was planned with an open tail
    """

    records: list[MutationRecord] = Field(default_factory=list)
    continuation_id: str | None = None

    def __len__(self) -> int:
        return len(self.records)

    @property
    def target_ids(self) -> list[str]:
        return [r.target_id for r in self.records]


class MutationItemResult(BaseModel):
    """Server verdict for one submitted record."""

    index: int
    target_id: str
    server_id: str | None = None
    success: bool
    reason: str | None = None


class MutationOutcome(BaseModel):
    """Per-item results of one batch, in submission order."""

    results: list[MutationItemResult] = Field(default_factory=list)

    @property
    def overall_success(self) -> bool:
        """True only if every submitted item succeeded."""
        return all(r.success for r in self.results)

    @property
    def failures(self) -> list[MutationItemResult]:
        return [r for r in self.results if not r.success]

    @property
    def succeeded(self) -> list[MutationItemResult]:
        return [r for r in self.results if r.success]

    def result_for(self, target_id: str) -> MutationItemResult | None:
        for result in self.results:
            if result.target_id == target_id:
                return result
        return None

    def raise_for_failures(self) -> "MutationOutcome":
        """
        Raises PartialMutationFailure if any item was rejected.

        Returns:
            self, to allow chaining
        """
        if not self.overall_success:
            raise PartialMutationFailure(self)
        return self
