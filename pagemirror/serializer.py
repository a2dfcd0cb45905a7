from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .exceptions import ProtocolError
from .models import MutationBatch, MutationItemResult, MutationKind, MutationOutcome, MutationRecord

SUCCESS_CODE = "OK"


class _WireResult(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str | None = None
    client_id: str | None = None
    response_code: str = Field(default="UNKNOWN")


class _WireResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    mutate_response: list[_WireResult]


class MutationSerializer:
    """
    Converts mutation batches to the batch endpoint's JSON and parses its replies.

    Request:  {"mutations": [{"create": {...}}, {"update": {...}}, {"delete": "<id>"}]}
    Response: {"mutate_response": [{"id": "...", "client_id": "...", "response_code": "OK"}]}

    The response lists one result per submitted mutation, in submission order.
    """

    def to_wire(self, batch: MutationBatch) -> dict[str, Any]:
        return {"mutations": [self.record_to_wire(r) for r in batch.records]}

    def record_to_wire(self, record: MutationRecord) -> dict[str, Any]:
        if record.kind is MutationKind.DELETE:
            return {"delete": record.target_id}

        if record.kind is MutationKind.UPDATE:
            return {"update": {**record.payload, "id": record.target_id}}

        body = dict(record.payload)
        body["clientId"] = record.target_id
        # Absent links are omitted rather than sent as null
        if record.preceding_id is not None:
            body["precedingEntryId"] = record.preceding_id
        if record.following_id is not None:
            body["followingEntryId"] = record.following_id
        return {"create": body}

    def parse_outcome(self, body: Any, batch: MutationBatch) -> MutationOutcome:
        """
        Maps a decoded response body back onto the submitted records.

        Raises:
            ProtocolError: If the body has the wrong shape or a different number of results
        """
        try:
            response = _WireResponse.model_validate(body)
        except ValidationError as e:
            raise ProtocolError(
                f"Malformed mutation response: {e.error_count()} error(s)", original_error=e
            ) from e

        if len(response.mutate_response) != len(batch.records):
            raise ProtocolError(
                f"Mutation response has {len(response.mutate_response)} result(s) "
                f"for {len(batch.records)} submitted mutation(s)"
            )

        results = []
        for index, (record, wire) in enumerate(zip(batch.records, response.mutate_response)):
            success = wire.response_code == SUCCESS_CODE
            results.append(
                MutationItemResult(
                    index=index,
                    target_id=record.target_id,
                    server_id=wire.id,
                    success=success,
                    reason=None if success else wire.response_code,
                )
            )
        return MutationOutcome(results=results)
