"""
Batch submission of collection mutations.

Architectural Note:
-------------------
The batch endpoints report a verdict per item, and it is not known whether the
service applies a batch all-or-nothing. This client therefore assumes per-item,
best-effort application: records reported as successful were applied even if
others in the same batch were rejected. It never touches caches; updating them
after a successful submit is the caller's job.
"""

import httpx

from ._logging import logger
from .config import ClientOptions
from .exceptions import handle_http_errors
from .models import MutationBatch, MutationOutcome
from .serializer import MutationSerializer


class BatchMutationClient:
    """
    Submits a MutationBatch to one collection's batch endpoint.

    Args:
        client: An httpx.Client carrying authentication (injected, never created here)
        batch_path: Endpoint path relative to options.base_url (e.g. "plentriesbatch")
        options: Connection settings
    """

    def __init__(
        self,
        client: httpx.Client,
        batch_path: str,
        options: ClientOptions | None = None,
        serializer: MutationSerializer | None = None,
    ) -> None:
        self.client = client
        self.batch_path = batch_path
        self.options = options or ClientOptions()
        self.serializer = serializer or MutationSerializer()

    def submit(self, batch: MutationBatch, raise_on_failure: bool = False) -> MutationOutcome:
        """
        Sends all records of the batch in one request.

        Args:
            batch: Records to submit, in order
            raise_on_failure: Raise PartialMutationFailure instead of returning
                an outcome with rejected items

        Returns:
            Per-item results; check overall_success before trusting the batch.

        Raises:
            TransportError: If the request could not be delivered
            ProtocolError: On a non-success HTTP status or an unparseable response
            PartialMutationFailure: If raise_on_failure is set and an item was rejected
        """
        if not batch.records:
            return MutationOutcome()

        url = self.options.url_for(self.batch_path)
        logger.info(
            "Submitting mutation batch",
            extra={"endpoint": self.batch_path, "operation": "submit", "count": len(batch)},
        )

        with handle_http_errors(operation=self.batch_path):
            response = self.client.post(
                url, json=self.serializer.to_wire(batch), timeout=self.options.timeout
            )
            response.raise_for_status()
            body = response.json()

        outcome = self.serializer.parse_outcome(body, batch)

        if outcome.overall_success:
            logger.info(
                "Mutation batch applied",
                extra={"endpoint": self.batch_path, "operation": "submit", "count": len(batch)},
            )
        else:
            logger.warning(
                "Mutation batch partially rejected",
                extra={
                    "endpoint": self.batch_path,
                    "operation": "submit",
                    "count": len(batch),
                    "failed": len(outcome.failures),
                    "reasons": sorted({r.reason or "unknown" for r in outcome.failures}),
                },
            )
            if raise_on_failure:
                outcome.raise_for_failures()

        return outcome
