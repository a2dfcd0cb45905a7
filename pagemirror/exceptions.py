import json
from collections.abc import Generator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import httpx
from pydantic import ValidationError

if TYPE_CHECKING:
    from .models import MutationItemResult, MutationOutcome


class PagemirrorError(Exception):
    """Base exception for all pagemirror errors."""

    def __init__(self, message: str, original_error: Exception | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.original_error = original_error


class TransportError(PagemirrorError):
    """Raised when a request could not be delivered (network, DNS, timeout)."""

    def __init__(
        self, message: str = "Transport failure", original_error: Exception | None = None
    ) -> None:
        super().__init__(message, original_error)


class ProtocolError(PagemirrorError):
    """Raised when a response has a non-success status or cannot be parsed."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message, original_error)
        self.status_code = status_code


class NotFoundError(PagemirrorError):
    """Raised by strict lookups when the key is absent from the whole collection."""

    def __init__(self, key: Any, collection: str | None = None) -> None:
        msg = f"Item with key {key!r} not found"
        if collection:
            msg += f" in '{collection}'"
        super().__init__(msg)
        self.key = key
        self.collection = collection


class PartialMutationFailure(PagemirrorError):
    """
    Raised when a batch was delivered but the server rejected some of its items.

    The full outcome is attached so callers can retry only the failed subset.
    Items reported as successful are not rolled back by the server.
    """

    def __init__(self, outcome: "MutationOutcome") -> None:
        failures = outcome.failures
        super().__init__(
            f"{len(failures)} of {len(outcome.results)} mutation(s) rejected: "
            + ", ".join(f"#{r.index} {r.reason or 'unknown'}" for r in failures)
        )
        self.outcome = outcome

    @property
    def failures(self) -> list["MutationItemResult"]:
        return self.outcome.failures


@contextmanager
def handle_http_errors(operation: str | None = None) -> Generator[None, None, None]:
    """
    Context manager that catches httpx and parsing errors
    and raises the appropriate PagemirrorError subclass.

    Args:
        operation: Optional operation name for better error messages

    Usage:
        with handle_http_errors(operation="trackfeed"):
            response = client.post(...)
            response.raise_for_status()
    """
    label = operation or "request"
    try:
        yield
    except httpx.HTTPStatusError as e:
        status = e.response.status_code
        raise ProtocolError(
            f"{label} failed with HTTP {status}", status_code=status, original_error=e
        ) from e
    except httpx.TransportError as e:
        raise TransportError(f"{label} failed: {e!s}", original_error=e) from e
    except json.JSONDecodeError as e:
        raise ProtocolError(f"{label} returned invalid JSON: {e.msg}", original_error=e) from e
    except ValidationError as e:
        raise ProtocolError(
            f"{label} returned an unexpected response shape: {e.error_count()} error(s)",
            original_error=e,
        ) from e
