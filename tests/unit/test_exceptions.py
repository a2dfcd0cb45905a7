"""
Unit tests for custom exception handling in pagemirror.

These tests verify that the exception hierarchy works correctly and that
the handle_http_errors context manager properly translates httpx, JSON and
pydantic errors into PagemirrorError subclasses.
"""

import json

import httpx
import pytest
from pydantic import BaseModel

from pagemirror.exceptions import (
    NotFoundError,
    PagemirrorError,
    PartialMutationFailure,
    ProtocolError,
    TransportError,
    handle_http_errors,
)
from pagemirror.models import MutationItemResult, MutationOutcome


class TestExceptionHierarchy:
    """Test the exception class hierarchy and instantiation."""

    def test_base_class(self):
        error = PagemirrorError("Test message")
        assert isinstance(error, Exception)
        assert error.message == "Test message"
        assert error.original_error is None

    def test_original_error_is_kept(self):
        original = ValueError("Original error")
        error = PagemirrorError("Wrapped message", original_error=original)
        assert error.original_error is original

    def test_transport_error_default_message(self):
        error = TransportError()
        assert isinstance(error, PagemirrorError)
        assert str(error) == "Transport failure"

    def test_protocol_error_status(self):
        error = ProtocolError("Bad gateway", status_code=502)
        assert isinstance(error, PagemirrorError)
        assert error.status_code == 502

    def test_not_found_error(self):
        error = NotFoundError("t-42", collection="tracks")
        assert isinstance(error, PagemirrorError)
        assert error.key == "t-42"
        assert "t-42" in str(error)
        assert "tracks" in str(error)

    def test_partial_mutation_failure_lists_rejections(self):
        outcome = MutationOutcome(
            results=[
                MutationItemResult(index=0, target_id="a", success=True),
                MutationItemResult(index=1, target_id="b", success=False, reason="NOT_FOUND"),
                MutationItemResult(index=2, target_id="c", success=False),
            ]
        )

        error = PartialMutationFailure(outcome)

        assert isinstance(error, PagemirrorError)
        assert error.outcome is outcome
        assert [f.target_id for f in error.failures] == ["b", "c"]
        assert str(error) == "2 of 3 mutation(s) rejected: #1 NOT_FOUND, #2 unknown"

    def test_outcome_raise_for_failures_returns_self_on_success(self):
        outcome = MutationOutcome(results=[MutationItemResult(index=0, target_id="a", success=True)])

        assert outcome.raise_for_failures() is outcome


class TestHandleHttpErrors:
    """Test the handle_http_errors context manager."""

    @pytest.fixture
    def request_(self):
        return httpx.Request("POST", "https://music.test/sj/v2.5/trackfeed")

    def test_successful_operation(self):
        with handle_http_errors():
            result = 42
        assert result == 42

    def test_status_error(self, request_):
        response = httpx.Response(503, request=request_)
        mock_error = httpx.HTTPStatusError("unavailable", request=request_, response=response)

        with pytest.raises(ProtocolError) as exc_info:
            with handle_http_errors(operation="trackfeed"):
                raise mock_error

        error = exc_info.value
        assert error.status_code == 503
        assert error.original_error is mock_error
        assert "trackfeed" in str(error)

    @pytest.mark.parametrize(
        "error_type", [httpx.ConnectError, httpx.ReadTimeout, httpx.RemoteProtocolError]
    )
    def test_transport_errors(self, request_, error_type):
        mock_error = error_type("failed", request=request_)

        with pytest.raises(TransportError) as exc_info:
            with handle_http_errors():
                raise mock_error

        assert exc_info.value.original_error is mock_error

    def test_invalid_json(self):
        with pytest.raises(ProtocolError, match="invalid JSON") as exc_info:
            with handle_http_errors(operation="plentryfeed"):
                json.loads("{not json")

        assert exc_info.value.status_code is None

    def test_validation_error(self):
        class Shape(BaseModel):
            id: str

        with pytest.raises(ProtocolError, match="unexpected response shape"):
            with handle_http_errors():
                Shape.model_validate({})

    def test_other_errors_pass_through(self):
        with pytest.raises(KeyError):
            with handle_http_errors():
                raise KeyError("unrelated")
