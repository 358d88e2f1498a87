"""
PlaceShare Backend — Response Mapper Unit Tests
=================================================

What:  Tests that every ErrorKind maps to its own status and payload.
"""

import json

import pytest

from placeshare.exceptions import (
    ErrorKind,
    ForbiddenError,
    GeocodeError,
    NotFoundError,
    PlaceShareError,
    StoreUnavailableError,
    TransactionAbortedError,
    UnauthorizedError,
    ValidationError,
)
from placeshare.responses import STATUS_BY_KIND, error_payload, to_error_response


class TestStatusMapping:

    def test_every_kind_has_a_distinct_status(self):
        assert set(STATUS_BY_KIND) == set(ErrorKind)
        assert len(set(STATUS_BY_KIND.values())) == len(ErrorKind)

    @pytest.mark.parametrize(
        "error, status",
        [
            (ValidationError(), 422),
            (UnauthorizedError(), 401),
            (ForbiddenError(), 403),
            (NotFoundError(resource="place", resource_id="p1"), 404),
            (TransactionAbortedError(), 409),
            (GeocodeError(), 502),
            (StoreUnavailableError(), 503),
        ],
    )
    def test_status_for_each_error(self, error, status):
        assert to_error_response(error).status_code == status

    def test_retryable_kinds(self):
        retryable = {kind for kind in ErrorKind if kind.retryable}
        assert retryable == {
            ErrorKind.GEOCODE_FAILED,
            ErrorKind.STORE_UNAVAILABLE,
            ErrorKind.TRANSACTION_ABORTED,
        }


class TestPayload:

    def test_validation_payload_includes_details(self):
        error = ValidationError(field="description", context={"min_length": 5})

        payload = error_payload(error, request_id="abc123")

        assert payload["error"] == "validation_failed"
        assert payload["retryable"] is False
        assert payload["details"] == {"min_length": 5, "field": "description"}
        assert payload["request_id"] == "abc123"

    def test_server_side_context_is_not_exposed(self):
        error = StoreUnavailableError(context={"operation": "get_place", "error_type": "OperationalError"})

        payload = error_payload(error)

        assert "details" not in payload
        assert payload["retryable"] is True
        assert payload["request_id"] is None

    def test_unauthorized_sets_www_authenticate(self):
        response = to_error_response(UnauthorizedError())

        assert response.headers["www-authenticate"] == "Bearer"

    def test_store_unavailable_sets_retry_after(self):
        response = to_error_response(StoreUnavailableError(retry_after=7))

        assert response.headers["retry-after"] == "7"

    def test_body_is_json(self):
        response = to_error_response(PlaceShareError(ErrorKind.NOT_FOUND, message="gone"), "rid")

        assert json.loads(response.body) == {
            "error": "not_found",
            "message": "gone",
            "retryable": False,
            "request_id": "rid",
        }
