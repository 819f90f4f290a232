"""Tests for the exception hierarchy."""

import pytest

from erp_sync_core.exceptions import (
    AuthNotConfiguredError,
    BaseError,
    ClientRequestError,
    ErrorCode,
    MalformedResponseError,
    PersistenceError,
    RateLimitedError,
    RepositoryError,
    ServerError,
    TransportError,
    UnreachableError,
    ValidationError,
    clear_correlation_id,
    get_correlation_id,
    set_correlation_id,
)


class TestBaseError:
    """BaseError context, serialization and chaining."""

    def test_to_dict_exposes_code_message_and_context(self):
        error = BaseError("Something broke", ErrorCode.INTERNAL_ERROR, 500, operation="poll")

        body = error.to_dict()

        assert body["error"]["code"] == "1000"
        assert body["error"]["message"] == "Something broke"
        assert body["error"]["context"] == {"operation": "poll"}
        assert body["error"]["id"] == error.error_id

    def test_correlation_id_is_picked_up(self):
        set_correlation_id("run-42")
        try:
            error = ValidationError("bad input", field="start")
        finally:
            clear_correlation_id()

        body = error.to_dict()
        assert body["error"]["correlation_id"] == "run-42"
        assert body["error"]["context"]["field"] == "start"

    def test_cause_only_included_on_request(self):
        cause = KeyError("missing")
        error = RepositoryError("lookup failed", cause=cause)

        assert "cause" not in error.to_dict()["error"]
        assert error.to_dict(include_cause=True)["error"]["cause"]["type"] == "KeyError"

    def test_error_chain(self):
        inner = ServerError(503)
        outer = PersistenceError("wrapped", cause=inner)

        assert outer.error_chain == [outer, inner]

    def test_correlation_helpers(self):
        assert get_correlation_id() is None
        set_correlation_id("abc")
        assert get_correlation_id() == "abc"
        clear_correlation_id()
        assert get_correlation_id() is None


class TestTransportErrors:
    """The retryable flag is decided by the error type."""

    @pytest.mark.parametrize(
        "error, retryable",
        [
            (RateLimitedError(), True),
            (UnreachableError(), True),
            (ServerError(502), True),
            (ClientRequestError(404), False),
            (TransportError("could not build request"), False),
        ],
    )
    def test_retryable_classification(self, error, retryable):
        assert error.retryable is retryable
        assert error.context["retryable"] is retryable

    def test_rate_limited_can_be_made_terminal(self):
        error = RateLimitedError("budget spent", retryable=False, http_status=None)

        assert error.retryable is False
        assert error.http_status is None
        assert error.error_code == ErrorCode.RATE_LIMITED

    def test_status_carried_on_http_errors(self):
        assert ServerError(503).http_status == 503
        assert ClientRequestError(422).status == 422
        assert RateLimitedError().http_status == 429

    def test_malformed_response_names_service(self):
        error = MalformedResponseError()
        assert error.context["service_name"] == "erp_api"
        assert error.error_code == ErrorCode.MALFORMED_RESPONSE


class TestAuthErrors:
    def test_auth_not_configured_is_401(self):
        error = AuthNotConfiguredError(integration="bling")
        assert error.status_code == 401
        assert error.context["integration"] == "bling"
