import json

import httpx

from tubecache.errors.classify import (
    USER_MESSAGES,
    classify_http_error,
    is_transient,
    user_message,
)
from tubecache.errors.exceptions import TransportError
from tubecache.types import ErrorCategory

REQUEST = httpx.Request("GET", "https://api.test/v3/videos")


def status_error(code: int) -> httpx.HTTPStatusError:
    response = httpx.Response(code, request=REQUEST)
    return httpx.HTTPStatusError(f"HTTP {code}", request=REQUEST, response=response)


class TestClassify:
    def test_client_error_is_rejected(self):
        err = classify_http_error(status_error(403))
        assert err.category is ErrorCategory.REMOTE_REJECTED
        assert err.http_status == 403
        assert err.reached_remote

    def test_server_error_is_unavailable(self):
        err = classify_http_error(status_error(503))
        assert err.category is ErrorCategory.REMOTE_UNAVAILABLE
        assert err.reached_remote

    def test_timeout(self):
        err = classify_http_error(httpx.ConnectTimeout("slow", request=REQUEST))
        assert err.category is ErrorCategory.TIMEOUT
        assert not err.reached_remote

    def test_connect_error(self):
        err = classify_http_error(httpx.ConnectError("refused", request=REQUEST))
        assert err.category is ErrorCategory.NO_CONNECTIVITY
        assert not err.reached_remote

    def test_protocol_error(self):
        err = classify_http_error(httpx.RemoteProtocolError("closed", request=REQUEST))
        assert err.category is ErrorCategory.REMOTE_UNAVAILABLE

    def test_decode_error(self):
        try:
            json.loads("{nope")
        except json.JSONDecodeError as e:
            err = classify_http_error(e)
        assert err.category is ErrorCategory.MALFORMED_RESPONSE
        assert err.reached_remote

    def test_transport_error_passes_through(self):
        original = TransportError("x", category=ErrorCategory.TIMEOUT)
        assert classify_http_error(original) is original

    def test_original_is_kept(self):
        exc = status_error(500)
        assert classify_http_error(exc).original is exc


class TestIsTransient:
    def test_server_errors_retry(self):
        assert is_transient(status_error(502))

    def test_client_errors_do_not_retry(self):
        assert not is_transient(status_error(400))
        assert not is_transient(status_error(403))

    def test_network_errors_retry(self):
        assert is_transient(httpx.ReadTimeout("slow", request=REQUEST))
        assert is_transient(httpx.ConnectError("refused", request=REQUEST))

    def test_other_errors_do_not_retry(self):
        assert not is_transient(ValueError("bad json"))


class TestUserMessage:
    def test_every_category_has_a_message(self):
        for category in ErrorCategory:
            assert category in USER_MESSAGES
            assert user_message(category)
