"""HttpExecutor tests with urllib.request.urlopen patched out."""

import http.client
import io
import json
import threading
import urllib.error
import urllib.request

import pytest

from mvp_api.core.errors import APIError, RequestCancelled, UnauthorizedError
from mvp_api.core.transport import HttpExecutor

URL = "https://mvp.example.test/api/profile"


class FakeResponse:
    def __init__(self, body: bytes):
        self._body = body

    def read(self) -> bytes:
        return self._body

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


def http_error(code: int, body: bytes = b"") -> urllib.error.HTTPError:
    return urllib.error.HTTPError(URL, code, f"HTTP {code}", {}, io.BytesIO(body))


@pytest.fixture
def sent(monkeypatch):
    """Capture requests and reply with the configured outcome."""
    state = {"requests": [], "reply": FakeResponse(b"")}

    def fake_urlopen(req, timeout=None):
        state["requests"].append((req, timeout))
        reply = state["reply"]
        if isinstance(reply, Exception):
            raise reply
        return reply

    monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen)
    return state


class TestExecute:
    """Successful requests."""

    def test_returns_parsed_json(self, sent):
        sent["reply"] = FakeResponse(b'{"FirstName": "Ada"}')
        assert HttpExecutor().execute("GET", URL, {}) == {"FirstName": "Ada"}

    def test_empty_body_returns_none(self, sent):
        assert HttpExecutor().execute("DELETE", URL, {}) is None

    def test_sends_method_headers_body_and_timeout(self, sent):
        HttpExecutor(timeout=5).execute(
            "POST",
            URL,
            {"Authorization": "Bearer t", "Ocp-Apim-Subscription-Key": "k"},
            b'{"a": 1}',
        )
        req, timeout = sent["requests"][0]
        assert req.get_method() == "POST"
        assert req.full_url == URL
        assert req.data == b'{"a": 1}'
        assert timeout == 5
        # urllib normalises header names with str.capitalize()
        assert req.get_header("Authorization") == "Bearer t"
        assert req.get_header("Ocp-apim-subscription-key") == "k"
        assert req.get_header("Content-type") == "application/json"
        assert req.get_header("Accept") == "application/json"

    def test_cancelled_before_send(self, sent):
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(RequestCancelled):
            HttpExecutor().execute("GET", URL, {}, cancel=cancel)
        assert sent["requests"] == []

    def test_unset_cancel_handle_sends(self, sent):
        HttpExecutor().execute("GET", URL, {}, cancel=threading.Event())
        assert len(sent["requests"]) == 1


class TestErrors:
    """Failures are mapped onto client errors."""

    def test_401_raises_unauthorized(self, sent):
        sent["reply"] = http_error(401, json.dumps({"statusCode": 401, "message": "Access denied"}).encode())
        with pytest.raises(UnauthorizedError) as exc_info:
            HttpExecutor().execute("GET", URL, {})
        assert exc_info.value.status == 401
        assert exc_info.value.message == "Access denied"

    def test_401_without_body(self, sent):
        sent["reply"] = http_error(401)
        with pytest.raises(UnauthorizedError):
            HttpExecutor().execute("GET", URL, {})

    @pytest.mark.parametrize(
        "body,message",
        [
            ({"Message": "An error has occurred."}, "An error has occurred."),
            ({"error": "bad_request"}, "bad_request"),
            ({"error": {"message": "nested"}}, "nested"),
        ],
    )
    def test_other_status_raises_api_error(self, sent, body, message):
        sent["reply"] = http_error(500, json.dumps(body).encode())
        with pytest.raises(APIError) as exc_info:
            HttpExecutor().execute("GET", URL, {})
        assert not isinstance(exc_info.value, UnauthorizedError)
        assert exc_info.value.status == 500
        assert exc_info.value.message == message
        assert exc_info.value.details == body

    def test_non_json_error_body(self, sent):
        sent["reply"] = http_error(404, b"<html>Not Found</html>")
        with pytest.raises(APIError) as exc_info:
            HttpExecutor().execute("GET", URL, {})
        assert exc_info.value.status == 404
        assert exc_info.value.details == {}

    def test_connection_error(self, sent):
        sent["reply"] = urllib.error.URLError("Name or service not known")
        with pytest.raises(APIError, match="Connection error") as exc_info:
            HttpExecutor().execute("GET", URL, {})
        assert exc_info.value.status == 0

    def test_timeout(self, sent):
        sent["reply"] = TimeoutError()
        with pytest.raises(APIError, match="timed out after 7 seconds"):
            HttpExecutor(timeout=7).execute("GET", URL, {})

    @pytest.mark.parametrize(
        "error",
        [http.client.RemoteDisconnected("closed"), ConnectionResetError("reset by peer")],
    )
    def test_dropped_connection(self, sent, error):
        sent["reply"] = error
        with pytest.raises(APIError, match="Connection error") as exc_info:
            HttpExecutor().execute("GET", URL, {})
        assert exc_info.value.status == 0

    def test_non_utf8_response(self, sent):
        sent["reply"] = FakeResponse(b"\xff\xfe")
        with pytest.raises(APIError, match="Invalid JSON response") as exc_info:
            HttpExecutor().execute("GET", URL, {})
        assert exc_info.value.status == 0

    def test_invalid_json_response(self, sent):
        sent["reply"] = FakeResponse(b"not json")
        with pytest.raises(APIError, match="Invalid JSON response"):
            HttpExecutor().execute("GET", URL, {})
