"""
HTTP transport for the MVP API.

Sends exactly one request per call and maps failures onto the client's error types.
"""

import http.client
import json
import logging
import threading
import urllib.error
import urllib.request
from typing import Any

from mvp_api.core.errors import APIError, RequestCancelled, UnauthorizedError

DEFAULT_TIMEOUT = 60

logger = logging.getLogger(__name__)


def _error_message(error_data: Any, fallback: str) -> str:
    """Pull a human readable message out of an API error body."""
    if not isinstance(error_data, dict):
        return fallback
    # API gateway uses {"message": ...}, the MVP service {"Message": ...}
    for key in ("message", "Message", "error_description"):
        if isinstance(error_data.get(key), str):
            return error_data[key]
    error_field = error_data.get("error")
    if isinstance(error_field, str):
        return error_field
    if isinstance(error_field, dict):
        return error_field.get("message", fallback)
    return fallback


class HttpExecutor:
    """Executes single JSON requests with urllib."""

    def __init__(self, timeout: int = DEFAULT_TIMEOUT):
        self.timeout = timeout

    def execute(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        body: bytes | None = None,
        cancel: threading.Event | None = None,
    ) -> Any:
        """
        Make an HTTP request.

        Args:
            method: HTTP method (GET, POST, PUT, DELETE)
            url: Absolute request URL
            headers: Per-call headers (auth, subscription key)
            body: Encoded JSON body for POST/PUT
            cancel: Cancellation handle, checked before the request is sent

        Returns:
            Parsed JSON response, or None for an empty response body

        Raises:
            UnauthorizedError: On HTTP 401
            RequestCancelled: If cancel is set
            APIError: On any other HTTP, connection or parsing error

        """
        if cancel is not None and cancel.is_set():
            raise RequestCancelled()

        request_headers = {
            **headers,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        logger.debug("%s %s", method, url)

        try:
            req = urllib.request.Request(url, data=body, headers=request_headers, method=method)
            with urllib.request.urlopen(req, timeout=self.timeout) as response:
                response_data = response.read().decode("utf-8")
                if response_data:
                    return json.loads(response_data)
                return None

        except urllib.error.HTTPError as e:
            error_data: Any = None
            try:
                error_body = e.read().decode("utf-8")
                error_data = json.loads(error_body) if error_body else None
            except (json.JSONDecodeError, UnicodeDecodeError):
                error_data = None

            message = _error_message(error_data, str(e))
            details = error_data if isinstance(error_data, dict) else None
            if e.code == 401:
                raise UnauthorizedError(message, details=details)
            raise APIError(message, status=e.code, details=details)

        except urllib.error.URLError as e:
            raise APIError(f"Connection error: {e.reason}")

        except TimeoutError:
            raise APIError(f"Request timed out after {self.timeout} seconds")

        except (http.client.HTTPException, OSError) as e:
            raise APIError(f"Connection error: {e}")

        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise APIError(f"Invalid JSON response: {e}")
