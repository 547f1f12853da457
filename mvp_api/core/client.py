"""
Core HTTP client for the MVP API.

Handles authentication headers, JSON bodies, and a single refresh-and-retry
when the API rejects the access token.
"""

import json
import logging
import os
import threading
from collections.abc import Callable
from datetime import datetime
from typing import Any, TypeVar

from mvp_api.core.auth import OAuthTokenRefresher, TokenRefresher
from mvp_api.core.errors import APIError, UnauthorizedError
from mvp_api.core.transport import DEFAULT_TIMEOUT, HttpExecutor
from mvp_api.core.types import ClientIdentity, Credentials

# Configuration
DEFAULT_BASE_URL = "https://mvpapi.azure-api.net/mvp/api"
SUBSCRIPTION_KEY_HEADER = "Ocp-Apim-Subscription-Key"

T = TypeVar("T")

logger = logging.getLogger(__name__)

# Returned by _send_with_refresh when a 401 could not be recovered
_UNAUTHORIZED = object()


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in ("1", "true", "yes", "on")


def _json_default(value: Any) -> Any:
    """Encode model objects and datetimes in request bodies."""
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class ApiClient:
    """
    Low-level HTTP client for the MVP API.

    Handles:
    - Bearer token and subscription key headers
    - HTTP methods (GET, POST, PUT, DELETE)
    - One token refresh and retry when a call returns 401 Unauthorized

    A 401 that cannot be recovered is not raised: get/post return their
    default and put/delete return False. Every other error propagates.
    """

    def __init__(
        self,
        client_id: str | None = None,
        client_secret: str | None = None,
        subscription_key: str | None = None,
        is_legacy_app: bool | None = None,
        credentials: Credentials | None = None,
        base_url: str | None = None,
        timeout: int = DEFAULT_TIMEOUT,
        executor: HttpExecutor | None = None,
        refresher: TokenRefresher | None = None,
    ):
        """
        Initialize the API client.

        Args:
            client_id: Microsoft application client ID (or MVP_CLIENT_ID env var)
            client_secret: Microsoft application client secret (or MVP_CLIENT_SECRET env var)
            subscription_key: MVP API subscription key (or MVP_SUBSCRIPTION_KEY env var)
            is_legacy_app: True for Live SDK apps (or MVP_LEGACY_APP env var)
            credentials: Tokens for the signed-in account (or MVP_ACCESS_TOKEN /
                MVP_REFRESH_TOKEN env vars)
            base_url: API base URL (or MVP_BASE_URL env var)
            timeout: Request timeout in seconds
            executor: Request executor (defaults to HttpExecutor)
            refresher: Token refresher (defaults to OAuthTokenRefresher)

        """
        self.identity = ClientIdentity(
            client_id=client_id or os.environ.get("MVP_CLIENT_ID"),
            client_secret=client_secret or os.environ.get("MVP_CLIENT_SECRET"),
            subscription_key=subscription_key or os.environ.get("MVP_SUBSCRIPTION_KEY"),
            is_legacy_app=_env_flag("MVP_LEGACY_APP") if is_legacy_app is None else is_legacy_app,
        )
        self.base_url = (base_url or os.environ.get("MVP_BASE_URL", DEFAULT_BASE_URL)).rstrip("/")
        self.credentials = credentials or self._credentials_from_env()
        self.executor = executor or HttpExecutor(timeout=timeout)
        self.refresher = refresher or OAuthTokenRefresher(timeout=timeout)
        self._refresh_lock = threading.Lock()

    @staticmethod
    def _credentials_from_env() -> Credentials | None:
        access_token = os.environ.get("MVP_ACCESS_TOKEN")
        refresh_token = os.environ.get("MVP_REFRESH_TOKEN")
        if not access_token and not refresh_token:
            return None
        return Credentials(access_token=access_token or "", refresh_token=refresh_token or "")

    def _ensure_subscription_key(self) -> str:
        """Ensure subscription key is configured."""
        if not self.identity.subscription_key:
            raise APIError("MVP_SUBSCRIPTION_KEY environment variable not set")
        return self.identity.subscription_key

    def _build_url(self, endpoint: str, override_uri: str | None = None) -> str:
        """Build full URL. A non-blank override replaces base URL and endpoint."""
        if override_uri and override_uri.strip():
            return override_uri
        return f"{self.base_url}/{endpoint}"

    def request_headers(self, use_credentials: bool = True) -> dict[str, str]:
        """
        Build the per-call headers from the current credentials.

        Args:
            use_credentials: False for public endpoints (no headers at all)

        Returns:
            Fresh headers dict with the subscription key, plus a bearer
            Authorization entry when an access token is present

        """
        return self._headers(use_credentials, self.credentials)

    def _headers(self, use_credentials: bool, credentials: Credentials | None) -> dict[str, str]:
        if not use_credentials:
            return {}

        headers = {SUBSCRIPTION_KEY_HEADER: self._ensure_subscription_key()}
        if credentials is not None and credentials.has_access_token:
            headers["Authorization"] = f"Bearer {credentials.access_token}"
        return headers

    @staticmethod
    def _encode_body(data: Any) -> bytes:
        return json.dumps(data, default=_json_default).encode("utf-8")

    # =========================================================================
    # Token refresh
    # =========================================================================

    def refresh_credentials(self) -> Credentials | None:
        """
        Exchange the refresh token for new credentials now.

        Returns:
            The new Credentials (also stored on the client), or None on failure

        """
        with self._refresh_lock:
            return self._exchange(self.credentials)

    def _refresh_after_unauthorized(self, stale: Credentials | None) -> Credentials | None:
        """Refresh once for a 401 caused by the given credentials."""
        with self._refresh_lock:
            current = self.credentials
            if current is not None and current is not stale:
                # Another call already replaced the rejected credentials
                logger.info("Credentials already refreshed by a concurrent call")
                return current
            return self._exchange(current)

    def _exchange(self, credentials: Credentials | None) -> Credentials | None:
        refreshed = self.refresher.exchange_refresh_token(credentials, self.identity)
        if refreshed is None:
            logger.warning("Token refresh failed")
            return None
        self.credentials = refreshed
        logger.info("Access token refreshed")
        return refreshed

    # =========================================================================
    # Request execution
    # =========================================================================

    def _send_with_refresh(
        self,
        method: str,
        endpoint: str,
        data: Any = None,
        has_body: bool = False,
        use_credentials: bool = True,
        override_uri: str | None = None,
        cancel: threading.Event | None = None,
    ) -> Any:
        """
        Send a request, refreshing the token and retrying once on 401.

        Returns:
            The decoded response, or _UNAUTHORIZED when the 401 could not be
            recovered by a token refresh

        Raises:
            APIError: Any non-401 failure, including one from the retry

        """
        url = self._build_url(endpoint, override_uri)
        body = self._encode_body(data) if has_body else None

        # Headers and the stale check must see the same credentials
        used = self.credentials
        try:
            return self.executor.execute(method, url, self._headers(use_credentials, used), body, cancel)
        except UnauthorizedError:
            logger.info("%s %s returned 401, refreshing access token", method, url)

        refreshed = self._refresh_after_unauthorized(used)
        if refreshed is None:
            return _UNAUTHORIZED

        try:
            return self.executor.execute(method, url, self._headers(use_credentials, refreshed), body, cancel)
        except UnauthorizedError:
            logger.warning("%s %s still unauthorized after token refresh", method, url)
            raise

    # =========================================================================
    # HTTP Methods
    # =========================================================================

    def get(
        self,
        endpoint: str,
        use_credentials: bool = True,
        override_uri: str | None = None,
        cancel: threading.Event | None = None,
        parser: Callable[[Any], T] | None = None,
        default: Any = None,
    ) -> Any:
        """Make a GET request. Returns default if the 401 could not be recovered."""
        result = self._send_with_refresh(
            "GET",
            endpoint,
            use_credentials=use_credentials,
            override_uri=override_uri,
            cancel=cancel,
        )
        if result is _UNAUTHORIZED:
            return default
        if parser and result is not None:
            return parser(result)
        return result

    def post(
        self,
        endpoint: str,
        data: Any,
        use_credentials: bool = True,
        override_uri: str | None = None,
        cancel: threading.Event | None = None,
        parser: Callable[[Any], T] | None = None,
        default: Any = None,
    ) -> Any:
        """Make a POST request. Returns default if the 401 could not be recovered."""
        result = self._send_with_refresh(
            "POST",
            endpoint,
            data,
            has_body=True,
            use_credentials=use_credentials,
            override_uri=override_uri,
            cancel=cancel,
        )
        if result is _UNAUTHORIZED:
            return default
        if parser and result is not None:
            return parser(result)
        return result

    def put(
        self,
        endpoint: str,
        data: Any,
        use_credentials: bool = True,
        override_uri: str | None = None,
        cancel: threading.Event | None = None,
    ) -> bool:
        """Make a PUT request. Returns False if the 401 could not be recovered."""
        result = self._send_with_refresh(
            "PUT",
            endpoint,
            data,
            has_body=True,
            use_credentials=use_credentials,
            override_uri=override_uri,
            cancel=cancel,
        )
        return result is not _UNAUTHORIZED

    def delete(
        self,
        endpoint: str,
        use_credentials: bool = True,
        override_uri: str | None = None,
        cancel: threading.Event | None = None,
    ) -> bool:
        """Make a DELETE request. Returns False if the 401 could not be recovered."""
        result = self._send_with_refresh(
            "DELETE",
            endpoint,
            use_credentials=use_credentials,
            override_uri=override_uri,
            cancel=cancel,
        )
        return result is not _UNAUTHORIZED
