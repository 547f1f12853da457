"""
OAuth2 refresh-token exchange for Microsoft accounts.

Legacy "Live SDK" applications and newer converged applications use
different token endpoints; everything else about the grant is the same.
"""

import http.client
import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from typing import Protocol

from mvp_api.core.transport import DEFAULT_TIMEOUT
from mvp_api.core.types import ClientIdentity, Credentials

LIVE_TOKEN_URL = "https://login.live.com/oauth20_token.srf"
CONVERGED_TOKEN_URL = "https://login.microsoftonline.com/common/oauth2/v2.0/token"
DESKTOP_REDIRECT_URI = "https://login.live.com/oauth20_desktop.srf"
DEFAULT_SCOPES = ("wl.emails", "wl.basic", "offline_access", "wl.signin")

logger = logging.getLogger(__name__)


class TokenRefresher(Protocol):
    """Anything that can trade a refresh token for new credentials."""

    def exchange_refresh_token(
        self,
        credentials: Credentials | None,
        identity: ClientIdentity,
    ) -> Credentials | None:
        """Return new credentials, or None if they could not be obtained."""
        ...


class OAuthTokenRefresher:
    """Refresh-token grant against the Microsoft account token endpoints."""

    def __init__(
        self,
        timeout: int = DEFAULT_TIMEOUT,
        scopes: tuple[str, ...] = DEFAULT_SCOPES,
        redirect_uri: str = DESKTOP_REDIRECT_URI,
    ):
        self.timeout = timeout
        self.scopes = scopes
        self.redirect_uri = redirect_uri

    @staticmethod
    def token_url(identity: ClientIdentity) -> str:
        """Get the token endpoint for the application type."""
        return LIVE_TOKEN_URL if identity.is_legacy_app else CONVERGED_TOKEN_URL

    def exchange_refresh_token(
        self,
        credentials: Credentials | None,
        identity: ClientIdentity,
    ) -> Credentials | None:
        """
        Exchange the refresh token for a new access token.

        Args:
            credentials: Current credentials (must carry a refresh token)
            identity: Application client ID and secret

        Returns:
            New Credentials, or None when there is nothing to refresh or the
            token endpoint refused the request

        """
        if credentials is None or not credentials.refresh_token:
            logger.warning("No refresh token available, cannot refresh credentials")
            return None

        form = {
            "client_id": identity.client_id or "",
            "client_secret": identity.client_secret or "",
            "refresh_token": credentials.refresh_token,
            "grant_type": "refresh_token",
            "redirect_uri": self.redirect_uri,
            "scope": " ".join(self.scopes),
        }
        url = self.token_url(identity)

        try:
            req = urllib.request.Request(
                url,
                data=urllib.parse.urlencode(form).encode("utf-8"),
                headers={
                    "Content-Type": "application/x-www-form-urlencoded",
                    "Accept": "application/json",
                },
                method="POST",
            )
            with urllib.request.urlopen(req, timeout=self.timeout) as response:
                data = json.loads(response.read().decode("utf-8"))
        except urllib.error.HTTPError as e:
            logger.warning("Token refresh rejected by %s: HTTP %s", url, e.code)
            return None
        except urllib.error.URLError as e:
            logger.warning("Token refresh failed: connection error: %s", e.reason)
            return None
        except TimeoutError:
            logger.warning("Token refresh timed out after %s seconds", self.timeout)
            return None
        except ValueError as e:
            # JSONDecodeError and UnicodeDecodeError
            logger.warning("Token refresh returned an unreadable response: %s", e)
            return None
        except (http.client.HTTPException, OSError) as e:
            logger.warning("Token refresh failed: connection error: %s", e)
            return None

        if not isinstance(data, dict) or not data.get("access_token"):
            logger.warning("Token refresh response did not contain an access token")
            return None

        # Some responses omit the refresh token when it was not rotated
        if not data.get("refresh_token"):
            data = {**data, "refresh_token": credentials.refresh_token}

        try:
            return Credentials.from_dict(data)
        except (ValueError, TypeError) as e:
            logger.warning("Token refresh response was malformed: %s", e)
            return None
