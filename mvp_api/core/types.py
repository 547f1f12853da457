"""
Core types for the MVP API client.

Credentials are owned by a single ApiClient and replaced as a whole on refresh.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

# =============================================================================
# Credentials
# =============================================================================


@dataclass(frozen=True)
class Credentials:
    """OAuth2 tokens for the signed-in Microsoft account."""

    access_token: str
    refresh_token: str = ""
    expiry: datetime | None = None
    token_type: str = "bearer"
    scope: str | None = None

    @property
    def has_access_token(self) -> bool:
        """Check if there is a usable (non-blank) access token."""
        return bool(self.access_token and self.access_token.strip())

    def is_expired(self, now: datetime | None = None, leeway: int = 60) -> bool:
        """Check if the access token has expired. Unknown expiry counts as valid."""
        if self.expiry is None:
            return False
        now = now or datetime.now(timezone.utc)
        return now >= self.expiry - timedelta(seconds=leeway)

    @classmethod
    def from_dict(cls, data: dict[str, Any], now: datetime | None = None) -> "Credentials":
        """
        Create from a token endpoint response or a saved credentials dict.

        Args:
            data: Mapping with access_token and optionally refresh_token,
                expires_in (seconds) or expiry (ISO-8601), token_type and scope
            now: Reference time for expires_in (defaults to current UTC time)

        Returns:
            Credentials instance

        """
        expiry = None
        if data.get("expiry"):
            expiry = datetime.fromisoformat(data["expiry"])
        elif data.get("expires_in") is not None:
            now = now or datetime.now(timezone.utc)
            expiry = now + timedelta(seconds=int(data["expires_in"]))

        return cls(
            access_token=data.get("access_token") or "",
            refresh_token=data.get("refresh_token") or "",
            expiry=expiry,
            token_type=data.get("token_type") or "bearer",
            scope=data.get("scope"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for JSON output."""
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "expiry": self.expiry.isoformat() if self.expiry else None,
            "token_type": self.token_type,
            "scope": self.scope,
        }


# =============================================================================
# Client Identity
# =============================================================================


@dataclass(frozen=True)
class ClientIdentity:
    """The registered Microsoft application and its MVP API subscription."""

    client_id: str | None = None
    client_secret: str | None = None
    subscription_key: str | None = None
    # True for older "Live SDK" apps, False for converged apps
    is_legacy_app: bool = False
