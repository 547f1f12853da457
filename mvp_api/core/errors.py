"""Error types raised by the MVP API client."""

from typing import Any


class ClientError(Exception):
    """Base error class for client errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for JSON output."""
        result: dict[str, Any] = {"error": self.message}
        if self.details:
            result["details"] = self.details
        return result


class APIError(ClientError):
    """API error with status code and message. Status is 0 for transport failures."""

    def __init__(self, message: str, status: int = 0, details: dict | None = None):
        super().__init__(message, details)
        self.status = status

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for JSON output."""
        result = super().to_dict()
        if self.status:
            result["status"] = self.status
        return result


class UnauthorizedError(APIError):
    """The API rejected the access token (HTTP 401)."""

    def __init__(self, message: str = "Unauthorized", details: dict | None = None):
        super().__init__(message, status=401, details=details)


class RequestCancelled(APIError):
    """The caller cancelled the request before it was sent."""

    def __init__(self, message: str = "Request cancelled"):
        super().__init__(message)


class ValidationError(ClientError):
    """Validation error for local input/data issues (not API errors)."""
