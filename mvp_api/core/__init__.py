"""
Core layer - Types, transport and the authenticated HTTP client.

This layer provides:
- Credential and application identity dataclasses
- A urllib request executor and OAuth2 token refresher
- ApiClient with one refresh-and-retry on 401 Unauthorized
"""

from mvp_api.core.auth import OAuthTokenRefresher, TokenRefresher
from mvp_api.core.client import ApiClient
from mvp_api.core.errors import APIError, ClientError, RequestCancelled, UnauthorizedError, ValidationError
from mvp_api.core.transport import HttpExecutor
from mvp_api.core.types import ClientIdentity, Credentials

__all__ = [
    "APIError",
    "ApiClient",
    "ClientError",
    "ClientIdentity",
    "Credentials",
    "HttpExecutor",
    "OAuthTokenRefresher",
    "RequestCancelled",
    "TokenRefresher",
    "UnauthorizedError",
    "ValidationError",
]
