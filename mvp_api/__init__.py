"""
MVP API - Client for the Microsoft MVP REST API.

Layers:
- core: Types, HTTP transport, token refresh and the authenticated client
- cli: Command-line interface for raw authenticated calls
"""

from mvp_api.core import ApiClient, Credentials

__version__ = "0.1.0"
__all__ = ["ApiClient", "Credentials"]
