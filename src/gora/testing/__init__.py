"""Test utilities for gora routers.

    from gora.testing import TestClient
"""

from gora.testing.client import TestClient, TestResponse, WebSocketSession

__all__ = ["TestClient", "TestResponse", "WebSocketSession"]
