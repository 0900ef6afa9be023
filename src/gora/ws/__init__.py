"""WebSocket support: the connection wrapper, a broadcast hub, and a dialer."""

from gora.ws.connection import WebSocket
from gora.ws.dialer import Dialer
from gora.ws.hub import Client, Hub

__all__ = ["Client", "Dialer", "Hub", "WebSocket"]
