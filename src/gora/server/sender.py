"""ASGI response sending: translates a recorded ResponseWriter to ASGI messages."""

from gora._internal.asgi import Send
from gora.http.response import ResponseWriter


def _body_allowed(status: int) -> bool:
    """Whether an HTTP status code permits a response body."""
    # RFC 9110: 1xx, 204, and 304 responses do not include a message body.
    return not (100 <= status < 200 or status in {204, 304})


async def send_response(writer: ResponseWriter, send: Send, *, head: bool = False) -> None:
    """Send the recorded status, headers, and body.

    For ``HEAD`` requests the content length of the full body is
    advertised but no body bytes are sent.
    """
    status = writer.status_code
    writer.headers.delete("content-length")
    raw_headers = writer.headers.raw()
    body = writer.body if _body_allowed(status) else b""
    if _body_allowed(status):
        raw_headers.append((b"content-length", str(len(body)).encode("latin-1")))

    await send(
        {
            "type": "http.response.start",
            "status": status,
            "headers": raw_headers,
        }
    )
    await send(
        {
            "type": "http.response.body",
            "body": b"" if head else body,
        }
    )
