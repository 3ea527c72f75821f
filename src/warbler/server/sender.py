"""ASGI response sending — translates warbler Responses to ASGI messages."""

from warbler._internal.asgi import Send
from warbler.http.response import Response


def _body_allowed(status: int) -> bool:
    """Whether an HTTP status code permits a response body."""
    # RFC: 1xx, 204, and 304 responses do not include a message body.
    return not (100 <= status < 200 or status in {204, 304})


def build_headers(response: Response, body: bytes) -> list[tuple[bytes, bytes]]:
    """Raw ASGI header list: content-type, custom headers, cookies, length."""
    raw: list[tuple[bytes, bytes]] = [
        (b"content-type", response.content_type.encode("latin-1")),
    ]
    explicit_length = False
    for name, value in response.headers:
        lowered = name.lower()
        explicit_length = explicit_length or lowered == "content-length"
        raw.append((lowered.encode("latin-1"), value.encode("latin-1")))
    raw.extend(
        (b"set-cookie", cookie.to_header_value().encode("latin-1")) for cookie in response.cookies
    )
    if not explicit_length:
        raw.append((b"content-length", str(len(body)).encode("latin-1")))
    return raw


async def send_response(response: Response, send: Send, *, head: bool = False) -> None:
    """Translate a warbler Response into ASGI send() calls.

    For ``HEAD`` requests the headers describe the full body but no body
    bytes are sent.
    """
    body = response.body_bytes if _body_allowed(response.status) else b""

    await send(
        {
            "type": "http.response.start",
            "status": response.status,
            "headers": build_headers(response, body),
        }
    )
    await send(
        {
            "type": "http.response.body",
            "body": b"" if head else body,
        }
    )
