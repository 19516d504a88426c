# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Birthmark Standard Foundation

"""
HTTP/1.1 envelope for CA requests and responses.

The secure session carries raw bytes, so messages are framed with h11
rather than an HTTP client library. Each exchange is one request followed
by one response on a fresh connection.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Sequence, Tuple

import h11

from ..errors import ResponseError

USER_AGENT = "est-client/0.1.0"

DEFAULT_HTTPS_PORT = 443


def host_header(host: str, port: Optional[int] = None) -> str:
    """
    Host header value for host:port.

    IPv6 literals are bracketed; the port is omitted when it is the default.

    Example:
        >>> host_header("::1", 8443)
        '[::1]:8443'
    """
    if ":" in host and not host.startswith("["):
        host = f"[{host}]"
    if port is None or port == DEFAULT_HTTPS_PORT:
        return host
    return f"{host}:{port}"


@dataclass
class HttpResponse:
    """Parsed HTTP response."""
    status_code: int
    reason: str
    headers: Dict[str, str] = field(default_factory=dict)  # lower-case names
    body: bytes = b""

    @property
    def content_type(self) -> str:
        return self.headers.get("content-type", "").split(";")[0].strip().lower()

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


def build_request(
    method: str,
    target: str,
    host: str,
    body: bytes = b"",
    content_type: Optional[str] = None,
    extra_headers: Sequence[Tuple[str, str]] = (),
) -> bytes:
    """
    Serialize one HTTP/1.1 request.

    Args:
        method: HTTP method
        target: Request target (path)
        host: Value for the Host header
        body: Request body
        content_type: Content-Type header, if any
        extra_headers: Additional (name, value) headers

    Returns:
        Request bytes ready to be written to the session
    """
    headers = [
        ("Host", host),
        ("User-Agent", USER_AGENT),
        ("Accept", "*/*"),
        ("Connection", "close"),
    ]
    if content_type:
        headers.append(("Content-Type", content_type))
    headers.extend(extra_headers)
    if body or method in ("POST", "PUT"):
        headers.append(("Content-Length", str(len(body))))

    conn = h11.Connection(our_role=h11.CLIENT)
    data = conn.send(h11.Request(method=method, target=target, headers=headers))
    if body:
        data += conn.send(h11.Data(data=body))
    data += conn.send(h11.EndOfMessage())
    return data


def _response_reader(method: str) -> h11.Connection:
    # h11 only accepts a response once it has seen the matching request
    conn = h11.Connection(our_role=h11.CLIENT)
    conn.send(h11.Request(method=method, target="/", headers=[("Host", "ca")]))
    conn.send(h11.EndOfMessage())
    return conn


def expected_length(data: bytes, method: str = "GET") -> Optional[int]:
    """
    Total response length declared by the header block.

    Returns None until the header block is complete, and when the response
    declares no Content-Length.
    """
    header_end = data.find(b"\r\n\r\n")
    if header_end < 0:
        return None
    header_len = header_end + 4

    conn = _response_reader(method)
    conn.receive_data(data[:header_len])
    try:
        event = conn.next_event()
    except h11.RemoteProtocolError:
        return None

    if not isinstance(event, h11.Response):
        return None

    for name, value in event.headers:
        if name == b"content-length":
            return header_len + int(value)
    return None


def parse_response(data: bytes, method: str = "GET") -> HttpResponse:
    """
    Parse a complete HTTP response.

    The data is treated as everything the server sent before closing, so a
    response without Content-Length ends at the end of data.

    Raises:
        ResponseError: If the response is malformed or incomplete
    """
    conn = _response_reader(method)
    conn.receive_data(data)
    conn.receive_data(b"")

    response: Optional[h11.Response] = None
    body = bytearray()

    try:
        while True:
            event = conn.next_event()
            if isinstance(event, h11.InformationalResponse):
                continue
            if isinstance(event, h11.Response):
                response = event
            elif isinstance(event, h11.Data):
                body += event.data
            elif isinstance(event, h11.EndOfMessage):
                break
            else:
                raise ResponseError("Incomplete HTTP response")
    except h11.RemoteProtocolError as e:
        raise ResponseError(f"Malformed HTTP response: {e}") from e

    if response is None:
        raise ResponseError("No HTTP response received")

    headers = {
        name.decode('latin-1'): value.decode('latin-1')
        for name, value in response.headers
    }
    return HttpResponse(
        status_code=response.status_code,
        reason=response.reason.decode('latin-1'),
        headers=headers,
        body=bytes(body),
    )
