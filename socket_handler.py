"""Low-level socket read/write utilities."""

from __future__ import annotations

import socket

from config import BUFFER_SIZE, DRAIN_TIMEOUT_SECS, MAX_DRAIN_BYTES, MAX_HEADER_BYTES
from response import HTTPResponse


class HTTPReadError(Exception):
    """Raised when a client request cannot be safely read from the socket."""


class MalformedRequestError(HTTPReadError):
    """Raised when socket bytes do not form a complete HTTP request."""


class HeaderTooLargeError(HTTPReadError):
    """Raised when HTTP headers exceed configured maximum size."""


class SocketTimeoutError(HTTPReadError):
    """Raised when a client times out while sending request bytes."""


def extract_http_request_head(buffer: bytes) -> bytes | None:
    """Return the request head (up to and including CRLF CRLF) once complete."""
    header_end_index = buffer.find(b"\r\n\r\n")
    if header_end_index == -1:
        if len(buffer) > MAX_HEADER_BYTES:
            raise HeaderTooLargeError("Headers exceeded MAX_HEADER_BYTES")
        return None

    header_section_length = header_end_index + 4
    if header_section_length > MAX_HEADER_BYTES:
        raise HeaderTooLargeError("Headers exceeded MAX_HEADER_BYTES")
    return bytes(buffer[:header_section_length])


def read_http_request_head(client_socket: socket.socket) -> bytes:
    """Read one request head from the socket.

    Returns ``b""`` when the peer closes the connection before sending
    anything. Any request body is left unread; the connection is closed
    after a single response.
    """
    buffer = bytearray()

    while True:
        head = extract_http_request_head(bytes(buffer))
        if head is not None:
            return head

        try:
            chunk = client_socket.recv(BUFFER_SIZE)
        except socket.timeout as exc:
            raise SocketTimeoutError("Timed out waiting for request bytes") from exc

        if not chunk:
            if not buffer:
                return b""
            raise MalformedRequestError("Connection closed before request completed")

        buffer.extend(chunk)


def write_http_response_message(client_socket: socket.socket, response: HTTPResponse) -> int:
    """Write an HTTPResponse and return the number of bytes sent."""
    payload = response.to_bytes()
    client_socket.sendall(payload)
    return len(payload)


def discard_unread_input(
    client_socket: socket.socket,
    *,
    timeout_secs: float = DRAIN_TIMEOUT_SECS,
    max_bytes: int = MAX_DRAIN_BYTES,
) -> int:
    """Half-close the socket and read off whatever the client still sends.

    Closing a socket with unread bytes makes the kernel send RST, which can
    destroy a response the client has not read yet. Returns the number of
    bytes discarded; stops at EOF, ``max_bytes`` or ``timeout_secs``.
    """
    client_socket.shutdown(socket.SHUT_WR)
    client_socket.settimeout(timeout_secs)
    discarded = 0
    while discarded < max_bytes:
        try:
            chunk = client_socket.recv(max(BUFFER_SIZE, 65_536))
        except socket.timeout:
            break
        if not chunk:
            break
        discarded += len(chunk)
    return discarded
