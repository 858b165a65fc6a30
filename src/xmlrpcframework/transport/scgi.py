# xmlrpcframework/transport/scgi.py
"""
SCGI transport.

The request is framed as an SCGI netstring of NUL-separated headers
(CONTENT_LENGTH first, then SCGI=1) followed by the raw XML body. The
server answers CGI style: header lines, a blank line, then the body.
A fresh connection is used per call, so one instance is safe to share
between threads.
"""
import logging
import socket
from typing import Iterable, Optional, Tuple

from xmlrpcframework.config.default import DEFAULT_TIMEOUT
from xmlrpcframework.errors import CommunicationError
from xmlrpcframework.transport.base import Transport

logger = logging.getLogger("xmlrpcframework.transport.scgi")

RECV_SIZE = 4096


def encode_netstring(data: bytes) -> bytes:
    return str(len(data)).encode() + b":" + data + b","


def encode_headers(headers: Iterable[Tuple[bytes, bytes]]) -> bytes:
    return b"".join(key + b"\x00" + value + b"\x00" for key, value in headers)


def frame_request(body: bytes, uri: str = "/") -> bytes:
    headers = encode_headers([
        (b"CONTENT_LENGTH", str(len(body)).encode()),
        (b"SCGI", b"1"),
        (b"REQUEST_METHOD", b"POST"),
        (b"REQUEST_URI", uri.encode()),
        (b"CONTENT_TYPE", b"text/xml"),
    ])
    return encode_netstring(headers) + body


def parse_response(raw: bytes) -> bytes:
    """Strip the CGI response headers, checking the Status line if present."""
    head, sep, body = raw.partition(b"\r\n\r\n")
    if not sep:
        head, sep, body = raw.partition(b"\n\n")
    if not sep:
        raise CommunicationError(
            f"SCGI response has no header terminator ({len(raw)} bytes received)"
        )

    for line in head.splitlines():
        name, _, value = line.partition(b":")
        if name.strip().lower() == b"status":
            status = value.strip().decode("latin-1")
            if not status.startswith("2"):
                raise CommunicationError(f"SCGI request failed: {status}")
    return body


class SCGITransport(Transport):
    def __init__(
        self,
        host: str,
        port: int,
        *,
        uri: str = "/",
        timeout: Optional[float] = DEFAULT_TIMEOUT,
    ):
        self.host = host
        self.port = port
        self.uri = uri or "/"
        self.timeout = timeout

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"

    def call(self, request: bytes) -> bytes:
        payload = frame_request(request, self.uri)
        chunks = []
        try:
            with socket.create_connection((self.host, self.port), timeout=self.timeout) as sock:
                sock.sendall(payload)
                while True:
                    chunk = sock.recv(RECV_SIZE)
                    if not chunk:
                        break
                    chunks.append(chunk)
        except OSError as e:
            logger.warning(f"SCGI call to {self.address} failed: {e!r}")
            raise CommunicationError(f"SCGI call to {self.address} failed: {e}") from e

        raw = b"".join(chunks)
        logger.debug(f"SCGI {self.address}: sent {len(payload)} bytes, received {len(raw)} bytes")
        return parse_response(raw)

    def __repr__(self):
        return f"{type(self).__name__}(address={self.address!r}, uri={self.uri!r})"
