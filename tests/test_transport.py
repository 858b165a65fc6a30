import socket

import httpx
import pytest

from xmlrpcframework.errors import CommunicationError
from xmlrpcframework.transport.http import HTTPTransport
from xmlrpcframework.transport.scgi import (
    SCGITransport,
    encode_headers,
    encode_netstring,
    frame_request,
    parse_response,
)

from conftest import response_xml

REQUEST = b'<?xml version="1.0"?>\n<methodCall><methodName>sum</methodName><params/></methodCall>'


# ──────────────────────────────────────────────────────────────
# HTTP
# ──────────────────────────────────────────────────────────────
def _mock_client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


def test_http_posts_text_xml():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["url"] = str(request.url)
        seen["content_type"] = request.headers["content-type"]
        seen["body"] = request.content
        return httpx.Response(200, content=response_xml("<int>1</int>"))

    transport = HTTPTransport("https://example/rpc", _mock_client(handler))
    assert transport.call(REQUEST) == response_xml("<int>1</int>")
    assert seen == {
        "method": "POST",
        "url": "https://example/rpc",
        "content_type": "text/xml",
        "body": REQUEST,
    }


def test_http_error_status_is_a_communication_error():
    transport = HTTPTransport("http://example/rpc", _mock_client(lambda r: httpx.Response(503)))
    with pytest.raises(CommunicationError, match="503"):
        transport.call(REQUEST)


def test_http_connection_failure_is_a_communication_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    transport = HTTPTransport("http://example/rpc", _mock_client(handler))
    with pytest.raises(CommunicationError) as info:
        transport.call(REQUEST)
    assert isinstance(info.value.__cause__, httpx.ConnectError)


def test_http_leaves_caller_client_open():
    client = _mock_client(lambda r: httpx.Response(200))
    transport = HTTPTransport("http://example/rpc", client)
    transport.close()
    assert not client.is_closed


def test_http_closes_its_own_client():
    transport = HTTPTransport("http://example/rpc", verify=False, timeout=1.0)
    with transport:
        pass
    assert transport.client.is_closed


def test_http_against_fastapi_app(http_client, rpc_app):
    transport = HTTPTransport("http://testserver/RPC2", http_client, user_agent="tests/1.0")
    body = transport.call(
        b"<methodCall><methodName>sum</methodName><params>"
        b"<param><value><int>2</int></value></param>"
        b"<param><value><int>3</int></value></param>"
        b"</params></methodCall>"
    )
    assert b"<int>5</int>" in body
    (request,) = rpc_app.state.requests
    assert request["headers"]["content-type"] == "text/xml"
    assert request["headers"]["user-agent"] == "tests/1.0"


# ──────────────────────────────────────────────────────────────
# SCGI framing
# ──────────────────────────────────────────────────────────────
def test_netstring():
    assert encode_netstring(b"hello") == b"5:hello,"
    assert encode_netstring(b"") == b"0:,"


def test_headers_are_nul_separated():
    assert encode_headers([(b"A", b"1"), (b"B", b"")]) == b"A\x001\x00B\x00\x00"


def test_frame_request_layout():
    framed = frame_request(b"<xml/>", "/RPC2")
    length, _, rest = framed.partition(b":")
    block, tail = rest[: int(length)], rest[int(length):]
    assert tail == b",<xml/>"
    parts = block.split(b"\x00")[:-1]
    assert parts[:2] == [b"CONTENT_LENGTH", b"6"]
    headers = dict(zip(parts[0::2], parts[1::2]))
    assert headers[b"SCGI"] == b"1"
    assert headers[b"REQUEST_METHOD"] == b"POST"
    assert headers[b"REQUEST_URI"] == b"/RPC2"


@pytest.mark.parametrize(
    "raw, body",
    [
        (b"Status: 200 OK\r\nContent-Type: text/xml\r\n\r\n<ok/>", b"<ok/>"),
        (b"Content-Type: text/xml\r\n\r\n<ok/>", b"<ok/>"),
        (b"Content-Type: text/xml\n\n<ok/>", b"<ok/>"),
        (b"Status: 200 OK\r\n\r\n", b""),
    ],
)
def test_parse_response(raw, body):
    assert parse_response(raw) == body


@pytest.mark.parametrize("raw", [b"", b"<methodResponse/>", b"Status: 500 Internal Error\r\n\r\noops"])
def test_parse_response_failures(raw):
    with pytest.raises(CommunicationError):
        parse_response(raw)


# ──────────────────────────────────────────────────────────────
# SCGI over a socket
# ──────────────────────────────────────────────────────────────
def test_scgi_roundtrip(scgi_server):
    host, port = scgi_server.server_address
    transport = SCGITransport(host, port, uri="/RPC2", timeout=5.0)
    body = transport.call(
        b"<methodCall><methodName>sum</methodName><params>"
        b"<param><value><int>4</int></value></param>"
        b"</params></methodCall>"
    )
    assert body == response_xml("<int>4</int>")
    (request,) = scgi_server.requests
    assert request["headers"][0] == (b"CONTENT_LENGTH", str(len(request["body"])).encode())
    assert (b"REQUEST_URI", b"/RPC2") in request["headers"]


def test_scgi_connection_refused():
    with socket.socket() as probe:
        probe.bind(("127.0.0.1", 0))
        port = probe.getsockname()[1]
    transport = SCGITransport("127.0.0.1", port, timeout=2.0)
    with pytest.raises(CommunicationError) as info:
        transport.call(REQUEST)
    assert isinstance(info.value.__cause__, OSError)


def test_scgi_error_status(scgi_server):
    scgi_server.status = "404 Not Found"
    host, port = scgi_server.server_address
    with pytest.raises(CommunicationError, match="404"):
        SCGITransport(host, port, timeout=5.0).call(REQUEST)
