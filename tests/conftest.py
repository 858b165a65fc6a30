# tests/conftest.py
import socketserver
import threading

import pytest
from fastapi import FastAPI, Request, Response
from fastapi.testclient import TestClient
from lxml.builder import E
from lxml.etree import fromstring, tostring


def response_xml(value_xml: str) -> bytes:
    return (
        '<?xml version="1.0"?>'
        "<methodResponse><params><param><value>"
        f"{value_xml}"
        "</value></param></params></methodResponse>"
    ).encode()


def fault_xml(code: int, message: str) -> bytes:
    return (
        '<?xml version="1.0"?>'
        "<methodResponse><fault><value><struct>"
        f"<member><name>faultCode</name><value><int>{code}</int></value></member>"
        f"<member><name>faultString</name><value><string>{message}</string></value></member>"
        "</struct></value></fault></methodResponse>"
    ).encode()


def fake_dispatch(body: bytes) -> bytes:
    """Tiny XML-RPC 'server': sum, echo, fail; anything else is a -32601 fault."""
    request = fromstring(body)
    name = request.findtext("methodName")
    if name == "sum":
        total = sum(int(v) for v in request.xpath("params/param/value/int/text()"))
        return response_xml(f"<int>{total}</int>")
    if name == "echo":
        return b'<?xml version="1.0"?>' + tostring(E.methodResponse(request.find("params")))
    if name == "fail":
        return fault_xml(1, "bad args")
    return fault_xml(-32601, f"method {name} not found")


# ──────────────────────────────────────────────────────────────
# HTTP: FastAPI app driven through TestClient (an httpx.Client)
# ──────────────────────────────────────────────────────────────
@pytest.fixture
def rpc_app():
    app = FastAPI(title="fake-xmlrpc")
    app.state.requests = []
    app.state.status_code = 200

    @app.post("/RPC2")
    async def rpc(request: Request):
        body = await request.body()
        app.state.requests.append({"body": body, "headers": dict(request.headers)})
        if app.state.status_code != 200:
            return Response(content=b"nope", status_code=app.state.status_code)
        return Response(content=fake_dispatch(body), media_type="text/xml")

    return app


@pytest.fixture
def http_client(rpc_app):
    with TestClient(rpc_app) as client:
        yield client


# ──────────────────────────────────────────────────────────────
# SCGI: threaded socket server speaking the SCGI framing
# ──────────────────────────────────────────────────────────────
def read_scgi_request(rfile):
    length = b""
    while (ch := rfile.read(1)) != b":":
        length += ch
    block = rfile.read(int(length))
    assert rfile.read(1) == b","
    parts = block.split(b"\x00")[:-1]
    headers = dict(zip(parts[0::2], parts[1::2]))
    body = rfile.read(int(headers[b"CONTENT_LENGTH"]))
    return list(zip(parts[0::2], parts[1::2])), body


class _SCGIHandler(socketserver.StreamRequestHandler):
    def handle(self):
        headers, body = read_scgi_request(self.rfile)
        self.server.requests.append({"headers": headers, "body": body})
        status = self.server.status
        reply = fake_dispatch(body) if status.startswith("200") else b""
        self.wfile.write(
            f"Status: {status}\r\nContent-Type: text/xml\r\n\r\n".encode() + reply
        )


class _SCGIServer(socketserver.ThreadingTCPServer):
    daemon_threads = True
    allow_reuse_address = True


@pytest.fixture
def scgi_server():
    server = _SCGIServer(("127.0.0.1", 0), _SCGIHandler)
    server.requests = []
    server.status = "200 OK"
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield server
    finally:
        server.shutdown()
        server.server_close()


@pytest.fixture
def scgi_address(scgi_server):
    host, port = scgi_server.server_address
    return f"scgi://{host}:{port}/RPC2"
