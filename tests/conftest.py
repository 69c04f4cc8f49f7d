"""
Shared fixtures: an in-memory StreamShare service for round-trip tests.

HTTP endpoints are served through ``httpx_mock``; the upload stream is a
real WebSocket server on localhost running in a background thread.
"""

import itertools
import json
import socket
import threading
from http import HTTPStatus
from typing import Dict, Optional

import httpx
import pytest
from websockets.exceptions import ConnectionClosed
from websockets.sync.server import serve

PROXY_VARIABLES = (
    "HTTP_PROXY",
    "HTTPS_PROXY",
    "ALL_PROXY",
    "http_proxy",
    "https_proxy",
    "all_proxy",
)


class FakeStreamShare:
    """Minimal in-memory implementation of the StreamShare API."""

    def __init__(self) -> None:
        self.files: Dict[str, dict] = {}
        self._ids = itertools.count(1)

        # Knobs for misbehaving-server tests
        self.ack = "ACK"
        self.close_after: Optional[int] = None
        self.reject_handshake = False

        self._server = serve(
            self._handle_upload,
            "127.0.0.1",
            0,
            process_request=self._check_handshake,
        )
        host, port = self._server.socket.getsockname()[:2]
        self.base_url = f"http://{host}:{port}"
        self._thread = threading.Thread(target=self._server.serve_forever, daemon=True)
        self._thread.start()

    def shutdown(self) -> None:
        self._server.shutdown()
        self._thread.join(timeout=5)

    def wait_for_upload(self, file_id: str) -> dict:
        """Block until the server side of an upload stream has finished."""
        entry = self.files[file_id]
        assert entry["done"].wait(timeout=5)
        return entry

    # ==================== WebSocket upload ====================

    def _upload_entry(self, path: str) -> Optional[dict]:
        parts = path.strip("/").split("/")
        if len(parts) == 3 and parts[:2] == ["api", "upload"]:
            return self.files.get(parts[2])
        return None

    def _check_handshake(self, connection, request):
        if self.reject_handshake or self._upload_entry(request.path) is None:
            return connection.respond(HTTPStatus.NOT_FOUND, "Unknown upload\n")
        return None

    def _handle_upload(self, connection) -> None:
        entry = self._upload_entry(connection.request.path)
        chunks = []
        try:
            for message in connection:
                if not isinstance(message, bytes):
                    connection.close(1003, "Binary frames only")
                    break
                chunks.append(message)
                entry["frames"] += 1
                if self.close_after is not None and len(chunks) > self.close_after:
                    connection.close(1011, "Storage failure")
                    break
                connection.send(self.ack)
        except ConnectionClosed:
            pass
        finally:
            close = connection.protocol.close_rcvd
            entry["close"] = (close.code, close.reason) if close else None
            if entry["close"] == (1000, "FILE_UPLOAD_DONE"):
                entry["content"] = b"".join(chunks)
            entry["done"].set()

    # ==================== HTTP API ====================

    def handle(self, request: httpx.Request) -> httpx.Response:
        request.read()
        return self._dispatch(request)

    async def ahandle(self, request: httpx.Request) -> httpx.Response:
        await request.aread()
        return self._dispatch(request)

    def _dispatch(self, request: httpx.Request) -> httpx.Response:
        parts = request.url.path.strip("/").split("/")

        if request.method == "POST" and parts == ["api", "create"]:
            name = json.loads(request.content)["name"]
            n = next(self._ids)
            file_id = f"file{n:04d}"
            self.files[file_id] = {
                "name": name,
                "token": f"token{n:04d}",
                "content": None,
                "frames": 0,
                "close": None,
                "done": threading.Event(),
            }
            return httpx.Response(
                200,
                json={"fileIdentifier": file_id, "deletionToken": f"token{n:04d}"},
            )

        if request.method == "GET" and parts[0] == "download":
            entry = self.files.get(parts[1])
            if entry is None or not entry["done"].wait(timeout=5) or entry["content"] is None:
                return httpx.Response(404, text="File not found")
            return httpx.Response(200, content=entry["content"])

        if request.method == "DELETE" and parts[:2] == ["api", "delete"]:
            entry = self.files.get(parts[2])
            if entry is None:
                return httpx.Response(404, json={"error": "File not found"})
            if entry["token"] != parts[3]:
                return httpx.Response(403, json={"error": "Invalid deletion token"})
            del self.files[parts[2]]
            return httpx.Response(200)

        return httpx.Response(405)


@pytest.fixture(autouse=True)
def no_proxy(monkeypatch):
    for name in PROXY_VARIABLES:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def fake_service(httpx_mock):
    service = FakeStreamShare()
    httpx_mock.add_callback(service.handle, is_reusable=True)
    yield service
    service.shutdown()


@pytest.fixture
def async_fake_service(httpx_mock):
    service = FakeStreamShare()
    httpx_mock.add_callback(service.ahandle, is_reusable=True)
    yield service
    service.shutdown()


@pytest.fixture
def unused_port() -> int:
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]
