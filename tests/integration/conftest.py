"""Pytest configuration and fixtures for integration tests.

These tests talk real HTTP to a server running on localhost and launch real
child processes, so they exercise urllib, tarfile and subprocess end to end.
"""

from __future__ import annotations

import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Dict, Iterator, List, Tuple, Union

import pytest


class LocalSonarServer:
    """Serves canned responses keyed by request path (including query)."""

    def __init__(self) -> None:
        self.routes: Dict[str, Tuple[int, bytes]] = {}
        self.requests: List[str] = []
        self._httpd = ThreadingHTTPServer(("127.0.0.1", 0), self._handler_class())
        self._thread = threading.Thread(target=self._httpd.serve_forever, daemon=True)

    @property
    def url(self) -> str:
        host, port = self._httpd.server_address[:2]
        return f"http://{host}:{port}"

    def add(self, path: str, body: Union[bytes, str], status: int = 200) -> None:
        if isinstance(body, str):
            body = body.encode("utf-8")
        self.routes[path] = (status, body)

    def requested(self, fragment: str) -> List[str]:
        return [path for path in self.requests if fragment in path]

    def start(self) -> None:
        self._thread.start()

    def stop(self) -> None:
        self._httpd.shutdown()
        self._httpd.server_close()

    def _handler_class(self):
        server = self

        class Handler(BaseHTTPRequestHandler):
            def do_GET(self) -> None:
                server.requests.append(self.path)
                status, body = server.routes.get(self.path, (404, b"not found"))
                self.send_response(status)
                self.send_header("Content-Length", str(len(body)))
                self.end_headers()
                self.wfile.write(body)

            def log_message(self, format: str, *args) -> None:
                pass

        return Handler


@pytest.fixture
def sonar_server() -> Iterator[LocalSonarServer]:
    """Start a local server for the duration of one test."""
    server = LocalSonarServer()
    server.start()
    try:
        yield server
    finally:
        server.stop()


@pytest.fixture
def sonar_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the artifact cache and global config at a temporary directory."""
    home = tmp_path / "sonar-home"
    monkeypatch.setenv("SONAR_USER_HOME", str(home))
    for name in (
        "SONAR_TOKEN", "SONAR_HOST_URL", "SONARQUBE_SCANNER_PARAMS",
        "http_proxy", "https_proxy", "HTTP_PROXY", "HTTPS_PROXY",
    ):
        monkeypatch.delenv(name, raising=False)
    return home
