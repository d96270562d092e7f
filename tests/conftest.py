"""Shared fixtures: a fake server and fake executables."""

from __future__ import annotations

import io
import sys
import textwrap
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple, Union
from urllib.error import HTTPError, URLError

import pytest


class FakeResponse(io.BytesIO):
    """Minimal stand-in for an http.client.HTTPResponse."""

    def __init__(self, body: bytes) -> None:
        super().__init__(body)
        self.headers = {"Content-Length": str(len(body))}


class FakeServer:
    """Routes URLs to canned bodies and records every request."""

    def __init__(self) -> None:
        self.routes: Dict[str, Tuple[int, bytes]] = {}
        self.requests: List[str] = []
        self.unreachable = False

    def add(self, url: str, body: Union[bytes, str], status: int = 200) -> None:
        if isinstance(body, str):
            body = body.encode("utf-8")
        self.routes[url] = (status, body)

    def open_url(self, url: str, settings=None) -> FakeResponse:
        self.requests.append(url)
        if self.unreachable:
            raise URLError("connection refused")
        if url not in self.routes:
            raise HTTPError(url, 404, "Not Found", None, None)
        status, body = self.routes[url]
        if status >= 400:
            raise HTTPError(url, status, "Server Error", None, None)
        return FakeResponse(body)

    def requested(self, fragment: str) -> List[str]:
        return [url for url in self.requests if fragment in url]


@pytest.fixture
def fake_server(monkeypatch: pytest.MonkeyPatch) -> FakeServer:
    """Patch every HTTP entry point to hit an in-memory server."""
    server = FakeServer()
    monkeypatch.setattr("sonarlaunch.bootstrap.download.open_url", server.open_url)
    monkeypatch.setattr("sonarlaunch.bootstrap.server.open_url", server.open_url)
    return server


@pytest.fixture
def make_script(tmp_path: Path) -> Callable[..., Path]:
    """Create an executable Python script usable as a fake java binary."""

    def _make(body: str, name: str = "fake-java", directory: Optional[Path] = None) -> Path:
        target_dir = directory or tmp_path / "bin"
        target_dir.mkdir(parents=True, exist_ok=True)
        path = target_dir / name
        path.write_text(f"#!{sys.executable}\n" + textwrap.dedent(body))
        path.chmod(0o755)
        return path

    return _make
