"""Tests for HTTP opener construction."""

from __future__ import annotations

import ssl
from pathlib import Path
from unittest.mock import MagicMock, patch
from urllib.request import HTTPSHandler, ProxyHandler

import certifi

from sonarlaunch.bootstrap.http import (
    USER_AGENT,
    HttpSettings,
    build_http_opener,
    get_ssl_context,
    make_request,
    open_url,
)


def _handler(opener, handler_type):
    return next(h for h in opener.handlers if isinstance(h, handler_type))


class TestGetSslContext:
    """Tests for SSL context creation."""

    def test_defaults_to_certifi(self) -> None:
        with patch("ssl.create_default_context") as mock_create:
            get_ssl_context()
        mock_create.assert_called_once_with(cafile=certifi.where())

    def test_uses_ca_path(self, tmp_path: Path) -> None:
        ca = tmp_path / "ca.pem"
        with patch("ssl.create_default_context") as mock_create:
            get_ssl_context(ca)
        mock_create.assert_called_once_with(cafile=str(ca))

    def test_returns_context(self) -> None:
        assert isinstance(get_ssl_context(), ssl.SSLContext)


class TestBuildHttpOpener:
    """Tests for proxy configuration of openers."""

    def test_proxy_applies_to_both_schemes(self) -> None:
        opener = build_http_opener(HttpSettings(proxy_url="http://proxy:3128"))
        proxy_handler = _handler(opener, ProxyHandler)
        assert proxy_handler.proxies == {
            "http": "http://proxy:3128",
            "https": "http://proxy:3128",
        }

    def test_no_proxy_ignores_environment(self, monkeypatch) -> None:
        monkeypatch.setenv("https_proxy", "http://env-proxy:8080")
        opener = build_http_opener(HttpSettings())
        assert _handler(opener, ProxyHandler).proxies == {}

    def test_has_https_handler(self) -> None:
        opener = build_http_opener()
        assert _handler(opener, HTTPSHandler) is not None


class TestOpenUrl:
    """Tests for open_url."""

    def test_sets_user_agent(self) -> None:
        request = make_request("https://sonar.example.com")
        assert request.get_header("User-agent") == USER_AGENT

    def test_passes_timeout_when_set(self) -> None:
        opener = MagicMock()
        with patch("sonarlaunch.bootstrap.http.build_http_opener", return_value=opener):
            open_url("https://sonar.example.com", HttpSettings(timeout=12.0))
        _, kwargs = opener.open.call_args
        assert kwargs == {"timeout": 12.0}

    def test_omits_timeout_by_default(self) -> None:
        opener = MagicMock()
        with patch("sonarlaunch.bootstrap.http.build_http_opener", return_value=opener):
            open_url("https://sonar.example.com")
        _, kwargs = opener.open.call_args
        assert kwargs == {}
