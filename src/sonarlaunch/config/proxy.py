"""Proxy resolution.

An explicit proxy in the scanner properties wins; otherwise the standard
``http_proxy``/``https_proxy``/``no_proxy`` environment variables apply.
"""

from __future__ import annotations

from typing import List, Mapping, Optional
from urllib.parse import quote, unquote, urlsplit
from urllib.request import getproxies_environment, proxy_bypass_environment

PROXY_HOST_KEY = "sonar.scanner.proxyHost"
PROXY_PORT_KEY = "sonar.scanner.proxyPort"
PROXY_USER_KEY = "sonar.scanner.proxyUser"
PROXY_PASSWORD_KEY = "sonar.scanner.proxyPassword"
PROXY_TLS_KEY = "sonar.scanner.proxyTls"


def proxy_url_from_properties(properties: Mapping[str, str]) -> Optional[str]:
    """Build a proxy URL from the sonar.scanner.proxy* properties."""
    host = properties.get(PROXY_HOST_KEY)
    if not host:
        return None

    scheme = "https" if properties.get(PROXY_TLS_KEY, "false") == "true" else "http"
    netloc = host
    port = properties.get(PROXY_PORT_KEY)
    if port:
        netloc = f"{netloc}:{port}"
    user = properties.get(PROXY_USER_KEY)
    if user:
        credentials = quote(user, safe="")
        password = properties.get(PROXY_PASSWORD_KEY)
        if password:
            credentials = f"{credentials}:{quote(password, safe='')}"
        netloc = f"{credentials}@{netloc}"
    return f"{scheme}://{netloc}"


def proxy_url_from_environment(server_url: str) -> Optional[str]:
    """Return the environment proxy that applies to server_url, if any."""
    proxies = getproxies_environment()
    parts = urlsplit(server_url)
    if parts.hostname and proxy_bypass_environment(parts.hostname, proxies):
        return None
    return proxies.get(parts.scheme or "http")


def resolve_proxy_url(server_url: str, properties: Mapping[str, str]) -> Optional[str]:
    """Resolve the proxy to use for server_url."""
    return proxy_url_from_properties(properties) or proxy_url_from_environment(server_url)


def java_proxy_options(server_url: str, proxy_url: Optional[str]) -> List[str]:
    """Translate a proxy URL into JVM system property flags.

    The property prefix (http/https) follows the server URL's scheme, since
    that is the traffic the engine sends through the proxy.
    """
    if not proxy_url:
        return []

    protocol = "https" if server_url.startswith("https") else "http"
    parts = urlsplit(proxy_url)
    options = [f"-D{protocol}.proxyHost={parts.hostname}"]
    if parts.port:
        options.append(f"-D{protocol}.proxyPort={parts.port}")
    if parts.username:
        options.append(f"-D{protocol}.proxyUser={unquote(parts.username)}")
    if parts.password:
        options.append(f"-D{protocol}.proxyPassword={unquote(parts.password)}")
    return options
