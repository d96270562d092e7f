"""Typed launcher configuration.

Configuration enters the pipeline here; nothing downstream reads raw
string-keyed option maps except the scanner properties themselves.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

# Runtime download URL styles
DOWNLOAD_STYLE_QUERY = "query"  # {server}/api/v2/analysis/jres?filename=<name>
DOWNLOAD_STYLE_PATH = "path"  # {server}/api/v2/analysis/jres/<name>
DOWNLOAD_STYLES = (DOWNLOAD_STYLE_QUERY, DOWNLOAD_STYLE_PATH)

DEFAULT_DIGEST_FIELDS = ("sha256", "checksum", "md5")
DEFAULT_BINARY_PATH_FIELDS = ("javaPath", "relativeBinaryPath")


@dataclass
class RuntimeSettings:
    """How to read the server's runtime index.

    Attributes:
        digest_fields: JSON field names tried, in order, for the archive digest.
            Older servers publish ``md5``, newer ones ``sha256``/``checksum``.
        binary_path_fields: JSON field names tried for the java binary path
            relative to the extracted archive.
        download_style: ``query`` or ``path`` form of the download endpoint.
    """

    digest_fields: Tuple[str, ...] = DEFAULT_DIGEST_FIELDS
    binary_path_fields: Tuple[str, ...] = DEFAULT_BINARY_PATH_FIELDS
    download_style: str = DOWNLOAD_STYLE_QUERY


@dataclass
class LaunchConfig:
    """Everything the pipeline needs to provision and run one scan.

    Attributes:
        server_url: Base URL of the server, without trailing slash.
        token: Access token, handed to the engine through its environment.
        jvm_options: Extra flags placed before ``-jar`` on the java command line.
        ca_path: PEM bundle trusted for server TLS.
        properties: Scanner properties passed through to the engine.
        project_base_dir: Directory the scan runs against.
        log_level: Engine log level name (TRACE, DEBUG, INFO, WARN, ERROR).
        verbose: Forwarded to the engine as ``sonar.verbose``.
        http_timeout: Socket timeout for server calls, None for the default.
        runtime: Runtime index parsing settings.
        sources: Where the configuration was loaded from, for diagnostics.
    """

    server_url: str = ""
    token: Optional[str] = None
    jvm_options: List[str] = field(default_factory=list)
    ca_path: Optional[Path] = None
    properties: Dict[str, str] = field(default_factory=dict)
    project_base_dir: Path = field(default_factory=Path.cwd)
    log_level: str = "INFO"
    verbose: bool = False
    http_timeout: Optional[float] = None
    runtime: RuntimeSettings = field(default_factory=RuntimeSettings)
    sources: List[str] = field(default_factory=list)
