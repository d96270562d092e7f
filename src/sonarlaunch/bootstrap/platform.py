"""Platform detection for runtime provisioning.

Detects OS and architecture in the vocabulary the server's runtime index uses.
"""

from __future__ import annotations

import platform
import re
from pathlib import Path
from typing import Iterable, Optional

from sonarlaunch.core.logging import get_logger
from sonarlaunch.core.models import OperatingSystem, PlatformDescriptor

LOGGER = get_logger(__name__)

OS_RELEASE_FILES = (Path("/etc/os-release"), Path("/usr/lib/os-release"))

_OS_ID_PATTERN = re.compile(r"^ID=([^\r\n]*)", re.MULTILINE)

# platform.system() values, lower-cased
_OS_MAP = {
    "windows": OperatingSystem.WINDOWS,
    "darwin": OperatingSystem.MACOS,
    "aix": OperatingSystem.AIX,
    "freebsd": OperatingSystem.LINUX,
    "openbsd": OperatingSystem.LINUX,
    "sunos": OperatingSystem.LINUX,
}

# Architecture normalization map
_ARCH_MAP = {
    "x86_64": "x64",
    "amd64": "x64",
    "x64": "x64",
    "arm64": "aarch64",
    "aarch64": "aarch64",
}


def normalize_arch(machine: str) -> str:
    """Normalize an architecture string to the server's naming.

    Unknown architectures are passed through lower-cased.
    """
    lowered = machine.lower()
    return _ARCH_MAP.get(lowered, lowered)


def is_alpine_linux(release_files: Iterable[Path] = OS_RELEASE_FILES) -> bool:
    """Check whether the os-release file identifies Alpine Linux."""
    content: Optional[str] = None
    for release_file in release_files:
        try:
            content = release_file.read_text(errors="replace")
            break
        except OSError:
            continue
    if content is None:
        LOGGER.warning("Failed to read /etc/os-release or /usr/lib/os-release")
        return False
    match = _OS_ID_PATTERN.search(content)
    return bool(match) and match.group(1).strip().strip('"') == "alpine"


def detect_os(system: Optional[str] = None) -> OperatingSystem:
    """Detect the current operating system.

    Args:
        system: Value of platform.system(); detected when omitted.
    """
    name = (system if system is not None else platform.system()).lower()
    if name == "linux":
        return OperatingSystem.ALPINE if is_alpine_linux() else OperatingSystem.LINUX
    return _OS_MAP.get(name, OperatingSystem.UNKNOWN)


def get_platform_info() -> PlatformDescriptor:
    """Detect and return current platform information."""
    return PlatformDescriptor(os=detect_os(), arch=normalize_arch(platform.machine()))
