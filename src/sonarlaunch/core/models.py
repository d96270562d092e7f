from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict


class OperatingSystem(str, Enum):
    """Operating system names as the server's runtime index spells them."""

    WINDOWS = "windows"
    LINUX = "linux"
    ALPINE = "alpine"
    MACOS = "macos"
    AIX = "aix"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ArtifactRef:
    """Identity of an immutable, cacheable artifact.

    The same digest and filename always denote byte-identical content.
    """

    digest: str
    filename: str


@dataclass(frozen=True)
class PlatformDescriptor:
    """Operating system and CPU architecture of the host.

    Attributes:
        os: Operating system family.
        arch: Architecture string as understood by the server.
    """

    os: OperatingSystem
    arch: str


@dataclass(frozen=True)
class RuntimeDescriptor:
    """Java runtime archive advertised by the server for one platform."""

    filename: str
    digest: str
    relative_binary_path: str
    digest_field: str = "sha256"

    @property
    def ref(self) -> ArtifactRef:
        return ArtifactRef(digest=self.digest, filename=self.filename)


@dataclass(frozen=True)
class EngineDescriptor:
    """Scanner engine jar advertised by the server index."""

    filename: str
    digest: str

    @property
    def ref(self) -> ArtifactRef:
        return ArtifactRef(digest=self.digest, filename=self.filename)

    @classmethod
    def parse(cls, line: str) -> "EngineDescriptor":
        """Parse a ``filename|digest`` index line.

        Only the first ``|`` separates the fields; the digest is everything
        after it.

        Raises:
            ValueError: If the line has no ``|`` or an empty field.
        """
        filename, sep, digest = line.strip().partition("|")
        if not sep or not filename or not digest:
            raise ValueError(f"Malformed scanner engine index line: {line!r}")
        return cls(filename=filename, digest=digest)


@dataclass
class ScanConfiguration:
    """Ordered scanner properties handed to the engine on standard input."""

    properties: Dict[str, str] = field(default_factory=dict)

    def to_payload(self) -> Dict[str, Any]:
        return {"scannerProperties": dict(self.properties)}


@dataclass(frozen=True)
class ProcessOutcome:
    """Terminal result of one scanner engine execution."""

    exit_code: int
    succeeded: bool
