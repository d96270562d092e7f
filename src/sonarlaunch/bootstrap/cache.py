"""Content-addressed artifact cache.

Layout::

    <root>/<digest>/<filename>             - downloaded artifact
    <root>/<digest>/<filename>_extracted/  - unpacked archive

Entries are created once and never mutated or evicted. There is no locking:
two processes materializing the same ref race, relying on identical content
per ref.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from sonarlaunch.core.models import ArtifactRef

UNARCHIVE_SUFFIX = "_extracted"


class ArtifactCache:
    """Maps artifact refs to deterministic paths under a cache root."""

    def __init__(self, root: Path) -> None:
        self._root = root

    @property
    def root(self) -> Path:
        return self._root

    def materialize(self, ref: ArtifactRef, extracted: bool = False) -> Path:
        """Compose the path an artifact lives at, whether or not it exists."""
        name = ref.filename + UNARCHIVE_SUFFIX if extracted else ref.filename
        return self._root / ref.digest / name

    def locate(self, ref: ArtifactRef, extracted: bool = False) -> Optional[Path]:
        """Return the artifact's path if it exists on disk, else None.

        A download still in progress at that path is indistinguishable from
        a finished one.
        """
        path = self.materialize(ref, extracted=extracted)
        if path.exists():
            return path
        return None
