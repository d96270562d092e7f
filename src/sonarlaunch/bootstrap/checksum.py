"""Digest verification for downloaded artifacts."""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Optional

from sonarlaunch.core.logging import get_logger

LOGGER = get_logger(__name__)

_CHUNK_SIZE = 1024 * 1024

# Hex digest length -> hashlib algorithm name
_ALGORITHMS_BY_LENGTH = {
    32: "md5",
    40: "sha1",
    64: "sha256",
}


def algorithm_for_digest(digest: str) -> str:
    """Infer the hash algorithm from the length of a hex digest.

    Raises:
        ValueError: If no known algorithm produces digests of that length.
    """
    try:
        return _ALGORITHMS_BY_LENGTH[len(digest)]
    except KeyError:
        raise ValueError(f"Cannot infer hash algorithm for digest {digest!r}") from None


def compute_digest(file_path: Path, algorithm: str) -> str:
    """Compute the hex digest of a file, reading it in chunks."""
    hasher = hashlib.new(algorithm)
    with open(file_path, "rb") as f:
        for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
            hasher.update(chunk)
    return hasher.hexdigest()


class ChecksumVerifier:
    """Compares a file's digest against the value the server named it by."""

    def __init__(self, algorithm: Optional[str] = None) -> None:
        """Initialize the verifier.

        Args:
            algorithm: hashlib algorithm name. When None, the algorithm is
                inferred from each expected digest's length.
        """
        self._algorithm = algorithm

    def verify(self, file_path: Path, expected_digest: str) -> bool:
        """Return True when the file's digest equals expected_digest.

        The file is never modified or removed.
        """
        algorithm = self._algorithm
        if algorithm is None:
            try:
                algorithm = algorithm_for_digest(expected_digest)
            except ValueError as e:
                LOGGER.warning(f"{e}; treating {file_path} as not matching")
                return False
        actual = compute_digest(file_path, algorithm)
        if actual.lower() != expected_digest.lower():
            LOGGER.debug(
                f"{algorithm} mismatch for {file_path}: expected {expected_digest}, got {actual}"
            )
            return False
        return True
