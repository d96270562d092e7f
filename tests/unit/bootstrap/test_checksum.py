"""Tests for checksum verification."""

from __future__ import annotations

import hashlib
from pathlib import Path

import pytest

from sonarlaunch.bootstrap.checksum import (
    ChecksumVerifier,
    algorithm_for_digest,
    compute_digest,
)


@pytest.fixture
def artifact(tmp_path: Path) -> Path:
    path = tmp_path / "engine.jar"
    path.write_bytes(b"scanner engine bytes" * 1000)
    return path


class TestAlgorithmForDigest:
    """Tests for inferring the hash algorithm."""

    def test_md5_length(self) -> None:
        assert algorithm_for_digest("a" * 32) == "md5"

    def test_sha1_length(self) -> None:
        assert algorithm_for_digest("a" * 40) == "sha1"

    def test_sha256_length(self) -> None:
        assert algorithm_for_digest("a" * 64) == "sha256"

    def test_unknown_length_raises(self) -> None:
        with pytest.raises(ValueError, match="Cannot infer"):
            algorithm_for_digest("abc123")


class TestChecksumVerifier:
    """Tests for ChecksumVerifier.verify."""

    def test_matching_md5(self, artifact: Path) -> None:
        digest = hashlib.md5(artifact.read_bytes()).hexdigest()
        assert ChecksumVerifier().verify(artifact, digest) is True

    def test_matching_sha256(self, artifact: Path) -> None:
        digest = hashlib.sha256(artifact.read_bytes()).hexdigest()
        assert ChecksumVerifier().verify(artifact, digest) is True

    def test_comparison_ignores_case(self, artifact: Path) -> None:
        digest = hashlib.md5(artifact.read_bytes()).hexdigest().upper()
        assert ChecksumVerifier().verify(artifact, digest) is True

    def test_mismatch_returns_false(self, artifact: Path) -> None:
        assert ChecksumVerifier().verify(artifact, "0" * 32) is False

    def test_mismatch_keeps_file(self, artifact: Path) -> None:
        ChecksumVerifier().verify(artifact, "0" * 32)
        assert artifact.exists()

    def test_explicit_algorithm(self, artifact: Path) -> None:
        digest = hashlib.sha1(artifact.read_bytes()).hexdigest()
        assert ChecksumVerifier(algorithm="sha1").verify(artifact, digest) is True

    def test_explicit_algorithm_skips_inference(self, artifact: Path) -> None:
        # An arbitrary-length expected value is compared, not rejected
        assert ChecksumVerifier(algorithm="md5").verify(artifact, "abc123") is False

    def test_unrecognized_digest_does_not_match(self, artifact: Path) -> None:
        assert ChecksumVerifier().verify(artifact, "abc123") is False


def test_compute_digest_reads_large_files(tmp_path: Path) -> None:
    path = tmp_path / "big.bin"
    data = bytes(range(256)) * 20000
    path.write_bytes(data)
    assert compute_digest(path, "sha256") == hashlib.sha256(data).hexdigest()
