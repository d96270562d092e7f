"""Archive extraction for downloaded artifacts.

Supports ``.tar.gz``/``.tgz`` (streamed, one member at a time) and ``.zip``
(the default for any other extension). Extraction is not transactional: a
failure partway through leaves whatever was already written in place.
"""

from __future__ import annotations

import logging
import os
import shutil
import stat
import tarfile
import zipfile
from pathlib import Path
from typing import Optional

from sonarlaunch.core.errors import ExtractionError
from sonarlaunch.core.logging import get_logger

TAR_GZ_SUFFIXES = (".tar.gz", ".tgz")


def is_tar_gz(archive_path: Path) -> bool:
    return archive_path.name.lower().endswith(TAR_GZ_SUFFIXES)


def _safe_target(dest_dir: Path, member_name: str) -> Path:
    """Resolve member_name under dest_dir, rejecting path traversal."""
    root = dest_dir.resolve()
    target = (root / member_name).resolve()
    if target != root and not target.is_relative_to(root):
        raise ExtractionError(f"Unsafe path in archive: {member_name}")
    return target


class ArchiveExtractor:
    """Unpacks runtime archives into the cache."""

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._logger = logger or get_logger(__name__)

    def extract(self, archive_path: Path, dest_dir: Path) -> None:
        """Extract archive_path into dest_dir, dispatching on the extension.

        dest_dir is created only once the archive opened and its first entry
        is written, so an unreadable archive leaves no directory behind.

        Raises:
            ExtractionError: On a corrupt archive, unsafe member path or I/O
                failure. dest_dir may be partially populated afterwards.
        """
        self._logger.info(f"Extracting {archive_path} to {dest_dir}")
        try:
            if is_tar_gz(archive_path):
                self._extract_tarball(archive_path, dest_dir)
            else:
                self._extract_zip(archive_path, dest_dir)
        except ExtractionError as e:
            self._logger.error(f"Error extracting {archive_path}: {e}")
            raise
        except (tarfile.TarError, zipfile.BadZipFile, EOFError, OSError) as e:
            self._logger.error(f"Error extracting {archive_path}: {e}")
            raise ExtractionError(f"Failed to extract {archive_path}: {e}") from e
        self._logger.info(f"Extraction of {archive_path.name} complete")

    def _extract_tarball(self, archive_path: Path, dest_dir: Path) -> None:
        # "r|gz" reads the archive as a forward-only stream.
        with tarfile.open(archive_path, mode="r|gz") as tar:
            for member in tar:
                target = _safe_target(dest_dir, member.name)
                if member.isdir():
                    target.mkdir(parents=True, exist_ok=True)
                elif member.isfile():
                    target.parent.mkdir(parents=True, exist_ok=True)
                    source = tar.extractfile(member)
                    if source is None:
                        continue
                    with source, open(target, "wb") as out:
                        shutil.copyfileobj(source, out)
                    _apply_mode(target, member.mode)
                elif member.issym():
                    self._extract_symlink(dest_dir, target, member)
                elif member.islnk():
                    linked = _safe_target(dest_dir, member.linkname)
                    target.parent.mkdir(parents=True, exist_ok=True)
                    shutil.copy2(linked, target)
                else:
                    self._logger.debug(f"Skipping special archive member {member.name}")

    def _extract_symlink(self, dest_dir: Path, target: Path, member: tarfile.TarInfo) -> None:
        # Link targets are relative to the link's directory.
        _safe_target(dest_dir, os.path.join(os.path.dirname(member.name), member.linkname))
        target.parent.mkdir(parents=True, exist_ok=True)
        if target.is_symlink() or target.exists():
            target.unlink()
        os.symlink(member.linkname, target)

    def _extract_zip(self, archive_path: Path, dest_dir: Path) -> None:
        with zipfile.ZipFile(archive_path, "r") as zf:
            infos = zf.infolist()
            for info in infos:
                _safe_target(dest_dir, info.filename)
            dest_dir.mkdir(parents=True, exist_ok=True)
            zf.extractall(dest_dir)
            for info in infos:
                mode = info.external_attr >> 16
                # Symlink entries are extracted as plain files holding the link target
                if mode and not info.is_dir() and not stat.S_ISLNK(mode):
                    _apply_mode(dest_dir / info.filename, mode)


def _apply_mode(path: Path, mode: int) -> None:
    """Restore the permission bits recorded in the archive."""
    permissions = mode & 0o777
    if permissions and os.name != "nt":
        path.chmod(permissions)
