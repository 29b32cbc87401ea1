from __future__ import annotations

import hashlib
import os
import shutil
import stat
from enum import StrEnum, auto
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from context_doc.exceptions import DigestError, FileSystemError
from context_doc.logging import logger

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence


class EntryKind(StrEnum):
    """Classification of a directory entry during traversal."""

    FILE = auto()
    DIRECTORY = auto()
    OTHER = auto()


class DirectoryEntry(BaseModel):
    """One child of a listed directory.

    Attributes:
        name: Base name of the entry.
        path: Absolute path of the entry.
        kind: File, directory, or other. Entries that cannot be stat-ed (vanished,
            dangling or looping links, no permission) are reported as ``other``.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Entry base name")
    path: str = Field(..., description="Absolute entry path")
    kind: EntryKind = Field(..., description="Entry classification")


def entry_kind_from_mode(mode: int) -> EntryKind:
    """Map a ``st_mode`` value to an entry kind.

    Args:
        mode (int): the mode returned by ``os.stat``

    Returns:
        EntryKind: directory, file, or other for sockets, fifos and devices
    """
    if stat.S_ISDIR(mode):
        return EntryKind.DIRECTORY
    if stat.S_ISREG(mode):
        return EntryKind.FILE
    return EntryKind.OTHER


class FileSystem:
    """Blocking file system primitives that report failures as `FileSystemError`.

    Sync code receives an instance instead of calling ``os``/``shutil`` directly,
    so tests can substitute or wrap it.
    """

    def read_text(self, path: str) -> str:
        """Read a UTF-8 file, replacing undecodable bytes."""
        try:
            return Path(path).read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            raise FileSystemError(path=path, reason="Cannot read file") from e

    def stat_entry(self, path: str) -> DirectoryEntry:
        """Stat one path (following links) and classify it.

        A failing stat never aborts a traversal: the entry is logged at debug
        level and reported as ``other``.

        Returns:
            DirectoryEntry: the classified entry; ``other`` when it cannot be stat-ed
        """
        name = os.path.basename(path)
        try:
            st = os.stat(path)
        except OSError as e:
            logger.debug("Cannot stat directory entry %s: %s", path, e)
            return DirectoryEntry(name=name, path=path, kind=EntryKind.OTHER)
        return DirectoryEntry(name=name, path=path, kind=entry_kind_from_mode(st.st_mode))

    def read_directory(self, path: str) -> list[DirectoryEntry]:
        """List a directory, sorted by name.

        Raises:
            FileSystemError: if the directory itself cannot be listed.

        Returns:
            list[DirectoryEntry]: one entry per child
        """
        try:
            names = sorted(os.listdir(path))
        except OSError as e:
            raise FileSystemError(path=path, reason="Cannot read directory") from e
        return [self.stat_entry(os.path.join(path, name)) for name in names]

    def make_directory(self, path: str) -> None:
        """Create a directory and its parents; existing directories are fine."""
        try:
            Path(path).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FileSystemError(path=path, reason="Cannot create destination directory structure") from e

    def copy_file(self, source: str, destination: str) -> None:
        """Copy file bytes, overwriting the destination."""
        try:
            shutil.copyfile(source, destination)
        except OSError as e:
            raise FileSystemError(path=source, reason="Cannot copy file into destination") from e

    def exists(self, path: str) -> bool:
        """Check whether a path exists (dangling links count as missing)."""
        try:
            os.stat(path)
        except (FileNotFoundError, NotADirectoryError):
            return False
        except OSError as e:
            raise FileSystemError(path=path, reason="Cannot check path existence") from e
        return True


def has_suffix(suffix: str) -> Callable[[DirectoryEntry], bool]:
    """Build a traversal filter keeping files whose name ends with ``suffix``."""

    def predicate(entry: DirectoryEntry) -> bool:
        return entry.kind is EntryKind.FILE and entry.path.endswith(suffix)

    return predicate


def collect_files(
    fs: FileSystem,
    root: str,
    is_relevant: Callable[[DirectoryEntry], bool],
) -> list[str]:
    """Recursively collect the files under ``root`` accepted by ``is_relevant``.

    Directories are walked depth-first in listing order. Entries of kind ``other``
    (including dangling links) are skipped silently.

    Args:
        fs (FileSystem): file system service
        root (str): directory to walk
        is_relevant (Callable[[DirectoryEntry], bool]): filter applied to file
            entries only

    Raises:
        FileSystemError: if ``root`` or one of its subdirectories cannot be listed.

    Returns:
        list[str]: absolute paths of the accepted files
    """
    collected: list[str] = []
    for entry in fs.read_directory(root):
        if entry.kind is EntryKind.DIRECTORY:
            collected.extend(collect_files(fs, entry.path, is_relevant))
        elif entry.kind is EntryKind.FILE and is_relevant(entry):
            collected.append(entry.path)
    return collected


def contains_matching_file(
    fs: FileSystem,
    root: str,
    is_relevant: Callable[[DirectoryEntry], bool],
) -> bool:
    """Return True as soon as one file below ``root`` is accepted by ``is_relevant``."""
    for entry in fs.read_directory(root):
        if entry.kind is EntryKind.FILE and is_relevant(entry):
            return True
        if entry.kind is EntryKind.DIRECTORY and contains_matching_file(fs, entry.path, is_relevant):
            return True
    return False


def copy_file_preserving_relative_path(
    fs: FileSystem,
    source_root: str,
    destination_root: str,
    file_path: str,
) -> str:
    """Copy ``file_path`` to the same relative location under ``destination_root``.

    Args:
        fs (FileSystem): file system service
        source_root (str): root ``file_path`` lives under
        destination_root (str): root of the mirror
        file_path (str): absolute path of the file to copy

    Returns:
        str: the path written
    """
    relative = os.path.relpath(file_path, source_root)
    target = os.path.join(destination_root, relative)
    fs.make_directory(os.path.dirname(target))
    fs.copy_file(file_path, target)
    return target


def copy_files(
    fs: FileSystem,
    source_root: str,
    destination_root: str,
    files: Sequence[str],
) -> int:
    """Mirror every file in ``files`` and return how many were copied."""
    for file_path in files:
        copy_file_preserving_relative_path(fs, source_root, destination_root, file_path)
    return len(files)


def find_first_matching(
    candidates: Sequence[str],
    matches: Callable[[str], bool],
) -> str | None:
    """Return the first candidate accepted by ``matches``, or None."""
    for candidate in candidates:
        if matches(candidate):
            return candidate
    return None


def sha256_text(value: str) -> str:
    """Compute the SHA-256 hex digest of a UTF-8 string.

    Raises:
        DigestError: if the value cannot be encoded.

    Returns:
        str: 64 lower-case hexadecimal characters
    """
    try:
        data = value.encode("utf-8")
    except UnicodeEncodeError as e:
        logger.warning("Cannot encode value for digest: %s", e)
        raise DigestError(path=value, reason="Crypto digest failed") from e
    return hashlib.sha256(data).hexdigest()
