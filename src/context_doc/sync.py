from __future__ import annotations

import os
from collections.abc import Callable
from enum import StrEnum, auto
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from context_doc.exceptions import FileSystemError, SyncError
from context_doc.file_manipulation import FileSystem, collect_files, copy_files
from context_doc.logging import logger
from context_doc.normalization import normalize_cwd
from context_doc.settings import RuntimeEnv, SyncOptions

if TYPE_CHECKING:
    from collections.abc import Sequence

    from context_doc.file_manipulation import DirectoryEntry

KNOWLEDGE_DIR = ".knowledge"


class SyncContext(BaseModel):
    """Everything a sync run reads: options, process snapshot and file system."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    options: SyncOptions
    env: RuntimeEnv
    fs: FileSystem = Field(default_factory=FileSystem)


ResolveSourceFn = Callable[[SyncContext], str]
CopyFn = Callable[[SyncContext, str, str], int]
ResolveDestinationFn = Callable[[SyncContext], str | None]


class SyncSource(BaseModel):
    """Static description of one conversation-log source.

    Attributes:
        name: Display name used in log lines.
        dest_subdir: Subdirectory of ``.knowledge`` receiving the copies.
        resolve_source: Returns the source directory or raises `SyncError`.
        copy_relevant: Copies the relevant files and returns how many were copied.
        resolve_destination: Optional override of the default destination.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    name: str
    dest_subdir: str
    resolve_source: ResolveSourceFn
    copy_relevant: CopyFn
    resolve_destination: ResolveDestinationFn | None = None


class SyncStatus(StrEnum):
    """Final state of one source in a sync run."""

    COPIED = auto()
    SKIPPED_SAME_PATH = auto()
    NOT_FOUND = auto()


class SyncOutcome(BaseModel):
    """What happened to one source."""

    model_config = ConfigDict(frozen=True)

    source: str
    status: SyncStatus
    copied: int = 0
    source_dir: str | None = None
    destination: str | None = None
    reason: str = ""


def resolve_project_root(context: SyncContext) -> str:
    """Return the canonical project root (``--project-root`` or the working directory)."""
    options = context.options
    return normalize_cwd(options.project_root or options.cwd, base=options.cwd)


def default_destination(context: SyncContext, dest_subdir: str) -> str:
    """Return ``<project-root>/.knowledge/<dest_subdir>``."""
    return os.path.join(resolve_project_root(context), KNOWLEDGE_DIR, dest_subdir)


def copy_filtered_files(
    context: SyncContext,
    source_root: str,
    destination_root: str,
    is_relevant: Callable[[DirectoryEntry], bool],
    error_reason: str,
) -> int:
    """Mirror every file below ``source_root`` accepted by ``is_relevant``.

    Raises:
        FileSystemError: with ``error_reason`` when traversal or copying fails.

    Returns:
        int: number of files copied
    """
    try:
        files = collect_files(context.fs, source_root, is_relevant)
        return copy_files(context.fs, source_root, destination_root, files)
    except FileSystemError as e:
        raise FileSystemError(path=source_root, reason=f"{error_reason}: {e.reason}") from e


def create_filtered_source(
    *,
    name: str,
    dest_subdir: str,
    resolve_source: ResolveSourceFn,
    is_relevant: Callable[[DirectoryEntry], bool],
    error_reason: str,
) -> SyncSource:
    """Build a source whose copy step is a plain filtered mirror."""

    def copy_relevant(context: SyncContext, source_dir: str, destination_dir: str) -> int:
        return copy_filtered_files(context, source_dir, destination_dir, is_relevant, error_reason)

    return SyncSource(
        name=name,
        dest_subdir=dest_subdir,
        resolve_source=resolve_source,
        copy_relevant=copy_relevant,
    )


def resolve_destination(source: SyncSource, context: SyncContext) -> str:
    """Return the canonical destination of ``source``, honouring its override."""
    override = source.resolve_destination(context) if source.resolve_destination else None
    if override:
        return normalize_cwd(override, base=context.options.cwd)
    return default_destination(context, source.dest_subdir)


def _run_pipeline(source: SyncSource, context: SyncContext) -> SyncOutcome:
    source_dir = normalize_cwd(source.resolve_source(context), base=context.options.cwd)
    destination = resolve_destination(source, context)

    if source_dir == destination:
        logger.info(
            "%s: source equals destination; skipping copy to avoid duplicates",
            source.name,
            source=source.name,
            source_dir=source_dir,
            destination=destination,
        )
        return SyncOutcome(
            source=source.name,
            status=SyncStatus.SKIPPED_SAME_PATH,
            source_dir=source_dir,
            destination=destination,
        )

    context.fs.make_directory(destination)
    copied = source.copy_relevant(context, source_dir, destination)
    logger.info(
        "%s: copied %d files from %s to %s",
        source.name,
        copied,
        source_dir,
        destination,
        source=source.name,
        source_dir=source_dir,
        destination=destination,
        copied=copied,
    )
    return SyncOutcome(
        source=source.name,
        status=SyncStatus.COPIED,
        copied=copied,
        source_dir=source_dir,
        destination=destination,
    )


def run_sync_source(source: SyncSource, context: SyncContext) -> SyncOutcome:
    """Resolve, select and copy one source, turning any `SyncError` into a skip.

    Args:
        source (SyncSource): the source to sync
        context (SyncContext): run context

    Returns:
        SyncOutcome: the result; sync failures are logged, never raised
    """
    try:
        return _run_pipeline(source, context)
    except SyncError as e:
        logger.info(
            "%s: source not found; skipped syncing (%s)",
            source.name,
            e.reason,
            source=source.name,
            path=e.path,
        )
        return SyncOutcome(source=source.name, status=SyncStatus.NOT_FOUND, reason=e.reason)


def run_sync_sources(context: SyncContext, sources: Sequence[SyncSource]) -> list[SyncOutcome]:
    """Sync each source in order; one failing source never stops the others."""
    return [run_sync_source(source, context) for source in sources]
