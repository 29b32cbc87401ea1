from dataclasses import dataclass


@dataclass(frozen=True)
class SyncError(Exception):
    """Base exception for errors raised while syncing one source.

    Attributes:
        path: The path (or source marker such as ``.codex``) the failure relates to.
        reason: Human readable explanation, shown in the skip log line.
    """

    path: str
    reason: str

    def __str__(self) -> str:
        return f"{self.reason} ({self.path})"


@dataclass(frozen=True)
class SourceNotFoundError(SyncError):
    """Raised when no candidate directory satisfies a source resolver."""


@dataclass(frozen=True)
class FileSystemError(SyncError):
    """Raised when a file system primitive (read, list, copy, mkdir, stat) fails."""


@dataclass(frozen=True)
class DigestError(SyncError):
    """Raised when the project digest used to locate a cache cannot be computed."""
