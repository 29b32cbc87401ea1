"""Decide whether a conversation log record belongs to the current project.

Records are loosely typed JSON objects. Two signals are read from them:

- the working directory (``cwd``), at top level or inside ``payload``;
- the repository identity (``git.repository_url`` / ``git.repositoryUrl``), at top
  level or inside ``payload``.

A record matches when its working directory lies inside the project root, or when
the locator carries a repository identity and the record's identity is the same.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, JsonValue, TypeAdapter, ValidationError

from context_doc.normalization import is_within_root, normalize_cwd, normalize_repository_url

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

_JSON_VALUE = TypeAdapter(JsonValue)
_REPOSITORY_KEYS = ("repository_url", "repositoryUrl")


class ProjectLocator(BaseModel):
    """Canonical reference the records are matched against."""

    model_config = ConfigDict(frozen=True)

    normalized_cwd: str = Field(..., description="Canonical absolute project root.")
    normalized_repository_url: str | None = Field(
        default=None,
        description="Canonical repository identity; None disables identity matching.",
    )

    def is_within_root(self, candidate: str) -> bool:
        """Check whether a raw working directory falls inside the project root.

        Args:
            candidate (str): working directory taken from a record

        Returns:
            bool: True when the canonical candidate is the root or below it
        """
        return is_within_root(self.normalized_cwd, normalize_cwd(candidate, base=self.normalized_cwd))


class RecordMetadata(BaseModel):
    """Project evidence extracted from one record."""

    model_config = ConfigDict(frozen=True)

    cwd: str | None = None
    repository_url: str | None = None


def build_project_locator(project_root: str, repository_url: str | None = None) -> ProjectLocator:
    """Build a locator from a project root and an optional repository identity.

    Args:
        project_root (str): project root, canonicalised here
        repository_url (str | None): raw repository URL; blank values are ignored

    Returns:
        ProjectLocator: the canonical locator
    """
    identity = normalize_repository_url(repository_url) if repository_url and repository_url.strip() else None
    return ProjectLocator(
        normalized_cwd=normalize_cwd(project_root),
        normalized_repository_url=identity or None,
    )


def _pick_string(record: Mapping[str, JsonValue], key: str) -> str | None:
    value = record.get(key)
    return value if isinstance(value, str) else None


def _pick_record(record: Mapping[str, JsonValue], key: str) -> dict[str, JsonValue] | None:
    value = record.get(key)
    return value if isinstance(value, dict) else None


def _pick_git_repository(record: Mapping[str, JsonValue]) -> str | None:
    git = _pick_record(record, "git")
    if git is None:
        return None
    for key in _REPOSITORY_KEYS:
        found = _pick_string(git, key)
        if found is not None:
            return found
    return None


def extract_cwd(record: Mapping[str, JsonValue]) -> str | None:
    """Return the record's working directory, preferring the top-level field.

    Args:
        record (Mapping[str, JsonValue]): a JSON object

    Returns:
        str | None: ``cwd`` or ``payload.cwd`` when either is a string
    """
    found = _pick_string(record, "cwd")
    if found is not None:
        return found
    payload = _pick_record(record, "payload")
    return _pick_string(payload, "cwd") if payload is not None else None


def extract_repository_url(record: Mapping[str, JsonValue]) -> str | None:
    """Return the record's repository URL, preferring the top-level ``git`` object.

    Args:
        record (Mapping[str, JsonValue]): a JSON object

    Returns:
        str | None: ``git.repository_url`` (or ``repositoryUrl``), else the same
            under ``payload``
    """
    found = _pick_git_repository(record)
    if found is not None:
        return found
    payload = _pick_record(record, "payload")
    return _pick_git_repository(payload) if payload is not None else None


def to_metadata(value: JsonValue) -> RecordMetadata:
    """Extract project evidence from any JSON value.

    Args:
        value (JsonValue): a parsed JSON value

    Returns:
        RecordMetadata: empty metadata for anything that is not a JSON object
    """
    if not isinstance(value, dict):
        return RecordMetadata()
    return RecordMetadata(cwd=extract_cwd(value), repository_url=extract_repository_url(value))


def metadata_matches(metadata: RecordMetadata, locator: ProjectLocator) -> bool:
    """Apply the membership rule to extracted metadata.

    Args:
        metadata (RecordMetadata): evidence from one record
        locator (ProjectLocator): the project reference

    Returns:
        bool: True when the cwd is inside the root or the repository identities agree
    """
    if metadata.cwd is not None and locator.is_within_root(metadata.cwd):
        return True
    if locator.normalized_repository_url is None or metadata.repository_url is None:
        return False
    return normalize_repository_url(metadata.repository_url) == locator.normalized_repository_url


def value_matches_project(value: JsonValue, locator: ProjectLocator) -> bool:
    """Check whether a parsed JSON value belongs to the project.

    Args:
        value (JsonValue): a parsed record
        locator (ProjectLocator): the project reference

    Returns:
        bool: True when the record carries matching project evidence
    """
    return metadata_matches(to_metadata(value), locator)


def parse_json_line(line: str) -> JsonValue | None:
    """Parse one NDJSON line, returning None when it is not valid JSON."""
    try:
        return _JSON_VALUE.validate_json(line)
    except ValidationError:
        return None


def line_matches_project(line: str, locator: ProjectLocator) -> bool:
    """Check a single raw line; blank and malformed lines never match."""
    stripped = line.strip()
    if not stripped:
        return False
    parsed = parse_json_line(stripped)
    if parsed is None:
        return False
    return value_matches_project(parsed, locator)


def lines_match_project(lines: Iterable[str], locator: ProjectLocator) -> bool:
    """Return True as soon as one line of a log file matches the project."""
    return any(line_matches_project(line, locator) for line in lines)
