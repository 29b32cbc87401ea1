"""Codex, Claude and Qwen conversation-log sources.

Each source resolves its directory from an ordered candidate list (first match
wins) and plugs a copy step into the shared `run_sync_source` pipeline:

- Codex: ``.jsonl`` session logs, kept only when one line belongs to the project;
- Claude: every ``.jsonl`` under ``<projects>/<slug-of-project-root>``;
- Qwen: every ``.json`` under ``tmp/<sha256-of-project-root>``.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

from context_doc.exceptions import SourceNotFoundError
from context_doc.file_manipulation import (
    EntryKind,
    collect_files,
    contains_matching_file,
    copy_files,
    find_first_matching,
    has_suffix,
    sha256_text,
)
from context_doc.knowledge import ProjectLocator, build_project_locator, lines_match_project
from context_doc.logging import logger
from context_doc.normalization import normalize_cwd
from context_doc.project_metadata import read_repository_url
from context_doc.sync import (
    KNOWLEDGE_DIR,
    SyncSource,
    create_filtered_source,
    resolve_project_root,
    run_sync_sources,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from context_doc.file_manipulation import FileSystem
    from context_doc.sync import SyncContext, SyncOutcome

CODEX_SOURCE_ENV = "CODEX_SOURCE_DIR"
QWEN_SOURCE_ENV = "QWEN_SOURCE_DIR"
CLAUDE_PROJECTS_ENV = "CLAUDE_PROJECTS_DIR"

is_jsonl = has_suffix(".jsonl")
is_json = has_suffix(".json")


def _absolute_candidates(context: SyncContext, candidates: Sequence[str | None]) -> list[str]:
    return [normalize_cwd(c, base=context.options.cwd) for c in candidates if c]


def meta_base(meta_root: str, marker: str) -> str:
    """Return ``meta_root`` when it already names ``marker``, else ``meta_root/marker``."""
    if meta_root.rstrip("/\\").endswith(marker):
        return meta_root
    return os.path.join(meta_root, marker)


# ------------------------------ Codex ------------------------------------


def codex_candidates(context: SyncContext) -> list[str]:
    """List the Codex source directories to try, highest priority first.

    Order: ``--source``, ``$CODEX_SOURCE_DIR``, the meta root, the project's
    ``.codex``, ``~/.codex``, then the ``.knowledge`` mirrors of both.

    Args:
        context (SyncContext): run context

    Returns:
        list[str]: absolute candidate directories
    """
    options = context.options
    home = context.env.home
    root = resolve_project_root(context)
    return _absolute_candidates(
        context,
        [
            options.source_dir,
            context.env.env_var(CODEX_SOURCE_ENV),
            meta_base(options.meta_root, ".codex") if options.meta_root else None,
            os.path.join(root, ".codex"),
            os.path.join(home, ".codex"),
            os.path.join(root, KNOWLEDGE_DIR, ".codex"),
            os.path.join(home, KNOWLEDGE_DIR, ".codex"),
        ],
    )


def resolve_codex_source_dir(context: SyncContext) -> str:
    """Pick the first Codex candidate that exists and holds at least one ``.jsonl``.

    Raises:
        SourceNotFoundError: if no candidate qualifies.

    Returns:
        str: the source directory
    """
    fs = context.fs
    candidates = codex_candidates(context)
    logger.debug("Codex source candidates: %s", ", ".join(candidates))

    def has_jsonl(candidate: str) -> bool:
        if not fs.exists(candidate) or fs.stat_entry(candidate).kind is not EntryKind.DIRECTORY:
            return False
        return contains_matching_file(fs, candidate, is_jsonl)

    found = find_first_matching(candidates, has_jsonl)
    if found is None:
        raise SourceNotFoundError(
            path=".codex",
            reason=f"No .jsonl files found in .codex candidates; checked: {', '.join(candidates)}",
        )
    return found


def resolve_locator(context: SyncContext) -> ProjectLocator:
    """Build the project locator, with the repository identity when one is known.

    ``--project-url`` wins over the URL declared in the project manifest.
    """
    root = resolve_project_root(context)
    repository_url = context.options.repository_url_override or read_repository_url(root)
    return build_project_locator(root, repository_url)


def file_matches_project(fs: FileSystem, file_path: str, locator: ProjectLocator) -> bool:
    """Return True when any line of an NDJSON file belongs to the project."""
    return lines_match_project(fs.read_text(file_path).split("\n"), locator)


def select_relevant_files(fs: FileSystem, files: Sequence[str], locator: ProjectLocator) -> list[str]:
    """Keep the files holding at least one record of the project."""
    return [f for f in files if file_matches_project(fs, f, locator)]


def copy_codex_files(context: SyncContext, source_dir: str, destination_dir: str) -> int:
    """Copy the Codex session logs that mention the project.

    Args:
        context (SyncContext): run context
        source_dir (str): resolved Codex directory
        destination_dir (str): mirror root

    Returns:
        int: number of files copied
    """
    locator = resolve_locator(context)
    files = collect_files(context.fs, source_dir, is_jsonl)
    relevant = select_relevant_files(context.fs, files, locator)
    return copy_files(context.fs, source_dir, destination_dir, relevant)


CODEX_SOURCE = SyncSource(
    name="Codex",
    dest_subdir=".codex",
    resolve_source=resolve_codex_source_dir,
    copy_relevant=copy_codex_files,
    resolve_destination=lambda context: context.options.destination_dir,
)


# ------------------------------ Claude -----------------------------------


def claude_project_slug(project_root: str) -> str:
    """Derive Claude's per-project directory name from the project root.

    Leading separators are dropped and every ``/`` or ``\\`` becomes ``-``;
    ``/home/me/app`` gives ``-home-me-app``.
    """
    return "-" + project_root.lstrip("/\\").replace("\\", "-").replace("/", "-")


def claude_candidates(context: SyncContext) -> list[str]:
    """List the Claude project directories to try, highest priority first.

    Each projects base (``--claude-projects``, ``$CLAUDE_PROJECTS_DIR``, the meta
    root, ``~/.claude/projects``) is joined with the project slug; the project's
    own ``.knowledge/.claude`` mirror comes last.

    Args:
        context (SyncContext): run context

    Returns:
        list[str]: absolute candidate directories
    """
    options = context.options
    root = resolve_project_root(context)
    slug = claude_project_slug(root)
    meta = None
    if options.meta_root:
        meta = os.path.join(meta_base(options.meta_root, ".claude"), "projects")
    bases = [
        options.claude_projects_root,
        context.env.env_var(CLAUDE_PROJECTS_ENV),
        meta,
        os.path.join(context.env.home, ".claude", "projects"),
    ]
    candidates = [os.path.join(base, slug) if base else None for base in bases]
    candidates.append(os.path.join(root, KNOWLEDGE_DIR, ".claude"))
    return _absolute_candidates(context, candidates)


def resolve_claude_project_dir(context: SyncContext) -> str:
    """Pick the first existing Claude project directory.

    Raises:
        SourceNotFoundError: if none exists.

    Returns:
        str: the source directory
    """
    candidates = claude_candidates(context)
    logger.debug("Claude source candidates: %s", ", ".join(candidates))
    found = find_first_matching(candidates, context.fs.exists)
    if found is None:
        raise SourceNotFoundError(
            path=".claude",
            reason=f"Claude project directory is missing; checked: {', '.join(candidates)}",
        )
    return found


CLAUDE_SOURCE = create_filtered_source(
    name="Claude",
    dest_subdir=".claude",
    resolve_source=resolve_claude_project_dir,
    is_relevant=is_jsonl,
    error_reason="Cannot traverse Claude project",
)


# ------------------------------ Qwen -------------------------------------


def qwen_project_hash(context: SyncContext) -> str:
    """SHA-256 hex digest of the canonical project root, Qwen's cache key."""
    return sha256_text(resolve_project_root(context))


def qwen_candidates(context: SyncContext, project_hash: str) -> list[str]:
    """List the Qwen cache directories to try, highest priority first.

    ``--qwen-source`` and ``$QWEN_SOURCE_DIR`` are taken as given; every other
    base gets ``tmp/<project_hash>`` appended.

    Args:
        context (SyncContext): run context
        project_hash (str): digest from `qwen_project_hash`

    Returns:
        list[str]: absolute candidate directories
    """
    options = context.options
    home = context.env.home
    root = resolve_project_root(context)
    meta = options.meta_root
    return _absolute_candidates(
        context,
        [
            options.qwen_source_dir,
            context.env.env_var(QWEN_SOURCE_ENV),
            os.path.join(meta_base(meta, ".qwen"), "tmp", project_hash) if meta else None,
            os.path.join(root, ".qwen", "tmp", project_hash),
            os.path.join(root, KNOWLEDGE_DIR, ".qwen", "tmp", project_hash),
            os.path.join(meta, KNOWLEDGE_DIR, ".qwen", "tmp", project_hash) if meta else None,
            os.path.join(home, ".qwen", "tmp", project_hash),
            os.path.join(home, KNOWLEDGE_DIR, ".qwen", "tmp", project_hash),
        ],
    )


def resolve_qwen_source_dir(context: SyncContext) -> str:
    """Pick the first existing Qwen cache directory for this project.

    Raises:
        SourceNotFoundError: if none exists.

    Returns:
        str: the source directory
    """
    project_hash = qwen_project_hash(context)
    candidates = qwen_candidates(context, project_hash)
    logger.debug("Qwen source candidates: %s", ", ".join(candidates))
    found = find_first_matching(candidates, context.fs.exists)
    if found is None:
        raise SourceNotFoundError(
            path=".qwen",
            reason=f"Qwen source directory is missing for hash {project_hash}; checked: {', '.join(candidates)}",
        )
    return found


QWEN_SOURCE = create_filtered_source(
    name="Qwen",
    dest_subdir=".qwen",
    resolve_source=resolve_qwen_source_dir,
    is_relevant=is_json,
    error_reason="Cannot traverse Qwen directory",
)


DEFAULT_SOURCES: tuple[SyncSource, ...] = (CODEX_SOURCE, CLAUDE_SOURCE, QWEN_SOURCE)


def build_sync_program(context: SyncContext) -> list[SyncOutcome]:
    """Sync Codex, Claude and Qwen, in that order.

    Args:
        context (SyncContext): run context

    Returns:
        list[SyncOutcome]: one outcome per source
    """
    return run_sync_sources(context, DEFAULT_SOURCES)
