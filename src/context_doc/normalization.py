"""Canonical forms for working directories and repository identities.

Both normalisations are pure and idempotent, so canonical values can be compared
with plain string equality.
"""

from __future__ import annotations

import os
import re
from pathlib import PurePath

_VCS_PREFIX = re.compile(r"^git\+")
_ARCHIVE_SUFFIX = re.compile(r"\.git$")
_SCP_GITHUB = re.compile(r"^git@github\.com:")
_SSH_GITHUB = re.compile(r"^ssh://git@github\.com/")
_CANONICAL_GITHUB = "https://github.com/"


def normalize_cwd(value: str, base: str | None = None) -> str:
    """Resolve ``.``, ``..`` and redundant separators in a working-directory path.

    The resolution is purely lexical: symlinks are not followed and the file system
    is never touched.

    Args:
        value (str): the raw path, absolute or relative
        base (str | None): directory relative paths are resolved against; the
            process working directory when omitted

    Returns:
        str: the canonical absolute path
    """
    if base is not None and not os.path.isabs(value):
        value = os.path.join(base, value)
    return os.path.abspath(value)


def _normalize_repository_url_once(value: str) -> str:
    out = value.strip().lower()
    out = _VCS_PREFIX.sub("", out)
    out = _ARCHIVE_SUFFIX.sub("", out)
    out = _SCP_GITHUB.sub(_CANONICAL_GITHUB, out)
    return _SSH_GITHUB.sub(_CANONICAL_GITHUB, out)


def normalize_repository_url(value: str) -> str:
    """Turn a repository URL into its canonical identity.

    Strips a leading ``git+`` and a trailing ``.git``, rewrites the
    ``git@github.com:`` and ``ssh://git@github.com/`` forms to
    ``https://github.com/`` and lower-cases the result. The rewrite is repeated
    until nothing changes, so inputs such as ``repo.git.git`` still reach a fixed
    point.

    Args:
        value (str): the raw repository URL or name

    Returns:
        str: the canonical identity
    """
    current = value
    while True:
        normalized = _normalize_repository_url_once(current)
        if normalized == current:
            return normalized
        current = normalized


def is_within_root(root: str, candidate: str) -> bool:
    """Check whether ``candidate`` equals ``root`` or lies below it.

    Both arguments are expected in canonical form (see `normalize_cwd`).

    Args:
        root (str): canonical project root
        candidate (str): canonical path to test

    Returns:
        bool: True when the relative path from root to candidate does not climb
            out of root
    """
    root_path = PurePath(root)
    candidate_path = PurePath(candidate)
    return candidate_path == root_path or candidate_path.is_relative_to(root_path)
