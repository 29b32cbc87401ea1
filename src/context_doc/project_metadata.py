"""Discover the repository URL a project declares in its manifest."""

from __future__ import annotations

import json
from pathlib import Path

import tomlkit
from tomlkit.exceptions import TOMLKitError

from context_doc.logging import logger

URL_KEYS_PRIORITY = ("repository", "source", "homepage")


def read_pyproject_repository_url(project_root: Path) -> str | None:
    """Read the repository URL from ``[project.urls]`` in ``pyproject.toml``.

    Keys are compared case-insensitively and tried in `URL_KEYS_PRIORITY` order.

    Args:
        project_root (Path): directory holding ``pyproject.toml``

    Returns:
        str | None: the URL, or None when the file or the entry is missing
    """
    pyproject = project_root / "pyproject.toml"
    if not pyproject.is_file():
        return None
    try:
        doc = tomlkit.parse(pyproject.read_text(encoding="utf-8"))
    except (OSError, TOMLKitError) as e:
        logger.warning("Cannot parse %s: %s", pyproject, e)
        return None
    project = doc.get("project")
    urls = project.get("urls") if isinstance(project, dict) else None
    if not isinstance(urls, dict):
        return None
    by_key = {str(k).strip().lower(): v for k, v in urls.items()}
    for key in URL_KEYS_PRIORITY:
        value = by_key.get(key)
        if isinstance(value, str) and value.strip():
            return str(value)
    return None


def read_package_json_repository_url(project_root: Path) -> str | None:
    """Read ``repository`` (string or ``{"url": ...}``) from ``package.json``.

    Args:
        project_root (Path): directory holding ``package.json``

    Returns:
        str | None: the URL, or None when the file or the field is missing
    """
    package_json = project_root / "package.json"
    if not package_json.is_file():
        return None
    try:
        data = json.loads(package_json.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning("Cannot parse %s: %s", package_json, e)
        return None
    if not isinstance(data, dict):
        return None
    repository = data.get("repository")
    if isinstance(repository, dict):
        repository = repository.get("url")
    if isinstance(repository, str) and repository.strip():
        return repository
    return None


def read_repository_url(project_root: str | Path) -> str | None:
    """Find the repository URL declared by the project, if any.

    ``pyproject.toml`` is consulted before ``package.json``.

    Args:
        project_root (str | Path): the project root

    Returns:
        str | None: the raw repository URL
    """
    root = Path(project_root)
    return read_pyproject_repository_url(root) or read_package_json_repository_url(root)
