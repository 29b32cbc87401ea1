from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

from context_doc import project_metadata
from context_doc.project_metadata import (
    read_package_json_repository_url,
    read_pyproject_repository_url,
    read_repository_url,
)

if TYPE_CHECKING:
    from pathlib import Path


@pytest.mark.unit
def test_pyproject_url_priority_is_case_insensitive(project_dir: Path, write_file) -> None:
    write_file(
        project_dir / "pyproject.toml",
        '[project]\nname = "app"\n\n[project.urls]\nHomepage = "https://example.org"\n'
        'Repository = "git@github.com:org/app.git"\n',
    )

    assert read_pyproject_repository_url(project_dir) == "git@github.com:org/app.git"


@pytest.mark.unit
def test_pyproject_without_urls_gives_none(project_dir: Path, write_file) -> None:
    write_file(project_dir / "pyproject.toml", '[project]\nname = "app"\n')

    assert read_pyproject_repository_url(project_dir) is None


@pytest.mark.unit
def test_invalid_pyproject_logs_warning(project_dir: Path, write_file, mocker) -> None:
    write_file(project_dir / "pyproject.toml", "[project\nname = ")
    mock_logger = mocker.patch.object(project_metadata, "logger")

    assert read_pyproject_repository_url(project_dir) is None
    mock_logger.warning.assert_called_once()


@pytest.mark.unit
@pytest.mark.parametrize(
    "repository",
    ["https://github.com/org/app", {"type": "git", "url": "https://github.com/org/app"}],
)
def test_package_json_repository_forms(project_dir: Path, write_file, repository: object) -> None:
    write_file(project_dir / "package.json", json.dumps({"name": "app", "repository": repository}))

    assert read_package_json_repository_url(project_dir) == "https://github.com/org/app"


@pytest.mark.unit
def test_read_repository_url_prefers_pyproject(project_dir: Path, write_file) -> None:
    write_file(project_dir / "pyproject.toml", '[project.urls]\nSource = "https://github.com/org/py"\n')
    write_file(project_dir / "package.json", json.dumps({"repository": "https://github.com/org/js"}))

    assert read_repository_url(str(project_dir)) == "https://github.com/org/py"


@pytest.mark.unit
def test_read_repository_url_without_manifest(project_dir: Path) -> None:
    assert read_repository_url(project_dir) is None
