from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest

from context_doc.settings import RuntimeEnv, SyncOptions
from context_doc.sync import SyncContext

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    path = tmp_path / "project"
    path.mkdir()
    return path


@pytest.fixture
def home_dir(tmp_path: Path) -> Path:
    path = tmp_path / "home"
    path.mkdir()
    return path


@pytest.fixture
def runtime_env(project_dir: Path, home_dir: Path) -> RuntimeEnv:
    return RuntimeEnv(argv=("context-doc",), cwd=str(project_dir), home=str(home_dir), environ={})


@pytest.fixture
def make_context(project_dir: Path, home_dir: Path) -> Callable[..., SyncContext]:
    """Build a `SyncContext` rooted in the temporary project with a fake home.

    Keyword arguments other than ``environ`` become `SyncOptions` fields.
    """

    def factory(environ: dict[str, str] | None = None, **options: Any) -> SyncContext:  # noqa: ANN401
        env = RuntimeEnv(
            argv=("context-doc",),
            cwd=str(project_dir),
            home=str(home_dir),
            environ=environ or {},
        )
        return SyncContext(options=SyncOptions(cwd=str(project_dir), **options), env=env)

    return factory


def _write_file(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture
def write_file() -> Callable[[Path, str], Path]:
    """Return a helper writing a UTF-8 file and creating its parents."""
    return _write_file
