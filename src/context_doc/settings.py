from __future__ import annotations

import os
import sys
from typing import TYPE_CHECKING

from dotenv import dotenv_values, find_dotenv
from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from collections.abc import Mapping

ENV_FILE = find_dotenv(usecwd=True)


class SyncOptions(BaseModel):
    """Options for one sync run, parsed once from the command line."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    cwd: str = Field(..., description="Working directory the CLI was started from.")
    project_root: str | None = Field(default=None, description="Root used for matching and destination.")
    source_dir: str | None = Field(default=None, description="Codex source directory.")
    destination_dir: str | None = Field(default=None, description="Codex destination directory.")
    repository_url_override: str | None = Field(default=None, description="Repository identity to match.")
    meta_root: str | None = Field(default=None, description="Alternate search base for all sources.")
    qwen_source_dir: str | None = Field(default=None, description="Qwen source directory.")
    claude_projects_root: str | None = Field(default=None, description="Claude projects directory.")
    log_file: str | None = Field(default=None, description="Log file path.")


def resolve_home_dir(environ: Mapping[str, str], cwd_fallback: str) -> str:
    """Find the user's home directory from environment variables.

    ``HOME`` wins, then ``USERPROFILE``, then ``HOMEDRIVE`` + ``HOMEPATH``; the
    working directory is used when none is set.

    Args:
        environ (Mapping[str, str]): environment variables
        cwd_fallback (str): value returned when no variable is usable

    Returns:
        str: the home directory
    """
    direct = environ.get("HOME") or environ.get("USERPROFILE")
    if direct:
        return direct
    drive = environ.get("HOMEDRIVE")
    path = environ.get("HOMEPATH")
    if drive is not None and path is not None:
        return f"{drive}{path}"
    return cwd_fallback


class RuntimeEnv(BaseModel):
    """Read-only snapshot of the process state the sync needs.

    Built once at startup with `from_process`; tests construct it directly with
    fixed values instead of touching the real environment.
    """

    model_config = ConfigDict(frozen=True)

    argv: tuple[str, ...] = ()
    cwd: str
    home: str
    environ: dict[str, str] = Field(default_factory=dict)

    def env_var(self, key: str) -> str | None:
        """Return an environment variable, treating empty values as unset."""
        value = self.environ.get(key)
        return value or None

    @classmethod
    def from_process(cls, env_file: str | None = None) -> RuntimeEnv:
        """Capture argv, working directory, environment and home directory.

        Variables from a ``.env`` file only fill in names missing from the real
        environment.

        Args:
            env_file (str | None): ``.env`` path; the one found from the working
                directory when omitted

        Returns:
            RuntimeEnv: the snapshot
        """
        dotenv_path = ENV_FILE if env_file is None else env_file
        environ: dict[str, str] = {}
        if dotenv_path:
            environ.update({k: v for k, v in dotenv_values(dotenv_path).items() if v is not None})
        environ.update(os.environ)
        cwd = os.getcwd()
        return cls(
            argv=tuple(sys.argv),
            cwd=cwd,
            home=resolve_home_dir(environ, cwd),
            environ=environ,
        )
