"""
context-doc: gather AI assistant conversation logs for the current project.

Overview
--------
Codex, Claude and Qwen each keep their chat logs in their own place and format.
This command finds the logs that belong to the project it runs in and mirrors
them under ``<project-root>/.knowledge/``:

- ``.knowledge/.codex``: Codex ``.jsonl`` sessions with at least one record whose
  ``cwd`` lies inside the project (or whose repository URL is the project's);
- ``.knowledge/.claude``: Claude ``.jsonl`` files of the project's slug directory;
- ``.knowledge/.qwen``: Qwen ``.json`` files of the project's hashed cache.

A source that cannot be found is reported and skipped; the command always exits 0.

Usage
-----
    context-doc
    context-doc --project-root ../.. --meta-root /mnt/backup
    context-doc -s ~/.codex -d /tmp/codex-mirror --project-url git@github.com:me/app.git
    context-doc --log-file sync.log

Each flag takes exactly one value; unknown arguments are ignored and the last
occurrence of a flag wins.
"""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING

from context_doc import __version__
from context_doc.logging import logger, setup_logging
from context_doc.settings import RuntimeEnv, SyncOptions
from context_doc.sources import build_sync_program
from context_doc.sync import SyncContext

if TYPE_CHECKING:
    from collections.abc import Sequence

FLAG_MAP: dict[str, str] = {
    "--project-root": "project_root",
    "-r": "project_root",
    "--source": "source_dir",
    "-s": "source_dir",
    "--dest": "destination_dir",
    "-d": "destination_dir",
    "--project-url": "repository_url_override",
    "--project-name": "repository_url_override",
    "--meta-root": "meta_root",
    "--qwen-source": "qwen_source_dir",
    "--claude-projects": "claude_projects_root",
    "--log-file": "log_file",
}

USAGE = """usage: context-doc [-r PROJECT_ROOT] [-s SOURCE] [-d DEST] [--project-url URL]
                   [--meta-root DIR] [--qwen-source DIR] [--claude-projects DIR]
                   [--log-file FILE] [--version]
"""


def parse_args(argv: Sequence[str], cwd: str) -> SyncOptions:
    """Build `SyncOptions` from command-line arguments.

    Known flags consume the following argument as their value. Unknown arguments
    and a trailing flag without a value are ignored; repeated flags keep the last
    value.

    Args:
        argv (Sequence[str]): arguments without the program name
        cwd (str): working directory the command runs in

    Returns:
        SyncOptions: the parsed options
    """
    values: dict[str, str] = {}
    index = 0
    while index < len(argv):
        key = FLAG_MAP.get(argv[index])
        if key is not None and index + 1 < len(argv):
            values[key] = argv[index + 1]
            index += 2
            continue
        index += 1
    return SyncOptions(cwd=cwd, **values)


def handle_info_flags(argv: Sequence[str]) -> bool:
    """Print version or usage when asked to.

    Returns:
        bool: True when an informational flag was handled and the run should stop
    """
    if "--version" in argv or "-V" in argv:
        sys.stdout.write(f"context-doc {__version__}\n")
        return True
    if "--help" in argv or "-h" in argv:
        sys.stdout.write(USAGE)
        return True
    return False


def main(argv: Sequence[str] | None = None, env: RuntimeEnv | None = None) -> int:
    """Run the sync for every source.

    Args:
        argv (Sequence[str] | None): arguments without the program name; taken from
            the process when omitted
        env (RuntimeEnv | None): process snapshot; captured when omitted

    Returns:
        int: always 0 once every source was attempted
    """
    runtime = env or RuntimeEnv.from_process()
    args = list(argv) if argv is not None else list(runtime.argv[1:])
    if handle_info_flags(args):
        return 0

    options = parse_args(args, cwd=runtime.cwd)
    if options.log_file:
        try:
            setup_logging(options.log_file)
        except OSError as e:
            logger.warning("Cannot open log file %s; logging to stdout (%s)", options.log_file, e)

    build_sync_program(SyncContext(options=options, env=runtime))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
