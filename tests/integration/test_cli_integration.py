from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

from context_doc import cli, sync
from context_doc.settings import RuntimeEnv
from context_doc.sync import SyncStatus

if TYPE_CHECKING:
    from pathlib import Path

    from pytest_mock import MockerFixture


def _messages(mock_logger) -> list[str]:
    return [call.args[0] % call.args[1:] for call in mock_logger.info.call_args_list]


@pytest.mark.integration
def test_main_reports_every_source_once(
    runtime_env: RuntimeEnv,
    mocker: MockerFixture,
) -> None:
    mock_logger = mocker.patch.object(sync, "logger")

    assert cli.main([], env=runtime_env) == 0

    messages = _messages(mock_logger)
    assert len(messages) == 3
    assert messages[0].startswith("Codex: source not found; skipped syncing (No .jsonl files found")
    assert messages[1].startswith("Claude: source not found; skipped syncing (Claude project directory is missing")
    assert messages[2].startswith("Qwen: source not found; skipped syncing (Qwen source directory is missing")


@pytest.mark.integration
def test_main_uses_environment_variables_for_sources(
    tmp_path: Path,
    project_dir: Path,
    home_dir: Path,
    mocker: MockerFixture,
) -> None:
    codex = tmp_path / "env-codex"
    (codex / "2025").mkdir(parents=True)
    (codex / "2025" / "s.jsonl").write_text(json.dumps({"cwd": str(project_dir)}) + "\n", encoding="utf-8")
    qwen = tmp_path / "env-qwen"
    (qwen / "chats").mkdir(parents=True)
    (qwen / "chats" / "c.json").write_text("{}", encoding="utf-8")
    env = RuntimeEnv(
        argv=("context-doc",),
        cwd=str(project_dir),
        home=str(home_dir),
        environ={"CODEX_SOURCE_DIR": str(codex), "QWEN_SOURCE_DIR": str(qwen)},
    )
    run = mocker.spy(cli, "build_sync_program")

    assert cli.main([], env=env) == 0

    outcomes = run.spy_return
    assert [(o.source, o.status, o.copied) for o in outcomes] == [
        ("Codex", SyncStatus.COPIED, 1),
        ("Claude", SyncStatus.NOT_FOUND, 0),
        ("Qwen", SyncStatus.COPIED, 1),
    ]
    assert (project_dir / ".knowledge" / ".codex" / "2025" / "s.jsonl").is_file()
    assert (project_dir / ".knowledge" / ".qwen" / "chats" / "c.json").is_file()
