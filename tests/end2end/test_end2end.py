from __future__ import annotations

import json
import os
from typing import TYPE_CHECKING

import pytest

from context_doc import cli
from context_doc.file_manipulation import sha256_text
from context_doc.sources import claude_project_slug

if TYPE_CHECKING:
    from pathlib import Path

    from context_doc.settings import RuntimeEnv


def _write(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


@pytest.mark.end2end
def test_end_to_end_sync_of_all_sources(project_dir: Path, home_dir: Path, runtime_env: RuntimeEnv) -> None:
    cwd = str(project_dir)
    match = _write(
        project_dir / ".codex" / "sessions" / "2025" / "11" / "match.jsonl",
        "\n".join(
            [
                json.dumps({"cwd": cwd, "message": "hello"}),
                "",
                "{not json",
                json.dumps({"payload": {"cwd": os.path.join(cwd, "sub")}}),
            ],
        ),
    )
    _write(
        project_dir / ".codex" / "sessions" / "2025" / "11" / "ignore.jsonl",
        json.dumps({"cwd": "/unrelated/other"}) + "\n",
    )
    project_hash = sha256_text(cwd)
    qwen_chat = _write(project_dir / ".qwen" / "tmp" / project_hash / "chats" / "session-1.json", '{"messages": []}')
    claude_log = _write(home_dir / ".claude" / "projects" / claude_project_slug(cwd) / "s.jsonl", "{}\n")

    exit_code = cli.main(["--qwen-source", os.path.join(cwd, ".qwen", "tmp")], env=runtime_env)

    knowledge = project_dir / ".knowledge"
    assert exit_code == 0
    copied_match = knowledge / ".codex" / "sessions" / "2025" / "11" / "match.jsonl"
    assert copied_match.read_bytes() == match.read_bytes()
    assert not (knowledge / ".codex" / "sessions" / "2025" / "11" / "ignore.jsonl").exists()
    assert (knowledge / ".qwen" / project_hash / "chats" / "session-1.json").read_bytes() == qwen_chat.read_bytes()
    assert (knowledge / ".claude" / "s.jsonl").read_bytes() == claude_log.read_bytes()


@pytest.mark.end2end
def test_end_to_end_tolerates_dangling_links(project_dir: Path, runtime_env: RuntimeEnv) -> None:
    source = project_dir / ".codex"
    _write(source / "ok.jsonl", json.dumps({"cwd": str(project_dir)}) + "\n")
    os.symlink(project_dir / "gone.jsonl", source / "broken.jsonl")

    assert cli.main([], env=runtime_env) == 0

    assert (project_dir / ".knowledge" / ".codex" / "ok.jsonl").is_file()
    assert not (project_dir / ".knowledge" / ".codex" / "broken.jsonl").exists()


@pytest.mark.end2end
def test_end_to_end_tolerates_looping_links(project_dir: Path, runtime_env: RuntimeEnv) -> None:
    source = project_dir / ".codex"
    _write(source / "ok.jsonl", json.dumps({"cwd": str(project_dir)}) + "\n")
    os.symlink(source / "loop.jsonl", source / "loop.jsonl")

    assert cli.main([], env=runtime_env) == 0

    assert (project_dir / ".knowledge" / ".codex" / "ok.jsonl").is_file()
    assert not (project_dir / ".knowledge" / ".codex" / "loop.jsonl").exists()


@pytest.mark.end2end
def test_end_to_end_same_path_leaves_mirror_untouched(project_dir: Path, runtime_env: RuntimeEnv) -> None:
    mirror = project_dir / ".knowledge" / ".codex"
    existing = _write(mirror / "s.jsonl", json.dumps({"cwd": str(project_dir)}) + "\n")
    before = existing.read_bytes()

    assert cli.main(["--source", str(mirror)], env=runtime_env) == 0

    assert existing.read_bytes() == before
    assert sorted(p.name for p in mirror.iterdir()) == ["s.jsonl"]


@pytest.mark.end2end
def test_end_to_end_project_root_and_destination_override(
    tmp_path: Path,
    project_dir: Path,
    runtime_env: RuntimeEnv,
) -> None:
    app = tmp_path / "app"
    codex = tmp_path / "codex"
    _write(codex / "a.jsonl", json.dumps({"cwd": str(app / "pkg")}) + "\n")
    _write(codex / "b.jsonl", json.dumps({"cwd": str(project_dir)}) + "\n")

    exit_code = cli.main(["-r", str(app), "-s", str(codex), "-d", "mirror"], env=runtime_env)

    assert exit_code == 0
    assert (project_dir / "mirror" / "a.jsonl").is_file()
    assert not (project_dir / "mirror" / "b.jsonl").exists()
    assert not (app / ".knowledge" / ".codex").exists()
