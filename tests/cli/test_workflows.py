"""Tests for ``conductor workflows``."""

from __future__ import annotations

import json
import re
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

WORKFLOW_YAML = """\
name: digest
steps:
  - id: gather
    name: Gather
    agent_id: gatherer
    prompt: "Gather news about {{topic}}"
    output_key: notes
  - id: summarise
    name: Summarise
    agent_id: summariser
    depends_on: [gather]
    prompt: "Summarise: {{notes}}"
"""


def _configure_agent_cli(home: Path) -> None:
    script = home / "agent.py"
    records = [
        {"type": "assistant", "message": {"content": [{"type": "text", "text": "step output"}]}},
        {"type": "result", "usage": {"input_tokens": 1, "output_tokens": 1}},
    ]
    script.write_text("".join(f"print({json.dumps(r)!r})\n" for r in records))
    command = json.dumps([sys.executable, str(script)])
    (home / "conductor.yaml").write_text(f"default_runtime: subprocess\nsubprocess:\n  command: {command}\n")


def _create(cli_invoke: Callable[..., Any], tmp_path: Path) -> str:
    path = tmp_path / "digest.yaml"
    path.write_text(WORKFLOW_YAML)
    result = cli_invoke("workflows", "create", str(path))
    assert result.exit_code == 0
    match = re.search(r"Created workflow (\S+) \(digest, 2 steps\)", result.output)
    assert match is not None
    return match.group(1)


class TestWorkflowsCommands:
    def test_create_list_show_delete(self, cli_invoke: Callable[..., Any], tmp_path: Path) -> None:
        workflow_id = _create(cli_invoke, tmp_path)

        listed = cli_invoke("workflows", "list")
        assert workflow_id in listed.output
        assert "digest" in listed.output

        shown = cli_invoke("workflows", "show", workflow_id)
        assert shown.exit_code == 0
        assert '"summarise"' in shown.output

        assert cli_invoke("workflows", "delete", workflow_id).exit_code == 0
        assert "No workflows registered" in cli_invoke("workflows", "list").output

    def test_show_missing(self, cli_invoke: Callable[..., Any]) -> None:
        result = cli_invoke("workflows", "show", "wf-missing")
        assert result.exit_code == 1
        assert "Workflow not found" in result.output

    def test_create_invalid_file(self, cli_invoke: Callable[..., Any], tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("steps: not-a-list\n")
        result = cli_invoke("workflows", "create", str(path))
        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_run_and_list_runs(self, cli_invoke: Callable[..., Any], tmp_path: Path) -> None:
        _configure_agent_cli(tmp_path)
        workflow_id = _create(cli_invoke, tmp_path)

        run = cli_invoke("workflows", "run", workflow_id, "--input", '{"topic": "rust"}', "--watch")

        assert run.exit_code == 0
        assert "gather: running" in run.output
        assert "summarise: completed" in run.output
        assert "notes: step output" in run.output

        runs = cli_invoke("workflows", "runs", workflow_id)
        assert runs.exit_code == 0
        assert "completed" in runs.output

    def test_run_rejects_non_object_input(self, cli_invoke: Callable[..., Any], tmp_path: Path) -> None:
        workflow_id = _create(cli_invoke, tmp_path)
        result = cli_invoke("workflows", "run", workflow_id, "--input", "[1, 2]")
        assert result.exit_code == 2

    def test_run_unknown_workflow(self, cli_invoke: Callable[..., Any]) -> None:
        result = cli_invoke("workflows", "run", "wf-missing")
        assert result.exit_code == 1
        assert "Workflow not found" in result.output

    def test_dispatch_without_events(self, cli_invoke: Callable[..., Any]) -> None:
        result = cli_invoke("workflows", "dispatch")
        assert result.exit_code == 0
        assert "No matching events" in result.output
