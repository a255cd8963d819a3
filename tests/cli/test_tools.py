"""Tests for ``conductor tools``."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from click.testing import CliRunner

from conductor.cli import main


class TestToolsCommands:
    def test_list(self) -> None:
        result = CliRunner().invoke(main, ["tools", "list"])
        assert result.exit_code == 0
        assert "claim_task" in result.output

    def test_list_json(self) -> None:
        result = CliRunner().invoke(main, ["tools", "list", "--json"])
        assert result.exit_code == 0
        assert '"inputSchema"' in result.output

    def test_call(self, cli_invoke: Callable[..., Any]) -> None:
        result = cli_invoke("tools", "call", "agent-a", "update_blackboard", "--args", '{"key": "k", "value": 5}')
        assert result.exit_code == 0
        assert '"updated_by": "agent-a"' in result.output

        inbox = cli_invoke("tools", "call", "agent-b", "check_inbox")
        assert inbox.exit_code == 0

    def test_call_unknown_tool(self, cli_invoke: Callable[..., Any]) -> None:
        result = cli_invoke("tools", "call", "agent-a", "teleport")
        assert result.exit_code == 1
        assert "Unknown tool: teleport" in result.output
