"""Tests for turning AgentOptions into an agent command line."""

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from agentwire._internal.command import DEFAULT_CLI_NAME, build_command
from agentwire.types import AgentOptions, McpStdioServerConfig


def test_default_one_shot_command():
    spawn = build_command(AgentOptions(), "hello", streaming=False, entrypoint="sdk-py")

    assert spawn.executable == DEFAULT_CLI_NAME
    assert spawn.argv == [
        "claude",
        "--output-format",
        "stream-json",
        "--verbose",
        "--print",
        "hello",
    ]
    assert spawn.stdin is False
    assert spawn.entrypoint == "sdk-py"


def test_streaming_command_reads_stdin():
    spawn = build_command(AgentOptions(), None, streaming=True)

    assert spawn.args[-2:] == ["--input-format", "stream-json"]
    assert "--print" not in spawn.args
    assert spawn.stdin is True


def test_options_are_rendered_as_flags(tmp_path):
    options = AgentOptions(
        system_prompt="be brief",
        append_system_prompt="and kind",
        allowed_tools=["Read", "Grep"],
        disallowed_tools=["Bash"],
        max_turns=3,
        max_thinking_tokens=2048,
        model="m1",
        permission_mode="acceptEdits",
        permission_prompt_tool_name="mcp__perm",
        continue_conversation=True,
        resume="sess-1",
        settings="settings.json",
        add_dirs=[Path("/a"), Path("/b")],
        cwd=tmp_path,
        env={"FOO": "bar"},
        cli_path="/opt/agent",
    )
    spawn = build_command(options, None, streaming=True)
    args = spawn.args

    def value_of(flag):
        return args[args.index(flag) + 1]

    assert spawn.executable == "/opt/agent"
    assert value_of("--system-prompt") == "be brief"
    assert value_of("--append-system-prompt") == "and kind"
    assert value_of("--allowedTools") == "Read,Grep"
    assert value_of("--disallowedTools") == "Bash"
    assert value_of("--max-turns") == "3"
    assert value_of("--max-thinking-tokens") == "2048"
    assert value_of("--model") == "m1"
    assert value_of("--permission-mode") == "acceptEdits"
    assert value_of("--permission-prompt-tool") == "mcp__perm"
    assert "--continue" in args
    assert value_of("--resume") == "sess-1"
    assert value_of("--settings") == "settings.json"
    assert [args[i + 1] for i, a in enumerate(args) if a == "--add-dir"] == ["/a", "/b"]
    assert spawn.cwd == tmp_path
    assert spawn.env == {"FOO": "bar"}


def test_mcp_servers_are_inlined_as_json():
    options = AgentOptions(
        mcp_servers={"files": McpStdioServerConfig(command="mcp-files", args=["--root", "."])}
    )
    args = build_command(options, None, streaming=True).args

    config = json.loads(args[args.index("--mcp-config") + 1])
    assert config == {
        "mcpServers": {
            "files": {"type": "stdio", "command": "mcp-files", "args": ["--root", "."], "env": {}}
        }
    }


def test_mcp_config_path_is_passed_through():
    args = build_command(AgentOptions(mcp_config_path=Path("mcp.json")), None, True).args

    assert args[args.index("--mcp-config") + 1] == "mcp.json"


def test_extra_args_render_bare_and_valued_flags():
    options = AgentOptions(extra_args={"debug-to-stderr": None, "replay": "yes"})
    args = build_command(options, "hi", streaming=False).args

    assert "--debug-to-stderr" in args
    assert args[args.index("--replay") + 1] == "yes"
    assert args[-2:] == ["--print", "hi"]


def test_invalid_options_are_rejected():
    with pytest.raises(ValidationError):
        AgentOptions(max_turns=0)
    with pytest.raises(ValidationError):
        AgentOptions(max_buffer_size=0)
    with pytest.raises(ValidationError):
        AgentOptions(permission_mode="yolo")
