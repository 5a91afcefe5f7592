"""Default translation of AgentOptions into a process invocation.

The transport only needs a SpawnConfig; callers with a different agent
executable can pass their own builder with the same signature.
"""

from __future__ import annotations

import json
from collections.abc import Callable

from agentwire.types import AgentOptions, SpawnConfig

DEFAULT_CLI_NAME = "claude"

CommandBuilder = Callable[[AgentOptions, str | None, bool, str | None], SpawnConfig]


def build_command(
    options: AgentOptions,
    prompt: str | None,
    streaming: bool,
    entrypoint: str | None = None,
) -> SpawnConfig:
    """Build the agent command line for one invocation.

    Args:
        options: Invocation settings.
        prompt: The prompt for one-shot (non-streaming) runs; ignored when
            streaming.
        streaming: Whether input is fed as NDJSON over stdin.
        entrypoint: Client identity tag exported to the child.

    Returns:
        A SpawnConfig; stdin is only piped when streaming.
    """
    cmd = ["--output-format", "stream-json", "--verbose"]

    if options.system_prompt is not None:
        cmd.extend(["--system-prompt", options.system_prompt])

    if options.append_system_prompt is not None:
        cmd.extend(["--append-system-prompt", options.append_system_prompt])

    if options.allowed_tools:
        cmd.extend(["--allowedTools", ",".join(options.allowed_tools)])

    if options.max_turns is not None:
        cmd.extend(["--max-turns", str(options.max_turns)])

    if options.max_thinking_tokens is not None:
        cmd.extend(["--max-thinking-tokens", str(options.max_thinking_tokens)])

    if options.disallowed_tools:
        cmd.extend(["--disallowedTools", ",".join(options.disallowed_tools)])

    if options.model is not None:
        cmd.extend(["--model", options.model])

    if options.permission_prompt_tool_name is not None:
        cmd.extend(["--permission-prompt-tool", options.permission_prompt_tool_name])

    if options.permission_mode is not None:
        cmd.extend(["--permission-mode", options.permission_mode])

    if options.continue_conversation:
        cmd.append("--continue")

    if options.resume is not None:
        cmd.extend(["--resume", options.resume])

    if options.settings is not None:
        cmd.extend(["--settings", options.settings])

    for directory in options.add_dirs:
        cmd.extend(["--add-dir", str(directory)])

    if options.mcp_servers:
        servers = {
            name: server.model_dump(exclude_defaults=False)
            for name, server in options.mcp_servers.items()
        }
        cmd.extend(["--mcp-config", json.dumps({"mcpServers": servers})])
    elif options.mcp_config_path is not None:
        cmd.extend(["--mcp-config", str(options.mcp_config_path)])

    for flag, value in options.extra_args.items():
        if value is None:
            cmd.append(f"--{flag}")
        else:
            cmd.extend([f"--{flag}", value])

    if streaming:
        cmd.extend(["--input-format", "stream-json"])
    elif prompt is not None:
        cmd.extend(["--print", prompt])

    return SpawnConfig(
        executable=str(options.cli_path) if options.cli_path else DEFAULT_CLI_NAME,
        args=cmd,
        cwd=options.cwd,
        env=dict(options.env),
        entrypoint=entrypoint,
        stdin=streaming,
    )


__all__ = ["CommandBuilder", "DEFAULT_CLI_NAME", "build_command"]
