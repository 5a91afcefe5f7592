"""Command line front end for agentwire.

This module provides `agentwire ask` for one-shot prompts and
`agentwire chat` for a multi-turn session over stdin.
"""

import dataclasses
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import anyio
import click
from anyio import to_thread
from rich.console import Console
from rich.markdown import Markdown
from rich.markup import escape
from rich.panel import Panel

from agentwire import __version__
from agentwire._errors import AgentwireError
from agentwire.client import AgentClient
from agentwire.query import query
from agentwire.types import (
    AgentOptions,
    AssistantMessage,
    Message,
    ResultMessage,
    SystemMessage,
    TextBlock,
    ThinkingBlock,
    ToolResultBlock,
    ToolUseBlock,
    UserMessage,
)
from agentwire.utils.log import get_logger

console = Console()
logger = get_logger()


def message_to_dict(message: Message) -> Dict[str, Any]:
    """JSON-ready view of a decoded message, tagged with its ``type``."""
    tags = {
        UserMessage: "user",
        AssistantMessage: "assistant",
        SystemMessage: "system",
        ResultMessage: "result",
    }
    return {"type": tags[type(message)], **dataclasses.asdict(message)}


def render_message(message: Message, as_json: bool = False) -> None:
    if as_json:
        click.echo(json.dumps(message_to_dict(message), ensure_ascii=False, default=str))
        return

    if isinstance(message, AssistantMessage):
        for block in message.content:
            if isinstance(block, TextBlock):
                console.print(
                    Panel(
                        Markdown(block.text),
                        title="Agent",
                        border_style="cyan",
                        padding=(0, 1),
                    )
                )
            elif isinstance(block, ThinkingBlock):
                console.print(f"[dim italic]{escape(block.thinking)}[/dim italic]")
            elif isinstance(block, ToolUseBlock):
                console.print(
                    f"[yellow]Tool:[/yellow] {escape(block.name)} "
                    f"[dim]{escape(json.dumps(block.input, ensure_ascii=False))}[/dim]"
                )
    elif isinstance(message, UserMessage) and not isinstance(message.content, str):
        for block in message.content:
            if isinstance(block, ToolResultBlock):
                style = "red" if block.is_error else "dim"
                console.print(f"[{style}]Tool result ({escape(block.tool_use_id)})[/{style}]")
    elif isinstance(message, SystemMessage):
        console.print(f"[dim]System: {escape(message.subtype)}[/dim]")
    elif isinstance(message, ResultMessage):
        summary = f"{message.subtype} in {message.num_turns} turn(s), {message.duration_ms} ms"
        if message.total_cost_usd is not None:
            summary += f", ${message.total_cost_usd:.4f}"
        style = "red" if message.is_error else "green"
        console.print(f"[{style}]Result: {escape(summary)}[/{style}]")


def build_options(
    cli_path: Optional[str],
    model: Optional[str],
    cwd: Optional[str],
    max_turns: Optional[int],
) -> AgentOptions:
    return AgentOptions(
        cli_path=cli_path,
        model=model,
        cwd=Path(cwd) if cwd else None,
        max_turns=max_turns,
    )


def _agent_options(func: Any) -> Any:
    """Options shared by the ask and chat commands."""
    options = [
        click.option("--json", "as_json", is_flag=True, help="Print raw JSON lines"),
        click.option("--cli-path", type=str, help="Agent executable (default: claude)"),
        click.option("--model", type=str, help="Model to request"),
        click.option(
            "--cwd",
            type=click.Path(exists=True, file_okay=False),
            help="Working directory for the agent",
        ),
        click.option("--max-turns", type=click.IntRange(min=1), help="Maximum agent turns"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


async def run_ask(prompt: str, options: AgentOptions, as_json: bool) -> int:
    """Run a single prompt and render every message."""
    count = 0
    async for message in query(prompt, options):
        count += 1
        render_message(message, as_json)
    logger.info("[cli] Prompt completed", extra={"message_count": count})
    return count


async def run_chat(options: AgentOptions, as_json: bool) -> int:
    """Send each stdin line as a turn and render responses up to their result."""
    turns = 0
    async with AgentClient(options) as client:
        while True:
            line = await to_thread.run_sync(sys.stdin.readline)
            if not line:
                break
            prompt = line.strip()
            if not prompt:
                continue
            await client.query(prompt)
            async for message in client.receive_response():
                render_message(message, as_json)
            turns += 1
    logger.info("[cli] Chat session completed", extra={"turns": turns})
    return turns


@click.group()
@click.version_option(version=__version__, prog_name="agentwire")
@click.option("--verbose", is_flag=True, help="Verbose logging on stderr")
def cli(verbose: bool) -> None:
    """agentwire - drive an agent process over NDJSON stdio"""
    if verbose:
        get_logger().set_console_level(logging.DEBUG)


@cli.command(name="ask")
@click.argument("prompt")
@_agent_options
def ask_cmd(
    prompt: str,
    as_json: bool,
    cli_path: Optional[str],
    model: Optional[str],
    cwd: Optional[str],
    max_turns: Optional[int],
) -> None:
    """Run PROMPT once and print the agent's messages."""
    options = build_options(cli_path, model, cwd, max_turns)
    try:
        anyio.run(run_ask, prompt, options, as_json)
    except AgentwireError as e:
        logger.warning("[cli] Query failed: %s: %s", type(e).__name__, e)
        raise click.ClickException(str(e)) from e


@cli.command(name="chat")
@_agent_options
def chat_cmd(
    as_json: bool,
    cli_path: Optional[str],
    model: Optional[str],
    cwd: Optional[str],
    max_turns: Optional[int],
) -> None:
    """Read prompts from stdin, one per line, over a single session."""
    options = build_options(cli_path, model, cwd, max_turns)
    try:
        anyio.run(run_chat, options, as_json)
    except AgentwireError as e:
        logger.warning("[cli] Chat failed: %s: %s", type(e).__name__, e)
        raise click.ClickException(str(e)) from e


def main() -> None:
    """Main entry point."""
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(130)


if __name__ == "__main__":
    main()
