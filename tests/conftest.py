"""Pytest configuration and fixtures for all tests."""

import sys
import textwrap
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import pytest

from agentwire.types import AgentOptions, SpawnConfig


@pytest.fixture
def system_init() -> Dict[str, Any]:
    return {"type": "system", "subtype": "init", "session_id": "s1"}


@pytest.fixture
def assistant_hi() -> Dict[str, Any]:
    return {
        "type": "assistant",
        "message": {"model": "m1", "content": [{"type": "text", "text": "hi"}]},
    }


@pytest.fixture
def result_success() -> Dict[str, Any]:
    return {
        "type": "result",
        "subtype": "success",
        "duration_ms": 1500,
        "duration_api_ms": 1200,
        "is_error": False,
        "num_turns": 1,
        "session_id": "s1",
        "total_cost_usd": 0.01,
    }


@pytest.fixture
def write_agent(tmp_path: Path) -> Callable[[str, str], Path]:
    """Write a scripted agent program into the test's tmp_path."""

    def _write(name: str, source: str) -> Path:
        path = tmp_path / f"{name}.py"
        path.write_text(textwrap.dedent(source), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def script_builder() -> Callable[[Path], Callable[..., SpawnConfig]]:
    """Command builder that runs a scripted agent with the current interpreter.

    A one-shot prompt is passed as the script's first argument.
    """

    def _factory(script: Path) -> Callable[..., SpawnConfig]:
        def _build(
            options: AgentOptions,
            prompt: Optional[str],
            streaming: bool,
            entrypoint: Optional[str] = None,
        ) -> SpawnConfig:
            args = ["-u", str(script)]
            if prompt is not None:
                args.append(prompt)
            return SpawnConfig(
                executable=sys.executable,
                args=args,
                cwd=options.cwd,
                env=dict(options.env),
                entrypoint=entrypoint,
                stdin=streaming,
            )

        return _build

    return _factory
