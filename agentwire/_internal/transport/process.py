"""Child process ownership for the subprocess transport.

The supervisor spawns the agent, exposes its pipes, and captures stderr
into a temporary file so a failing agent can be reported with its own
diagnostics.
"""

from __future__ import annotations

import logging
import os
import subprocess
import tempfile
from contextlib import suppress
from pathlib import Path
from typing import IO, Any

import anyio
from anyio import to_thread
from anyio.abc import ByteReceiveStream, ByteSendStream, Process

from agentwire._errors import CLIConnectionError, CLINotFoundError
from agentwire.types import ENTRYPOINT_ENV_VAR, STDERR_TAIL_BYTES, ExitInfo, SpawnConfig

logger = logging.getLogger(__name__)


def _read_tail(path: Path, limit: int) -> str:
    try:
        with path.open("rb") as handle:
            handle.seek(0, os.SEEK_END)
            size = handle.tell()
            handle.seek(max(0, size - limit))
            data = handle.read()
    except OSError:
        return ""
    return data.decode("utf-8", errors="replace").strip()


class ProcessSupervisor:
    """Owns one child process and its stdin, stdout and stderr capture."""

    def __init__(self, spawn: SpawnConfig, stderr_tail_bytes: int = STDERR_TAIL_BYTES):
        self.spawn = spawn
        self._stderr_tail_bytes = stderr_tail_bytes
        self._process: Process | None = None
        self._stderr_file: IO[bytes] | None = None
        self._stderr_path: Path | None = None
        self._exit_info: ExitInfo | None = None
        self._closed = False

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process else None

    @property
    def stdin(self) -> ByteSendStream | None:
        return self._process.stdin if self._process else None

    @property
    def stdout(self) -> ByteReceiveStream | None:
        return self._process.stdout if self._process else None

    @property
    def stderr_path(self) -> Path | None:
        return self._stderr_path

    @property
    def returncode(self) -> int | None:
        return self._process.returncode if self._process else None

    @property
    def started(self) -> bool:
        return self._process is not None

    def _build_env(self) -> dict[str, str]:
        env = {**os.environ, **self.spawn.env}
        if self.spawn.entrypoint:
            env[ENTRYPOINT_ENV_VAR] = self.spawn.entrypoint
        return env

    async def start(self) -> None:
        """Spawn the child process.

        Raises:
            CLINotFoundError: If the executable does not exist.
            CLIConnectionError: If the process cannot be started for any
                other reason, including a missing working directory.
        """
        if self._process is not None:
            return
        if self._closed:
            raise CLIConnectionError("Process supervisor already closed")

        cwd = str(self.spawn.cwd) if self.spawn.cwd else None
        self._stderr_file = tempfile.NamedTemporaryFile(
            mode="w+b", prefix="agentwire_stderr_", suffix=".log", delete=False
        )
        self._stderr_path = Path(self._stderr_file.name)

        try:
            self._process = await anyio.open_process(
                self.spawn.argv,
                stdin=subprocess.PIPE if self.spawn.stdin else subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=self._stderr_file,
                cwd=cwd,
                env=self._build_env(),
            )
        except FileNotFoundError as e:
            self._release_stderr()
            # Either the executable or the working directory is missing.
            if cwd and not Path(cwd).exists():
                raise CLIConnectionError(f"Working directory does not exist: {cwd}") from e
            raise CLINotFoundError(f"Agent executable not found at: {self.spawn.executable}") from e
        except OSError as e:
            self._release_stderr()
            raise CLIConnectionError(f"Failed to start agent process: {e}") from e

        logger.info(
            "Started agent process",
            extra={"pid": self._process.pid, "argv": self.spawn.argv[:1], "cwd": cwd},
        )

    async def wait(self) -> ExitInfo:
        """Block until the child exits and report how it ended."""
        if self._process is None:
            raise CLIConnectionError("Process not started")
        if self._exit_info is not None:
            return self._exit_info

        returncode = await self._process.wait()
        stderr = ""
        if self._stderr_path is not None:
            stderr = await to_thread.run_sync(
                _read_tail, self._stderr_path, self._stderr_tail_bytes
            )
        self._exit_info = ExitInfo(returncode=returncode, stderr=stderr)
        logger.debug("Agent process exited", extra={"returncode": returncode})
        return self._exit_info

    def exit_info(self) -> ExitInfo | None:
        """Exit details, or None while the child is still running."""
        if self._exit_info is not None:
            return self._exit_info
        if self._process is None or self._process.returncode is None:
            return None
        stderr = ""
        if self._stderr_path is not None:
            stderr = _read_tail(self._stderr_path, self._stderr_tail_bytes)
        self._exit_info = ExitInfo(returncode=self._process.returncode, stderr=stderr)
        return self._exit_info

    async def kill(self) -> None:
        """Force-kill the child. No-op if it already exited."""
        process = self._process
        if process is None or process.returncode is not None:
            return
        with suppress(ProcessLookupError):
            process.kill()
        with suppress(Exception):
            await process.wait()
        logger.debug("Killed agent process", extra={"pid": process.pid})

    async def close_stdin(self) -> None:
        if self._process is not None and self._process.stdin is not None:
            with suppress(Exception):
                await self._process.stdin.aclose()

    async def close(self) -> None:
        """Kill the child if needed and release pipes and the stderr file."""
        if self._closed:
            return
        self._closed = True

        await self.kill()
        if self._process is not None:
            with suppress(Exception):
                await self._process.aclose()
        self._release_stderr()

    def _release_stderr(self) -> None:
        if self._stderr_file is not None:
            with suppress(Exception):
                self._stderr_file.close()
            self._stderr_file = None
        if self._stderr_path is not None:
            with suppress(OSError):
                self._stderr_path.unlink(missing_ok=True)
            self._stderr_path = None

    def __repr__(self) -> str:
        state: Any = self.returncode if self.returncode is not None else "running"
        if self._process is None:
            state = "not started"
        return f"ProcessSupervisor(executable={self.spawn.executable!r}, state={state})"


__all__ = ["ProcessSupervisor"]
