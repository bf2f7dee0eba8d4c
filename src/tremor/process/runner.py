"""ProcessRunner: run one external command with a bounded lifetime.

Output is delivered twice: every decoded chunk is forwarded to an optional
callback as soon as it is read (tagged ``"out"`` or ``"err"``), and the same
text is accumulated for the returned :class:`ProcessResult`.
"""
from __future__ import annotations

import asyncio
import codecs
import inspect
import os
import signal
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

import structlog

from tremor.core.constants import DEFAULT_TIMEOUT_SECONDS, OutputChannel
from tremor.core.exceptions import ExecutionError
from tremor.core.types import ProcessResult

logger = structlog.get_logger(__name__)

OutputCallback = Callable[[str, str], Any]
"""``(channel, text) -> None``; may also return an awaitable."""

_CHUNK_SIZE = 4096
# Grace period for pipe readers once the process itself has exited.
_DRAIN_SECONDS = 1.0
_POLL_SECONDS = 0.05


async def emit_output(callback: OutputCallback | None, channel: str, text: str) -> bool:
    """Forward *text* to *callback*, awaiting it when it is a coroutine function.

    A failing callback is logged and reported by returning ``False``; it never
    interrupts the command whose output it was watching.
    """
    if callback is None:
        return True
    try:
        result = callback(channel, text)
        if inspect.isawaitable(result):
            await result
    except Exception as exc:  # noqa: BLE001
        logger.error("output_callback_error", channel=channel, error=str(exc))
        return False
    return True


class ProcessRunner:
    """Executes commands as argument vectors (never through an implicit shell).

    Args:
        timeout: Default ceiling in seconds for every command.
        env: Optional environment for the child processes (defaults to the
            current environment).
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        env: dict[str, str] | None = None,
    ) -> None:
        self._timeout = timeout
        self._env = env

    def __repr__(self) -> str:
        return f"ProcessRunner(timeout={self._timeout})"

    @property
    def timeout(self) -> float:
        return self._timeout

    async def run(
        self,
        command: Sequence[str],
        cwd: str | Path,
        timeout: float | None = None,
        callback: OutputCallback | None = None,
    ) -> ProcessResult:
        """Run *command* in *cwd* and wait for it to finish or time out.

        A non-zero exit status or a timeout yields ``success=False``; a
        process killed on timeout has ``timed_out=True`` and no exit code.
        The run ends when the command exits, even if children it left in
        the background still hold its output pipes; those children are
        killed with the rest of the process group.

        Raises:
            ExecutionError: If the process cannot be spawned.
        """
        argv = [str(part) for part in command]
        if not argv:
            raise ExecutionError("Cannot run an empty command.")
        limit = timeout if timeout is not None else self._timeout

        logger.debug("process_start", command=argv, cwd=str(cwd), timeout=limit)
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                cwd=str(cwd),
                env=self._env,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                start_new_session=os.name == "posix",
            )
        except OSError as exc:
            raise ExecutionError(
                f"Unable to start {argv[0]!r}: {exc}",
                details={"command": argv, "cwd": str(cwd)},
            ) from exc

        stdout_parts: list[str] = []
        stderr_parts: list[str] = []
        assert proc.stdout is not None and proc.stderr is not None
        readers = [
            asyncio.create_task(self._pump(proc.stdout, OutputChannel.OUT, stdout_parts, callback)),
            asyncio.create_task(self._pump(proc.stderr, OutputChannel.ERR, stderr_parts, callback)),
        ]

        timed_out = False
        try:
            if not await self._wait_for_exit(proc, limit):
                timed_out = True
                logger.warning("process_timeout", command=argv, timeout=limit, pid=proc.pid)
        finally:
            if proc.returncode is None:
                self._kill(proc)
                await self._wait_for_exit(proc, _DRAIN_SECONDS)
            await self._drain(proc, readers)

        exit_code = None if timed_out else proc.returncode
        result = ProcessResult(
            success=not timed_out and exit_code == 0,
            stdout="".join(stdout_parts),
            stderr="".join(stderr_parts),
            exit_code=exit_code,
            timed_out=timed_out,
        )
        logger.debug(
            "process_end", command=argv, exit_code=exit_code, timed_out=timed_out
        )
        return result

    async def _pump(
        self,
        stream: asyncio.StreamReader,
        channel: OutputChannel,
        parts: list[str],
        callback: OutputCallback | None,
    ) -> None:
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        while True:
            chunk = await stream.read(_CHUNK_SIZE)
            text = decoder.decode(chunk, final=not chunk)
            if text:
                parts.append(text)
                if not await emit_output(callback, channel.value, text):
                    callback = None
            if not chunk:
                return

    @staticmethod
    async def _wait_for_exit(proc: asyncio.subprocess.Process, limit: float) -> bool:
        """Return ``True`` once *proc* has exited, ``False`` if *limit* passes first.

        ``Process.wait()`` also waits for the output pipes to close, which
        background children can hold open indefinitely, so the exit status
        is watched directly.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + limit
        while proc.returncode is None:
            remaining = deadline - loop.time()
            if remaining <= 0:
                return False
            await asyncio.sleep(min(_POLL_SECONDS, remaining))
        return True

    async def _drain(
        self, proc: asyncio.subprocess.Process, readers: list[asyncio.Task[None]]
    ) -> None:
        # Background children inherit the pipes and may keep them open after
        # the command itself has exited; their output is not waited for.
        _, pending = await asyncio.wait(readers, timeout=_DRAIN_SECONDS)
        if pending:
            logger.warning("process_orphans_killed", pid=proc.pid)
        self._kill(proc)
        for task in pending:
            task.cancel()
        await asyncio.gather(*readers, return_exceptions=True)

    @staticmethod
    def _kill(proc: asyncio.subprocess.Process) -> None:
        # The child leads its own session on POSIX, so the whole tree goes.
        try:
            if os.name == "posix":
                os.killpg(proc.pid, signal.SIGKILL)
            else:
                proc.kill()
        except (ProcessLookupError, PermissionError):
            # Group already gone; macOS reports EPERM when only zombies remain.
            pass
