"""Async subprocess execution for external pipeline tools."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from shipline.pipeline.exceptions import CommandFailedError

logger = logging.getLogger(__name__)

# Exit status reported when the executable cannot be found, as a shell would
COMMAND_NOT_FOUND = 127

READ_CHUNK_SIZE = 64 * 1024


@dataclass
class CommandResult:
    """Condensed summary of one external command."""

    command: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""
    execution_time: float = 0.0
    timed_out: bool = False
    stderr_tail: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.returncode == 0 and not self.timed_out


class CommandRunner:
    """Runs one external command at a time and streams its output to the log."""

    def __init__(
        self,
        timeout_seconds: float | None = None,
        tail_lines: int = 20,
        env: Mapping[str, str] | None = None,
    ):
        self.timeout_seconds = timeout_seconds
        self.tail_lines = tail_lines
        self.env = dict(env) if env is not None else None

    async def run(
        self,
        command: Sequence[str],
        cwd: Path | None = None,
        check: bool = True,
    ) -> CommandResult:
        """Execute ``command`` and wait for it to exit.

        Args:
            command: Program and arguments, already resolved
            cwd: Working directory (defaults to the current one)
            check: Raise CommandFailedError on unsuccessful termination

        Returns:
            CommandResult with captured output
        """
        argv = list(command)
        printable = " ".join(argv)
        logger.info(f"$ {printable}")
        start_time = time.monotonic()

        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                cwd=str(cwd) if cwd else None,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=self.env,
            )
        except FileNotFoundError:
            result = CommandResult(
                command=argv,
                returncode=COMMAND_NOT_FOUND,
                stderr=f"{argv[0]}: command not found",
                stderr_tail=[f"{argv[0]}: command not found"],
            )
            return self._finish(result, check)

        stdout_lines: list[str] = []
        stderr_lines: list[str] = []
        timed_out = False

        try:
            await asyncio.wait_for(
                asyncio.gather(
                    self._pump(process.stdout, stdout_lines, logging.DEBUG),
                    self._pump(process.stderr, stderr_lines, logging.DEBUG),
                    process.wait(),
                ),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.error(f"Command timed out after {self.timeout_seconds}s: {printable}")
            await self._kill(process)
            timed_out = True
        except BaseException:
            await self._kill(process)
            raise

        result = CommandResult(
            command=argv,
            returncode=process.returncode if process.returncode is not None else -1,
            stdout="\n".join(stdout_lines),
            stderr="\n".join(stderr_lines),
            execution_time=time.monotonic() - start_time,
            timed_out=timed_out,
            stderr_tail=stderr_lines[-self.tail_lines:],
        )
        return self._finish(result, check)

    async def _kill(self, process: asyncio.subprocess.Process) -> None:
        if process.returncode is None:
            process.kill()
            await process.wait()

    async def _pump(
        self,
        stream: asyncio.StreamReader | None,
        sink: list[str],
        level: int,
    ) -> None:
        # Fixed-size reads: readline() fails on lines longer than the stream limit
        if stream is None:
            return
        pending = bytearray()
        while True:
            chunk = await stream.read(READ_CHUNK_SIZE)
            if not chunk:
                break
            pending += chunk
            *complete, rest = pending.split(b"\n")
            for raw in complete:
                self._emit(raw, sink, level)
            pending = bytearray(rest)
        if pending:
            self._emit(pending, sink, level)

    def _emit(self, raw: bytes, sink: list[str], level: int) -> None:
        line = raw.decode(errors="replace").rstrip()
        if line:
            sink.append(line)
            logger.log(level, line)

    def _finish(self, result: CommandResult, check: bool) -> CommandResult:
        printable = " ".join(result.command)
        if result.success:
            logger.debug(f"Command succeeded in {result.execution_time:.1f}s: {printable}")
            return result

        logger.warning(
            f"Command exited with status {result.returncode}"
            f"{' (timed out)' if result.timed_out else ''}: {printable}"
        )
        if check:
            raise CommandFailedError(
                f"'{printable}' exited with status {result.returncode}",
                returncode=result.returncode,
                stderr_tail=result.stderr_tail,
            )
        return result
