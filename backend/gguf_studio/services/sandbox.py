"""Remote code sandbox (E2B).

A sandbox is acquired for exactly one run through an async context manager,
so it is closed on success, on error, on timeout and on cancellation alike.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable

from e2b import AsyncSandbox, CommandExitException

from gguf_studio.core.config import settings

logger = logging.getLogger(__name__)

OutputHandler = Callable[[str], None]


class SandboxEnvironment(ABC):
    @abstractmethod
    async def write_file(self, path: str, content: str) -> None:
        ...

    @abstractmethod
    async def run_command(self, cmd: str, on_stdout: OutputHandler, on_stderr: OutputHandler) -> int:
        """Run ``cmd`` to completion, feeding output line by line. Returns the exit code."""
        ...


class LineBuffer:
    """Re-chunks streamed output into whole lines."""

    def __init__(self, emit: OutputHandler):
        self._emit = emit
        self._pending = ""

    def feed(self, data: str) -> None:
        self._pending += data
        *lines, self._pending = self._pending.split("\n")
        for line in lines:
            self._emit(line)

    def flush(self) -> None:
        if self._pending:
            self._emit(self._pending)
            self._pending = ""


class E2BSandbox(SandboxEnvironment):
    def __init__(self, sandbox: AsyncSandbox, step_timeout: float, run_timeout: float):
        self._sandbox = sandbox
        self._step_timeout = step_timeout
        self._run_timeout = run_timeout

    async def write_file(self, path: str, content: str) -> None:
        async with asyncio.timeout(self._step_timeout):
            await self._sandbox.files.write(path, content)

    async def run_command(self, cmd: str, on_stdout: OutputHandler, on_stderr: OutputHandler) -> int:
        stdout = LineBuffer(on_stdout)
        stderr = LineBuffer(on_stderr)
        try:
            async with asyncio.timeout(self._run_timeout + self._step_timeout):
                result = await self._sandbox.commands.run(
                    cmd,
                    on_stdout=stdout.feed,
                    on_stderr=stderr.feed,
                    timeout=self._run_timeout,
                )
            exit_code = result.exit_code
        except CommandExitException as e:
            exit_code = e.exit_code
        finally:
            stdout.flush()
            stderr.flush()
        return exit_code


@asynccontextmanager
async def open_e2b_sandbox(api_key: str) -> AsyncIterator[SandboxEnvironment]:
    async with asyncio.timeout(settings.sandbox_step_timeout):
        sandbox = await AsyncSandbox.create(template=settings.sandbox_template, api_key=api_key)
    logger.info(f"Created sandbox {sandbox.sandbox_id}")

    try:
        yield E2BSandbox(sandbox, settings.sandbox_step_timeout, settings.sandbox_run_timeout)
    finally:
        try:
            await sandbox.kill()
            logger.info(f"Closed sandbox {sandbox.sandbox_id}")
        except Exception as e:
            logger.error(f"Failed to close sandbox {sandbox.sandbox_id}: {e}")
