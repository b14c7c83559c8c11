"""Runs chat code blocks in a remote sandbox and tracks their output.

Each code block owns one ExecutionRecord keyed by ``"<message>-<part>"``.
Runs on different blocks are independent and may overlap; each one gets its
own sandbox and writes only to its own record.
"""

import asyncio
import logging
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, AsyncContextManager, Callable

from gguf_studio.services.sandbox import SandboxEnvironment, open_e2b_sandbox

logger = logging.getLogger(__name__)

MISSING_SANDBOX_KEY = "E2B API Key not configured."
CANCELLED = "Execution cancelled."

SandboxFactory = Callable[[str], AsyncContextManager[SandboxEnvironment]]


class Language(Enum):
    PYTHON = ("python", "script.py", "python")
    JAVASCRIPT = ("javascript", "script.js", "node")
    BASH = ("bash", "script.sh", "bash")
    SH = ("sh", "script.sh", "sh")
    UNSUPPORTED = ("", "", "")

    def __init__(self, tag: str, filename: str, command: str):
        self.tag = tag
        self.filename = filename
        self.command = command

    @property
    def command_line(self) -> str:
        return f"{self.command} {self.filename}"

    @classmethod
    def from_tag(cls, tag: str | None) -> "Language":
        tag = (tag or "").strip().lower()
        tag = _ALIASES.get(tag, tag)
        for language in cls:
            if language is not cls.UNSUPPORTED and language.tag == tag:
                return language
        return cls.UNSUPPORTED


_ALIASES = {"py": "python", "js": "javascript", "shell": "sh"}


def block_id(message_index: int, part_index: int) -> str:
    return f"{message_index}-{part_index}"


@dataclass
class ExecutionRecord:
    output: str = ""
    error: str = ""
    running: bool = False
    artifacts: list[Any] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


def _describe(exc: BaseException) -> str:
    if isinstance(exc, TimeoutError):
        return "timed out"
    return str(exc) or type(exc).__name__


class CodeExecutor:
    """Drives ExecutionRecords through not-started -> running -> finished."""

    def __init__(
        self,
        e2b_api_key: str,
        sandbox_factory: SandboxFactory = open_e2b_sandbox,
        on_change: Callable[[str, ExecutionRecord], None] | None = None,
    ):
        self.e2b_api_key = e2b_api_key
        self.records: dict[str, ExecutionRecord] = {}
        self._sandbox_factory = sandbox_factory
        self._on_change = on_change
        self._tasks: dict[str, asyncio.Task] = {}
        # Bumped on cancel/clear so a stale run can no longer write its record
        self._generations: dict[str, int] = {}

    def _set(self, key: str, generation: int | None = None, **changes: Any) -> None:
        if generation is not None and self._generations.get(key) != generation:
            return
        record = self.records.setdefault(key, ExecutionRecord())
        for name, value in changes.items():
            setattr(record, name, value)
        if self._on_change:
            self._on_change(key, record)

    def _append(self, key: str, generation: int, name: str, text: str) -> None:
        if self._generations.get(key) != generation:
            return
        record = self.records[key]
        self._set(key, generation, **{name: getattr(record, name) + text})

    def _prepare(self, key: str, language_tag: str | None) -> tuple[Language, int] | None:
        """Validate synchronously. Returns None when the run stops before any sandbox exists."""
        if not self.e2b_api_key:
            self._set(key, running=False, output="", error=MISSING_SANDBOX_KEY, artifacts=[])
            return None

        language = Language.from_tag(language_tag)
        if language is Language.UNSUPPORTED:
            logger.info(f"Refusing to run block {key}: unsupported language {language_tag!r}")
            self._set(
                key,
                running=False,
                output="",
                error=f"Unsupported language for execution: {language_tag}",
                artifacts=[],
            )
            return None

        generation = self._generations.get(key, 0) + 1
        self._generations[key] = generation
        self._set(key, generation, running=True, output="", error="", artifacts=[])
        return language, generation

    def start(self, key: str, language_tag: str | None, code: str) -> asyncio.Task | None:
        """Validate and schedule a run. Must be called from the event loop."""
        existing = self._tasks.get(key)
        if existing and not existing.done():
            return existing

        prepared = self._prepare(key, language_tag)
        if prepared is None:
            return None

        language, generation = prepared
        task = asyncio.create_task(self._execute(key, generation, language, code))
        self._tasks[key] = task
        task.add_done_callback(lambda t: self._forget(key, t))
        return task

    def _forget(self, key: str, task: asyncio.Task) -> None:
        if self._tasks.get(key) is task:
            del self._tasks[key]

    async def run(self, key: str, language_tag: str | None, code: str) -> ExecutionRecord:
        """Run a block to completion and return its record."""
        task = self.start(key, language_tag, code)
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                if not task.cancelled():
                    raise
        return self.records[key]

    async def _execute(self, key: str, generation: int, language: Language, code: str) -> None:
        try:
            async with self._sandbox_factory(self.e2b_api_key) as sandbox:
                await sandbox.write_file(language.filename, code)
                exit_code = await sandbox.run_command(
                    language.command_line,
                    on_stdout=lambda line: self._append(key, generation, "output", line + "\n"),
                    on_stderr=lambda line: self._append(key, generation, "error", line + "\n"),
                )
            if exit_code:
                self._append(key, generation, "error", f"Process exited with code {exit_code}\n")
        except asyncio.CancelledError:
            logger.info(f"Execution of block {key} cancelled")
            raise
        except Exception as e:
            logger.error(f"Execution of block {key} failed: {e}")
            self._append(key, generation, "error", f"Execution failed: {_describe(e)}")
        finally:
            self._set(key, generation, running=False)

    def cancel(self, key: str) -> bool:
        task = self._tasks.get(key)
        if task is None or task.done():
            return False

        self._generations[key] = self._generations.get(key, 0) + 1
        record = self.records[key]
        self._set(key, running=False, error=record.error + CANCELLED)
        task.cancel()
        return True

    def clear(self) -> None:
        """Cancel every running block and forget all records."""
        for key in list(self._tasks):
            self.cancel(key)
        self.records.clear()
