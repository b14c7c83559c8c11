"""Tests for sandboxed code block execution."""

import asyncio

import pytest

from gguf_studio.services.execution import (
    CANCELLED,
    MISSING_SANDBOX_KEY,
    CodeExecutor,
    Language,
    block_id,
)
from gguf_studio.services.sandbox import LineBuffer


@pytest.fixture
def executor(sandbox_factory):
    return CodeExecutor("e2b-key", sandbox_factory)


def test_language_lookup():
    assert Language.from_tag("python").command_line == "python script.py"
    assert Language.from_tag("JavaScript").command_line == "node script.js"
    assert Language.from_tag("bash").command_line == "bash script.sh"
    assert Language.from_tag("sh").command_line == "sh script.sh"
    assert Language.from_tag("py") is Language.PYTHON
    assert Language.from_tag("js") is Language.JAVASCRIPT
    assert Language.from_tag("rust") is Language.UNSUPPORTED
    assert Language.from_tag(None) is Language.UNSUPPORTED


def test_block_id():
    assert block_id(3, 1) == "3-1"


def test_line_buffer_rechunks_output():
    lines = []
    buffer = LineBuffer(lines.append)
    buffer.feed("hel")
    buffer.feed("lo\nwor")
    buffer.feed("ld\n\nlast")
    buffer.flush()
    assert lines == ["hello", "world", "", "last"]


@pytest.mark.asyncio
async def test_unsupported_language_fails_synchronously(executor, sandbox_factory):
    task = executor.start("1-0", "rust", "fn main() {}")

    assert task is None
    record = executor.records["1-0"]
    assert record.error == "Unsupported language for execution: rust"
    assert record.running is False
    assert sandbox_factory.opened == 0


@pytest.mark.asyncio
async def test_missing_key_short_circuits(sandbox_factory):
    executor = CodeExecutor("", sandbox_factory)
    task = executor.start("1-0", "python", "print(1)")

    assert task is None
    record = executor.records["1-0"]
    assert record.error == MISSING_SANDBOX_KEY
    assert record.running is False
    assert sandbox_factory.opened == 0


@pytest.mark.asyncio
async def test_successful_run_streams_output(executor, sandbox_factory, fake_sandbox):
    fake_sandbox.stdout = ["one", "two"]
    fake_sandbox.stderr = ["warning"]

    record = await executor.run("1-0", "python", "print('one')")

    assert record.output == "one\ntwo\n"
    assert record.error == "warning\n"
    assert record.running is False
    assert fake_sandbox.files == {"script.py": "print('one')"}
    assert fake_sandbox.commands == ["python script.py"]
    assert sandbox_factory.api_keys == ["e2b-key"]
    assert sandbox_factory.opened == sandbox_factory.closed == 1


@pytest.mark.asyncio
async def test_record_is_running_while_in_flight(executor, fake_sandbox):
    fake_sandbox.gate = asyncio.Event()
    task = executor.start("2-1", "bash", "echo hi")

    await asyncio.sleep(0)
    assert executor.records["2-1"].running is True

    fake_sandbox.gate.set()
    await task
    assert executor.records["2-1"].running is False


@pytest.mark.asyncio
async def test_nonzero_exit_code_is_reported(executor, fake_sandbox):
    fake_sandbox.exit_code = 2
    record = await executor.run("1-0", "sh", "exit 2")
    assert "Process exited with code 2" in record.error


@pytest.mark.asyncio
async def test_failure_still_closes_sandbox(executor, sandbox_factory, fake_sandbox):
    fake_sandbox.error = RuntimeError("sandbox exploded")

    record = await executor.run("1-0", "python", "print(1)")

    assert record.error.endswith("Execution failed: sandbox exploded")
    assert record.running is False
    assert sandbox_factory.closed == 1


@pytest.mark.asyncio
async def test_cancel_releases_sandbox_and_ignores_late_writes(executor, sandbox_factory, fake_sandbox):
    fake_sandbox.gate = asyncio.Event()
    fake_sandbox.stderr = ["too late"]
    task = executor.start("1-0", "python", "import time")
    await asyncio.sleep(0)

    assert executor.cancel("1-0") is True
    with pytest.raises(asyncio.CancelledError):
        await task

    record = executor.records["1-0"]
    assert record.running is False
    assert record.error == CANCELLED
    assert sandbox_factory.closed == 1


@pytest.mark.asyncio
async def test_cancel_without_run_is_noop(executor):
    assert executor.cancel("9-9") is False


@pytest.mark.asyncio
async def test_blocks_run_independently(sandbox_factory, fake_sandbox):
    changes = []
    executor = CodeExecutor("key", sandbox_factory, on_change=lambda key, record: changes.append(key))
    fake_sandbox.stdout = ["out"]

    await asyncio.gather(
        executor.run("1-0", "python", "a"),
        executor.run("1-2", "bash", "b"),
    )

    assert executor.records["1-0"].output == "out\n"
    assert executor.records["1-2"].output == "out\n"
    assert sandbox_factory.opened == 2
    assert {"1-0", "1-2"} <= set(changes)


@pytest.mark.asyncio
async def test_clear_forgets_records(executor):
    await executor.run("1-0", "python", "pass")
    executor.clear()
    assert executor.records == {}
