"""Tests for the WebSocket chat endpoint."""

import asyncio
import json

from gguf_studio.services.settings_store import AppSettings


def _receive_until(ws, frame_type):
    """Collect frames up to and including the first one of ``frame_type``."""
    frames = []
    while True:
        frame = ws.receive_json()
        frames.append(frame)
        if frame["type"] == frame_type:
            return frames


def _tokens(frames):
    return "".join(f["content"] for f in frames if f["type"] == "token")


def test_websocket_connect_sends_state(client):
    with client.websocket_connect("/api/chat/ws") as ws:
        frame = ws.receive_json()
        assert frame["type"] == "state"
        assert frame["status"] == "uninitialized"
        assert "Gemini API Key is not set" in frame["error"]


def test_websocket_send_receive_tokens(client, store):
    store.save(AppSettings(gemini_api_key="g"))
    with client.websocket_connect("/api/chat/ws") as ws:
        ws.receive_json()
        ws.send_text(json.dumps({"type": "send", "content": "hello"}))

        frames = _receive_until(ws, "end")
        assert _tokens(frames) == "Hello from model"
        assert not any(f["type"] == "error" for f in frames)


def test_websocket_plain_text_is_a_message(client, store):
    store.save(AppSettings(gemini_api_key="g"))
    with client.websocket_connect("/api/chat/ws") as ws:
        ws.receive_json()
        ws.send_text("hello")
        assert _tokens(_receive_until(ws, "end")) == "Hello from model"


def test_websocket_send_without_key_reports_error(client):
    with client.websocket_connect("/api/chat/ws") as ws:
        ws.receive_json()
        ws.send_text(json.dumps({"type": "send", "content": "hello"}))

        frames = _receive_until(ws, "end")
        errors = [f for f in frames if f["type"] == "error"]
        assert errors[0]["message"] == "Chat is not initialized. Please check your API key in settings."


def test_websocket_picks_up_saved_key(client, store, fake_provider):
    with client.websocket_connect("/api/chat/ws") as ws:
        ws.receive_json()
        store.save(AppSettings(gemini_api_key="g"))

        ws.send_text(json.dumps({"type": "send", "content": "hello"}))
        assert _tokens(_receive_until(ws, "end")) == "Hello from model"
        assert len(fake_provider.sessions) == 1


def test_websocket_stream_error(client, store, fake_provider):
    store.save(AppSettings(gemini_api_key="g"))
    fake_provider.stream_error = RuntimeError("bad key")
    with client.websocket_connect("/api/chat/ws") as ws:
        ws.receive_json()
        ws.send_text(json.dumps({"type": "send", "content": "hello"}))

        frames = _receive_until(ws, "end")
        errors = [f for f in frames if f["type"] == "error"]
        assert "bad key" in errors[0]["message"]


def test_websocket_run_code_block(client, store, fake_provider, fake_sandbox):
    store.save(AppSettings(gemini_api_key="g", e2b_api_key="e"))
    fake_provider.chunks = ["Run:\n```python\nprint(42)\n```"]
    fake_sandbox.stdout = ["42"]

    with client.websocket_connect("/api/chat/ws") as ws:
        ws.receive_json()
        ws.send_text(json.dumps({"type": "send", "content": "code"}))
        _receive_until(ws, "end")

        ws.send_text(json.dumps({"type": "run", "message_index": 1, "part_index": 1}))

        last = None
        while last is None or last["record"]["running"]:
            frame = ws.receive_json()
            assert frame["type"] == "execution"
            assert frame["block_id"] == "1-1"
            last = frame

        assert last["record"]["output"] == "42\n"
        assert last["record"]["error"] == ""


def test_websocket_run_without_sandbox_key(client, store, fake_provider, sandbox_factory):
    store.save(AppSettings(gemini_api_key="g"))
    fake_provider.chunks = ["```bash\nls\n```"]

    with client.websocket_connect("/api/chat/ws") as ws:
        ws.receive_json()
        ws.send_text(json.dumps({"type": "send", "content": "code"}))
        _receive_until(ws, "end")

        ws.send_text(json.dumps({"type": "run", "message_index": 1, "part_index": 0}))
        record_frame = ws.receive_json()
        error_frame = ws.receive_json()

        assert record_frame["type"] == "execution"
        assert record_frame["record"]["error"] == "E2B API Key not configured."
        assert record_frame["record"]["running"] is False
        assert error_frame["type"] == "error"
        assert sandbox_factory.opened == 0


def test_websocket_invalid_block_reference(client, store):
    store.save(AppSettings(gemini_api_key="g"))
    with client.websocket_connect("/api/chat/ws") as ws:
        ws.receive_json()
        ws.send_text(json.dumps({"type": "run", "message_index": 5, "part_index": 0}))
        frame = ws.receive_json()
        assert frame["type"] == "error"
        assert frame["message"].startswith("Invalid code block reference")


def test_websocket_reset(client, store):
    store.save(AppSettings(gemini_api_key="g"))
    with client.websocket_connect("/api/chat/ws") as ws:
        ws.receive_json()
        ws.send_text(json.dumps({"type": "send", "content": "hello"}))
        _receive_until(ws, "end")

        ws.send_text(json.dumps({"type": "reset"}))
        frame = ws.receive_json()
        assert frame["type"] == "state"
        assert frame["messages"] == []
        assert frame["status"] == "ready"


def test_websocket_system_prompt(client, store, fake_provider):
    store.save(AppSettings(gemini_api_key="g"))
    with client.websocket_connect("/api/chat/ws") as ws:
        ws.receive_json()
        ws.send_text(json.dumps({"type": "system_prompt", "content": "You are terse."}))
        frame = ws.receive_json()
        assert frame["system_prompt"] == "You are terse."
        assert fake_provider.sessions[-1].system_instruction == "You are terse."


def test_websocket_malformed_block_reference_keeps_connection(client, store):
    store.save(AppSettings(gemini_api_key="g"))
    with client.websocket_connect("/api/chat/ws") as ws:
        ws.receive_json()
        for bad in (None, [1], "x"):
            ws.send_text(json.dumps({"type": "run", "message_index": bad, "part_index": 0}))
            frame = ws.receive_json()
            assert frame["type"] == "error"
            assert frame["message"].startswith("Invalid code block reference")

        ws.send_text(json.dumps({"type": "send", "content": "still there?"}))
        assert _tokens(_receive_until(ws, "end")) == "Hello from model"


def test_websocket_negative_block_reference(client, store, fake_provider, sandbox_factory):
    store.save(AppSettings(gemini_api_key="g", e2b_api_key="e"))
    fake_provider.chunks = ["```python\nprint(1)\n```"]

    with client.websocket_connect("/api/chat/ws") as ws:
        ws.receive_json()
        ws.send_text(json.dumps({"type": "send", "content": "code"}))
        _receive_until(ws, "end")

        ws.send_text(json.dumps({"type": "run", "message_index": -1, "part_index": -1}))
        frame = ws.receive_json()
        assert frame["type"] == "error"
        assert frame["message"].startswith("Invalid code block reference")
        assert sandbox_factory.opened == 0


def test_websocket_cancel_running_block(client, store, fake_provider, fake_sandbox):
    store.save(AppSettings(gemini_api_key="g", e2b_api_key="e"))
    fake_provider.chunks = ["```bash\nsleep 100\n```"]
    fake_sandbox.gate = asyncio.Event()  # never set; the run blocks until cancelled

    with client.websocket_connect("/api/chat/ws") as ws:
        ws.receive_json()
        ws.send_text(json.dumps({"type": "send", "content": "code"}))
        _receive_until(ws, "end")

        ws.send_text(json.dumps({"type": "run", "message_index": 1, "part_index": 0}))
        started = ws.receive_json()
        assert started["type"] == "execution"
        assert started["record"]["running"] is True

        ws.send_text(json.dumps({"type": "cancel", "message_index": 1, "part_index": 0}))
        frame = ws.receive_json()
        assert frame["type"] == "execution"
        assert frame["block_id"] == "1-0"
        assert frame["record"]["running"] is False
        assert frame["record"]["error"].endswith("Execution cancelled.")
