import asyncio
import json
import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from gguf_studio.api.deps import get_provider_factory, get_sandbox_factory, get_settings_store
from gguf_studio.core.errors import ChatBusyError
from gguf_studio.services.chat import ChatOrchestrator
from gguf_studio.services.execution import CodeExecutor, ExecutionRecord
from gguf_studio.services.settings_store import SettingsStore

router = APIRouter()
logger = logging.getLogger(__name__)


async def _drain(websocket: WebSocket, outbox: asyncio.Queue) -> None:
    """Forward queued frames in order. Streamed tokens and execution updates share this path."""
    while True:
        frame = await outbox.get()
        await websocket.send_json(frame)


@router.websocket("/ws")
async def chat_websocket(
    websocket: WebSocket,
    store: SettingsStore = Depends(get_settings_store),
    provider_factory=Depends(get_provider_factory),
    sandbox_factory=Depends(get_sandbox_factory),
):
    await websocket.accept()
    outbox: asyncio.Queue = asyncio.Queue()

    def on_execution_change(key: str, record: ExecutionRecord) -> None:
        outbox.put_nowait({"type": "execution", "block_id": key, "record": record.to_dict()})

    app_settings = store.load()
    executor = CodeExecutor(app_settings.e2b_api_key, sandbox_factory, on_change=on_execution_change)
    chat = ChatOrchestrator(app_settings, provider_factory=provider_factory, executor=executor)
    sender = asyncio.create_task(_drain(websocket, outbox))
    outbox.put_nowait({"type": "state", **chat.snapshot()})

    try:
        while True:
            raw = await websocket.receive_text()

            # Plain text is treated as a chat message
            try:
                data = json.loads(raw)
                if not isinstance(data, dict):
                    raise TypeError
            except (json.JSONDecodeError, TypeError):
                data = {"type": "send", "content": raw}

            kind = data.get("type", "send")

            if kind == "send":
                chat.configure(store.load())
                try:
                    async for token in chat.send(str(data.get("content", ""))):
                        outbox.put_nowait({"type": "token", "content": token})
                except ChatBusyError as e:
                    outbox.put_nowait({"type": "error", "message": str(e)})
                    continue
                if chat.error:
                    outbox.put_nowait({"type": "error", "message": chat.error})
                outbox.put_nowait({"type": "end"})

            elif kind == "system_prompt":
                chat.configure(system_prompt=str(data.get("content", "")))
                outbox.put_nowait({"type": "state", **chat.snapshot()})

            elif kind == "reset":
                chat.configure(store.load())
                chat.reset()
                outbox.put_nowait({"type": "state", **chat.snapshot()})

            elif kind in ("run", "cancel"):
                try:
                    message_index = int(data["message_index"])
                    part_index = int(data["part_index"])
                    if kind == "run":
                        chat.configure(store.load())
                        chat.run_code(message_index, part_index)
                    else:
                        chat.cancel_code(message_index, part_index)
                except (KeyError, TypeError, ValueError, IndexError) as e:
                    outbox.put_nowait({"type": "error", "message": f"Invalid code block reference: {e}"})
                    continue
                if kind == "run" and not chat.app_settings.e2b_api_key:
                    outbox.put_nowait({"type": "error", "message": chat.error})

            else:
                outbox.put_nowait({"type": "error", "message": f"Unknown frame type: {kind}"})

    except WebSocketDisconnect:
        pass
    finally:
        executor.clear()
        sender.cancel()
        try:
            await sender
        except asyncio.CancelledError:
            pass
        except Exception as e:
            # The client is usually gone by now
            logger.debug(f"Chat sender stopped: {e}")
