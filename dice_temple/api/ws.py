"""
dice_temple.api.ws
~~~~~~~~~~~~~~~~~~

WebSocket 实时交互接口。

- ``/ws``                 → 默认房间（``settings.DEFAULT_ROOM_ID``）
- ``/ws/rooms/{room_id}`` → 指定房间

消息协议（双向）: ``{"event": "<事件名>", "data": {...}}``。
每个连接在接入时分配一个不透明的连接 ID；重连视为全新用户。
"""
from __future__ import annotations

import json
import uuid

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from dice_temple.core.config import settings
from dice_temple.core.exceptions import InvalidPayloadError
from dice_temple.core.logging import get_logger, request_id_ctx_var
from dice_temple.schemas import events
from dice_temple.schemas.events import EventMessage
from dice_temple.services.dice_room import DiceRoom
from dice_temple.services.room_hub import RoomHub

logger = get_logger(__name__)

router: APIRouter = APIRouter()


@router.websocket("/ws")
async def websocket_default_endpoint(websocket: WebSocket) -> None:
    """默认房间的 WebSocket 端点。"""
    await _serve_connection(websocket, settings.DEFAULT_ROOM_ID)


@router.websocket("/ws/rooms/{room_id}")
async def websocket_room_endpoint(websocket: WebSocket, room_id: str) -> None:
    """WebSocket 房间端点。

    通过 URL 中的 ``room_id`` 进入指定房间（不存在时自动创建）。

    Args:
        websocket: FastAPI WebSocket 连接对象。
        room_id: 房间唯一标识。
    """
    await _serve_connection(websocket, room_id)


async def _serve_connection(websocket: WebSocket, room_id: str) -> None:
    connection_id = uuid.uuid4().hex
    token = request_id_ctx_var.set(f"ws-{connection_id[:8]}")

    hub: RoomHub = websocket.app.state.room_hub
    room = hub.acquire(room_id)
    try:
        await websocket.accept()
        # 加入广播列表与下发 history-sync 在同一把锁内完成，history-sync 必为第一条消息
        await room.coordinator.on_connect(
            connection_id,
            register=lambda: room.broadcaster.register(connection_id, websocket),
        )
        logger.info("连接进入房间 | room=%s | 在线: %d", room_id, room.online_count)

        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))
            # 二进制帧没有 "text"，按格式错误处理
            await _dispatch(room, connection_id, message.get("text"))

    except WebSocketDisconnect:
        pass  # 正常断开
    except Exception as e:
        logger.error("WebSocket 异常: %s | room=%s", e, room_id, exc_info=True)
    finally:
        room.broadcaster.disconnect(connection_id)
        await room.coordinator.on_disconnect(connection_id)
        logger.info("连接退出房间 | room=%s | 在线: %d", room_id, room.online_count)
        hub.release(room_id)
        request_id_ctx_var.reset(token)


async def _dispatch(room: DiceRoom, connection_id: str, raw: str | None) -> None:
    """解析一条原始消息并交给协调器；格式错误时只回报给发送者。"""
    message = None
    if raw is not None:
        try:
            message = json.loads(raw)
        except json.JSONDecodeError:
            pass

    if not isinstance(message, dict) or not isinstance(message.get("event"), str):
        error = InvalidPayloadError("消息必须是 {\"event\": ..., \"data\": ...} 形式的 JSON 对象。")
        await room.broadcaster.send_to(
            connection_id, EventMessage(event=events.ERROR, data=error.to_payload()),
        )
        return

    await room.coordinator.handle(connection_id, message["event"], message.get("data"))
