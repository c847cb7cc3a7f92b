"""
dice_temple.services.room_broadcaster
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

WebSocket 连接广播器 —— 维护某个房间的在线连接与发送能力。

房间协调器只通过三个方法与传输层交互:
``send_to``、``send_to_all_except``、``send_to_all``。
"""
from __future__ import annotations

import asyncio

from fastapi import WebSocket

from dice_temple.core.logging import get_logger
from dice_temple.schemas.events import EventMessage

logger = get_logger(__name__)


class RoomBroadcaster:
    """WebSocket 连接广播器。

    每个 ``DiceRoom`` 持有一个独立的 ``RoomBroadcaster`` 实例。
    连接按接入顺序保存，发送失败的连接会被移除。

    Attributes:
        active_connections: 连接 ID → WebSocket。
    """

    def __init__(self) -> None:
        self.active_connections: dict[str, WebSocket] = {}

    def register(self, connection_id: str, websocket: WebSocket) -> None:
        """把已 accept 的连接加入在线列表。"""
        self.active_connections[connection_id] = websocket

    def disconnect(self, connection_id: str) -> None:
        """从在线列表移除断开的连接。"""
        self.active_connections.pop(connection_id, None)

    async def send_to(self, connection_id: str, message: EventMessage) -> None:
        """只发给一个连接。"""
        await self._send_many([connection_id], message)

    async def send_to_all_except(self, connection_id: str, message: EventMessage) -> None:
        """发给除 ``connection_id`` 以外的所有连接。"""
        targets = [cid for cid in self.active_connections if cid != connection_id]
        await self._send_many(targets, message)

    async def send_to_all(self, message: EventMessage) -> None:
        """向本房间所有在线连接广播。"""
        await self._send_many(list(self.active_connections), message)

    async def _send_many(self, connection_ids: list[str], message: EventMessage) -> None:
        targets = [
            (cid, self.active_connections[cid])
            for cid in connection_ids
            if cid in self.active_connections
        ]
        if not targets:
            return
        text = message.model_dump_json()
        results = await asyncio.gather(
            *(ws.send_text(text) for _, ws in targets), return_exceptions=True,
        )
        for (cid, _), result in zip(targets, results):
            if isinstance(result, Exception):
                logger.warning("发送 %s 失败，移除断开的连接 | conn=%s", message.event, cid)
                self.disconnect(cid)

    @property
    def online_count(self) -> int:
        """当前在线连接数。"""
        return len(self.active_connections)
