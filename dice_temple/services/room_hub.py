"""
dice_temple.services.room_hub
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

房间中心 —— 管理所有掷骰房间的生命周期。

在 FastAPI lifespan 中创建并挂载于 ``app.state.room_hub``。
WebSocket 连接通过 ``acquire`` / ``release`` 引用房间；
非默认房间在最后一个连接离开后被回收（连同其掷骰历史）。
"""
from __future__ import annotations

from dice_temple.core.logging import get_logger
from dice_temple.schemas.room import RoomInfoData
from dice_temple.services.dice_room import DiceRoom

logger = get_logger(__name__)


class RoomHub:
    """所有房间的容器。

    - ``get_room(room_id)``  → 获取/创建指定房间（懒初始化）
    - ``acquire(room_id)``   → 获取房间并登记一个连接引用
    - ``release(room_id)``   → 释放连接引用，引用归零时回收非默认房间
    - ``find_room(room_id)`` → 只查找，不创建
    - ``list_rooms()``       → 列出所有活跃房间

    Attributes:
        dm_secret: 新建房间使用的 DM 密钥。
        default_room_id: 常驻房间 ID，永不回收。
    """

    def __init__(self, dm_secret: str | None = None, default_room_id: str = "temple") -> None:
        self.dm_secret = dm_secret
        self.default_room_id = default_room_id
        self._rooms: dict[str, DiceRoom] = {}
        self._refs: dict[str, int] = {}
        if not dm_secret:
            logger.warning("未配置 DM_SECRET，任何人都无法以 DM 身份加入")

    def get_room(self, room_id: str) -> DiceRoom:
        """获取指定房间（不存在则自动创建）。"""
        if room_id not in self._rooms:
            self._rooms[room_id] = DiceRoom(room_id=room_id, dm_secret=self.dm_secret)
            logger.info("房间已创建 | room_id=%s", room_id)
        return self._rooms[room_id]

    def acquire(self, room_id: str) -> DiceRoom:
        room = self.get_room(room_id)
        self._refs[room_id] = self._refs.get(room_id, 0) + 1
        return room

    def release(self, room_id: str) -> None:
        remaining = self._refs.get(room_id, 0) - 1
        if remaining > 0:
            self._refs[room_id] = remaining
            return
        self._refs.pop(room_id, None)

        room = self._rooms.get(room_id)
        if room_id == self.default_room_id or room is None or len(room.registry):
            return
        del self._rooms[room_id]
        logger.info("房间已回收 | room_id=%s | 历史: %d 条", room_id, len(room.ledger))

    def find_room(self, room_id: str) -> DiceRoom | None:
        return self._rooms.get(room_id)

    def list_rooms(self) -> list[RoomInfoData]:
        """列出所有活跃房间的摘要信息。"""
        return [room.info() for room in self._rooms.values()]
