"""
dice_temple.services.dice_room
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

掷骰房间实体 —— 把成员表、掷骰账本、连接广播器和会话协调器组装在一起。

每个 ``DiceRoom`` 的状态完全独立，房间之间互不干扰。
"""
from __future__ import annotations

from dice_temple.schemas.room import RoomInfoData
from dice_temple.services.roll_ledger import RollLedger
from dice_temple.services.room_broadcaster import RoomBroadcaster
from dice_temple.services.room_registry import RoomRegistry
from dice_temple.services.session_coordinator import SessionCoordinator


class DiceRoom:
    """一个完整的掷骰房间。

    Attributes:
        room_id: 房间唯一标识。
        registry: 成员表。
        ledger: 掷骰历史。
        broadcaster: 本房间的连接广播器。
        coordinator: 本房间的事件协调器。
    """

    def __init__(self, room_id: str, dm_secret: str | None) -> None:
        self.room_id = room_id
        self.registry = RoomRegistry(dm_secret=dm_secret)
        self.ledger = RollLedger()
        self.broadcaster = RoomBroadcaster()
        self.coordinator = SessionCoordinator(
            room_id=room_id,
            registry=self.registry,
            ledger=self.ledger,
            gateway=self.broadcaster,
        )

    @property
    def online_count(self) -> int:
        """当前在线连接数（含尚未加入的连接）。"""
        return self.broadcaster.online_count

    def info(self) -> RoomInfoData:
        """返回房间摘要信息。"""
        return RoomInfoData(
            room_id=self.room_id,
            online_count=self.online_count,
            member_count=len(self.registry),
            has_dm=self.registry.has_dm(),
            hide_rolls=self.registry.hide_rolls_enabled(),
            roll_count=len(self.ledger),
        )
