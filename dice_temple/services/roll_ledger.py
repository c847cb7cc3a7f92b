"""
dice_temple.services.roll_ledger
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

掷骰历史 —— 只追加的内存账本。

账本对外只暴露快照：记录本身是不可变的 ``Roll``，
列表每次都是新建的，调用方无法通过返回值修改账本。
"""
from __future__ import annotations

import time
import uuid

from dice_temple.schemas.room import Role, Roll


def now_ms() -> int:
    """当前时间（epoch 毫秒）。"""
    return int(time.time() * 1000)


class RollLedger:
    """一个房间的全部掷骰记录，按写入顺序保存，进程存活期间永不删除。"""

    def __init__(self) -> None:
        self._rolls: list[Roll] = []

    def record(
        self,
        user_name: str,
        role: Role,
        die_type: str,
        result: int,
        hidden: bool,
        timestamp: int | None = None,
    ) -> Roll:
        """追加一条掷骰记录并返回它。

        Args:
            user_name: 掷骰者名称（快照）。
            role: 掷骰者角色（快照）。
            die_type: 骰子类型。
            result: 掷骰点数。
            hidden: 是否为隐藏掷骰。
            timestamp: 掷骰时间，缺省为当前时间。
        """
        roll = Roll(
            id=f"roll_{uuid.uuid4().hex}",
            user_name=user_name,
            role=role,
            die_type=die_type,
            result=result,
            hidden=hidden,
            timestamp=timestamp or now_ms(),
        )
        self._rolls.append(roll)
        return roll

    def all_rolls(self) -> list[Roll]:
        """全部记录的快照（未脱敏，仅供服务端内部使用）。"""
        return list(self._rolls)

    def rolls_for_role(self, role: Role | None) -> list[Roll]:
        """按角色脱敏的历史视图。

        非 DM（包括尚未加入的连接，``role=None``）看到的隐藏掷骰点数被替换为 None。
        向新连接或新加入的成员同步历史时必须使用此视图。
        """
        if role == "dm":
            return list(self._rolls)
        return [roll.redacted() if roll.hidden else roll for roll in self._rolls]

    def __len__(self) -> int:
        return len(self._rolls)
