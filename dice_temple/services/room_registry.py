"""
dice_temple.services.room_registry
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

房间成员表 —— 连接 ID → ``User``，负责容量和 DM 唯一性约束，
并持有房间级的 DM 隐藏掷骰开关（``dmHideRolls``）。

不变量:
  - 成员数 ≤ ``MAX_MEMBERS``
  - 至多一位 DM
  - DM 离开时 ``dmHideRolls`` 复位为 False
  - 玩家 ``0 ≤ current_health ≤ max_health``
"""
from __future__ import annotations

import hmac

from dice_temple.core.exceptions import (
    DuplicateDmError,
    InvalidDmSecretError,
    RoomFullError,
)
from dice_temple.core.logging import get_logger
from dice_temple.schemas.room import Role, User
from dice_temple.services.roll_ledger import now_ms

logger = get_logger(__name__)

MAX_MEMBERS: int = 5
DEFAULT_MAX_HEALTH: int = 20


def _clamp(value: int, upper: int) -> int:
    return max(0, min(value, upper))


class RoomRegistry:
    """单个房间的成员表。

    返回给调用方的 ``User`` 都是副本，修改它们不会影响成员表。

    Attributes:
        dm_secret: DM 共享密钥；为空时任何 DM 都无法加入。
    """

    def __init__(self, dm_secret: str | None = None) -> None:
        self.dm_secret = dm_secret
        self._users: dict[str, User] = {}
        self._hide_rolls: bool = False

    # ── 成员进出 ──────────────────────────────────────────────────────

    def admit(
        self,
        connection_id: str,
        name: str,
        role: Role,
        secret: str | None = None,
        max_health: int | None = None,
        current_health: int | None = None,
    ) -> User:
        """接纳一位新成员。

        校验顺序固定：DM 密钥 → 房间容量 → DM 唯一性。
        密钥错误的 DM 在任何情况下都不会改动成员表。

        Raises:
            InvalidDmSecretError: 以 DM 身份加入但密钥不匹配（或未配置密钥）。
            RoomFullError: 房间已满。
            DuplicateDmError: 房间中已有 DM。
        """
        if role == "dm" and not self._check_secret(secret):
            raise InvalidDmSecretError()
        if len(self._users) >= MAX_MEMBERS:
            raise RoomFullError(f"房间已满，最多容纳 {MAX_MEMBERS} 人。")
        if role == "dm" and self.has_dm():
            raise DuplicateDmError()

        user = User(id=connection_id, name=name, role=role, joined_at=now_ms())
        if role == "player":
            # 0 / None 都视为未提供
            user.max_health = max_health or DEFAULT_MAX_HEALTH
            user.current_health = _clamp(current_health or user.max_health, user.max_health)

        self._users[connection_id] = user
        return user.model_copy()

    def withdraw(self, connection_id: str) -> User | None:
        """移除成员并返回它；非成员返回 None 且无副作用。"""
        user = self._users.pop(connection_id, None)
        if user is None:
            return None
        if user.role == "dm" and self._hide_rolls:
            logger.info("DM 已离开，隐藏掷骰开关复位")
            self._hide_rolls = False
        return user

    # ── 查询 ──────────────────────────────────────────────────────────

    def lookup(self, connection_id: str) -> User | None:
        user = self._users.get(connection_id)
        return user.model_copy() if user else None

    def list_all(self) -> list[User]:
        """按加入顺序返回全部成员。"""
        return [user.model_copy() for user in self._users.values()]

    def has_dm(self) -> bool:
        return any(user.role == "dm" for user in self._users.values())

    def __len__(self) -> int:
        return len(self._users)

    # ── 隐藏掷骰开关 ──────────────────────────────────────────────────

    def set_hide_rolls(self, hide: bool) -> None:
        self._hide_rolls = bool(hide)

    def hide_rolls_enabled(self) -> bool:
        return self._hide_rolls

    # ── 生命值 ────────────────────────────────────────────────────────

    def update_health(self, connection_id: str, new_health: int) -> User | None:
        """更新玩家生命值（夹到 ``[0, max_health]``）。

        成员不存在或不是玩家时不做任何事并返回 None。
        """
        user = self._users.get(connection_id)
        if user is None or user.role != "player":
            return None
        user.current_health = _clamp(new_health, user.max_health)
        return user.model_copy()

    def _check_secret(self, secret: str | None) -> bool:
        if not self.dm_secret or secret is None:
            return False
        return hmac.compare_digest(secret.encode("utf-8"), self.dm_secret.encode("utf-8"))
