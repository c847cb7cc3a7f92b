"""
dice_temple.services.session_coordinator
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

房间会话协调器 —— 接收客户端事件，校验并修改房间状态，决定把什么发给谁。

每个连接的状态机::

    CONNECTED ──join──▶ JOINED
        │                 │
        └──disconnect─────┴──▶ CLOSED（终态）

同一房间的事件在 ``asyncio.Lock`` 下逐个处理：
校验 → 修改 → 发送 整体原子，保证每个连接收到的事件顺序与状态变化顺序一致。
所有校验失败只回报给触发的连接，房间状态保持不变。
"""
from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any, Protocol

from pydantic import ValidationError

from dice_temple.core.exceptions import (
    AlreadyJoinedError,
    InvalidDieTypeError,
    InvalidPayloadError,
    NotJoinedError,
    RoomError,
    UnauthorizedError,
    UnknownEventError,
)
from dice_temple.core.logging import get_logger
from dice_temple.schemas import events
from dice_temple.schemas.events import EventMessage
from dice_temple.schemas.room import HealthUpdateRequest, JoinRequest, RollRequest, User
from dice_temple.services import dice
from dice_temple.services.roll_ledger import RollLedger
from dice_temple.services.room_registry import RoomRegistry

logger = get_logger(__name__)


class ConnectionGateway(Protocol):
    """协调器所需的传输层能力。"""

    async def send_to(self, connection_id: str, message: EventMessage) -> None: ...

    async def send_to_all_except(self, connection_id: str, message: EventMessage) -> None: ...

    async def send_to_all(self, message: EventMessage) -> None: ...


class ConnectionState(str, Enum):
    CONNECTED = "connected"
    JOINED = "joined"
    CLOSED = "closed"


Handler = Callable[[str, Any], Awaitable[None]]


def _describe_validation_error(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"]) or "payload"
        parts.append(f"{loc}: {err['msg']}")
    return "消息格式不正确 | " + "; ".join(parts)


class SessionCoordinator:
    """单个房间的事件协调器，独占该房间的成员表与掷骰账本。

    Attributes:
        room_id: 房间 ID（仅用于日志）。
        registry: 房间成员表。
        ledger: 掷骰账本。
        gateway: 传输层（通常是 ``RoomBroadcaster``）。
        roller: 掷骰函数，签名同 ``dice.generate``。
    """

    def __init__(
        self,
        room_id: str,
        registry: RoomRegistry,
        ledger: RollLedger,
        gateway: ConnectionGateway,
        roller: Callable[[str], int | None] = dice.generate,
    ) -> None:
        self.room_id = room_id
        self.registry = registry
        self.ledger = ledger
        self.gateway = gateway
        self.roller = roller
        self._states: dict[str, ConnectionState] = {}
        self._lock = asyncio.Lock()
        # 事件名 → (处理函数, 失败时回报的事件名)
        self._handlers: dict[str, tuple[Handler, str]] = {
            events.JOIN: (self._on_join, events.JOIN_ERROR),
            events.ROLL: (self._on_roll, events.ROLL_ERROR),
            events.TOGGLE_HIDE_ROLLS: (self._on_toggle_hide_rolls, events.TOGGLE_ERROR),
            events.UPDATE_HEALTH: (self._on_update_health, events.HEALTH_ERROR),
        }

    def state_of(self, connection_id: str) -> ConnectionState:
        """连接当前状态；已关闭或从未连接过的连接都视为 CLOSED。"""
        return self._states.get(connection_id, ConnectionState.CLOSED)

    # ── 传输层生命周期 ────────────────────────────────────────────────

    async def on_connect(
        self, connection_id: str, register: Callable[[], None] | None = None,
    ) -> None:
        """新连接：下发脱敏后的历史记录（尚未加入的连接按非 DM 处理）。

        Args:
            connection_id: 新连接的 ID。
            register: 把连接加入传输层广播列表的回调，在锁内调用，
                保证连接在收到 history-sync 之前不会收到任何广播。
        """
        async with self._lock:
            if register is not None:
                register()
            self._states[connection_id] = ConnectionState.CONNECTED
            history = self.ledger.rolls_for_role(None)
            await self.gateway.send_to(
                connection_id,
                EventMessage(event=events.HISTORY_SYNC, data=[r.to_wire() for r in history]),
            )

    async def on_disconnect(self, connection_id: str) -> None:
        """连接断开：移出房间，并通知剩余连接。"""
        async with self._lock:
            self._states.pop(connection_id, None)
            user = self.registry.withdraw(connection_id)
            if user is None:
                return
            await self.gateway.send_to_all_except(
                connection_id,
                EventMessage(
                    event=events.USER_LEFT,
                    data={"user": user.to_wire(), "users": self._users_payload()},
                ),
            )
            logger.info(
                "成员离开 | room=%s | name=%s | role=%s | 剩余: %d",
                self.room_id, user.name, user.role, len(self.registry),
            )

    async def handle(self, connection_id: str, event: str, data: Any = None) -> None:
        """分发一条客户端事件。

        Args:
            connection_id: 发送事件的连接。
            event: 事件名。
            data: 事件 payload（JSON 解码后的对象）。
        """
        async with self._lock:
            if self.state_of(connection_id) is ConnectionState.CLOSED:
                logger.debug("忽略已关闭连接的事件 | event=%s", event)
                return

            entry = self._handlers.get(event)
            if entry is None:
                await self._reply_error(
                    connection_id, events.ERROR, UnknownEventError(f"未知的事件类型: {event}"),
                )
                return

            handler, error_event = entry
            try:
                await handler(connection_id, {} if data is None else data)
            except ValidationError as exc:
                await self._reply_error(
                    connection_id, error_event, InvalidPayloadError(_describe_validation_error(exc)),
                )
            except RoomError as exc:
                await self._reply_error(connection_id, error_event, exc)

    # ── 事件处理 ──────────────────────────────────────────────────────

    async def _on_join(self, connection_id: str, data: Any) -> None:
        if self.state_of(connection_id) is ConnectionState.JOINED:
            raise AlreadyJoinedError()
        request = JoinRequest.model_validate(data)
        user = self.registry.admit(
            connection_id,
            name=request.name,
            role=request.role,
            secret=request.secret,
            max_health=request.max_health,
            current_health=request.current_health,
        )
        self._states[connection_id] = ConnectionState.JOINED

        users = self._users_payload()
        await self.gateway.send_to(
            connection_id,
            EventMessage(
                event=events.JOIN_SUCCESS,
                data={
                    "user": user.to_wire(),
                    "users": users,
                    "history": [r.to_wire() for r in self.ledger.rolls_for_role(user.role)],
                    "hideRolls": self.registry.hide_rolls_enabled(),
                },
            ),
        )
        await self.gateway.send_to_all_except(
            connection_id,
            EventMessage(event=events.USER_JOINED, data={"user": user.to_wire(), "users": users}),
        )
        logger.info(
            "成员加入 | room=%s | name=%s | role=%s | 当前: %d",
            self.room_id, user.name, user.role, len(self.registry),
        )

    async def _on_roll(self, connection_id: str, data: Any) -> None:
        user = self._joined_user(connection_id)
        if user is None:
            raise NotJoinedError()
        request = RollRequest.model_validate(data)
        result = self.roller(request.die_type)
        if result is None:
            raise InvalidDieTypeError(f"无效的骰子类型: {request.die_type}")

        hidden = user.role == "dm" and self.registry.hide_rolls_enabled()
        roll = self.ledger.record(
            user_name=user.name,
            role=user.role,
            die_type=dice.normalize(request.die_type) or request.die_type,
            result=result,
            hidden=hidden,
        )

        # 掷骰者总能看到自己的真实点数
        await self.gateway.send_to(
            connection_id, EventMessage(event=events.ROLL_RESULT, data=roll.to_wire()),
        )
        public = roll.redacted() if hidden else roll
        await self.gateway.send_to_all_except(
            connection_id, EventMessage(event=events.ROLL_RESULT, data=public.to_wire()),
        )
        logger.info(
            "掷骰 | room=%s | %s 掷出 %s = %d%s",
            self.room_id, user.name, roll.die_type, result, "（隐藏）" if hidden else "",
        )

    async def _on_toggle_hide_rolls(self, connection_id: str, data: Any) -> None:
        user = self._joined_user(connection_id)
        if user is None or user.role != "dm":
            raise UnauthorizedError("只有 DM 可以切换隐藏掷骰。")

        hide = not self.registry.hide_rolls_enabled()
        self.registry.set_hide_rolls(hide)
        await self.gateway.send_to_all(
            EventMessage(event=events.HIDE_ROLLS_CHANGED, data={"hideRolls": hide}),
        )
        logger.info("DM %s隐藏掷骰 | room=%s", "开启" if hide else "关闭", self.room_id)

    async def _on_update_health(self, connection_id: str, data: Any) -> None:
        user = self._joined_user(connection_id)
        if user is None or user.role != "player":
            raise UnauthorizedError("只有玩家可以更新生命值。")
        request = HealthUpdateRequest.model_validate(data)

        updated = self.registry.update_health(connection_id, request.new_health)
        if updated is None:
            return
        await self.gateway.send_to_all(
            EventMessage(
                event=events.HEALTH_UPDATED,
                data={
                    "userId": connection_id,
                    "currentHealth": updated.current_health,
                    "users": self._users_payload(),
                },
            ),
        )
        logger.info(
            "生命值更新 | room=%s | %s → %d/%d",
            self.room_id, updated.name, updated.current_health, updated.max_health,
        )

    # ── 辅助 ──────────────────────────────────────────────────────────

    def _joined_user(self, connection_id: str) -> User | None:
        if self.state_of(connection_id) is not ConnectionState.JOINED:
            return None
        return self.registry.lookup(connection_id)

    def _users_payload(self) -> list[dict]:
        return [user.to_wire() for user in self.registry.list_all()]

    async def _reply_error(self, connection_id: str, event: str, exc: RoomError) -> None:
        logger.info("事件被拒绝 | room=%s | %s | %s", self.room_id, exc.code, exc.message)
        await self.gateway.send_to(connection_id, EventMessage(event=event, data=exc.to_payload()))
