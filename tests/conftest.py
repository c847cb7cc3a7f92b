"""
tests.conftest
~~~~~~~~~~~~~~

共享 pytest fixtures —— 设置测试环境变量，提供记录发送内容的假传输层，
使协调器测试无需真实 WebSocket 即可运行。
"""
from __future__ import annotations

import asyncio
import json
import os
from collections.abc import Iterator

import pytest

# ── 在所有测试导入前设置环境变量 ─────────────────────────────────────
os.environ.setdefault("ENVIRONMENT", "test")  # 激活 .env.test 配置
TEST_DM_SECRET: str = os.environ.setdefault("DM_SECRET", "test-dm-secret")

from fastapi.testclient import TestClient  # noqa: E402

from dice_temple.schemas.events import EventMessage  # noqa: E402
from dice_temple.services.roll_ledger import RollLedger  # noqa: E402
from dice_temple.services.room_registry import RoomRegistry  # noqa: E402
from dice_temple.services.session_coordinator import SessionCoordinator  # noqa: E402


class RecordingSocket:
    """只实现 ``send_text`` 的假 WebSocket。

    ``gate`` 被设置时，发送会阻塞到该事件触发；``fail=True`` 时发送抛异常。
    """

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.gate: asyncio.Event | None = None
        self.texts: list[str] = []

    async def send_text(self, text: str) -> None:
        if self.gate is not None:
            await self.gate.wait()
        if self.fail:
            raise RuntimeError("socket closed")
        self.texts.append(text)

    def events(self) -> list[str]:
        return [json.loads(text)["event"] for text in self.texts]

    def payloads(self, event: str) -> list:
        return [msg["data"] for msg in map(json.loads, self.texts) if msg["event"] == event]


class FakeGateway:
    """记录每个连接收到的消息的假传输层。"""

    def __init__(self) -> None:
        self.connections: list[str] = []
        self.sent: list[tuple[str, EventMessage]] = []

    def connect(self, connection_id: str) -> None:
        self.connections.append(connection_id)

    def disconnect(self, connection_id: str) -> None:
        if connection_id in self.connections:
            self.connections.remove(connection_id)

    async def send_to(self, connection_id: str, message: EventMessage) -> None:
        if connection_id in self.connections:
            self.sent.append((connection_id, message))

    async def send_to_all_except(self, connection_id: str, message: EventMessage) -> None:
        for cid in self.connections:
            if cid != connection_id:
                self.sent.append((cid, message))

    async def send_to_all(self, message: EventMessage) -> None:
        for cid in self.connections:
            self.sent.append((cid, message))

    # ── 断言辅助 ──────────────────────────────────────────────────────

    def messages_for(self, connection_id: str, event: str | None = None) -> list[EventMessage]:
        return [
            msg for cid, msg in self.sent
            if cid == connection_id and (event is None or msg.event == event)
        ]

    def events_for(self, connection_id: str) -> list[str]:
        return [msg.event for msg in self.messages_for(connection_id)]

    def last(self, connection_id: str, event: str | None = None) -> EventMessage:
        messages = self.messages_for(connection_id, event)
        assert messages, f"{connection_id} 没有收到 {event or '任何'} 消息"
        return messages[-1]

    def clear(self) -> None:
        self.sent.clear()


@pytest.fixture()
def registry() -> RoomRegistry:
    return RoomRegistry(dm_secret=TEST_DM_SECRET)


@pytest.fixture()
def ledger() -> RollLedger:
    return RollLedger()


@pytest.fixture()
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture()
def coordinator(registry: RoomRegistry, ledger: RollLedger, gateway: FakeGateway) -> SessionCoordinator:
    """掷骰点数固定为 17 的协调器。"""
    return SessionCoordinator(
        room_id="test-room",
        registry=registry,
        ledger=ledger,
        gateway=gateway,
        roller=lambda die_type: 17 if die_type.lower() in {"d20", "d6"} else None,
    )


@pytest.fixture()
def client() -> Iterator[TestClient]:
    """启动完整应用（含 lifespan），每个测试拿到全新的 RoomHub。"""
    from dice_temple.main import app

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def recording_socket() -> type[RecordingSocket]:
    return RecordingSocket
