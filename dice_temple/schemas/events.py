"""
dice_temple.schemas.events
~~~~~~~~~~~~~~~~~~~~~~~~~~

WebSocket 事件协议。

双向消息都是 ``{"event": <事件名>, "data": <payload>}`` 形式的 JSON 对象。
"""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

# ── 客户端 → 服务端 ───────────────────────────────────────────────────
JOIN = "join"
ROLL = "roll"
TOGGLE_HIDE_ROLLS = "toggle-hide-rolls"
UPDATE_HEALTH = "update-health"

# ── 服务端 → 客户端 ───────────────────────────────────────────────────
HISTORY_SYNC = "history-sync"
JOIN_SUCCESS = "join-success"
JOIN_ERROR = "join-error"
USER_JOINED = "user-joined"
USER_LEFT = "user-left"
ROLL_RESULT = "roll-result"
ROLL_ERROR = "roll-error"
HIDE_ROLLS_CHANGED = "hide-rolls-changed"
HEALTH_UPDATED = "health-updated"
HEALTH_ERROR = "health-error"
TOGGLE_ERROR = "toggle-error"
ERROR = "error"


class EventMessage(BaseModel):
    """一条 WebSocket 事件消息。"""

    event: str = Field(..., description="事件名")
    data: Any = Field(default=None, description="事件 payload")
