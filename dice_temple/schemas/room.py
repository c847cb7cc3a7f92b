"""
dice_temple.schemas.room
~~~~~~~~~~~~~~~~~~~~~~~~

房间领域模型与入站请求体（Pydantic）。

线上 JSON 统一使用 camelCase（``userName``、``maxHealth`` …），
Python 侧使用 snake_case，两种写法在解析时都接受。
"""
from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

Role = Literal["dm", "player"]


class CamelModel(BaseModel):
    """camelCase 线上格式的模型基类。"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        """转换为可直接 JSON 序列化的 camelCase 字典。"""
        return self.model_dump(mode="json", by_alias=True)


# ── 领域模型 ──────────────────────────────────────────────────────────

class User(CamelModel):
    """房间成员。``max_health`` / ``current_health`` 仅玩家持有。"""

    id: str = Field(..., description="连接 ID，连接期间不变")
    name: str = Field(..., description="显示名称（不保证唯一）")
    role: Role = Field(..., description="角色：dm / player，加入后不可变")
    joined_at: int = Field(..., description="加入时间（epoch 毫秒）")
    max_health: int | None = Field(default=None, description="最大生命值")
    current_health: int | None = Field(default=None, description="当前生命值")

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Roll(CamelModel):
    """一次掷骰记录，创建后不可变。

    ``result`` 为 ``None`` 表示该记录对接收方隐藏（未知）。
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str = Field(..., description="掷骰记录 ID")
    user_name: str = Field(..., description="掷骰时玩家的名称快照")
    role: Role = Field(..., description="掷骰时玩家的角色快照")
    die_type: str = Field(..., description="骰子类型，如 d20")
    result: int | None = Field(..., description="点数；隐藏时为 null")
    hidden: bool = Field(default=False, description="是否为 DM 的隐藏掷骰")
    timestamp: int = Field(..., description="掷骰时间（epoch 毫秒）")

    def redacted(self) -> Roll:
        """返回点数被抹去的副本。"""
        return self.model_copy(update={"result": None})


class RoomInfoData(BaseModel):
    """房间摘要信息。"""

    room_id: str = Field(..., description="房间唯一标识")
    online_count: int = Field(..., description="当前在线连接数")
    member_count: int = Field(..., description="已加入房间的成员数")
    has_dm: bool = Field(..., description="房间内是否有 DM")
    hide_rolls: bool = Field(..., description="DM 是否隐藏掷骰结果")
    roll_count: int = Field(..., description="历史掷骰条数")


# ── 入站请求体 ────────────────────────────────────────────────────────

class JoinRequest(CamelModel):
    """``join`` 事件 payload。"""

    name: str = Field(..., description="显示名称（不校验，也不要求唯一）")
    role: Role = Field(..., description="申请的角色")
    secret: str | None = Field(default=None, description="DM 密钥")
    max_health: int | None = Field(default=None, ge=0, description="最大生命值，缺省 20")
    current_health: int | None = Field(default=None, description="初始生命值，缺省等于最大值")

    @field_validator("secret", mode="before")
    @classmethod
    def coerce_secret(cls, value: Any) -> str | None:
        # 任意类型的密钥都转成字符串，是否匹配交给成员表判断
        return None if value is None else str(value)


class RollRequest(CamelModel):
    """``roll`` 事件 payload。"""

    die_type: str = Field(..., description="骰子类型")


class HealthUpdateRequest(CamelModel):
    """``update-health`` 事件 payload。"""

    new_health: int = Field(..., description="新的生命值（会被夹到 [0, maxHealth]）")
