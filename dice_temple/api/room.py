"""
dice_temple.api.room
~~~~~~~~~~~~~~~~~~~~

房间 REST 接口 —— 只读的房间查看。

端点:
  - ``GET /rooms``                    → 获取活跃房间列表
  - ``GET /rooms/{room_id}``          → 获取房间详情（成员、隐藏开关）
  - ``GET /rooms/{room_id}/history``  → 获取公开（脱敏）的掷骰历史
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from dice_temple.api.deps import get_room_hub
from dice_temple.schemas.api_response import ApiResponse
from dice_temple.schemas.room import RoomInfoData
from dice_temple.services.dice_room import DiceRoom
from dice_temple.services.room_hub import RoomHub

router: APIRouter = APIRouter()


class RoomDetailData(BaseModel):
    """房间详情。"""

    info: RoomInfoData = Field(..., description="房间摘要")
    users: list[dict] = Field(..., description="成员列表（camelCase）")


class HistoryResponseData(BaseModel):
    """掷骰历史响应数据。"""

    room_id: str = Field(..., description="房间 ID")
    rolls: list[dict] = Field(..., description="掷骰记录（隐藏掷骰的点数为 null）")
    total: int = Field(..., description="记录条数")


def _require_room(hub: RoomHub, room_id: str) -> DiceRoom:
    room = hub.find_room(room_id)
    if room is None:
        raise HTTPException(status_code=404, detail=f"房间不存在: {room_id}")
    return room


@router.get("/rooms", summary="获取活跃房间列表")
async def list_rooms(hub: RoomHub = Depends(get_room_hub)) -> ApiResponse[list[RoomInfoData]]:
    """返回所有已创建的房间摘要。"""
    return ApiResponse.ok(data=hub.list_rooms())


@router.get("/rooms/{room_id}", summary="获取房间详情")
async def room_detail(
    room_id: str, hub: RoomHub = Depends(get_room_hub),
) -> ApiResponse[RoomDetailData]:
    """返回指定房间的成员列表与状态。房间不存在时返回 404。"""
    room = _require_room(hub, room_id)
    return ApiResponse.ok(
        data=RoomDetailData(
            info=room.info(),
            users=[user.to_wire() for user in room.registry.list_all()],
        ),
    )


@router.get("/rooms/{room_id}/history", summary="获取掷骰历史")
async def room_history(
    room_id: str, hub: RoomHub = Depends(get_room_hub),
) -> ApiResponse[HistoryResponseData]:
    """返回公开视角（非 DM）的掷骰历史，隐藏掷骰的点数不会出现在这里。"""
    room = _require_room(hub, room_id)
    rolls = [roll.to_wire() for roll in room.ledger.rolls_for_role(None)]
    return ApiResponse.ok(
        data=HistoryResponseData(room_id=room_id, rolls=rolls, total=len(rolls)),
    )
