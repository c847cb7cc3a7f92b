"""
dice_temple.services.dice
~~~~~~~~~~~~~~~~~~~~~~~~~

掷骰引擎 —— 纯函数，与房间状态无关。

支持固定的骰子集合: d4、d6、d8、d10、d12、d20，以及百分骰 d00
（只取十位: 10, 20, ..., 100）。骰子类型不区分大小写。
"""
from __future__ import annotations

import random
from typing import Any

_PERCENTILE_VALUES: tuple[int, ...] = tuple(range(10, 101, 10))

# 骰子类型 → 可能的点数
DICE: dict[str, tuple[int, ...]] = {
    "d4": tuple(range(1, 5)),
    "d6": tuple(range(1, 7)),
    "d8": tuple(range(1, 9)),
    "d10": tuple(range(1, 11)),
    "d00": _PERCENTILE_VALUES,
    "d12": tuple(range(1, 13)),
    "d20": tuple(range(1, 21)),
}

DIE_TYPES: tuple[str, ...] = tuple(DICE)


def normalize(die_type: Any) -> str | None:
    """返回规范化（小写）的骰子类型，不在骰子集合内时返回 None。"""
    if not isinstance(die_type, str):
        return None
    key = die_type.strip().lower()
    return key if key in DICE else None


def generate(die_type: Any, rng: random.Random | None = None) -> int | None:
    """掷一次指定类型的骰子。

    Args:
        die_type: 骰子类型，如 ``"d20"``、``"D6"``、``"d00"``。
        rng: 可选的随机源（测试时注入固定种子）。

    Returns:
        掷骰点数；骰子类型未知时返回 None，由调用方转换为用户可见的错误。
    """
    key = normalize(die_type)
    if key is None:
        return None
    return (rng or random).choice(DICE[key])
