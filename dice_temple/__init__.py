"""
dice_temple
~~~~~~~~~~~

Dice Temple —— 多人实时掷骰房间后端（DM + 玩家 + 共享掷骰历史）。
"""
