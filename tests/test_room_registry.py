"""
tests.test_room_registry
~~~~~~~~~~~~~~~~~~~~~~~~

房间成员表单元测试 —— 准入校验顺序、容量与 DM 唯一性、生命值夹取。
"""
from __future__ import annotations

import os

import pytest

from dice_temple.core.exceptions import DuplicateDmError, InvalidDmSecretError, RoomFullError
from dice_temple.services.room_registry import MAX_MEMBERS, RoomRegistry

TEST_DM_SECRET: str = os.environ["DM_SECRET"]


def fill_with_players(registry: RoomRegistry, count: int) -> None:
    for i in range(count):
        registry.admit(f"p{i}", f"Player {i}", "player")


# ── 准入 ──────────────────────────────────────────────────────────────

class TestAdmit:
    """测试 admit 的校验规则。"""

    def test_room_full_rejects_sixth_member(self, registry: RoomRegistry) -> None:
        """房间已有 5 人时第 6 人被拒绝，人数保持 5。"""
        fill_with_players(registry, MAX_MEMBERS)

        with pytest.raises(RoomFullError):
            registry.admit("p6", "Late", "player")
        assert len(registry) == MAX_MEMBERS

    def test_wrong_dm_secret_rejected(self) -> None:
        """密钥错误的 DM 被拒绝，成员表不变。"""
        registry = RoomRegistry(dm_secret="abc")

        with pytest.raises(InvalidDmSecretError):
            registry.admit("dm", "Dungeon Master", "dm", secret="wrong")
        assert registry.list_all() == []

    def test_dm_secret_checked_before_capacity(self, registry: RoomRegistry) -> None:
        """房间已满时，错误密钥仍报 InvalidDmSecret 而不是 RoomFull。"""
        fill_with_players(registry, MAX_MEMBERS)

        with pytest.raises(InvalidDmSecretError):
            registry.admit("dm", "DM", "dm", secret="nope")

    def test_capacity_checked_before_duplicate_dm(self, registry: RoomRegistry) -> None:
        registry.admit("dm", "DM", "dm", secret=TEST_DM_SECRET)
        fill_with_players(registry, MAX_MEMBERS - 1)

        with pytest.raises(RoomFullError):
            registry.admit("dm2", "DM 2", "dm", secret=TEST_DM_SECRET)

    def test_duplicate_dm_rejected(self, registry: RoomRegistry) -> None:
        registry.admit("dm", "DM", "dm", secret=TEST_DM_SECRET)

        with pytest.raises(DuplicateDmError):
            registry.admit("dm2", "DM 2", "dm", secret=TEST_DM_SECRET)
        assert [u.id for u in registry.list_all()] == ["dm"]

    @pytest.mark.parametrize("configured", [None, ""])
    @pytest.mark.parametrize("supplied", [None, "", "anything"])
    def test_dm_join_fails_without_configured_secret(
        self, configured: str | None, supplied: str | None,
    ) -> None:
        """未配置密钥时 DM 无条件无法加入。"""
        registry = RoomRegistry(dm_secret=configured)

        with pytest.raises(InvalidDmSecretError):
            registry.admit("dm", "DM", "dm", secret=supplied)
        assert len(registry) == 0

    def test_dm_has_no_health(self, registry: RoomRegistry) -> None:
        dm = registry.admit("dm", "DM", "dm", secret=TEST_DM_SECRET)

        assert dm.role == "dm"
        assert dm.max_health is None
        assert dm.current_health is None
        assert "maxHealth" not in dm.to_wire()

    def test_player_health_defaults(self, registry: RoomRegistry) -> None:
        """未提供 maxHealth 时默认 20，currentHealth 默认等于最大值。"""
        player = registry.admit("p1", "Aria", "player")

        assert player.max_health == 20
        assert player.current_health == 20

    def test_player_falsy_health_uses_defaults(self, registry: RoomRegistry) -> None:
        player = registry.admit("p1", "Aria", "player", max_health=0, current_health=0)

        assert player.max_health == 20
        assert player.current_health == 20

    def test_player_current_health_defaults_to_max(self, registry: RoomRegistry) -> None:
        player = registry.admit("p1", "Aria", "player", max_health=35)

        assert player.current_health == 35

    def test_player_current_health_clamped_on_admit(self, registry: RoomRegistry) -> None:
        player = registry.admit("p1", "Aria", "player", max_health=10, current_health=50)

        assert player.current_health == 10

    def test_player_explicit_health(self, registry: RoomRegistry) -> None:
        player = registry.admit("p1", "Aria", "player", max_health=30, current_health=12)

        assert (player.max_health, player.current_health) == (30, 12)
        assert player.joined_at > 0

    def test_at_most_one_dm_over_mixed_sequence(self, registry: RoomRegistry) -> None:
        """任意准入序列后成员数 ≤ 5 且至多一位 DM。"""
        attempts = [
            ("dm", "dm"), ("p1", "player"), ("dm2", "dm"), ("p2", "player"),
            ("p3", "player"), ("dm3", "dm"), ("p4", "player"), ("p5", "player"),
        ]
        for cid, role in attempts:
            try:
                registry.admit(cid, cid, role, secret=TEST_DM_SECRET)
            except (RoomFullError, DuplicateDmError):
                pass
            assert len(registry) <= MAX_MEMBERS
            assert sum(u.role == "dm" for u in registry.list_all()) <= 1


# ── 离开 ──────────────────────────────────────────────────────────────

class TestWithdraw:
    """测试 withdraw 的副作用。"""

    def test_withdraw_returns_user(self, registry: RoomRegistry) -> None:
        registry.admit("p1", "Aria", "player")

        removed = registry.withdraw("p1")

        assert removed is not None and removed.name == "Aria"
        assert registry.lookup("p1") is None

    def test_withdraw_non_member_is_noop(self, registry: RoomRegistry) -> None:
        registry.admit("p1", "Aria", "player")
        registry.set_hide_rolls(True)

        assert registry.withdraw("ghost") is None
        assert len(registry) == 1
        assert registry.hide_rolls_enabled() is True

    def test_dm_leaving_resets_hide_rolls(self, registry: RoomRegistry) -> None:
        """DM 离开后 dmHideRolls 复位，新 DM 默认不隐藏。"""
        registry.admit("dm", "DM", "dm", secret=TEST_DM_SECRET)
        registry.set_hide_rolls(True)

        registry.withdraw("dm")

        assert registry.hide_rolls_enabled() is False
        registry.admit("dm2", "New DM", "dm", secret=TEST_DM_SECRET)
        assert registry.hide_rolls_enabled() is False

    def test_player_leaving_keeps_hide_rolls(self, registry: RoomRegistry) -> None:
        registry.admit("dm", "DM", "dm", secret=TEST_DM_SECRET)
        registry.admit("p1", "Aria", "player")
        registry.set_hide_rolls(True)

        registry.withdraw("p1")

        assert registry.hide_rolls_enabled() is True


# ── 查询 ──────────────────────────────────────────────────────────────

class TestLookup:
    """测试查询返回副本且保持加入顺序。"""

    def test_list_all_insertion_order(self, registry: RoomRegistry) -> None:
        registry.admit("b", "Borin", "player")
        registry.admit("a", "Aria", "player")
        registry.admit("dm", "DM", "dm", secret=TEST_DM_SECRET)

        assert [u.id for u in registry.list_all()] == ["b", "a", "dm"]

    def test_lookup_returns_copy(self, registry: RoomRegistry) -> None:
        registry.admit("p1", "Aria", "player")

        user = registry.lookup("p1")
        user.current_health = -100
        user.name = "Mallory"

        stored = registry.lookup("p1")
        assert stored.current_health == 20
        assert stored.name == "Aria"

    def test_has_dm(self, registry: RoomRegistry) -> None:
        assert registry.has_dm() is False
        registry.admit("dm", "DM", "dm", secret=TEST_DM_SECRET)
        assert registry.has_dm() is True


# ── 生命值 ────────────────────────────────────────────────────────────

class TestUpdateHealth:
    """测试生命值夹取。"""

    @pytest.mark.parametrize("new_health,expected", [
        (-3, 0), (0, 0), (7, 7), (20, 20), (25, 20),
    ])
    def test_clamped_to_range(
        self, registry: RoomRegistry, new_health: int, expected: int,
    ) -> None:
        registry.admit("p1", "Aria", "player", max_health=20, current_health=5)

        updated = registry.update_health("p1", new_health)

        assert updated is not None
        assert updated.current_health == expected
        assert registry.lookup("p1").current_health == expected

    def test_same_value_still_succeeds(self, registry: RoomRegistry) -> None:
        registry.admit("p1", "Aria", "player", max_health=20, current_health=20)

        assert registry.update_health("p1", 30) is not None

    def test_dm_health_update_is_noop(self, registry: RoomRegistry) -> None:
        registry.admit("dm", "DM", "dm", secret=TEST_DM_SECRET)

        assert registry.update_health("dm", 10) is None
        assert registry.lookup("dm").current_health is None

    def test_unknown_member_is_noop(self, registry: RoomRegistry) -> None:
        assert registry.update_health("ghost", 10) is None
