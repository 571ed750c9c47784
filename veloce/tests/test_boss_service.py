"""
Tests for BossService.

Tests cover:
1. Boss construction from goal, target and difficulty
2. Damage, critical hits and the single defeat transition
3. Bonus XP
4. Weekly generation and rewards
"""
import pytest
from datetime import datetime, timedelta

from veloce.services.boss_service import BossService
from veloce.services.points_service import PointsService
from veloce.enums import BossAppearance, BossDifficulty
from veloce.exceptions import BossNotFoundException
from veloce.tests.conftest import create_goal

WEEK_START = datetime(2025, 1, 13)


def make_boss(health=20, **kwargs):
    boss = BossService.build_boss(None, WEEK_START, weekly_target=health)
    for key, value in kwargs.items():
        setattr(boss, key, value)
    return boss


class TestBuildBoss:
    """Tests for build_boss"""

    def test_default_boss(self):
        """Target 20 -> 20 HP and 100 + 20*5 XP"""
        boss = BossService.build_boss(None, WEEK_START)
        assert boss.appearance == BossAppearance.VOID_VANGUARD.value
        assert boss.total_health == 20
        assert boss.current_health == 20
        assert boss.xp_reward == 200

    def test_minimum_health(self):
        """Small targets still give a 10 HP boss"""
        boss = BossService.build_boss(None, WEEK_START, weekly_target=4)
        assert boss.total_health == 10
        assert boss.xp_reward == 120

    @pytest.mark.parametrize("difficulty,health,xp", [
        (BossDifficulty.NORMAL, 20, 200),
        (BossDifficulty.HARD, 30, 300),
        (BossDifficulty.NIGHTMARE, 40, 500),
    ])
    def test_difficulty_multipliers(self, difficulty, health, xp):
        boss = BossService.build_boss(None, WEEK_START, 20, difficulty)
        assert boss.total_health == health
        assert boss.xp_reward == xp

    @pytest.mark.parametrize("category,appearance", [
        ("career", BossAppearance.DEADLINE_DRAGON),
        ("Health", BossAppearance.PROCRASTINATION_PHOENIX),
        ("education", BossAppearance.KNOWLEDGE_KRAKEN),
        ("financial", BossAppearance.BUDGET_BEHEMOTH),
        ("other", BossAppearance.VOID_VANGUARD),
        (None, BossAppearance.VOID_VANGUARD),
    ])
    def test_appearance_follows_goal_category(self, db_session, category, appearance):
        goal = create_goal(db_session, category=category)
        boss = BossService.build_boss(goal, WEEK_START)
        assert boss.appearance == appearance.value
        assert boss.name == appearance.display_name
        assert boss.linked_goal_id == goal.id


class TestCombat:
    """Tests for damage and defeat"""

    def test_damage_reduces_health(self, now):
        boss = make_boss()
        assert BossService.deal_damage(boss, 3, now) is False
        assert boss.current_health == 17
        assert boss.damage_dealt == 3
        assert boss.tasks_defeated == 1

    def test_critical_hit_counts_separately(self, now):
        boss = make_boss()
        BossService.deal_critical_hit(boss, 2, now)
        assert boss.critical_hits == 1
        assert boss.tasks_defeated == 0
        assert boss.current_health == 18

    def test_health_floors_at_zero(self, now):
        boss = make_boss()
        BossService.deal_damage(boss, 50, now)
        assert boss.current_health == 0
        assert boss.damage_dealt == 50

    def test_defeat_happens_once(self, now):
        """Only the hit that reaches 0 reports the defeat; later hits keep the timestamp"""
        boss = make_boss(health=10)
        assert BossService.deal_damage(boss, 10, now) is True
        assert boss.is_defeated is True
        assert boss.defeated_at == now

        later = now + timedelta(hours=1)
        assert BossService.deal_damage(boss, 1, later) is False
        assert boss.defeated_at == now
        assert boss.is_defeated is True

    def test_health_never_increases(self, now):
        boss = make_boss()
        seen = [boss.current_health]
        for amount in (1, 2, 0, 5, 30):
            BossService.deal_damage(boss, amount, now)
            seen.append(boss.current_health)
        assert seen == sorted(seen, reverse=True)


class TestBonusXP:
    """Tests for calculate_bonus_xp"""

    def test_no_bonus_while_alive(self):
        assert BossService.calculate_bonus_xp(make_boss()) == 0

    def test_fast_defeat_with_crit_and_overkill(self):
        """Defeated in < 3 days, one crit, 2 overkill damage -> 50 + 10 + 10"""
        boss = make_boss()
        BossService.deal_critical_hit(boss, 2, WEEK_START + timedelta(days=1))
        BossService.deal_damage(boss, 20, WEEK_START + timedelta(days=2))
        assert boss.is_defeated
        assert BossService.calculate_bonus_xp(boss) == 70

    def test_medium_speed_bonus(self):
        boss = make_boss()
        BossService.deal_damage(boss, 20, WEEK_START + timedelta(days=4))
        assert BossService.calculate_bonus_xp(boss) == 25

    def test_slow_defeat_no_speed_bonus(self):
        boss = make_boss()
        BossService.deal_damage(boss, 20, WEEK_START + timedelta(days=6))
        assert BossService.calculate_bonus_xp(boss) == 0

    def test_overkill_is_capped(self):
        boss = make_boss()
        BossService.deal_damage(boss, 100, WEEK_START + timedelta(days=6))
        assert BossService.calculate_bonus_xp(boss) == 100


class TestReadModel:
    """Tests for the derived boss values"""

    def test_expired_after_week_end(self):
        boss = make_boss()
        assert BossService.is_expired(boss, WEEK_START + timedelta(days=6)) is False
        assert BossService.is_expired(boss, WEEK_START + timedelta(days=7, seconds=1)) is True

    def test_defeated_boss_never_expires(self, now):
        boss = make_boss()
        BossService.deal_damage(boss, 20, now)
        assert BossService.is_expired(boss, WEEK_START + timedelta(days=10)) is False

    def test_taunt_is_one_of_appearance_taunts(self):
        boss = make_boss()
        assert BossService.current_taunt(boss) in BossAppearance.VOID_VANGUARD.taunts


class TestWeeklyBoss:
    """Tests for generation and damage against the stored boss"""

    def test_generate_is_idempotent(self, db_session, default_settings, now):
        service = BossService(db_session)
        first = service.generate_weekly_boss(now)
        second = service.generate_weekly_boss(now + timedelta(days=2))
        assert first.id == second.id
        assert first.week_start == WEEK_START

    def test_generate_uses_settings_and_first_goal(self, db_session, default_settings, now):
        default_settings.weekly_boss_target = 30
        default_settings.boss_difficulty = "hard"
        db_session.commit()
        goal = create_goal(db_session, category="career")

        boss = BossService(db_session).generate_weekly_boss(now)
        assert boss.total_health == 45
        assert boss.linked_goal_id == goal.id
        assert boss.appearance == BossAppearance.DEADLINE_DRAGON.value

    def test_no_boss_raises(self, db_session, now):
        with pytest.raises(BossNotFoundException):
            BossService(db_session).require_current_boss(now)

    def test_damage_without_boss_is_ignored(self, db_session, now):
        assert BossService(db_session).damage_current_boss(1, now=now) is None

    def test_defeat_awards_reward_and_bonus(self, db_session, default_settings, now):
        """Defeat on Wednesday: 200 XP + 50 speed bonus"""
        service = BossService(db_session)
        service.generate_weekly_boss(now)
        boss = service.damage_current_boss(20, now=now)

        assert boss.is_defeated
        assert PointsService(db_session).get_level_summary()["total_points"] == 250

        # further hits award nothing
        service.damage_current_boss(5, now=now)
        assert PointsService(db_session).get_level_summary()["total_points"] == 250
