"""Tests for the regenerating resource rules."""
import math
from datetime import datetime, timedelta

import pytest

from tictactoe_engine.domain.resource_rules import (
    REASON_INSUFFICIENT,
    REASON_INVALID,
    calculate_current,
    can_play_multiple_games,
    consume,
    detect_suspicious_pattern,
    format_time_until_regen,
    get_max_playable_games,
    get_schedule,
    get_time_to_playable,
    validate_resource_data,
)
from tictactoe_engine.models.dc_models import LevelRecord, ResourceConfig


def minutes(value: float) -> timedelta:
    return timedelta(minutes=value)


class TestCalculateCurrent:
    def test_at_max_short_circuits(self, config, now) -> None:
        status = calculate_current(5, now - minutes(10), None, config, now)
        assert status.current_level == 5
        assert status.max_level == 5
        assert status.next_regen_time is None
        assert status.time_until_next_regen == timedelta(0)
        assert status.can_act is True
        assert status.gained == 0

    @pytest.mark.parametrize("level", [5, 6, 7.5, 10])
    def test_above_max_within_tolerance_clamps(self, config, now, level) -> None:
        status = calculate_current(level, now - minutes(600), None, config, now)
        assert status.current_level == 5
        assert status.next_regen_time is None
        assert status.can_act is True

    def test_worked_example(self, config, now) -> None:
        status = calculate_current(2, now - minutes(300), now - minutes(200), config, now)
        assert status.gained == 2
        assert status.current_level == 4
        assert status.time_until_next_regen == minutes(70)
        assert status.next_regen_time == now + minutes(70)
        assert status.next_anchor_time == now - minutes(20)
        assert status.can_act is True

    def test_falls_back_to_last_update_time(self, config, now) -> None:
        status = calculate_current(0, now - minutes(100), None, config, now)
        assert status.current_level == 1
        assert status.time_until_next_regen == minutes(80)
        assert status.can_act is True

    def test_no_progress_yet(self, config, now) -> None:
        status = calculate_current(0, now - minutes(30), None, config, now)
        assert status.current_level == 0
        assert status.gained == 0
        assert status.can_act is False
        assert status.time_until_next_regen == minutes(60)

    def test_caps_at_max(self, config, now) -> None:
        status = calculate_current(3, now - minutes(600), None, config, now)
        assert status.current_level == 5
        assert status.next_regen_time is None
        assert status.time_until_next_regen == timedelta(0)

    def test_fractional_level_is_floored(self, config, now) -> None:
        status = calculate_current(2.7, now, None, config, now)
        assert status.current_level == 2

    def test_can_act_respects_cost(self, now) -> None:
        config = ResourceConfig(max_level=5, regen_period=minutes(90), cost_per_action=2)
        assert calculate_current(1, now, None, config, now).can_act is False
        assert calculate_current(2, now, None, config, now).can_act is True

    @pytest.mark.parametrize("level", [-1, -0.5, math.nan, math.inf, 11, "3", None, True])
    def test_invalid_level_fails_safe(self, config, now, caplog, level) -> None:
        status = calculate_current(level, now - minutes(10), None, config, now)
        assert status.current_level == 0
        assert status.can_act is False
        assert status.next_regen_time == now + minutes(90)
        assert "Resource calculation failed" in caplog.text

    def test_future_last_update_fails_safe(self, config, now, caplog) -> None:
        status = calculate_current(3, now + minutes(1), None, config, now)
        assert status.current_level == 0
        assert status.can_act is False
        assert "cannot be in the future" in caplog.text

    def test_future_last_regen_fails_safe(self, config, now) -> None:
        status = calculate_current(3, now - minutes(10), now + minutes(1), config, now)
        assert status.current_level == 0
        assert status.can_act is False

    def test_non_datetime_timestamp_fails_safe(self, config, now) -> None:
        status = calculate_current(3, "yesterday", None, config, now)
        assert status.current_level == 0
        assert status.can_act is False

    def test_naive_and_aware_mix_fails_safe(self, config, now, caplog) -> None:
        naive = datetime(2026, 1, 15, 11, 0)
        status = calculate_current(3, naive, None, config, now)
        assert status.current_level == 0
        assert status.can_act is False
        assert "Resource calculation error" in caplog.text

    def test_is_idempotent(self, config, now) -> None:
        first = calculate_current(1, now - minutes(400), now - minutes(250), config, now)
        second = calculate_current(1, now - minutes(400), now - minutes(250), config, now)
        assert first == second

    def test_monotonic_in_now(self, config, now) -> None:
        anchor = now - minutes(10)
        levels = [
            calculate_current(0, anchor, None, config, anchor + minutes(m)).current_level
            for m in range(0, 600, 7)
        ]
        assert levels == sorted(levels)
        assert all(0 <= level <= config.max_level for level in levels)

    @pytest.mark.parametrize("elapsed", [0, 45, 90, 91, 200, 269, 270])
    def test_anchor_advance_keeps_partial_progress(self, config, now, elapsed) -> None:
        first = calculate_current(0, now - minutes(elapsed), None, config, now)
        second = calculate_current(
            first.current_level, now, first.next_anchor_time, config, now
        )
        assert second.gained == 0
        assert second.current_level == first.current_level
        assert second.time_until_next_regen == first.time_until_next_regen


class TestConsume:
    def test_consumes_one(self, config) -> None:
        result = consume(5, config)
        assert result.accepted is True
        assert result.new_level == 4
        assert result.reason is None

    def test_last_unit(self, config) -> None:
        result = consume(1, config)
        assert result.accepted is True
        assert result.new_level == 0

    def test_insufficient(self, config) -> None:
        result = consume(0, config)
        assert result.accepted is False
        assert result.new_level == 0
        assert result.reason == REASON_INSUFFICIENT

    def test_insufficient_for_higher_cost(self) -> None:
        config = ResourceConfig(max_level=5, cost_per_action=2)
        result = consume(1, config)
        assert result.accepted is False
        assert result.new_level == 1
        assert result.reason == REASON_INSUFFICIENT

    def test_negative_level_is_insufficient_and_floored(self, config) -> None:
        result = consume(-1, config)
        assert result.accepted is False
        assert result.new_level == 0
        assert result.reason == REASON_INSUFFICIENT

    @pytest.mark.parametrize("level", [math.nan, math.inf, "5", None, 1000])
    def test_invalid_level(self, config, caplog, level) -> None:
        result = consume(level, config)
        assert result.accepted is False
        assert result.new_level == 0
        assert result.reason == REASON_INVALID
        assert "Invalid level for consumption" in caplog.text

    def test_fractional_level(self, config) -> None:
        result = consume(2.7, config)
        assert result.accepted is True
        assert result.new_level == 1


class TestGetSchedule:
    def test_schedule_until_max(self, fast_config, now) -> None:
        schedule = get_schedule(5, None, fast_config, now)
        assert [entry.level for entry in schedule] == [6, 7, 8, 9, 10]
        assert schedule[0].time == now + minutes(5)
        assert schedule[-1].time == now + minutes(25)

    def test_empty_at_max(self, fast_config, now) -> None:
        assert get_schedule(10, None, fast_config, now) == []

    def test_empty_for_invalid_level(self, fast_config, now, caplog) -> None:
        assert get_schedule(-1, None, fast_config, now) == []
        assert "Invalid level for schedule" in caplog.text

    def test_keeps_partial_progress(self, fast_config, now) -> None:
        schedule = get_schedule(5, now - minutes(2), fast_config, now)
        assert schedule[0].time == now + minutes(3)
        assert schedule[1].time == now + minutes(8)

    def test_stops_at_horizon(self, fast_config, now) -> None:
        schedule = get_schedule(0, None, fast_config, now, horizon=minutes(12))
        assert [(entry.time, entry.level) for entry in schedule] == [
            (now + minutes(5), 1),
            (now + minutes(10), 2),
        ]

    def test_non_positive_horizon(self, fast_config, now) -> None:
        assert get_schedule(0, None, fast_config, now, horizon=timedelta(0)) == []

    def test_future_anchor(self, fast_config, now, caplog) -> None:
        assert get_schedule(0, now + minutes(1), fast_config, now) == []
        assert "Invalid last regen time" in caplog.text

    def test_production_defaults(self, config, now) -> None:
        schedule = get_schedule(0, None, config, now)
        assert len(schedule) == 5
        assert schedule[-1].time == now + minutes(450)
        assert schedule[-1].level == 5


class TestDetectSuspiciousPattern:
    def test_normal_pattern(self, fast_config, now) -> None:
        history = [
            LevelRecord(level=5, timestamp=now - minutes(20)),
            LevelRecord(level=7, timestamp=now - minutes(10)),
            LevelRecord(level=8, timestamp=now),
        ]
        assert detect_suspicious_pattern(history, fast_config).suspicious is False

    def test_impossible_regeneration(self, fast_config, now) -> None:
        history = [
            LevelRecord(level=5, timestamp=now - timedelta(seconds=1)),
            LevelRecord(level=10, timestamp=now),
        ]
        verdict = detect_suspicious_pattern(history, fast_config)
        assert verdict.suspicious is True
        assert verdict.reason == "Impossible regeneration detected"

    def test_too_frequent_updates(self, fast_config, now) -> None:
        history = [
            LevelRecord(level=5, timestamp=now - timedelta(milliseconds=500)),
            LevelRecord(level=4, timestamp=now),
        ]
        verdict = detect_suspicious_pattern(history, fast_config)
        assert verdict.suspicious is True
        assert verdict.reason == "Too frequent updates detected"

    def test_spending_over_time_is_fine(self, fast_config, now) -> None:
        history = [
            LevelRecord(level=5, timestamp=now - minutes(2)),
            LevelRecord(level=4, timestamp=now - minutes(1)),
            LevelRecord(level=3, timestamp=now),
        ]
        assert detect_suspicious_pattern(history, fast_config).suspicious is False

    def test_returns_first_violation(self, fast_config, now) -> None:
        history = [
            LevelRecord(level=1, timestamp=now - minutes(1)),
            LevelRecord(level=9, timestamp=now - timedelta(milliseconds=100)),
            LevelRecord(level=8, timestamp=now),
        ]
        verdict = detect_suspicious_pattern(history, fast_config)
        assert verdict.reason == "Impossible regeneration detected"

    def test_accepts_dicts(self, config, now) -> None:
        history = [
            {"level": 1, "timestamp": now - minutes(60)},
            {"level": 5, "timestamp": now},
        ]
        assert detect_suspicious_pattern(history, config).suspicious is True

    @pytest.mark.parametrize("history", [[], None, "history"])
    def test_empty_or_malformed_history(self, config, history) -> None:
        assert detect_suspicious_pattern(history, config).suspicious is False

    def test_single_entry(self, config, now) -> None:
        history = [LevelRecord(level=5, timestamp=now)]
        assert detect_suspicious_pattern(history, config).suspicious is False

    def test_skips_malformed_entries(self, fast_config, now) -> None:
        history = [
            {"level": 5, "timestamp": now},
            None,
            {"level": 6, "timestamp": now},
        ]
        assert detect_suspicious_pattern(history, fast_config).suspicious is False


class TestValidateResourceData:
    def test_valid(self, fast_config, now) -> None:
        assert validate_resource_data(5, now, fast_config, now) is True

    @pytest.mark.parametrize("level", [-1, 15, math.nan, "5"])
    def test_invalid_level(self, fast_config, now, level) -> None:
        assert validate_resource_data(level, now, fast_config, now) is False

    def test_invalid_date(self, fast_config, now) -> None:
        assert validate_resource_data(5, "2026-01-01", fast_config, now) is False

    def test_future_date(self, fast_config, now) -> None:
        assert validate_resource_data(5, now + minutes(1), fast_config, now) is False


class TestPlayableGames:
    def test_can_play_multiple(self, fast_config) -> None:
        assert can_play_multiple_games(5, 3, fast_config) is True
        assert can_play_multiple_games(2, 3, fast_config) is False

    @pytest.mark.parametrize("level,games", [(-1, 2), (5, -1), (5, 0), (5, 101), (math.nan, 2), (5, 2.5)])
    def test_can_play_multiple_invalid(self, fast_config, level, games) -> None:
        assert can_play_multiple_games(level, games, fast_config) is False

    @pytest.mark.parametrize("level,expected", [(5, 5), (0, 0), (-1, 0), (math.nan, 0), (2.7, 2)])
    def test_max_playable_games(self, fast_config, level, expected) -> None:
        assert get_max_playable_games(level, fast_config) == expected

    def test_max_playable_games_with_cost(self) -> None:
        config = ResourceConfig(max_level=10, cost_per_action=2)
        assert get_max_playable_games(5, config) == 2


class TestGetTimeToPlayable:
    def test_none_when_playable(self, fast_config, now) -> None:
        assert get_time_to_playable(5, None, fast_config, now) is None

    def test_next_unit_without_anchor(self, fast_config, now) -> None:
        assert get_time_to_playable(0, None, fast_config, now) == now + minutes(5)

    def test_keeps_partial_progress(self, fast_config, now) -> None:
        assert get_time_to_playable(0, now - minutes(2), fast_config, now) == now + minutes(3)

    def test_multiple_units_needed(self, now) -> None:
        config = ResourceConfig(max_level=10, regen_period=minutes(5), cost_per_action=3)
        assert get_time_to_playable(1, None, config, now) == now + minutes(10)

    def test_invalid_level(self, fast_config, now) -> None:
        assert get_time_to_playable(-1, None, fast_config, now) is None


class TestFormatTimeUntilRegen:
    @pytest.mark.parametrize(
        "duration,expected",
        [
            (minutes(3), "3m"),
            (minutes(90), "1h 30m"),
            (minutes(120), "2h 0m"),
            (timedelta(seconds=30), "1m"),
            (timedelta(0), "0m"),
            (timedelta(seconds=-1), "0m"),
            (1000, "0m"),
            (None, "0m"),
        ],
    )
    def test_format(self, duration, expected) -> None:
        assert format_time_until_regen(duration) == expected
