"""Regenerating resource ("energy") rules.

Levels regenerate lazily: the current level is derived from the stored level
and the time elapsed since the anchor (``last_regen_time``, falling back to
``last_update_time``). There is no timer per actor.

Rule of thumb (same as the rest of ``domain``):
- The caller passes ``now`` and the config; nothing here reads the clock.
- The caller persists results. After a regeneration it should store the new
  level and advance the anchor by whole periods (``next_anchor_time``), not
  snap it to ``now``, or partial progress is lost on every call.
- Bad input never raises. It degrades to the safest status and is logged.
"""
import logging
import math
from datetime import datetime, timedelta
from numbers import Real
from typing import List, Optional

from pydantic import ValidationError

from tictactoe_engine.models.dc_models import (
    ConsumeResult,
    LevelRecord,
    PatternVerdict,
    ResourceConfig,
    ResourceStatus,
    ScheduleEntry,
)

REASON_INSUFFICIENT = "insufficient"
REASON_INVALID = "invalid"

DEFAULT_HORIZON = timedelta(hours=24)
# Stored levels up to this multiple of max_level are clamped instead of rejected.
LEVEL_TOLERANCE = 2
MAX_GAMES_PER_CHECK = 100


def _is_finite_number(value) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool) and math.isfinite(value)


def _is_valid_level(level, config: ResourceConfig) -> bool:
    return (
        _is_finite_number(level)
        and level >= 0
        and level <= config.max_level * LEVEL_TOLERANCE
    )


def _validate_inputs(
    level,
    last_update_time,
    last_regen_time,
    config: ResourceConfig,
    now: datetime,
) -> List[str]:
    errors = []

    if not _is_finite_number(level):
        errors.append("level must be a finite number")
    elif level < 0:
        errors.append("level cannot be negative")
    elif level > config.max_level * LEVEL_TOLERANCE:
        errors.append("level suspiciously high")

    if not isinstance(last_update_time, datetime):
        errors.append("last update time must be a datetime")
    elif last_update_time > now:
        errors.append("last update time cannot be in the future")

    if last_regen_time is not None:
        if not isinstance(last_regen_time, datetime):
            errors.append("last regen time must be a datetime")
        elif last_regen_time > now:
            errors.append("last regen time cannot be in the future")

    return errors


def _fail_safe_status(config: ResourceConfig, now: datetime) -> ResourceStatus:
    next_regen_time = now + config.regen_period if isinstance(now, datetime) else None
    return ResourceStatus(
        current_level=0,
        max_level=config.max_level,
        next_regen_time=next_regen_time,
        time_until_next_regen=config.regen_period,
        can_act=False,
    )


def _next_regen_time(
    last_regen_time: Optional[datetime], config: ResourceConfig, now: datetime
) -> datetime:
    """Moment the next unit lands, keeping the partial progress since the anchor."""
    if last_regen_time is None:
        return now + config.regen_period
    progress = (now - last_regen_time) % config.regen_period
    return now + (config.regen_period - progress)


def calculate_current(
    level,
    last_update_time: datetime,
    last_regen_time: Optional[datetime],
    config: ResourceConfig,
    now: datetime,
) -> ResourceStatus:
    """Derive the current level from a stored snapshot.

    Args:
        level: Level stored at the anchor time
        last_update_time (datetime): Last time the stored level changed
        last_regen_time (Optional[datetime]): Regeneration anchor, if any
        config (ResourceConfig): Resource settings
        now (datetime): Time of the call

    Returns:
        ResourceStatus: Current level, next regeneration and playability.
            Invalid input yields level 0 with ``can_act`` False.
    """
    try:
        errors = _validate_inputs(level, last_update_time, last_regen_time, config, now)
        if errors:
            logging.error(f"Resource calculation failed: {', '.join(errors)}")
            return _fail_safe_status(config, now)

        if level >= config.max_level:
            return ResourceStatus(
                current_level=config.max_level,
                max_level=config.max_level,
                next_regen_time=None,
                time_until_next_regen=timedelta(0),
                can_act=True,
            )

        anchor = last_regen_time if last_regen_time is not None else last_update_time
        elapsed = now - anchor
        gained = elapsed // config.regen_period
        current_level = min(math.floor(level) + gained, config.max_level)

        next_regen_time = None
        time_until_next_regen = timedelta(0)
        if current_level < config.max_level:
            time_until_next_regen = config.regen_period - elapsed % config.regen_period
            next_regen_time = now + time_until_next_regen

        return ResourceStatus(
            current_level=current_level,
            max_level=config.max_level,
            next_regen_time=next_regen_time,
            time_until_next_regen=time_until_next_regen,
            can_act=current_level >= config.cost_per_action,
            gained=gained,
            next_anchor_time=anchor + gained * config.regen_period,
        )
    except Exception as e:
        logging.error(f"Resource calculation error: {e}")
        return _fail_safe_status(config, now)


def consume(current_level, config: ResourceConfig) -> ConsumeResult:
    """Spend one action's cost from an already regenerated level.

    Args:
        current_level: Level returned by calculate_current
        config (ResourceConfig): Resource settings

    Returns:
        ConsumeResult: accepted with the new level, or rejected with a reason
    """
    try:
        if not _is_finite_number(current_level):
            logging.error(f"Invalid level for consumption: {current_level}")
            return ConsumeResult(accepted=False, new_level=0, reason=REASON_INVALID)

        level = math.floor(current_level)
        if level < config.cost_per_action:
            return ConsumeResult(
                accepted=False, new_level=max(0, level), reason=REASON_INSUFFICIENT
            )

        if current_level > config.max_level * LEVEL_TOLERANCE:
            logging.error(f"Invalid level for consumption: {current_level}")
            return ConsumeResult(accepted=False, new_level=0, reason=REASON_INVALID)

        return ConsumeResult(accepted=True, new_level=max(0, level - config.cost_per_action))
    except Exception as e:
        logging.error(f"Resource consumption error: {e}")
        return ConsumeResult(accepted=False, new_level=0, reason=REASON_INVALID)


def get_schedule(
    current_level,
    last_regen_time: Optional[datetime],
    config: ResourceConfig,
    now: datetime,
    horizon: timedelta = DEFAULT_HORIZON,
) -> List[ScheduleEntry]:
    """List the future (time, level) points at which one unit comes back.

    Stops at max_level or at ``now + horizon``, whichever comes first.
    """
    try:
        if not _is_valid_level(current_level, config):
            logging.error(f"Invalid level for schedule: {current_level}")
            return []
        if last_regen_time is not None and (
            not isinstance(last_regen_time, datetime) or last_regen_time > now
        ):
            logging.error(f"Invalid last regen time for schedule: {last_regen_time}")
            return []
        if horizon <= timedelta(0):
            return []

        level = math.floor(current_level)
        limit = now + horizon
        next_time = _next_regen_time(last_regen_time, config, now)

        schedule = []
        for _ in range(math.ceil(horizon / config.regen_period)):
            if level >= config.max_level or next_time > limit:
                break
            level += 1
            schedule.append(ScheduleEntry(time=next_time, level=level))
            next_time += config.regen_period
        return schedule
    except Exception as e:
        logging.error(f"Resource schedule error: {e}")
        return []


def _coerce_record(entry) -> Optional[LevelRecord]:
    if isinstance(entry, LevelRecord):
        return entry
    try:
        return LevelRecord.model_validate(entry)
    except ValidationError:
        return None


def detect_suspicious_pattern(history: list, config: ResourceConfig) -> PatternVerdict:
    """Look for level changes that organic regeneration cannot explain.

    Flags the first pair of consecutive records where the level rose more than
    the elapsed time allows, or changed within ``min_update_interval``.
    Malformed records are skipped.
    """
    try:
        if not isinstance(history, (list, tuple)) or len(history) < 2:
            return PatternVerdict(suspicious=False)

        records = [_coerce_record(entry) for entry in history]
        for prev, curr in zip(records, records[1:]):
            if prev is None or curr is None:
                continue

            elapsed = curr.timestamp - prev.timestamp
            level_diff = curr.level - prev.level

            if level_diff > 0 and level_diff > elapsed // config.regen_period:
                return PatternVerdict(
                    suspicious=True, reason="Impossible regeneration detected"
                )

            if elapsed < config.min_update_interval and level_diff != 0:
                return PatternVerdict(
                    suspicious=True, reason="Too frequent updates detected"
                )

        return PatternVerdict(suspicious=False)
    except Exception as e:
        logging.error(f"Suspicious pattern detection error: {e}")
        return PatternVerdict(suspicious=False)


def validate_resource_data(
    level, last_update_time, config: ResourceConfig, now: datetime
) -> bool:
    """Check a stored snapshot before trusting it (level within 0..max_level)."""
    try:
        if not _is_finite_number(level) or level < 0 or level > config.max_level:
            return False
        if not isinstance(last_update_time, datetime):
            return False
        return last_update_time <= now
    except Exception as e:
        logging.error(f"Resource data validation error: {e}")
        return False


def can_play_multiple_games(level, games, config: ResourceConfig) -> bool:
    if not _is_valid_level(level, config):
        return False
    if not isinstance(games, int) or isinstance(games, bool):
        return False
    if games < 1 or games > MAX_GAMES_PER_CHECK:
        return False
    return level >= games * config.cost_per_action


def get_max_playable_games(level, config: ResourceConfig) -> int:
    if not _is_valid_level(level, config):
        return 0
    return math.floor(level) // config.cost_per_action


def get_time_to_playable(
    level,
    last_regen_time: Optional[datetime],
    config: ResourceConfig,
    now: datetime,
) -> Optional[datetime]:
    """When the actor will have enough for one action; None if it already has."""
    try:
        if not _is_valid_level(level, config):
            return None
        if last_regen_time is not None and (
            not isinstance(last_regen_time, datetime) or last_regen_time > now
        ):
            return None

        missing = config.cost_per_action - math.floor(level)
        if missing <= 0:
            return None
        first = _next_regen_time(last_regen_time, config, now)
        return first + (missing - 1) * config.regen_period
    except Exception as e:
        logging.error(f"Time to playable error: {e}")
        return None


def format_time_until_regen(duration) -> str:
    """Render a wait as ``"3m"`` or ``"1h 30m"``, minutes rounded up."""
    if not isinstance(duration, timedelta):
        return "0m"
    minutes = math.ceil(duration.total_seconds() / 60)
    if minutes <= 0:
        return "0m"
    hours, minutes = divmod(minutes, 60)
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"
