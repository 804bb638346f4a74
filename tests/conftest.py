from datetime import datetime, timedelta, timezone

import pytest

from tictactoe_engine.models.dc_models import AntiCheatConfig, ResourceConfig


@pytest.fixture()
def now():
    return datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture()
def config():
    """Production defaults: 5 units, one every 90 minutes, 1 per game."""
    return ResourceConfig(max_level=5, regen_period=timedelta(minutes=90), cost_per_action=1)


@pytest.fixture()
def fast_config():
    return ResourceConfig(max_level=10, regen_period=timedelta(minutes=5), cost_per_action=1)


@pytest.fixture()
def anti_cheat_config():
    return AntiCheatConfig()
