import os
from datetime import timedelta
from dotenv import load_dotenv

from tictactoe_engine.models.dc_models import AntiCheatConfig, ResourceConfig


def load_resource_config() -> ResourceConfig:
    """Build the resource settings from the environment (.env is honored)."""
    load_dotenv()
    return ResourceConfig(
        max_level=int(os.getenv("MAX_ENERGY", "5")),
        regen_period=timedelta(minutes=float(os.getenv("ENERGY_REGEN_TIME", "90"))),
        cost_per_action=int(os.getenv("ENERGY_PER_GAME", "1")),
        min_update_interval=timedelta(
            milliseconds=float(os.getenv("ENERGY_MIN_UPDATE_INTERVAL_MS", "1000"))
        ),
    )


def load_anti_cheat_config() -> AntiCheatConfig:
    """Build the anti-cheat thresholds from the environment (.env is honored)."""
    load_dotenv()
    return AntiCheatConfig(
        min_move_interval_ms=float(os.getenv("ANTI_CHEAT_MIN_MOVE_INTERVAL_MS", "100")),
        bot_window=int(os.getenv("ANTI_CHEAT_BOT_WINDOW", "3")),
        bot_max_average_ms=float(os.getenv("ANTI_CHEAT_BOT_MAX_AVERAGE_MS", "2000")),
        bot_max_variance=float(os.getenv("ANTI_CHEAT_BOT_MAX_VARIANCE", "1000")),
        min_games=int(os.getenv("ANTI_CHEAT_MIN_GAMES", "5")),
        win_rate_threshold=float(os.getenv("ANTI_CHEAT_WIN_RATE_THRESHOLD", "95")),
        win_rate_min_games=int(os.getenv("ANTI_CHEAT_WIN_RATE_MIN_GAMES", "10")),
        min_average_duration_ms=float(os.getenv("ANTI_CHEAT_MIN_AVERAGE_DURATION_MS", "5000")),
        quick_win_move_count=int(os.getenv("ANTI_CHEAT_QUICK_WIN_MOVE_COUNT", "5")),
        quick_win_ratio=float(os.getenv("ANTI_CHEAT_QUICK_WIN_RATIO", "0.8")),
    )


if __name__ == "__main__":
    print(load_resource_config(), load_anti_cheat_config())
