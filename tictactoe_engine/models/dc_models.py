from pydantic import BaseModel, Field, field_validator
from enum import Enum
from datetime import datetime, timedelta
from typing import Optional, List


class Player(str, Enum):
    X = "X"  # X always moves first
    O = "O"


class GameResult(str, Enum):
    win = "win"
    draw = "draw"
    ongoing = "ongoing"


class MatchResult(str, Enum):
    win = "win"
    loss = "loss"
    draw = "draw"


class RiskLevel(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"


# Nine cells, row-major; None is an empty cell.
Board = List[Optional[Player]]


class ResourceConfig(BaseModel):
    max_level: int = Field(5, ge=1)
    regen_period: timedelta = timedelta(minutes=90)
    cost_per_action: int = Field(1, ge=1)
    min_update_interval: timedelta = timedelta(seconds=1)

    class Config:
        frozen = True

    @field_validator("regen_period")
    @classmethod
    def check_regen_period(cls, value: timedelta) -> timedelta:
        if value <= timedelta(0):
            raise ValueError("regen_period must be positive")
        return value


class AntiCheatConfig(BaseModel):
    min_move_interval_ms: float = Field(100.0, gt=0)
    bot_window: int = Field(3, ge=3)  # moves per timing window
    bot_max_average_ms: float = Field(2000.0, gt=0)
    bot_max_variance: float = Field(1000.0, gt=0)  # ms^2
    min_games: int = Field(5, ge=1)
    win_rate_threshold: float = Field(95.0, gt=0, le=100)  # percent
    win_rate_min_games: int = Field(10, ge=1)
    min_average_duration_ms: float = Field(5000.0, gt=0)
    quick_win_move_count: int = Field(5, ge=1)
    quick_win_ratio: float = Field(0.8, gt=0, le=1)

    class Config:
        frozen = True


class ResourceSnapshot(BaseModel):
    actor_id: Optional[str] = None
    level: float
    last_update_time: datetime
    last_regen_time: Optional[datetime] = None

    class Config:
        from_attributes = True


class ResourceStatus(BaseModel):
    current_level: int
    max_level: int
    next_regen_time: Optional[datetime] = None
    time_until_next_regen: timedelta = timedelta(0)
    can_act: bool
    gained: int = 0
    next_anchor_time: Optional[datetime] = None


class ConsumeResult(BaseModel):
    accepted: bool
    new_level: int
    reason: Optional[str] = None


class ScheduleEntry(BaseModel):
    time: datetime
    level: int


class LevelRecord(BaseModel):
    level: float
    timestamp: datetime


class PatternVerdict(BaseModel):
    suspicious: bool
    reason: Optional[str] = None


class Move(BaseModel):
    position: int
    player: Player
    timestamp: Optional[datetime] = None
    board: Optional[Board] = None  # board as the client saw it after this move

    @field_validator("board", mode="before")
    @classmethod
    def empty_cells_to_none(cls, value):
        if isinstance(value, (list, tuple)):
            return [None if cell == "" else cell for cell in value]
        return value


class GameOutcome(BaseModel):
    result: GameResult
    winner: Optional[Player] = None
    winning_line: Optional[List[int]] = None


class MoveResult(BaseModel):
    accepted: bool
    board: Board
    outcome: GameOutcome
    error: Optional[str] = None


class AntiCheatVerdict(BaseModel):
    consistent: bool
    violations: List[str] = []
    risk_level: RiskLevel = RiskLevel.low


class GameSummary(BaseModel):
    result: MatchResult
    duration_ms: float
    move_count: int


class SuspicionReport(BaseModel):
    suspicious: bool
    reasons: List[str] = []


class GameStats(BaseModel):
    total_games: int
    wins: int
    losses: int
    draws: int
    win_rate: float  # percent


class RegenerationUpdate(BaseModel):
    actor_id: Optional[str] = None
    previous_level: float
    new_level: int
    last_regen_time: datetime
    last_update_time: datetime
    became_playable: bool


class RegenerationReport(BaseModel):
    scanned: int
    skipped: int
    updates: List[RegenerationUpdate] = []
