"""Heuristic integrity checks over move sequences and finished games.

The verdicts are signals for a reviewer, not proof. Callers decide what to do
with them (manual review, shadow ban, nothing).
"""
import logging
from typing import Dict, List, Optional, Tuple

import numpy as np
from pydantic import ValidationError

from tictactoe_engine.domain.board_rules import (
    FIRST_PLAYER,
    apply_move,
    create_empty_board,
    next_player,
)
from tictactoe_engine.models.dc_models import (
    AntiCheatConfig,
    AntiCheatVerdict,
    GameStats,
    GameSummary,
    MatchResult,
    Move,
    RiskLevel,
    SuspicionReport,
)

DEFAULT_ANTI_CHEAT_CONFIG = AntiCheatConfig()


def _coerce_move(entry) -> Tuple[Optional[Move], bool]:
    """Parse one move; the flag is False when only its reported board was unreadable."""
    if isinstance(entry, Move):
        return entry, True
    try:
        return Move.model_validate(entry), True
    except ValidationError:
        pass
    if isinstance(entry, dict) and entry.get("board") is not None:
        try:
            return Move.model_validate({**entry, "board": None}), False
        except ValidationError:
            pass
    return None, True


def _move_gaps_ms(moves: List[Optional[Move]]) -> Dict[int, float]:
    """Gap in ms between move i-1 and move i, for every i where both carry a timestamp."""
    gaps = {}
    for i in range(1, len(moves)):
        prev, curr = moves[i - 1], moves[i]
        if prev is None or curr is None:
            continue
        if prev.timestamp is None or curr.timestamp is None:
            continue
        gaps[i] = (curr.timestamp - prev.timestamp).total_seconds() * 1000
    return gaps


def validate_sequence(
    moves: list, config: AntiCheatConfig = DEFAULT_ANTI_CHEAT_CONFIG
) -> AntiCheatVerdict:
    """Replay a claimed move history and flag anything that does not add up.

    Replay checks (each one forces high risk): turn order starting with X,
    legality against the replayed board, and equality with the board the
    client reported after each move. Timing checks: a gap under
    ``min_move_interval_ms`` is high risk; a trailing window of fast gaps with
    very low variance is medium risk.

    Args:
        moves (list): Move models or dicts in play order
        config (AntiCheatConfig): Timing thresholds

    Returns:
        AntiCheatVerdict: consistent flag, violations and risk level
    """
    try:
        if not isinstance(moves, (list, tuple)) or len(moves) == 0:
            return AntiCheatVerdict(consistent=True)

        violations = []
        risk_level = RiskLevel.low
        coerced = [_coerce_move(move) for move in moves]
        parsed = [move for move, _ in coerced]

        board = create_empty_board()
        expected_player = FIRST_PLAYER
        for index, (move, board_readable) in enumerate(coerced):
            if move is None:
                violations.append(f"Malformed move at index {index}")
                risk_level = RiskLevel.high
                expected_player = next_player(expected_player)
                continue

            if move.player != expected_player:
                violations.append(
                    f"Invalid player sequence at move {index}: "
                    f"expected {expected_player.value}, got {move.player.value}"
                )
                risk_level = RiskLevel.high

            result = apply_move(board, move.position, move.player)
            if not result.accepted:
                violations.append(f"Invalid move at index {index}: position {move.position}")
                risk_level = RiskLevel.high

            board = result.board
            expected_player = next_player(expected_player)

            if not board_readable or (move.board is not None and list(move.board) != board):
                violations.append(f"Board state mismatch at move {index}")
                risk_level = RiskLevel.high

        gaps = _move_gaps_ms(parsed)
        for index, gap in gaps.items():
            if gap < config.min_move_interval_ms:
                violations.append(f"Suspiciously fast move at index {index}: {gap:.0f}ms")
                risk_level = RiskLevel.high

            if index >= config.bot_window:
                window = [
                    gaps[i]
                    for i in range(index - config.bot_window + 2, index + 1)
                    if i in gaps and gaps[i] > 0
                ]
                if not window:
                    continue
                average = float(np.mean(window))
                variance = float(np.var(window))
                if average < config.bot_max_average_ms and variance < config.bot_max_variance:
                    violations.append(
                        f"Consistent timing pattern detected: "
                        f"avg={average:.0f}ms, variance={variance:.0f}"
                    )
                    if risk_level != RiskLevel.high:
                        risk_level = RiskLevel.medium

        if violations:
            logging.warning(
                f"Move sequence flagged ({risk_level.value}): {'; '.join(violations)}"
            )
        return AntiCheatVerdict(
            consistent=len(violations) == 0, violations=violations, risk_level=risk_level
        )
    except Exception as e:
        logging.error(f"Anti-cheat validation error: {e}")
        return AntiCheatVerdict(
            consistent=False,
            violations=["Validation error occurred"],
            risk_level=RiskLevel.high,
        )


def _result_of(game) -> Optional[MatchResult]:
    value = game.get("result") if isinstance(game, dict) else getattr(game, "result", None)
    try:
        return MatchResult(value)
    except ValueError:
        return None


def calculate_game_stats(games: list) -> GameStats:
    """Win/loss/draw totals; entries without a known result are skipped."""
    try:
        if not isinstance(games, (list, tuple)):
            logging.error("Invalid games list for statistics calculation")
            return GameStats(total_games=0, wins=0, losses=0, draws=0, win_rate=0.0)

        results = [result for result in map(_result_of, games) if result is not None]
        total_games = len(results)
        wins = results.count(MatchResult.win)
        draws = results.count(MatchResult.draw)
        losses = total_games - wins - draws
        win_rate = wins / total_games * 100 if total_games > 0 else 0.0

        return GameStats(
            total_games=total_games,
            wins=wins,
            losses=losses,
            draws=draws,
            win_rate=round(win_rate, 2),
        )
    except Exception as e:
        logging.error(f"Game statistics calculation error: {e}")
        return GameStats(total_games=0, wins=0, losses=0, draws=0, win_rate=0.0)


def _coerce_summary(entry) -> Optional[GameSummary]:
    if isinstance(entry, GameSummary):
        return entry
    try:
        return GameSummary.model_validate(entry)
    except ValidationError:
        return None


def detect_suspicious_patterns(
    games: list, config: AntiCheatConfig = DEFAULT_ANTI_CHEAT_CONFIG
) -> SuspicionReport:
    """Aggregate checks over an actor's finished games.

    Needs at least ``min_games`` valid summaries; smaller samples are never
    suspicious.
    """
    try:
        if not isinstance(games, (list, tuple)):
            return SuspicionReport(suspicious=False)

        summaries = [s for s in map(_coerce_summary, games) if s is not None]
        if len(summaries) < config.min_games:
            return SuspicionReport(suspicious=False)

        reasons = []

        stats = calculate_game_stats(summaries)
        if (
            stats.win_rate > config.win_rate_threshold
            and stats.total_games >= config.win_rate_min_games
        ):
            reasons.append("Unrealistic win rate detected")

        average_duration = float(np.mean([s.duration_ms for s in summaries]))
        if average_duration < config.min_average_duration_ms:
            reasons.append("Unrealistic game durations detected")

        quick_wins = sum(
            1
            for s in summaries
            if s.result == MatchResult.win and s.move_count <= config.quick_win_move_count
        )
        if quick_wins / len(summaries) > config.quick_win_ratio:
            reasons.append("Too many quick wins detected")

        return SuspicionReport(suspicious=len(reasons) > 0, reasons=reasons)
    except Exception as e:
        logging.error(f"Suspicious pattern detection error: {e}")
        return SuspicionReport(suspicious=False)
