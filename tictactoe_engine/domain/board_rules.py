"""Tic-tac-toe board rules that are independent from transport and storage.

Boards are lists of nine cells in row-major order; a cell is ``None`` or a
``Player``. Plain ``"X"``/``"O"`` strings and ``""`` (empty) are accepted on
input and sanitized.

Validation failures in the board checks (``is_legal``, ``apply_move``,
``evaluate_outcome`` and the helpers) are logged and answered with a rejection
or a safe value, never raised. Asking for a move on a full board is a caller
bug and raises ``ValueError``.
"""
import logging
import random
from typing import List, Optional, Tuple

from tictactoe_engine.models.dc_models import (
    Board,
    GameOutcome,
    GameResult,
    MoveResult,
    Player,
)

BOARD_SIZE = 9
CENTER = 4
CORNERS = (0, 2, 6, 8)

# Rows, then columns, then diagonals.
WINNING_LINES = (
    (0, 1, 2),
    (3, 4, 5),
    (6, 7, 8),
    (0, 3, 6),
    (1, 4, 7),
    (2, 5, 8),
    (0, 4, 8),
    (2, 4, 6),
)

FIRST_PLAYER = Player.X


def create_empty_board() -> Board:
    return [None] * BOARD_SIZE


def next_player(player: Player) -> Player:
    return Player.O if player == Player.X else Player.X


def _sanitize_cell(cell) -> Tuple[bool, Optional[Player]]:
    if cell is None or cell == "":
        return True, None
    if isinstance(cell, Player):
        return True, cell
    if isinstance(cell, str) and cell in (Player.X.value, Player.O.value):
        return True, Player(cell)
    return False, None


def _validate_board(board) -> Tuple[List[str], Board]:
    """Return validation errors and a sanitized copy (bad cells become empty)."""
    if not isinstance(board, (list, tuple)):
        return ["board must be a list"], create_empty_board()

    errors = []
    if len(board) != BOARD_SIZE:
        errors.append(f"board must have exactly {BOARD_SIZE} cells")

    sanitized = []
    for i in range(BOARD_SIZE):
        cell = board[i] if i < len(board) else None
        valid, value = _sanitize_cell(cell)
        if not valid:
            errors.append(f"invalid cell value at position {i}: {cell!r}")
        sanitized.append(value)
    return errors, sanitized


def _validate_position(position) -> Optional[str]:
    if not isinstance(position, int) or isinstance(position, bool):
        return "position must be an integer"
    if position < 0 or position >= BOARD_SIZE:
        return f"position must be between 0 and {BOARD_SIZE - 1}"
    return None


def _validate_player(player) -> Optional[Player]:
    if isinstance(player, Player):
        return player
    if isinstance(player, str) and player in (Player.X.value, Player.O.value):
        return Player(player)
    return None


def _outcome_of(board: Board) -> GameOutcome:
    for line in WINNING_LINES:
        a, b, c = line
        if board[a] is not None and board[a] == board[b] == board[c]:
            return GameOutcome(
                result=GameResult.win, winner=board[a], winning_line=list(line)
            )
    if all(cell is not None for cell in board):
        return GameOutcome(result=GameResult.draw)
    return GameOutcome(result=GameResult.ongoing)


def _completes_line(board: Board, position: int, player: Player) -> bool:
    """True if placing ``player`` at ``position`` finishes one of the lines."""
    for line in WINNING_LINES:
        if position in line and all(
            cell == position or board[cell] == player for cell in line
        ):
            return True
    return False


def available_positions(board: Board) -> List[int]:
    errors, sanitized = _validate_board(board)
    if errors:
        return []
    return [i for i, cell in enumerate(sanitized) if cell is None]


def is_board_full(board: Board) -> bool:
    errors, sanitized = _validate_board(board)
    if errors:
        logging.error(f"Invalid board for full check: {', '.join(errors)}")
        return False
    return all(cell is not None for cell in sanitized)


def is_board_empty(board: Board) -> bool:
    errors, sanitized = _validate_board(board)
    if errors:
        logging.error(f"Invalid board for empty check: {', '.join(errors)}")
        return False
    return all(cell is None for cell in sanitized)


def is_legal(board: Board, position: int) -> bool:
    errors, sanitized = _validate_board(board)
    if errors:
        logging.error(f"Invalid board for move validation: {', '.join(errors)}")
        return False

    position_error = _validate_position(position)
    if position_error:
        logging.error(f"Invalid position for move validation: {position_error}")
        return False

    return sanitized[position] is None


def evaluate_outcome(board: Board) -> GameOutcome:
    """Win (with winner and line), draw, or ongoing. Invalid boards are ongoing."""
    try:
        errors, sanitized = _validate_board(board)
        if errors:
            logging.error(f"Invalid board for result check: {', '.join(errors)}")
            return GameOutcome(result=GameResult.ongoing)
        return _outcome_of(sanitized)
    except Exception as e:
        logging.error(f"Game result check error: {e}")
        return GameOutcome(result=GameResult.ongoing)


def apply_move(board: Board, position: int, player: Player) -> MoveResult:
    """Place a mark and evaluate the resulting board.

    Args:
        board (Board): Current board
        position (int): Cell index 0..8
        player (Player): Mark to place

    Returns:
        MoveResult: accepted with the new board and outcome, or rejected with
            the sanitized, unchanged board. A board whose game is already won
            or drawn rejects every move.
    """
    try:
        errors, sanitized = _validate_board(board)
        if errors:
            logging.error(f"Invalid board for move: {', '.join(errors)}")
            return MoveResult(
                accepted=False,
                board=sanitized,
                outcome=GameOutcome(result=GameResult.ongoing),
                error="; ".join(errors),
            )

        position_error = _validate_position(position)
        if position_error:
            logging.error(f"Invalid position for move: {position_error}")
            return MoveResult(
                accepted=False,
                board=sanitized,
                outcome=GameOutcome(result=GameResult.ongoing),
                error=position_error,
            )

        mark = _validate_player(player)
        if mark is None:
            logging.error(f"Invalid player for move: {player!r}")
            return MoveResult(
                accepted=False,
                board=sanitized,
                outcome=GameOutcome(result=GameResult.ongoing),
                error="player must be X or O",
            )

        current = _outcome_of(sanitized)
        if current.result != GameResult.ongoing:
            return MoveResult(
                accepted=False, board=sanitized, outcome=current, error="game is already over"
            )

        if sanitized[position] is not None:
            return MoveResult(
                accepted=False, board=sanitized, outcome=current, error="cell already occupied"
            )

        new_board = list(sanitized)
        new_board[position] = mark
        return MoveResult(accepted=True, board=new_board, outcome=_outcome_of(new_board))
    except Exception as e:
        logging.error(f"Make move error: {e}")
        return MoveResult(
            accepted=False,
            board=create_empty_board(),
            outcome=GameOutcome(result=GameResult.ongoing),
            error=str(e),
        )


def random_move(board: Board, rng: Optional[random.Random] = None) -> int:
    positions = available_positions(board)
    if not positions:
        raise ValueError("No available moves")
    return (rng or random).choice(positions)


def suggest_move(board: Board, player: Player, rng: Optional[random.Random] = None) -> int:
    """Pick a move for ``player`` with a fixed priority list.

    Win now, else block the opponent's win, else the center, else a random
    free corner, else any free cell. Not optimal play.
    """
    errors, sanitized = _validate_board(board)
    if errors:
        raise ValueError(f"Invalid board: {', '.join(errors)}")
    mark = _validate_player(player)
    if mark is None:
        raise ValueError(f"Invalid player: {player!r}")

    free = [i for i, cell in enumerate(sanitized) if cell is None]
    if not free:
        raise ValueError("No available moves")

    rng = rng or random
    for position in free:
        if _completes_line(sanitized, position, mark):
            return position

    opponent = next_player(mark)
    for position in free:
        if _completes_line(sanitized, position, opponent):
            return position

    if sanitized[CENTER] is None:
        return CENTER

    corners = [corner for corner in CORNERS if sanitized[corner] is None]
    if corners:
        return rng.choice(corners)

    return rng.choice(free)


def validate_game_state(board: Board, current_player: Player, move_count: int) -> bool:
    """Check that a stored board agrees with its turn marker and move count."""
    errors, sanitized = _validate_board(board)
    if errors:
        return False
    mark = _validate_player(current_player)
    if mark is None:
        return False

    x_count = sum(1 for cell in sanitized if cell == Player.X)
    o_count = sum(1 for cell in sanitized if cell == Player.O)

    if abs(x_count - o_count) > 1:
        return False
    if x_count + o_count != move_count:
        return False
    # X moves first, so X is to move whenever the counts are level.
    if x_count == o_count and mark != Player.X:
        return False
    if x_count == o_count + 1 and mark != Player.O:
        return False
    if o_count > x_count:
        return False
    return True
