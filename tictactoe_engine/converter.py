import logging
from typing import Optional

from tictactoe_engine.domain.board_rules import BOARD_SIZE, _validate_board
from tictactoe_engine.models.dc_models import (
    Board,
    Player,
    ResourceSnapshot,
    ResourceStatus,
)

EMPTY_CELL_CHAR = " "


class DataConverter:
    """This class is used to convert data between engine types and stored payloads."""

    def board_to_string(self, board: Board) -> Optional[str]:
        """Convert the board to the compact string stored with a game

        Args:
            board (Board): Nine cells, None for empty

        Returns:
            Optional[str]: One character per cell, a space for an empty cell,
                or None if the board is not valid
        """
        errors, sanitized = _validate_board(board)
        if errors:
            logging.error(f"Invalid board for string conversion: {', '.join(errors)}")
            return None
        return "".join(EMPTY_CELL_CHAR if cell is None else cell.value for cell in sanitized)

    def parse_board_string(self, board_string: str) -> Optional[Board]:
        """Convert a stored board string back to a board

        Args:
            board_string (str): String produced by board_to_string

        Returns:
            Optional[Board]: The board, or None if the string is not a valid board
        """
        if not isinstance(board_string, str) or len(board_string) != BOARD_SIZE:
            logging.error(f"Invalid board string: {board_string!r}")
            return None

        board = []
        for char in board_string:
            if char == EMPTY_CELL_CHAR:
                board.append(None)
            elif char in (Player.X.value, Player.O.value):
                board.append(Player(char))
            else:
                logging.error(f"Invalid board string: {board_string!r}")
                return None
        return board

    def convert_record_to_snapshot(self, record: dict) -> Optional[ResourceSnapshot]:
        """Convert a stored actor record to a ResourceSnapshot

        Args:
            record (dict): Actor record with ``energy``, ``energyUpdatedAt`` and
                optionally ``lastEnergyRegenTime`` and ``id``

        Returns:
            Optional[ResourceSnapshot]: The snapshot, or None if required fields are missing
        """
        try:
            return ResourceSnapshot(
                actor_id=str(record["id"]) if record.get("id") is not None else None,
                level=record["energy"],
                last_update_time=record["energyUpdatedAt"],
                last_regen_time=record.get("lastEnergyRegenTime"),
            )
        except Exception as e:
            logging.error(f"Failed to convert actor record to snapshot: {e}")
            return None

    def convert_status_to_payload(self, status: ResourceStatus) -> dict:
        """Convert the ResourceStatus to the payload sent to the client

        Args:
            status (ResourceStatus): Status computed by calculate_current

        Returns:
            dict: JSON-ready status, durations in milliseconds
        """
        return {
            "currentEnergy": status.current_level,
            "maxEnergy": status.max_level,
            "nextRegenTime": (
                status.next_regen_time.isoformat() if status.next_regen_time else None
            ),
            "timeUntilNextRegen": int(status.time_until_next_regen.total_seconds() * 1000),
            "canPlay": status.can_act,
        }
