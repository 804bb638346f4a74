"""Energy economy and board integrity engine for tic-tac-toe games."""
