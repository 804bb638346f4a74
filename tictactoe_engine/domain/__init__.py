"""Domain layer (pure logic).

- Keep resource, board and anti-cheat rules here.
- Avoid I/O: no stores, no transports, no schedulers.
- Deterministic functions: time and randomness are passed in as arguments.
"""
