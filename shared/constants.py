"""
Game constants for the Connect Four relay.
"""

# Grid
GRID_ROWS = 6
GRID_COLUMNS = 7
EMPTY_CELL = 0

# Players
MAX_PLAYERS = 2
HOST_PLAYER_ID = 1
GUEST_PLAYER_ID = 2
PLAYER_IDS = (HOST_PLAYER_ID, GUEST_PLAYER_ID)

# Player names (after trimming)
NAME_MIN_LENGTH = 3
NAME_MAX_LENGTH = 20

# Shareable game ids are a prefix of a fresh unique token
GAME_ID_LENGTH = 8
