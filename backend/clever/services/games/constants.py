"""Fixed rule tables for the dice game.

Everything here is a rule constant, not a deployment setting; runtime knobs
live in ``config.Config``.
"""
from .state import Bonus, BonusKind, DiceColor


DICE_COLORS = [
    DiceColor.YELLOW,
    DiceColor.BLUE,
    DiceColor.GREEN,
    DiceColor.ORANGE,
    DiceColor.PURPLE,
    DiceColor.WHITE,
]

MIN_DIE_VALUE = 1
MAX_DIE_VALUE = 6

# Rolls the active player may make after the opening roll of a turn.
MAX_ROLLS = 3
# roll_number sentinel: no rolls remain.
NO_ROLLS_LEFT = MAX_ROLLS + 1

MAX_SELECTIONS_ACTIVE = 3
MAX_SELECTIONS_PASSIVE = 1

TOTAL_ROUNDS = 6

# ---- Yellow ----
# Required die value per cell; 0 marks a printed bonus cell.
YELLOW_GRID_VALUES = [
    [3, 6, 5, 0],
    [2, 1, 0, 5],
    [1, 0, 2, 4],
    [0, 3, 4, 6],
]
YELLOW_ROW_SCORES = [10, 14, 16, 20]
YELLOW_COLUMN_SCORES = [10, 14, 16, 20]

# ---- Blue ----
# Required blue + white sum per cell; 0 marks the unused corner.
BLUE_GRID_VALUES = [
    [0, 2, 3, 4],
    [5, 6, 7, 8],
    [9, 10, 11, 12],
]
# Index = number of crossed cells.
BLUE_SCORING = [0, 1, 2, 4, 6, 9, 12, 16, 20, 24, 28, 32]

# ---- Green ----
GREEN_THRESHOLDS = [1, 2, 3, 4, 5, 1, 2, 3, 4, 5, 6]
GREEN_SCORING = [0, 1, 3, 6, 10, 15, 21, 28, 36, 45, 55, 66]

# ---- Orange ----
ORANGE_MULTIPLIERS = [1, 1, 2, 1, 1, 1, 2, 1, 2, 3, 1]

# ---- Purple ----
PURPLE_CELLS = 11
PURPLE_RESET_VALUE = 6

SEQUENTIAL_LENGTH = 11

# ---- Bonuses ----
_REROLL = Bonus(BonusKind.REROLL)
_PLUS_ONE = Bonus(BonusKind.PLUS_ONE)
_FOX = Bonus(BonusKind.FOX)


def _extra(color: DiceColor) -> Bonus:
    return Bonus(BonusKind.EXTRA_DIE, color)


YELLOW_ROW_BONUSES = [
    _extra(DiceColor.BLUE),
    _extra(DiceColor.ORANGE),
    _extra(DiceColor.GREEN),
    _FOX,
]
YELLOW_COLUMN_BONUSES = [
    _REROLL,
    _PLUS_ONE,
    _extra(DiceColor.PURPLE),
    _PLUS_ONE,
]

BLUE_ROW_BONUSES = [
    _extra(DiceColor.ORANGE),
    _extra(DiceColor.YELLOW),
    _FOX,
]
BLUE_COLUMN_BONUSES = [
    _REROLL,
    _extra(DiceColor.GREEN),
    _extra(DiceColor.PURPLE),
    _PLUS_ONE,
]

# position -> bonus for the sequential sections
GREEN_CELL_BONUSES = {
    2: _REROLL,
    4: _PLUS_ONE,
    5: _extra(DiceColor.PURPLE),
    6: _REROLL,
    8: _PLUS_ONE,
    9: _extra(DiceColor.BLUE),
    10: _FOX,
}
ORANGE_CELL_BONUSES = {
    3: _REROLL,
    5: _PLUS_ONE,
    7: _REROLL,
    9: _extra(DiceColor.YELLOW),
    10: _FOX,
}
PURPLE_CELL_BONUSES = {
    2: _REROLL,
    4: _PLUS_ONE,
    6: _REROLL,
    8: _PLUS_ONE,
    10: _FOX,
}

# Room codes avoid O/0 and I/1.
ROOM_CODE_ALPHABET = 'ABCDEFGHJKLMNPQRSTUVWXYZ23456789'
ROOM_CODE_LENGTH = 6
