from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Sequence, Tuple

from .constants import (
    BLUE_COLUMN_BONUSES,
    BLUE_GRID_VALUES,
    BLUE_ROW_BONUSES,
    BLUE_SCORING,
    GREEN_CELL_BONUSES,
    GREEN_SCORING,
    GREEN_THRESHOLDS,
    MAX_DIE_VALUE,
    MIN_DIE_VALUE,
    ORANGE_CELL_BONUSES,
    ORANGE_MULTIPLIERS,
    PURPLE_CELL_BONUSES,
    PURPLE_RESET_VALUE,
    SEQUENTIAL_LENGTH,
    YELLOW_COLUMN_BONUSES,
    YELLOW_COLUMN_SCORES,
    YELLOW_GRID_VALUES,
    YELLOW_ROW_BONUSES,
    YELLOW_ROW_SCORES,
)
from .state import (
    BlueSection,
    Bonus,
    BonusKind,
    Bonuses,
    Cell,
    DiceColor,
    DiceState,
    Die,
    GreenSection,
    Grid,
    OrangeSection,
    Position,
    PurpleSection,
    Scorecard,
    Section,
    YellowSection,
)


@dataclass(frozen=True)
class MarkResult:
    success: bool
    scorecard: Scorecard
    bonuses_earned: Tuple[Bonus, ...] = ()
    error: Optional[str] = None

    def to_dict(self):
        return {
            'success': self.success,
            'scorecard': self.scorecard.to_dict(),
            'bonuses_earned': [b.to_dict() for b in self.bonuses_earned],
            'error': self.error,
        }


SEQUENTIAL_SECTIONS = (Section.GREEN, Section.ORANGE, Section.PURPLE)
GRID_SECTIONS = (Section.YELLOW, Section.BLUE)


# ---- Grid helpers ----

def _cell_done(grid: Grid, required: Sequence[Sequence[int]], row: int, col: int) -> bool:
    # Printed bonus cells and the unused blue corner count as already crossed.
    return grid[row][col] or required[row][col] == 0


def _complete_rows(grid: Grid, required) -> List[bool]:
    return [all(_cell_done(grid, required, r, c) for c in range(len(grid[r]))) for r in range(len(grid))]


def _complete_columns(grid: Grid, required) -> List[bool]:
    cols = len(grid[0]) if grid else 0
    return [all(_cell_done(grid, required, r, c) for r in range(len(grid))) for c in range(cols)]


def _cross(grid: Grid, cell: Cell) -> Grid:
    return tuple(
        tuple(True if (r == cell.row and c == cell.col) else v for c, v in enumerate(row))
        for r, row in enumerate(grid)
    )


def _in_grid(position, required) -> bool:
    return (
        isinstance(position, Cell)
        and 0 <= position.row < len(required)
        and 0 <= position.col < len(required[0])
    )


def _sequential_index(position) -> Optional[int]:
    if isinstance(position, bool) or not isinstance(position, int):
        return None
    if not 0 <= position < SEQUENTIAL_LENGTH:
        return None
    return position


def _die_value_ok(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and MIN_DIE_VALUE <= value <= MAX_DIE_VALUE


# ---- Section scorers ----

def yellow_score(section: YellowSection) -> int:
    score = 0
    for idx, done in enumerate(_complete_rows(section.grid, YELLOW_GRID_VALUES)):
        if done:
            score += YELLOW_ROW_SCORES[idx]
    for idx, done in enumerate(_complete_columns(section.grid, YELLOW_GRID_VALUES)):
        if done:
            score += YELLOW_COLUMN_SCORES[idx]
    return score


def blue_score(section: BlueSection) -> int:
    crossed = sum(1 for row in section.grid for v in row if v)
    return BLUE_SCORING[min(crossed, len(BLUE_SCORING) - 1)]


def green_score(section: GreenSection) -> int:
    crossed = sum(1 for v in section.cells if v)
    return GREEN_SCORING[min(crossed, len(GREEN_SCORING) - 1)]


def orange_score(section: OrangeSection) -> int:
    return sum(v * ORANGE_MULTIPLIERS[i] for i, v in enumerate(section.values) if v is not None)


def purple_score(section: PurpleSection) -> int:
    return sum(v for v in section.values if v is not None)


def total_score(section_scores: Sequence[int], foxes: int) -> int:
    """Sum of sections plus one copy of the weakest section per fox."""
    return sum(section_scores) + foxes * min(section_scores)


def recalculate_scores(scorecard: Scorecard) -> Scorecard:
    rescored = replace(
        scorecard,
        yellow=replace(scorecard.yellow, score=yellow_score(scorecard.yellow)),
        blue=replace(scorecard.blue, score=blue_score(scorecard.blue)),
        green=replace(scorecard.green, score=green_score(scorecard.green)),
        orange=replace(scorecard.orange, score=orange_score(scorecard.orange)),
        purple=replace(scorecard.purple, score=purple_score(scorecard.purple)),
    )
    return replace(
        rescored,
        total_score=total_score(rescored.section_scores(), rescored.bonuses.foxes),
    )


# ---- Validators ----

def _can_mark_yellow(scorecard: Scorecard, position, die_value, white_value) -> bool:
    if not _in_grid(position, YELLOW_GRID_VALUES):
        return False
    if scorecard.yellow.grid[position.row][position.col]:
        return False
    required = YELLOW_GRID_VALUES[position.row][position.col]
    if required == 0:
        return False
    return die_value == required


def _can_mark_blue(scorecard: Scorecard, position, die_value, white_value) -> bool:
    if not _in_grid(position, BLUE_GRID_VALUES) or not _die_value_ok(white_value):
        return False
    if scorecard.blue.grid[position.row][position.col]:
        return False
    required = BLUE_GRID_VALUES[position.row][position.col]
    if required == 0:
        return False
    return die_value + white_value == required


def _sequential_open(filled: Sequence[bool], idx: Optional[int]) -> bool:
    if idx is None or filled[idx]:
        return False
    return idx == 0 or filled[idx - 1]


def _can_mark_green(scorecard: Scorecard, position, die_value, white_value) -> bool:
    idx = _sequential_index(position)
    if not _sequential_open(scorecard.green.cells, idx):
        return False
    return die_value >= GREEN_THRESHOLDS[idx]


def _can_mark_orange(scorecard: Scorecard, position, die_value, white_value) -> bool:
    idx = _sequential_index(position)
    return _sequential_open([v is not None for v in scorecard.orange.values], idx)


def _can_mark_purple(scorecard: Scorecard, position, die_value, white_value) -> bool:
    values = scorecard.purple.values
    idx = _sequential_index(position)
    if not _sequential_open([v is not None for v in values], idx):
        return False
    if idx == 0:
        return True
    previous = values[idx - 1]
    if previous == PURPLE_RESET_VALUE:
        return True
    return die_value > previous


_VALIDATORS = {
    Section.YELLOW: _can_mark_yellow,
    Section.BLUE: _can_mark_blue,
    Section.GREEN: _can_mark_green,
    Section.ORANGE: _can_mark_orange,
    Section.PURPLE: _can_mark_purple,
}


def can_mark(scorecard: Scorecard, section: Section, position: Position,
             die_value: int, white_value: Optional[int] = None) -> bool:
    validator = _VALIDATORS.get(section)
    if validator is None or not _die_value_ok(die_value):
        return False
    return validator(scorecard, position, die_value, white_value)


def get_next_position(scorecard: Scorecard, section: Section) -> Optional[int]:
    """Next open slot of a sequential section, ``None`` when full or not sequential."""
    if section == Section.GREEN:
        filled = list(scorecard.green.cells)
    elif section == Section.ORANGE:
        filled = [v is not None for v in scorecard.orange.values]
    elif section == Section.PURPLE:
        filled = [v is not None for v in scorecard.purple.values]
    else:
        return None
    for idx, done in enumerate(filled):
        if not done:
            return idx
    return None


def get_valid_positions(scorecard: Scorecard, section: Section, die_value: int,
                        white_value: Optional[int] = None) -> List[Position]:
    if section in GRID_SECTIONS:
        required = YELLOW_GRID_VALUES if section == Section.YELLOW else BLUE_GRID_VALUES
        return [
            Cell(r, c)
            for r in range(len(required))
            for c in range(len(required[r]))
            if can_mark(scorecard, section, Cell(r, c), die_value, white_value)
        ]
    nxt = get_next_position(scorecard, section)
    if nxt is not None and can_mark(scorecard, section, nxt, die_value, white_value):
        return [nxt]
    return []


# ---- Bonus resolver ----

def _newly_completed(before: Grid, after: Grid, required) -> Tuple[List[int], List[int]]:
    rows_before, rows_after = _complete_rows(before, required), _complete_rows(after, required)
    cols_before, cols_after = _complete_columns(before, required), _complete_columns(after, required)
    rows = [i for i, done in enumerate(rows_after) if done and not rows_before[i]]
    cols = [i for i, done in enumerate(cols_after) if done and not cols_before[i]]
    return rows, cols


def resolve_bonuses(before: Scorecard, after: Scorecard, section: Section,
                    position: Position) -> List[Bonus]:
    """Bonus triggered by the mark that turned ``before`` into ``after``.

    At most one source fires per mark. When a grid mark completes a row and
    a column at once, the row wins and the column's bonus is forfeited.
    """
    if section in GRID_SECTIONS:
        if section == Section.YELLOW:
            grids, required = (before.yellow.grid, after.yellow.grid), YELLOW_GRID_VALUES
            row_bonuses, col_bonuses = YELLOW_ROW_BONUSES, YELLOW_COLUMN_BONUSES
        else:
            grids, required = (before.blue.grid, after.blue.grid), BLUE_GRID_VALUES
            row_bonuses, col_bonuses = BLUE_ROW_BONUSES, BLUE_COLUMN_BONUSES
        rows, cols = _newly_completed(grids[0], grids[1], required)
        if rows:
            return [row_bonuses[rows[0]]]
        if cols:
            return [col_bonuses[cols[0]]]
        return []
    table: Dict[int, Bonus] = {
        Section.GREEN: GREEN_CELL_BONUSES,
        Section.ORANGE: ORANGE_CELL_BONUSES,
        Section.PURPLE: PURPLE_CELL_BONUSES,
    }[section]
    bonus = table.get(position)
    return [bonus] if bonus else []


def apply_bonuses(bonuses: Bonuses, earned: Sequence[Bonus]) -> Bonuses:
    for bonus in earned:
        if bonus.kind == BonusKind.REROLL:
            bonuses = replace(bonuses, rerolls=bonuses.rerolls + 1)
        elif bonus.kind == BonusKind.PLUS_ONE:
            bonuses = replace(bonuses, plus_ones=bonuses.plus_ones + 1)
        elif bonus.kind == BonusKind.FOX:
            bonuses = replace(bonuses, foxes=bonuses.foxes + 1)
        elif bonus.kind == BonusKind.EXTRA_DIE:
            extra = dict(bonuses.extra_dice)
            extra[bonus.color] = True
            bonuses = replace(bonuses, extra_dice=extra)
        else:
            raise ValueError(f"unhandled bonus kind {bonus.kind!r}")
    return bonuses


def _write(scorecard: Scorecard, section: Section, position: Position, die_value: int) -> Scorecard:
    if section == Section.YELLOW:
        return replace(scorecard, yellow=replace(scorecard.yellow, grid=_cross(scorecard.yellow.grid, position)))
    if section == Section.BLUE:
        return replace(scorecard, blue=replace(scorecard.blue, grid=_cross(scorecard.blue.grid, position)))
    if section == Section.GREEN:
        cells = tuple(True if i == position else v for i, v in enumerate(scorecard.green.cells))
        return replace(scorecard, green=replace(scorecard.green, cells=cells))
    if section == Section.ORANGE:
        values = tuple(die_value if i == position else v for i, v in enumerate(scorecard.orange.values))
        return replace(scorecard, orange=replace(scorecard.orange, values=values))
    values = tuple(die_value if i == position else v for i, v in enumerate(scorecard.purple.values))
    return replace(scorecard, purple=replace(scorecard.purple, values=values))


def mark_position(scorecard: Scorecard, section: Section, position: Position,
                  die_value: int, white_value: Optional[int] = None) -> MarkResult:
    """Validate and apply a mark.

    On success every section score and the total are recomputed from the
    cells, and any completed row/column/cell bonus is credited. On failure
    the original scorecard comes back untouched.
    """
    if not can_mark(scorecard, section, position, die_value, white_value):
        return MarkResult(success=False, scorecard=scorecard, error='Invalid move')

    written = _write(scorecard, section, position, die_value)
    earned = resolve_bonuses(scorecard, written, section, position)
    written = replace(written, bonuses=apply_bonuses(written.bonuses, earned))
    return MarkResult(success=True, scorecard=recalculate_scores(written), bonuses_earned=tuple(earned))


# ---- Die routing ----

def playable_sections(die: Die) -> List[Section]:
    if die.color == DiceColor.WHITE:
        return list(Section)
    return [Section(die.color.value)]


def mark_values_for_die(die: Die, section: Section, dice_state: DiceState) -> Optional[Tuple[int, Optional[int]]]:
    """Map a die onto ``(die_value, white_value)`` for ``section``.

    Colored dice only fit their own section. White is wild, and on blue it
    pairs with the blue die; the blue die pairs with white.
    """
    if section not in playable_sections(die):
        return None
    if section != Section.BLUE:
        return die.value, None
    if die.color == DiceColor.BLUE:
        partner = next((d for d in dice_state.dice if d.color == DiceColor.WHITE), None)
        return (die.value, partner.value) if partner else None
    partner = next((d for d in dice_state.dice if d.color == DiceColor.BLUE), None)
    return (partner.value, die.value) if partner else None


def valid_positions_for_die(scorecard: Scorecard, die: Die, dice_state: DiceState) -> Dict[Section, List[Position]]:
    out = {}
    for section in playable_sections(die):
        values = mark_values_for_die(die, section, dice_state)
        if values is None:
            continue
        positions = get_valid_positions(scorecard, section, values[0], values[1])
        if positions:
            out[section] = positions
    return out
