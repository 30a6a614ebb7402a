"""Game state records and their JSON boundary.

All records are frozen dataclasses. Engines build new values with
``dataclasses.replace`` instead of mutating what they were handed.

The ``*_from_dict`` helpers are the only place that tolerates missing or
null fields: stored documents may be sparse, engine code may not.
"""
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union


PLAYER1 = 'player1'
PLAYER2 = 'player2'
PLAYER_IDS = (PLAYER1, PLAYER2)


class DiceColor(str, Enum):
    YELLOW = 'yellow'
    BLUE = 'blue'
    GREEN = 'green'
    ORANGE = 'orange'
    PURPLE = 'purple'
    WHITE = 'white'


class Section(str, Enum):
    YELLOW = 'yellow'
    BLUE = 'blue'
    GREEN = 'green'
    ORANGE = 'orange'
    PURPLE = 'purple'


class Phase(str, Enum):
    LOBBY = 'lobby'
    ROLLING = 'rolling'
    SELECTING = 'selecting'
    MARKING = 'marking'
    PASSIVE_TURN = 'passive_turn'
    GAME_OVER = 'game_over'


class BonusKind(str, Enum):
    REROLL = 'reroll'
    PLUS_ONE = 'plus_one'
    EXTRA_DIE = 'extra_die'
    FOX = 'fox'


# Colors that can be unlocked as an extra die.
EXTRA_DIE_COLORS = (
    DiceColor.YELLOW,
    DiceColor.BLUE,
    DiceColor.GREEN,
    DiceColor.ORANGE,
    DiceColor.PURPLE,
)


@dataclass(frozen=True)
class Bonus:
    kind: BonusKind
    color: Optional[DiceColor] = None  # only for EXTRA_DIE

    def to_dict(self):
        return {
            'kind': self.kind.value,
            'color': self.color.value if self.color else None,
        }


@dataclass(frozen=True)
class Cell:
    """A coordinate in one of the grid sections."""
    row: int
    col: int

    def to_dict(self):
        return {'row': self.row, 'col': self.col}


Position = Union[Cell, int]


@dataclass(frozen=True)
class Die:
    id: str
    color: DiceColor
    value: int
    is_on_silver_tray: bool = False
    is_selected: bool = False

    def to_dict(self):
        return {
            'id': self.id,
            'color': self.color.value,
            'value': self.value,
            'is_on_silver_tray': self.is_on_silver_tray,
            'is_selected': self.is_selected,
        }


@dataclass(frozen=True)
class DiceState:
    """The turn's dice, split into four buckets.

    Every die id sits in exactly one of: available (in ``dice`` with neither
    flag set), ``selected_dice``, ``silver_tray`` or ``passive_pick``. The
    copy in ``dice`` of a passive pick keeps ``is_on_silver_tray`` so it never
    counts as available again; ``passive_pick`` decides the bucket.
    """
    dice: Tuple[Die, ...] = ()
    roll_number: int = 1
    silver_tray: Tuple[Die, ...] = ()
    selected_dice: Tuple[Die, ...] = ()
    must_roll_before_select: bool = False
    # Selected dice the active player has already written down this turn.
    marked_die_ids: Tuple[str, ...] = ()
    # The passive player's one pick from the silver tray.
    passive_pick: Optional[Die] = None
    passive_marked: bool = False

    def to_dict(self):
        return {
            'dice': [d.to_dict() for d in self.dice],
            'roll_number': self.roll_number,
            'silver_tray': [d.to_dict() for d in self.silver_tray],
            'selected_dice': [d.to_dict() for d in self.selected_dice],
            'must_roll_before_select': self.must_roll_before_select,
            'marked_die_ids': list(self.marked_die_ids),
            'passive_pick': self.passive_pick.to_dict() if self.passive_pick else None,
            'passive_marked': self.passive_marked,
        }


Grid = Tuple[Tuple[bool, ...], ...]


def empty_grid(rows: int, cols: int) -> Grid:
    return tuple(tuple(False for _ in range(cols)) for _ in range(rows))


@dataclass(frozen=True)
class YellowSection:
    grid: Grid = field(default_factory=lambda: empty_grid(4, 4))
    score: int = 0

    def to_dict(self):
        return {'grid': [list(r) for r in self.grid], 'score': self.score}


@dataclass(frozen=True)
class BlueSection:
    grid: Grid = field(default_factory=lambda: empty_grid(3, 4))
    score: int = 0

    def to_dict(self):
        return {'grid': [list(r) for r in self.grid], 'score': self.score}


@dataclass(frozen=True)
class GreenSection:
    cells: Tuple[bool, ...] = (False,) * 11
    score: int = 0

    def to_dict(self):
        return {'cells': list(self.cells), 'score': self.score}


@dataclass(frozen=True)
class OrangeSection:
    values: Tuple[Optional[int], ...] = (None,) * 11
    score: int = 0

    def to_dict(self):
        return {'values': list(self.values), 'score': self.score}


@dataclass(frozen=True)
class PurpleSection:
    values: Tuple[Optional[int], ...] = (None,) * 11
    score: int = 0

    def to_dict(self):
        return {'values': list(self.values), 'score': self.score}


def _no_extra_dice() -> Dict[DiceColor, bool]:
    return {c: False for c in EXTRA_DIE_COLORS}


@dataclass(frozen=True)
class Bonuses:
    rerolls: int = 0
    plus_ones: int = 0
    extra_dice: Dict[DiceColor, bool] = field(default_factory=_no_extra_dice)
    foxes: int = 0

    def to_dict(self):
        return {
            'rerolls': self.rerolls,
            'plus_ones': self.plus_ones,
            'extra_dice': {c.value: bool(self.extra_dice.get(c)) for c in EXTRA_DIE_COLORS},
            'foxes': self.foxes,
        }


@dataclass(frozen=True)
class Scorecard:
    yellow: YellowSection = field(default_factory=YellowSection)
    blue: BlueSection = field(default_factory=BlueSection)
    green: GreenSection = field(default_factory=GreenSection)
    orange: OrangeSection = field(default_factory=OrangeSection)
    purple: PurpleSection = field(default_factory=PurpleSection)
    bonuses: Bonuses = field(default_factory=Bonuses)
    total_score: int = 0

    def section_scores(self) -> Tuple[int, int, int, int, int]:
        return (
            self.yellow.score,
            self.blue.score,
            self.green.score,
            self.orange.score,
            self.purple.score,
        )

    def to_dict(self):
        return {
            'yellow': self.yellow.to_dict(),
            'blue': self.blue.to_dict(),
            'green': self.green.to_dict(),
            'orange': self.orange.to_dict(),
            'purple': self.purple.to_dict(),
            'bonuses': self.bonuses.to_dict(),
            'total_score': self.total_score,
        }


@dataclass(frozen=True)
class Player:
    name: str
    session_id: str
    is_connected: bool = True

    def to_dict(self):
        return {
            'name': self.name,
            'session_id': self.session_id,
            'is_connected': self.is_connected,
        }


def _empty_seats() -> Dict[str, Optional[Player]]:
    return {PLAYER1: None, PLAYER2: None}


def _fresh_scorecards() -> Dict[str, Scorecard]:
    return {PLAYER1: Scorecard(), PLAYER2: Scorecard()}


@dataclass(frozen=True)
class GameState:
    room_code: str
    phase: Phase = Phase.LOBBY
    current_round: int = 1
    active_player_id: str = PLAYER1
    players: Dict[str, Optional[Player]] = field(default_factory=_empty_seats)
    dice_state: DiceState = field(default_factory=DiceState)
    scorecards: Dict[str, Scorecard] = field(default_factory=_fresh_scorecards)
    created_at: float = 0.0
    last_updated_at: float = 0.0
    # Store row version this snapshot was read at; used for compare-and-swap.
    version: int = 0

    def to_dict(self):
        return {
            'room_code': self.room_code,
            'phase': self.phase.value,
            'current_round': self.current_round,
            'active_player_id': self.active_player_id,
            'players': {pid: (p.to_dict() if p else None) for pid, p in self.players.items()},
            'dice_state': self.dice_state.to_dict(),
            'scorecards': {pid: sc.to_dict() for pid, sc in self.scorecards.items()},
            'created_at': self.created_at,
            'last_updated_at': self.last_updated_at,
            'version': self.version,
        }


def create_initial_scorecard() -> Scorecard:
    return Scorecard()


def create_initial_dice_state() -> DiceState:
    return DiceState()


def create_initial_game_state(room_code: str, host: Optional[Player] = None) -> GameState:
    now = time.time()
    return GameState(
        room_code=room_code,
        players={PLAYER1: host, PLAYER2: None},
        created_at=now,
        last_updated_at=now,
    )


# ---- Deserialization / normalization ----

def _as_int(raw: Any, default: int = 0) -> int:
    try:
        return int(raw)
    except (TypeError, ValueError):
        return default


def _bool_grid(raw: Any, rows: int, cols: int) -> Grid:
    raw = raw if isinstance(raw, list) else []
    out = []
    for r in range(rows):
        row = raw[r] if r < len(raw) and isinstance(raw[r], list) else []
        out.append(tuple(bool(row[c]) if c < len(row) else False for c in range(cols)))
    return tuple(out)


def _bool_cells(raw: Any, length: int) -> Tuple[bool, ...]:
    raw = raw if isinstance(raw, list) else []
    return tuple(bool(raw[i]) if i < len(raw) else False for i in range(length))


def _value_cells(raw: Any, length: int) -> Tuple[Optional[int], ...]:
    raw = raw if isinstance(raw, list) else []
    out = []
    for i in range(length):
        v = raw[i] if i < len(raw) else None
        out.append(None if v is None else _as_int(v))
    return tuple(out)


def die_from_dict(data: Any) -> Optional[Die]:
    if not isinstance(data, dict) or not data.get('id'):
        return None
    try:
        color = DiceColor(data.get('color') or data['id'])
    except ValueError:
        return None
    return Die(
        id=str(data['id']),
        color=color,
        value=_as_int(data.get('value'), 1),
        is_on_silver_tray=bool(data.get('is_on_silver_tray', False)),
        is_selected=bool(data.get('is_selected', False)),
    )


def _dice_list(raw: Any) -> Tuple[Die, ...]:
    if not isinstance(raw, list):
        return ()
    return tuple(d for d in (die_from_dict(x) for x in raw) if d is not None)


def dice_state_from_dict(data: Any) -> DiceState:
    data = data if isinstance(data, dict) else {}
    return DiceState(
        dice=_dice_list(data.get('dice')),
        roll_number=_as_int(data.get('roll_number'), 1) or 1,
        silver_tray=_dice_list(data.get('silver_tray')),
        selected_dice=_dice_list(data.get('selected_dice')),
        must_roll_before_select=bool(data.get('must_roll_before_select', False)),
        marked_die_ids=tuple(str(x) for x in (data.get('marked_die_ids') or [])),
        passive_pick=die_from_dict(data.get('passive_pick')),
        passive_marked=bool(data.get('passive_marked', False)),
    )


def _bonus_counts(data: Any) -> Bonuses:
    data = data if isinstance(data, dict) else {}
    raw_extra = data.get('extra_dice') if isinstance(data.get('extra_dice'), dict) else {}
    return Bonuses(
        rerolls=_as_int(data.get('rerolls')),
        plus_ones=_as_int(data.get('plus_ones')),
        extra_dice={c: bool(raw_extra.get(c.value, False)) for c in EXTRA_DIE_COLORS},
        foxes=_as_int(data.get('foxes')),
    )


def scorecard_from_dict(data: Any) -> Scorecard:
    data = data if isinstance(data, dict) else {}

    def part(name):
        p = data.get(name)
        return p if isinstance(p, dict) else {}

    return Scorecard(
        yellow=YellowSection(grid=_bool_grid(part('yellow').get('grid'), 4, 4),
                             score=_as_int(part('yellow').get('score'))),
        blue=BlueSection(grid=_bool_grid(part('blue').get('grid'), 3, 4),
                         score=_as_int(part('blue').get('score'))),
        green=GreenSection(cells=_bool_cells(part('green').get('cells'), 11),
                           score=_as_int(part('green').get('score'))),
        orange=OrangeSection(values=_value_cells(part('orange').get('values'), 11),
                             score=_as_int(part('orange').get('score'))),
        purple=PurpleSection(values=_value_cells(part('purple').get('values'), 11),
                             score=_as_int(part('purple').get('score'))),
        bonuses=_bonus_counts(data.get('bonuses')),
        total_score=_as_int(data.get('total_score')),
    )


def player_from_dict(data: Any) -> Optional[Player]:
    if not isinstance(data, dict) or not data.get('session_id'):
        return None
    return Player(
        name=str(data.get('name') or ''),
        session_id=str(data['session_id']),
        is_connected=bool(data.get('is_connected', True)),
    )


def game_state_from_dict(data: Dict[str, Any], version: Optional[int] = None) -> GameState:
    players = data.get('players') if isinstance(data.get('players'), dict) else {}
    scorecards = data.get('scorecards') if isinstance(data.get('scorecards'), dict) else {}
    try:
        phase = Phase(data.get('phase') or Phase.LOBBY.value)
    except ValueError:
        phase = Phase.LOBBY
    active = data.get('active_player_id')
    return GameState(
        room_code=str(data.get('room_code') or ''),
        phase=phase,
        current_round=_as_int(data.get('current_round'), 1) or 1,
        active_player_id=active if active in PLAYER_IDS else PLAYER1,
        players={pid: player_from_dict(players.get(pid)) for pid in PLAYER_IDS},
        dice_state=dice_state_from_dict(data.get('dice_state')),
        scorecards={pid: scorecard_from_dict(scorecards.get(pid)) for pid in PLAYER_IDS},
        created_at=float(data.get('created_at') or 0.0),
        last_updated_at=float(data.get('last_updated_at') or 0.0),
        version=_as_int(data.get('version')) if version is None else version,
    )


def position_from_json(section: Section, raw: Any) -> Optional[Position]:
    """Parse a wire position: ``{'row', 'col'}`` for grids, an int otherwise."""
    if section in (Section.YELLOW, Section.BLUE):
        if isinstance(raw, dict) and 'row' in raw and 'col' in raw:
            try:
                return Cell(int(raw['row']), int(raw['col']))
            except (TypeError, ValueError):
                return None
        if isinstance(raw, (list, tuple)) and len(raw) == 2:
            try:
                return Cell(int(raw[0]), int(raw[1]))
            except (TypeError, ValueError):
                return None
        return None
    if isinstance(raw, bool):
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None
