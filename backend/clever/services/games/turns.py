"""Turn phases and per-player permissions.

The phase machine is also the mutual-exclusion mechanism: at any moment
only one seat passes the permission checks below, so the orchestrator needs
no locks of its own.
"""
import logging
import random
import time
from dataclasses import dataclass, replace
from typing import Optional

from . import dice as dice_engine
from .constants import MAX_ROLLS, MAX_SELECTIONS_ACTIVE, MAX_SELECTIONS_PASSIVE, TOTAL_ROUNDS
from .scoring import valid_positions_for_die
from .state import PLAYER1, PLAYER2, PLAYER_IDS, GameState, Phase


logger = logging.getLogger(__name__)

ACTIVE_PHASES = (Phase.ROLLING, Phase.SELECTING, Phase.MARKING)
TIE = 'tie'


@dataclass(frozen=True)
class TurnInfo:
    is_my_turn: bool
    is_active_player: bool
    can_roll: bool
    can_select: bool
    can_mark: bool
    can_end_turn: bool
    must_select_from_silver_tray: bool
    selections_remaining: int
    rolls_remaining: int
    current_round: int
    total_rounds: int
    phase_description: str

    def to_dict(self):
        return {
            'is_my_turn': self.is_my_turn,
            'is_active_player': self.is_active_player,
            'can_roll': self.can_roll,
            'can_select': self.can_select,
            'can_mark': self.can_mark,
            'can_end_turn': self.can_end_turn,
            'must_select_from_silver_tray': self.must_select_from_silver_tray,
            'selections_remaining': self.selections_remaining,
            'rolls_remaining': self.rolls_remaining,
            'current_round': self.current_round,
            'total_rounds': self.total_rounds,
            'phase_description': self.phase_description,
        }


def other_player(player_id: str) -> str:
    return PLAYER2 if player_id == PLAYER1 else PLAYER1


def passive_may_finish(state: GameState) -> bool:
    """The passive seat is done once its tray pick is written down.

    A pick with no legal mark anywhere, or an empty tray, also lets the
    passive player move on rather than stalling the game.
    """
    ds = state.dice_state
    if ds.passive_pick is None:
        return not ds.silver_tray
    if ds.passive_marked:
        return True
    passive_id = other_player(state.active_player_id)
    return not valid_positions_for_die(state.scorecards[passive_id], ds.passive_pick, ds)


def _describe(state: GameState, is_active: bool, selections_made: int) -> str:
    phase = state.phase
    if phase == Phase.LOBBY:
        return 'Waiting for players...'
    if phase == Phase.ROLLING:
        return f"Roll {state.dice_state.roll_number} of {MAX_ROLLS}" if is_active else 'Opponent is rolling...'
    if phase == Phase.SELECTING:
        return f"Select dice ({selections_made}/{MAX_SELECTIONS_ACTIVE})" if is_active else 'Opponent is selecting...'
    if phase == Phase.MARKING:
        return 'Mark your scorecard' if is_active else 'Opponent is marking...'
    if phase == Phase.PASSIVE_TURN:
        return 'Opponent is choosing...' if is_active else 'Choose a die from the silver tray'
    return 'Game Over!'


def get_turn_info(state: GameState, player_id: str) -> TurnInfo:
    ds = state.dice_state
    phase = state.phase
    in_play = phase not in (Phase.LOBBY, Phase.GAME_OVER)
    is_active = in_play and state.active_player_id == player_id
    is_passive = in_play and player_id in PLAYER_IDS and state.active_player_id != player_id

    is_my_turn = (is_active and phase in ACTIVE_PHASES) or (is_passive and phase == Phase.PASSIVE_TURN)

    selections_made = len(ds.selected_dice)
    if is_active:
        selections_remaining = MAX_SELECTIONS_ACTIVE - selections_made
    elif is_passive:
        selections_remaining = 0 if ds.passive_pick else MAX_SELECTIONS_PASSIVE
    else:
        selections_remaining = 0
    available = dice_engine.available_dice(ds)

    can_roll = (
        is_active
        and phase in ACTIVE_PHASES
        and ds.roll_number <= MAX_ROLLS
        and len(available) > 0
    )
    # The gate only binds while a roll is still possible.
    gated = ds.must_roll_before_select and ds.roll_number <= MAX_ROLLS
    can_select = (
        is_active
        and phase in (Phase.SELECTING, Phase.MARKING)
        and selections_remaining > 0
        and len(available) > 0
        and not gated
    )
    can_mark = (
        (is_active and phase in (Phase.SELECTING, Phase.MARKING) and bool(dice_engine.unmarked_dice(ds)))
        or (is_passive and phase == Phase.PASSIVE_TURN and ds.passive_pick is not None and not ds.passive_marked)
    )
    can_end_turn = (
        (is_active and phase == Phase.MARKING and selections_made > 0)
        or (is_passive and phase == Phase.PASSIVE_TURN and passive_may_finish(state))
    )
    must_pick = is_passive and phase == Phase.PASSIVE_TURN and ds.passive_pick is None and bool(ds.silver_tray)

    return TurnInfo(
        is_my_turn=is_my_turn,
        is_active_player=is_active,
        can_roll=can_roll,
        can_select=can_select,
        can_mark=can_mark,
        can_end_turn=can_end_turn,
        must_select_from_silver_tray=must_pick,
        selections_remaining=selections_remaining,
        rolls_remaining=dice_engine.rolls_remaining(ds),
        current_round=state.current_round,
        total_rounds=TOTAL_ROUNDS,
        phase_description=_describe(state, is_active, selections_made),
    )


def next_phase(state: GameState, action: str) -> Phase:
    """Phase that follows ``action`` ('roll', 'select', 'mark', 'end_turn')."""
    phase = state.phase
    if action == 'roll':
        return Phase.SELECTING if phase == Phase.ROLLING else phase
    if action == 'select':
        return Phase.MARKING
    if action == 'mark':
        return phase
    if action == 'end_turn':
        if phase == Phase.MARKING:
            return Phase.PASSIVE_TURN
        if phase == Phase.PASSIVE_TURN:
            if state.active_player_id == PLAYER2 and state.current_round >= TOTAL_ROUNDS:
                return Phase.GAME_OVER
            return Phase.ROLLING
    return phase


def begin_turn(state: GameState, rng=random) -> GameState:
    """Open a turn: the pool is rolled right away, landing in ``selecting``."""
    rolling = replace(state, phase=Phase.ROLLING, dice_state=dice_engine.reset_for_new_turn(rng))
    return replace(rolling, phase=next_phase(rolling, 'roll'), last_updated_at=time.time())


def advance_turn(state: GameState, rng=random) -> GameState:
    """Hand play over after the passive player finishes."""
    target = next_phase(state, 'end_turn')
    if target == Phase.GAME_OVER:
        logger.info(f"[finish] room={state.room_code} finished at round={state.current_round}")
        return replace(state, phase=Phase.GAME_OVER, last_updated_at=time.time())

    round_done = state.active_player_id == PLAYER2
    new_round = state.current_round + 1 if round_done else state.current_round
    nxt = replace(
        state,
        active_player_id=other_player(state.active_player_id),
        current_round=new_round,
    )
    if round_done:
        logger.info(f"[next_round] room={state.room_code} advance round {state.current_round} -> {new_round}")
    return begin_turn(nxt, rng)


def is_game_over(state: GameState) -> bool:
    return state.phase == Phase.GAME_OVER


def get_winner(state: GameState) -> Optional[str]:
    if not is_game_over(state):
        return None
    p1 = state.scorecards[PLAYER1].total_score
    p2 = state.scorecards[PLAYER2].total_score
    if p1 > p2:
        return PLAYER1
    if p2 > p1:
        return PLAYER2
    return TIE
