import random
from dataclasses import replace

from clever.services.games import dice as dice_engine
from clever.services.games import turns
from clever.services.games.constants import TOTAL_ROUNDS
from clever.services.games.state import (
    PLAYER1,
    PLAYER2,
    DiceColor,
    DiceState,
    Die,
    Phase,
    Player,
    create_initial_game_state,
)


def running_state(**kwargs):
    state = create_initial_game_state('ABCDEF', Player('Alice', 's1'))
    players = dict(state.players, player2=Player('Bob', 's2'))
    state = replace(state, players=players)
    state = turns.begin_turn(state, random.Random(5))
    return replace(state, **kwargs)


def fixed_dice(values):
    return DiceState(dice=tuple(Die(c.value, c, values[c.value]) for c in DiceColor))


VALUES = {'yellow': 5, 'blue': 2, 'green': 4, 'orange': 1, 'purple': 6, 'white': 3}


def test_begin_turn_lands_in_selecting_with_fresh_dice():
    state = running_state()
    assert state.phase == Phase.SELECTING
    assert state.dice_state.roll_number == 1
    assert len(dice_engine.available_dice(state.dice_state)) == 6

    info = turns.get_turn_info(state, PLAYER1)
    assert info.is_my_turn and info.is_active_player
    assert info.can_roll and info.can_select
    assert not info.can_mark and not info.can_end_turn
    assert info.selections_remaining == 3
    assert info.total_rounds == TOTAL_ROUNDS

    other = turns.get_turn_info(state, PLAYER2)
    assert not other.is_my_turn
    assert not (other.can_roll or other.can_select or other.can_mark or other.can_end_turn)
    assert other.phase_description == 'Opponent is selecting...'


def test_gate_blocks_selection_only_while_rolls_remain():
    ds = dice_engine.select(fixed_dice(VALUES), 'green')
    state = running_state(phase=Phase.MARKING, dice_state=ds)
    info = turns.get_turn_info(state, PLAYER1)
    assert not info.can_select
    assert info.can_mark and info.can_end_turn

    exhausted = running_state(phase=Phase.MARKING, dice_state=replace(ds, roll_number=4))
    info = turns.get_turn_info(exhausted, PLAYER1)
    assert info.can_select
    assert not info.can_roll
    assert info.rolls_remaining == 0


def test_passive_turn_permissions():
    ds = dice_engine.select(fixed_dice(VALUES), 'green')
    state = running_state(phase=Phase.PASSIVE_TURN, dice_state=ds)
    passive = turns.get_turn_info(state, PLAYER2)
    assert passive.is_my_turn and not passive.is_active_player
    assert passive.must_select_from_silver_tray
    assert not passive.can_end_turn
    assert passive.selections_remaining == 1

    active = turns.get_turn_info(state, PLAYER1)
    assert not active.is_my_turn
    assert not active.can_roll

    _, picked = dice_engine.select_from_silver_tray(ds, 'white')
    state = replace(state, dice_state=picked)
    passive = turns.get_turn_info(state, PLAYER2)
    assert passive.can_mark
    assert not passive.must_select_from_silver_tray
    # A white 3 still fits somewhere on a fresh card, so the pick must be used.
    assert not passive.can_end_turn

    state = replace(state, dice_state=dice_engine.record_mark(picked, 'white'))
    assert turns.get_turn_info(state, PLAYER2).can_end_turn


def test_passive_with_empty_tray_may_finish():
    state = running_state(phase=Phase.PASSIVE_TURN, dice_state=fixed_dice(VALUES))
    assert turns.passive_may_finish(state)
    assert turns.get_turn_info(state, PLAYER2).can_end_turn


def test_next_phase_table():
    state = running_state(phase=Phase.ROLLING)
    assert turns.next_phase(state, 'roll') == Phase.SELECTING
    assert turns.next_phase(state, 'select') == Phase.MARKING
    marking = replace(state, phase=Phase.MARKING)
    assert turns.next_phase(marking, 'mark') == Phase.MARKING
    assert turns.next_phase(marking, 'end_turn') == Phase.PASSIVE_TURN
    passive = replace(state, phase=Phase.PASSIVE_TURN)
    assert turns.next_phase(passive, 'end_turn') == Phase.ROLLING
    last = replace(passive, active_player_id=PLAYER2, current_round=TOTAL_ROUNDS)
    assert turns.next_phase(last, 'end_turn') == Phase.GAME_OVER


def test_advance_turn_flips_player_and_bumps_round_after_player2():
    rng = random.Random(11)
    state = running_state(phase=Phase.PASSIVE_TURN)
    after = turns.advance_turn(state, rng)
    assert after.active_player_id == PLAYER2
    assert after.current_round == 1
    assert after.phase == Phase.SELECTING
    assert after.dice_state.selected_dice == ()

    after = turns.advance_turn(replace(after, phase=Phase.PASSIVE_TURN), rng)
    assert after.active_player_id == PLAYER1
    assert after.current_round == 2


def test_game_over_and_winner():
    state = running_state(phase=Phase.PASSIVE_TURN, active_player_id=PLAYER2, current_round=TOTAL_ROUNDS)
    assert turns.get_winner(state) is None
    over = turns.advance_turn(state)
    assert turns.is_game_over(over)
    assert turns.get_winner(over) == turns.TIE

    cards = dict(over.scorecards)
    cards[PLAYER2] = replace(cards[PLAYER2], total_score=12)
    assert turns.get_winner(replace(over, scorecards=cards)) == PLAYER2
    info = turns.get_turn_info(over, PLAYER1)
    assert info.phase_description == 'Game Over!'
    assert not info.is_my_turn


def test_other_player():
    assert turns.other_player(PLAYER1) == PLAYER2
    assert turns.other_player(PLAYER2) == PLAYER1
