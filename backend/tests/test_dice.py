import random

from clever.services.games import dice as dice_engine
from clever.services.games.state import DiceColor, DiceState, Die


def make_state(values, **kwargs):
    dice = tuple(Die(id=c.value, color=c, value=values[c.value]) for c in DiceColor)
    return DiceState(dice=dice, **kwargs)


VALUES = {'yellow': 5, 'blue': 2, 'green': 4, 'orange': 1, 'purple': 6, 'white': 3}


def all_ids_accounted(state):
    available = {d.id for d in dice_engine.available_dice(state)}
    selected = {d.id for d in state.selected_dice}
    tray = {d.id for d in state.silver_tray}
    pick = {state.passive_pick.id} if state.passive_pick else set()
    groups = [available, selected, tray, pick]
    every = set().union(*groups)
    return every == {c.value for c in DiceColor} and sum(len(g) for g in groups) == len(every)


def test_initial_dice_one_per_color_in_range():
    dice = dice_engine.create_initial_dice(random.Random(7))
    assert [d.id for d in dice] == [c.value for c in DiceColor]
    assert all(1 <= d.value <= 6 for d in dice)
    ds = dice_engine.reset_for_new_turn(random.Random(7))
    assert ds.roll_number == 1
    assert not ds.must_roll_before_select
    assert len(dice_engine.available_dice(ds)) == 6


def test_select_demotes_strictly_lower_dice():
    state = make_state(VALUES)
    after = dice_engine.select(state, 'green')  # value 4
    tray_ids = {d.id for d in after.silver_tray}
    assert tray_ids == {'blue', 'orange', 'white'}
    assert [d.id for d in after.selected_dice] == ['green']
    assert {d.id for d in dice_engine.available_dice(after)} == {'yellow', 'purple'}
    assert after.must_roll_before_select
    assert all_ids_accounted(after)


def test_equal_values_stay_available():
    values = dict(VALUES, yellow=4)
    after = dice_engine.select(make_state(values), 'green')
    assert 'yellow' in {d.id for d in dice_engine.available_dice(after)}


def test_third_selection_flushes_remaining_dice():
    values = {'yellow': 1, 'blue': 2, 'green': 3, 'orange': 4, 'purple': 5, 'white': 6}
    state = make_state(values)
    state = dice_engine.select(state, 'yellow')
    state = dice_engine.select(state, 'blue')
    assert {d.id for d in dice_engine.available_dice(state)} == {'green', 'orange', 'purple', 'white'}
    state = dice_engine.select(state, 'green')
    assert dice_engine.available_dice(state) == []
    assert {d.id for d in state.silver_tray} == {'orange', 'purple', 'white'}
    assert dice_engine.is_turn_complete(state)
    assert all_ids_accounted(state)


def test_invalid_selection_returns_same_object():
    state = dice_engine.select(make_state(VALUES), 'green')
    assert dice_engine.select(state, 'green') is state
    assert dice_engine.select(state, 'blue') is state  # on the tray
    assert dice_engine.select(state, 'nope') is state


def test_roll_respects_cap_and_keeps_used_dice():
    state = dice_engine.select(make_state(VALUES), 'green')
    rng = random.Random(3)
    rolled = dice_engine.roll(state, rng)
    assert rolled.roll_number == 2
    assert not rolled.must_roll_before_select
    for die in rolled.dice:
        if die.is_selected or die.is_on_silver_tray:
            assert die.value == VALUES[die.id]

    capped = make_state(VALUES, roll_number=4)
    assert dice_engine.roll(capped, rng) is capped
    assert not dice_engine.can_roll(capped)
    assert dice_engine.rolls_remaining(capped) == 0


def test_reroll_ignores_roll_cap():
    state = make_state(VALUES, roll_number=4, must_roll_before_select=True)
    after = dice_engine.reroll(state, random.Random(9))
    assert after is not state
    assert after.roll_number == 4
    assert not after.must_roll_before_select


def test_silver_tray_pick_only_once():
    state = dice_engine.select(make_state(VALUES), 'green')
    picked = dice_engine.select_from_silver_tray(state, 'blue')
    assert picked is not None
    die, after = picked
    assert die.id == 'blue'
    assert after.passive_pick.id == 'blue'
    assert 'blue' not in {d.id for d in after.silver_tray}
    assert all_ids_accounted(after)
    # The pool copy stays flagged, so the pick never becomes available again
    assert 'blue' not in {d.id for d in dice_engine.available_dice(after)}
    assert dice_engine.find_die(after, 'blue').is_on_silver_tray
    assert dice_engine.select_from_silver_tray(after, 'white') is None
    assert dice_engine.select_from_silver_tray(state, 'purple') is None


def test_plus_one_wraps_six_to_one():
    state = dice_engine.select(make_state(VALUES), 'purple')  # 6, demotes everything lower
    after = dice_engine.apply_plus_one(state, 'purple')
    assert dice_engine.find_die(after, 'purple').value == 1
    assert after.selected_dice[0].value == 1
    bumped = dice_engine.apply_plus_one(after, 'white')
    assert next(d for d in bumped.silver_tray if d.id == 'white').value == 4
    assert dice_engine.apply_plus_one(after, 'unknown') is after


def test_record_mark_tracks_selected_and_passive_dice():
    state = dice_engine.select(make_state(VALUES), 'green')
    marked = dice_engine.record_mark(state, 'green')
    assert marked.marked_die_ids == ('green',)
    assert dice_engine.unmarked_dice(marked) == []
    assert dice_engine.record_mark(marked, 'green') is marked
    assert dice_engine.record_mark(marked, 'yellow') is marked
