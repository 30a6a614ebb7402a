"""Dice pool for a single turn.

Every function takes a ``DiceState`` and returns a new one. Invalid requests
(unknown die, die already used, limits reached) hand back the input object
unchanged, so callers detect failure with ``new is old``.
"""
import random
from dataclasses import replace
from typing import List, Optional, Tuple

from .constants import (
    DICE_COLORS,
    MAX_DIE_VALUE,
    MAX_ROLLS,
    MAX_SELECTIONS_ACTIVE,
    MIN_DIE_VALUE,
    NO_ROLLS_LEFT,
)
from .state import DiceColor, DiceState, Die


def roll_die_value(rng=random) -> int:
    return rng.randint(MIN_DIE_VALUE, MAX_DIE_VALUE)


def create_initial_dice(rng=random) -> Tuple[Die, ...]:
    return tuple(Die(id=c.value, color=c, value=roll_die_value(rng)) for c in DICE_COLORS)


def reset_for_new_turn(rng=random) -> DiceState:
    """Fresh, already rolled pool; the opening roll does not use up a roll."""
    return DiceState(dice=create_initial_dice(rng), roll_number=1)


# ---- Queries ----

def available_dice(state: DiceState) -> List[Die]:
    return [d for d in state.dice if not d.is_on_silver_tray and not d.is_selected]


def tray_dice(state: DiceState) -> List[Die]:
    return list(state.silver_tray)


def selected_dice(state: DiceState) -> List[Die]:
    return list(state.selected_dice)


def unmarked_dice(state: DiceState) -> List[Die]:
    return [d for d in state.selected_dice if d.id not in state.marked_die_ids]


def find_die(state: DiceState, die_id: str) -> Optional[Die]:
    for die in state.dice:
        if die.id == die_id:
            return die
    if state.passive_pick and state.passive_pick.id == die_id:
        return state.passive_pick
    return None


def die_of_color(state: DiceState, color: DiceColor) -> Optional[Die]:
    for die in state.dice:
        if die.color == color:
            return die
    return None


def can_roll(state: DiceState) -> bool:
    return state.roll_number <= MAX_ROLLS and len(available_dice(state)) > 0


def can_select(state: DiceState) -> bool:
    return len(available_dice(state)) > 0 and len(state.selected_dice) < MAX_SELECTIONS_ACTIVE


def is_turn_complete(state: DiceState) -> bool:
    return len(state.selected_dice) >= MAX_SELECTIONS_ACTIVE or not available_dice(state)


def rolls_remaining(state: DiceState) -> int:
    return max(0, MAX_ROLLS - state.roll_number + 1)


# ---- Transitions ----

def _reroll_available(state: DiceState, rng) -> Tuple[Die, ...]:
    return tuple(
        d if (d.is_on_silver_tray or d.is_selected) else replace(d, value=roll_die_value(rng))
        for d in state.dice
    )


def roll(state: DiceState, rng=random) -> DiceState:
    if not can_roll(state):
        return state
    return replace(
        state,
        dice=_reroll_available(state, rng),
        roll_number=min(state.roll_number + 1, NO_ROLLS_LEFT),
        must_roll_before_select=False,
    )


def reroll(state: DiceState, rng=random) -> DiceState:
    """Bonus reroll: same as ``roll`` but free of the per-turn roll limit."""
    if not available_dice(state):
        return state
    return replace(
        state,
        dice=_reroll_available(state, rng),
        must_roll_before_select=False,
    )


def select(state: DiceState, die_id: str) -> DiceState:
    """Keep a die for the turn.

    Every other available die showing a lower value drops to the silver
    tray. The third pick flushes everything still available to the tray.
    """
    if len(state.selected_dice) >= MAX_SELECTIONS_ACTIVE:
        return state
    chosen = next((d for d in state.dice if d.id == die_id), None)
    if chosen is None or chosen.is_on_silver_tray or chosen.is_selected:
        return state

    is_last = len(state.selected_dice) + 1 >= MAX_SELECTIONS_ACTIVE
    tray = list(state.silver_tray)
    updated = []
    for die in state.dice:
        if die.id == die_id:
            die = replace(die, is_selected=True)
        elif not (die.is_on_silver_tray or die.is_selected):
            if die.value < chosen.value or is_last:
                die = replace(die, is_on_silver_tray=True)
                tray.append(die)
        updated.append(die)

    picked = next(d for d in updated if d.id == die_id)
    return replace(
        state,
        dice=tuple(updated),
        silver_tray=tuple(tray),
        selected_dice=state.selected_dice + (picked,),
        must_roll_before_select=True,
    )


def select_from_silver_tray(state: DiceState, die_id: str) -> Optional[Tuple[Die, DiceState]]:
    """Take one die off the tray for the passive player, or ``None``."""
    if state.passive_pick is not None:
        return None
    die = next((d for d in state.silver_tray if d.id == die_id), None)
    if die is None:
        return None
    new_state = replace(
        state,
        silver_tray=tuple(d for d in state.silver_tray if d.id != die_id),
        passive_pick=die,
        passive_marked=False,
    )
    return die, new_state


def apply_plus_one(state: DiceState, die_id: str) -> DiceState:
    if find_die(state, die_id) is None:
        return state

    def bump(die):
        if die.id != die_id:
            return die
        return replace(die, value=MIN_DIE_VALUE if die.value >= MAX_DIE_VALUE else die.value + 1)

    return replace(
        state,
        dice=tuple(bump(d) for d in state.dice),
        silver_tray=tuple(bump(d) for d in state.silver_tray),
        selected_dice=tuple(bump(d) for d in state.selected_dice),
        passive_pick=bump(state.passive_pick) if state.passive_pick else None,
    )


def record_mark(state: DiceState, die_id: str) -> DiceState:
    """Note that a die has been written on a scorecard."""
    if state.passive_pick and state.passive_pick.id == die_id:
        if state.passive_marked:
            return state
        return replace(state, passive_marked=True)
    if any(d.id == die_id for d in state.selected_dice) and die_id not in state.marked_die_ids:
        return replace(state, marked_die_ids=state.marked_die_ids + (die_id,))
    return state
