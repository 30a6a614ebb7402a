"""Action API over one room's GameState.

Each mutating call loads the room, asks the turn manager whether the seat
may act, delegates to the dice or scorecard engine, and writes the whole new
state back against the version it read. Denied or illegal actions leave the
store untouched and come back as ``ActionResult(success=False)``.
"""
import logging
import random
import time
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, Tuple

from . import dice as dice_engine
from . import scoring
from . import turns
from .constants import ROOM_CODE_LENGTH
from .errors import GameAlreadyStarted, LobbyError, NotHost, RoomFull, RoomNotFound
from .state import (
    PLAYER1,
    PLAYER2,
    PLAYER_IDS,
    Bonus,
    Die,
    GameState,
    Phase,
    Player,
    Position,
    Section,
    create_initial_game_state,
)


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActionResult:
    success: bool
    state: Optional[GameState]
    error: Optional[str] = None
    bonuses_earned: Tuple[Bonus, ...] = ()
    die: Optional[Die] = None

    def to_dict(self):
        return {
            'success': self.success,
            'error': self.error,
            'state': self.state.to_dict() if self.state else None,
            'bonuses_earned': [b.to_dict() for b in self.bonuses_earned],
            'die': self.die.to_dict() if self.die else None,
        }


class GameOrchestrator:
    def __init__(self, store, rng=None, passive_plus_one: bool = True,
                 code_generator=None, code_length: int = ROOM_CODE_LENGTH, code_attempts: int = 10):
        self.store = store
        self.rng = rng or random
        self.passive_plus_one = passive_plus_one
        self.code_generator = code_generator
        self.code_length = code_length
        self.code_attempts = code_attempts

    # ---- plumbing ----

    def _load(self, room_code: str) -> GameState:
        state = self.store.load_state(room_code)
        if state is None:
            raise RoomNotFound((room_code or '').strip().upper())
        return state

    def _commit(self, before: GameState, after: GameState) -> GameState:
        after = replace(after, last_updated_at=time.time())
        return self.store.replace_state(before.room_code, after.to_dict(), expected_version=before.version)

    def _deny(self, state: GameState, action: str, player_id: str, reason: str) -> ActionResult:
        logger.info(f"[denied] room={state.room_code} player={player_id} action={action} reason={reason}")
        return ActionResult(success=False, state=state, error=reason)

    # ---- lobby ----

    def create_game(self, player_name: str, session_id: str) -> Tuple[GameState, str]:
        if not player_name or not session_id:
            raise LobbyError('Player name and session id are required')
        if self.code_generator is not None:
            code = self.code_generator(self.code_length, self.code_attempts)
        else:
            from clever.models import generate_room_code
            code = generate_room_code(self.code_length, self.code_attempts)
        state = create_initial_game_state(code, Player(name=player_name, session_id=session_id))
        state = self.store.create_state(state)
        logger.info(f"[create] room={code} host={player_name}")
        return state, PLAYER1

    def join_game(self, room_code: str, player_name: str, session_id: str) -> Tuple[GameState, str]:
        if not room_code or not player_name or not session_id:
            raise LobbyError('Room code, player name and session id are required')
        state = self._load(room_code)

        # Returning player: same session id takes back its seat.
        for pid in PLAYER_IDS:
            seat = state.players.get(pid)
            if seat and seat.session_id == session_id:
                if not seat.is_connected:
                    players = dict(state.players)
                    players[pid] = replace(seat, is_connected=True)
                    state = self._commit(state, replace(state, players=players))
                logger.info(f"[rejoin] room={state.room_code} player={pid}")
                return state, pid

        if state.phase != Phase.LOBBY:
            raise GameAlreadyStarted(state.room_code)
        if state.players.get(PLAYER2) is not None:
            raise RoomFull(state.room_code)

        players = dict(state.players)
        players[PLAYER2] = Player(name=player_name, session_id=session_id)
        state = self._commit(state, replace(state, players=players))
        logger.info(f"[join] room={state.room_code} player={PLAYER2} name={player_name}")
        return state, PLAYER2

    def start_game(self, room_code: str, player_id: str) -> ActionResult:
        state = self._load(room_code)
        if state.phase != Phase.LOBBY:
            # Idempotent start: already running or over.
            return ActionResult(success=True, state=state)
        if player_id != PLAYER1:
            raise NotHost()
        if not all(state.players.get(pid) for pid in PLAYER_IDS):
            return self._deny(state, 'start', player_id, 'Both players must join before starting')

        fresh = replace(state, current_round=1, active_player_id=PLAYER1)
        state = self._commit(state, turns.begin_turn(fresh, self.rng))
        logger.info(f"[start] room={state.room_code} phase={state.phase.value}")
        return ActionResult(success=True, state=state)

    def leave_game(self, room_code: str, player_id: str) -> ActionResult:
        state = self._load(room_code)
        seat = state.players.get(player_id) if player_id in PLAYER_IDS else None
        if seat is None:
            return self._deny(state, 'leave', player_id, 'You are not in this game')

        if state.phase == Phase.LOBBY:
            if player_id == PLAYER1:
                self.store.delete_state(state.room_code)
                return ActionResult(success=True, state=None)
            players = dict(state.players)
            players[player_id] = None
            return ActionResult(success=True, state=self._commit(state, replace(state, players=players)))

        players = dict(state.players)
        players[player_id] = replace(seat, is_connected=False)
        if not any(p and p.is_connected for p in players.values()):
            self.store.delete_state(state.room_code)
            return ActionResult(success=True, state=None)
        logger.info(f"[leave] room={state.room_code} player={player_id}")
        return ActionResult(success=True, state=self._commit(state, replace(state, players=players)))

    # ---- active player ----

    def roll_dice(self, room_code: str, player_id: str) -> ActionResult:
        state = self._load(room_code)
        if player_id not in PLAYER_IDS:
            return self._deny(state, 'roll', player_id, 'You are not seated in this game')
        if not turns.get_turn_info(state, player_id).can_roll:
            return self._deny(state, 'roll', player_id, 'You cannot roll right now')
        ds = dice_engine.roll(state.dice_state, self.rng)
        if ds is state.dice_state:
            return self._deny(state, 'roll', player_id, 'No dice to roll')
        after = replace(state, dice_state=ds, phase=turns.next_phase(state, 'roll'))
        logger.info(f"[roll] room={state.room_code} player={player_id} roll_number={ds.roll_number}")
        return ActionResult(success=True, state=self._commit(state, after))

    def select_die(self, room_code: str, player_id: str, die_id: str) -> ActionResult:
        state = self._load(room_code)
        if player_id not in PLAYER_IDS:
            return self._deny(state, 'select', player_id, 'You are not seated in this game')
        if not turns.get_turn_info(state, player_id).can_select:
            return self._deny(state, 'select', player_id, 'You cannot select a die right now')
        ds = dice_engine.select(state.dice_state, die_id)
        if ds is state.dice_state:
            return self._deny(state, 'select', player_id, 'That die is not available')
        after = replace(state, dice_state=ds, phase=turns.next_phase(state, 'select'))
        logger.info(
            f"[select] room={state.room_code} player={player_id} die={die_id} tray={len(ds.silver_tray)}"
        )
        return ActionResult(success=True, state=self._commit(state, after))

    def use_reroll(self, room_code: str, player_id: str) -> ActionResult:
        state = self._load(room_code)
        if player_id not in PLAYER_IDS:
            return self._deny(state, 'reroll', player_id, 'You are not seated in this game')
        info = turns.get_turn_info(state, player_id)
        if not (info.is_active_player and state.phase in turns.ACTIVE_PHASES):
            return self._deny(state, 'reroll', player_id, 'Only the active player may reroll')
        card = state.scorecards[player_id]
        if card.bonuses.rerolls <= 0:
            return self._deny(state, 'reroll', player_id, 'No rerolls left')
        ds = dice_engine.reroll(state.dice_state, self.rng)
        if ds is state.dice_state:
            return self._deny(state, 'reroll', player_id, 'No dice to roll')

        scorecards = dict(state.scorecards)
        scorecards[player_id] = replace(card, bonuses=replace(card.bonuses, rerolls=card.bonuses.rerolls - 1))
        phase = Phase.SELECTING if state.phase == Phase.ROLLING else state.phase
        after = replace(state, dice_state=ds, scorecards=scorecards, phase=phase)
        logger.info(f"[reroll] room={state.room_code} player={player_id} rerolls_left={card.bonuses.rerolls - 1}")
        return ActionResult(success=True, state=self._commit(state, after))

    # ---- passive player ----

    def select_from_silver_tray(self, room_code: str, player_id: str, die_id: str) -> ActionResult:
        state = self._load(room_code)
        if player_id not in PLAYER_IDS:
            return self._deny(state, 'tray', player_id, 'You are not seated in this game')
        if not turns.get_turn_info(state, player_id).must_select_from_silver_tray:
            return self._deny(state, 'tray', player_id, 'You cannot take a die from the silver tray')
        picked = dice_engine.select_from_silver_tray(state.dice_state, die_id)
        if picked is None:
            return self._deny(state, 'tray', player_id, 'That die is not on the silver tray')
        die, ds = picked
        logger.info(f"[tray] room={state.room_code} player={player_id} die={die.id} value={die.value}")
        return ActionResult(success=True, state=self._commit(state, replace(state, dice_state=ds)), die=die)

    # ---- either seat ----

    def _markable_die(self, state: GameState, player_id: str, die_id: str) -> Optional[Die]:
        ds = state.dice_state
        if state.active_player_id == player_id:
            return next((d for d in dice_engine.unmarked_dice(ds) if d.id == die_id), None)
        if ds.passive_pick and ds.passive_pick.id == die_id and not ds.passive_marked:
            return ds.passive_pick
        return None

    def mark_scorecard(self, room_code: str, player_id: str, die_id: str,
                       section: Section, position: Position) -> ActionResult:
        state = self._load(room_code)
        if player_id not in PLAYER_IDS:
            return self._deny(state, 'mark', player_id, 'You are not seated in this game')
        if not turns.get_turn_info(state, player_id).can_mark:
            return self._deny(state, 'mark', player_id, 'You cannot mark right now')
        die = self._markable_die(state, player_id, die_id)
        if die is None:
            return self._deny(state, 'mark', player_id, 'That die is not yours to mark')
        values = scoring.mark_values_for_die(die, section, state.dice_state)
        if values is None:
            return self._deny(state, 'mark', player_id, f"A {die.color.value} die cannot be used on {section.value}")

        result = scoring.mark_position(state.scorecards[player_id], section, position, values[0], values[1])
        if not result.success:
            return self._deny(state, 'mark', player_id, result.error or 'Invalid move')

        scorecards = dict(state.scorecards)
        scorecards[player_id] = result.scorecard
        after = replace(
            state,
            scorecards=scorecards,
            dice_state=dice_engine.record_mark(state.dice_state, die.id),
            phase=turns.next_phase(state, 'mark'),
        )
        logger.info(
            f"[mark] room={state.room_code} player={player_id} die={die.id} section={section.value} "
            f"total={result.scorecard.total_score} bonuses={len(result.bonuses_earned)}"
        )
        return ActionResult(success=True, state=self._commit(state, after), bonuses_earned=result.bonuses_earned)

    def use_plus_one(self, room_code: str, player_id: str, die_id: str) -> ActionResult:
        state = self._load(room_code)
        if player_id not in PLAYER_IDS:
            return self._deny(state, 'plus_one', player_id, 'You are not seated in this game')
        info = turns.get_turn_info(state, player_id)
        if not info.is_my_turn:
            return self._deny(state, 'plus_one', player_id, 'It is not your turn')
        ds = state.dice_state
        if not info.is_active_player:
            if not self.passive_plus_one:
                return self._deny(state, 'plus_one', player_id, 'Only the active player may use +1')
            # The passive seat only touches its own pick or what is still on the tray.
            own = [d.id for d in ds.silver_tray] + ([ds.passive_pick.id] if ds.passive_pick else [])
            if die_id not in own:
                return self._deny(state, 'plus_one', player_id, 'That die is not on the silver tray')
        card = state.scorecards[player_id]
        if card.bonuses.plus_ones <= 0:
            return self._deny(state, 'plus_one', player_id, 'No +1 tokens left')
        new_ds = dice_engine.apply_plus_one(ds, die_id)
        if new_ds is ds:
            return self._deny(state, 'plus_one', player_id, 'Unknown die')

        scorecards = dict(state.scorecards)
        scorecards[player_id] = replace(card, bonuses=replace(card.bonuses, plus_ones=card.bonuses.plus_ones - 1))
        after = replace(state, dice_state=new_ds, scorecards=scorecards)
        logger.info(
            f"[plus_one] room={state.room_code} player={player_id} die={die_id} "
            f"value={dice_engine.find_die(new_ds, die_id).value} plus_ones_left={card.bonuses.plus_ones - 1}"
        )
        return ActionResult(success=True, state=self._commit(state, after))

    def end_turn(self, room_code: str, player_id: str) -> ActionResult:
        state = self._load(room_code)
        if player_id not in PLAYER_IDS:
            return self._deny(state, 'end_turn', player_id, 'You are not seated in this game')
        if not turns.get_turn_info(state, player_id).can_end_turn:
            return self._deny(state, 'end_turn', player_id, 'You cannot end the turn yet')
        if state.phase == Phase.MARKING:
            after = replace(state, phase=turns.next_phase(state, 'end_turn'))
        else:
            after = turns.advance_turn(state, self.rng)
        logger.info(
            f"[end_turn] room={state.room_code} player={player_id} phase={state.phase.value}->{after.phase.value}"
        )
        return ActionResult(success=True, state=self._commit(state, after))

    # ---- read-only ----

    def get_state(self, room_code: str) -> GameState:
        return self._load(room_code)

    def turn_info(self, room_code: str, player_id: str) -> turns.TurnInfo:
        return turns.get_turn_info(self._load(room_code), player_id)

    def valid_positions(self, room_code: str, player_id: str, die_id: str) -> Dict[Section, List[Position]]:
        state = self._load(room_code)
        if player_id not in PLAYER_IDS:
            return {}
        die = dice_engine.find_die(state.dice_state, die_id)
        if die is None:
            return {}
        return scoring.valid_positions_for_die(state.scorecards[player_id], die, state.dice_state)

    def winner(self, room_code: str) -> Optional[str]:
        return turns.get_winner(self._load(room_code))


def payload(state: GameState, player_id: Optional[str] = None) -> Dict[str, Any]:
    """State document plus derived fields for clients."""
    data = state.to_dict()
    data['winner'] = turns.get_winner(state)
    if player_id in PLAYER_IDS:
        data['turn_info'] = turns.get_turn_info(state, player_id).to_dict()
    return data


