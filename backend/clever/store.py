"""Room persistence and change notification.

The rules engine reads and writes one document per room. This module keeps
that document in the ``room`` table and pushes every change to Socket.IO
clients and in-process subscribers.
"""
import json
import logging
import time
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional

from clever import db, socketio
from clever.models import Room
from clever.services.games.errors import RoomNotFound, StaleStateError
from clever.services.games.state import GameState, game_state_from_dict


logger = logging.getLogger(__name__)

Listener = Callable[[GameState], None]


def normalize_code(room_code: str) -> str:
    return (room_code or '').strip().upper()


class RoomStore:
    """Load, replace and subscribe to room state documents."""

    def __init__(self):
        self._listeners: Dict[str, List[Listener]] = defaultdict(list)

    def create_state(self, state: GameState) -> GameState:
        code = normalize_code(state.room_code)
        now = time.time()
        doc = state.to_dict()
        doc.pop('version', None)
        room = Room(room_code=code, state=json.dumps(doc), version=1, created_at=now, updated_at=now)
        db.session.add(room)
        db.session.commit()
        logger.info(f"[room-create] room={code}")
        return game_state_from_dict(doc, version=room.version)

    def load_state(self, room_code: str) -> Optional[GameState]:
        room = Room.query.filter_by(room_code=normalize_code(room_code)).first()
        if not room:
            return None
        try:
            doc = json.loads(room.state)
        except json.JSONDecodeError:
            logger.warning(f"[room-corrupt] room={room.room_code} version={room.version}")
            return None
        return game_state_from_dict(doc, version=room.version)

    def replace_state(self, room_code: str, patch: Dict[str, Any],
                      expected_version: Optional[int] = None) -> GameState:
        """Shallow-merge ``patch`` into the stored document.

        Top-level keys are replaced whole. With ``expected_version`` the write
        only lands if nobody else wrote since that version.
        """
        code = normalize_code(room_code)
        room = Room.query.filter_by(room_code=code).first()
        if not room:
            raise RoomNotFound(code)

        doc = json.loads(room.state)
        doc.update({k: v for k, v in patch.items() if k != 'version'})
        now = time.time()
        doc['last_updated_at'] = now

        query = Room.query.filter_by(id=room.id)
        if expected_version is not None:
            query = query.filter_by(version=expected_version)
        updated = query.update(
            {'state': json.dumps(doc), 'version': Room.version + 1, 'updated_at': now},
            synchronize_session=False,
        )
        if not updated:
            db.session.rollback()
            logger.warning(f"[stale-write] room={code} expected_version={expected_version}")
            raise StaleStateError(code, expected_version)
        db.session.commit()

        new_state = game_state_from_dict(doc, version=room.version)
        self._notify(code, new_state)
        return new_state

    def delete_state(self, room_code: str) -> bool:
        code = normalize_code(room_code)
        room = Room.query.filter_by(room_code=code).first()
        if not room:
            return False
        db.session.delete(room)
        db.session.commit()
        socketio.emit('session_ended', {'game_code': code}, to=f"game:{code}", namespace='/ws')
        self._listeners.pop(code, None)
        logger.info(f"[room-delete] room={code}")
        return True

    def subscribe(self, room_code: str, on_change: Listener) -> Callable[[], None]:
        code = normalize_code(room_code)
        self._listeners[code].append(on_change)

        def unsubscribe():
            listeners = self._listeners.get(code, [])
            if on_change in listeners:
                listeners.remove(on_change)

        return unsubscribe

    def _notify(self, code: str, state: GameState) -> None:
        socketio.emit('state_update', {'game_code': code, 'state': state.to_dict()},
                      to=f"game:{code}", namespace='/ws')
        for listener in list(self._listeners.get(code, [])):
            try:
                listener(state)
            except Exception:
                logger.exception(f"[listener-error] room={code}")


room_store = RoomStore()
