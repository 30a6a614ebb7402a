from clever import db
from clever.services.games.constants import ROOM_CODE_ALPHABET, ROOM_CODE_LENGTH
from clever.services.games.errors import RoomCodeExhausted
import random


class Room(db.Model):
    """One game room. ``state`` holds the whole GameState document as JSON."""
    __tablename__ = 'room'
    id = db.Column(db.Integer, primary_key=True)
    room_code = db.Column(db.String(ROOM_CODE_LENGTH), unique=True, nullable=False, index=True)
    state = db.Column(db.Text, nullable=False)
    # Bumped on every write; writers compare-and-swap against it.
    version = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.Float, nullable=True)
    updated_at = db.Column(db.Float, nullable=True)

    def to_dict(self):
        return {
            'id': self.id,
            'room_code': self.room_code,
            'version': self.version,
            'created_at': self.created_at,
            'updated_at': self.updated_at,
        }


def generate_room_code(length=ROOM_CODE_LENGTH, max_attempts=10):
    """Generate a unique, short room code from the unambiguous alphabet."""
    for _ in range(max_attempts):
        code = ''.join(random.choices(ROOM_CODE_ALPHABET, k=length))
        if not Room.query.filter_by(room_code=code).first():
            return code
    raise RoomCodeExhausted(max_attempts)
