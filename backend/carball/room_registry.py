import logging
import threading
from collections import Counter
from typing import Dict, List, Optional, Tuple

from carball.errors import RoomCodeExhausted
from carball.models import Player, Room, generate_room_code

log = logging.getLogger(__name__)


class RoomRegistry:
    """Process-wide table of live rooms and the session that sits in each.

    The registry lock only guards the two maps; anything that touches a
    room's players or lifecycle takes that room's own lock.
    """

    def __init__(self):
        self.app = None
        self.rooms: Dict[str, Room] = {}
        # sid -> (room code, player id)
        self.sessions: Dict[str, Tuple[str, str]] = {}
        self.stats = Counter()
        self._lock = threading.Lock()

    def init_app(self, app):
        self.app = app
        self.clear()

    @property
    def config(self):
        return self.app.config if self.app is not None else {}

    def setting(self, key, default):
        if self.app is None:
            return default
        return self.app.config.get(key, default)

    def clear(self):
        with self._lock:
            rooms = list(self.rooms.values())
            self.rooms.clear()
            self.sessions.clear()
        for room in rooms:
            room.stop_ticker()
        self.stats.clear()

    def create_room(self, map_index: int, duration: int, creator: Optional[Player] = None) -> Room:
        """Allocate a code and publish a new room.

        ``creator`` is seated and bound before the room becomes visible, so
        no listing or join ever sees it empty.
        """
        with self._lock:
            code = generate_room_code(
                lambda c: c in self.rooms,
                length=int(self.setting('ROOM_CODE_LENGTH', 4)),
                max_attempts=int(self.setting('ROOM_CODE_MAX_ATTEMPTS', 32)),
            )
            if code is None:
                self.stats['code_exhausted'] += 1
                raise RoomCodeExhausted()
            room = Room(code, map_index=map_index, duration=duration)
            if creator is not None:
                room.add_player(creator)
                self.sessions[creator.sid] = (code, creator.id)
            self.rooms[code] = room
            self.stats['rooms_created'] += 1
        log.info(f"[room-create] room={code} map={map_index} time={duration}s")
        return room

    def get(self, code: Optional[str]) -> Optional[Room]:
        if not code:
            return None
        return self.rooms.get(code)

    def remove_room(self, code: str) -> Optional[Room]:
        with self._lock:
            room = self.rooms.pop(code, None)
        if room:
            room.stop_ticker()
            self.stats['rooms_removed'] += 1
            log.info(f"[room-remove] room={code}")
        return room

    def bind(self, sid: str, code: str, player_id: str):
        with self._lock:
            self.sessions[sid] = (code, player_id)

    def unbind(self, sid: str) -> Optional[Tuple[str, str]]:
        with self._lock:
            return self.sessions.pop(sid, None)

    def lookup(self, sid: str) -> Tuple[Optional[Room], Optional[str]]:
        """Room and player id for a session, or (None, None)."""
        entry = self.sessions.get(sid)
        if not entry:
            return None, None
        code, player_id = entry
        return self.rooms.get(code), player_id

    def count_dropped(self, kind: str):
        self.stats[f"dropped:{kind}"] += 1

    def summaries(self) -> List[dict]:
        return [room.summary() for room in list(self.rooms.values())]
