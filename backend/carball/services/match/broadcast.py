"""Snapshot serialization and best-effort fan-out to room members.

Outbound events never go straight from the simulation to the socket: each
connection owns a bounded outbox. A slow client only loses its own stale
snapshots; it cannot stall the room's tick loop.
"""
import logging
import threading
from collections import Counter, deque
from typing import Dict, Optional

from carball.models import Room

log = logging.getLogger(__name__)

GAME_STATE = 'GAME_STATE'


def build_snapshot(room: Room) -> dict:
    return {
        't': round(room.time_left, 3),
        'sA': room.score_a,
        'sB': room.score_b,
        'ball': room.ball.to_dict(),
        'players': [p.to_snapshot() for p in room.players.values()],
    }


def room_update_payload(room: Room) -> dict:
    return {
        'serverId': room.code,
        'players': room.roster(),
        'map': room.map,
        'time': room.duration,
    }


class Connection:
    def __init__(self, sid: str, limit: int):
        self.sid = sid
        self.outbox = deque()
        self.limit = max(1, limit)
        self.open = True
        self.dropped = 0
        self.wakeup = threading.Event()
        self._lock = threading.Lock()

    def push(self, event: str, payload: dict, coalesce=False) -> int:
        """Queue an event; returns how many pending entries were dropped."""
        dropped = 0
        with self._lock:
            if coalesce:
                kept = [entry for entry in self.outbox if entry[0] != event]
                dropped += len(self.outbox) - len(kept)
                self.outbox = deque(kept)
            self.outbox.append((event, payload))
            while len(self.outbox) > self.limit:
                self.outbox.popleft()
                dropped += 1
            self.dropped += dropped
        self.wakeup.set()
        return dropped

    def drain(self):
        with self._lock:
            items = list(self.outbox)
            self.outbox.clear()
        return items

    def close(self):
        self.open = False
        self.wakeup.set()


class ConnectionHub:
    """Registry of live Socket.IO connections and their outboxes."""

    def __init__(self):
        self.socketio = None
        self.namespace = '/ws'
        self.outbox_limit = 32
        self.async_delivery = True
        self.connections: Dict[str, Connection] = {}
        self.stats = Counter()
        self._lock = threading.Lock()

    def init_app(self, app, socketio, namespace='/ws'):
        self.socketio = socketio
        self.namespace = namespace
        self.outbox_limit = int(app.config.get('OUTBOX_LIMIT', 32))
        self.async_delivery = bool(app.config.get('ASYNC_DELIVERY', True))
        self.clear()

    def clear(self):
        with self._lock:
            conns = list(self.connections.values())
            self.connections.clear()
        for conn in conns:
            conn.close()
        self.stats.clear()

    def open(self, sid: str) -> Connection:
        conn = Connection(sid, self.outbox_limit)
        with self._lock:
            self.connections[sid] = conn
        if self.async_delivery and self.socketio is not None:
            self.socketio.start_background_task(self._sender, conn)
        return conn

    def close(self, sid: str) -> None:
        with self._lock:
            conn = self.connections.pop(sid, None)
        if conn:
            conn.close()

    def is_open(self, sid: Optional[str]) -> bool:
        conn = self.connections.get(sid) if sid else None
        return bool(conn and conn.open)

    def send(self, sid: Optional[str], event: str, payload: dict) -> bool:
        conn = self.connections.get(sid) if sid else None
        if conn is None or not conn.open:
            self.stats['skipped'] += 1
            return False
        if not self.async_delivery:
            self._emit(conn.sid, event, payload)
            return True
        dropped = conn.push(event, payload, coalesce=(event == GAME_STATE))
        if dropped:
            self.stats['dropped'] += dropped
            log.debug(f"[outbox-drop] sid={sid} dropped={dropped} pending={len(conn.outbox)}")
        return True

    def broadcast(self, room: Room, event: str, payload: dict) -> int:
        """Send to every member of ``room``; closed connections are skipped."""
        sent = 0
        for player in list(room.players.values()):
            if self.send(player.sid, event, payload):
                sent += 1
        return sent

    def broadcast_snapshot(self, room: Room) -> int:
        return self.broadcast(room, GAME_STATE, build_snapshot(room))

    def _emit(self, sid: str, event: str, payload: dict) -> None:
        if self.socketio is None:
            return
        self.socketio.emit(event, payload, to=sid, namespace=self.namespace)

    def _sender(self, conn: Connection) -> None:
        while conn.open:
            if not conn.wakeup.wait(timeout=1.0):
                continue
            conn.wakeup.clear()
            for event, payload in conn.drain():
                if not conn.open:
                    break
                try:
                    self._emit(conn.sid, event, payload)
                except Exception as exc:
                    log.warning(f"[send-failed] sid={conn.sid} event={event} error={exc}")
