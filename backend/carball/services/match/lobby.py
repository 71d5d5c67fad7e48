"""Session operations: one function per client message kind.

These are transport-agnostic: they take a Socket.IO sid and a parsed
message, mutate the registry/room under the proper locks, and queue the
resulting events on the connection hub.
"""
import logging
import time
import uuid
from typing import Optional

from carball import hub, registry, socketio
from carball.errors import MatchAlreadyStarted, RoomFull, RoomNotFound
from carball.models import TEAM_A, Player, Room
from carball.protocol import (
    GAME_START,
    JOINED,
    PLAYER_LEFT,
    PONG,
    ROOM_UPDATE,
    SERVER_CREATED,
    CreateServer,
    Cosmetics,
    HostConfig,
    InputUpdate,
    JoinServer,
)
from .broadcast import room_update_payload
from .scheduler import RoomTicker

log = logging.getLogger(__name__)

clock = time.monotonic


def _clamp_map(value: Optional[int], fallback: int) -> int:
    if value is None:
        return fallback
    count = max(1, int(registry.setting('MAP_COUNT', 3)))
    return max(0, min(count - 1, value))


def _clamp_time(value: Optional[int], fallback: int) -> int:
    if value is None:
        return fallback
    low = int(registry.setting('MIN_MATCH_SEC', 30))
    high = int(registry.setting('MAX_MATCH_SEC', 600))
    return max(low, min(high, value))


def _apply_cosmetics(player: Player, cosmetics: Cosmetics):
    player.apply_cosmetics(
        c1=cosmetics.c1,
        c2=cosmetics.c2,
        model=cosmetics.model,
        wheel_style=cosmetics.wheel_style,
    )


def _new_player_id() -> str:
    return uuid.uuid4().hex


def create_server(sid: str, msg: CreateServer) -> Room:
    # A session sits in at most one room
    leave_server(sid)
    player = Player(_new_player_id(), sid, msg.name, TEAM_A)
    _apply_cosmetics(player, msg.cosmetics)
    room = registry.create_room(
        map_index=_clamp_map(msg.map, 0),
        duration=_clamp_time(msg.time, int(registry.setting('MATCH_DURATION_SEC', 180))),
        creator=player,
    )
    with room.lock:
        hub.send(sid, SERVER_CREATED, {'serverId': room.code, 'playerId': player.id})
        hub.broadcast(room, ROOM_UPDATE, room_update_payload(room))
    return room


def join_server(sid: str, msg: JoinServer) -> Room:
    current, player_id = registry.lookup(sid)
    if current is not None and current.code == msg.server_id:
        # Already here: repeat the acknowledgement
        with current.lock:
            player = current.players.get(player_id)
            if player:
                hub.send(sid, JOINED, _joined_payload(current, player))
                return current

    room = registry.get(msg.server_id)
    if room is None:
        raise RoomNotFound()
    with room.lock:
        _check_joinable(room)

    leave_server(sid)

    with room.lock:
        # Re-check: the room may have emptied or launched in between
        _check_joinable(room)
        player = Player(_new_player_id(), sid, msg.name, room.next_team())
        _apply_cosmetics(player, msg.cosmetics)
        room.add_player(player)
        registry.bind(sid, room.code, player.id)
        log.info(f"[room-join] room={room.code} player={player.id} team={player.team} count={len(room.players)}")
        hub.send(sid, JOINED, _joined_payload(room, player))
        hub.broadcast(room, ROOM_UPDATE, room_update_payload(room))
    return room


def _check_joinable(room: Room):
    if registry.get(room.code) is not room:
        raise RoomNotFound()
    if room.is_full():
        raise RoomFull()
    if room.started:
        raise MatchAlreadyStarted()


def _joined_payload(room: Room, player: Player) -> dict:
    return {
        'serverId': room.code,
        'map': room.map,
        'time': room.duration,
        'playerId': player.id,
        'team': player.team,
    }


def launch(sid: str) -> bool:
    room, player_id = registry.lookup(sid)
    if room is None:
        return False
    with room.lock:
        if not room.is_host(player_id):
            log.info(f"[launch-denied] room={room.code} player={player_id} not host")
            return False
        if room.started:
            return False
        if len(room.players) < int(registry.setting('MIN_PLAYERS', 1)):
            log.info(f"[launch-denied] room={room.code} players={len(room.players)} below minimum")
            return False

        room.stop_ticker()
        room.launch(clock())
        ticker = RoomTicker.from_config(room, hub, registry.config, clock=clock)
        room.ticker = ticker
        log.info(f"[launch] room={room.code} players={len(room.players)} time={room.duration}s")
        hub.broadcast(room, GAME_START, {
            'map': room.map,
            'time': room.duration,
            'players': room.roster(),
        })
        hub.broadcast_snapshot(room)

        if registry.setting('TICK_DRIVER_ENABLED', True):
            ticker.start(socketio.start_background_task, sleep=socketio.sleep)
    return True


def host_config(sid: str, msg: HostConfig) -> bool:
    room, player_id = registry.lookup(sid)
    if room is None:
        return False
    with room.lock:
        if not room.is_host(player_id) or room.started:
            return False
        room.map = _clamp_map(msg.map, room.map)
        room.duration = _clamp_time(msg.time, room.duration)
        room.time_left = float(room.duration)
        hub.broadcast(room, ROOM_UPDATE, room_update_payload(room))
    return True


def update_input(sid: str, msg: InputUpdate) -> bool:
    room, player_id = registry.lookup(sid)
    if room is None:
        return False
    with room.lock:
        player = room.players.get(player_id)
        if player is None:
            return False
        player.input = msg.input
        _apply_cosmetics(player, msg.cosmetics)
    return True


def ping(sid: str):
    hub.send(sid, PONG, {})


def leave_server(sid: str) -> Optional[Player]:
    """Drop the session's player; forfeits a running match, removes an empty room."""
    entry = registry.unbind(sid)
    if not entry:
        return None
    code, player_id = entry
    room = registry.get(code)
    if room is None:
        return None

    with room.lock:
        player = room.remove_player(player_id)
        if player is None:
            return None
        log.info(f"[room-leave] room={code} player={player_id} remaining={len(room.players)}")

        if not room.players:
            room.stop_match()
            registry.remove_room(code)
            return player

        if room.stop_match():
            room.stop_ticker()
            room.claim_game_over()
            log.info(f"[forfeit] room={code} left={player_id} score={room.score_a}-{room.score_b}")
            hub.broadcast(room, PLAYER_LEFT, {
                'playerId': player.id,
                'name': player.name,
                'scoreA': room.score_a,
                'scoreB': room.score_b,
            })
        else:
            hub.broadcast(room, ROOM_UPDATE, room_update_payload(room))
    return player
