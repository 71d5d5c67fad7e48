from carball.services.match.broadcast import Connection, build_snapshot, room_update_payload
from helpers import RecordingHub, make_room


def test_snapshot_shape():
    room = make_room('Alice', 'Bob')
    snap = build_snapshot(room)
    assert set(snap) == {'t', 'sA', 'sB', 'ball', 'players'}
    assert set(snap['ball']) == {'x', 'y', 'vx', 'vy', 'r'}
    assert {p['id'] for p in snap['players']} == {'p0', 'p1'}
    player = snap['players'][0]
    for key in ('name', 'team', 'x', 'y', 'vx', 'vy', 'a', 'boost', 'c1', 'c2', 'md', 'ws'):
        assert key in player


def test_room_update_lists_host():
    room = make_room('Alice', 'Bob')
    payload = room_update_payload(room)
    assert payload['serverId'] == 'TEST'
    assert [p['host'] for p in payload['players']] == [True, False]
    assert [p['team'] for p in payload['players']] == [0, 1]


def test_outbox_keeps_only_latest_snapshot():
    conn = Connection('sid', limit=8)
    conn.push('GOAL', {'team': 0})
    conn.push('GAME_STATE', {'t': 2}, coalesce=True)
    conn.push('GAME_STATE', {'t': 1}, coalesce=True)
    assert list(conn.outbox) == [('GOAL', {'team': 0}), ('GAME_STATE', {'t': 1})]
    assert conn.dropped == 1


def test_outbox_is_bounded():
    conn = Connection('sid', limit=3)
    for i in range(5):
        conn.push('ROOM_UPDATE', {'i': i})
    assert [payload['i'] for _, payload in conn.outbox] == [2, 3, 4]
    assert conn.dropped == 2
    assert [payload['i'] for _, payload in conn.drain()] == [2, 3, 4]
    assert not conn.outbox


def test_send_skips_unknown_and_closed_connections():
    hub = RecordingHub()
    hub.open('a')
    hub.open('b')
    hub.close('b')
    assert hub.send('a', 'PONG', {})
    assert not hub.send('b', 'PONG', {})
    assert not hub.send('zzz', 'PONG', {})
    assert not hub.send(None, 'PONG', {})
    assert hub.sent == [('a', 'PONG', {})]
    assert hub.stats['skipped'] == 3


def test_broadcast_survives_a_closed_member():
    room = make_room('Alice', 'Bob', 'Cara')
    hub = RecordingHub()
    for p in room.players.values():
        hub.open(p.sid)
    hub.close('sid1')
    assert hub.broadcast_snapshot(room) == 2
    assert {sid for sid, _, _ in hub.sent} == {'sid0', 'sid2'}


def test_async_delivery_queues_without_blocking():
    room = make_room('Alice')
    hub = RecordingHub()
    hub.async_delivery = True
    conn = hub.open('sid0')
    for _ in range(10):
        hub.broadcast_snapshot(room)
    # Nothing emitted inline; only the newest snapshot is pending
    assert hub.sent == []
    assert len(conn.outbox) == 1
    assert hub.stats['dropped'] == 9
