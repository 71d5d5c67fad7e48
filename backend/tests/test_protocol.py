import pytest

from carball import protocol
from carball.errors import ProtocolError
from carball.protocol import parse_message


def test_create_server_defaults():
    msg = parse_message('CREATE_SERVER', {'name': 'Alice'})
    assert isinstance(msg, protocol.CreateServer)
    assert msg.name == 'Alice'
    assert msg.map is None and msg.time is None
    assert msg.cosmetics == protocol.Cosmetics()


def test_create_server_options():
    msg = parse_message('CREATE_SERVER', {'name': 'Al', 'map': 2, 'time': 90.0, 'c1': '#ff0000', 'model': 3})
    assert (msg.map, msg.time) == (2, 90)
    assert msg.cosmetics.c1 == '#ff0000'
    assert msg.cosmetics.model == 3


def test_join_normalizes_code():
    msg = parse_message('JOIN_SERVER', {'serverId': ' ab1c ', 'name': 'Bob', 'wheelStyle': 2})
    assert msg.server_id == 'AB1C'
    assert msg.cosmetics.wheel_style == 2


@pytest.mark.parametrize('kind,data', [
    ('CREATE_SERVER', None),
    ('CREATE_SERVER', {}),
    ('CREATE_SERVER', {'name': 42}),
    ('CREATE_SERVER', {'name': 'x', 'map': 'two'}),
    ('CREATE_SERVER', {'name': 'x', 'time': True}),
    ('CREATE_SERVER', {'name': 'x', 'time': float('inf')}),
    ('HOST_CONFIG', {'map': float('nan')}),
    ('JOIN_SERVER', {'name': 'Bob'}),
    ('JOIN_SERVER', {'serverId': '   ', 'name': 'Bob'}),
    ('JOIN_SERVER', 'ABCD'),
    ('INPUT', {}),
    ('INPUT', {'i': [1, 0, 0, 0]}),
    ('INPUT', {'i': {'up': 'yes'}}),
    ('LAUNCH', ['go']),
    ('SHOOT', {}),
])
def test_malformed_messages_raise(kind, data):
    with pytest.raises(ProtocolError):
        parse_message(kind, data)


def test_input_is_complete_snapshot():
    msg = parse_message('INPUT', {'i': {'up': True, 'boost': 1}})
    assert msg.input.to_dict() == {'up': True, 'down': False, 'left': False, 'right': False, 'boost': True}


def test_bad_cosmetics_are_ignored_not_fatal():
    msg = parse_message('INPUT', {'i': {}, 'c1': 'red', 'c2': '#00ff00', 'md': 99, 'ws': True})
    assert msg.cosmetics == protocol.Cosmetics(c2='#00ff00')


def test_empty_messages_accept_missing_payload():
    assert isinstance(parse_message('LAUNCH', None), protocol.Launch)
    assert isinstance(parse_message('PING', {}), protocol.Ping)
    assert parse_message('HOST_CONFIG', None) == protocol.HostConfig()


def test_oversized_integers_parse_without_overflow():
    msg = parse_message('HOST_CONFIG', {'map': 10 ** 400, 'time': -10 ** 400})
    assert msg.map == 10 ** 400
    assert msg.time == -10 ** 400
