"""Wire schema for the ``/ws`` namespace.

Each Socket.IO event name is a message kind and carries one JSON object.
``parse_message`` turns a raw payload into one of the message dataclasses
below or raises ``ProtocolError``; handlers never look at raw dicts.
"""
import math
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from carball.errors import ProtocolError
from carball.models import Input

PROTOCOL_VERSION = 1

# Client -> server
CREATE_SERVER = 'CREATE_SERVER'
JOIN_SERVER = 'JOIN_SERVER'
LAUNCH = 'LAUNCH'
HOST_CONFIG = 'HOST_CONFIG'
INPUT = 'INPUT'
PING = 'PING'
LEAVE_SERVER = 'LEAVE_SERVER'

# Server -> client
SERVER_CREATED = 'SERVER_CREATED'
JOINED = 'JOINED'
ERROR = 'ERROR'
ROOM_UPDATE = 'ROOM_UPDATE'
GAME_START = 'GAME_START'
GAME_STATE = 'GAME_STATE'
GOAL = 'GOAL'
GAME_OVER = 'GAME_OVER'
PLAYER_LEFT = 'PLAYER_LEFT'
PONG = 'PONG'

COLOR_RE = re.compile(r'^#[0-9a-fA-F]{3,8}$')
MAX_COSMETIC_INDEX = 15
MAX_NAME_INPUT = 64
MAX_CODE_INPUT = 12


@dataclass
class Cosmetics:
    c1: Optional[str] = None
    c2: Optional[str] = None
    model: Optional[int] = None
    wheel_style: Optional[int] = None


@dataclass
class CreateServer:
    name: str
    map: Optional[int] = None
    time: Optional[int] = None
    cosmetics: Cosmetics = field(default_factory=Cosmetics)


@dataclass
class JoinServer:
    server_id: str
    name: str
    cosmetics: Cosmetics = field(default_factory=Cosmetics)


@dataclass
class Launch:
    pass


@dataclass
class HostConfig:
    map: Optional[int] = None
    time: Optional[int] = None


@dataclass
class InputUpdate:
    input: Input
    cosmetics: Cosmetics = field(default_factory=Cosmetics)


@dataclass
class Ping:
    pass


@dataclass
class LeaveServer:
    pass


def _require_dict(data, allow_empty=False) -> Dict[str, Any]:
    if data is None and allow_empty:
        return {}
    if not isinstance(data, dict):
        raise ProtocolError('payload must be an object')
    return data


def _optional_int(data: Dict[str, Any], key: str) -> Optional[int]:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ProtocolError(f"{key} must be a number")
    if isinstance(value, float) and not math.isfinite(value):
        raise ProtocolError(f"{key} must be finite")
    return int(value)


def _name(data: Dict[str, Any]) -> str:
    name = data.get('name')
    if not isinstance(name, str) or len(name) > MAX_NAME_INPUT:
        raise ProtocolError('name must be a short string')
    return name


def _color(value) -> Optional[str]:
    if isinstance(value, str) and COLOR_RE.match(value):
        return value
    return None


def _index(value) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    if 0 <= value <= MAX_COSMETIC_INDEX:
        return value
    return None


def _cosmetics(data: Dict[str, Any], model_key='model', wheel_key='wheelStyle') -> Cosmetics:
    # Cosmetics are optional decoration: invalid values are ignored, not fatal
    return Cosmetics(
        c1=_color(data.get('c1')),
        c2=_color(data.get('c2')),
        model=_index(data.get(model_key)),
        wheel_style=_index(data.get(wheel_key)),
    )


def _flag(raw: Dict[str, Any], key: str) -> bool:
    value = raw.get(key, False)
    if value in (True, False, 0, 1, None):
        return bool(value)
    raise ProtocolError(f"input.{key} must be a boolean")


def _parse_create(data) -> CreateServer:
    data = _require_dict(data)
    return CreateServer(
        name=_name(data),
        map=_optional_int(data, 'map'),
        time=_optional_int(data, 'time'),
        cosmetics=_cosmetics(data),
    )


def _parse_join(data) -> JoinServer:
    data = _require_dict(data)
    server_id = data.get('serverId')
    if not isinstance(server_id, str) or not server_id.strip() or len(server_id) > MAX_CODE_INPUT:
        raise ProtocolError('serverId is required')
    return JoinServer(
        server_id=normalize_code(server_id),
        name=_name(data),
        cosmetics=_cosmetics(data),
    )


def _parse_host_config(data) -> HostConfig:
    data = _require_dict(data, allow_empty=True)
    return HostConfig(map=_optional_int(data, 'map'), time=_optional_int(data, 'time'))


def _parse_input(data) -> InputUpdate:
    data = _require_dict(data)
    raw = data.get('i')
    if not isinstance(raw, dict):
        raise ProtocolError('i must be an object')
    inp = Input(
        up=_flag(raw, 'up'),
        down=_flag(raw, 'down'),
        left=_flag(raw, 'left'),
        right=_flag(raw, 'right'),
        boost=_flag(raw, 'boost'),
    )
    return InputUpdate(input=inp, cosmetics=_cosmetics(data, model_key='md', wheel_key='ws'))


def _parse_empty(cls):
    def parse(data):
        if data is not None and not isinstance(data, dict):
            raise ProtocolError('payload must be an object')
        return cls()
    return parse


PARSERS: Dict[str, Callable[[Any], Any]] = {
    CREATE_SERVER: _parse_create,
    JOIN_SERVER: _parse_join,
    LAUNCH: _parse_empty(Launch),
    HOST_CONFIG: _parse_host_config,
    INPUT: _parse_input,
    PING: _parse_empty(Ping),
    LEAVE_SERVER: _parse_empty(LeaveServer),
}

CLIENT_MESSAGES = tuple(PARSERS)


def normalize_code(code: str) -> str:
    return code.strip().upper()


def parse_message(kind: str, data):
    parser = PARSERS.get(kind)
    if parser is None:
        raise ProtocolError(f"unknown message kind: {kind}")
    return parser(data)
