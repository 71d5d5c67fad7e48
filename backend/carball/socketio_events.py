from flask import current_app, request
from carball import socketio, registry, hub
from carball.errors import CarballError, ProtocolError
from carball import protocol
from carball.services.match import lobby

NAMESPACE = '/ws'


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def handle_connect(auth=None):
    hub.open(_get_sid())


def handle_disconnect(reason=None):
    sid = _get_sid()
    try:
        lobby.leave_server(sid)
    finally:
        hub.close(sid)


def _dispatch(kind: str, data) -> None:
    sid = _get_sid()
    try:
        msg = protocol.parse_message(kind, data)
    except ProtocolError as exc:
        # Malformed input is dropped; the connection stays open
        registry.count_dropped(kind)
        current_app.logger.debug(f"[drop] sid={sid} kind={kind} reason={exc.message}")
        return

    try:
        if kind == protocol.CREATE_SERVER:
            lobby.create_server(sid, msg)
        elif kind == protocol.JOIN_SERVER:
            lobby.join_server(sid, msg)
        elif kind == protocol.LAUNCH:
            lobby.launch(sid)
        elif kind == protocol.HOST_CONFIG:
            lobby.host_config(sid, msg)
        elif kind == protocol.INPUT:
            lobby.update_input(sid, msg)
        elif kind == protocol.PING:
            lobby.ping(sid)
        elif kind == protocol.LEAVE_SERVER:
            lobby.leave_server(sid)
    except CarballError as exc:
        current_app.logger.info(f"[reject] sid={sid} kind={kind} code={exc.code}")
        hub.send(sid, protocol.ERROR, exc.to_dict())


def _make_handler(kind: str):
    def handler(data=None):
        _dispatch(kind, data)
    handler.__name__ = f"handle_{kind.lower()}"
    return handler


def register_socketio_handlers(namespace: str = NAMESPACE) -> None:
    """Register Socket.IO event handlers: one event per client message kind."""
    socketio.on_event('connect', handle_connect, namespace=namespace)
    socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
    for kind in protocol.CLIENT_MESSAGES:
        socketio.on_event(kind, _make_handler(kind), namespace=namespace)
