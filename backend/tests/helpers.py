from carball.models import Player, Room
from carball.services.match.broadcast import ConnectionHub


class RecordingHub(ConnectionHub):
    """Hub that records deliveries instead of emitting on a socket."""

    def __init__(self):
        super().__init__()
        self.async_delivery = False
        self.sent = []

    def _emit(self, sid, event, payload):
        self.sent.append((sid, event, payload))

    def named(self, event, sid=None):
        return [p for s, e, p in self.sent if e == event and (sid is None or s == sid)]


def make_room(*names, code='TEST'):
    room = Room(code)
    for idx, name in enumerate(names):
        room.add_player(Player(f"p{idx}", f"sid{idx}", name, room.next_team()))
    return room


def events(test_client, name=None):
    """Received packets on /ws, optionally filtered by event name."""
    received = test_client.get_received('/ws')
    if name is None:
        return received
    return [pkt['args'][0] if pkt['args'] else None for pkt in received if pkt['name'] == name]
