from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from gradeboard.models import DisplayAddress
from gradeboard.services.identity import DeviceIdentityResolver, IdentityResolver, NetworkProbe
from gradeboard.services.network import list_display_addresses
from gradeboard.services.registry import ConnectionRegistry
from gradeboard.services.session import SessionStore

NAMESPACE = '/'
STATE_EVENT = 'state-update'
ERROR_EVENT = 'error-message'


@dataclass(frozen=True)
class Peer:
    device_id: str
    address: str


class SocketIOChannel:
    """A single Socket.IO connection seen through the registry's Channel interface."""

    def __init__(self, socketio, sid: str, namespace: str = NAMESPACE):
        self.socketio = socketio
        self.id = sid
        self.namespace = namespace

    def send(self, event: str, payload: Any) -> None:
        self.socketio.emit(event, payload, to=self.id, namespace=self.namespace)

    def force_close(self) -> None:
        self.socketio.server.disconnect(self.id, namespace=self.namespace)


class GradingRoom:
    """Owns the one grading room served by an app.

    Holds the session store, the connection registry, the identity resolver
    and the display-address provider. Handlers and routes read and change
    the session only through this object.
    """

    def __init__(self, app=None, socketio=None):
        self.socketio = socketio
        self.store: Optional[SessionStore] = None
        self.registry: Optional[ConnectionRegistry] = None
        self.resolver: Optional[IdentityResolver] = None
        self.address_provider: Optional[Callable[[], List[DisplayAddress]]] = None
        self.peers: Dict[str, Peer] = {}  # sid -> resolved peer
        if app is not None:
            self.init_app(app, socketio)

    def init_app(self, app, socketio=None):
        if socketio is not None:
            self.socketio = socketio
        port = int(app.config.get('PORT', 3000))
        self.store = SessionStore(
            publish=self.publish_state,
            default_name=app.config.get('SESSION_DEFAULT_NAME', 'Classroom Session'),
        )
        self.registry = ConnectionRegistry()
        self.peers = {}
        self.resolver = DeviceIdentityResolver(NetworkProbe(
            timeout_ms=int(app.config.get('PROBE_TIMEOUT_MS', 200)),
            query_timeout_sec=float(app.config.get('NEIGHBOR_QUERY_TIMEOUT_SEC', 2)),
        ))
        self.address_provider = lambda: list_display_addresses(port)
        self.store.refresh_addresses(self.address_provider())
        app.extensions['gradeboard'] = self

    def publish_state(self, snapshot):
        if self.socketio is not None:
            self.socketio.emit(STATE_EVENT, snapshot, namespace=NAMESPACE)

    def channel(self, sid: str) -> SocketIOChannel:
        return SocketIOChannel(self.socketio, sid)

    def refresh_addresses(self):
        self.store.refresh_addresses(self.address_provider())
