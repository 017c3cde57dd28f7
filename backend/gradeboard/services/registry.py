import logging
import threading
from typing import Any, Dict, Optional, Protocol

logger = logging.getLogger(__name__)

SUPERSEDED_EVENT = 'force-disconnect'
SUPERSEDED_MESSAGE = 'New connection from this device detected.'


class Channel(Protocol):
    """One live connection to a device."""
    id: str

    def send(self, event: str, payload: Any) -> None: ...

    def force_close(self) -> None: ...


class ConnectionRegistry:
    """Tracks the single active channel per device id.

    A device that reconnects takes the session over: the previous channel is
    told it was superseded and closed, then forgotten.
    """

    def __init__(self):
        self._channels: Dict[str, Channel] = {}
        self._lock = threading.Lock()

    def register(self, device_id: str, channel: Channel) -> Optional[Channel]:
        with self._lock:
            previous = self._channels.get(device_id)
            self._channels[device_id] = channel
        if previous is None or previous.id == channel.id:
            return None
        # Outside the lock: closing may re-enter unregister() from a disconnect handler
        logger.info(f"[evict] device={device_id} old={previous.id} new={channel.id}")
        try:
            previous.send(SUPERSEDED_EVENT, {'message': SUPERSEDED_MESSAGE})
            previous.force_close()
        except Exception as exc:
            logger.warning(f"[evict] closing {previous.id} failed: {exc}")
        return previous

    def unregister(self, device_id: str, channel_id: str) -> bool:
        with self._lock:
            current = self._channels.get(device_id)
            if current is None or current.id != channel_id:
                return False
            del self._channels[device_id]
            return True

    def channel_for(self, device_id: str) -> Optional[Channel]:
        with self._lock:
            return self._channels.get(device_id)

    def __len__(self):
        with self._lock:
            return len(self._channels)
