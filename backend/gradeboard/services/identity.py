"""Best-effort device identity for connecting peers.

A peer is identified by its hardware (MAC) address when the host's neighbour
cache knows it, otherwise by its network address. This is not authentication:
IP/MAC spoofing, routed (non-LAN) peers and MAC randomisation all defeat it.
"""
import ipaddress
import logging
import math
import re
import subprocess
import sys
from typing import Optional, Protocol

from gradeboard.models import DeviceIdentity, IdType

logger = logging.getLogger(__name__)

LOCALHOST_ID = 'LOCALHOST'
_LOOPBACK_ADDRESSES = {'127.0.0.1', '::1', 'localhost'}
_MAPPED_IPV4_PREFIX = '::ffff:'
_MAC_RE = re.compile(r'([0-9a-fA-F]{2}[:-]){5}[0-9a-fA-F]{2}')


class IdentityResolver(Protocol):
    def resolve(self, address: str) -> DeviceIdentity: ...


def normalize_address(address: Optional[str]) -> str:
    address = (address or '').strip()
    if address.lower().startswith(_MAPPED_IPV4_PREFIX):
        address = address[len(_MAPPED_IPV4_PREFIX):]
    return address


def find_mac(text: Optional[str]) -> Optional[str]:
    if not text:
        return None
    match = _MAC_RE.search(text)
    return match.group(0).upper() if match else None


class NetworkProbe:
    """Runs the platform ping and neighbour-cache commands for one address."""

    def __init__(self, timeout_ms: int = 200, query_timeout_sec: float = 2.0, platform: str = sys.platform):
        self.timeout_ms = timeout_ms
        self.query_timeout_sec = query_timeout_sec
        self.platform = platform

    def _ping_command(self, address: str):
        if self.platform.startswith('win'):
            return ['ping', '-n', '1', '-w', str(self.timeout_ms), address]
        if self.platform == 'darwin':
            # -W is milliseconds on macOS
            return ['ping', '-c', '1', '-W', str(self.timeout_ms), address]
        return ['ping', '-c', '1', '-W', str(max(1, math.ceil(self.timeout_ms / 1000))), address]

    def _neighbor_commands(self, address: str):
        if self.platform.startswith('win'):
            return [['arp', '-a', address]]
        return [['arp', '-n', address], ['ip', 'neigh', 'show', address]]

    def ping(self, address: str) -> bool:
        try:
            result = subprocess.run(
                self._ping_command(address),
                capture_output=True, text=True, timeout=self.timeout_ms / 1000.0
            )
        except (OSError, subprocess.SubprocessError) as exc:
            logger.debug(f"[probe] ping {address} failed: {exc}")
            return False
        return result.returncode == 0

    def neighbor_table(self, address: str) -> Optional[str]:
        for cmd in self._neighbor_commands(address):
            try:
                result = subprocess.run(cmd, capture_output=True, text=True, timeout=self.query_timeout_sec)
            except FileNotFoundError:
                continue
            except (OSError, subprocess.SubprocessError) as exc:
                logger.debug(f"[probe] {cmd[0]} {address} failed: {exc}")
                return None
            if result.returncode == 0:
                return result.stdout
        return None


class DeviceIdentityResolver:
    """Resolve a transport address to a :class:`DeviceIdentity`.

    Loopback addresses short-circuit to ``LOCALHOST`` without touching the
    probe. Anything else is pinged once (to populate the ARP cache, result
    ignored) and then looked up in the neighbour cache; when no MAC is found
    the address itself becomes the identity.
    """

    def __init__(self, probe: Optional[NetworkProbe] = None):
        self.probe = probe or NetworkProbe()

    def resolve(self, address: str) -> DeviceIdentity:
        address = normalize_address(address)
        if address in _LOOPBACK_ADDRESSES:
            return DeviceIdentity(LOCALHOST_ID, IdType.LOCALHOST)

        try:
            ipaddress.ip_address(address)
        except ValueError:
            # Never hand an arbitrary string to a subprocess
            return DeviceIdentity(address, IdType.IP)

        self.probe.ping(address)
        mac = find_mac(self.probe.neighbor_table(address))
        if mac:
            return DeviceIdentity(mac, IdType.MAC)
        logger.debug(f"[identity] no MAC for {address}, falling back to IP")
        return DeviceIdentity(address, IdType.IP)
