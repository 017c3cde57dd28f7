import logging
import socket
from typing import List

from gradeboard.models import DisplayAddress

logger = logging.getLogger(__name__)


def _route_address() -> str:
    # UDP connect sends nothing; it only asks the kernel which interface routes outward
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        sock.connect(('8.8.8.8', 80))
        return sock.getsockname()[0]
    finally:
        sock.close()


def _host_addresses() -> List[str]:
    infos = socket.getaddrinfo(socket.gethostname(), None, socket.AF_INET)
    return [info[4][0] for info in infos]


def list_display_addresses(port: int) -> List[DisplayAddress]:
    """LAN URLs the host can show to participants, localhost if none found."""
    found = []
    try:
        found.append(('Primary LAN', _route_address()))
    except OSError as exc:
        logger.debug(f"[network] no outbound route: {exc}")
    try:
        found.extend(('Host Address', addr) for addr in _host_addresses())
    except OSError as exc:
        logger.debug(f"[network] hostname lookup failed: {exc}")

    results = []
    seen = set()
    for name, addr in found:
        if addr in seen or addr.startswith('127.') or addr == '0.0.0.0':
            continue
        seen.add(addr)
        results.append(DisplayAddress(name=name, address=addr, url=f'http://{addr}:{port}'))
    if not results:
        return [DisplayAddress(name='Localhost Only', address='localhost', url=f'http://localhost:{port}')]
    return results
