import subprocess

import pytest

from gradeboard.models import IdType
from gradeboard.services.identity import (
    DeviceIdentityResolver, NetworkProbe, find_mac, normalize_address,
)


class RecordingProbe:
    def __init__(self, table=None, reachable=True):
        self.table = table
        self.reachable = reachable
        self.pinged = []
        self.queried = []

    def ping(self, address):
        self.pinged.append(address)
        return self.reachable

    def neighbor_table(self, address):
        self.queried.append(address)
        return self.table


@pytest.mark.parametrize('address', ['127.0.0.1', '::1', 'localhost', '::ffff:127.0.0.1'])
def test_loopback_resolves_to_localhost_without_probing(address):
    probe = RecordingProbe(table='aa:bb:cc:dd:ee:ff')
    identity = DeviceIdentityResolver(probe).resolve(address)
    assert identity.device_id == 'LOCALHOST'
    assert identity.id_type == IdType.LOCALHOST
    assert probe.pinged == [] and probe.queried == []


def test_mac_from_linux_arp_output_is_uppercased():
    out = ('Address                  HWtype  HWaddress           Flags Mask            Iface\n'
           '192.168.1.23             ether   3c:22:fb:0a:1b:9e   C                     wlan0\n')
    probe = RecordingProbe(table=out)
    identity = DeviceIdentityResolver(probe).resolve('::ffff:192.168.1.23')
    assert identity.device_id == '3C:22:FB:0A:1B:9E'
    assert identity.id_type == IdType.MAC
    # Ping goes first to populate the cache
    assert probe.pinged == ['192.168.1.23']
    assert probe.queried == ['192.168.1.23']


def test_mac_from_windows_arp_output():
    out = ('Interface: 192.168.1.5 --- 0x7\n'
           '  Internet Address      Physical Address      Type\n'
           '  192.168.1.23          3c-22-fb-0a-1b-9e     dynamic\n')
    identity = DeviceIdentityResolver(RecordingProbe(table=out)).resolve('192.168.1.23')
    assert identity.device_id == '3C-22-FB-0A-1B-9E'


def test_unreachable_peer_still_checks_cache():
    probe = RecordingProbe(table='192.168.1.9 ether aa:bb:cc:00:11:22 C eth0', reachable=False)
    identity = DeviceIdentityResolver(probe).resolve('192.168.1.9')
    assert identity.id_type == IdType.MAC


@pytest.mark.parametrize('table', [None, '', '? (192.168.1.40) at <incomplete> on en0'])
def test_falls_back_to_ip_when_no_mac(table):
    identity = DeviceIdentityResolver(RecordingProbe(table=table)).resolve('192.168.1.40')
    assert identity.device_id == '192.168.1.40'
    assert identity.id_type == IdType.IP


def test_non_ip_address_is_never_probed():
    probe = RecordingProbe(table='aa:bb:cc:dd:ee:ff')
    identity = DeviceIdentityResolver(probe).resolve('1.2.3.4; rm -rf /')
    assert identity.id_type == IdType.IP
    assert probe.pinged == [] and probe.queried == []


def test_find_mac_and_normalize_address():
    assert find_mac('no mac here') is None
    assert find_mac(None) is None
    assert normalize_address('::ffff:10.0.0.2') == '10.0.0.2'
    assert normalize_address(None) == ''


def test_network_probe_commands_per_platform():
    assert NetworkProbe(platform='win32')._ping_command('10.0.0.2') == ['ping', '-n', '1', '-w', '200', '10.0.0.2']
    assert NetworkProbe(platform='linux')._ping_command('10.0.0.2') == ['ping', '-c', '1', '-W', '1', '10.0.0.2']
    assert NetworkProbe(platform='win32')._neighbor_commands('10.0.0.2') == [['arp', '-a', '10.0.0.2']]
    assert NetworkProbe(platform='linux')._neighbor_commands('10.0.0.2')[0] == ['arp', '-n', '10.0.0.2']


def test_network_probe_swallows_timeouts(monkeypatch):
    def fake_run(cmd, **kwargs):
        raise subprocess.TimeoutExpired(cmd, kwargs.get('timeout'))

    monkeypatch.setattr(subprocess, 'run', fake_run)
    probe = NetworkProbe(platform='linux')
    assert probe.ping('10.0.0.2') is False
    assert probe.neighbor_table('10.0.0.2') is None


def test_network_probe_tries_ip_neigh_when_arp_missing(monkeypatch):
    calls = []

    def fake_run(cmd, **kwargs):
        calls.append(cmd[0])
        if cmd[0] == 'arp':
            raise FileNotFoundError('arp')
        return subprocess.CompletedProcess(cmd, 0, stdout='10.0.0.2 dev eth0 lladdr 00:11:22:33:44:55 REACHABLE\n')

    monkeypatch.setattr(subprocess, 'run', fake_run)
    table = NetworkProbe(platform='linux').neighbor_table('10.0.0.2')
    assert calls == ['arp', 'ip']
    assert find_mac(table) == '00:11:22:33:44:55'
