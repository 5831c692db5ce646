import ipaddress
import subprocess
from unittest import mock

import pytest

from probekit.cache import SystemCache
from probekit.route import DefaultRoute, NetworkInterface, Route, RouteTable

ip = ipaddress.ip_address

LINUX_NEIGH = """\
192.168.72.2 dev ens33 lladdr 02:00:00:00:00:01 STALE
192.168.1.1 dev ens36 lladdr 02:00:00:00:00:02 REACHABLE
fe80::1 dev ens36 lladdr 02:00:00:00:00:03 router STALE
192.168.1.9 dev ens36 FAILED
notanip dev ens36 lladdr 02:00:00:00:00:04 STALE
"""

BSD_NEIGH = """\
? (192.168.72.1) at 02:00:00:00:00:05 on em0 expires in 1139 seconds [ethernet]
? (192.168.72.129) at 02:00:00:00:00:06 on em0 permanent [ethernet]
Neighbor                             Linklayer Address  Netif Expire    1s 5s
fe80::20c:29ff:fe88:20d2%em0         02:00:00:00:00:07    em0 permanent R
"""


def _completed(stdout):
    return subprocess.CompletedProcess(args=[], returncode=0, stdout=stdout.encode())


def test_parse_neighbors_linux():
    cache = SystemCache.parse_neighbors_linux(LINUX_NEIGH)
    assert cache == {
        ip("192.168.72.2"): "02:00:00:00:00:01",
        ip("192.168.1.1"): "02:00:00:00:00:02",
        ip("fe80::1"): "02:00:00:00:00:03",
    }


def test_parse_neighbors_linux_skips_bad_mac():
    cache = SystemCache.parse_neighbors_linux("10.0.0.1 dev eth0 lladdr zz STALE\n")
    assert cache == {}


def test_parse_neighbors_bsd():
    cache = SystemCache.parse_neighbors_bsd(BSD_NEIGH)
    assert cache == {
        ip("192.168.72.1"): "02:00:00:00:00:05",
        ip("192.168.72.129"): "02:00:00:00:00:06",
        ip("fe80::20c:29ff:fe88:20d2"): "02:00:00:00:00:07",
    }


def test_parse_neighbors_bsd_bad_arp_line_raises():
    with pytest.raises(ValueError):
        SystemCache.parse_neighbors_bsd("? (bogus) at 02:00:00:00:00:05 on em0\n")


def test_parse_neighbors_windows_normalises_mac():
    output = (
        "ifIndex IPAddress LinkLayerAddress State PolicyStore\n"
        "------- --------- ---------------- ----- -----------\n"
        "12 192.168.1.1 02-00-00-00-00-0A Reachable ActiveStore\n"
    )
    assert SystemCache.parse_neighbors_windows(output) == {
        ip("192.168.1.1"): "02:00:00:00:00:0a"
    }


def test_neighbor_cache_init_linux():
    with mock.patch("sys.platform", "linux"), mock.patch(
        "probekit.cache.subprocess.run", return_value=_completed(LINUX_NEIGH)
    ) as run:
        cache = SystemCache.neighbor_cache_init()
    assert cache == SystemCache.parse_neighbors_linux(LINUX_NEIGH)
    assert run.call_count == 1


def test_neighbor_cache_init_unsupported_platform():
    with mock.patch("sys.platform", "plan9"):
        with pytest.raises(OSError):
            SystemCache.neighbor_cache_init()


def test_update_and_search_mac():
    cache = SystemCache()
    assert cache.search_mac("10.0.0.1") is None
    cache.update_neighbor_cache("10.0.0.1", "02:00:00:00:00:01")
    assert cache.search_mac(ip("10.0.0.1")) == "02:00:00:00:00:01"


def test_update_rejects_bad_mac():
    cache = SystemCache()
    with pytest.raises(ValueError):
        cache.update_neighbor_cache("10.0.0.1", "not-a-mac")


def test_search_route():
    eth1 = NetworkInterface("eth1", 2)
    eth2 = NetworkInterface("eth2", 3)
    table = RouteTable(
        routes=[
            Route(ipaddress.ip_network("192.168.1.0/24"), eth1),
            Route(ipaddress.ip_network("fe80::/64"), eth2),
        ]
    )
    cache = SystemCache(route_table=table)
    assert cache.search_route("192.168.1.77") == eth1
    assert cache.search_route("fe80::20c:29ff:feb6:8d99") == eth2
    assert cache.search_route("10.1.1.1") is None


def test_ipv6_network_containment_cases():
    dev = NetworkInterface("em0")
    addr = "fe80::20c:29ff:feb6:8d99"
    assert SystemCache(RouteTable(routes=[Route(ipaddress.ip_network("fe80::/64"), dev)])).search_route(addr) == dev
    assert SystemCache(RouteTable(routes=[Route(ipaddress.ip_network("::/96"), dev)])).search_route(addr) is None


def test_default_routes():
    dev = NetworkInterface("eth0")
    v4 = DefaultRoute(ip("192.168.72.2"), dev)
    v6 = DefaultRoute(ip("fe80::1"), dev)
    cache = SystemCache(RouteTable(default_ipv4_route=v4, default_ipv6_route=v6))
    assert cache.default_ipv4_route() == v4
    assert cache.default_ipv6_route() == v6
    assert SystemCache().default_ipv4_route() is None