"""A snapshot of the system's routing table and neighbour (ARP/NDP) cache."""

from __future__ import annotations

import ipaddress
import logging
import string
import subprocess
import sys
from dataclasses import dataclass, field
from typing import Iterator, Optional, Union

from .route import DefaultRoute, NetworkInterface, RouteTable

log = logging.getLogger(__name__)

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]
AddressLike = Union[str, int, ipaddress.IPv4Address, ipaddress.IPv6Address]

_BSD_PLATFORMS = ("darwin", "freebsd", "openbsd", "netbsd")


def _address(value: AddressLike) -> IPAddress:
    if isinstance(value, (ipaddress.IPv4Address, ipaddress.IPv6Address)):
        return value
    return ipaddress.ip_address(value)


def _parse_mac(text: str) -> str:
    """Normalise a hardware address to lower-case, colon-separated form."""
    parts = text.replace("-", ":").split(":")
    if len(parts) != 6 or not all(
        1 <= len(p) <= 2 and all(c in string.hexdigits for c in p) for p in parts
    ):
        raise ValueError(f"invalid MAC address: {text!r}")
    return ":".join(f"{int(p, 16):02x}" for p in parts)


def _strip_scope(text: str) -> str:
    parts = [p.strip() for p in text.split("%") if p.strip()]
    return parts[0] if parts else text


def _lines(output: str) -> Iterator[list[str]]:
    for line in output.splitlines():
        tokens = line.split()
        if tokens:
            yield tokens


def _run(*command: str) -> str:
    try:
        completed = subprocess.run(command, capture_output=True, check=False)
    except FileNotFoundError:
        log.warning("command not found: %s", command[0])
        return ""
    return completed.stdout.decode("utf-8", errors="replace")


@dataclass
class SystemCache:
    """Routes and neighbour hardware addresses known to the system."""

    route_table: RouteTable = field(default_factory=RouteTable)
    neighbor_cache: dict[IPAddress, str] = field(default_factory=dict)

    @staticmethod
    def parse_neighbors_linux(output: str) -> dict[IPAddress, str]:
        """Parse ``ip neigh show`` lines such as ``192.0.2.1 dev eth0 lladdr ... STALE``."""
        cache: dict[IPAddress, str] = {}
        for tokens in _lines(output):
            try:
                addr = ipaddress.ip_address(tokens[0])
            except ValueError as exc:
                log.warning("neighbor cache parse ip error: %s", exc)
                continue
            iterator = iter(tokens)
            for item in iterator:
                if item != "lladdr":
                    continue
                value = next(iterator, None)
                if value is None:
                    break
                try:
                    cache[addr] = _parse_mac(value)
                    break
                except ValueError as exc:
                    log.warning("neighbor cache parse mac error: %s", exc)
        return cache

    @staticmethod
    def parse_neighbors_bsd(output: str) -> dict[IPAddress, str]:
        """Parse ``arp -a`` and ``ndp -a`` output.

        A malformed ``arp -a`` line raises ValueError; bad ``ndp`` lines are skipped.
        """
        cache: dict[IPAddress, str] = {}
        for tokens in _lines(output):
            if len(tokens) <= 3:
                continue
            if "?" in tokens[0]:
                addr = ipaddress.ip_address(tokens[1].replace("(", "").replace(")", ""))
                cache[addr] = _parse_mac(tokens[3])
            elif ":" in tokens[0]:
                try:
                    addr = ipaddress.ip_address(_strip_scope(tokens[0]))
                except ValueError as exc:
                    log.warning("neighbor cache parse ip error: %s", exc)
                    continue
                try:
                    cache[addr] = _parse_mac(tokens[1])
                except ValueError as exc:
                    log.warning("neighbor cache parse mac error: %s", exc)
        return cache

    @staticmethod
    def parse_neighbors_windows(output: str) -> dict[IPAddress, str]:
        """Parse ``Get-NetNeighbor`` rows: index, address, link-layer address, state, store."""
        cache: dict[IPAddress, str] = {}
        for tokens in _lines(output):
            if len(tokens) <= 4:
                continue
            try:
                addr = ipaddress.ip_address(tokens[1])
            except ValueError as exc:
                log.warning("neighbor cache parse ip error: %s", exc)
                continue
            try:
                cache[addr] = _parse_mac(tokens[2])
            except ValueError as exc:
                log.warning("neighbor cache parse mac error: %s", exc)
        return cache

    @classmethod
    def neighbor_cache_init(cls) -> dict[IPAddress, str]:
        """Read the neighbour cache of the running system."""
        if sys.platform.startswith("linux"):
            return cls.parse_neighbors_linux(_run("ip", "neigh", "show"))
        if sys.platform.startswith(_BSD_PLATFORMS):
            return cls.parse_neighbors_bsd(_run("arp", "-a") + _run("ndp", "-a"))
        if sys.platform.startswith("win"):
            return cls.parse_neighbors_windows(_run("powershell", "Get-NetNeighbor"))
        raise OSError(f"reading the neighbor cache is not supported on {sys.platform}")

    @classmethod
    def init(cls) -> "SystemCache":
        """Snapshot the routing table and the neighbour cache."""
        route_table = RouteTable.init()
        log.debug("route table done")
        neighbor_cache = cls.neighbor_cache_init()
        log.debug("neighbor cache done")
        return cls(route_table, neighbor_cache)

    def search_mac(self, ipaddr: AddressLike) -> Optional[str]:
        """The cached hardware address of ``ipaddr``, or None."""
        return self.neighbor_cache.get(_address(ipaddr))

    def update_neighbor_cache(self, ipaddr: AddressLike, mac: str) -> None:
        """Record the hardware address of ``ipaddr``."""
        self.neighbor_cache[_address(ipaddr)] = _parse_mac(mac)

    def search_route(self, ipaddr: AddressLike) -> Optional[NetworkInterface]:
        """The interface of the first route whose network holds ``ipaddr``, or None."""
        addr = _address(ipaddr)
        log.debug("search route: %s", addr)
        for route in self.route_table.routes:
            if addr in route.dst:
                log.debug(
                    "found route interface: %s, ip: %s, ipn: %s", route.dev.name, addr, route.dst
                )
                return route.dev
        return None

    def default_ipv4_route(self) -> Optional[DefaultRoute]:
        """The default IPv4 route, if there is one."""
        return self.route_table.default_ipv4_route

    def default_ipv6_route(self) -> Optional[DefaultRoute]:
        """The default IPv6 route, if there is one."""
        return self.route_table.default_ipv6_route