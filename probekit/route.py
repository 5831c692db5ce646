"""Routing table and network interface discovery.

Routes are read from the output of the system's own tools (``ip route``
on Linux, ``netstat -rn`` on the BSDs and macOS, ``Get-NetRoute`` on
Windows). Interfaces come from psutil.
"""

from __future__ import annotations

import ipaddress
import logging
import socket
import subprocess
import sys
from dataclasses import dataclass, field
from typing import Iterator, Optional, Union

import psutil

log = logging.getLogger(__name__)

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]
IPNetwork = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]
IPInterface = Union[ipaddress.IPv4Interface, ipaddress.IPv6Interface]
AddressLike = Union[str, int, ipaddress.IPv4Address, ipaddress.IPv6Address]

_BSD_PLATFORMS = ("darwin", "freebsd", "openbsd", "netbsd")


class InvalidRouteFormat(ValueError):
    """A routing table line that does not describe a usable route."""

    def __init__(self, line: str) -> None:
        super().__init__(f"invalid route format: {line}")
        self.line = line


@dataclass(frozen=True)
class NetworkInterface:
    """A network interface with its index, hardware address and IP addresses."""

    name: str
    index: int = 0
    mac: Optional[str] = None
    ips: tuple[IPInterface, ...] = field(default_factory=tuple)


def _address(value: AddressLike) -> IPAddress:
    if isinstance(value, (ipaddress.IPv4Address, ipaddress.IPv6Address)):
        return value
    return ipaddress.ip_address(value)


def _prefix_length(netmask: Optional[str], max_length: int) -> int:
    if not netmask:
        return max_length
    try:
        mask = int(ipaddress.ip_address(netmask.split("%")[0]))
    except ValueError:
        return max_length
    return bin(mask).count("1")


def _interface_indexes() -> dict[str, int]:
    try:
        return {name: index for index, name in socket.if_nameindex()}
    except (AttributeError, OSError):
        return {}


def _interfaces() -> Iterator[NetworkInterface]:
    indexes = _interface_indexes()
    for name, addrs in psutil.net_if_addrs().items():
        mac = None
        ips: list[IPInterface] = []
        for addr in addrs:
            if addr.family == psutil.AF_LINK:
                mac = addr.address.replace("-", ":").lower()
            elif addr.family in (socket.AF_INET, socket.AF_INET6):
                host = addr.address.split("%")[0]
                max_length = 32 if addr.family == socket.AF_INET else 128
                prefix = _prefix_length(addr.netmask, max_length)
                try:
                    ips.append(ipaddress.ip_interface(f"{host}/{prefix}"))
                except ValueError:
                    log.debug("skipping address %s on %s", addr.address, name)
        yield NetworkInterface(name, indexes.get(name, 0), mac, tuple(ips))


def find_interface_by_name(name: str) -> Optional[NetworkInterface]:
    """The interface called ``name``, or None."""
    return next((i for i in _interfaces() if i.name == name), None)


def find_interface_by_index(index: int) -> Optional[NetworkInterface]:
    """The interface with system index ``index``, or None."""
    return next((i for i in _interfaces() if i.index == index), None)


def find_interface_by_subnetwork(addr: AddressLike) -> Optional[NetworkInterface]:
    """The first interface with a subnet that contains ``addr``, or None."""
    target = _address(addr)
    for interface in _interfaces():
        if any(
            ip.version == target.version and target in ip.network for ip in interface.ips
        ):
            return interface
    return None


def _strip_scope(text: str) -> str:
    parts = [p.strip() for p in text.split("%") if p.strip()]
    return parts[0] if parts else text


@dataclass(frozen=True)
class DefaultRoute:
    """The next-hop gateway and the interface that reaches it."""

    via: IPAddress
    dev: NetworkInterface

    @property
    def is_ipv4(self) -> bool:
        return self.via.version == 4

    @classmethod
    def parse_linux(cls, line: str) -> "DefaultRoute":
        """Parse ``default via 192.0.2.1 dev eth0 ...`` from ``ip route``."""
        via: Optional[IPAddress] = None
        dev: Optional[NetworkInterface] = None
        tokens = iter(line.split())
        for item in tokens:
            if item in ("via", "dev"):
                value = next(tokens, None)
                if value is None:
                    raise InvalidRouteFormat(line)
                if item == "via":
                    log.debug("default route parse: %s", value)
                    via = ipaddress.ip_address(value)
                else:
                    dev = find_interface_by_name(value)
        if via is None or dev is None:
            raise InvalidRouteFormat(line)
        return cls(via, dev)

    @classmethod
    def parse_bsd(cls, line: str) -> "DefaultRoute":
        """Parse ``default 192.0.2.1 UGS em0`` from ``netstat -rn``."""
        tokens = line.split()
        if len(tokens) < 2:
            raise InvalidRouteFormat(line)
        log.debug("default route parse (unix): %s", tokens[1])
        via = ipaddress.ip_address(_strip_scope(tokens[1]))
        dev = find_interface_by_subnetwork(via)
        if dev is None:
            raise InvalidRouteFormat(line)
        return cls(via, dev)

    @classmethod
    def parse_windows(cls, line: str) -> "DefaultRoute":
        """Parse a ``Get-NetRoute`` line whose next hop is the gateway."""
        tokens = line.split()
        if len(tokens) > 5:
            log.debug("default route parse (windows): %s", tokens[2])
            via = ipaddress.ip_address(tokens[2])
            dev = find_interface_by_index(int(tokens[0]))
            if dev is not None:
                return cls(via, dev)
        raise InvalidRouteFormat(line)


@dataclass(frozen=True)
class Route:
    """A destination network and the interface it is reached through."""

    dst: IPNetwork
    dev: NetworkInterface

    @classmethod
    def parse_linux(cls, line: str) -> "Route":
        """Parse ``192.0.2.0/24 dev eth0 proto kernel ...`` from ``ip route``."""
        tokens = line.split()
        if not tokens:
            raise InvalidRouteFormat(line)
        dst = ipaddress.ip_network(tokens[0], strict=False)
        dev: Optional[NetworkInterface] = None
        iterator = iter(tokens)
        for item in iterator:
            if item == "dev":
                value = next(iterator, None)
                if value is None:
                    raise InvalidRouteFormat(line)
                dev = find_interface_by_name(value)
        if dev is None:
            raise InvalidRouteFormat(line)
        return cls(dst, dev)

    @classmethod
    def parse_bsd(cls, line: str) -> "Route":
        """Parse ``127.0.0.1  link#2  UH  lo0`` from ``netstat -rn``."""
        tokens = line.split()
        if len(tokens) < 4:
            raise InvalidRouteFormat(line)
        dst = tokens[0]
        if "%" in dst:
            parts = [p.strip() for p in dst.split("%") if p.strip()]
            text = parts[0]
            if len(parts) > 1 and "/" in parts[1]:
                prefix = [p.strip() for p in parts[1].split("/") if p.strip()]
                if len(prefix) < 2:
                    raise InvalidRouteFormat(line)
                text += "/" + prefix[1]
            dst = text
        network = ipaddress.ip_network(dst, strict=False)
        dev = find_interface_by_name(tokens[3])
        if dev is None:
            raise InvalidRouteFormat(line)
        return cls(network, dev)

    @classmethod
    def parse_windows(cls, line: str) -> "Route":
        """Parse ``10 fe80::/64 :: 256 25 ActiveStore`` from ``Get-NetRoute``."""
        tokens = line.split()
        if len(tokens) > 5:
            index = int(tokens[0])
            dst = ipaddress.ip_network(tokens[1], strict=False)
            dev = find_interface_by_index(index)
            if dev is not None:
                return cls(dst, dev)
        raise InvalidRouteFormat(line)


def _lines(output: str) -> Iterator[str]:
    return (line.strip() for line in output.splitlines() if line.strip())


@dataclass
class RouteTable:
    """The default IPv4 and IPv6 routes and every other route."""

    default_ipv4_route: Optional[DefaultRoute] = None
    default_ipv6_route: Optional[DefaultRoute] = None
    routes: list[Route] = field(default_factory=list)

    def _set_default(self, route: DefaultRoute) -> None:
        if route.is_ipv4:
            self.default_ipv4_route = route
        else:
            self.default_ipv6_route = route

    @classmethod
    def from_linux_output(cls, output: str) -> "RouteTable":
        """Build a table from ``ip -4 route`` and ``ip -6 route`` output."""
        table = cls()
        for line in _lines(output):
            if line.split()[0] == "default":
                try:
                    table._set_default(DefaultRoute.parse_linux(line))
                except ValueError as exc:
                    log.warning("default route parse error: %s", exc)
            else:
                try:
                    table.routes.append(Route.parse_linux(line))
                except ValueError as exc:
                    log.warning("route parse error: %s", exc)
        return table

    @classmethod
    def from_bsd_output(cls, output: str) -> "RouteTable":
        """Build a table from ``netstat -rn`` output."""
        table = cls()
        for line in _lines(output):
            tokens = line.split()
            dst = tokens[0]
            if dst == "default":
                try:
                    table._set_default(DefaultRoute.parse_bsd(line))
                except ValueError as exc:
                    log.warning("default route parse error: %s", exc)
            elif len(tokens) >= 4 and ("." in dst or ":" in dst):
                try:
                    table.routes.append(Route.parse_bsd(line))
                except ValueError as exc:
                    log.warning("route parse error: %s", exc)
        return table

    @classmethod
    def from_windows_output(cls, output: str) -> "RouteTable":
        """Build a table from ``Get-NetRoute`` output.

        A malformed default route line raises; other bad lines are skipped.
        """
        table = cls()
        for line in _lines(output):
            try:
                table.routes.append(Route.parse_windows(line))
            except ValueError as exc:
                log.warning("route parse error: %s", exc)
            if "::/0" in line:
                table.default_ipv6_route = DefaultRoute.parse_windows(line)
            elif "0.0.0.0/0" in line:
                table.default_ipv4_route = DefaultRoute.parse_windows(line)
        return table

    @classmethod
    def init(cls) -> "RouteTable":
        """Read the routing table of the running system."""
        if sys.platform.startswith("linux"):
            output = _run("ip", "-4", "route") + _run("ip", "-6", "route")
            return cls.from_linux_output(output)
        if sys.platform.startswith(_BSD_PLATFORMS):
            return cls.from_bsd_output(_run("netstat", "-rn"))
        if sys.platform.startswith("win"):
            return cls.from_windows_output(_run("powershell", "Get-NetRoute"))
        raise OSError(f"reading routes is not supported on {sys.platform}")


def _run(*command: str) -> str:
    completed = subprocess.run(command, capture_output=True, check=False)
    return completed.stdout.decode("utf-8", errors="replace")