"""Ping outcomes and the per-host result table."""

from __future__ import annotations

import enum
import ipaddress
from dataclasses import dataclass, field
from typing import Optional, Union

SYN_PING_DEFAULT_PORT = 80
ACK_PING_DEFAULT_PORT = 80
UDP_PING_DEFAULT_PORT = 125

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]
AddressLike = Union[str, int, ipaddress.IPv4Address, ipaddress.IPv6Address]


class PingStatus(enum.Enum):
    """Outcome of one ping probe."""

    UP = "up"
    DOWN = "down"
    ERROR = "error"


class PingMethods(enum.Enum):
    """The kinds of probe a ping can send."""

    SYN = "syn"
    ACK = "ack"
    UDP = "udp"
    ICMP = "icmp"


def _address(value: AddressLike) -> IPAddress:
    if isinstance(value, (ipaddress.IPv4Address, ipaddress.IPv6Address)):
        return value
    return ipaddress.ip_address(value)


def _address_order(addr: IPAddress) -> tuple[int, int]:
    return addr.version, int(addr)


@dataclass
class PingResults:
    """Statuses and round-trip times (in seconds) collected per address."""

    pings: dict[IPAddress, list[PingStatus]] = field(default_factory=dict)
    rtts: dict[IPAddress, list[float]] = field(default_factory=dict)
    avg_rtt: Optional[float] = None
    alive_hosts: int = 0

    def get_ping_status(self, addr: AddressLike) -> Optional[list[PingStatus]]:
        """Statuses recorded for ``addr``, or None when it was never pinged."""
        return self.pings.get(_address(addr))

    def get_rtts(self, addr: AddressLike) -> Optional[list[float]]:
        """Round-trip times recorded for ``addr``, or None when there are none."""
        return self.rtts.get(_address(addr))

    def insert(
        self, dst_addr: AddressLike, ping_status: PingStatus, rtt: Optional[float] = None
    ) -> None:
        """Record one probe outcome; a missing rtt is not stored."""
        addr = _address(dst_addr)
        self.pings.setdefault(addr, []).append(ping_status)
        if rtt is not None:
            self.rtts.setdefault(addr, []).append(float(rtt))

    def enrichment(self) -> None:
        """Compute the average rtt and the number of hosts seen up at least once."""
        all_rtts = [r for values in self.rtts.values() for r in values]
        self.avg_rtt = sum(all_rtts) / len(all_rtts) if all_rtts else None
        self.alive_hosts = sum(
            1 for statuses in self.pings.values() if PingStatus.UP in statuses
        )

    def __str__(self) -> str:
        rows = [
            (str(addr), "|".join(status.value for status in statuses))
            for addr, statuses in sorted(
                self.pings.items(), key=lambda item: _address_order(item[0])
            )
        ]
        avg_ms = (self.avg_rtt or 0.0) * 1000.0
        title = "Ping Results"
        summary = [f"avg rtt: {avg_ms:.1f}ms", f"alive hosts: {self.alive_hosts}"]

        w1 = max((len(a) for a, _ in rows), default=0)
        w2 = max((len(b) for _, b in rows), default=0)
        full = w1 + w2 + 3
        needed = max(len(line) for line in [title, *summary])
        if needed > full:
            w2 += needed - full
            full = needed

        split_border = "+" + "-" * (w1 + 2) + "+" + "-" * (w2 + 2) + "+"
        span_border = "+" + "-" * (full + 2) + "+"

        lines = [span_border, f"| {title.center(full)} |", split_border]
        for addr, status in rows:
            lines.append(f"| {addr.center(w1)} | {status.center(w2)} |")
            lines.append(split_border)
        lines[-1] = span_border
        lines.extend(f"| {line.ljust(full)} |" for line in summary)
        lines.append(span_border)
        return "\n".join(lines)