"""ICMP echo ping over IPv4: request construction and reply classification."""

from __future__ import annotations

import random
import struct
import time
from typing import Optional

from .ping import PingStatus
from .wire import (
    ICMP_HEADER_SIZE,
    IPV4_HEADER_SIZE,
    Address,
    IpProtocol,
    build_icmp_message,
    build_ipv4_header,
)

TTL = 64
ICMP_DATA_SIZE = 16

ICMP_ECHO_REPLY = 0
ICMP_DESTINATION_UNREACHABLE = 3
ICMP_ECHO_REQUEST = 8

# Destination-unreachable codes that mean the host is down or filtered.
_DOWN_CODES = frozenset({2, 1, 3, 9, 10, 13})
_UP_CODES = frozenset({0})


def _timestamp_payload() -> bytes:
    now = time.time()
    seconds = int(now)
    millis = int((now - seconds) * 1000)
    stamp = struct.pack("<qI", seconds, millis)
    return stamp + bytes(ICMP_DATA_SIZE - len(stamp))


def build_echo_request(src_ipv4: Address, dst_ipv4: Address) -> bytes:
    """A complete IPv4 packet carrying an ICMP echo request with a timestamp."""
    rest = struct.pack("!HH", random.getrandbits(16), 1)
    message = build_icmp_message(ICMP_ECHO_REQUEST, 0, rest, _timestamp_payload())
    header = build_ipv4_header(
        src_ipv4,
        dst_ipv4,
        IpProtocol.ICMP,
        len(message),
        ttl=TTL,
        dont_fragment=True,
    )
    return header + message


def classify_reply(packet: Optional[bytes]) -> PingStatus:
    """Map a received IPv4 packet (or None for no reply) to a ping status."""
    if not packet or len(packet) < IPV4_HEADER_SIZE:
        return PingStatus.DOWN
    packet = bytes(packet)
    if packet[9] != IpProtocol.ICMP:
        return PingStatus.DOWN
    header_length = (packet[0] & 0x0F) * 4
    total_length = struct.unpack("!H", packet[2:4])[0]
    end = min(len(packet), total_length) if total_length >= header_length else len(packet)
    icmp = packet[header_length:end]
    if len(icmp) < 4:
        return PingStatus.DOWN
    icmp_type, code = icmp[0], icmp[1]
    if icmp_type == ICMP_DESTINATION_UNREACHABLE and code in _DOWN_CODES:
        return PingStatus.DOWN
    if icmp_type == ICMP_ECHO_REPLY and code in _UP_CODES:
        return PingStatus.UP
    return PingStatus.DOWN


__all__ = ["ICMP_HEADER_SIZE", "build_echo_request", "classify_reply"]