"""ICMPv6 echo ping: request construction and reply classification."""

from __future__ import annotations

import random
import struct
import time
from typing import Optional

from .ping import PingStatus
from .wire import (
    IPV6_HEADER_SIZE,
    Address,
    IpProtocol,
    build_icmpv6_message,
    build_ipv6_header,
)

HOP_LIMIT = 255
FLOW_LABEL = 0x12345
ICMPV6_DATA_SIZE = 16

ICMPV6_DESTINATION_UNREACHABLE = 1
ICMPV6_ECHO_REQUEST = 128
ICMPV6_ECHO_REPLY = 129

# Destination-unreachable codes: administratively prohibited,
# address unreachable and port unreachable.
_DOWN_CODES = frozenset({1, 3, 4})
_UP_CODES = frozenset({0})


def _timestamp_payload() -> bytes:
    now = time.time()
    seconds = int(now)
    millis = int((now - seconds) * 1000)
    stamp = struct.pack("<qI", seconds, millis)
    return stamp + bytes(ICMPV6_DATA_SIZE - len(stamp))


def build_echo_request(src_ipv6: Address, dst_ipv6: Address) -> bytes:
    """A complete IPv6 packet carrying an ICMPv6 echo request with a timestamp."""
    rest = struct.pack("!HH", random.getrandbits(16), 1)
    message = build_icmpv6_message(
        src_ipv6, dst_ipv6, ICMPV6_ECHO_REQUEST, 0, rest, _timestamp_payload()
    )
    header = build_ipv6_header(
        src_ipv6,
        dst_ipv6,
        IpProtocol.ICMPV6,
        len(message),
        hop_limit=HOP_LIMIT,
        flow_label=FLOW_LABEL,
    )
    return header + message


def classify_reply(packet: Optional[bytes]) -> PingStatus:
    """Map a received IPv6 packet (or None for no reply) to a ping status."""
    if not packet or len(packet) < IPV6_HEADER_SIZE:
        return PingStatus.DOWN
    packet = bytes(packet)
    if packet[0] >> 4 != 6 or packet[6] != IpProtocol.ICMPV6:
        return PingStatus.DOWN
    payload_length = struct.unpack("!H", packet[4:6])[0]
    icmp = packet[IPV6_HEADER_SIZE : IPV6_HEADER_SIZE + payload_length]
    if len(icmp) < 4:
        return PingStatus.DOWN
    icmp_type, code = icmp[0], icmp[1]
    if icmp_type == ICMPV6_DESTINATION_UNREACHABLE and code in _DOWN_CODES:
        return PingStatus.DOWN
    if icmp_type == ICMPV6_ECHO_REPLY and code in _UP_CODES:
        return PingStatus.UP
    return PingStatus.DOWN