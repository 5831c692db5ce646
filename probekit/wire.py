"""Byte-level encoders for IPv4, IPv6, TCP, UDP, ICMP and ICMPv6 headers.

Every builder returns ``bytes`` ready to be concatenated into a layer-3
packet. Checksums are filled in; addresses may be given as strings or as
``ipaddress`` objects.
"""

from __future__ import annotations

import enum
import ipaddress
import random
import struct
from dataclasses import dataclass
from typing import Iterable, Optional, Union

IPV4_HEADER_SIZE = 20
IPV6_HEADER_SIZE = 40
TCP_HEADER_SIZE = 20
UDP_HEADER_SIZE = 8
ICMP_HEADER_SIZE = 8
ICMPV6_ER_HEADER_SIZE = 8

MAX_TCP_OPTIONS_SIZE = 40

Address = Union[str, int, ipaddress.IPv4Address, ipaddress.IPv6Address]
IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


class IpProtocol(enum.IntEnum):
    """IP protocol / IPv6 next-header numbers used by the probes."""

    HOPOPT = 0
    ICMP = 1
    TCP = 6
    UDP = 17
    ROUTING = 43
    ICMPV6 = 58
    DESTINATION = 60


class TcpFlags(enum.IntFlag):
    """TCP control bits as they appear in the flags byte."""

    FIN = 0x01
    SYN = 0x02
    RST = 0x04
    PSH = 0x08
    ACK = 0x10
    URG = 0x20
    ECE = 0x40
    CWR = 0x80


_KIND_EOL = 0
_KIND_NOP = 1
_KIND_MSS = 2
_KIND_WSCALE = 3
_KIND_SACK_PERM = 4
_KIND_TIMESTAMP = 8


def _check_range(name: str, value: int, bits: int) -> int:
    value = int(value)
    if not 0 <= value < (1 << bits):
        raise ValueError(f"{name} must fit in {bits} bits, got {value}")
    return value


def _address(value: Address) -> IPAddress:
    if isinstance(value, (ipaddress.IPv4Address, ipaddress.IPv6Address)):
        return value
    return ipaddress.ip_address(value)


def _address_pair(
    src: Address, dst: Address, version: Optional[int] = None
) -> tuple[IPAddress, IPAddress]:
    s, d = _address(src), _address(dst)
    if s.version != d.version:
        raise ValueError(f"address families differ: {s} and {d}")
    if version is not None and s.version != version:
        raise ValueError(f"IPv{version} addresses required, got {s} and {d}")
    return s, d


@dataclass(frozen=True)
class TcpOption:
    """A single TCP option: its kind and the bytes that follow the length."""

    kind: int
    data: bytes = b""

    @classmethod
    def nop(cls) -> "TcpOption":
        return cls(_KIND_NOP)

    @classmethod
    def mss(cls, value: int) -> "TcpOption":
        return cls(_KIND_MSS, struct.pack("!H", _check_range("mss", value, 16)))

    @classmethod
    def wscale(cls, shift: int) -> "TcpOption":
        return cls(_KIND_WSCALE, bytes([_check_range("window scale", shift, 8)]))

    @classmethod
    def sack_perm(cls) -> "TcpOption":
        return cls(_KIND_SACK_PERM)

    @classmethod
    def timestamp(cls, tsval: int, tsecr: int) -> "TcpOption":
        return cls(
            _KIND_TIMESTAMP,
            struct.pack(
                "!II",
                _check_range("tsval", tsval, 32),
                _check_range("tsecr", tsecr, 32),
            ),
        )

    def encode(self) -> bytes:
        """Return the option as it appears on the wire."""
        if self.kind in (_KIND_EOL, _KIND_NOP):
            return bytes([self.kind])
        return bytes([self.kind, len(self.data) + 2]) + self.data


def encode_options(options: Iterable[TcpOption], length: Optional[int] = None) -> bytes:
    """Concatenate options and pad with end-of-list bytes.

    Without ``length`` the result is padded to the next multiple of four.
    """
    raw = b"".join(option.encode() for option in options)
    if length is None:
        length = -(-len(raw) // 4) * 4
    if len(raw) > length:
        raise ValueError(f"options take {len(raw)} bytes, more than {length}")
    return raw + bytes(length - len(raw))


def internet_checksum(data: bytes) -> int:
    """Ones' complement of the ones' complement sum of 16-bit words."""
    data = bytes(data)
    if len(data) % 2:
        data += b"\x00"
    total = sum(struct.unpack(f"!{len(data) // 2}H", data))
    while total >> 16:
        total = (total & 0xFFFF) + (total >> 16)
    return ~total & 0xFFFF


def transport_checksum(src: Address, dst: Address, protocol: int, segment: bytes) -> int:
    """Checksum of a transport segment including the IPv4 or IPv6 pseudo-header."""
    s, d = _address_pair(src, dst)
    segment = bytes(segment)
    protocol = _check_range("protocol", protocol, 8)
    if s.version == 4:
        length = _check_range("segment length", len(segment), 16)
        pseudo = s.packed + d.packed + struct.pack("!BBH", 0, protocol, length)
    else:
        length = _check_range("segment length", len(segment), 32)
        pseudo = s.packed + d.packed + struct.pack("!I3xB", length, protocol)
    return internet_checksum(pseudo + segment)


def _with_checksum(data: bytes, offset: int, checksum: int) -> bytes:
    return data[:offset] + struct.pack("!H", checksum) + data[offset + 2 :]


def build_ipv4_header(
    src: Address,
    dst: Address,
    protocol: int,
    payload_length: int,
    identification: Optional[int] = None,
    ttl: int = 64,
    dont_fragment: bool = False,
    dscp: int = 0,
    ecn: int = 0,
) -> bytes:
    """A 20-byte IPv4 header with its checksum; a random ID when none is given."""
    s, d = _address_pair(src, dst, version=4)
    if identification is None:
        identification = random.getrandbits(16)
    total_length = _check_range("total length", IPV4_HEADER_SIZE + payload_length, 16)
    tos = (_check_range("dscp", dscp, 6) << 2) | _check_range("ecn", ecn, 2)
    header = struct.pack(
        "!BBHHHBBH4s4s",
        0x45,
        tos,
        total_length,
        _check_range("identification", identification, 16),
        0x4000 if dont_fragment else 0,
        _check_range("ttl", ttl, 8),
        _check_range("protocol", protocol, 8),
        0,
        s.packed,
        d.packed,
    )
    return _with_checksum(header, 10, internet_checksum(header))


def build_ipv6_header(
    src: Address,
    dst: Address,
    next_header: int,
    payload_length: int,
    hop_limit: Optional[int] = None,
    flow_label: int = 0x12345,
    traffic_class: int = 0,
) -> bytes:
    """A 40-byte IPv6 header; a random hop limit when none is given."""
    s, d = _address_pair(src, dst, version=6)
    if hop_limit is None:
        hop_limit = random.getrandbits(8)
    first_word = (
        (6 << 28)
        | (_check_range("traffic class", traffic_class, 8) << 20)
        | _check_range("flow label", flow_label, 20)
    )
    return struct.pack(
        "!IHBB16s16s",
        first_word,
        _check_range("payload length", payload_length, 16),
        _check_range("next header", next_header, 8),
        _check_range("hop limit", hop_limit, 8),
        s.packed,
        d.packed,
    )


def build_tcp_segment(
    src: Address,
    dst: Address,
    src_port: int,
    dst_port: int,
    sequence: int = 0,
    acknowledgement: int = 0,
    flags: int = 0,
    window: int = 0,
    urgent: int = 0,
    reserved: int = 0,
    options: Iterable[TcpOption] = (),
) -> bytes:
    """A TCP header with options and a checksum over the pseudo-header.

    ``reserved`` is the four-bit field that follows the data offset.
    """
    opts = encode_options(options)
    if len(opts) > MAX_TCP_OPTIONS_SIZE:
        raise ValueError(f"options take {len(opts)} bytes, at most 40 allowed")
    data_offset = (TCP_HEADER_SIZE + len(opts)) // 4
    segment = (
        struct.pack(
            "!HHIIBBHHH",
            _check_range("source port", src_port, 16),
            _check_range("destination port", dst_port, 16),
            _check_range("sequence", sequence, 32),
            _check_range("acknowledgement", acknowledgement, 32),
            (data_offset << 4) | _check_range("reserved", reserved, 4),
            _check_range("flags", int(flags), 8),
            _check_range("window", window, 16),
            0,
            _check_range("urgent pointer", urgent, 16),
        )
        + opts
    )
    return _with_checksum(segment, 16, transport_checksum(src, dst, IpProtocol.TCP, segment))


def build_udp_datagram(
    src: Address, dst: Address, src_port: int, dst_port: int, payload: bytes = b""
) -> bytes:
    """A UDP header plus payload with its checksum."""
    payload = bytes(payload)
    datagram = (
        struct.pack(
            "!HHHH",
            _check_range("source port", src_port, 16),
            _check_range("destination port", dst_port, 16),
            _check_range("length", UDP_HEADER_SIZE + len(payload), 16),
            0,
        )
        + payload
    )
    return _with_checksum(datagram, 6, transport_checksum(src, dst, IpProtocol.UDP, datagram))


def _icmp_body(icmp_type: int, code: int, rest: bytes, payload: bytes) -> bytes:
    rest = bytes(rest)
    if len(rest) != 4:
        raise ValueError(f"the rest of the ICMP header is 4 bytes, got {len(rest)}")
    return (
        struct.pack("!BBH", _check_range("type", icmp_type, 8), _check_range("code", code, 8), 0)
        + rest
        + bytes(payload)
    )


def build_icmp_message(
    icmp_type: int, code: int, rest: bytes = bytes(4), payload: bytes = b""
) -> bytes:
    """An ICMP message; ``rest`` is the four header bytes after the checksum."""
    message = _icmp_body(icmp_type, code, rest, payload)
    return _with_checksum(message, 2, internet_checksum(message))


def build_icmpv6_message(
    src: Address,
    dst: Address,
    icmp_type: int,
    code: int,
    rest: bytes = bytes(4),
    payload: bytes = b"",
) -> bytes:
    """An ICMPv6 message with its checksum over the IPv6 pseudo-header."""
    _address_pair(src, dst, version=6)
    message = _icmp_body(icmp_type, code, rest, payload)
    return _with_checksum(
        message, 2, transport_checksum(src, dst, IpProtocol.ICMPV6, message)
    )