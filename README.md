# probekit

Building blocks for network host discovery:

- byte-exact construction of IPv4, IPv6, TCP, UDP, ICMP and ICMPv6 headers
  with their checksums (`probekit.wire`);
- ICMP and ICMPv6 echo request builders and reply classifiers
  (`probekit.icmp`, `probekit.icmpv6`);
- a per-host table of ping outcomes with average round-trip time and the
  number of hosts alive (`probekit.ping`);
- a thread-pool driver that runs a probe function over many hosts and
  gathers the results (`probekit.pinger`);
- parsers for the system route table and neighbour (ARP/NDP) cache on Linux,
  the BSDs, macOS and Windows (`probekit.route`, `probekit.cache`).

## Requirements

Python 3.10 or newer. `psutil` is used to enumerate network interfaces.

## Building packets

```python
from probekit import wire

src, dst = "192.0.2.10", "192.0.2.20"

segment = wire.build_tcp_segment(
    src, dst, 40000, 80,
    sequence=1,
    flags=wire.TcpFlags.SYN,
    window=1024,
    options=[
        wire.TcpOption.wscale(10),
        wire.TcpOption.nop(),
        wire.TcpOption.mss(1460),
        wire.TcpOption.timestamp(0xFFFFFFFF, 0),
        wire.TcpOption.sack_perm(),
    ],
)
packet = wire.build_ipv4_header(src, dst, wire.IpProtocol.TCP, len(segment)) + segment
```

`wire.encode_options(options, length)` joins options and pads them with
zero bytes, to `length` or to the next multiple of four.
`wire.build_udp_datagram`, `wire.build_icmp_message`,
`wire.build_icmpv6_message` and `wire.build_ipv6_header` build the other
headers. `wire.internet_checksum` computes the RFC 1071 checksum, and
`wire.transport_checksum` computes it over an IPv4 or IPv6 pseudo-header.
Values that do not fit their field raise `ValueError`.

## Echo requests and replies

```python
from probekit import icmp

request = icmp.build_echo_request("192.0.2.10", "192.0.2.20")
# ... send `request`, receive `reply` (or None) ...
status = icmp.classify_reply(reply)   # PingStatus.UP or PingStatus.DOWN
```

An echo reply with code 0 is `UP`; anything else, including no reply, is
`DOWN`. `probekit.icmpv6` offers `build_echo_request` and `classify_reply`
for IPv6.

## Collecting ping results

```python
from probekit.ping import PingResults, PingStatus

results = PingResults()
results.insert("192.0.2.20", PingStatus.UP, 0.012)
results.insert("192.0.2.20", PingStatus.DOWN, None)
results.enrichment()

print(results.alive_hosts)                     # 1
print(results.get_ping_status("192.0.2.20"))   # [UP, DOWN]
print(results)                                 # table of statuses and a summary
```

Round-trip times are in seconds.

## Running probes over many hosts

```python
from probekit.pinger import ping
from probekit.ping import PingMethods, PingStatus

def probe(method, addr, port):
    # send a probe for `method` to `addr`:`port` and return (status, rtt)
    return PingStatus.UP, 0.005

results = ping(
    ["192.0.2.20", ("192.0.2.21", [22])],
    PingMethods.SYN,
    probe,
    threads_num=8,
    tests=3,
)
```

Each host is an address or an `(address, ports)` pair; only the first port
is used. `probe_port` picks the port a method needs (80 for SYN and ACK,
125 for UDP when none is given, none for ICMP). `status_from_port` maps a
`PortStatus` from a port probe to a `PingStatus`. A probe that raises is
recorded as `PingStatus.ERROR`.

## Routes and neighbours

```python
from probekit.route import RouteTable
from probekit.cache import SystemCache

table = RouteTable.init()        # reads `ip route`, `netstat -rn` or Get-NetRoute
print(table.default_ipv4_route)

cache = SystemCache.init()       # route table plus the neighbour cache
iface = cache.search_route("192.0.2.20")
mac = cache.search_mac("192.0.2.1")
cache.update_neighbor_cache("192.0.2.1", "02:00:00:00:00:01")
```

The parsers also work on saved command output, for example
`RouteTable.from_linux_output(text)` or
`SystemCache.parse_neighbors_linux(text)`. The single-line parsers
(`DefaultRoute.parse_linux`, `Route.parse_bsd` and so on) raise
`InvalidRouteFormat` for a line they cannot use; the table builders skip
such lines with a warning.

## What it does not do

probekit does not open raw sockets: sending packets and waiting for replies
is left to the probe function you pass to `pinger.ping`. It has no
command-line tool, no ready-made port scanner, no operating-system
fingerprint probe set and no way to save probe results.