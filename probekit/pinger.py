"""Running pings across hosts on a thread pool and gathering the outcomes."""

from __future__ import annotations

import enum
import ipaddress
import logging
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from typing import Callable, Iterable, Optional, Sequence, Union

from .ping import (
    ACK_PING_DEFAULT_PORT,
    SYN_PING_DEFAULT_PORT,
    UDP_PING_DEFAULT_PORT,
    PingMethods,
    PingResults,
    PingStatus,
)

log = logging.getLogger(__name__)

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]
Outcome = Union[tuple[PingStatus, Optional[float]], Exception]
Probe = Callable[[PingMethods, IPAddress, Optional[int]], tuple[PingStatus, Optional[float]]]

_DEFAULT_PORTS = {
    PingMethods.SYN: SYN_PING_DEFAULT_PORT,
    PingMethods.ACK: ACK_PING_DEFAULT_PORT,
    PingMethods.UDP: UDP_PING_DEFAULT_PORT,
}


class PortStatus(enum.Enum):
    """State of a port as reported by a scan probe."""

    OPEN = "open"
    CLOSED = "closed"
    FILTERED = "filtered"
    UNFILTERED = "unfiltered"
    OPEN_OR_FILTERED = "open|filtered"
    CLOSED_OR_FILTERED = "closed|filtered"


def probe_port(method: PingMethods, dst_port: Optional[int]) -> Optional[int]:
    """The destination port a probe uses: none for ICMP, else the given or default one."""
    if method is PingMethods.ICMP:
        return None
    if dst_port is None:
        log.debug("no destination port for method %s, using default", method)
        return _DEFAULT_PORTS[method]
    return dst_port


def status_from_port(
    method: PingMethods, port_status: PortStatus, ipv6: bool = False
) -> PingStatus:
    """Translate a port-scan answer into a ping status for the given method."""
    if method is PingMethods.SYN:
        up = {PortStatus.OPEN}
    elif method is PingMethods.ACK:
        up = {PortStatus.UNFILTERED}
    elif method is PingMethods.UDP:
        up = {PortStatus.OPEN, PortStatus.OPEN_OR_FILTERED} if ipv6 else {PortStatus.OPEN}
    else:
        raise ValueError(f"method {method} does not probe ports")
    return PingStatus.UP if port_status in up else PingStatus.DOWN


def collect_results(outcomes: Iterable[tuple[object, Outcome]]) -> PingResults:
    """Gather (address, outcome) pairs; an exception counts as an error."""
    results = PingResults()
    for addr, outcome in outcomes:
        if isinstance(outcome, Exception):
            log.warning("ping error: %s", outcome)
            results.insert(addr, PingStatus.ERROR)
        else:
            status, rtt = outcome
            log.debug("ip: %s, status: %s, rtt: %s", addr, status, rtt)
            results.insert(addr, status, rtt)
    results.enrichment()
    return results


def _hosts(hosts: Iterable) -> Iterable[tuple[IPAddress, Sequence[int]]]:
    for host in hosts:
        if isinstance(host, (str, int, ipaddress.IPv4Address, ipaddress.IPv6Address)):
            yield ipaddress.ip_address(host), ()
        else:
            addr, ports = host
            yield ipaddress.ip_address(addr), tuple(ports or ())


def _outcome(future: Future) -> Outcome:
    try:
        return future.result()
    except Exception as exc:  # noqa: BLE001 - a failed probe is recorded, not raised
        return exc


def ping(
    hosts: Iterable,
    method: PingMethods,
    probe: Probe,
    threads_num: int = 8,
    tests: int = 1,
) -> PingResults:
    """Probe every host ``tests`` times on a pool of ``threads_num`` threads.

    Each host is an address or an (address, ports) pair; only the first
    port is used. ``probe(method, addr, port)`` returns (status, rtt).
    """
    if threads_num < 1:
        raise ValueError(f"threads_num must be at least 1, got {threads_num}")
    if tests < 0:
        raise ValueError(f"tests must not be negative, got {tests}")
    with ThreadPoolExecutor(max_workers=threads_num) as pool:
        futures: dict[Future, IPAddress] = {}
        for addr, ports in _hosts(hosts):
            port = probe_port(method, ports[0] if ports else None)
            for _ in range(tests):
                futures[pool.submit(probe, method, addr, port)] = addr
        log.debug("submitted %d probes", len(futures))
        return collect_results((futures[f], _outcome(f)) for f in as_completed(futures))