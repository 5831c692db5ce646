"""Ping probe packets, reply classification, result gathering and system route parsing."""

__version__ = "0.1.0"

__all__ = [
    "wire",
    "ping",
    "icmp",
    "icmpv6",
    "pinger",
    "route",
    "cache",
]