"""Network layer matches: IPv4 and IPv6 addresses, ICMP, labels and fragments."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .base import (
    Direction,
    IntegerMatch,
    Match,
    MatchError,
    match_ipv4_address_or_cidr,
    match_ipv6_address_or_cidr,
)

__all__ = [
    "NetworkMatch",
    "network_source",
    "network_destination",
    "network_ecn",
    "network_tos",
    "network_ttl",
    "network_protocol",
    "icmp_type",
    "icmp_code",
    "icmp6_type",
    "icmp6_code",
    "IPv6Match",
    "ipv6_source",
    "ipv6_destination",
    "NeighborDiscoveryTargetMatch",
    "neighbor_discovery_target",
    "IPv6LabelMatch",
    "ipv6_label",
    "IPFragFlag",
    "IPFragMatch",
    "ip_frag",
]

_MAX_IPV6_LABEL = 0xFFFFF


@dataclass(frozen=True, repr=False)
class NetworkMatch(Match):
    """Match on a source or destination IPv4 address or CIDR block."""

    direction: Direction
    ip: str

    def marshal_text(self) -> str:
        return match_ipv4_address_or_cidr(f"nw_{self.direction.value}", self.ip)

    def __repr__(self) -> str:
        if self.direction is Direction.SOURCE:
            return f"network_source({self.ip!r})"
        return f"network_destination({self.ip!r})"


def network_source(ip: str) -> NetworkMatch:
    """Match packets whose IPv4 source address matches ``ip``."""
    return NetworkMatch(Direction.SOURCE, ip)


def network_destination(ip: str) -> NetworkMatch:
    """Match packets whose IPv4 destination address matches ``ip``."""
    return NetworkMatch(Direction.DESTINATION, ip)


def network_ecn(ecn: int) -> IntegerMatch:
    """Match the explicit congestion notification bits."""
    return IntegerMatch("nw_ecn", ecn, "network_ecn")


def network_tos(tos: int) -> IntegerMatch:
    """Match the network type of service."""
    return IntegerMatch("nw_tos", tos, "network_tos")


def network_ttl(ttl: int) -> IntegerMatch:
    """Match the network time to live."""
    return IntegerMatch("nw_ttl", ttl, "network_ttl")


def network_protocol(num: int) -> IntegerMatch:
    """Match the IP or IPv6 protocol number, e.g. 1 for ICMP or 58 for ICMPv6."""
    return IntegerMatch("nw_proto", num, "network_protocol")


def icmp_type(typ: int) -> IntegerMatch:
    """Match the ICMP type."""
    return IntegerMatch("icmp_type", typ, "icmp_type")


def icmp_code(code: int) -> IntegerMatch:
    """Match the ICMP code."""
    return IntegerMatch("icmp_code", code, "icmp_code")


def icmp6_type(typ: int) -> IntegerMatch:
    """Match the ICMPv6 type."""
    return IntegerMatch("icmpv6_type", typ, "icmp6_type")


def icmp6_code(code: int) -> IntegerMatch:
    """Match the ICMPv6 code."""
    return IntegerMatch("icmpv6_code", code, "icmp6_code")


@dataclass(frozen=True, repr=False)
class IPv6Match(Match):
    """Match on a source or destination IPv6 address or CIDR block."""

    direction: Direction
    ip: str

    def marshal_text(self) -> str:
        return match_ipv6_address_or_cidr(f"ipv6_{self.direction.value}", self.ip)

    def __repr__(self) -> str:
        if self.direction is Direction.SOURCE:
            return f"ipv6_source({self.ip!r})"
        return f"ipv6_destination({self.ip!r})"


def ipv6_source(ip: str) -> IPv6Match:
    """Match packets whose IPv6 source address matches ``ip``."""
    return IPv6Match(Direction.SOURCE, ip)


def ipv6_destination(ip: str) -> IPv6Match:
    """Match packets whose IPv6 destination address matches ``ip``."""
    return IPv6Match(Direction.DESTINATION, ip)


@dataclass(frozen=True, repr=False)
class NeighborDiscoveryTargetMatch(Match):
    """Match on an IPv6 neighbour discovery target address or block."""

    ip: str

    def marshal_text(self) -> str:
        return match_ipv6_address_or_cidr("nd_target", self.ip)

    def __repr__(self) -> str:
        return f"neighbor_discovery_target({self.ip!r})"


def neighbor_discovery_target(ip: str) -> NeighborDiscoveryTargetMatch:
    """Match neighbour discovery packets whose target matches ``ip``."""
    return NeighborDiscoveryTargetMatch(ip)


def _valid_ipv6_label(value: int) -> bool:
    return 0 <= value <= _MAX_IPV6_LABEL


@dataclass(frozen=True, repr=False)
class IPv6LabelMatch(Match):
    """Match on the 20-bit IPv6 flow label with an optional mask."""

    label: int
    mask: int = 0

    def marshal_text(self) -> str:
        if not _valid_ipv6_label(self.label) or not _valid_ipv6_label(self.mask):
            raise MatchError("IPv6 label must only use 20 lower bits")
        if self.mask != 0:
            return f"ipv6_label=0x{self.label:05x}/0x{self.mask:05x}"
        return f"ipv6_label=0x{self.label:05x}"

    def __repr__(self) -> str:
        return f"ipv6_label(0x{self.label:04x}, 0x{self.mask:04x})"


def ipv6_label(label: int, mask: int) -> IPv6LabelMatch:
    """Match the IPv6 flow label; a mask of 0 matches exactly."""
    return IPv6LabelMatch(label, mask)


class IPFragFlag(str, Enum):
    """IP fragmentation states understood by Open vSwitch."""

    YES = "yes"
    NO = "no"
    FIRST = "first"
    LATER = "later"
    NOT_LATER = "not_later"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, repr=False)
class IPFragMatch(Match):
    """Match on a packet's fragmentation state."""

    flag: str

    def marshal_text(self) -> str:
        return f"ip_frag={self.flag}"

    def __repr__(self) -> str:
        return f"ip_frag({self.flag})"


def ip_frag(flag: IPFragFlag | str) -> IPFragMatch:
    """Match packets with the given fragmentation state."""
    return IPFragMatch(str(flag))