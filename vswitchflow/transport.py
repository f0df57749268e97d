"""Transport, connection tracking, metadata, tunnel and generic field matches."""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum

from .base import Direction, IntegerMatch, Match, match_ipv4_address_or_cidr

__all__ = [
    "PortMatch",
    "transport_source_port",
    "transport_destination_port",
    "transport_source_masked_port",
    "transport_destination_masked_port",
    "udp_source_port",
    "udp_destination_port",
    "udp_source_masked_port",
    "udp_destination_masked_port",
    "CTState",
    "set_state",
    "unset_state",
    "ConnectionTrackingStateMatch",
    "connection_tracking_state",
    "ConnectionTrackingMarkMatch",
    "connection_tracking_mark",
    "connection_tracking_zone",
    "conjunction_id",
    "TCPFlag",
    "set_tcp_flag",
    "unset_tcp_flag",
    "TCPFlagsMatch",
    "tcp_flags",
    "MetadataMatch",
    "metadata",
    "metadata_with_mask",
    "TunnelIDMatch",
    "tunnel_id",
    "tunnel_id_with_mask",
    "TunnelMatch",
    "tunnel_src",
    "tunnel_dst",
    "tunnel_ttl",
    "tunnel_tos",
    "tunnel_gbp",
    "tunnel_gbp_flags",
    "tunnel_flags",
    "in_port_match",
    "FieldMatch",
    "field_match",
]

_UINT64_MASK = 0xFFFF_FFFF_FFFF_FFFF

_TRANSPORT = "tp"
_UDP = "udp"
_PORT_FACTORY_NAMES = {_TRANSPORT: "transport", _UDP: "udp"}


@dataclass(frozen=True, repr=False)
class PortMatch(Match):
    """Match on a TCP/transport or UDP port, optionally masked to a range."""

    protocol: str
    direction: Direction
    port: int
    mask: int = 0

    def marshal_text(self) -> str:
        key = f"{self.protocol}_{self.direction.value}"
        if self.mask == 0:
            return f"{key}={self.port}"
        return f"{key}=0x{self.port:04x}/0x{self.mask:04x}"

    def __repr__(self) -> str:
        side = "source" if self.direction is Direction.SOURCE else "destination"
        prefix = _PORT_FACTORY_NAMES.get(self.protocol, self.protocol)
        if self.mask > 0:
            return f"{prefix}_{side}_masked_port({self.port:#x}, {self.mask:#x})"
        return f"{prefix}_{side}_port({self.port})"


def transport_source_port(port: int) -> PortMatch:
    """Match packets with the given transport source port."""
    return PortMatch(_TRANSPORT, Direction.SOURCE, port)


def transport_destination_port(port: int) -> PortMatch:
    """Match packets with the given transport destination port."""
    return PortMatch(_TRANSPORT, Direction.DESTINATION, port)


def transport_source_masked_port(port: int, mask: int) -> PortMatch:
    """Match transport source ports within a masked range."""
    return PortMatch(_TRANSPORT, Direction.SOURCE, port, mask)


def transport_destination_masked_port(port: int, mask: int) -> PortMatch:
    """Match transport destination ports within a masked range."""
    return PortMatch(_TRANSPORT, Direction.DESTINATION, port, mask)


def udp_source_port(port: int) -> PortMatch:
    """Match packets with the given UDP source port."""
    return PortMatch(_UDP, Direction.SOURCE, port)


def udp_destination_port(port: int) -> PortMatch:
    """Match packets with the given UDP destination port."""
    return PortMatch(_UDP, Direction.DESTINATION, port)


def udp_source_masked_port(port: int, mask: int) -> PortMatch:
    """Match UDP source ports within a masked range."""
    return PortMatch(_UDP, Direction.SOURCE, port, mask)


def udp_destination_masked_port(port: int, mask: int) -> PortMatch:
    """Match UDP destination ports within a masked range."""
    return PortMatch(_UDP, Direction.DESTINATION, port, mask)


class CTState(str, Enum):
    """Common connection tracking states."""

    NEW = "new"
    ESTABLISHED = "est"
    RELATED = "rel"
    REPLY = "rpl"
    INVALID = "inv"
    TRACKED = "trk"

    def __str__(self) -> str:
        return self.value


def set_state(state: CTState | str) -> str:
    """Return the flag text requiring ``state`` to be set."""
    return f"+{state}"


def unset_state(state: CTState | str) -> str:
    """Return the flag text requiring ``state`` to be unset."""
    return f"-{state}"


def _quoted_list(items: tuple[str, ...]) -> str:
    return ", ".join(json.dumps(item) for item in items)


@dataclass(frozen=True, repr=False)
class ConnectionTrackingStateMatch(Match):
    """Match on a combination of connection tracking state flags."""

    states: tuple[str, ...]

    def marshal_text(self) -> str:
        return f"ct_state={''.join(self.states)}"

    def __repr__(self) -> str:
        return f"connection_tracking_state({_quoted_list(self.states)})"


def connection_tracking_state(*args: str) -> ConnectionTrackingStateMatch:
    """Match connection state flags built with ``set_state`` and ``unset_state``."""
    return ConnectionTrackingStateMatch(tuple(str(arg) for arg in args))


@dataclass(frozen=True, repr=False)
class ConnectionTrackingMarkMatch(Match):
    """Match on the metadata mark of a connection tracking entry."""

    mark: int
    mask: int = 0

    def marshal_text(self) -> str:
        if self.mask != 0:
            return f"ct_mark=0x{self.mark:08x}/0x{self.mask:08x}"
        return f"ct_mark=0x{self.mark:08x}"

    def __repr__(self) -> str:
        return f"connection_tracking_mark(0x{self.mark:08x}, 0x{self.mask:08x})"


def connection_tracking_mark(mark: int, mask: int) -> ConnectionTrackingMarkMatch:
    """Match a connection tracking mark; a mask of 0 matches exactly."""
    return ConnectionTrackingMarkMatch(mark, mask)


def connection_tracking_zone(zone: int) -> IntegerMatch:
    """Match a connection tracking zone."""
    return IntegerMatch("ct_zone", zone, "connection_tracking_zone")


def conjunction_id(conj_id: int) -> IntegerMatch:
    """Match flows that matched every dimension of the given conjunction."""
    return IntegerMatch("conj_id", conj_id, "conjunction_id")


class TCPFlag(str, Enum):
    """Flags in the TCP header."""

    URG = "urg"
    ACK = "ack"
    PSH = "psh"
    RST = "rst"
    SYN = "syn"
    FIN = "fin"

    def __str__(self) -> str:
        return self.value


def set_tcp_flag(flag: TCPFlag | str) -> str:
    """Return the flag text requiring ``flag`` to be set."""
    return f"+{flag}"


def unset_tcp_flag(flag: TCPFlag | str) -> str:
    """Return the flag text requiring ``flag`` to be unset."""
    return f"-{flag}"


@dataclass(frozen=True, repr=False)
class TCPFlagsMatch(Match):
    """Match on a combination of TCP header flags."""

    flags: tuple[str, ...]

    def marshal_text(self) -> str:
        return f"tcp_flags={''.join(self.flags)}"

    def __repr__(self) -> str:
        return f"tcp_flags({_quoted_list(self.flags)})"


def tcp_flags(*args: str) -> TCPFlagsMatch:
    """Match TCP flags built with ``set_tcp_flag`` and ``unset_tcp_flag``."""
    return TCPFlagsMatch(tuple(str(arg) for arg in args))


@dataclass(frozen=True, repr=False)
class MetadataMatch(Match):
    """Match on the 64-bit metadata field with an optional mask."""

    data: int
    mask: int = 0

    def marshal_text(self) -> str:
        if self.mask == 0:
            return f"metadata={self.data:#x}"
        return f"metadata={self.data:#x}/{self.mask:#x}"

    def __repr__(self) -> str:
        if self.mask > 0:
            return f"metadata_with_mask({self.data:#x}, {self.mask:#x})"
        return f"metadata({self.data:#x})"


def metadata(data: int) -> MetadataMatch:
    """Match the metadata field exactly."""
    return MetadataMatch(data & _UINT64_MASK)


def metadata_with_mask(data: int, mask: int) -> MetadataMatch:
    """Match the metadata field under ``mask``."""
    return MetadataMatch(data & _UINT64_MASK, mask & _UINT64_MASK)


@dataclass(frozen=True, repr=False)
class TunnelIDMatch(Match):
    """Match on a tunnel ID with an optional mask."""

    tun_id: int
    mask: int = 0

    def marshal_text(self) -> str:
        if self.mask == 0:
            return f"tun_id={self.tun_id:#x}"
        return f"tun_id={self.tun_id:#x}/{self.mask:#x}"

    def __repr__(self) -> str:
        if self.mask > 0:
            return f"tunnel_id_with_mask({self.tun_id:#x}, {self.mask:#x})"
        return f"tunnel_id({self.tun_id:#x})"


def tunnel_id(tun_id: int) -> TunnelIDMatch:
    """Match the tunnel ID exactly."""
    return TunnelIDMatch(tun_id & _UINT64_MASK)


def tunnel_id_with_mask(tun_id: int, mask: int) -> TunnelIDMatch:
    """Match the tunnel ID under ``mask``; -1 means all bits."""
    return TunnelIDMatch(tun_id & _UINT64_MASK, mask & _UINT64_MASK)


@dataclass(frozen=True, repr=False)
class TunnelMatch(Match):
    """Match on a tunnel source or destination IPv4 address or block."""

    direction: Direction
    ip: str

    def marshal_text(self) -> str:
        return match_ipv4_address_or_cidr(f"tun_{self.direction.value}", self.ip)

    def __repr__(self) -> str:
        if self.direction is Direction.SOURCE:
            return f"tunnel_src({self.ip!r})"
        return f"tunnel_dst({self.ip!r})"


def tunnel_src(addr: str) -> TunnelMatch:
    """Match the tunnel source address."""
    return TunnelMatch(Direction.SOURCE, addr)


def tunnel_dst(addr: str) -> TunnelMatch:
    """Match the tunnel destination address."""
    return TunnelMatch(Direction.DESTINATION, addr)


def tunnel_ttl(ttl: int) -> IntegerMatch:
    """Match the tunnel time to live."""
    return IntegerMatch("tun_ttl", ttl, "tunnel_ttl")


def tunnel_tos(tos: int) -> IntegerMatch:
    """Match the tunnel type of service."""
    return IntegerMatch("tun_tos", tos, "tunnel_tos")


def tunnel_gbp(gbp: int) -> IntegerMatch:
    """Match the tunnel group based policy ID."""
    return IntegerMatch("tun_gbp_id", gbp, "tunnel_gbp")


def tunnel_gbp_flags(gbp_flags: int) -> IntegerMatch:
    """Match the tunnel group based policy flags."""
    return IntegerMatch("tun_gbp_flags", gbp_flags, "tunnel_gbp_flags")


def tunnel_flags(flags: int) -> IntegerMatch:
    """Match the tunnel flags."""
    return IntegerMatch("tun_flags", flags, "tunnel_flags")


def in_port_match(port: int) -> IntegerMatch:
    """Match packets entering through the given switch port."""
    return IntegerMatch("in_port", port, "in_port")


@dataclass(frozen=True, repr=False)
class FieldMatch(Match):
    """Match a field against a literal value or another packet field."""

    field: str
    src_or_value: str

    def marshal_text(self) -> str:
        return f"{self.field}={self.src_or_value}"

    def __repr__(self) -> str:
        return f"field_match({self.field},{self.src_or_value})"


def field_match(field: str, src_or_value: str) -> FieldMatch:
    """Match ``field`` against a value such as ``0x123`` or a field like ``arp_tpa``."""
    return FieldMatch(field, src_or_value)