"""Data link layer, VLAN, ARP and neighbour discovery link-layer matches."""

from __future__ import annotations

from dataclasses import dataclass

from .base import (
    Direction,
    Match,
    MatchError,
    format_mac,
    match_ethernet_hardware_address,
    match_ipv4_address_or_cidr,
    parse_mac,
)

__all__ = [
    "VLAN_NONE",
    "DataLinkMatch",
    "data_link_source",
    "data_link_destination",
    "DataLinkTypeMatch",
    "data_link_type",
    "DataLinkVLANMatch",
    "data_link_vlan",
    "DataLinkVLANPCPMatch",
    "data_link_vlan_pcp",
    "VLANTCIMatch",
    "vlan_tci",
    "vlan_tci1",
    "ARPOperationMatch",
    "arp_operation",
    "ArpOpMatch",
    "arp_op",
    "ARPHardwareAddressMatch",
    "arp_source_hardware_address",
    "arp_target_hardware_address",
    "ARPProtocolAddressMatch",
    "arp_source_protocol_address",
    "arp_target_protocol_address",
    "NeighborDiscoveryLinkLayerMatch",
    "neighbor_discovery_source_link_layer",
    "neighbor_discovery_target_link_layer",
]

VLAN_NONE = 0xFFFF
"""Special VLAN ID matching only packets that carry no VLAN tag."""

_ETHERNET_ADDR_LEN = 6
_MAX_VLAN_VID = 4095
_MAX_VLAN_PCP = 7
_ARP_OPS = range(1, 5)


def _valid_vlan_vid(vid: int) -> bool:
    return 0 <= vid <= _MAX_VLAN_VID


def _valid_vlan_pcp(pcp: int) -> bool:
    return 0 <= pcp <= _MAX_VLAN_PCP


@dataclass(frozen=True, repr=False)
class DataLinkMatch(Match):
    """Match on a source or destination hardware address with optional wildcard."""

    direction: Direction
    addr: str

    def marshal_text(self) -> str:
        hw, sep, wildcard_text = self.addr.partition("/")
        hw_addr = parse_mac(hw)
        if len(hw_addr) != _ETHERNET_ADDR_LEN:
            raise MatchError(
                f"hardware address must be {_ETHERNET_ADDR_LEN} octets, but got {len(hw_addr)}"
            )
        key = f"dl_{self.direction.value}"
        if not sep:
            return f"{key}={format_mac(hw_addr)}"

        wildcard = parse_mac(wildcard_text)
        if len(wildcard) != _ETHERNET_ADDR_LEN:
            raise MatchError(
                f"wildcard mask must be {_ETHERNET_ADDR_LEN} octets, but got {len(wildcard)}"
            )
        return f"{key}={format_mac(hw_addr)}/{format_mac(wildcard)}"

    def __repr__(self) -> str:
        name = "data_link_source" if self.direction is Direction.SOURCE else "data_link_destination"
        return f"{name}({self.addr!r})"


def data_link_source(addr: str) -> DataLinkMatch:
    """Match a source hardware address, optionally followed by ``/wildcard``."""
    return DataLinkMatch(Direction.SOURCE, addr)


def data_link_destination(addr: str) -> DataLinkMatch:
    """Match a destination hardware address, optionally followed by ``/wildcard``."""
    return DataLinkMatch(Direction.DESTINATION, addr)


@dataclass(frozen=True, repr=False)
class DataLinkTypeMatch(Match):
    """Match on an EtherType."""

    ether_type: int

    def marshal_text(self) -> str:
        return f"dl_type=0x{self.ether_type:04x}"

    def __repr__(self) -> str:
        return f"data_link_type(0x{self.ether_type:04x})"


def data_link_type(ether_type: int) -> DataLinkTypeMatch:
    """Match packets with the given EtherType."""
    return DataLinkTypeMatch(ether_type)


@dataclass(frozen=True, repr=False)
class DataLinkVLANMatch(Match):
    """Match on a VLAN ID, or on the absence of a VLAN tag."""

    vid: int

    def marshal_text(self) -> str:
        if self.vid == VLAN_NONE:
            return "dl_vlan=0xffff"
        if not _valid_vlan_vid(self.vid):
            raise MatchError(f"invalid VLAN VID {self.vid}: must be in range 0-{_MAX_VLAN_VID}")
        return f"dl_vlan={self.vid}"

    def __repr__(self) -> str:
        if self.vid == VLAN_NONE:
            return "data_link_vlan(VLAN_NONE)"
        return f"data_link_vlan({self.vid})"


def data_link_vlan(vid: int) -> DataLinkVLANMatch:
    """Match packets with the given VLAN ID; ``VLAN_NONE`` matches untagged packets."""
    return DataLinkVLANMatch(vid)


@dataclass(frozen=True, repr=False)
class DataLinkVLANPCPMatch(Match):
    """Match on a VLAN priority code point."""

    pcp: int

    def marshal_text(self) -> str:
        if not _valid_vlan_pcp(self.pcp):
            raise MatchError(f"invalid VLAN PCP {self.pcp}: must be in range 0-{_MAX_VLAN_PCP}")
        return f"dl_vlan_pcp={self.pcp}"

    def __repr__(self) -> str:
        return f"data_link_vlan_pcp({self.pcp})"


def data_link_vlan_pcp(pcp: int) -> DataLinkVLANPCPMatch:
    """Match packets with the given VLAN PCP."""
    return DataLinkVLANPCPMatch(pcp)


@dataclass(frozen=True, repr=False)
class VLANTCIMatch(Match):
    """Match on VLAN tag control information with an optional mask."""

    tci: int
    mask: int = 0
    key: str = "vlan_tci"

    def marshal_text(self) -> str:
        if self.mask != 0:
            return f"{self.key}=0x{self.tci:04x}/0x{self.mask:04x}"
        return f"{self.key}=0x{self.tci:04x}"

    def __repr__(self) -> str:
        return f"{self.key}(0x{self.tci:04x}, 0x{self.mask:04x})"


def vlan_tci(tci: int, mask: int) -> VLANTCIMatch:
    """Match the outer VLAN TCI; a mask of 0 matches exactly."""
    return VLANTCIMatch(tci, mask, "vlan_tci")


def vlan_tci1(tci: int, mask: int) -> VLANTCIMatch:
    """Match the ``vlan_tci1`` field; a mask of 0 matches exactly."""
    return VLANTCIMatch(tci, mask, "vlan_tci1")


@dataclass(frozen=True, repr=False)
class ARPOperationMatch(Match):
    """Match on an ARP operation code, without validation."""

    oper: int

    def marshal_text(self) -> str:
        return f"arp_op={self.oper}"

    def __repr__(self) -> str:
        return f"arp_operation({self.oper})"


def arp_operation(oper: int) -> ARPOperationMatch:
    """Match packets with the given ARP operation."""
    return ARPOperationMatch(oper)


@dataclass(frozen=True, repr=False)
class ArpOpMatch(Match):
    """Match on an ARP operation code, which must be a known operation."""

    op: int

    def marshal_text(self) -> str:
        if self.op not in _ARP_OPS:
            raise MatchError(
                f"invalid ARP operation {self.op}: must be in range "
                f"{_ARP_OPS.start}-{_ARP_OPS.stop - 1}"
            )
        return f"arp_op={self.op}"

    def __repr__(self) -> str:
        return f"arp_op({self.op})"


def arp_op(op: int) -> ArpOpMatch:
    """Match packets with the given validated ARP operation."""
    return ArpOpMatch(op)


def _hw_repr(name: str, addr: bytes) -> str:
    return f"{name}({bytes(addr)!r})"


@dataclass(frozen=True, repr=False)
class ARPHardwareAddressMatch(Match):
    """Match on the ARP source (SHA) or target (THA) hardware address."""

    direction: Direction
    addr: bytes

    def marshal_text(self) -> str:
        key = "arp_sha" if self.direction is Direction.SOURCE else "arp_tha"
        return match_ethernet_hardware_address(key, self.addr)

    def __repr__(self) -> str:
        if self.direction is Direction.SOURCE:
            return _hw_repr("arp_source_hardware_address", self.addr)
        return _hw_repr("arp_target_hardware_address", self.addr)


def arp_source_hardware_address(addr: bytes) -> ARPHardwareAddressMatch:
    """Match packets whose ARP source hardware address is ``addr``."""
    return ARPHardwareAddressMatch(Direction.SOURCE, bytes(addr))


def arp_target_hardware_address(addr: bytes) -> ARPHardwareAddressMatch:
    """Match packets whose ARP target hardware address is ``addr``."""
    return ARPHardwareAddressMatch(Direction.DESTINATION, bytes(addr))


@dataclass(frozen=True, repr=False)
class ARPProtocolAddressMatch(Match):
    """Match on the ARP source (SPA) or target (TPA) IPv4 address or block."""

    direction: Direction
    ip: str

    def marshal_text(self) -> str:
        key = "arp_spa" if self.direction is Direction.SOURCE else "arp_tpa"
        return match_ipv4_address_or_cidr(key, self.ip)

    def __repr__(self) -> str:
        if self.direction is Direction.SOURCE:
            return f"arp_source_protocol_address({self.ip!r})"
        return f"arp_target_protocol_address({self.ip!r})"


def arp_source_protocol_address(ip: str) -> ARPProtocolAddressMatch:
    """Match packets whose ARP source protocol address matches ``ip``."""
    return ARPProtocolAddressMatch(Direction.SOURCE, ip)


def arp_target_protocol_address(ip: str) -> ARPProtocolAddressMatch:
    """Match packets whose ARP target protocol address matches ``ip``."""
    return ARPProtocolAddressMatch(Direction.DESTINATION, ip)


@dataclass(frozen=True, repr=False)
class NeighborDiscoveryLinkLayerMatch(Match):
    """Match on an IPv6 neighbour discovery source or target link-layer address."""

    direction: Direction
    addr: bytes

    def marshal_text(self) -> str:
        key = "nd_sll" if self.direction is Direction.SOURCE else "nd_tll"
        return match_ethernet_hardware_address(key, self.addr)

    def __repr__(self) -> str:
        if self.direction is Direction.SOURCE:
            return _hw_repr("neighbor_discovery_source_link_layer", self.addr)
        return _hw_repr("neighbor_discovery_target_link_layer", self.addr)


def neighbor_discovery_source_link_layer(addr: bytes) -> NeighborDiscoveryLinkLayerMatch:
    """Match neighbour solicitations with source link-layer address ``addr``."""
    return NeighborDiscoveryLinkLayerMatch(Direction.SOURCE, bytes(addr))


def neighbor_discovery_target_link_layer(addr: bytes) -> NeighborDiscoveryLinkLayerMatch:
    """Match neighbour solicitations with target link-layer address ``addr``."""
    return NeighborDiscoveryLinkLayerMatch(Direction.DESTINATION, bytes(addr))