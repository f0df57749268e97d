"""Parsing of ``key=value`` OpenFlow match fields into match objects."""

from __future__ import annotations

import json
import re
from collections.abc import Callable

from .base import Match, MatchError, parse_mac
from .datalink import (
    arp_op,
    arp_source_hardware_address,
    arp_source_protocol_address,
    arp_target_hardware_address,
    arp_target_protocol_address,
    data_link_destination,
    data_link_source,
    data_link_type,
    data_link_vlan,
    data_link_vlan_pcp,
    neighbor_discovery_source_link_layer,
    neighbor_discovery_target_link_layer,
    vlan_tci,
    vlan_tci1,
)
from .network import (
    icmp6_code,
    icmp6_type,
    icmp_code,
    icmp_type,
    ipv6_destination,
    ipv6_label,
    ipv6_source,
    neighbor_discovery_target,
    network_destination,
    network_ecn,
    network_protocol,
    network_source,
    network_tos,
    network_ttl,
)
from .transport import (
    conjunction_id,
    connection_tracking_mark,
    connection_tracking_state,
    connection_tracking_zone,
    in_port_match,
    metadata,
    metadata_with_mask,
    tcp_flags,
    transport_destination_masked_port,
    transport_source_masked_port,
    tunnel_flags,
    tunnel_gbp,
    tunnel_gbp_flags,
    tunnel_id,
    tunnel_id_with_mask,
    tunnel_tos,
    tunnel_ttl,
    udp_destination_masked_port,
    udp_source_masked_port,
)

__all__ = ["parse_match"]

_HEX_PREFIX = "0x"

_MAX_UINT8 = 0xFF
_MAX_UINT16 = 0xFFFF
_MAX_UINT32 = 0xFFFF_FFFF
_MAX_INT32 = 0x7FFF_FFFF

_DECIMAL = re.compile(r"[+-]?[0-9]+")
_HEX = re.compile(r"[0-9a-fA-F]+")

_INT64_MIN = -(1 << 63)
_INT64_MAX = (1 << 63) - 1


def _atoi(text: str) -> int:
    """Parse a signed decimal integer that fits in 64 bits."""
    if not _DECIMAL.fullmatch(text):
        raise MatchError(f"invalid integer {json.dumps(text)}")
    value = int(text)
    if not _INT64_MIN <= value <= _INT64_MAX:
        raise MatchError(f"integer {json.dumps(text)} out of range")
    return value


def _parse_hex(text: str, bits: int) -> int:
    """Parse hexadecimal text, with an optional ``0x`` prefix, into an unsigned value."""
    digits = text.removeprefix(_HEX_PREFIX)
    if not _HEX.fullmatch(digits):
        raise MatchError(f"invalid hexadecimal integer {json.dumps(text)}")
    value = int(digits, 16)
    if value >= 1 << bits:
        raise MatchError(f"hexadecimal integer {json.dumps(text)} out of range")
    return value


def _parse_hex_uint16(text: str) -> int:
    return _parse_hex(text, 32) & _MAX_UINT16


def _parse_hex_uint32(text: str) -> int:
    return _parse_hex(text, 32)


def _parse_hex_uint64(text: str) -> int:
    return _parse_hex(text, 64)


def _parse_clamp_int(text: str, limit: int) -> int:
    value = _atoi(text)
    if value > limit:
        raise MatchError(f"integer {value} too large; {value} > {limit}")
    return value


_INT_MATCHES: dict[str, tuple[int, Callable[[int], Match]]] = {
    "icmp_type": (_MAX_UINT8, lambda v: icmp_type(v & _MAX_UINT8)),
    "icmp_code": (_MAX_UINT8, lambda v: icmp_code(v & _MAX_UINT8)),
    "icmpv6_type": (_MAX_UINT8, lambda v: icmp6_type(v & _MAX_UINT8)),
    "icmpv6_code": (_MAX_UINT8, lambda v: icmp6_code(v & _MAX_UINT8)),
    "nw_proto": (_MAX_UINT8, lambda v: network_protocol(v & _MAX_UINT8)),
    "ct_zone": (_MAX_UINT16, lambda v: connection_tracking_zone(v & _MAX_UINT16)),
    "conj_id": (_MAX_UINT32, lambda v: conjunction_id(v & _MAX_UINT32)),
    "nw_ecn": (_MAX_INT32, network_ecn),
    "nw_ttl": (_MAX_INT32, network_ttl),
    "tun_ttl": (_MAX_INT32, tunnel_ttl),
    "tun_tos": (_MAX_INT32, tunnel_tos),
    "nw_tos": (_MAX_INT32, network_tos),
    "tun_gbp_id": (_MAX_INT32, tunnel_gbp),
    "tun_gbp_flags": (_MAX_INT32, tunnel_gbp_flags),
    "tun_flags": (_MAX_INT32, tunnel_flags),
    "in_port": (_MAX_INT32, in_port_match),
}

_PORT_MATCHES: dict[str, Callable[[int, int], Match]] = {
    "tp_src": transport_source_masked_port,
    "tp_dst": transport_destination_masked_port,
    "udp_src": udp_source_masked_port,
    "udp_dst": udp_destination_masked_port,
}

_MAC_MATCHES: dict[str, Callable[[bytes], Match]] = {
    "arp_sha": arp_source_hardware_address,
    "arp_tha": arp_target_hardware_address,
    "nd_sll": neighbor_discovery_source_link_layer,
    "nd_tll": neighbor_discovery_target_link_layer,
}

_ADDRESS_MATCHES: dict[str, Callable[[str], Match]] = {
    "arp_spa": arp_source_protocol_address,
    "arp_tpa": arp_target_protocol_address,
    "dl_src": data_link_source,
    "dl_dst": data_link_destination,
    "nd_target": neighbor_discovery_target,
    "ipv6_src": ipv6_source,
    "ipv6_dst": ipv6_destination,
    "tun_ipv6_src": ipv6_source,
    "tun_ipv6_dst": ipv6_destination,
    "nw_src": network_source,
    "tun_src": network_source,
    "nw_dst": network_destination,
    "tun_dst": network_destination,
}


def _parse_port(key: str, value: str, limit: int) -> Match:
    parts = value.split("/")
    if len(parts) == 1:
        port, mask = _parse_clamp_int(value, limit), 0
    elif len(parts) == 2:
        numbers = []
        for part in parts:
            number = _parse_hex_uint64(part)
            if number > limit:
                raise MatchError(f"integer {number} too large; {number} > {limit}")
            numbers.append(number)
        port, mask = numbers
    else:
        raise MatchError(f"invalid value, no action matched for {key}={value}")
    return _PORT_MATCHES[key](port & _MAX_UINT16, mask & _MAX_UINT16)


def _parse_ct_state(value: str) -> Match:
    # "est|trk|dnat" => "+est+trk+dnat"
    if "|" in value:
        value = "+" + value.replace("|", "+")

    if "+" in value or "-" in value:
        value = value.replace("+", " +").replace("-", " -").strip(" ")
    else:
        value = "+" + value

    return connection_tracking_state(*value.split())


def _parse_tcp_flags(value: str) -> Match:
    try:
        _atoi(value)
    except MatchError:
        pass
    else:
        return tcp_flags(value)

    if len(value.encode("utf-8", errors="surrogatepass")) % 4 != 0:
        raise MatchError("tcp_flags length must be divisible by 4")

    flags: list[str] = []
    chunk: list[str] = []
    offset = 0
    for char in value:
        if offset and offset % 4 == 0:
            flags.append("".join(chunk))
            chunk = []
        chunk.append(char)
        offset += len(char.encode("utf-8", errors="surrogatepass"))
    flags.append("".join(chunk))

    return tcp_flags(*flags)


def _parse_decimal_or_hex16(value: str) -> int:
    if not value.startswith(_HEX_PREFIX):
        return _atoi(value)
    return _parse_hex_uint16(value)


def _parse_arp_op(value: str) -> Match:
    if not value.startswith(_HEX_PREFIX):
        if not value.isascii() or not value.isdigit():
            raise MatchError(f"invalid ARP operation {json.dumps(value)}")
        parsed = int(value)
        if parsed > _MAX_UINT16:
            raise MatchError(f"ARP operation {json.dumps(value)} out of range")
        return arp_op(parsed)
    return arp_op(_parse_hex_uint16(value))


def _parse_masked(
    name: str,
    value: str,
    width_mask: int,
    parse_hex: Callable[[str], int],
) -> list[int]:
    numbers = []
    for part in value.split("/"):
        if not part.startswith(_HEX_PREFIX):
            numbers.append(_atoi(part) & width_mask)
        else:
            numbers.append(parse_hex(part))
    if len(numbers) > 2:
        raise MatchError(f"invalid {name} match: {json.dumps(value)}")
    return numbers


def _masked_pair(
    name: str,
    value: str,
    width_mask: int,
    parse_hex: Callable[[str], int],
    build: Callable[[int, int], Match],
) -> Match:
    numbers = _parse_masked(name, value, width_mask, parse_hex)
    if len(numbers) == 1:
        return build(numbers[0], 0)
    return build(numbers[0], numbers[1])


def _masked_optional(
    name: str,
    value: str,
    exact: Callable[[int], Match],
    masked: Callable[[int, int], Match],
) -> Match:
    numbers = _parse_masked(name, value, (1 << 64) - 1, _parse_hex_uint64)
    if len(numbers) == 1:
        return exact(numbers[0])
    return masked(numbers[0], numbers[1])


def parse_match(key: str, value: str) -> Match | None:
    """Build the match for field ``key`` with text ``value``.

    Returns ``None`` when ``key`` is not a recognised match field and
    raises ``MatchError`` when ``value`` cannot be parsed.
    """
    if key in _MAC_MATCHES:
        return _MAC_MATCHES[key](parse_mac(value))
    if key == "arp_op":
        return _parse_arp_op(value)
    if key in _INT_MATCHES:
        limit, build = _INT_MATCHES[key]
        return build(_parse_clamp_int(value, limit))
    if key in _PORT_MATCHES:
        return _parse_port(key, value, _MAX_UINT16)
    if key in _ADDRESS_MATCHES:
        return _ADDRESS_MATCHES[key](value)
    if key == "ct_state":
        return _parse_ct_state(value)
    if key == "tcp_flags":
        return _parse_tcp_flags(value)
    if key == "dl_type":
        return data_link_type(_parse_hex_uint16(value))
    if key == "dl_vlan_pcp":
        return data_link_vlan_pcp(_parse_decimal_or_hex16(value))
    if key == "dl_vlan":
        return data_link_vlan(_parse_decimal_or_hex16(value))
    if key == "metadata":
        return _masked_optional("metadata", value, metadata, metadata_with_mask)
    if key == "ipv6_label":
        return _masked_pair("ipv6_label", value, _MAX_UINT32, _parse_hex_uint32, ipv6_label)
    if key == "vlan_tci1":
        return _masked_pair("vlan_tci1", value, _MAX_UINT16, _parse_hex_uint16, vlan_tci1)
    if key == "vlan_tci":
        return _masked_pair("vlan_tci", value, _MAX_UINT16, _parse_hex_uint16, vlan_tci)
    if key == "ct_mark":
        return _masked_pair(
            "ct_mark", value, _MAX_UINT32, _parse_hex_uint32, connection_tracking_mark
        )
    if key == "tun_id":
        return _masked_optional("tun_id", value, tunnel_id, tunnel_id_with_mask)
    return None