"""Base types and address helpers shared by OpenFlow match statements."""

from __future__ import annotations

import ipaddress
import json
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum

_ETHERNET_ADDR_LEN = 6

_HEX2 = re.compile(r"[0-9a-fA-F]{2}")
_HEX4 = re.compile(r"[0-9a-fA-F]{4}")
_DIGITS = re.compile(r"[0-9]+")

_IPAddress = ipaddress.IPv4Address | ipaddress.IPv6Address


class MatchError(ValueError):
    """A match value cannot be turned into its textual form."""


class Direction(str, Enum):
    """Which side of a packet a match refers to."""

    SOURCE = "src"
    DESTINATION = "dst"

    def __str__(self) -> str:
        return self.value


class Match(ABC):
    """A packet matching statement that renders to OpenFlow text."""

    @abstractmethod
    def marshal_text(self) -> str:
        """Return the textual form of the match."""


@dataclass(frozen=True, repr=False)
class IntegerMatch(Match):
    """A match of a single field against a decimal integer."""

    key: str
    value: int
    name: str = ""

    def marshal_text(self) -> str:
        return f"{self.key}={self.value}"

    def __repr__(self) -> str:
        return f"{self.name or self.key}({self.value})"


def parse_mac(value: str) -> bytes:
    """Parse a hardware address of 6, 8 or 20 octets.

    Accepts colon or hyphen separated octets and dot separated groups
    of four hex digits.
    """
    if len(value) >= 14:
        if value[2] in ":-":
            groups = value.split(value[2])
            if len(groups) in (6, 8, 20) and all(_HEX2.fullmatch(g) for g in groups):
                return bytes(int(g, 16) for g in groups)
        elif value[4] == ".":
            groups = value.split(".")
            if len(groups) in (3, 4, 10) and all(_HEX4.fullmatch(g) for g in groups):
                return bytes.fromhex("".join(groups))
    raise MatchError(f"address {value}: invalid MAC address")


def format_mac(addr: bytes) -> str:
    """Render a hardware address as lower-case colon separated octets."""
    return ":".join(f"{octet:02x}" for octet in addr)


def _parse_ip(text: str) -> _IPAddress | None:
    if "%" in text or text != text.strip():
        return None
    try:
        return ipaddress.ip_address(text)
    except ValueError:
        return None


def _parse_cidr(text: str) -> _IPAddress | None:
    addr, sep, prefix = text.partition("/")
    if not sep:
        return None
    ip = _parse_ip(addr)
    if ip is None or not _DIGITS.fullmatch(prefix):
        return None
    bits = 32 if ip.version == 4 else 128
    if int(prefix) > bits:
        return None
    return ip


def _is_ipv4(ip: _IPAddress) -> bool:
    return ip.version == 4 or ip.ipv4_mapped is not None


def _format_ip(ip: _IPAddress) -> str:
    if ip.version == 6 and ip.ipv4_mapped is not None:
        return str(ip.ipv4_mapped)
    return ip.compressed


def match_ipv4_address_or_cidr(key: str, ip: str) -> str:
    """Render ``key=ip`` where ``ip`` is an IPv4 address or CIDR block."""
    error = MatchError(f"{json.dumps(ip)} is not a valid IPv4 address or IPv4 CIDR block")

    network = _parse_cidr(ip)
    if network is not None:
        if not _is_ipv4(network):
            raise error
        return f"{key}={ip}"

    addr = _parse_ip(ip)
    if addr is not None:
        if not _is_ipv4(addr):
            raise error
        return f"{key}={_format_ip(addr)}"

    raise error


def match_ipv6_address_or_cidr(key: str, ip: str) -> str:
    """Render ``key=ip`` where ``ip`` is an IPv6 address or CIDR block."""
    error = MatchError(f"{json.dumps(ip)} is not a valid IPv6 address or IPv6 CIDR block")

    network = _parse_cidr(ip)
    if network is not None:
        if _is_ipv4(network):
            raise error
        return f"{key}={ip}"

    addr = _parse_ip(ip)
    if addr is not None:
        if _is_ipv4(addr):
            raise error
        return f"{key}={_format_ip(addr)}"

    raise error


def match_ethernet_hardware_address(key: str, addr: bytes) -> str:
    """Render ``key=addr`` for a 6-octet Ethernet hardware address."""
    if len(addr) != _ETHERNET_ADDR_LEN:
        raise MatchError(
            f"hardware address must be {_ETHERNET_ADDR_LEN} octets, but got {len(addr)}"
        )
    return f"{key}={format_mac(addr)}"