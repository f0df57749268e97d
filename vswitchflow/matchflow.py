"""Flow descriptions used to select existing OpenFlow flows, e.g. for deletion."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum

from .base import Match

__all__ = [
    "ANY_TABLE",
    "PORT_LOCAL",
    "Protocol",
    "MatchFlowError",
    "MatchFlow",
]

ANY_TABLE = -1
"""Special table value that matches flows in any table."""

PORT_LOCAL = -1
"""Special input port value rendered as the literal ``LOCAL`` port."""

_EMPTY_MATCH_FLOW = "match flow is empty"


class Protocol(str, Enum):
    """Protocol shorthands understood by Open vSwitch flow syntax."""

    ARP = "arp"
    ICMPV4 = "icmp"
    ICMPV6 = "icmp6"
    IPV4 = "ip"
    IPV6 = "ipv6"
    TCPV4 = "tcp"
    TCPV6 = "tcp6"
    UDPV4 = "udp"
    UDPV6 = "udp6"

    def __str__(self) -> str:
        return self.value


class MatchFlowError(ValueError):
    """A match flow could not be rendered or read.

    ``text`` is the offending string, if any, and ``err`` the reason.
    """

    def __init__(self, err: BaseException | str, text: str = "") -> None:
        super().__init__(err, text)
        self.err = err
        self.text = text

    def __str__(self) -> str:
        if not self.text:
            return str(self.err)
        return f"flow error due to string {json.dumps(self.text)}: {self.err}"


def _padded_hex(value: int) -> str:
    return f"0x{value:016x}"


@dataclass
class MatchFlow:
    """An OpenFlow flow selector, rendered to text for Open vSwitch."""

    protocol: Protocol | str = ""
    in_port: int = 0
    matches: list[Match] = field(default_factory=list)
    table: int = 0
    cookie: int = 0
    cookie_mask: int = 0
    """Mask applied to ``cookie``; when 0 the cookie is matched exactly."""

    def marshal_text(self) -> str:
        """Return the textual form of the flow selector."""
        matches = [match.marshal_text() for match in self.matches]

        parts: list[str] = []
        if self.protocol:
            parts.append(str(self.protocol))

        if self.in_port != 0:
            port = "LOCAL" if self.in_port == PORT_LOCAL else str(self.in_port)
            parts.append(f"in_port={port}")

        if matches:
            parts.append(",".join(matches))

        if self.cookie > 0 or self.cookie_mask > 0:
            mask = "-1" if self.cookie_mask == 0 else _padded_hex(self.cookie_mask)
            parts.append(f"cookie={_padded_hex(self.cookie)}/{mask}")

        if self.table != ANY_TABLE:
            parts.append(f"table={self.table}")

        text = ",".join(parts).strip(",")
        if not text:
            raise MatchFlowError(_EMPTY_MATCH_FLOW)
        return text