"""Shared Open vSwitch configuration values and the error raised by control programs."""

from __future__ import annotations

from enum import Enum


class _ValueEnum(str, Enum):
    """String enum whose text form is its value."""

    def __str__(self) -> str:
        return self.value


class FailMode(_ValueEnum):
    """Failure mode used when Open vSwitch cannot contact a controller."""

    STANDALONE = "standalone"
    SECURE = "secure"


class InterfaceType(_ValueEnum):
    """Network interface type recognised by Open vSwitch."""

    GRE = "gre"
    INTERNAL = "internal"
    PATCH = "patch"
    STT = "stt"
    VXLAN = "vxlan"
    DPDK = "dpdk"


class PortAction(_ValueEnum):
    """Port characteristic change applied through a mod-port request."""

    UP = "up"
    DOWN = "down"
    STP = "stp"
    NO_STP = "no-stp"
    RECEIVE = "receive"
    NO_RECEIVE = "no-receive"
    RECEIVE_STP = "receive-stp"
    NO_RECEIVE_STP = "no-receive-stp"
    FORWARD = "forward"
    NO_FORWARD = "no-forward"
    FLOOD = "flood"
    NO_FLOOD = "no-flood"
    PACKET_IN = "packet-in"
    NO_PACKET_IN = "no-packet-in"


class OvsError(Exception):
    """Failure of an Open vSwitch control program.

    ``out`` holds the combined output of the program and ``err`` the
    underlying failure, such as its exit status.
    """

    def __init__(self, out: bytes, err: BaseException | str) -> None:
        super().__init__(out, err)
        self.out = out
        self.err = err

    def __str__(self) -> str:
        return f"{self.err}: {self.out.decode(errors='replace')}"


_NO_PORT_PREFIX = b"ovs-vsctl: no port named "


def is_port_not_exist(err: BaseException) -> bool:
    """Report whether ``err`` was caused by asking about a port that does not exist."""
    if not isinstance(err, OvsError):
        return False
    return err.out.startswith(_NO_PORT_PREFIX) and str(err.err) == "exit status 1"