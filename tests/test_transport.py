import pytest

from vswitchflow.base import MatchError
from vswitchflow.transport import (
    CTState,
    TCPFlag,
    conjunction_id,
    connection_tracking_mark,
    connection_tracking_state,
    connection_tracking_zone,
    field_match,
    in_port_match,
    metadata,
    metadata_with_mask,
    set_state,
    set_tcp_flag,
    tcp_flags,
    transport_destination_masked_port,
    transport_destination_port,
    transport_source_masked_port,
    transport_source_port,
    tunnel_dst,
    tunnel_flags,
    tunnel_gbp,
    tunnel_gbp_flags,
    tunnel_id,
    tunnel_id_with_mask,
    tunnel_src,
    tunnel_tos,
    tunnel_ttl,
    udp_destination_masked_port,
    udp_destination_port,
    udp_source_masked_port,
    udp_source_port,
    unset_state,
    unset_tcp_flag,
)


@pytest.mark.parametrize(
    "match, out",
    [
        (transport_source_port(80), "tp_src=80"),
        (transport_source_port(65535), "tp_src=65535"),
        (transport_destination_port(22), "tp_dst=22"),
        (transport_destination_port(8080), "tp_dst=8080"),
        (transport_source_masked_port(0x10, 0xFFF0), "tp_src=0x0010/0xfff0"),
        (transport_destination_masked_port(0x10, 0xFFF0), "tp_dst=0x0010/0xfff0"),
    ],
)
def test_transport(match, out):
    assert match.marshal_text() == out


@pytest.mark.parametrize(
    "match, out",
    [
        (udp_source_port(80), "udp_src=80"),
        (udp_source_port(65535), "udp_src=65535"),
        (udp_destination_port(22), "udp_dst=22"),
        (udp_destination_port(8080), "udp_dst=8080"),
        (udp_source_masked_port(0x10, 0xFFF0), "udp_src=0x0010/0xfff0"),
        (udp_destination_masked_port(0x10, 0xFFF0), "udp_dst=0x0010/0xfff0"),
    ],
)
def test_udp(match, out):
    assert match.marshal_text() == out


@pytest.mark.parametrize(
    "match, out",
    [
        (connection_tracking_state(set_state(CTState.NEW)), "ct_state=+new"),
        (
            connection_tracking_state(set_state(CTState.NEW), unset_state(CTState.TRACKED)),
            "ct_state=+new-trk",
        ),
    ],
)
def test_connection_tracking_state(match, out):
    assert match.marshal_text() == out


@pytest.mark.parametrize(
    "match, out",
    [
        (tcp_flags(set_tcp_flag(TCPFlag.SYN)), "tcp_flags=+syn"),
        (
            tcp_flags(set_tcp_flag(TCPFlag.SYN), unset_tcp_flag(TCPFlag.ACK)),
            "tcp_flags=+syn-ack",
        ),
    ],
)
def test_tcp_flags(match, out):
    assert match.marshal_text() == out


@pytest.mark.parametrize(
    "match, out",
    [
        (connection_tracking_mark(10, 0), "ct_mark=0x0000000a"),
        (connection_tracking_mark(0x1000, 0x1000), "ct_mark=0x00001000/0x00001000"),
    ],
)
def test_connection_tracking_mark(match, out):
    assert match.marshal_text() == out


def test_connection_tracking_zone():
    assert connection_tracking_zone(1).marshal_text() == "ct_zone=1"


@pytest.mark.parametrize("num, out", [(1, "conj_id=1"), (11111, "conj_id=11111")])
def test_conjunction_id(num, out):
    assert conjunction_id(num).marshal_text() == out


@pytest.mark.parametrize(
    "match, out",
    [
        (tunnel_id(0xA), "tun_id=0xa"),
        (tunnel_id(0xFFFFFFFFFFFFFFFF), "tun_id=0xffffffffffffffff"),
        (tunnel_id_with_mask(0xA0, 0xF0), "tun_id=0xa0/0xf0"),
        (tunnel_id_with_mask(0xA0, 0x5A), "tun_id=0xa0/0x5a"),
        (tunnel_id_with_mask(0xA0, -1), "tun_id=0xa0/0xffffffffffffffff"),
    ],
)
def test_tunnel_id(match, out):
    assert match.marshal_text() == out


@pytest.mark.parametrize(
    "match, out",
    [
        (metadata(0xA), "metadata=0xa"),
        (metadata(0xFFFFFFFFFFFFFFFF), "metadata=0xffffffffffffffff"),
        (metadata_with_mask(0xA0, 0xF0), "metadata=0xa0/0xf0"),
    ],
)
def test_metadata(match, out):
    assert match.marshal_text() == out


@pytest.mark.parametrize(
    "field, value, out",
    [
        ("nw_src", "nw_dst", "nw_src=nw_dst"),
        ("dl_type", "0x0800", "dl_type=0x0800"),
        ("nw_dst", "1.2.3.4", "nw_dst=1.2.3.4"),
    ],
)
def test_field_match(field, value, out):
    assert field_match(field, value).marshal_text() == out


@pytest.mark.parametrize(
    "match, out",
    [
        (tunnel_src("192.168.1.1"), "tun_src=192.168.1.1"),
        (tunnel_dst("10.0.0.0/8"), "tun_dst=10.0.0.0/8"),
    ],
)
def test_tunnel_address(match, out):
    assert match.marshal_text() == out


@pytest.mark.parametrize(
    "match",
    [tunnel_src("foo"), tunnel_dst("2001:db8::1"), tunnel_src("2001:db8::1/128")],
)
def test_tunnel_address_invalid(match):
    with pytest.raises(MatchError):
        match.marshal_text()


@pytest.mark.parametrize(
    "match, out",
    [
        (tunnel_ttl(64), "tun_ttl=64"),
        (tunnel_tos(4), "tun_tos=4"),
        (tunnel_gbp(100), "tun_gbp_id=100"),
        (tunnel_gbp_flags(1), "tun_gbp_flags=1"),
        (tunnel_flags(2), "tun_flags=2"),
        (in_port_match(7), "in_port=7"),
    ],
)
def test_integer_matches(match, out):
    assert match.marshal_text() == out


def test_state_helpers():
    assert set_state(CTState.ESTABLISHED) == "+est"
    assert unset_state(CTState.RELATED) == "-rel"
    assert set_tcp_flag(TCPFlag.FIN) == "+fin"
    assert unset_tcp_flag(TCPFlag.RST) == "-rst"


@pytest.mark.parametrize(
    "match, text",
    [
        (transport_source_port(80), "transport_source_port(80)"),
        (transport_destination_port(80), "transport_destination_port(80)"),
        (
            transport_source_masked_port(0x10, 0xFFF0),
            "transport_source_masked_port(0x10, 0xfff0)",
        ),
        (
            transport_destination_masked_port(0x10, 0xFFF0),
            "transport_destination_masked_port(0x10, 0xfff0)",
        ),
        (udp_source_port(53), "udp_source_port(53)"),
        (
            connection_tracking_state(set_state(CTState.NEW), unset_state(CTState.ESTABLISHED)),
            'connection_tracking_state("+new", "-est")',
        ),
        (
            tcp_flags(set_tcp_flag(TCPFlag.SYN), unset_tcp_flag(TCPFlag.ACK)),
            'tcp_flags("+syn", "-ack")',
        ),
        (tunnel_id(0xA), "tunnel_id(0xa)"),
        (tunnel_id_with_mask(0xA, 0x0F), "tunnel_id_with_mask(0xa, 0xf)"),
        (conjunction_id(123), "conjunction_id(123)"),
    ],
)
def test_repr(match, text):
    assert repr(match) == text


def test_equal_matches_compare_equal():
    assert transport_destination_masked_port(0x10, 0xFFF0) == transport_destination_masked_port(
        0x10, 0xFFF0
    )
    assert udp_destination_masked_port(0x10, 0xFFF0) != transport_destination_masked_port(
        0x10, 0xFFF0
    )