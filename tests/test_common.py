import pytest

from vswitchflow.common import (
    FailMode,
    InterfaceType,
    OvsError,
    PortAction,
    is_port_not_exist,
)


@pytest.mark.parametrize(
    "err, expected",
    [
        (Exception("foo"), False),
        (OvsError(b"bar", Exception("exit status 1")), False),
        (OvsError(b"ovs-vsctl: no port named foo", Exception("exit status foo")), False),
        (OvsError(b"ovs-vsctl: no port named foo", Exception("exit status 1")), True),
    ],
    ids=["not type Error", "wrong out", "wrong err", "ok"],
)
def test_is_port_not_exist(err, expected):
    assert is_port_not_exist(err) is expected


def test_is_port_not_exist_accepts_string_err():
    assert is_port_not_exist(OvsError(b"ovs-vsctl: no port named foo", "exit status 1"))


def test_ovs_error_text_joins_err_and_output():
    err = OvsError(b"bar", Exception("exit status 1"))
    assert str(err) == "exit status 1: bar"


def test_ovs_error_keeps_fields():
    cause = Exception("exit status 1")
    err = OvsError(b"output", cause)
    assert err.out == b"output"
    assert err.err is cause


def test_ovs_error_is_raisable():
    with pytest.raises(OvsError) as info:
        raise OvsError(b"ovs-vsctl: no port named foo", "exit status 1")
    assert is_port_not_exist(info.value)


@pytest.mark.parametrize("enum_cls", [FailMode, InterfaceType, PortAction])
def test_enum_text_is_value(enum_cls):
    for member in enum_cls:
        assert str(member) == member.value
        assert f"{member}" == member.value
        assert enum_cls(member.value) is member


@pytest.mark.parametrize(
    "text",
    ["up", "down", "stp", "no-stp", "receive", "no-receive", "receive-stp",
     "no-receive-stp", "forward", "no-forward", "flood", "no-flood",
     "packet-in", "no-packet-in"],
)
def test_port_action_lookup(text):
    assert str(PortAction(text)) == text


def test_unknown_port_action_rejected():
    with pytest.raises(ValueError):
        PortAction("sideways")