import pytest

from vswitchflow.common import PortAction
from vswitchflow.matchflow import ANY_TABLE, MatchFlow, MatchFlowError, Protocol
from vswitchflow.openflow import (
    FlowTransaction,
    NotCommittedError,
    OpenFlowService,
    TransactionDiscardedError,
    parse_each,
    parse_each_line,
)


class _FlowError(ValueError):
    pass


class _StubFlow:
    def __init__(self, text, error=None):
        self.text = text
        self.error = error

    def marshal_text(self):
        if self.error is not None:
            raise self.error
        return self.text


class _Recorder:
    def __init__(self, output=b""):
        self.output = output
        self.calls = []
        self.stdin = None

    def run(self, command, *args):
        self.calls.append((command, list(args)))
        return self.output

    def pipe(self, stdin, command, *args):
        self.stdin = stdin
        self.calls.append((command, list(args)))
        return self.output


def _service(recorder, flags=()):
    return OpenFlowService(recorder.run, recorder.pipe, flags)


def test_add_flow_invalid_flow():
    recorder = _Recorder()
    error = _FlowError("no actions")
    with pytest.raises(_FlowError):
        _service(recorder).add_flow("foo", _StubFlow("", error))
    assert recorder.calls == []


def test_add_flow_no_flags():
    recorder = _Recorder()
    text = "priority=10,ip,table=0,idle_timeout=0,actions=drop"
    _service(recorder).add_flow("br0", _StubFlow(text))
    assert recorder.calls == [("ovs-ofctl", ["add-flow", "br0", text])]


def test_add_flow_with_flags():
    recorder = _Recorder()
    text = "priority=10,ip,table=0,idle_timeout=0,actions=drop"
    _service(recorder, ["--flow-format=NXM+table_id"]).add_flow("br0", _StubFlow(text))
    assert recorder.calls == [
        ("ovs-ofctl", ["add-flow", "--flow-format=NXM+table_id", "br0", text])
    ]


def test_add_flow_bundle_ok():
    recorder = _Recorder()
    flows = [
        _StubFlow("priority=10,ip,table=0,idle_timeout=0,actions=drop"),
        _StubFlow("priority=20,ipv6,table=0,idle_timeout=0,actions=drop"),
        _StubFlow("priority=30,icmp,table=0,idle_timeout=0,actions=drop"),
        _StubFlow("priority=40,icmp6,table=0,idle_timeout=0,actions=drop"),
    ]
    match_flows = [MatchFlow(cookie=0xDEADBEEF)]

    def transaction(tx):
        for flow in flows:
            tx.add(flow)
        for flow in match_flows:
            tx.delete(flow)
        tx.commit()

    _service(recorder, ["--flow-format=NXM+table_id"]).add_flow_bundle("br0", transaction)

    assert recorder.calls == [
        (
            "ovs-ofctl",
            ["--bundle", "add-flow", "--flow-format=NXM+table_id", "br0", "-"],
        )
    ]
    lines = recorder.stdin.decode().splitlines()
    assert lines == [
        "add priority=10,ip,table=0,idle_timeout=0,actions=drop",
        "add priority=20,ipv6,table=0,idle_timeout=0,actions=drop",
        "add priority=30,icmp,table=0,idle_timeout=0,actions=drop",
        "add priority=40,icmp6,table=0,idle_timeout=0,actions=drop",
        "delete cookie=0x00000000deadbeef/-1,table=0",
    ]


def test_add_flow_bundle_not_committed():
    recorder = _Recorder()
    with pytest.raises(NotCommittedError) as info:
        _service(recorder).add_flow_bundle("br0", lambda tx: tx.add(_StubFlow("ip,actions=drop")))
    assert str(info.value) == "flow bundle not committed, discarding flows"
    assert recorder.calls == []


def test_add_flow_bundle_commit_error():
    recorder = _Recorder()
    error = _FlowError("no actions")
    flows = [_StubFlow("", error), _StubFlow("priority=20,ipv6,actions=drop")]

    def transaction(tx):
        for flow in flows:
            tx.add(flow)
        tx.commit()

    with pytest.raises(_FlowError) as info:
        _service(recorder).add_flow_bundle("br0", transaction)
    assert info.value is error
    assert recorder.calls == []


def test_add_flow_bundle_discard():
    recorder = _Recorder()
    cause = ValueError("some error which caused transaction discard")

    def transaction(tx):
        tx.add(_StubFlow("priority=10,ip,actions=drop"))
        tx.discard(cause)

    with pytest.raises(TransactionDiscardedError) as info:
        _service(recorder).add_flow_bundle("br0", transaction)
    assert "some error which caused transaction discard" in str(info.value)
    assert info.value.__cause__ is cause


def test_transaction_discard_clears_flows():
    tx = FlowTransaction()
    tx.add(_StubFlow("ip,actions=drop"))
    with pytest.raises(TransactionDiscardedError):
        tx.discard("boom")
    assert tx.flows == []


def test_transaction_ignores_after_error():
    tx = FlowTransaction()
    tx.delete(MatchFlow(table=ANY_TABLE))
    tx.add(_StubFlow("ip,actions=drop"))
    assert tx.flows == []
    with pytest.raises(MatchFlowError):
        tx.commit()
    assert tx.committed is False


def test_del_flows_ok():
    recorder = _Recorder()
    _service(recorder).del_flows("br0", MatchFlow(protocol=Protocol.IPV4, table=ANY_TABLE))
    assert recorder.calls == [("ovs-ofctl", ["del-flows", "br0", "ip"])]


def test_del_flows_flush():
    recorder = _Recorder()
    _service(recorder).del_flows("br0", None)
    assert recorder.calls == [("ovs-ofctl", ["del-flows", "br0"])]


def test_del_flows_invalid_match_flow():
    recorder = _Recorder()
    with pytest.raises(MatchFlowError):
        _service(recorder).del_flows("br0", MatchFlow(table=ANY_TABLE))
    assert recorder.calls == []


@pytest.mark.parametrize("action", list(PortAction))
def test_mod_port(action):
    recorder = _Recorder()
    _service(recorder).mod_port("br0", "bond0", action)
    assert recorder.calls == [("ovs-ofctl", ["mod-port", "br0", "bond0", action.value])]


def test_runner_error_propagates():
    def failing(command, *args):
        raise OSError("exit status 1")

    with pytest.raises(OSError):
        OpenFlowService(failing).del_flows("br0")


def test_parse_each_empty():
    with pytest.raises(EOFError):
        parse_each(b"", b"OFPST_PORT reply")


def test_parse_each_incorrect_prefix():
    with pytest.raises(EOFError):
        parse_each(b"foo", b"OFPST_PORT reply")


def test_parse_each_odd_line_count():
    with pytest.raises(EOFError):
        parse_each(b"OFPST_PORT reply\nfoo", b"OFPST_PORT reply")


def test_parse_each_two_line_records():
    data = (
        b"OFPST_PORT reply (xid=0x1): 2 ports\n"
        b"port  1: rx pkts=1\n"
        b"tx pkts=1\n"
        b"port  2: rx pkts=2\n"
        b"tx pkts=2\n"
    )
    assert parse_each(data, b"OFPST_PORT reply") == [
        b"port  1: rx pkts=1tx pkts=1",
        b"port  2: rx pkts=2tx pkts=2",
    ]


def test_parse_each_openflow14_skips_duration():
    data = (
        b"OFPST_PORT reply (OF1.4) (xid=0x1): 2 ports\n"
        b"port  1: rx pkts=1\n"
        b"tx pkts=1\n"
        b"duration=1.001s\n"
        b"port  2: rx pkts=2\n"
        b"tx pkts=2\n"
        b"duration=2.002s\n"
    )
    assert parse_each(data, b"OFPST_PORT reply") == [
        b"port  1: rx pkts=1tx pkts=1",
        b"port  2: rx pkts=2tx pkts=2",
    ]


def test_parse_each_custom_stats():
    data = (
        b"OFPST_PORT reply (OF1.4) (xid=0x1): 1 ports\n"
        b"port  1: rx pkts=1\n"
        b"tx pkts=1\n"
        b"duration=1.001s\n"
        b"CUSTOM Statistics\n"
        b"a=1\n"
    )
    assert parse_each(data, b"OFPST_PORT reply") == [b"port  1: rx pkts=1tx pkts=1"]


def test_parse_each_missing_duration_line():
    data = b"OFPST_PORT reply (OF1.4)\nport 1\ntx\n"
    with pytest.raises(EOFError):
        parse_each(data, b"OFPST_PORT reply")


def test_parse_each_line_returns_lines():
    data = (
        b"NXST_FLOW reply (xid=0x4):\n"
        b" cookie=0x0, table=0, priority=820 actions=output:1\n"
        b" cookie=0x0, table=50, priority=110 actions=drop\r\n"
    )
    assert parse_each_line(data, b"ST_FLOW reply") == [
        b" cookie=0x0, table=0, priority=820 actions=output:1",
        b" cookie=0x0, table=50, priority=110 actions=drop",
    ]


def test_parse_each_line_prefix_anywhere_in_first_line():
    data = b"OFPST_FLOW reply (OF1.5) (xid=0x2):\n priority=0 actions=NORMAL\n"
    assert parse_each_line(data, b"ST_FLOW reply") == [b" priority=0 actions=NORMAL"]


@pytest.mark.parametrize("data", [b"", b"foo\nbar\n"])
def test_parse_each_line_errors(data):
    with pytest.raises(EOFError):
        parse_each_line(data, b"ST_FLOW reply")