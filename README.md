# vswitchflow

vswitchflow builds the text forms of Open vSwitch OpenFlow match fields. It
reads `key=value` pairs taken from `ovs-ofctl` output back into match objects.
It also builds the arguments and flow bundles for a few `ovs-ofctl` requests.
Those requests go through command runners that you supply.

The package uses only the standard library.

## Installation

```
pip install vswitchflow
```

To run the test suite:

```
pip install "vswitchflow[test]"
pytest
```

## Matches

Every match has a `marshal_text()` method, which returns the text that
`ovs-ofctl` expects. A match that holds an invalid value raises
`vswitchflow.base.MatchError`. Invalid values include a bad hardware or IP
address, a VLAN ID outside 0–4095, a VLAN PCP outside 0–7, an `arp_op`
outside 1–4, and an IPv6 label wider than 20 bits.

```python
from vswitchflow.datalink import data_link_source, data_link_type, data_link_vlan, VLAN_NONE
from vswitchflow.network import network_destination, ipv6_source, icmp_type
from vswitchflow.transport import (
    transport_destination_port,
    transport_source_masked_port,
    connection_tracking_state,
    set_state,
    unset_state,
    CTState,
    tcp_flags,
    set_tcp_flag,
    unset_tcp_flag,
    TCPFlag,
    tunnel_id_with_mask,
)

data_link_source("00:00:5e:00:53:01").marshal_text()         # dl_src=00:00:5e:00:53:01
data_link_type(0x0806).marshal_text()                        # dl_type=0x0806
data_link_vlan(10).marshal_text()                            # dl_vlan=10
data_link_vlan(VLAN_NONE).marshal_text()                     # dl_vlan=0xffff
network_destination("192.0.2.0/24").marshal_text()           # nw_dst=192.0.2.0/24
ipv6_source("2001:db8::1").marshal_text()                    # ipv6_src=2001:db8::1
icmp_type(8).marshal_text()                                  # icmp_type=8
transport_destination_port(22).marshal_text()                # tp_dst=22
transport_source_masked_port(0x10, 0xFFF0).marshal_text()    # tp_src=0x0010/0xfff0
tunnel_id_with_mask(0xA0, 0xF0).marshal_text()               # tun_id=0xa0/0xf0

connection_tracking_state(
    set_state(CTState.NEW), unset_state(CTState.TRACKED)
).marshal_text()                                             # ct_state=+new-trk

tcp_flags(
    set_tcp_flag(TCPFlag.SYN), unset_tcp_flag(TCPFlag.ACK)
).marshal_text()                                             # tcp_flags=+syn-ack
```

The matches are grouped by module:

- `vswitchflow.datalink`: hardware addresses with an optional wildcard,
  EtherType, VLAN ID and PCP, VLAN TCI (`vlan_tci`, `vlan_tci1`), ARP
  operations, ARP hardware and protocol addresses, and neighbour discovery
  link-layer addresses.
- `vswitchflow.network`: IPv4 and IPv6 addresses or CIDR blocks, ECN, TOS,
  TTL, the protocol number, ICMP and ICMPv6 type and code, the neighbour
  discovery target, the IPv6 flow label, and `ip_frag` with `IPFragFlag`.
- `vswitchflow.transport`: TCP/transport and UDP ports, plain or masked,
  connection tracking state, mark and zone, conjunction ID, TCP flags,
  metadata, tunnel ID, tunnel addresses and fields, `in_port_match`, and
  `field_match` for any `field=value` pair.

ARP and neighbour discovery hardware addresses are given as bytes.
`vswitchflow.base.parse_mac` reads them from text, and `format_mac` turns them
back into text:

```python
from vswitchflow.base import parse_mac
from vswitchflow.datalink import arp_target_hardware_address

arp_target_hardware_address(parse_mac("00:00:5e:00:53:01")).marshal_text()
# arp_tha=00:00:5e:00:53:01
```

## Parsing matches

`vswitchflow.parser.parse_match(key, value)` takes one `key=value` pair, already
split, and returns the match it describes. For a key it does not recognise it
returns `None`. For a value it cannot parse it raises `MatchError`.

```python
from vswitchflow.parser import parse_match

parse_match("tp_dst", "0xea60/0xffe0").marshal_text()   # tp_dst=0xea60/0xffe0
parse_match("ct_state", "est|trk").marshal_text()       # ct_state=+est+trk
```

## Match flows

A `vswitchflow.matchflow.MatchFlow` selects existing flows. Its text form is
made of these parts, in this order:

1. the protocol (`Protocol`);
2. `in_port`, where `PORT_LOCAL` is written as `LOCAL`;
3. the matches;
4. the cookie and its mask, where a mask of 0 is written as `-1`;
5. the table.

`table` defaults to 0. Set it to `ANY_TABLE` to leave the table out. A flow
that renders to nothing raises `MatchFlowError`.

```python
from vswitchflow.matchflow import MatchFlow, ANY_TABLE
from vswitchflow.network import network_destination

MatchFlow(matches=[network_destination("192.0.2.1")], table=45).marshal_text()
# nw_dst=192.0.2.1,table=45
MatchFlow(cookie=10, table=ANY_TABLE).marshal_text()
# cookie=0x000000000000000a/-1
```

## Issuing requests

`vswitchflow.openflow.OpenFlowService` does not start any program itself. You
give it callables that do the work:

- `run(command, *args)`, which returns the output as bytes;
- optionally `pipe(stdin, command, *args)`, which receives the bundle text as
  bytes on `stdin`.

`flags` are placed after the subcommand of every request.

```python
from vswitchflow.openflow import OpenFlowService
from vswitchflow.common import PortAction

service = OpenFlowService(run=my_run, pipe=my_pipe, flags=["--timeout=1"])
service.del_flows("br0", match_flow)        # ovs-ofctl del-flows --timeout=1 br0 <flow>
service.del_flows("br0")                    # deletes every flow on br0
service.mod_port("br0", "port0", PortAction.DOWN)
service.add_flow("br0", flow)               # any object with marshal_text()
```

`add_flow_bundle` calls your function with a `FlowTransaction`:

- `add` queues flows to add, and `delete` queues `MatchFlow`s to delete.
- `commit()` finishes the transaction. If an invalid flow was queued earlier,
  `commit()` raises the error that flow caused.
- `discard(err)` drops the queued flows and raises
  `TransactionDiscardedError`.
- If your function returns without committing, `NotCommittedError` is raised
  and nothing is sent.
- A committed bundle is sent to `pipe` as lines such as
  `add priority=10,ip,actions=drop`. The arguments are
  `--bundle add-flow <flags> <bridge> -`.

```python
def changes(tx):
    tx.add(*new_flows)
    tx.delete(*stale_match_flows)
    tx.commit()

service.add_flow_bundle("br0", changes)
```

`parse_each(data, prefix)` and `parse_each_line(data, prefix)` split a
multi-line dump reply into records. Their input is the bytes of the reply, and
`prefix` is the banner the reply must start with. They raise `EOFError` when
the reply is empty, has the wrong banner or is cut short.

## Errors

`vswitchflow.common.OvsError(out, err)` holds the output of a failed control
command and its cause. `is_port_not_exist(err)` tells whether such an error
reports a port that does not exist. `FailMode`, `InterfaceType` and
`PortAction` list the configuration values that Open vSwitch accepts.

## What it does not do

- It has no full flow type with priorities and actions. `add_flow` and
  `FlowTransaction.add` accept any object that has a `marshal_text()` method.
- It does not parse port, table, flow or aggregate statistics into objects.
  `parse_each` and `parse_each_line` only split the reply into raw records.
- It offers no dump requests.
- It does not run `ovs-ofctl` or any other program. That is the job of the
  runners you pass in.
- It has no command-line interface.