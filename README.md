# rsvpte

A small RSVP-TE signalling daemon for Linux. It sets up MPLS label-switched
tunnels hop by hop. PATH messages travel toward the egress of a tunnel, and
RESV messages carry a label back toward the ingress. Sessions are kept as soft
state, and timers refresh or expire them.

## What it does

- `rsvpte.wire` encodes and decodes fixed-size (256-byte) RSVP-TE PATH and
  RESV packets with `encode_path`, `decode_path`, `encode_resv` and
  `decode_resv`. `peek_message_type` reads the message type, and
  `strip_ip_header` removes the IPv4 header from a raw-socket datagram.
  Malformed or short packets raise `WireError`.
- `rsvpte.routes` dumps the kernel's IPv4 routes over rtnetlink
  (`dump_routes`) and finds the gateway toward an address (`get_nexthop`).
  `get_nexthop` returns `None` when the matching route has no gateway, and
  also when no route matches. The default route is never taken as a match.
  `is_ip_in_subnet` returns a `SubnetMatch`: `OUTSIDE`, `INSIDE` or
  `DEFAULT_ROUTE`. A failed dump raises `RouteLookupError`.
- `rsvpte.avl.AVLTree` is a balanced search tree. `rsvpte.db` defines the
  PATH and RESV entries (`PathEntry`, `ResvEntry`) that are stored in it, keyed
  by tunnel id.
- `rsvpte.sessions.SessionTable` keeps sessions that are unique by sender and
  receiver, together with the time each was last refreshed.
- `rsvpte.messages.RsvpNode` handles received PATH and RESV messages:
  - On a PATH message it records PATH state.
  - If the destination is reached without a further gateway, the node is the
    egress. It creates RESV state and sends a RESV upstream.
  - Otherwise it forwards the PATH to the next hop.
  - On a RESV message it records RESV state and passes the label on until the
    tunnel's source is reached.
  - The egress advertises label 3 (implicit null). Other hops advertise
    label 100.
- `rsvpte.timers` refreshes sessions every 30 seconds and expires those that
  have been silent for more than 90 seconds:
  - `path_refresh` and `resv_refresh` do one pass.
  - `TimerManager` runs these passes on background threads.
  - The timers start when the first RESV and PATH messages arrive.

## Requirements

- Linux. Routes are read through netlink.
- Python 3.10 or later. There are no third-party dependencies.
- Privileges to open a raw socket for IP protocol 46, either root or
  `CAP_NET_RAW`.

## Installing

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Running

On a transit or egress router:

```
sudo rsvpte
```

The daemon listens for PATH and RESV messages and logs what it does to
standard error.

On the ingress router:

```
sudo rsvpte --head --tunnels 3
```

With `--head`, the daemon first reads tunnels from standard input before it
starts listening. `--tunnels` sets how many to read and defaults to 3. Each
tunnel is three lines: a source IP, a destination IP and a tunnel id. A tunnel
is asked for again in these cases:

- an address is invalid;
- the tunnel id is not in 0–65535;
- the destination has no gateway route.

Reading stops early if the input ends. A PATH message is sent for each tunnel
that is configured. Stop the daemon with Ctrl-C.

## Using it as a library

```python
from rsvpte.avl import AVLTree
from rsvpte.routes import SubnetMatch, is_ip_in_subnet
from rsvpte.wire import PathMessage, decode_path, encode_path

assert is_ip_in_subnet("10.0.0.5", "10.0.0.0", 24) is SubnetMatch.INSIDE

tree = AVLTree()
tree.insert(7, "tunnel seven")
assert tree.search(7) == "tunnel seven"

message = PathMessage(src_ip="10.0.0.1", dest_ip="10.0.2.1", tunnel_id=7)
assert decode_path(encode_path(message)) == message
```

`RsvpNode` accepts any object with a `sendto` method as its socket, and a
resolver function in place of `get_nexthop`. This lets it run without raw
sockets or a real routing table.

## Limitations

- Labels are not managed. Every transit hop advertises the fixed label 100.
- The RSVP checksum is always sent as zero.
- The objects handled are fixed: session, hop, time, label request, session
  attribute, sender template and label. Explicit or record routes are not
  supported.
- Only IPv4 is supported.
- Tunnels are configured only from standard input. There is no configuration
  file, and state is not persisted across restarts.