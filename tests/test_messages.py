import pytest

from rsvpte.db import PathEntry, ResvEntry
from rsvpte.messages import RsvpNode, build_path_packet, build_resv_packet
from rsvpte.wire import (
    MessageType,
    PathMessage,
    ResvMessage,
    WireError,
    decode_path,
    decode_resv,
    encode_path,
    encode_resv,
    peek_message_type,
)

SRC = "10.0.0.1"
DST = "10.0.0.9"
UPSTREAM = "10.0.1.1"
DOWNSTREAM = "10.0.1.2"


class FakeSocket:
    def __init__(self, fail=False):
        self.sent = []
        self.fail = fail

    def sendto(self, data, addr):
        if self.fail:
            raise OSError("network unreachable")
        self.sent.append((data, addr))
        return len(data)


def make_node(routes, fail=False):
    sock = FakeSocket(fail)
    return RsvpNode(sock, routes.get), sock


def path_entry():
    return PathEntry(src_ip=SRC, dest_ip=DST, nexthop_ip=DOWNSTREAM, tunnel_id=5,
                     interval=30, setup_priority=4, hold_priority=2, flags=1, name="Path1")


def test_build_path_packet_round_trip():
    entry = path_entry()
    packet = build_path_packet(entry)
    assert len(packet) == 256
    assert packet[0] == 0x10
    assert peek_message_type(packet) is MessageType.PATH
    message = decode_path(packet)
    assert message.src_ip == SRC
    assert message.dest_ip == DST
    assert message.next_hop == DOWNSTREAM
    assert message.tunnel_id == 5
    assert message.ifh == 123
    assert (message.setup_priority, message.hold_priority, message.flags) == (4, 2, 1)
    assert message.name == "Path1"
    assert message.lsp_id == entry.lsp_id


def test_build_resv_packet_round_trip():
    entry = ResvEntry(src_ip=SRC, dest_ip=DST, nexthop_ip=UPSTREAM, tunnel_id=7,
                      ifh=9, in_label=100)
    packet = build_resv_packet(entry)
    assert peek_message_type(packet) is MessageType.RESV
    message = decode_resv(packet)
    assert message.label == 100
    assert message.next_hop == UPSTREAM
    assert message.tunnel_id == 7
    assert message.ifh == 9


def test_dst_reached_follows_resolver():
    node, _ = make_node({DST: DOWNSTREAM})
    assert node.dst_reached(DST) is False
    assert node.dst_reached(SRC) is True


def test_send_path_unknown_tunnel_raises():
    node, _ = make_node({})
    with pytest.raises(KeyError):
        node.send_path(42)


def test_send_resv_unknown_tunnel_raises():
    node, _ = make_node({})
    with pytest.raises(KeyError):
        node.send_resv(42)


def test_send_path_goes_to_next_hop():
    node, sock = make_node({})
    node.path_tree.insert(5, path_entry())
    packet = node.send_path(5)
    assert sock.sent == [(packet, (DOWNSTREAM, 0))]


def test_send_failure_returns_none():
    node, sock = make_node({}, fail=True)
    node.path_tree.insert(5, path_entry())
    assert node.send_path(5) is None
    assert sock.sent == []


def test_receive_path_at_transit_forwards_path():
    node, sock = make_node({DST: DOWNSTREAM, SRC: UPSTREAM})
    incoming = encode_path(PathMessage(src_ip=SRC, dest_ip=DST, tunnel_id=3, name="PE1"))
    message = node.receive_path(incoming, (UPSTREAM, 0))
    assert message.tunnel_id == 3
    assert node.path_tree.search(3).nexthop_ip == DOWNSTREAM
    assert 3 not in node.resv_tree
    assert len(sock.sent) == 1
    data, addr = sock.sent[0]
    assert addr == (DOWNSTREAM, 0)
    forwarded = decode_path(data)
    assert forwarded.next_hop == DOWNSTREAM
    assert forwarded.dest_ip == DST


def test_receive_path_at_egress_sends_resv_with_implicit_null():
    node, sock = make_node({SRC: UPSTREAM})
    incoming = encode_path(PathMessage(src_ip=SRC, dest_ip=DST, tunnel_id=4))
    node.receive_path(incoming, (UPSTREAM, 0))
    assert 4 in node.path_tree
    entry = node.resv_tree.search(4)
    assert entry.in_label == 3
    assert entry.nexthop_ip == UPSTREAM
    data, addr = sock.sent[0]
    assert addr == (UPSTREAM, 0)
    assert decode_resv(data).label == 3


def test_receive_path_keeps_existing_state():
    node, _ = make_node({DST: DOWNSTREAM})
    node.receive_path(encode_path(PathMessage(src_ip=SRC, dest_ip=DST, tunnel_id=3,
                                              interval=30)), UPSTREAM)
    node.receive_path(encode_path(PathMessage(src_ip=SRC, dest_ip=DST, tunnel_id=3,
                                              interval=60)), UPSTREAM)
    assert len(node.path_tree) == 1
    assert node.path_tree.search(3).interval == 30


def test_receive_resv_at_transit_passes_label_upstream():
    node, sock = make_node({DST: DOWNSTREAM, SRC: UPSTREAM})
    incoming = encode_resv(ResvMessage(src_ip=SRC, dest_ip=DST, tunnel_id=6, label=3))
    message = node.receive_resv(incoming, (DOWNSTREAM, 0))
    assert message.label == 3
    entry = node.resv_tree.search(6)
    assert entry.out_label == 3
    assert entry.in_label == 100
    data, addr = sock.sent[0]
    assert addr == (UPSTREAM, 0)
    assert decode_resv(data).label == 100


def test_receive_resv_at_head_stops():
    node, sock = make_node({DST: DOWNSTREAM})
    incoming = encode_resv(ResvMessage(src_ip=SRC, dest_ip=DST, tunnel_id=6, label=100))
    node.receive_resv(incoming, (DOWNSTREAM, 0))
    assert sock.sent == []
    assert node.resv_tree.search(6).nexthop_ip == "0.0.0.0"


def test_receive_path_rejects_resv_packet():
    node, _ = make_node({})
    packet = encode_resv(ResvMessage(src_ip=SRC, dest_ip=DST, tunnel_id=1, label=3))
    with pytest.raises(WireError):
        node.receive_path(packet, UPSTREAM)
    assert len(node.path_tree) == 0