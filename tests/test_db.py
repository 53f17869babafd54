from rsvpte.avl import AVLTree
from rsvpte.db import (
    PathEntry,
    ResvEntry,
    dump_tree,
    path_entry_from_message,
    resv_entry_from_message,
)
from rsvpte.wire import PathMessage, ResvMessage


def _resolver(table, calls=None):
    def resolve(ip):
        if calls is not None:
            calls.append(ip)
        return table.get(ip)
    return resolve


def test_path_entry_describe_format():
    entry = PathEntry("10.0.0.1", "10.0.0.2", "10.0.0.9", 5)
    assert entry.describe() == "Tunnel ID: 5, Src: 10.0.0.1, Dest: 10.0.0.2, Next Hop: 10.0.0.9"


def test_resv_entry_describe_format():
    entry = ResvEntry("10.0.0.1", "10.0.0.2", "10.0.0.9", 5, in_label=100, out_label=3)
    assert entry.describe() == (
        "Tunnel ID: 5, Src: 10.0.0.1, Dest: 10.0.0.2, Next Hop: 10.0.0.9, "
        "In_label: 100, Out_label: 3"
    )


def test_path_entry_uses_route_to_destination():
    calls = []
    message = PathMessage("10.0.0.1", "10.0.0.2", 8, interval=45, setup_priority=4,
                          hold_priority=2, flags=1, name="Path1", lsp_id=9)
    entry = path_entry_from_message(message, _resolver({"10.0.0.2": "10.1.1.1"}, calls))
    assert calls == ["10.0.0.2"]
    assert entry.nexthop_ip == "10.1.1.1"
    assert entry.lsp_id == 1
    assert (entry.src_ip, entry.dest_ip, entry.tunnel_id) == ("10.0.0.1", "10.0.0.2", 8)
    assert (entry.interval, entry.setup_priority, entry.hold_priority, entry.flags) == (45, 4, 2, 1)
    assert entry.name == "Path1"


def test_path_entry_without_route():
    message = PathMessage("10.0.0.1", "10.0.0.2", 8)
    entry = path_entry_from_message(message, _resolver({}))
    assert entry.nexthop_ip == "0.0.0.0"


def test_resv_entry_at_egress_uses_implicit_null():
    message = PathMessage("10.0.0.1", "10.0.0.2", 3)
    entry = resv_entry_from_message(message, _resolver({"10.0.0.1": "10.2.2.2"}))
    assert entry.in_label == 3
    assert entry.nexthop_ip == "10.2.2.2"
    assert entry.out_label == 0


def test_resv_entry_in_transit_assigns_label():
    calls = []
    message = ResvMessage("10.0.0.1", "10.0.0.2", 3, label=3)
    routes = {"10.0.0.2": "10.3.3.3"}
    entry = resv_entry_from_message(message, _resolver(routes, calls))
    assert calls == ["10.0.0.2", "10.0.0.1"]
    assert entry.in_label == 100
    assert entry.out_label == 3
    assert entry.nexthop_ip == "0.0.0.0"


def test_dump_tree_in_tunnel_order():
    tree = AVLTree()
    for tid in (30, 10, 20):
        entry = PathEntry("1.1.1.1", "2.2.2.2", "3.3.3.3", tid)
        tree.insert(entry.tunnel_id, entry)
    lines = dump_tree(tree)
    assert lines == [
        PathEntry("1.1.1.1", "2.2.2.2", "3.3.3.3", tid).describe() for tid in (10, 20, 30)
    ]
    assert dump_tree(AVLTree()) == []