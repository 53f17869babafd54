"""PATH and RESV state entries and how they are built from received messages."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable

from rsvpte.avl import AVLTree
from rsvpte.wire import PathMessage, ResvMessage

Resolver = Callable[[str], "str | None"]

NO_ROUTE = "0.0.0.0"
IMPLICIT_NULL_LABEL = 3
ASSIGNED_LABEL = 100
PATH_LSP_ID = 1


@dataclass
class PathEntry:
    """PATH state held for one tunnel."""

    src_ip: str
    dest_ip: str
    nexthop_ip: str
    tunnel_id: int
    ifh: int = 0
    interval: int = 30
    setup_priority: int = 7
    hold_priority: int = 7
    flags: int = 0
    lsp_id: int = PATH_LSP_ID
    name: str = ""

    def describe(self) -> str:
        """One-line summary of the entry."""
        return (f"Tunnel ID: {self.tunnel_id}, Src: {self.src_ip}, "
                f"Dest: {self.dest_ip}, Next Hop: {self.nexthop_ip}")


@dataclass
class ResvEntry:
    """RESV state held for one tunnel."""

    src_ip: str
    dest_ip: str
    nexthop_ip: str
    tunnel_id: int
    ifh: int = 0
    interval: int = 30
    in_label: int = IMPLICIT_NULL_LABEL
    out_label: int = 0
    lsp_id: int = 0

    def describe(self) -> str:
        """One-line summary of the entry, labels included."""
        return (f"Tunnel ID: {self.tunnel_id}, Src: {self.src_ip}, "
                f"Dest: {self.dest_ip}, Next Hop: {self.nexthop_ip}, "
                f"In_label: {self.in_label}, Out_label: {self.out_label}")


def path_entry_from_message(message: PathMessage, resolve: Resolver) -> PathEntry:
    """Build PATH state from a received PATH message, routing towards its destination."""
    nexthop = resolve(message.dest_ip)
    return PathEntry(
        src_ip=message.src_ip,
        dest_ip=message.dest_ip,
        nexthop_ip=nexthop if nexthop is not None else NO_ROUTE,
        tunnel_id=message.tunnel_id,
        ifh=message.ifh,
        interval=message.interval,
        setup_priority=message.setup_priority,
        hold_priority=message.hold_priority,
        flags=message.flags,
        lsp_id=PATH_LSP_ID,
        name=message.name[:31],
    )


def resv_entry_from_message(message: PathMessage | ResvMessage, resolve: Resolver) -> ResvEntry:
    """Build RESV state from a received message, routing back towards its source.

    The egress of the tunnel, which has no route onwards to the destination,
    advertises the implicit-null label.
    """
    in_label = IMPLICIT_NULL_LABEL if resolve(message.dest_ip) is None else ASSIGNED_LABEL
    nexthop = resolve(message.src_ip)
    out_label = message.label if isinstance(message, ResvMessage) else 0
    return ResvEntry(
        src_ip=message.src_ip,
        dest_ip=message.dest_ip,
        nexthop_ip=nexthop if nexthop is not None else NO_ROUTE,
        tunnel_id=message.tunnel_id,
        ifh=message.ifh,
        interval=message.interval,
        in_label=in_label,
        out_label=out_label,
    )


def dump_tree(tree: AVLTree | Iterable) -> list[str]:
    """Describe every entry of a state tree in tunnel-id order."""
    return [entry.describe() for _, entry in tree]