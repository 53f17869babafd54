"""Handling of received PATH and RESV messages and sending them on hop by hop."""

from __future__ import annotations

import logging
from typing import Any, Callable

from rsvpte.avl import AVLTree
from rsvpte.db import (
    PathEntry,
    ResvEntry,
    dump_tree,
    path_entry_from_message,
    resv_entry_from_message,
)
from rsvpte.routes import get_nexthop
from rsvpte.sessions import SessionTable
from rsvpte.wire import (
    PathMessage,
    ResvMessage,
    decode_path,
    decode_resv,
    encode_path,
    encode_resv,
)

log = logging.getLogger(__name__)

Resolver = Callable[[str], "str | None"]

PATH_IFH = 123


def build_path_packet(entry: PathEntry) -> bytes:
    """Encode the PATH message that carries a tunnel's PATH state to its next hop."""
    return encode_path(PathMessage(
        src_ip=entry.src_ip,
        dest_ip=entry.dest_ip,
        tunnel_id=entry.tunnel_id,
        next_hop=entry.nexthop_ip,
        ifh=PATH_IFH,
        interval=entry.interval,
        setup_priority=entry.setup_priority,
        hold_priority=entry.hold_priority,
        flags=entry.flags,
        name=entry.name,
        lsp_id=entry.lsp_id,
    ))


def build_resv_packet(entry: ResvEntry) -> bytes:
    """Encode the RESV message that advertises a tunnel's incoming label upstream."""
    return encode_resv(ResvMessage(
        src_ip=entry.src_ip,
        dest_ip=entry.dest_ip,
        tunnel_id=entry.tunnel_id,
        label=entry.in_label,
        next_hop=entry.nexthop_ip,
        ifh=entry.ifh,
        interval=entry.interval,
    ))


class RsvpNode:
    """An RSVP-TE router: its state tables, its route lookup and its socket."""

    def __init__(self, sock: Any, resolve: Resolver = get_nexthop) -> None:
        self.sock = sock
        self.resolve = resolve
        self.path_tree = AVLTree()
        self.resv_tree = AVLTree()
        self.path_sessions = SessionTable()
        self.resv_sessions = SessionTable()

    def dst_reached(self, ip: str) -> bool:
        """Tell whether ip is reached without a further gateway, ending the tunnel here."""
        return self.resolve(ip) is None

    def _send(self, packet: bytes, next_hop: str, kind: str) -> bytes | None:
        try:
            self.sock.sendto(packet, (next_hop, 0))
        except OSError as exc:
            log.error("Send failed: %s", exc)
            return None
        log.info("Sent %s message to %s", kind, next_hop)
        return packet

    def send_path(self, tunnel_id: int) -> bytes | None:
        """Send the PATH message of a tunnel to its next hop; None if sending failed."""
        entry = self.path_tree.search(tunnel_id)
        if entry is None:
            raise KeyError(f"no PATH state for tunnel {tunnel_id}")
        return self._send(build_path_packet(entry), entry.nexthop_ip, "PATH")

    def send_resv(self, tunnel_id: int) -> bytes | None:
        """Send the RESV message of a tunnel upstream; None if sending failed."""
        entry = self.resv_tree.search(tunnel_id)
        if entry is None:
            raise KeyError(f"no RESV state for tunnel {tunnel_id}")
        packet = self._send(build_resv_packet(entry), entry.nexthop_ip, "RESV")
        if packet is not None:
            log.info("RESV to %s carries label %d", entry.nexthop_ip, entry.in_label)
        return packet

    def _log_tree(self, tree: AVLTree) -> None:
        for line in dump_tree(tree):
            log.info("%s", line)

    def receive_path(self, packet: bytes, sender_addr: Any) -> PathMessage:
        """Process a PATH message given without its IP header.

        PATH state is recorded for a new tunnel; at the tail of the tunnel
        RESV state is created and a RESV goes back, otherwise the PATH is
        passed on towards the destination.
        """
        message = decode_path(packet)
        log.info("Received PATH message from %s", _host(sender_addr))

        if message.tunnel_id not in self.path_tree:
            self.path_tree.insert(message.tunnel_id,
                                  path_entry_from_message(message, self.resolve))
        self._log_tree(self.path_tree)

        if self.dst_reached(message.dest_ip):
            log.info("reached the destination, end of RSVP tunnel")
            if message.tunnel_id not in self.resv_tree:
                self.resv_tree.insert(message.tunnel_id,
                                      resv_entry_from_message(message, self.resolve))
            self._log_tree(self.resv_tree)
            self.send_resv(message.tunnel_id)
        else:
            log.info("send PATH message to next hop")
            self.send_path(message.tunnel_id)
        return message

    def receive_resv(self, packet: bytes, sender_addr: Any) -> ResvMessage:
        """Process a RESV message given without its IP header.

        RESV state is recorded for a new tunnel and the label is passed on
        upstream until the head of the tunnel is reached.
        """
        message = decode_resv(packet)
        log.info("Received RESV message from %s with Label %d",
                 _host(sender_addr), message.label)

        if message.tunnel_id not in self.resv_tree:
            self.resv_tree.insert(message.tunnel_id,
                                  resv_entry_from_message(message, self.resolve))
        self._log_tree(self.resv_tree)

        if self.dst_reached(message.src_ip):
            log.info("reached the source, end of RSVP tunnel")
        else:
            log.info("send RESV message to next hop")
            self.send_resv(message.tunnel_id)
        return message


def _host(sender_addr: Any) -> str:
    if isinstance(sender_addr, tuple) and sender_addr:
        return str(sender_addr[0])
    return str(sender_addr)