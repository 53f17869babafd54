"""The RSVP-TE daemon: raw socket, tunnel configuration and the receive loop."""

from __future__ import annotations

import argparse
import ipaddress
import logging
import socket
import sys
from contextlib import nullcontext
from typing import Any, Iterable, Iterator

from rsvpte.db import PathEntry
from rsvpte.messages import RsvpNode
from rsvpte.routes import RouteLookupError
from rsvpte.timers import TimerManager
from rsvpte.wire import (
    MessageType,
    WireError,
    decode_path,
    decode_resv,
    peek_message_type,
    strip_ip_header,
)

log = logging.getLogger(__name__)

RSVP_PROTOCOL = 46
BUFFER_SIZE = 512
DEFAULT_TUNNELS = 3
TUNNEL_NAME = "Path1"
TUNNEL_IFH = 123


def open_socket() -> socket.socket:
    """Open a raw IPv4 socket for the RSVP protocol bound to every address."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_RAW, RSVP_PROTOCOL)
    try:
        sock.bind(("0.0.0.0", 0))
    except OSError:
        sock.close()
        raise
    return sock


def _prompt(text: str, source: Iterator[str]) -> str | None:
    print(text)
    line = next(source, None)
    return None if line is None else line.strip()


def _read_tunnel(node: RsvpNode, source: Iterator[str]) -> PathEntry | None:
    while True:
        src = _prompt("Enter src ip : ", source)
        dst = _prompt("Enter dst ip: ", source)
        tunnel = _prompt("Enter tunnel_id: ", source)
        if src is None or dst is None or tunnel is None:
            return None
        try:
            ipaddress.IPv4Address(src)
            ipaddress.IPv4Address(dst)
        except ValueError as exc:
            print(f"invalid address: {exc}")
            continue
        try:
            tunnel_id = int(tunnel)
        except ValueError:
            print(f"invalid tunnel id: {tunnel!r}")
            continue
        if not 0 <= tunnel_id <= 0xFFFF:
            print(f"invalid tunnel id: {tunnel_id}")
            continue
        nexthop = node.resolve(dst)
        if nexthop is None:
            print(f"dont have route to the destination ip {dst}")
            continue
        return PathEntry(
            src_ip=src,
            dest_ip=dst,
            nexthop_ip=nexthop,
            tunnel_id=tunnel_id,
            ifh=TUNNEL_IFH,
            interval=30,
            setup_priority=7,
            hold_priority=7,
            flags=0,
            lsp_id=1,
            name=TUNNEL_NAME,
        )


def configure_tunnels(node: RsvpNode, lines: Iterable[str],
                      count: int = DEFAULT_TUNNELS) -> list[PathEntry]:
    """Read tunnels at the head of the network and send their first PATH messages.

    Each tunnel is given as a source address, a destination address and a
    tunnel id, one per line; a tunnel whose destination has no route is
    asked for again. Reading stops early when the input ends.
    """
    source = iter(lines)
    configured: list[PathEntry] = []
    for _ in range(count):
        entry = _read_tunnel(node, source)
        if entry is None:
            break
        node.path_tree.insert(entry.tunnel_id, entry)
        node.resv_sessions.insert(entry.tunnel_id, entry.src_ip, entry.dest_ip, True)
        node.send_path(entry.tunnel_id)
        configured.append(entry)
    return configured


def dispatch(node: RsvpNode, timers: TimerManager | None, packet: bytes,
             sender_addr: Any) -> MessageType:
    """Handle one datagram read from the raw socket, IP header included."""
    payload = strip_ip_header(packet)
    kind = peek_message_type(payload)
    guard = timers.lock if timers is not None else nullcontext()
    if kind is MessageType.PATH:
        if timers is not None:
            timers.resv_event()
        message = decode_path(payload)
        with guard:
            reached = node.dst_reached(message.dest_ip)
            node.path_sessions.insert(message.tunnel_id, message.src_ip,
                                      message.dest_ip, reached)
            node.receive_path(payload, sender_addr)
    else:
        if timers is not None:
            timers.path_event()
        message = decode_resv(payload)
        with guard:
            reached = node.dst_reached(message.src_ip)
            node.resv_sessions.insert(message.tunnel_id, message.src_ip,
                                      message.dest_ip, reached)
            node.receive_resv(payload, sender_addr)
    return kind


def main(argv: list[str] | None = None) -> int:
    """Run the RSVP-TE daemon until interrupted."""
    parser = argparse.ArgumentParser(prog="rsvpte", description="RSVP-TE signalling daemon.")
    parser.add_argument("--head", action="store_true",
                        help="configure tunnels from standard input before listening")
    parser.add_argument("--tunnels", type=int, default=DEFAULT_TUNNELS,
                        help="number of tunnels to configure at the head")
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(message)s")

    try:
        sock = open_socket()
    except OSError as exc:
        print(f"Socket creation failed: {exc}", file=sys.stderr)
        return 1

    node = RsvpNode(sock)
    timers = TimerManager(node)
    try:
        with sock:
            if args.head:
                configure_tunnels(node, sys.stdin, args.tunnels)
            while True:
                log.info("Waiting to receive message")
                try:
                    data, sender_addr = sock.recvfrom(BUFFER_SIZE)
                except OSError as exc:
                    log.error("Receive failed: %s", exc)
                    continue
                try:
                    dispatch(node, timers, data, sender_addr)
                except (WireError, RouteLookupError, KeyError) as exc:
                    log.warning("ignoring packet from %s: %s", sender_addr, exc)
    except KeyboardInterrupt:
        return 0
    finally:
        timers.stop()


if __name__ == "__main__":
    sys.exit(main())