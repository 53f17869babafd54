"""Layout of RSVP-TE PATH and RESV packets and their encoding."""

from __future__ import annotations

import ipaddress
import struct
from dataclasses import dataclass
from enum import IntEnum

PACKET_SIZE = 256
IP_HEADER_LEN = 20
RSVP_VERSION_FLAGS = 0x10
DEFAULT_TTL = 255
NAME_SIZE = 32


class MessageType(IntEnum):
    """RSVP message types handled by this node."""

    PATH = 1
    RESV = 2


class ObjectClass(IntEnum):
    """Class numbers of the RSVP objects carried in a message."""

    SESSION = 1
    HOP = 3
    TIME = 5
    FILTER_SPEC = 10
    SENDER_TEMPLATE = 11
    LABEL = 16
    LABEL_REQUEST = 19
    EXPLICIT_ROUTE = 20
    RECORD_ROUTE = 21
    HELLO = 22
    SESSION_ATTRIBUTE = 207


class WireError(ValueError):
    """A packet cannot be encoded or decoded."""


_HEADER = struct.Struct("!BBHBBH")
_SESSION = struct.Struct("!HBB4sHH4s")
_HOP = struct.Struct("!HBB4sI")
_TIME = struct.Struct("!HBBI")
_LABEL_REQUEST = struct.Struct("!HBBHH")
_SESSION_ATTR = struct.Struct("!HBBBBBB32s")
_SENDER_TEMPLATE = struct.Struct("!HBB4sHH")
_LABEL = struct.Struct("!HBBI")
_FILTER_SPEC_SIZE = 12

SESSION_OFFSET = _HEADER.size
HOP_OFFSET = SESSION_OFFSET + _SESSION.size
TIME_OFFSET = HOP_OFFSET + _HOP.size
LABEL_REQUEST_OFFSET = TIME_OFFSET + _TIME.size
SESSION_ATTR_OFFSET = LABEL_REQUEST_OFFSET + _LABEL_REQUEST.size
SENDER_TEMPLATE_OFFSET = SESSION_ATTR_OFFSET + _SESSION_ATTR.size
FILTER_SPEC_OFFSET = TIME_OFFSET + _FILTER_SPEC_SIZE
LABEL_OFFSET = FILTER_SPEC_OFFSET + _LABEL.size

_PATH_MIN_SIZE = SENDER_TEMPLATE_OFFSET + _SENDER_TEMPLATE.size
_RESV_MIN_SIZE = LABEL_OFFSET + _LABEL.size

_SESSION_CTYPE = 7
_SENDER_TEMPLATE_CTYPE = 7
_GENERIC_CTYPE = 1


@dataclass(frozen=True)
class PathMessage:
    """Contents of a PATH message requesting a label along a tunnel."""

    src_ip: str
    dest_ip: str
    tunnel_id: int
    next_hop: str = "0.0.0.0"
    ifh: int = 123
    interval: int = 30
    setup_priority: int = 7
    hold_priority: int = 7
    flags: int = 0
    name: str = ""
    lsp_id: int = 1
    l3pid: int = 0x0800


@dataclass(frozen=True)
class ResvMessage:
    """Contents of a RESV message distributing a label upstream."""

    src_ip: str
    dest_ip: str
    tunnel_id: int
    label: int
    next_hop: str = "0.0.0.0"
    ifh: int = 0
    interval: int = 30


def _pack_ip(text: str) -> bytes:
    try:
        return ipaddress.IPv4Address(text).packed
    except ValueError as exc:
        raise WireError(f"invalid IPv4 address: {text!r}") from exc


def _unpack_ip(raw: bytes) -> str:
    return str(ipaddress.IPv4Address(raw))


def _encode_name(name: str) -> bytes:
    try:
        encoded = name.encode("ascii")
    except UnicodeEncodeError as exc:
        raise WireError(f"session name must be ASCII: {name!r}") from exc
    return encoded[: NAME_SIZE - 1]


def _decode_name(raw: bytes) -> str:
    return raw.split(b"\0", 1)[0].decode("ascii", errors="replace")


def _new_packet(kind: MessageType) -> bytearray:
    packet = bytearray(PACKET_SIZE)
    _HEADER.pack_into(packet, 0, RSVP_VERSION_FLAGS, kind, 0, DEFAULT_TTL, 0, PACKET_SIZE)
    return packet


def _pack_common(packet: bytearray, src_ip: str, dest_ip: str, tunnel_id: int,
                 next_hop: str, ifh: int, interval: int) -> None:
    _SESSION.pack_into(
        packet, SESSION_OFFSET, _SESSION.size, ObjectClass.SESSION, _SESSION_CTYPE,
        _pack_ip(dest_ip), 0, tunnel_id, _pack_ip(src_ip),
    )
    _HOP.pack_into(
        packet, HOP_OFFSET, _HOP.size, ObjectClass.HOP, _GENERIC_CTYPE,
        _pack_ip(next_hop), ifh,
    )
    _TIME.pack_into(packet, TIME_OFFSET, _TIME.size, ObjectClass.TIME, _GENERIC_CTYPE, interval)


def encode_path(message: PathMessage) -> bytes:
    """Encode a PATH message into a fixed-size RSVP packet."""
    packet = _new_packet(MessageType.PATH)
    name = _encode_name(message.name)
    try:
        _pack_common(packet, message.src_ip, message.dest_ip, message.tunnel_id,
                     message.next_hop, message.ifh, message.interval)
        _LABEL_REQUEST.pack_into(
            packet, LABEL_REQUEST_OFFSET, _LABEL_REQUEST.size,
            ObjectClass.LABEL_REQUEST, _GENERIC_CTYPE, 0, message.l3pid,
        )
        _SESSION_ATTR.pack_into(
            packet, SESSION_ATTR_OFFSET, _SESSION_ATTR.size,
            ObjectClass.SESSION_ATTRIBUTE, _GENERIC_CTYPE,
            message.setup_priority, message.hold_priority, message.flags,
            len(name) + 1, name,
        )
        _SENDER_TEMPLATE.pack_into(
            packet, SENDER_TEMPLATE_OFFSET, _SENDER_TEMPLATE.size,
            ObjectClass.SENDER_TEMPLATE, _SENDER_TEMPLATE_CTYPE,
            _pack_ip(message.src_ip), 0, message.lsp_id,
        )
    except struct.error as exc:
        raise WireError(f"PATH field out of range: {exc}") from exc
    return bytes(packet)


def encode_resv(message: ResvMessage) -> bytes:
    """Encode a RESV message into a fixed-size RSVP packet."""
    packet = _new_packet(MessageType.RESV)
    try:
        _pack_common(packet, message.src_ip, message.dest_ip, message.tunnel_id,
                     message.next_hop, message.ifh, message.interval)
        _LABEL.pack_into(
            packet, LABEL_OFFSET, _LABEL.size, ObjectClass.LABEL, _GENERIC_CTYPE, message.label,
        )
    except struct.error as exc:
        raise WireError(f"RESV field out of range: {exc}") from exc
    return bytes(packet)


def peek_message_type(packet: bytes) -> MessageType:
    """Return the message type of an RSVP packet without decoding it."""
    if len(packet) < _HEADER.size:
        raise WireError("packet shorter than the RSVP header")
    try:
        return MessageType(packet[1])
    except ValueError as exc:
        raise WireError(f"unknown RSVP message type {packet[1]}") from exc


def _check(packet: bytes, kind: MessageType, min_size: int) -> bytes:
    data = bytes(packet)
    if len(data) < min_size:
        raise WireError(f"{kind.name} packet too short: {len(data)} bytes")
    found = peek_message_type(data)
    if found is not kind:
        raise WireError(f"expected a {kind.name} message, got {found.name}")
    return data


def _unpack_common(data: bytes) -> dict:
    _, _, _, dst, _, tunnel_id, src = _SESSION.unpack_from(data, SESSION_OFFSET)
    _, _, _, next_hop, ifh = _HOP.unpack_from(data, HOP_OFFSET)
    _, _, _, interval = _TIME.unpack_from(data, TIME_OFFSET)
    return {
        "src_ip": _unpack_ip(src),
        "dest_ip": _unpack_ip(dst),
        "tunnel_id": tunnel_id,
        "next_hop": _unpack_ip(next_hop),
        "ifh": ifh,
        "interval": interval,
    }


def decode_path(packet: bytes) -> PathMessage:
    """Decode an RSVP PATH packet whose IP header has been removed."""
    data = _check(packet, MessageType.PATH, _PATH_MIN_SIZE)
    fields = _unpack_common(data)
    _, _, _, _, l3pid = _LABEL_REQUEST.unpack_from(data, LABEL_REQUEST_OFFSET)
    _, _, _, setup, hold, flags, _, name = _SESSION_ATTR.unpack_from(data, SESSION_ATTR_OFFSET)
    _, _, _, _, _, lsp_id = _SENDER_TEMPLATE.unpack_from(data, SENDER_TEMPLATE_OFFSET)
    return PathMessage(
        setup_priority=setup,
        hold_priority=hold,
        flags=flags,
        name=_decode_name(name),
        lsp_id=lsp_id,
        l3pid=l3pid,
        **fields,
    )


def decode_resv(packet: bytes) -> ResvMessage:
    """Decode an RSVP RESV packet whose IP header has been removed."""
    data = _check(packet, MessageType.RESV, _RESV_MIN_SIZE)
    fields = _unpack_common(data)
    _, _, _, label = _LABEL.unpack_from(data, LABEL_OFFSET)
    return ResvMessage(label=label, **fields)


def strip_ip_header(packet: bytes) -> bytes:
    """Return the RSVP payload of a datagram read from a raw IPv4 socket."""
    if len(packet) < IP_HEADER_LEN:
        raise WireError("datagram shorter than an IPv4 header")
    if packet[0] >> 4 != 4:
        raise WireError("datagram is not IPv4")
    header_len = (packet[0] & 0x0F) * 4
    if header_len < IP_HEADER_LEN or header_len > len(packet):
        raise WireError(f"invalid IPv4 header length {header_len}")
    return bytes(packet[header_len:])