"""IPv4 route lookup through a netlink dump of the kernel routing tables."""

from __future__ import annotations

import ipaddress
import os
import socket
import struct
import time
from dataclasses import dataclass
from enum import IntEnum
from typing import Iterable, Iterator

_AF_INET = 2
_NETLINK_ROUTE = 0

_NLMSG_ERROR = 2
_NLMSG_DONE = 3
_RTM_NEWROUTE = 24
_RTM_GETROUTE = 26

_NLM_F_REQUEST = 0x1
_NLM_F_DUMP = 0x300
_NLM_F_DUMP_INTR = 0x10

_RTA_DST = 1
_RTA_OIF = 4
_RTA_GATEWAY = 5
_RTA_PREFSRC = 7
_RTA_TABLE = 15

RTN_UNICAST = 1
RTN_LOCAL = 2
RT_TABLE_MAIN = 254
RT_TABLE_LOCAL = 255

_NLMSGHDR = struct.Struct("=IHHII")
_RTMSG = struct.Struct("=BBBBBBBBI")
_RTATTR = struct.Struct("=HH")
_RECV_SIZE = 1 << 20


class SubnetMatch(IntEnum):
    """Outcome of matching an address against a route's subnet."""

    OUTSIDE = 0
    INSIDE = 1
    DEFAULT_ROUTE = 2


class RouteLookupError(RuntimeError):
    """The routing table could not be read."""


@dataclass(frozen=True)
class Route:
    """An IPv4 route taken from the kernel routing tables."""

    destination: str
    prefix_len: int
    gateway: str | None = None
    oif: int | None = None
    prefsrc: str | None = None
    table: int = RT_TABLE_MAIN
    route_type: int = RTN_UNICAST

    @property
    def device(self) -> str | None:
        """Name of the outgoing interface, if it is known."""
        if self.oif is None:
            return None
        try:
            return socket.if_indextoname(self.oif)
        except OSError:
            return None


def is_ip_in_subnet(ip: str, subnet: str, prefix_len: int) -> SubnetMatch:
    """Tell whether ip lies in subnet/prefix_len; a zero network is the default route."""
    if not 0 <= prefix_len <= 32:
        raise ValueError(f"prefix length out of range: {prefix_len}")
    address = int(ipaddress.IPv4Address(ip))
    network = int(ipaddress.IPv4Address(subnet))
    mask = (0xFFFFFFFF << (32 - prefix_len)) & 0xFFFFFFFF
    if not network & mask:
        return SubnetMatch.DEFAULT_ROUTE
    if address & mask == network & mask:
        return SubnetMatch.INSIDE
    return SubnetMatch.OUTSIDE


def _align(length: int) -> int:
    return (length + 3) & ~3


def _iter_attrs(data: bytes) -> Iterator[tuple[int, bytes]]:
    offset = 0
    while len(data) - offset >= _RTATTR.size:
        length, kind = _RTATTR.unpack_from(data, offset)
        if length < _RTATTR.size or length > len(data) - offset:
            return
        yield kind, data[offset + _RTATTR.size: offset + length]
        offset += _align(length)


def _ipv4(raw: bytes | None) -> str | None:
    if raw is None or len(raw) < 4:
        return None
    return str(ipaddress.IPv4Address(raw[:4]))


def _u32(raw: bytes | None) -> int | None:
    if raw is None or len(raw) < 4:
        return None
    return struct.unpack_from("=I", raw)[0]


def _parse_route(payload: bytes) -> Route | None:
    if len(payload) < _RTMSG.size:
        return None
    family, dst_len, _, _, table, _, _, route_type, _ = _RTMSG.unpack_from(payload)
    attrs = dict(_iter_attrs(payload[_RTMSG.size:]))

    table_attr = _u32(attrs.get(_RTA_TABLE))
    if table_attr is not None:
        table = table_attr

    if family != _AF_INET and table != RT_TABLE_MAIN:
        return None
    if route_type not in (RTN_LOCAL, RTN_UNICAST):
        return None
    if family != _AF_INET:
        return None

    if _RTA_DST in attrs:
        destination = _ipv4(attrs[_RTA_DST])
        if destination is None:
            return None
        prefix_len = dst_len
    elif dst_len:
        return None
    else:
        destination, prefix_len = "0.0.0.0", 0

    return Route(
        destination=destination,
        prefix_len=prefix_len,
        gateway=_ipv4(attrs.get(_RTA_GATEWAY)),
        oif=_u32(attrs.get(_RTA_OIF)),
        prefsrc=_ipv4(attrs.get(_RTA_PREFSRC)),
        table=table,
        route_type=route_type,
    )


def _scan(data: bytes) -> tuple[list[Route], bool]:
    """Parse one netlink batch; the flag tells whether the dump has ended."""
    routes: list[Route] = []
    offset = 0
    while len(data) - offset >= _NLMSGHDR.size:
        length, kind, flags, _, _ = _NLMSGHDR.unpack_from(data, offset)
        if length < _NLMSGHDR.size or length > len(data) - offset:
            break
        if flags & _NLM_F_DUMP_INTR:
            raise RouteLookupError("Dump was interrupted")
        payload = data[offset + _NLMSGHDR.size: offset + length]
        if kind == _NLMSG_DONE:
            return routes, True
        if kind == _NLMSG_ERROR:
            if len(payload) >= 4:
                code = struct.unpack_from("=i", payload)[0]
                if code:
                    raise RouteLookupError(f"netlink reported error: {os.strerror(-code)}")
        elif kind == _RTM_NEWROUTE:
            route = _parse_route(payload)
            if route is not None:
                routes.append(route)
        offset += _align(length)
    return routes, False


def parse_route_messages(data: bytes) -> list[Route]:
    """Parse the IPv4 unicast and local routes from a netlink route dump."""
    return _scan(bytes(data))[0]


def find_nexthop(routes: Iterable[Route], dest_ip: str) -> Route | None:
    """Return the first route whose subnet holds dest_ip; the default route never matches."""
    for route in routes:
        if is_ip_in_subnet(dest_ip, route.destination, route.prefix_len) is SubnetMatch.INSIDE:
            return route
    return None


def dump_routes() -> list[Route]:
    """Read the IPv4 routes of the kernel through a netlink route dump."""
    family = getattr(socket, "AF_NETLINK", None)
    if family is None:
        raise RouteLookupError("netlink sockets are not available on this platform")
    request = _NLMSGHDR.pack(
        _NLMSGHDR.size + _RTMSG.size,
        _RTM_GETROUTE,
        _NLM_F_REQUEST | _NLM_F_DUMP,
        int(time.time()) & 0xFFFFFFFF,
        0,
    ) + _RTMSG.pack(_AF_INET, 0, 0, 0, RT_TABLE_LOCAL, 0, 0, 0, 0)

    routes: list[Route] = []
    try:
        with socket.socket(family, socket.SOCK_RAW, _NETLINK_ROUTE) as sock:
            sock.bind((0, 0))
            sock.sendall(request)
            while True:
                data = sock.recv(_RECV_SIZE)
                if not data:
                    break
                batch, done = _scan(data)
                routes.extend(batch)
                if done:
                    break
    except OSError as exc:
        raise RouteLookupError(f"netlink route dump failed: {exc}") from exc
    return routes


def get_nexthop(dest_ip: str) -> str | None:
    """Return the gateway towards dest_ip, or None when no gateway lies on the way."""
    route = find_nexthop(dump_routes(), dest_ip)
    return route.gateway if route is not None else None