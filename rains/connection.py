"""Connection types, network addresses and connection setup."""

from __future__ import annotations

import ipaddress
import json
import socket
import ssl
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Mapping, Union

MAX_UDP_PACKET_BYTES = 9000


class ConnectionType(IntEnum):
    """Kinds of network connections."""

    TCP = 1
    SCION = 2

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class TcpAddress:
    """A TCP endpoint: IP address, port and optional IPv6 zone."""

    host: str
    port: int
    zone: str = ""

    def network(self) -> str:
        """Return the name of the network this address belongs to."""
        return "tcp"

    def __str__(self) -> str:
        host = f"{self.host}%{self.zone}" if self.zone else self.host
        if ":" in host:
            host = f"[{host}]"
        return f"{host}:{self.port}"


@dataclass(frozen=True)
class Info:
    """Address information about one end of a connection."""

    type: ConnectionType
    addr: Any


def connection_type_to_json(value: int) -> str:
    """Encode a connection type as a JSON string."""
    try:
        member = ConnectionType(value)
    except ValueError:
        raise ValueError(f"invalid Type: {value}") from None
    return json.dumps(str(member))


def connection_type_from_json(data: Union[str, bytes]) -> ConnectionType:
    """Decode a connection type from its JSON string form."""
    raw = data.decode("utf-8", errors="replace") if isinstance(data, (bytes, bytearray)) else data
    try:
        name = json.loads(raw)
    except ValueError:
        name = None
    if not isinstance(name, str):
        raise ValueError(f"Type should be a string, got {raw}")
    for member in ConnectionType:
        if str(member) == name:
            return member
    raise ValueError(f"invalid Type {json.dumps(name)}")


def _tcp_address_from_json(value: Any) -> TcpAddress:
    if not isinstance(value, Mapping):
        raise ValueError("TCPAddr must be a JSON object")
    fields = {str(key).lower(): item for key, item in value.items()}
    ip = fields.get("ip")
    port = fields.get("port", 0)
    zone = fields.get("zone", "")
    if ip in (None, ""):
        host = ""
    elif isinstance(ip, str):
        try:
            host = str(ipaddress.ip_address(ip))
        except ValueError:
            raise ValueError(f"invalid IP address: {ip}") from None
    else:
        raise ValueError(f"invalid IP address: {ip!r}")
    if isinstance(port, bool) or not isinstance(port, int):
        raise ValueError(f"port must be an integer, got {port!r}")
    if zone is None:
        zone = ""
    if not isinstance(zone, str):
        raise ValueError(f"zone must be a string, got {zone!r}")
    return TcpAddress(host=host, port=port, zone=zone)


def unmarshal_net_addr(data: Union[str, bytes]) -> Info:
    """Parse a JSON address description into connection info."""
    description = json.loads(data)
    if not isinstance(description, Mapping):
        raise ValueError("address description must be a JSON object")
    kind = description.get("Type")
    if kind == "TCP":
        if "TCPAddr" not in description:
            raise ValueError("TCPAddr key not found in JSON config")
        return Info(ConnectionType.TCP, _tcp_address_from_json(description["TCPAddr"]))
    if kind == "SCION":
        if "SCIONAddr" not in description:
            raise ValueError("local address is required for SCION")
        local = description["SCIONAddr"]
        if not isinstance(local, str):
            raise ValueError("local address must be a string")
        raise ValueError(f"failed to parse local addr: SCION networking is not available: {local}")
    raise ValueError("Unknown Addr type")


def create_connection(addr: Any) -> ssl.SSLSocket:
    """Open a TLS connection to addr without verifying the peer certificate."""
    if not isinstance(addr, TcpAddress):
        raise ValueError(f"unsupported Network address type: {addr}")
    context = ssl.create_default_context()
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE
    host = f"{addr.host}%{addr.zone}" if addr.zone else addr.host
    raw = socket.create_connection((host, addr.port))
    try:
        return context.wrap_socket(raw, server_hostname=addr.host or None)
    except BaseException:
        raw.close()
        raise