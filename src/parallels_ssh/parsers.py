"""
Guest interface listing parsers

Two mutually exclusive listing formats are supported:

MODERN (``ip address show``)::

    2: eth0: <BROADCAST,MULTICAST,UP,LOWER_UP> mtu 1500 qdisc fq_codel state UP
        link/ether 00:1c:42:c4:5c:24 brd ff:ff:ff:ff:ff:ff
        inet 10.211.55.5/24 brd 10.211.55.255 scope global dynamic eth0

LEGACY (``ifconfig``)::

    eth0: flags=4163<UP,BROADCAST,RUNNING,MULTICAST>  mtu 1500
            inet 10.211.55.5  netmask 255.255.255.0  broadcast 10.211.55.255
            ether 00:1c:42:c4:5c:24  txqueuelen 1000  (Ethernet)

A line without leading whitespace opens a new interface block; indented
lines belong to the block above them.
"""

import re
from dataclasses import dataclass, replace
from typing import Optional, TypeAlias

from .config import InterfaceRecord, OutputFormat

# Header: "2: eth0: <...>", "3: eth0@if7: <...>" or "eth0: flags=..."
HEADER_PATTERN = re.compile(r"^(?:\d+:\s+)?([^\s:@]+)(?:@\S*)?:")

# MODERN continuation lines
LINK_PATTERN = re.compile(r"^\s*link/(\w+)\s+([0-9A-Fa-f:]+)(?:\s+brd\s+([0-9A-Fa-f:]+))?")
INET_CIDR_PATTERN = re.compile(r"^\s*inet\s+([\d.]+)/(\d+)(?:.*?\bbrd\s+([\d.]+))?")

# LEGACY continuation lines
ETHER_PATTERN = re.compile(r"^\s*ether\s+([0-9A-Fa-f:]+)")
INET_NETMASK_PATTERN = re.compile(
    r"^\s*inet\s+([\d.]+)\s+netmask\s+([\d.]+)(?:\s+broadcast\s+([\d.]+))?"
)


@dataclass(frozen=True, slots=True)
class NewInterface:
    name: str


@dataclass(frozen=True, slots=True)
class LinkInfo:
    link_type: str
    mac: str


@dataclass(frozen=True, slots=True)
class InetInfo:
    ip: str
    mask: str
    broadcast: Optional[str] = None


@dataclass(frozen=True, slots=True)
class Unrecognized:
    pass


LineEvent: TypeAlias = NewInterface | LinkInfo | InetInfo | Unrecognized

UNRECOGNIZED = Unrecognized()


def is_header(line: str) -> bool:
    """Check if line opens a new interface block"""
    return bool(line.strip()) and not line[0].isspace()


def classify_line(line: str, fmt: OutputFormat) -> LineEvent:
    """
    Classify one line of interface listing output.

    Args:
        line: Raw line, including any leading whitespace
        fmt: Listing format the line came from

    Returns:
        The line event carrying any extracted fields
    """
    if not line.strip():
        return UNRECOGNIZED

    if is_header(line):
        header = HEADER_PATTERN.match(line)
        return NewInterface(header.group(1) if header else "")

    match fmt:
        case OutputFormat.MODERN:
            return _classify_modern(line)
        case OutputFormat.LEGACY:
            return _classify_legacy(line)


def _classify_modern(line: str) -> LineEvent:
    if m := INET_CIDR_PATTERN.match(line):
        return InetInfo(ip=m.group(1), mask=m.group(2), broadcast=m.group(3))
    if m := LINK_PATTERN.match(line):
        return LinkInfo(link_type=m.group(1), mac=m.group(2).lower())
    return UNRECOGNIZED


def _classify_legacy(line: str) -> LineEvent:
    if m := INET_NETMASK_PATTERN.match(line):
        return InetInfo(ip=m.group(1), mask=m.group(2), broadcast=m.group(3))
    if m := ETHER_PATTERN.match(line):
        return LinkInfo(link_type="ether", mac=m.group(1).lower())
    return UNRECOGNIZED


def assemble_interfaces(text: str, fmt: OutputFormat) -> list[InterfaceRecord]:
    """
    Group listing output into one record per interface.

    Lines appearing before the first header are ignored. When an interface
    reports several addresses the last one wins.

    Args:
        text: Complete listing output
        fmt: Format the output was produced in

    Returns:
        Interface records in listing order
    """
    records: list[InterfaceRecord] = []
    current: Optional[InterfaceRecord] = None

    for line in text.splitlines():
        event = classify_line(line, fmt)

        match event:
            case NewInterface(name=name):
                if current is not None:
                    records.append(current)
                current = InterfaceRecord(name=name)
            case LinkInfo(link_type=link_type, mac=mac) if current is not None:
                current = replace(current, link_type=link_type, mac=mac)
            case InetInfo(ip=ip, mask=mask, broadcast=broadcast) if current is not None:
                current = replace(current, ip=ip, mask=mask, broadcast=broadcast)
            case _:
                pass

    if current is not None:
        records.append(current)

    return records
