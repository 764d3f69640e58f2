"""
Pytest configuration and shared fixtures
"""

from collections.abc import Sequence
from typing import Optional

import pytest

from parallels_ssh.config import (
    AdapterDescriptor,
    OutputFormat,
    VirtualMachine,
)
from parallels_ssh.detectors import GuestInspector
from parallels_ssh.errors import GuestCommandError, SurfaceError
from parallels_ssh.tui import Canvas, Event, EventType


MODERN_OUTPUT = """1: lo: <LOOPBACK,UP,LOWER_UP> mtu 65536 qdisc noqueue state UNKNOWN group default qlen 1000
    link/loopback 00:00:00:00:00:00 brd 00:00:00:00:00:00
    inet 127.0.0.1/8 scope host lo
       valid_lft forever preferred_lft forever
    inet6 ::1/128 scope host
       valid_lft forever preferred_lft forever
2: enp0s5: <BROADCAST,MULTICAST,UP,LOWER_UP> mtu 1500 qdisc fq_codel state UP group default qlen 1000
    link/ether 00:1c:42:c4:5c:24 brd ff:ff:ff:ff:ff:ff
    inet 10.211.55.5/24 brd 10.211.55.255 scope global dynamic enp0s5
       valid_lft 1621sec preferred_lft 1621sec
    inet6 fdb2:2c26:f4e4:0:21c:42ff:fec4:5c24/64 scope global dynamic mngtmpaddr noprefixroute
3: enp0s6: <BROADCAST,MULTICAST> mtu 1500 qdisc noop state DOWN group default qlen 1000
    link/ether 00:1c:42:aa:bb:cc brd ff:ff:ff:ff:ff:ff
"""

LEGACY_OUTPUT = """eth0: flags=4163<UP,BROADCAST,RUNNING,MULTICAST>  mtu 1500
        inet 10.211.55.5  netmask 255.255.255.0  broadcast 10.211.55.255
        inet6 fe80::21c:42ff:fec4:5c24  prefixlen 64  scopeid 0x20<link>
        ether 00:1c:42:c4:5c:24  txqueuelen 1000  (Ethernet)
        RX packets 1200  bytes 150000 (146.4 KiB)

lo: flags=73<UP,LOOPBACK,RUNNING>  mtu 65536
        inet 127.0.0.1  netmask 255.0.0.0
        loop  txqueuelen 1000  (Local Loopback)
"""


def make_vm(
    name: str = "ubuntu",
    vm_id: str = "{11111111-2222-3333-4444-555555555555}",
    state: str = "running",
    os: str = "ubuntu",
    adapters: Optional[Sequence[AdapterDescriptor]] = None,
) -> VirtualMachine:
    if adapters is None:
        adapters = [AdapterDescriptor("net0", True, "001C42C45C24", "shared", True)]
    return VirtualMachine(
        id=vm_id,
        name=name,
        state=state,
        os=os,
        adapters={adapter.key: adapter for adapter in adapters},
    )


class FakeInspector(GuestInspector):
    """In-memory hypervisor: per VM id, the guest commands and their output"""

    def __init__(self, vms: Sequence[VirtualMachine], guests: dict[str, dict[str, str]]):
        self.vms = list(vms)
        self.guests = guests
        self.listed: list[tuple[str, OutputFormat]] = []

    def list_vms(self) -> Sequence[VirtualMachine]:
        return self.vms

    def command_exists(self, vm: VirtualMachine, command: str) -> bool:
        return command in self.guests.get(vm.id, {})

    def list_addresses(self, vm: VirtualMachine, fmt: OutputFormat) -> str:
        self.listed.append((vm.id, fmt))
        output = self.guests.get(vm.id, {}).get(fmt.command)
        if output is None:
            raise GuestCommandError(f"{fmt.command} failed")
        return output


class FakeSurface:
    """
    Scripted surface for driving menus in tests.

    Events are delivered in order; when the script runs out an ERROR
    event is returned so a broken test cannot loop forever.
    """

    def __init__(self, events: Sequence[Event] = (), width: int = 80, height: int = 24,
                 fail_on_enter: bool = False):
        self.events = list(events)
        self.width = width
        self.height = height
        self.fail_on_enter = fail_on_enter
        self.canvas = Canvas(width, height)
        self.frames: list[list[str]] = []
        self.entered = False
        self.exited = False

    def __enter__(self) -> "FakeSurface":
        if self.fail_on_enter:
            raise SurfaceError("no terminal")
        self.entered = True
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.exited = True

    def size(self):
        return self.width, self.height

    def clear(self) -> None:
        self.canvas = Canvas(self.width, self.height)

    def set_cell(self, x, y, ch, style=None) -> None:
        self.canvas.set_cell(x, y, ch, style)

    def write(self, x, y, text, style=None) -> None:
        self.canvas.write(x, y, text, style)

    def flush(self) -> None:
        self.frames.append([self.canvas.row(y) for y in range(self.canvas.height)])

    def poll_event(self) -> Event:
        if not self.events:
            return Event(EventType.ERROR, error=EOFError("script exhausted"))
        return self.events.pop(0)

    @property
    def last_frame(self) -> list[str]:
        return self.frames[-1]


@pytest.fixture
def modern_output() -> str:
    return MODERN_OUTPUT


@pytest.fixture
def legacy_output() -> str:
    return LEGACY_OUTPUT


@pytest.fixture
def running_vm() -> VirtualMachine:
    """Running Linux VM with one enabled shared adapter"""
    return make_vm()


@pytest.fixture
def inventory_json() -> str:
    """Sample prlctl list -a --info -j output"""
    return """[
  {
    "ID": "{11111111-2222-3333-4444-555555555555}",
    "Name": "ubuntu",
    "Description": "",
    "Type": "VM",
    "State": "running",
    "OS": "ubuntu",
    "Uptime": "3600",
    "Home": "/Users/me/Parallels/ubuntu.pvm/",
    "GuestTools": {"state": "installed", "version": "19.1.0-54729"},
    "Hardware": {
      "cpu": {"cpus": 2},
      "hdd0": {"enabled": true, "size": "65536Mb"},
      "net0": {"enabled": true, "type": "shared", "mac": "001C42C45C24", "card": "virtio", "iface": "default"},
      "net1": {"enabled": false, "type": "bridged", "mac": "001C42AABBCC", "card": "virtio"}
    }
  },
  {
    "ID": "{66666666-7777-8888-9999-000000000000}",
    "Name": "Windows 11",
    "State": "stopped",
    "OS": "win-11",
    "Hardware": {}
  }
]"""
