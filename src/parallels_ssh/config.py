"""
Data models and type definitions
Python 3.12+ with modern type system
"""

import re
from dataclasses import dataclass, field
from typing import Any, Optional, TypeAlias
from enum import Enum

# Type aliases
InterfaceName: TypeAlias = str
IPAddress: TypeAlias = str
MACAddress: TypeAlias = str
AdapterKey: TypeAlias = str

# Hardware keys that describe network adapters (net0, net1, ...)
NETWORK_ADAPTER_PREFIX = "net"

_HEX_MAC = re.compile(r"^[0-9a-f]{12}$")


def normalize_mac(value: str) -> MACAddress:
    """
    Convert a MAC address to lower-case colon separated form.

    Accepts the hypervisor's unseparated form ("001C42C45C24") as well as
    already separated values, so normalizing twice is harmless.

    Raises:
        ValueError: If the value is not 12 hex digits
    """
    digits = value.replace(":", "").replace("-", "").strip().lower()
    if not _HEX_MAC.match(digits):
        raise ValueError(f"Invalid MAC address: {value!r}")
    return ":".join(digits[i:i + 2] for i in range(0, 12, 2))


class OutputFormat(Enum):
    """Interface listing formats a guest may offer, in probe order"""
    MODERN = "ip"
    LEGACY = "ifconfig"

    @property
    def command(self) -> str:
        """Binary probed for inside the guest"""
        return self.value

    @property
    def argv(self) -> list[str]:
        """Full guest command producing the listing"""
        match self:
            case OutputFormat.MODERN:
                return ["ip", "address", "show"]
            case OutputFormat.LEGACY:
                return ["ifconfig"]


@dataclass(frozen=True, slots=True)
class InterfaceRecord:
    """
    Network interface observed inside a guest.

    Attributes:
        name: Interface name (e.g., eth0, enp0s5)
        link_type: Link type (e.g., ether)
        mac: MAC address, lower-case colon separated
        ip: IPv4 address
        mask: Prefix length ("24") or dotted quad depending on source format
        broadcast: Broadcast address
    """
    name: InterfaceName = ""
    link_type: Optional[str] = None
    mac: Optional[MACAddress] = None
    ip: Optional[IPAddress] = None
    mask: Optional[str] = None
    broadcast: Optional[IPAddress] = None

    @property
    def has_ipv4(self) -> bool:
        return bool(self.ip)


@dataclass(frozen=True, slots=True)
class AdapterDescriptor:
    """
    Virtual network adapter declared by the hypervisor.

    Attributes:
        key: Hardware key (e.g., net0)
        enabled: Whether the adapter is enabled
        mac: MAC in hypervisor form (12 hex digits, no separators)
        adapter_type: Network type (shared, bridged, host-only)
        is_default: Whether this adapter carries the default route
    """
    key: AdapterKey
    enabled: bool
    mac: str
    adapter_type: str = ""
    is_default: bool = False

    @property
    def is_network(self) -> bool:
        return self.key.startswith(NETWORK_ADAPTER_PREFIX)

    @property
    def normalized_mac(self) -> Optional[MACAddress]:
        """Colon separated MAC, or None when the hypervisor value is malformed"""
        try:
            return normalize_mac(self.mac)
        except ValueError:
            return None

    @classmethod
    def from_hardware(cls, key: AdapterKey, params: dict[str, Any]) -> "AdapterDescriptor":
        """Build from one entry of the inventory's Hardware mapping"""
        return cls(
            key=key,
            enabled=params.get("enabled") is True,
            mac=str(params.get("mac") or ""),
            adapter_type=str(params.get("type") or ""),
            is_default=params.get("iface") == "default",
        )


@dataclass(frozen=True, slots=True)
class VirtualMachine:
    """
    Virtual machine as reported by the hypervisor inventory.

    Only network adapters are kept in ``adapters``; their order follows the
    inventory.
    """
    id: str
    name: str
    state: str = ""
    os: str = ""
    uptime: str = ""
    home: str = ""
    guest_tools_state: str = ""
    guest_tools_version: str = ""
    adapters: dict[AdapterKey, AdapterDescriptor] = field(default_factory=dict)

    @property
    def is_running(self) -> bool:
        return self.state == "running"

    @classmethod
    def from_inventory(cls, data: dict[str, Any]) -> "VirtualMachine":
        """
        Parse one element of ``prlctl list -a --info -j``.

        Raises:
            ValueError: If the entry has no ID
        """
        vm_id = data.get("ID")
        if not vm_id:
            raise ValueError("Inventory entry without ID")

        hardware = data.get("Hardware") or {}
        adapters = {
            key: AdapterDescriptor.from_hardware(key, params)
            for key, params in hardware.items()
            if key.startswith(NETWORK_ADAPTER_PREFIX) and isinstance(params, dict)
        }

        tools = data.get("GuestTools") or {}
        return cls(
            id=str(vm_id),
            name=str(data.get("Name") or data.get("name") or vm_id),
            state=str(data.get("State") or ""),
            os=str(data.get("OS") or ""),
            uptime=str(data.get("Uptime") or ""),
            home=str(data.get("Home") or ""),
            guest_tools_state=str(tools.get("state") or ""),
            guest_tools_version=str(tools.get("version") or ""),
            adapters=adapters,
        )

    def __str__(self) -> str:
        return f"{self.name}({self.id})"


@dataclass(frozen=True, slots=True)
class ResolvedAddress:
    """
    Guest interface confirmed to belong to a declared adapter.

    Attributes:
        vm: Owning virtual machine
        interface: Matched guest interface
        adapter_key: Hardware key of the matched adapter
        is_default: Whether the adapter carries the default route
        adapter_type: Network type of the adapter
    """
    vm: VirtualMachine
    interface: InterfaceRecord
    adapter_key: AdapterKey
    is_default: bool = False
    adapter_type: str = ""

    @property
    def ip(self) -> Optional[IPAddress]:
        return self.interface.ip

    def display(self) -> str:
        """Menu line for this address"""
        return f" {self.vm.name:<20}: {self.ip or '':<15} ({self.adapter_type})"

    def label(self) -> str:
        """Short label used by the username prompt"""
        return f"{self.vm.name} ({self.ip})"
