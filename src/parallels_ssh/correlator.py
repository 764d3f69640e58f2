"""
Match guest interfaces against hypervisor-declared network adapters
"""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Optional

from .config import InterfaceRecord, ResolvedAddress, VirtualMachine
from .errors import ProbeError, UnsupportedGuestError, VMNotRunningError

logger = logging.getLogger(__name__)

# Guest OS tags reported by the inventory that we know how to probe
SUPPORTED_GUEST_OS: frozenset[str] = frozenset({"linux", "ubuntu"})


@dataclass(slots=True)
class VMProbeResult:
    """
    Outcome of probing one VM.

    Either ``addresses`` holds the resolved entries, or ``error`` records why
    the VM was skipped.
    """
    vm: VirtualMachine
    addresses: list[ResolvedAddress] = field(default_factory=list)
    error: Optional[ProbeError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def check_vm(vm: VirtualMachine, supported_os: Iterable[str] = SUPPORTED_GUEST_OS) -> None:
    """
    Ensure a VM can be probed for addresses.

    Raises:
        VMNotRunningError: If the VM is not running
        UnsupportedGuestError: If the guest OS is not supported
    """
    if not vm.is_running:
        raise VMNotRunningError(vm.name, vm.id)
    if vm.os not in set(supported_os):
        raise UnsupportedGuestError(vm.os)


def correlate(vm: VirtualMachine, records: Sequence[InterfaceRecord]) -> list[ResolvedAddress]:
    """
    Pair guest interfaces with the VM's declared network adapters.

    Each interface resolves against at most one adapter (the first enabled
    network adapter whose MAC matches), and each adapter appears at most
    once. An adapter held by an interface without IPv4 (a bridge or bond
    member) passes to a later interface with the same MAC that has one.

    Args:
        vm: VM whose adapters are declared by the hypervisor
        records: Interfaces parsed from the guest, in listing order

    Returns:
        Resolved addresses in interface order
    """
    # adapter key -> entry; insertion order is interface order
    claimed: dict[str, ResolvedAddress] = {}

    for record in records:
        if not record.mac:
            continue

        for key, adapter in vm.adapters.items():
            if not adapter.is_network or not adapter.enabled:
                continue
            if adapter.normalized_mac != record.mac:
                continue

            previous = claimed.get(key)
            if previous is not None:
                if previous.interface.has_ipv4 or not record.has_ipv4:
                    continue
                logger.debug(f"{vm.name}: {record.name} takes {key} over {previous.interface.name}")
                del claimed[key]
            else:
                logger.debug(f"{vm.name}: {record.name} ({record.mac}) matches {key}")

            claimed[key] = ResolvedAddress(
                vm=vm,
                interface=record,
                adapter_key=key,
                is_default=adapter.is_default,
                adapter_type=adapter.adapter_type,
            )
            break

    return list(claimed.values())
