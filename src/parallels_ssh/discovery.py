"""
Address discovery across all VMs
"""

import logging
from collections.abc import Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor

from .config import ResolvedAddress, VirtualMachine
from .correlator import SUPPORTED_GUEST_OS, VMProbeResult, check_vm, correlate
from .detectors import GuestInspector
from .errors import ProbeError
from .parsers import assemble_interfaces

logger = logging.getLogger(__name__)


def probe_vm(
    inspector: GuestInspector,
    vm: VirtualMachine,
    supported_os: Iterable[str] = SUPPORTED_GUEST_OS,
) -> VMProbeResult:
    """
    Resolve the addresses of a single VM.

    Probe failures are recorded on the result instead of raised.
    """
    try:
        check_vm(vm, supported_os)
        fmt = inspector.detect_format(vm)
        logger.debug(f"{vm}: using {fmt.command} listing")
        records = assemble_interfaces(inspector.list_addresses(vm, fmt), fmt)
    except ProbeError as e:
        logger.info(f"Skipping {vm.name}: {e}")
        return VMProbeResult(vm=vm, error=e)

    addresses = correlate(vm, records)
    logger.debug(f"{vm}: {len(records)} interface(s), {len(addresses)} resolved")
    return VMProbeResult(vm=vm, addresses=addresses)


def discover(
    inspector: GuestInspector,
    supported_os: Iterable[str] = SUPPORTED_GUEST_OS,
    workers: int = 1,
) -> list[VMProbeResult]:
    """
    Probe every VM in the inventory.

    Args:
        inspector: Hypervisor backend
        supported_os: Guest OS tags to probe
        workers: Number of VMs probed concurrently (1 = sequential)

    Returns:
        One result per VM, in inventory order
    """
    vms = list(inspector.list_vms())
    supported = frozenset(supported_os)

    if workers <= 1 or len(vms) <= 1:
        return [probe_vm(inspector, vm, supported) for vm in vms]

    with ThreadPoolExecutor(max_workers=min(workers, len(vms))) as executor:
        return list(executor.map(lambda vm: probe_vm(inspector, vm, supported), vms))


def collect_addresses(results: Sequence[VMProbeResult]) -> list[ResolvedAddress]:
    """Flatten successful results into connectable addresses"""
    return [
        address
        for result in results
        if result.ok
        for address in result.addresses
        if address.ip
    ]
