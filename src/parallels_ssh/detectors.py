"""
Abstract base class for hypervisor guest inspection
"""

from abc import ABC, abstractmethod
from typing import Sequence

from .config import OutputFormat, VirtualMachine
from .errors import NoAddressCommandError


class GuestInspector(ABC):
    """
    Abstract base class for hypervisor-specific guest inspection.

    Subclasses provide inventory access and command execution inside
    guests; format selection is shared.
    """

    # Listing formats in preference order
    FORMAT_PREFERENCE: tuple[OutputFormat, ...] = (OutputFormat.MODERN, OutputFormat.LEGACY)

    @abstractmethod
    def list_vms(self) -> Sequence[VirtualMachine]:
        """
        List all VMs known to the hypervisor.

        Returns:
            VMs in inventory order; empty if the inventory is unavailable
        """
        ...

    @abstractmethod
    def command_exists(self, vm: VirtualMachine, command: str) -> bool:
        """
        Check if a command resolves to a binary inside the guest.

        Args:
            vm: Target VM
            command: Command name (e.g., ip)

        Returns:
            True if the guest has the command, False otherwise
        """
        ...

    @abstractmethod
    def list_addresses(self, vm: VirtualMachine, fmt: OutputFormat) -> str:
        """
        Run the interface listing command inside the guest.

        Args:
            vm: Target VM
            fmt: Listing format to produce

        Returns:
            Raw command output

        Raises:
            GuestCommandError: If the command fails
        """
        ...

    def detect_format(self, vm: VirtualMachine) -> OutputFormat:
        """
        Pick the first listing format whose command the guest offers.

        Raises:
            NoAddressCommandError: If the guest offers none
        """
        for fmt in self.FORMAT_PREFERENCE:
            if self.command_exists(vm, fmt.command):
                return fmt
        raise NoAddressCommandError()
