"""
Exception hierarchy for ssh-parallels
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .menu import Outcome


class ParallelsSSHError(Exception):
    """Base class for all ssh-parallels errors"""


class ProbeError(ParallelsSSHError):
    """A single VM could not be probed for addresses"""


class VMNotRunningError(ProbeError):
    def __init__(self, vm_name: str, vm_id: str):
        super().__init__(f"{vm_name}({vm_id}) not running")


class UnsupportedGuestError(ProbeError):
    def __init__(self, os_name: str):
        super().__init__(f"{os_name or 'unknown OS'} is not supported")


class NoAddressCommandError(ProbeError):
    def __init__(self):
        super().__init__("No command to get ip address")


class GuestCommandError(ProbeError):
    """A command executed inside the guest failed"""


class SurfaceError(ParallelsSSHError):
    """The terminal could not be used for an interactive session"""


class PromptError(ParallelsSSHError):
    """An interactive prompt ended without producing a value"""

    def __init__(self, outcome: "Outcome", message: str = ""):
        self.outcome = outcome
        super().__init__(message or f"prompt ended: {outcome.value}")
