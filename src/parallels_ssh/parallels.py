"""
Parallels Desktop guest inspection via prlctl
"""

import json
import logging
import subprocess
from typing import Sequence

from .config import OutputFormat, VirtualMachine
from .detectors import GuestInspector
from .errors import GuestCommandError

logger = logging.getLogger(__name__)

DEFAULT_PRLCTL = "prlctl"
DEFAULT_TIMEOUT = 30


def parse_inventory(output: str) -> list[VirtualMachine]:
    """
    Parse ``prlctl list -a --info -j`` output.

    Malformed output yields an empty list; individual malformed entries
    are skipped.
    """
    try:
        data = json.loads(output)
    except json.JSONDecodeError as e:
        logger.warning(f"Unable to parse VM inventory: {e}")
        return []

    if not isinstance(data, list):
        logger.warning("Unexpected VM inventory format")
        return []

    vms: list[VirtualMachine] = []
    for entry in data:
        if not isinstance(entry, dict):
            continue
        try:
            vms.append(VirtualMachine.from_inventory(entry))
        except ValueError as e:
            logger.debug(f"Skipping inventory entry: {e}")
    return vms


def whereis_found(output: str, command: str) -> bool:
    """Check ``whereis`` output lists at least one path for command"""
    prefix = f"{command}:"
    for line in output.splitlines():
        if line.startswith(prefix):
            return line[len(prefix):].strip() != ""
    return False


class ParallelsInspector(GuestInspector):
    """
    Guest inspection using the prlctl command line tool.

    All guest commands go through ``prlctl exec <id> ...`` which requires
    Parallels Tools inside the guest.
    """

    def __init__(self, prlctl: str = DEFAULT_PRLCTL, timeout: int = DEFAULT_TIMEOUT):
        """
        Initialize inspector.

        Args:
            prlctl: prlctl binary name or path
            timeout: Timeout in seconds for each prlctl call
        """
        self.prlctl = prlctl
        self.timeout = timeout

    def list_vms(self) -> Sequence[VirtualMachine]:
        """
        List all VMs with their hardware using prlctl.

        Any failure to run prlctl yields an empty inventory.
        """
        try:
            result = subprocess.run(
                [self.prlctl, "list", "-a", "--info", "-j"],
                capture_output=True,
                text=True,
                errors="replace",
                check=True,
                timeout=self.timeout
            )
        except FileNotFoundError:
            logger.error("Parallels is not installed!")
            return []
        except OSError as e:
            logger.error(f"Unable to run {self.prlctl}: {e}")
            return []
        except (subprocess.CalledProcessError, subprocess.TimeoutExpired) as e:
            logger.warning(f"prlctl list failed: {e}")
            return []

        vms = parse_inventory(result.stdout)
        logger.debug(f"Inventory lists {len(vms)} VM(s)")
        return vms

    def exec(self, vm: VirtualMachine, *args: str) -> str:
        """
        Run a command inside the guest.

        Undecodable output bytes become U+FFFD.

        Raises:
            GuestCommandError: If prlctl or the guest command fails
        """
        cmd = [self.prlctl, "exec", vm.id, *args]
        logger.debug(f"RUN: {' '.join(cmd)}")
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                errors="replace",
                check=True,
                timeout=self.timeout
            )
        except (subprocess.CalledProcessError, subprocess.TimeoutExpired, OSError) as e:
            raise GuestCommandError(f"{vm}: {' '.join(args)} failed: {e}") from e
        return result.stdout

    def command_exists(self, vm: VirtualMachine, command: str) -> bool:
        """Check for command using whereis inside the guest"""
        try:
            output = self.exec(vm, "whereis", command)
        except GuestCommandError as e:
            logger.debug(f"whereis {command} failed: {e}")
            return False
        return whereis_found(output, command)

    def list_addresses(self, vm: VirtualMachine, fmt: OutputFormat) -> str:
        """Run ip address show or ifconfig inside the guest"""
        return self.exec(vm, *fmt.argv)
