"""
Remote shell launcher
"""

import logging
import subprocess

from .config import IPAddress, ResolvedAddress

logger = logging.getLogger(__name__)

SSH_BINARY = "ssh"
# Exit code reported when the ssh binary cannot be started
COMMAND_NOT_FOUND = 127


def build_ssh_command(ip: IPAddress, user: str, port: int) -> list[str]:
    return [SSH_BINARY, ip, "-l", user, "-p", str(port)]


def ssh_login(address: ResolvedAddress, user: str, port: int) -> int:
    """
    Open an interactive ssh session to a resolved address.

    The session inherits this process's stdin/stdout/stderr and blocks
    until ssh exits.

    Returns:
        ssh exit code
    """
    if not address.ip:
        raise ValueError(f"{address.vm.name} has no IPv4 address")

    cmd = build_ssh_command(address.ip, user, port)
    logger.info(f"Connecting: {' '.join(cmd)}")
    try:
        result = subprocess.run(cmd, check=False)
    except FileNotFoundError:
        logger.error(f"[FAIL] {SSH_BINARY} not found in PATH")
        return COMMAND_NOT_FOUND
    return result.returncode
