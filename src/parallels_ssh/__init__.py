"""
ssh-parallels Package
Discover Parallels Desktop VM addresses and ssh into one interactively

Version 1.0.0 - Python 3.12+ with modern type system
"""

__version__ = "1.0.0"

from .config import (
    AdapterDescriptor,
    InterfaceRecord,
    OutputFormat,
    ResolvedAddress,
    VirtualMachine,
    normalize_mac,
)
from .parsers import assemble_interfaces, classify_line
from .correlator import VMProbeResult, correlate
from .detectors import GuestInspector
from .parallels import ParallelsInspector
from .discovery import collect_addresses, discover
from .settings import Settings, load_settings

__all__ = [
    "AdapterDescriptor",
    "InterfaceRecord",
    "OutputFormat",
    "ResolvedAddress",
    "VirtualMachine",
    "normalize_mac",
    "assemble_interfaces",
    "classify_line",
    "VMProbeResult",
    "correlate",
    "GuestInspector",
    "ParallelsInspector",
    "collect_addresses",
    "discover",
    "Settings",
    "load_settings",
]
