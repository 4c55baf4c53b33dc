"""
SCSI Topology Tool

This package maps SCSI devices of a Linux guest to their VMware virtual SCSI
controllers and correlates them with WWIDs, LVM volume groups, Oracle ASM
disks and multipath maps. It also resolves WWN/WWID vendors from the IEEE
OUI registry.
"""

from .models import DeviceRecord, ScsiAddress, ControllerMap
from .device_mapper import DeviceRecordBuilder, RunContext
from .controller_map import ControllerOrderResolver
from .scsi_topology import ScsiTopology

__version__ = "1.0.0"
__all__ = [
    "ControllerMap",
    "ControllerOrderResolver",
    "DeviceRecord",
    "DeviceRecordBuilder",
    "RunContext",
    "ScsiAddress",
    "ScsiTopology",
]
