"""System fact providers"""

from .base import BaseProvider
from .sysfs import SysfsProvider
from .pci import LspciProvider
from .scsi_id import ScsiIdProvider
from .dmsetup import DmsetupProvider
from .asm import AsmProvider, AsmRules

__all__ = [
    "BaseProvider",
    "SysfsProvider",
    "LspciProvider",
    "ScsiIdProvider",
    "DmsetupProvider",
    "AsmProvider",
    "AsmRules",
]
