"""Data models for SCSI topology"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union


# Sentinels rendered in place of missing per-device data
NO_BLOCK_DEVICE = "NO_BLOCK_DEVICE"
NO_WWID = "NO_WWID"
NO_ASM = "NO_ASM"
NO_ASM_DG = "NO_ASM_DG"
NO_ASM_SZ = "NO_ASM_SZ"
NO_ASM_INFO = "NO_ASM_INFO"
ERROR_GETTING_SIZE = "ERROR_GETTING_SIZE"
NO_MULTIPATH = "-"
NOT_APPLICABLE = "-"
NOT_AVAILABLE = "N/A"

SECTOR_SIZE = 512


@dataclass(frozen=True, order=True)
class ScsiAddress:
    """SCSI device address (H:B:T:L) as used by the kernel"""

    host: int
    bus: int
    target: int
    lun: int

    @classmethod
    def parse(cls, value: str) -> "ScsiAddress":
        """Parse a colon-delimited H:B:T:L string

        Raises:
            ValueError: If the string is not four non-negative integers
        """
        parts = value.strip().split(":")
        if len(parts) != 4 or not all(p.isdigit() for p in parts):
            raise ValueError(f"Invalid SCSI address: '{value}'")
        return cls(*(int(p) for p in parts))

    def __str__(self) -> str:
        return f"{self.host}:{self.bus}:{self.target}:{self.lun}"


@dataclass
class PciController:
    """A storage class controller as seen on the PCI bus"""

    pci_address: str                 # Bus address (e.g., 03:00.0)
    description: str = ""            # lspci description
    io_port: Optional[str] = None    # I/O port base in hex, if any
    host: Optional[int] = None       # Linux SCSI host number

    @property
    def io_port_value(self) -> Optional[int]:
        """I/O port base as an integer, None if absent or malformed"""
        if not self.io_port:
            return None
        try:
            return int(self.io_port, 16)
        except ValueError:
            return None


@dataclass(frozen=True)
class ControllerEntry:
    """One VMware virtual SCSI controller and the Linux host it became"""

    index: int
    pci_address: str
    io_port: str
    host: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "vmware_controller": self.index,
            "linux_host": self.host,
            "pci_address": self.pci_address,
            "io_port": self.io_port,
        }


@dataclass(frozen=True)
class ControllerMap:
    """VMware controller index to Linux SCSI host mapping

    Entries are ordered by controller index, which follows the ascending
    I/O port order of the PCI devices.
    """

    entries: Tuple[ControllerEntry, ...] = ()

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)

    def index_for_host(self, host: int) -> Optional[int]:
        """Get the VMware controller index for a Linux host, None if unmapped"""
        for entry in self.entries:
            if entry.host is not None and entry.host == host:
                return entry.index
        return None

    def controller_for_host(self, host: int) -> int:
        """Get the VMware controller index, or the raw host number if unmapped

        Unmapped hosts (IDE/SATA CD-ROMs, MMIO-only controllers) keep their
        Linux host number in the controller column.
        """
        index = self.index_for_host(host)
        return host if index is None else index

    def as_dict(self) -> Dict[int, Optional[int]]:
        """Get the mapping as {controller index: linux host}"""
        return {entry.index: entry.host for entry in self.entries}


@dataclass(frozen=True)
class AsmDisk:
    """One disk from the ASM disk listing (kfod)"""

    number: int
    name: str                        # ASM device name without partition suffix
    status: str                      # MEMBER, CANDIDATE, FORMER, ...
    disk_group: str
    size_mb: int

    def to_dict(self) -> dict:
        return {
            "number": self.number,
            "name": self.name,
            "status": self.status,
            "disk_group": self.disk_group,
            "size_mb": self.size_mb,
        }


@dataclass(frozen=True)
class StorageMembership:
    """Storage stack classification of a device

    Exactly one of ASM member, LVM member or unclassified.
    """

    ASM = "ASM"
    LVM = "LVM"
    NONE = "NONE"

    kind: str = NONE
    name: str = ""
    asm_disk: Optional[AsmDisk] = None

    @classmethod
    def asm(cls, name: str, asm_disk: Optional[AsmDisk] = None) -> "StorageMembership":
        return cls(kind=cls.ASM, name=name, asm_disk=asm_disk)

    @classmethod
    def lvm(cls, volume_group: str) -> "StorageMembership":
        return cls(kind=cls.LVM, name=volume_group)

    @classmethod
    def unclassified(cls) -> "StorageMembership":
        return cls(kind=cls.NONE)

    @property
    def is_asm(self) -> bool:
        return self.kind == self.ASM

    @property
    def is_lvm(self) -> bool:
        return self.kind == self.LVM

    @property
    def label(self) -> str:
        """Value for the lvm_or_asm column"""
        return self.name if self.kind != self.NONE else NO_ASM

    def asm_columns(self) -> List[str]:
        """Values for the status, disk_gr and size_mb columns"""
        if not self.is_asm:
            return [NO_ASM, NO_ASM_DG, NO_ASM_SZ]
        if self.asm_disk is None:
            return [NO_ASM_INFO, NO_ASM_INFO, NO_ASM_INFO]
        return [self.asm_disk.status, self.asm_disk.disk_group, str(self.asm_disk.size_mb)]


@dataclass(frozen=True)
class Capacity:
    """Block device capacity in 512 byte sectors"""

    sectors: int

    @property
    def size_bytes(self) -> int:
        return self.sectors * SECTOR_SIZE

    @property
    def gb(self) -> float:
        return round(self.size_bytes / 1000 ** 3, 1)

    @property
    def gib(self) -> float:
        return round(self.size_bytes / 1024 ** 3, 1)

    @property
    def gb_str(self) -> str:
        return f"{self.size_bytes / 1000 ** 3:.1f}GB"

    @property
    def gib_str(self) -> str:
        return f"{self.size_bytes / 1024 ** 3:.1f}GiB"


@dataclass(frozen=True)
class DeviceRecord:
    """Enriched description of one SCSI device"""

    hostname: str
    address: ScsiAddress
    controller: int                  # VMware controller index, or Linux host if unmapped
    vendor: str
    model: str
    generic_device: Optional[str]    # sgN, None if no generic device is bound
    block_device: str                # sdX or NO_BLOCK_DEVICE
    wwid: str                        # WWID or NO_WWID
    storage: StorageMembership = field(default_factory=StorageMembership.unclassified)
    multipath: str = NO_MULTIPATH
    # Capacity, ERROR_GETTING_SIZE, or None without a block device
    capacity: Union[Capacity, str, None] = None

    @property
    def target(self) -> int:
        return self.address.target

    @property
    def lun(self) -> int:
        return self.address.lun

    @property
    def scsi_ht(self) -> str:
        """VMware relative address, as shown in the vSphere client"""
        return f"SCSI({self.controller}:{self.address.target})"

    @property
    def has_block_device(self) -> bool:
        return self.block_device != NO_BLOCK_DEVICE

    @property
    def size_gb(self) -> str:
        if isinstance(self.capacity, Capacity):
            return self.capacity.gb_str
        return self.capacity or NOT_APPLICABLE

    @property
    def size_gib(self) -> str:
        if isinstance(self.capacity, Capacity):
            return self.capacity.gib_str
        return self.capacity or NOT_APPLICABLE

    def to_dict(self) -> dict:
        """Convert record to dictionary representation"""
        return {
            "host": self.hostname,
            "hbtl": str(self.address),
            "scsi_ht": self.scsi_ht,
            "lun": self.lun,
            "vendor": self.vendor,
            "model": self.model,
            "sg_dev": self.generic_device,
            "sd_dev": self.block_device,
            "wwid": self.wwid,
            "storage": self.storage.kind,
            "lvm_or_asm": self.storage.label,
            "asm": self.storage.asm_disk.to_dict() if self.storage.asm_disk else None,
            "multipath": self.multipath,
            "size_gb": self.size_gb,
            "size_gib": self.size_gib,
        }


@dataclass(frozen=True)
class OuiLookupResult:
    """Result of a WWN/WWID vendor lookup"""

    address: str                     # Normalized address
    address_type: str                # WWN or WWID
    address_format: str              # NAA type description
    oui: str                         # OUI or OUI_UNKNOWN
    vendor: str                      # Vendor, VENDOR_NOT_FOUND or VENDOR_UNKNOWN

    def to_dict(self) -> dict:
        return {
            "address": self.address,
            "type": self.address_type,
            "format": self.address_format,
            "oui": self.oui,
            "vendor": self.vendor,
        }


@dataclass(frozen=True)
class DmDevice:
    """A device mapper device and the block devices it depends on"""

    name: str
    devices: Tuple[str, ...] = ()
