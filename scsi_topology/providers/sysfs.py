"""sysfs reads: SCSI devices, block devices and PCI hosts"""

import glob
import os
import re
from typing import List, Optional

from .base import BaseProvider
from ..errors import AccessError
from ..models import ScsiAddress


class SysfsProvider(BaseProvider):
    """Reads device facts from the kernel's sysfs tree"""

    def __init__(self, root: str = "/sys", logger=None):
        """Initialize SysfsProvider

        Args:
            root: Mount point of sysfs (a fake tree in tests)
            logger: Logger instance
        """
        super().__init__(logger)
        self.root = root

    @property
    def scsi_device_dir(self) -> str:
        return os.path.join(self.root, "class", "scsi_device")

    def _device_dir(self, address: ScsiAddress) -> str:
        return os.path.join(self.scsi_device_dir, str(address), "device")

    def list_scsi_devices(self) -> List[ScsiAddress]:
        """List all attached SCSI device addresses, in directory order

        Raises:
            AccessError: If the SCSI device directory cannot be opened
        """
        try:
            entries = os.listdir(self.scsi_device_dir)
        except OSError as e:
            raise AccessError(f"Cannot access {self.scsi_device_dir}: {e.strerror}") from e

        addresses = []
        for entry in entries:
            try:
                addresses.append(ScsiAddress.parse(entry))
            except ValueError:
                self.logger.debug(f"Skipping unexpected entry in {self.scsi_device_dir}: {entry}")

        self.logger.debug(f"Found {len(addresses)} SCSI devices")
        return addresses

    def _first_entry(self, path: str) -> Optional[str]:
        """Get the first entry of a directory, None if missing or empty"""
        try:
            entries = sorted(os.listdir(path))
        except OSError:
            return None
        return entries[0] if entries else None

    def generic_device(self, address: ScsiAddress) -> Optional[str]:
        """Get the SCSI generic device name (sgN) bound to a device"""
        return self._first_entry(os.path.join(self._device_dir(address), "scsi_generic"))

    def block_device(self, address: ScsiAddress) -> Optional[str]:
        """Get the block device name (sdX) bound to a device"""
        return self._first_entry(os.path.join(self._device_dir(address), "block"))

    def read_attribute(self, path: str) -> Optional[str]:
        """Read a sysfs attribute file, stripped; None if unreadable"""
        try:
            with open(path, 'r') as f:
                return f.read().strip()
        except OSError as e:
            self.logger.debug(f"Cannot read {path}: {e}")
            return None

    def vendor(self, address: ScsiAddress) -> Optional[str]:
        return self.read_attribute(os.path.join(self._device_dir(address), "vendor"))

    def model(self, address: ScsiAddress) -> Optional[str]:
        return self.read_attribute(os.path.join(self._device_dir(address), "model"))

    def block_size_sectors(self, block_device: str) -> Optional[int]:
        """Get the size of a block device in 512 byte sectors"""
        value = self.read_attribute(os.path.join(self.root, "block", block_device, "size"))
        if not value:
            return None
        try:
            return int(value)
        except ValueError:
            self.logger.debug(f"Unexpected size for {block_device}: {value}")
            return None

    def pci_scsi_host(self, pci_address: str) -> Optional[int]:
        """Get the Linux SCSI host number the kernel created for a PCI device

        Args:
            pci_address: Bus address with or without the PCI domain

        Returns:
            Host number from the host<N> entry, None if there is none
        """
        if pci_address.count(":") < 2:
            pci_address = f"0000:{pci_address}"

        pattern = os.path.join(self.root, "bus", "pci", "devices", pci_address, "host*")
        for path in sorted(glob.glob(pattern)):
            match = re.match(r"^host(\d+)$", os.path.basename(path))
            if match:
                return int(match.group(1))

        self.logger.debug(f"No SCSI host found for PCI device {pci_address}")
        return None

    def sys_vendor(self) -> str:
        """Get the system vendor from DMI"""
        return self.read_attribute(os.path.join(self.root, "class", "dmi", "id", "sys_vendor")) or ""
