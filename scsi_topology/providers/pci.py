"""PCI bus enumeration using lspci"""

from typing import List, Optional
import re

from .base import BaseProvider
from ..models import PciController


_IO_PORT_PATTERN = re.compile(r"I/O ports at ([0-9a-fA-F]+)")


def parse_lspci(output: str, pattern: str = "SCSI|scsi|storage") -> List[PciController]:
    """Parse plain lspci output into storage class controllers

    Args:
        output: lspci output, one device per line
            (e.g. "03:00.0 Serial Attached SCSI controller: VMware PVSCSI SCSI Controller (rev 02)")
        pattern: Regular expression selecting storage class devices

    Returns:
        List of controllers in lspci order, without I/O ports
    """
    selector = re.compile(pattern)
    controllers = []

    for line in output.splitlines():
        line = line.strip()
        if not line or not selector.search(line):
            continue

        parts = line.split(None, 1)
        description = parts[1] if len(parts) > 1 else ""
        controllers.append(PciController(pci_address=parts[0], description=description))

    return controllers


def parse_io_port(output: str) -> Optional[str]:
    """Extract the I/O port base from verbose lspci output of one device

    Returns:
        Hex string (e.g. "4000"), None for memory mapped only devices
    """
    match = _IO_PORT_PATTERN.search(output)
    return match.group(1).lower() if match else None


class LspciProvider(BaseProvider):
    """Lists storage class PCI controllers"""

    def __init__(self, lspci_path: str = "lspci", pattern: str = "SCSI|scsi|storage", logger=None):
        """Initialize LspciProvider

        Args:
            lspci_path: Location of lspci
            pattern: Regular expression selecting storage class devices
            logger: Logger instance
        """
        super().__init__(logger)
        self.cmd = lspci_path
        self.pattern = pattern

    def get_storage_controllers(self) -> List[PciController]:
        """Get all storage class controllers with their I/O port bases

        Raises:
            subprocess.CalledProcessError: If lspci fails
            OSError: If lspci cannot be executed
        """
        output = self._execute_command([self.cmd], handle_errors=False)
        controllers = parse_lspci(output, self.pattern)

        for controller in controllers:
            verbose = self._execute_command([self.cmd, "-v", "-s", controller.pci_address])
            controller.io_port = parse_io_port(verbose)
            self.logger.debug(
                f"PCI {controller.pci_address}: io_port={controller.io_port} ({controller.description})"
            )

        return controllers
