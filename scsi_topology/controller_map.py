"""VMware virtual SCSI controller to Linux SCSI host mapping"""

import logging
import subprocess
from typing import List, Optional

from .models import ControllerEntry, ControllerMap, PciController
from .providers import LspciProvider, SysfsProvider


def order_controllers(controllers: List[PciController]) -> ControllerMap:
    """Assign VMware controller indices in PCI bus walk order

    At boot the PCI devices are probed in ascending I/O port order, which is
    also the order in which the guest kernel numbers its SCSI hosts. Sorting
    the controllers the same way recovers which virtual controller became
    which Linux host. Controllers without an I/O port (MMIO only) cannot be
    placed and are left out.

    Args:
        controllers: Storage controllers with io_port and host filled in

    Returns:
        ControllerMap ordered by controller index
    """
    ported = [c for c in controllers if c.io_port_value is not None]
    ported.sort(key=lambda c: (c.io_port_value, c.pci_address))

    entries = tuple(
        ControllerEntry(index=index, pci_address=c.pci_address, io_port=c.io_port, host=c.host)
        for index, c in enumerate(ported)
    )
    return ControllerMap(entries=entries)


class ControllerOrderResolver:
    """Builds the controller map from lspci and sysfs"""

    def __init__(self, lspci: LspciProvider, sysfs: SysfsProvider,
                 logger: Optional[logging.Logger] = None):
        """Initialize the resolver

        Args:
            lspci: PCI enumeration provider
            sysfs: sysfs provider used to find the host<N> entries
            logger: Logger instance
        """
        self.lspci = lspci
        self.sysfs = sysfs
        self.logger = logger or logging.getLogger(__name__)

    def resolve(self) -> ControllerMap:
        """Resolve the VMware controller to Linux host mapping

        Returns:
            ControllerMap, empty if the PCI topology cannot be read
        """
        self.logger.info("Mapping VMware SCSI controllers to Linux SCSI hosts...")

        try:
            controllers = self.lspci.get_storage_controllers()
        except (subprocess.CalledProcessError, OSError) as e:
            self.logger.warning(f"Cannot enumerate PCI controllers, reporting Linux host numbers: {e}")
            return ControllerMap()

        for controller in controllers:
            if controller.io_port_value is None:
                self.logger.debug(
                    f"Skipping PCI {controller.pci_address}: no I/O port ({controller.description})"
                )
                continue
            controller.host = self.sysfs.pci_scsi_host(controller.pci_address)

        controller_map = order_controllers(controllers)

        for entry in controller_map:
            self.logger.debug(
                f"VMware controller {entry.index} -> host{entry.host} "
                f"(PCI {entry.pci_address}, I/O port {entry.io_port})"
            )

        if not controller_map:
            self.logger.warning("No SCSI controller with an I/O port found, reporting Linux host numbers")

        return controller_map
