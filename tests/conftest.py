"""Shared fixtures: fake sysfs trees and fake command providers"""

import logging
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from scsi_topology.models import PciController
from scsi_topology.providers import ScsiIdProvider, SysfsProvider


class FakeSysfs:
    """Builds a minimal sysfs tree under a temporary directory"""

    def __init__(self, root: Path):
        self.root = root
        (root / "class" / "scsi_device").mkdir(parents=True)
        (root / "block").mkdir()
        (root / "bus" / "pci" / "devices").mkdir(parents=True)

    def add_device(self, hbtl: str, vendor: str = "VMware  ", model: str = "Virtual disk    ",
                   sg: Optional[str] = None, block: Optional[str] = None,
                   size: Optional[str] = None) -> Path:
        device = self.root / "class" / "scsi_device" / hbtl / "device"
        device.mkdir(parents=True)
        if vendor is not None:
            (device / "vendor").write_text(vendor + "\n")
        if model is not None:
            (device / "model").write_text(model + "\n")
        if sg:
            (device / "scsi_generic" / sg).mkdir(parents=True)
        if block:
            (device / "block" / block).mkdir(parents=True)
            if size is not None:
                (self.root / "block" / block).mkdir()
                (self.root / "block" / block / "size").write_text(size + "\n")
        return device

    def add_pci_host(self, pci_address: str, host: int) -> None:
        pci_dir = self.root / "bus" / "pci" / "devices" / f"0000:{pci_address}"
        (pci_dir / f"host{host}").mkdir(parents=True)

    def set_sys_vendor(self, vendor: str) -> None:
        dmi = self.root / "class" / "dmi" / "id"
        dmi.mkdir(parents=True, exist_ok=True)
        (dmi / "sys_vendor").write_text(vendor + "\n")


class FakeScsiId(ScsiIdProvider):
    """scsi_id replacement answering from a {sgN: wwid} table"""

    def __init__(self, wwids: Dict[str, str]):
        super().__init__("scsi_id")
        self.wwids = wwids
        self.calls: List[str] = []

    def get_wwid(self, generic_device: str) -> Optional[str]:
        self.calls.append(generic_device)
        return self.wwids.get(generic_device)


class FakeLspci:
    """lspci replacement returning fixed controllers"""

    def __init__(self, controllers: List[PciController] = None, error: Exception = None):
        self.controllers = controllers or []
        self.error = error

    def get_storage_controllers(self) -> List[PciController]:
        if self.error:
            raise self.error
        return self.controllers


@pytest.fixture
def logger():
    return logging.getLogger("scsi-topology-tests")


@pytest.fixture
def fake_sysfs(tmp_path):
    return FakeSysfs(tmp_path / "sys")


@pytest.fixture
def sysfs(fake_sysfs, logger):
    return SysfsProvider(str(fake_sysfs.root), logger=logger)
