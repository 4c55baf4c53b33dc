"""
Tests for the VMware controller to Linux SCSI host mapping.
"""

import subprocess

from scsi_topology.controller_map import ControllerOrderResolver, order_controllers
from scsi_topology.models import PciController
from scsi_topology.providers import LspciProvider

from conftest import FakeLspci


class TestOrderControllers:
    """Tests for the I/O port ordering"""

    def test_ascending_io_port(self):
        controllers = [
            PciController("1b:00.0", io_port="7000", host=4),
            PciController("03:00.0", io_port="4000", host=2),
            PciController("13:00.0", io_port="6000", host=3),
            PciController("0b:00.0", io_port="5000", host=1),
        ]
        controller_map = order_controllers(controllers)
        assert [e.pci_address for e in controller_map] == ["03:00.0", "0b:00.0", "13:00.0", "1b:00.0"]
        assert [e.index for e in controller_map] == [0, 1, 2, 3]
        assert controller_map.as_dict() == {0: 2, 1: 1, 2: 3, 3: 4}

    def test_numeric_not_lexical(self):
        controllers = [PciController("0b:00.0", io_port="a000"), PciController("03:00.0", io_port="5000")]
        assert [e.io_port for e in order_controllers(controllers)] == ["5000", "a000"]

    def test_mmio_only_controllers_omitted(self):
        controllers = [PciController("03:00.0", io_port=None, host=0),
                       PciController("0b:00.0", io_port="5000", host=3)]
        controller_map = order_controllers(controllers)
        assert len(controller_map) == 1
        assert controller_map.controller_for_host(3) == 0

    def test_no_controllers(self):
        assert len(order_controllers([])) == 0


class TestControllerOrderResolver:
    """Tests for resolving hosts through sysfs"""

    def test_resolve(self, fake_sysfs, sysfs, logger):
        fake_sysfs.add_pci_host("03:00.0", 2)
        fake_sysfs.add_pci_host("0b:00.0", 3)
        lspci = FakeLspci([
            PciController("0b:00.0", io_port="5000"),
            PciController("03:00.0", io_port="4000"),
            PciController("00:07.1", io_port=None),
        ])

        controller_map = ControllerOrderResolver(lspci, sysfs, logger=logger).resolve()

        assert controller_map.as_dict() == {0: 2, 1: 3}
        assert controller_map.controller_for_host(3) == 1

    def test_controller_without_host_keeps_index(self, fake_sysfs, sysfs, logger):
        fake_sysfs.add_pci_host("0b:00.0", 3)
        lspci = FakeLspci([PciController("03:00.0", io_port="4000"), PciController("0b:00.0", io_port="5000")])

        controller_map = ControllerOrderResolver(lspci, sysfs, logger=logger).resolve()

        assert controller_map.as_dict() == {0: None, 1: 3}

    def test_lspci_failure_gives_empty_map(self, sysfs, logger):
        lspci = FakeLspci(error=subprocess.CalledProcessError(1, ["lspci"]))
        controller_map = ControllerOrderResolver(lspci, sysfs, logger=logger).resolve()
        assert len(controller_map) == 0
        assert controller_map.controller_for_host(5) == 5

    def test_lspci_missing_gives_empty_map(self, sysfs, logger):
        lspci = FakeLspci(error=FileNotFoundError(2, "No such file or directory"))
        assert len(ControllerOrderResolver(lspci, sysfs, logger=logger).resolve()) == 0


class TestLspciProvider:
    """Tests for the lspci command sequence"""

    def test_get_storage_controllers(self, monkeypatch, logger):
        outputs = {
            ("lspci",): "03:00.0 Serial Attached SCSI controller: VMware PVSCSI SCSI Controller (rev 02)\n"
                        "00:10.0 SCSI storage controller: Broadcom / LSI 53c1030 (rev 01)\n",
            ("lspci", "-v", "-s", "03:00.0"): "\tI/O ports at 4000 [size=8]\n",
            ("lspci", "-v", "-s", "00:10.0"): "\tMemory at fd5f8000 [size=32K]\n",
        }
        provider = LspciProvider("lspci", logger=logger)
        monkeypatch.setattr(provider, "_execute_command", lambda cmd, **kwargs: outputs[tuple(cmd)])

        controllers = provider.get_storage_controllers()

        assert [(c.pci_address, c.io_port) for c in controllers] == [("03:00.0", "4000"), ("00:10.0", None)]
