"""ScsiDevices: listing of all SCSI devices with multipath and LUN path counts"""

import argparse
import socket
import sys
from collections import Counter
from typing import List, Optional

from .device_mapper import RunContext
from .models import DeviceRecord
from .output import print_json
from .providers import DmsetupProvider
from .scsi_topology import ScsiTopology, run_app


class ScsiDevices(ScsiTopology):
    """Lists every SCSI device with its LUN id, multipath map and WWID

    Unlike the VMware mapping this works on any RHEL 6+ host, physical or
    virtual, and is mostly useful for SAN attached LUNs.
    """

    description = "Displays all SCSI devices. Needs to be run as root (required by scsi_id(8))."
    required_tools = ["scsi_id", "dmsetup"]

    def add_arguments(self, parser: argparse.ArgumentParser) -> None:
        """Add the tool specific arguments"""
        parser.add_argument("-p", "--paths", action="store_true",
                            help="Print the number of paths for each LUN")

    def check_preconditions(self) -> None:
        """Abort unless running as root on RHEL 6+"""
        self.rhel_major, _ = self.checker.check_os_version()
        self.checker.check_root()

    def build_context(self) -> RunContext:
        """Fetch the device mapper tree shared by all device records"""
        dmsetup = DmsetupProvider(self.tools["dmsetup"], logger=self.logger)

        return RunContext(
            hostname=socket.gethostname().split(".")[0],
            dm_holders=dmsetup.get_holders(),
            wwid_without_block=True,
        )

    @property
    def headers(self) -> List[str]:
        return ["host", "h:b:t:l", "lun_id", "vendor", "model", "sg_dev", "sd_dev",
                "multipath", "wwid", "size_gb", "size_gib"]

    def record_row(self, record: DeviceRecord) -> List[str]:
        """Get the output fields of one record, in header order"""
        return [
            record.hostname,
            str(record.address),
            str(record.lun),
            record.vendor,
            record.model,
            record.generic_device or "-",
            record.block_device,
            record.multipath,
            record.wwid,
            record.size_gb,
            record.size_gib,
        ]

    def _display_results(self) -> None:
        if self.args.paths:
            self._display_paths()
        else:
            super()._display_results()

    def _display_paths(self) -> None:
        """Display the number of paths (devices) seen for each LUN id"""
        counts = Counter(record.lun for record in self.records)
        if self.args.json:
            print_json([{"lun": lun, "paths": counts[lun]} for lun in sorted(counts)])
            return

        for lun in sorted(counts):
            print(f"LUN:{lun} paths:{counts[lun]}")


def main(argv: Optional[List[str]] = None) -> int:
    return run_app(ScsiDevices(), argv)


if __name__ == "__main__":
    sys.exit(main())
