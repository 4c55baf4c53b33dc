"""Main ScsiTopology class: VMware SCSI device mapping"""

import argparse
import logging
import socket
import sys
from typing import Dict, List, Optional

from .config import ConfigManager, DEFAULT_CONFIG_FILE
from .controller_map import ControllerOrderResolver
from .device_mapper import DeviceRecordBuilder, RunContext
from .errors import ScsiTopologyError, SUCCESS, E_GENERIC
from .models import ControllerMap, DeviceRecord
from .output import print_csv, print_json, print_table, print_verbose
from .preconditions import PreconditionChecker
from .providers import (
    AsmProvider,
    DmsetupProvider,
    LspciProvider,
    ScsiIdProvider,
    SysfsProvider,
)


def setup_logger(name: str = "scsi-topology") -> logging.Logger:
    """Set up the application logger: stderr, INFO by default"""
    logger = logging.getLogger(name)
    logger.setLevel(logging.INFO)

    if not logger.handlers:
        ch = logging.StreamHandler()
        ch.setLevel(logging.DEBUG)

        formatter = logging.Formatter('[%(levelname)s] %(message)s')
        ch.setFormatter(formatter)

        logger.addHandler(ch)

    return logger


class ScsiTopology:
    """Main class for the VMware SCSI device mapping tool

    It orchestrates the work of specialized components:
    - Precondition checks (OS release, VMware, root, utilities)
    - Controller order resolution (VMware controller -> Linux host)
    - Device record building (sysfs, scsi_id, ASM, device mapper)
    - Output rendering (verbose, CSV, table, JSON)
    """

    description = "Displays VMware SCSI device mapping. Needs to be run as root (required by scsi_id(8))."
    required_tools = ["lspci", "scsi_id", "dmsetup"]

    def __init__(self):
        """Initialize the ScsiTopology instance"""
        # Options
        self.args: Optional[argparse.Namespace] = None

        # Components (initialized later)
        self.logger = self._setup_logger()
        self.config: Optional[ConfigManager] = None
        self.sysfs: Optional[SysfsProvider] = None
        self.checker: Optional[PreconditionChecker] = None
        self.rhel_major = 7
        self.tools: Dict[str, str] = {}

        # Data
        self.controller_map = ControllerMap()
        self.records: List[DeviceRecord] = []

    def _setup_logger(self) -> logging.Logger:
        """Set up the logger for the application"""
        return setup_logger()

    def build_parser(self) -> argparse.ArgumentParser:
        """Create the argument parser"""
        parser = argparse.ArgumentParser(description=self.description)

        parser.add_argument("-c", "--csv", action="store_true", help="Print CSV output only")
        parser.add_argument("-t", "--tab", action="store_true", help="Print tabulated output")
        parser.add_argument("-j", "--json", action="store_true", help="Output results in JSON format")
        parser.add_argument("-H", "--header", action="store_true",
                            help="Print the header (column descriptions) for CSV and tabulated output")
        parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")
        parser.add_argument("-q", "--quiet", action="store_true", help="Suppress INFO messages")
        parser.add_argument("--config", default=DEFAULT_CONFIG_FILE, metavar="FILE",
                            help=f"Configuration file (default: {DEFAULT_CONFIG_FILE})")
        parser.add_argument("--workers", type=int, metavar="N",
                            help="Number of devices inspected in parallel")
        self.add_arguments(parser)

        return parser

    def add_arguments(self, parser: argparse.ArgumentParser) -> None:
        """Add the tool specific arguments"""
        parser.add_argument("-a", "--asm", action="store_true",
                            help="Print ASM info as well (DG membership, DG name, and size in MB)")
        parser.add_argument("-m", "--map", action="store_true",
                            help="Print the I/O port, PCI address and SCSI host mapping")

    def parse_arguments(self, argv: Optional[List[str]] = None) -> None:
        """Parse command line arguments"""
        parser = self.build_parser()
        self.args = parser.parse_args(argv)

        # Configure logger
        if self.args.verbose:
            self.logger.setLevel(logging.DEBUG)
        elif self.args.quiet:
            self.logger.setLevel(logging.WARNING)

        if self.args.workers is not None and self.args.workers < 1:
            parser.error("--workers must be at least 1")

    def check_preconditions(self) -> None:
        """Abort unless running as root inside a VMware RHEL 6+ guest

        Raises:
            ScsiTopologyError: On the first failed check
        """
        self.rhel_major, _ = self.checker.check_os_version()
        self.checker.check_vmware()
        self.checker.check_root()

    def run(self, argv: Optional[List[str]] = None) -> None:
        """Main entry point for the application"""
        self.parse_arguments(argv)

        self.config = ConfigManager(self.args.config, logger=self.logger)
        self.sysfs = SysfsProvider(self.config.sysfs_root, logger=self.logger)
        self.checker = PreconditionChecker(self.config, self.sysfs, logger=self.logger)

        self.check_preconditions()
        self.tools = {name: self.checker.resolve_tool(name, self.rhel_major) for name in self.required_tools}

        scsi_id = ScsiIdProvider(self.tools["scsi_id"], logger=self.logger)

        # Enumerate before the slower steps, so an unusable sysfs fails fast
        addresses = self.sysfs.list_scsi_devices()

        context = self.build_context()

        builder = DeviceRecordBuilder(self.sysfs, scsi_id, logger=self.logger)
        workers = self.args.workers or self.config.workers
        self.logger.info(f"Inspecting {len(addresses)} SCSI devices...")
        self.records = builder.build_all(addresses, context, workers=workers)

        self._display_results()

    def build_context(self) -> RunContext:
        """Fetch the run wide facts shared by all device records"""
        lspci = LspciProvider(
            self.tools["lspci"],
            pattern=self.config.storage_pattern,
            logger=self.logger,
        )
        dmsetup = DmsetupProvider(self.tools["dmsetup"], logger=self.logger)
        asm = AsmProvider(self.config.asm_rules_file, self.config.grid_user, logger=self.logger)

        self.controller_map = ControllerOrderResolver(lspci, self.sysfs, logger=self.logger).resolve()
        if self.args.map:
            self._display_controller_map()

        asm_disks = None
        if self.args.asm:
            if asm.is_running():
                asm_disks = asm.get_disks()
            else:
                self.logger.warning("ASM is not running. ASM details are not available.")
                asm_disks = {}

        return RunContext(
            hostname=socket.gethostname().split(".")[0],
            controller_map=self.controller_map,
            asm_rules=asm.get_rules(),
            dm_devices=tuple(dmsetup.get_dependencies()),
            asm_disks=asm_disks,
        )

    # Output

    @property
    def headers(self) -> List[str]:
        headers = ["host", "h:b:t:l", "scsi(h:t)", "vendor", "model", "sg_dev", "sd_dev", "wwid", "lvm_or_asm"]
        if self.args.asm:
            headers += ["status", "disk_gr", "size_mb"]
        return headers + ["size_gb", "size_gib"]

    def record_row(self, record: DeviceRecord) -> List[str]:
        """Get the output fields of one record, in header order"""
        row = [
            record.hostname,
            str(record.address),
            record.scsi_ht,
            record.vendor,
            record.model,
            record.generic_device or "-",
            record.block_device,
            record.wwid,
            record.storage.label,
        ]
        if self.args.asm:
            row += record.storage.asm_columns()
        return row + [record.size_gb, record.size_gib]

    def _sorted_records(self) -> List[DeviceRecord]:
        return sorted(self.records, key=lambda r: r.address)

    def _display_results(self) -> None:
        """Display device records in the requested format"""
        if self.args.json:
            print_json([record.to_dict() for record in self._sorted_records()])
        elif self.args.csv:
            rows = [self.record_row(r) for r in self._sorted_records()]
            print_csv(self.headers, rows, show_header=self.args.header)
        elif self.args.tab:
            rows = [self.record_row(r) for r in self._sorted_records()]
            print_table(self.headers, rows, show_header=self.args.header)
        else:
            # Default output keeps the enumeration order
            print_verbose([self.record_row(r) for r in self.records])
            self.logger.info("Use the '-c' option for CSV output.")

    def _display_controller_map(self) -> None:
        """Display the VMware controller to Linux SCSI host mapping"""
        print("Mapping of VMware SCSI controllers and Linux SCSI hosts:")
        headers = ["VMware SCSI", "Linux SCSI", "PCI device", "I/O port"]
        rows = [
            [str(entry.index), f"host{entry.host}" if entry.host is not None else "-",
             entry.pci_address, entry.io_port]
            for entry in self.controller_map
        ]
        print_table(headers, rows, show_header=True)
        print("")


def run_app(app: ScsiTopology, argv: Optional[List[str]] = None) -> int:
    """Run an application, mapping fatal errors to exit codes"""
    try:
        app.run(argv)
    except ScsiTopologyError as e:
        app.logger.error(f"{e} Exiting.")
        return e.exit_code
    except KeyboardInterrupt:
        print("\nOperation cancelled by user", file=sys.stderr)
        return E_GENERIC
    return SUCCESS


def main(argv: Optional[List[str]] = None) -> int:
    return run_app(ScsiTopology(), argv)


if __name__ == "__main__":
    sys.exit(main())
