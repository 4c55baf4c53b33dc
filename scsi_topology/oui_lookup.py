"""OuiLookup: WWN and WWID vendor lookup tool"""

import argparse
import logging
import os
import signal
import sys
from typing import List, Optional

from .config import ConfigManager, DEFAULT_CONFIG_FILE
from .errors import MissingArgumentError
from .models import OuiLookupResult
from .oui import EXAMPLES, OuiRegistry, download_registry, lookup_address, normalize_address, validate_address
from .output import print_json
from .scsi_topology import run_app, setup_logger


def _interrupt(signum, frame):
    raise KeyboardInterrupt(f"received signal {signum}")


class OuiLookup:
    """Main class for the WWN/WWID lookup tool"""

    def __init__(self):
        self.args: Optional[argparse.Namespace] = None
        self.logger = self._setup_logger()
        self.config: Optional[ConfigManager] = None

    def _setup_logger(self) -> logging.Logger:
        """Set up the logger for the application"""
        return setup_logger()

    def parse_arguments(self, argv: Optional[List[str]] = None) -> None:
        """Parse command line arguments"""
        parser = argparse.ArgumentParser(description="Lookup of a WWN or WWID address.")

        parser.add_argument("address", nargs="?", help="WWN or WWID (separators and 0x prefix allowed)")
        parser.add_argument("-u", "--update", action="store_true",
                            help="Update (re-download) the oui.txt file")
        parser.add_argument("-e", "--examples", action="store_true", help="Show WWN examples and exit")
        parser.add_argument("-j", "--json", action="store_true", help="Output result in JSON format")
        parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")
        parser.add_argument("-q", "--quiet", action="store_true", help="Suppress INFO messages")
        parser.add_argument("--config", default=DEFAULT_CONFIG_FILE, metavar="FILE",
                            help=f"Configuration file (default: {DEFAULT_CONFIG_FILE})")
        parser.add_argument("--oui-file", metavar="FILE", help="OUI registry file")

        self.args = parser.parse_args(argv)

        if self.args.verbose:
            self.logger.setLevel(logging.DEBUG)
        elif self.args.quiet:
            self.logger.setLevel(logging.WARNING)

    @property
    def oui_file(self) -> str:
        return self.args.oui_file or self.config.oui_file

    def run(self, argv: Optional[List[str]] = None) -> None:
        """Main entry point for the application"""
        self.parse_arguments(argv)

        if self.args.examples:
            print(EXAMPLES)
            return

        self.config = ConfigManager(self.args.config, logger=self.logger)

        # Reject bad input before any download
        if self.args.address:
            validate_address(normalize_address(self.args.address))

        if self.args.update:
            self.update_registry()
            if not self.args.address:
                return

        if not self.args.address:
            raise MissingArgumentError("No input WWN address supplied.")

        if not os.path.exists(self.oui_file) or os.path.getsize(self.oui_file) == 0:
            self.logger.warning(f"File {self.oui_file} does not exist. Downloading the oui.txt file...")
            self.update_registry()

        registry = OuiRegistry.load(self.oui_file)
        self.logger.debug(f"Loaded {len(registry)} OUI entries from {self.oui_file}")

        self._display_result(lookup_address(self.args.address, registry))

    def update_registry(self) -> None:
        """Download the registry; a termination signal cancels cleanly"""
        previous = signal.signal(signal.SIGTERM, _interrupt)
        try:
            download_registry(self.config.oui_url, self.oui_file,
                              timeout=self.config.oui_timeout, logger=self.logger)
        finally:
            signal.signal(signal.SIGTERM, previous)

    def _display_result(self, result: OuiLookupResult) -> None:
        if self.args.json:
            print_json(result.to_dict())
            return

        print(f"{result.address_type + ':':<7} {result.address}")
        print(f"Format: {result.address_format}")
        print(f"OUI:    {result.oui}")
        print(f"Vendor: {result.vendor}")


def main(argv: Optional[List[str]] = None) -> int:
    return run_app(OuiLookup(), argv)


if __name__ == "__main__":
    sys.exit(main())
