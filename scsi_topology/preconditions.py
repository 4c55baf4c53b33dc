"""Platform and prerequisite checks run before any device is inspected"""

import logging
import os
import re
import shutil
import sys
from typing import Dict, Optional, Tuple

from .config import ConfigManager
from .errors import NotRootError, NotVMwareError, PrerequisiteError, UnsupportedOSError
from .providers import SysfsProvider


REDHAT_RELEASE_FILE = "/etc/redhat-release"
MIN_RHEL_MAJOR = 6

# Package providing each utility, for the error message
TOOL_PACKAGES: Dict[str, str] = {
    "lspci": "pciutils",
    "scsi_id": "udev",
    "dmsetup": "device-mapper",
}


def parse_redhat_release(text: str) -> Optional[Tuple[int, int]]:
    """Parse /etc/redhat-release content

    "Red Hat Enterprise Linux Server release 7.9 (Maipo)" -> (7, 9)
    """
    match = re.search(r"release\s+(\d+)(?:\.(\d+))?", text)
    if not match:
        return None
    return int(match.group(1)), int(match.group(2) or 0)


class PreconditionChecker:
    """Verifies that the tools can run on this system"""

    def __init__(self, config: ConfigManager, sysfs: SysfsProvider,
                 logger: Optional[logging.Logger] = None,
                 release_file: str = REDHAT_RELEASE_FILE):
        self.config = config
        self.sysfs = sysfs
        self.logger = logger or logging.getLogger(__name__)
        self.release_file = release_file

    def check_os_version(self) -> Tuple[int, int]:
        """Check for GNU/Linux, RHEL (or a rebuild) 6 or later

        Returns:
            (major, minor) release

        Raises:
            UnsupportedOSError: If the OS or its release is not supported
        """
        if not sys.platform.startswith("linux"):
            raise UnsupportedOSError("Not a GNU/Linux system.")

        try:
            with open(self.release_file, 'r') as f:
                release_text = f.read()
        except OSError:
            raise UnsupportedOSError("Not a RHEL system.")

        release = parse_redhat_release(release_text)
        if release is None:
            raise UnsupportedOSError(f"Cannot determine the RHEL release from {self.release_file}.")

        self.logger.debug(f"RHEL release {release[0]}.{release[1]}")

        if release[0] < MIN_RHEL_MAJOR:
            raise UnsupportedOSError(f"Not RHEL {MIN_RHEL_MAJOR} or later.")

        return release

    def check_vmware(self) -> None:
        """Check that this is a VMware virtual machine

        Raises:
            NotVMwareError: If the DMI system vendor is not VMware
        """
        sys_vendor = self.sysfs.sys_vendor()
        self.logger.debug(f"sys_vendor: {sys_vendor}")
        if "VMware" not in sys_vendor:
            raise NotVMwareError(f"Not running on VMware (sys_vendor: {sys_vendor or 'unknown'}).")

    def check_root(self) -> None:
        """Check for root privileges, required by scsi_id for raw device access

        Raises:
            NotRootError: If the effective user is not root
        """
        if os.geteuid() != 0:
            raise NotRootError("This must be run as root. Required by scsi_id(8), for raw device access.")

    def resolve_tool(self, name: str, rhel_major: int = 7) -> str:
        """Locate a required utility

        The configured or per-release location is preferred, then PATH.

        Raises:
            PrerequisiteError: If the utility cannot be found
        """
        path = self.config.tool_path(name, rhel_major)
        if os.path.isfile(path):
            return path

        found = shutil.which(name)
        if found:
            self.logger.debug(f"{name} not at {path}, using {found}")
            return found

        package = TOOL_PACKAGES.get(name, name)
        raise PrerequisiteError(f"Missing: {path}. Package '{package}' is missing.")
