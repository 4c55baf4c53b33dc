"""Oracle ASM facts: udev rules, running instance and kfod disk listing"""

from typing import Dict, List, Optional, Tuple
import os
import re
import subprocess

from .base import BaseProvider
from ..models import AsmDisk


_KFOD_LINE = re.compile(
    r"^\s*(?P<number>\d+):\s+(?P<size>\d+)\s*Mb\s+(?P<status>\S+)\s+(?P<path>\S+)(?P<rest>.*)$"
)
_KFOD_HEADER = re.compile(r"\bHeader\s+Path\b")
_RULE_NAME = re.compile(r"\b(?:SYMLINK\+?=|NAME=)\"(?P<name>[^\"]+)\"")
_PARTITION_SUFFIX = re.compile(r"(?<=.)p\d+$")


def asm_device_name(path: str) -> str:
    """Reduce an ASM device path to its name, without a partition suffix

    /dev/oracle/asm-disk1p1 -> asm-disk1
    """
    name = os.path.basename(path.strip().rstrip("/").replace('"', ""))
    return _PARTITION_SUFFIX.sub("", name)


def parse_kfod(output: str) -> Dict[str, AsmDisk]:
    """Parse `kfod disks=all s=t ds=t` output

    Example lines:
     Disk          Size Header    Path                      Disk Group   User     Group
           1:      10240 Mb MEMBER    /dev/oracle/asm-disk1p1   DATA         grid     asmadmin
           3:       5120 Mb CANDIDATE /dev/oracle/asm-disk3p1                grid     asmadmin

    The Disk Group column is blank for disks outside a group while the
    owner columns are still printed, so the columns after the path are
    assigned from the right, as announced by the header. Without a header
    naming a Disk Group column no group is reported.

    Returns:
        {ASM device name: AsmDisk}
    """
    disks: Dict[str, AsmDisk] = {}
    has_group = False
    owner_columns = 0

    for line in output.splitlines():
        if _KFOD_HEADER.search(line):
            has_group = "Disk Group" in line
            owner_columns = 2 if re.search(r"\bUser\b", line) else 0
            continue

        match = _KFOD_LINE.match(line)
        if not match:
            continue

        rest = match.group("rest").split()
        group_columns = rest[:max(0, len(rest) - owner_columns)]
        disk_group = group_columns[0] if has_group and group_columns else ""

        disk = AsmDisk(
            number=int(match.group("number")),
            name=asm_device_name(match.group("path")),
            status=match.group("status"),
            disk_group=disk_group,
            size_mb=int(match.group("size")),
        )
        disks.setdefault(disk.name, disk)
    return disks


class AsmRules:
    """WWID to ASM device name associations from the Oracle ASM udev rules

    Example rule:
        KERNEL=="sd?1", PROGRAM=="/usr/lib/udev/scsi_id -g -u -d /dev/$parent",
        RESULT=="36000c29f1c2d3e4f5a6b7c8d9e0f1a2b", SYMLINK+="oracle/asm-disk1p1", ...
    """

    def __init__(self, text: str = ""):
        self.rules: List[Tuple[str, str]] = []

        for line in text.splitlines():
            stripped = line.strip()
            if not stripped or stripped.startswith("#"):
                continue
            match = _RULE_NAME.search(stripped)
            if match:
                self.rules.append((stripped, asm_device_name(match.group("name"))))

    def __len__(self) -> int:
        return len(self.rules)

    def lookup(self, wwid: str) -> Optional[str]:
        """Get the ASM device name of a WWID, None if no rule references it"""
        if not wwid:
            return None
        for line, name in self.rules:
            if wwid in line and name:
                return name
        return None


class AsmProvider(BaseProvider):
    """Reads Oracle ASM configuration and state"""

    def __init__(self, rules_file: str = "/etc/udev/rules.d/99-oracle-asm.rules",
                 grid_user: str = "grid", logger=None):
        super().__init__(logger)
        self.rules_file = rules_file
        self.grid_user = grid_user

    def get_rules(self) -> AsmRules:
        """Load the ASM udev rules; an absent file gives no rules"""
        try:
            with open(self.rules_file, 'r') as f:
                rules = AsmRules(f.read())
        except FileNotFoundError:
            self.logger.debug(f"No ASM udev rules file at {self.rules_file}")
            return AsmRules()
        except OSError as e:
            self.logger.warning(f"Cannot read ASM udev rules {self.rules_file}: {e}")
            return AsmRules()

        self.logger.debug(f"Loaded {len(rules)} ASM udev rules")
        return rules

    def is_running(self) -> bool:
        """Check for ASM background processes (asm_pmon_+ASM, ...)"""
        try:
            result = subprocess.run(["pgrep", "-f", "asm_"], stdout=subprocess.PIPE,
                                    stderr=subprocess.DEVNULL)
        except OSError as e:
            self.logger.debug(f"Cannot run pgrep: {e}")
            return False
        return result.returncode == 0

    def get_disks(self) -> Dict[str, AsmDisk]:
        """Get all ASM disks using kfod, run as the grid user

        This can take a while on systems with many disks.
        """
        self.logger.info("Getting ASM disk information (kfod)...")
        output = self._execute_command(["su", "-", self.grid_user, "-c", "kfod disks=all s=t ds=t"])
        disks = parse_kfod(output)
        self.logger.debug(f"Found {len(disks)} ASM disks")
        return disks
