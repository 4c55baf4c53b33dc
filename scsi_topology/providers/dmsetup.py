"""Device mapper facts using dmsetup"""

from typing import Dict, List, Optional
import re

from .base import BaseProvider
from ..models import DmDevice


_DEPS_LINE = re.compile(r"^(?P<name>.+?):\s+\d+\s+dependencies\s*:\s*(?P<devices>.*)$")
_DEPS_DEVICE = re.compile(r"\(([^)]+)\)")
_TREE_NODE = re.compile(r"([^\s()]+)\s+\((\d+:\d+)\)")
_VG_PREFIX = re.compile(r"^((?:[^-]|--)+)-(?!-)")


def parse_dmsetup_deps(output: str) -> List[DmDevice]:
    """Parse `dmsetup deps -o blkdevname` output

    Example line:
        vg_data-lv_data: 2 dependencies  : (sdc) (sdb1)
    """
    devices = []
    for line in output.splitlines():
        match = _DEPS_LINE.match(line.strip())
        if not match:
            continue
        deps = tuple(d.strip() for d in _DEPS_DEVICE.findall(match.group("devices")))
        devices.append(DmDevice(name=match.group("name"), devices=deps))
    return devices


def _is_same_or_partition(device: str, block_device: str) -> bool:
    return device == block_device or re.fullmatch(re.escape(block_device) + r"p?\d+", device) is not None


def find_holder(dm_devices: List[DmDevice], block_device: str) -> Optional[DmDevice]:
    """Find the first dm device built on a block device or one of its partitions"""
    for dm_device in dm_devices:
        if any(_is_same_or_partition(dep, block_device) for dep in dm_device.devices):
            return dm_device
    return None


def volume_group_name(dm_name: str) -> str:
    """Extract the volume group from an LVM dm name (vg-lv, dashes doubled)

    Names without a vg-lv separator are returned unchanged.
    """
    match = _VG_PREFIX.match(dm_name)
    vg = match.group(1) if match else dm_name
    return vg.replace("--", "-")


def _clean_node_name(token: str) -> str:
    # Strip ascii tree connectors ("|-", "`-")
    return token.lstrip("|`").lstrip("-") if token[:1] in "|`" else token


def parse_dmsetup_tree(output: str) -> Dict[str, str]:
    """Parse `dmsetup ls --tree -o blkdevname,inverted,compact,ascii` output

    In the inverted tree the block devices are roots and the dm devices
    stacked on them are their children. The compact layout may put a single
    child on the same line as its parent.

    Returns:
        {block device: name of the dm device directly on top of it}
    """
    holders: Dict[str, str] = {}
    pending = None

    for line in output.splitlines():
        nodes = [(m.start(1), _clean_node_name(m.group(1))) for m in _TREE_NODE.finditer(line)]
        nodes = [(pos, name) for pos, name in nodes if name]
        if not nodes:
            continue

        if pending is not None:
            block, depth = pending
            pos, name = nodes[0]
            if pos > depth and not name.startswith("<"):
                holders.setdefault(block, name)
            pending = None

        for i, (pos, name) in enumerate(nodes):
            if not (name.startswith("<") and name.endswith(">")):
                continue
            block = name[1:-1]
            if i + 1 < len(nodes):
                holders.setdefault(block, nodes[i + 1][1])
            else:
                pending = (block, pos)

    return holders


class DmsetupProvider(BaseProvider):
    """Queries device mapper status"""

    def __init__(self, dmsetup_path: str = "dmsetup", logger=None):
        super().__init__(logger)
        self.cmd = dmsetup_path

    def get_dependencies(self) -> List[DmDevice]:
        """Get all dm devices with the block devices they depend on"""
        output = self._execute_command([self.cmd, "deps", "-o", "blkdevname"])
        devices = parse_dmsetup_deps(output)
        self.logger.debug(f"Found {len(devices)} device mapper devices")
        return devices

    def get_holders(self) -> Dict[str, str]:
        """Get the dm device (e.g. multipath map) stacked on each block device"""
        output = self._execute_command(
            [self.cmd, "ls", "--tree", "-o", "blkdevname,inverted,compact,ascii"]
        )
        holders = parse_dmsetup_tree(output)
        self.logger.debug(f"Found {len(holders)} block devices with dm holders")
        return holders
