"""WWID resolution using scsi_id"""

from typing import Optional
import subprocess

from .base import BaseProvider


class ScsiIdProvider(BaseProvider):
    """Resolves device WWIDs with udev's scsi_id"""

    def __init__(self, scsi_id_path: str = "scsi_id", dev_dir: str = "/dev", logger=None):
        super().__init__(logger)
        self.cmd = scsi_id_path
        self.dev_dir = dev_dir

    def get_wwid(self, generic_device: str) -> Optional[str]:
        """Get the WWID of a device through its SCSI generic node

        An empty answer is expected when disk.EnableUUID is not set for the
        virtual machine.

        Args:
            generic_device: Generic device name (e.g. sg2)

        Returns:
            WWID string, None if it could not be resolved
        """
        cmd = [self.cmd, "-g", "-u", "-d", f"{self.dev_dir}/{generic_device}"]
        try:
            wwid = self._execute_command(cmd, handle_errors=False).strip()
        except (subprocess.CalledProcessError, OSError) as e:
            self.logger.debug(f"No WWID for {generic_device}: {e}")
            return None

        return wwid.splitlines()[0] if wwid else None
