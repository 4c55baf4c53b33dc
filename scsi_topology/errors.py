"""Error types and process exit codes"""

SUCCESS = 0
E_GENERIC = 1
E_NO_ROOT = 100
E_NO_ARGS = 101
E_NO_ACCESS = 102
E_INVAL_OS = 104
E_INVAL_WWN = 104
E_NO_PREREQ = 106
E_NO_VM = 107


class ScsiTopologyError(Exception):
    """Base class for fatal errors; carries the process exit code"""

    exit_code = E_GENERIC


class NotRootError(ScsiTopologyError):
    """Raised when not running as root (scsi_id needs raw device access)"""

    exit_code = E_NO_ROOT


class MissingArgumentError(ScsiTopologyError):
    """Raised when a required positional argument was not supplied"""

    exit_code = E_NO_ARGS


class AccessError(ScsiTopologyError):
    """Raised when a required directory cannot be opened"""

    exit_code = E_NO_ACCESS


class UnsupportedOSError(ScsiTopologyError):
    """Raised on a non-Linux, non-RHEL or too old RHEL system"""

    exit_code = E_INVAL_OS


class InvalidAddressError(ScsiTopologyError, ValueError):
    """Raised for a malformed or too short WWN/WWID"""

    exit_code = E_INVAL_WWN


class PrerequisiteError(ScsiTopologyError):
    """Raised when a required system utility is missing"""

    exit_code = E_NO_PREREQ


class NotVMwareError(ScsiTopologyError):
    """Raised when not running inside a VMware virtual machine"""

    exit_code = E_NO_VM


class DownloadError(ScsiTopologyError):
    """Raised when the OUI registry download fails"""
