"""WWN/WWID vendor resolution against the IEEE OUI registry"""

import logging
import os
import re
import tempfile
from contextlib import contextmanager
from typing import Dict, Iterator, Optional, Tuple

import requests

from .errors import AccessError, DownloadError, InvalidAddressError
from .models import OuiLookupResult


OUI_UNKNOWN = "OUI_UNKNOWN"
VENDOR_UNKNOWN = "VENDOR_UNKNOWN"
VENDOR_NOT_FOUND = "VENDOR_NOT_FOUND"

WWN = "WWN"
WWID = "WWID"

MIN_ADDRESS_LENGTH = 16

_SEPARATORS = re.compile(r"[:.\-\s]")
_HEX = re.compile(r"^[0-9A-F]+$")
_REGISTRY_LINE = re.compile(
    r"^\s*(?P<oui>[0-9A-Fa-f]{2}-?[0-9A-Fa-f]{2}-?[0-9A-Fa-f]{2})\s+\((?:hex|base 16)\)\s*(?P<vendor>.*?)\s*$"
)

EXAMPLES = """WWN and WWID examples, different vendors and formats:

IBM SVC WWID (OUI 005076, IBM Corp):
    3600507680181071900000000000036DC
IBM SVC Target WWPN (OUI 005076, IBM Corp):
    50:05:07:68:0c:51:1e:1a
IBM XIV WWID (OUI 001738, International Business Machines):
    20017380066BA1179
Dell Port WWPN (OUI 4C7625, Dell Inc.):
    20:02:4c:76:25:c4:25:fe
Cisco Fabric WWN (OUI 000DEC, Cisco Systems, Inc):
    22:26:00:0d:ec:b7:1a:41"""


def normalize_address(address: str) -> str:
    """Strip separators and a leading 0x, uppercase the hex digits"""
    stripped = _SEPARATORS.sub("", address)
    if stripped[:2] in ("0x", "0X"):
        stripped = stripped[2:]
    return stripped.upper()


def validate_address(normalized: str) -> None:
    """Check a normalized address

    Raises:
        InvalidAddressError: If shorter than 16 digits or not hexadecimal
    """
    if len(normalized) < MIN_ADDRESS_LENGTH:
        raise InvalidAddressError(
            f"Invalid input address: '{normalized}' (at least {MIN_ADDRESS_LENGTH} hex digits expected)"
        )
    if not _HEX.match(normalized):
        raise InvalidAddressError(f"Invalid input address: '{normalized}' (not hexadecimal)")


def _digits(address: str, first: int, last: int) -> str:
    """1-indexed, inclusive digit range"""
    return address[first - 1:last]


def extract_oui(normalized: str) -> Tuple[str, str, str]:
    """Classify a normalized address and extract its OUI

    The OUI position depends on the NAA type given by the leading digits.

    Returns:
        (address type, format description, OUI or OUI_UNKNOWN)
    """
    if len(normalized) == 16:
        if normalized.startswith("1000"):
            # 10:00 header, 3 byte OUI, 3 byte vendor serial
            return WWN, "NAA=1 IEEE Standard", _digits(normalized, 5, 10)
        if normalized.startswith("2"):
            # 2x:xx vendor header, 3 byte OUI, 3 byte vendor serial
            return WWN, "NAA=2 IEEE Extended", _digits(normalized, 5, 10)
        if normalized.startswith("5"):
            # 5, 6 digit OUI, 9 digit vendor code
            return WWN, "NAA=5 IEEE Registered Name", _digits(normalized, 2, 7)
        return WWN, "unknown", OUI_UNKNOWN

    if len(normalized) == 17 and normalized.startswith("2"):
        return WWID, "IBM XIV WWID", _digits(normalized, 2, 7)
    if normalized.startswith("6"):
        return WWID, "NAA=6 IEEE Registered Extended (IBM SVC, VMware)", _digits(normalized, 2, 7)
    if normalized.startswith("36"):
        # scsi_id prefixes the NAA=6 identifier with its type digit 3
        return WWID, "NAA=6 IEEE Registered Extended, with leading 3", _digits(normalized, 3, 8)
    return WWID, "unknown", OUI_UNKNOWN


def parse_registry(text: str) -> Dict[str, str]:
    """Parse the IEEE oui.txt dump into {OUI: vendor}

    Both "00-50-76   (hex)   IBM Corp" and "005076   (base 16)   IBM Corp"
    lines are understood; the first entry for an OUI wins.
    """
    registry: Dict[str, str] = {}
    for line in text.splitlines():
        match = _REGISTRY_LINE.match(line)
        if match:
            oui = match.group("oui").replace("-", "").upper()
            registry.setdefault(oui, match.group("vendor"))
    return registry


class OuiRegistry:
    """OUI to vendor name registry"""

    def __init__(self, entries: Optional[Dict[str, str]] = None):
        self.entries = dict(entries or {})

    @classmethod
    def load(cls, path: str) -> "OuiRegistry":
        """Load a registry file

        Raises:
            AccessError: If the file cannot be read
        """
        try:
            with open(path, 'r', encoding='utf-8', errors='replace') as f:
                return cls(parse_registry(f.read()))
        except OSError as e:
            raise AccessError(f"Cannot read OUI registry {path}: {e}") from e

    def __len__(self) -> int:
        return len(self.entries)

    def vendor(self, oui: str) -> Optional[str]:
        return self.entries.get(oui.upper()) or None


def lookup_address(address: str, registry: OuiRegistry) -> OuiLookupResult:
    """Resolve the vendor of a WWN or WWID

    Raises:
        InvalidAddressError: If the address is malformed
    """
    normalized = normalize_address(address)
    validate_address(normalized)

    address_type, address_format, oui = extract_oui(normalized)

    if oui == OUI_UNKNOWN:
        vendor = VENDOR_UNKNOWN
    else:
        vendor = registry.vendor(oui) or VENDOR_NOT_FOUND

    return OuiLookupResult(
        address=normalized,
        address_type=address_type,
        address_format=address_format,
        oui=oui,
        vendor=vendor,
    )


@contextmanager
def partial_file(target: str) -> Iterator[str]:
    """Reserve a temporary file next to `target` and always remove it

    The body writes the temporary file and moves it over `target` when
    complete. Whatever happens in the body (error, KeyboardInterrupt), no
    partial file is left behind and `target` is never half written.

    Raises:
        AccessError: If the target directory is not writable
    """
    directory = os.path.dirname(os.path.abspath(target))
    try:
        fd, tmp_path = tempfile.mkstemp(prefix=".oui-", suffix=".part", dir=directory)
    except OSError as e:
        raise AccessError(f"Cannot access {directory}: {e}") from e
    os.close(fd)

    try:
        yield tmp_path
    finally:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)


def download_registry(url: str, target: str, timeout: int = 60,
                      logger: Optional[logging.Logger] = None) -> int:
    """Download the OUI registry and replace `target` atomically

    Returns:
        Number of bytes written

    Raises:
        DownloadError: If the download fails
        AccessError: If the target directory is not writable
    """
    logger = logger or logging.getLogger(__name__)
    logger.info(f"Downloading {url}... Please wait.")

    with partial_file(target) as tmp_path:
        written = 0
        try:
            with requests.get(url, stream=True, timeout=timeout,
                              headers={"User-Agent": "scsi-topology"}) as response:
                response.raise_for_status()
                with open(tmp_path, 'wb') as f:
                    for chunk in response.iter_content(chunk_size=65536):
                        f.write(chunk)
                        written += len(chunk)
        except requests.RequestException as e:
            raise DownloadError(f"Download error: {e}") from e

        if written == 0:
            raise DownloadError(f"Download error: empty response from {url}")

        os.chmod(tmp_path, 0o644)
        os.replace(tmp_path, target)

    logger.info(f"Download successful: {target} ({written} bytes)")
    return written
