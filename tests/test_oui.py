"""
Tests for WWN/WWID vendor resolution and the OUI registry download.
"""

import os

import pytest
import requests

from scsi_topology import oui
from scsi_topology.errors import DownloadError, InvalidAddressError
from scsi_topology.oui import (
    OUI_UNKNOWN,
    OuiRegistry,
    VENDOR_NOT_FOUND,
    VENDOR_UNKNOWN,
    download_registry,
    extract_oui,
    lookup_address,
    normalize_address,
    parse_registry,
    partial_file,
)


OUI_TXT = """\
OUI/MA-L                                                    Organization
company_id                                                  Organization
                                                            Address

00-50-76   (hex)\t\tIBM Corp
005076     (base 16)\t\tIBM Corp
\t\t\t\t2051 Mission College Blvd
\t\t\t\tSanta Clara  CA  95054
\t\t\t\tUS

00-17-38   (hex)\t\tInternational Business Machines
001738     (base 16)\t\tInternational Business Machines
\t\t\t\t1 New Orchard Road
\t\t\t\tArmonk  NY  10504
\t\t\t\tUS

4C-76-25   (hex)\t\tDell Inc.
4C7625     (base 16)\t\tDell Inc.

00-0C-29   (hex)\t\tVMware, Inc.
000C29     (base 16)\t\tVMware, Inc.
"""


@pytest.fixture
def registry():
    return OuiRegistry(parse_registry(OUI_TXT))


class TestNormalizeAddress:
    """Tests for address normalization"""

    @pytest.mark.parametrize("address,expected", [
        ("50:05:07:68:0c:51:1e:1a", "500507680C511E1A"),
        ("0x500507680c511e1a", "500507680C511E1A"),
        ("50-05-07-68.0c 51 1e 1a", "500507680C511E1A"),
        ("3600507680181071900000000000036dc", "3600507680181071900000000000036DC"),
    ])
    def test_normalize(self, address, expected):
        assert normalize_address(address) == expected

    def test_idempotent(self):
        once = normalize_address("0x20:02:4c:76:25:c4:25:fe")
        assert normalize_address(once) == once


class TestExtractOui:
    """Tests for the NAA format classification"""

    @pytest.mark.parametrize("normalized,address_type,oui_value", [
        ("10000000C92DAABB", "WWN", "0000C9"),
        ("20024C7625C425FE", "WWN", "4C7625"),
        ("2226000DECB71A41", "WWN", "000DEC"),
        ("500507680C511E1A", "WWN", "005076"),
        ("20017380066BA1179", "WWID", "001738"),
        ("6000C29AAAAAAAAAAAAAAAAAAAAAAAA1", "WWID", "000C29"),
        ("3600507680181071900000000000036DC", "WWID", "005076"),
    ])
    def test_known_formats(self, normalized, address_type, oui_value):
        detected_type, _, detected_oui = extract_oui(normalized)
        assert (detected_type, detected_oui) == (address_type, oui_value)

    def test_unknown_wwn(self):
        assert extract_oui("900507680C511E1A") == ("WWN", "unknown", OUI_UNKNOWN)

    def test_unknown_wwid(self):
        assert extract_oui("8600507680181071900000000000036DC")[2] == OUI_UNKNOWN


class TestRegistry:
    """Tests for oui.txt parsing"""

    def test_parse(self):
        entries = parse_registry(OUI_TXT)
        assert entries["005076"] == "IBM Corp"
        assert entries["000C29"] == "VMware, Inc."
        assert len(entries) == 4

    def test_vendor_case_insensitive(self, registry):
        assert registry.vendor("4c7625") == "Dell Inc."
        assert registry.vendor("FFFFFF") is None

    def test_load(self, tmp_path):
        path = tmp_path / "oui.txt"
        path.write_text(OUI_TXT)
        assert len(OuiRegistry.load(str(path))) == 4


class TestLookupAddress:
    """Tests for the complete lookup"""

    def test_ibm_svc_wwpn(self, registry):
        result = lookup_address("50:05:07:68:0c:51:1e:1a", registry)
        assert result.address_type == "WWN"
        assert result.address_format == "NAA=5 IEEE Registered Name"
        assert result.oui == "005076"
        assert result.vendor == "IBM Corp"

    def test_svc_wwid_with_leading_3(self, registry):
        result = lookup_address("3600507680181071900000000000036DC", registry)
        assert (result.address_type, result.oui, result.vendor) == ("WWID", "005076", "IBM Corp")

    def test_xiv_wwid(self, registry):
        assert lookup_address("20017380066BA1179", registry).vendor == "International Business Machines"

    def test_vendor_not_found(self, registry):
        result = lookup_address("20:02:aa:bb:cc:c4:25:fe", registry)
        assert (result.oui, result.vendor) == ("AABBCC", VENDOR_NOT_FOUND)

    def test_unknown_format(self, registry):
        result = lookup_address("90:05:07:68:0c:51:1e:1a", registry)
        assert (result.oui, result.vendor) == (OUI_UNKNOWN, VENDOR_UNKNOWN)

    @pytest.mark.parametrize("address", ["1234", "50:05:07:68:0c:51:1e", "50:05:07:68:0c:51:1e:zz"])
    def test_invalid_address(self, registry, address):
        with pytest.raises(InvalidAddressError) as excinfo:
            lookup_address(address, registry)
        assert excinfo.value.exit_code == 104


class FakeResponse:
    def __init__(self, chunks, status_code=200):
        self.chunks = chunks
        self.status_code = status_code

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        return False

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Server Error")

    def iter_content(self, chunk_size=1):
        yield from self.chunks


def leftover_parts(directory):
    return [name for name in os.listdir(directory) if name.endswith(".part")]


class TestDownload:
    """Tests for the atomic registry download"""

    def test_download_replaces_target(self, tmp_path, monkeypatch):
        target = tmp_path / "oui.txt"
        target.write_text("old\n")
        monkeypatch.setattr(oui.requests, "get",
                            lambda url, **kwargs: FakeResponse([OUI_TXT[:100].encode(), OUI_TXT[100:].encode()]))

        written = download_registry("https://example.invalid/oui.txt", str(target))

        assert written == len(OUI_TXT.encode())
        assert target.read_text() == OUI_TXT
        assert leftover_parts(tmp_path) == []

    def test_http_error_keeps_target(self, tmp_path, monkeypatch):
        target = tmp_path / "oui.txt"
        target.write_text("old\n")
        monkeypatch.setattr(oui.requests, "get", lambda url, **kwargs: FakeResponse([], status_code=503))

        with pytest.raises(DownloadError):
            download_registry("https://example.invalid/oui.txt", str(target))

        assert target.read_text() == "old\n"
        assert leftover_parts(tmp_path) == []

    def test_connection_error(self, tmp_path, monkeypatch):
        def fail(url, **kwargs):
            raise requests.ConnectionError("connection refused")

        monkeypatch.setattr(oui.requests, "get", fail)

        with pytest.raises(DownloadError):
            download_registry("https://example.invalid/oui.txt", str(tmp_path / "oui.txt"))

        assert os.listdir(tmp_path) == []

    def test_empty_response(self, tmp_path, monkeypatch):
        monkeypatch.setattr(oui.requests, "get", lambda url, **kwargs: FakeResponse([]))

        with pytest.raises(DownloadError):
            download_registry("https://example.invalid/oui.txt", str(tmp_path / "oui.txt"))

        assert os.listdir(tmp_path) == []

    def test_interrupted_download_cleans_up(self, tmp_path, monkeypatch):
        def interrupted():
            yield b"00-50-76   (hex)"
            raise KeyboardInterrupt

        response = FakeResponse([])
        response.iter_content = lambda chunk_size=1: interrupted()
        monkeypatch.setattr(oui.requests, "get", lambda url, **kwargs: response)

        with pytest.raises(KeyboardInterrupt):
            download_registry("https://example.invalid/oui.txt", str(tmp_path / "oui.txt"))

        assert os.listdir(tmp_path) == []


class TestPartialFile:
    """Tests for the temporary file guard"""

    def test_removed_on_error(self, tmp_path):
        with pytest.raises(RuntimeError):
            with partial_file(str(tmp_path / "oui.txt")) as tmp:
                with open(tmp, "w") as f:
                    f.write("partial")
                raise RuntimeError("boom")

        assert os.listdir(tmp_path) == []

    def test_moved_file_not_touched(self, tmp_path):
        target = tmp_path / "oui.txt"
        with partial_file(str(target)) as tmp:
            with open(tmp, "w") as f:
                f.write("complete")
            os.replace(tmp, target)

        assert os.listdir(tmp_path) == ["oui.txt"]
