"""Tests for src/core/enums.py - Core enumerations."""

from core.enums import DeviceIcon, ExtractionStatus, ScanState


class TestExtractionStatus:

    def test_values(self):
        assert ExtractionStatus.OK == "ok"
        assert ExtractionStatus.PARTIAL == "partial"
        assert ExtractionStatus.ERROR == "error"
        assert ExtractionStatus.CANCELLED == "cancelled"


class TestScanState:

    def test_values(self):
        assert [s.value for s in ScanState] == [
            "opening", "scanning", "copying", "skipping", "exhausted", "failed",
        ]


class TestDeviceIcon:

    def test_string_comparison(self):
        """Verify enum can be compared with strings."""
        assert DeviceIcon.CIRCLE == "circle"
        assert DeviceIcon("star") is DeviceIcon.STAR

    def test_all_icons(self):
        assert {icon.value for icon in DeviceIcon} == {"circle", "square", "star", "triangle"}
