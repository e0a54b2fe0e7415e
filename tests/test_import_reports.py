"""Tests for the legacy CSV report importer."""

from datetime import UTC, datetime

import pytest

from scripts.import_reports import parse_datetime, parse_float, parse_int, transform_row


@pytest.fixture
def csv_row() -> dict[str, str]:
    """Legacy export row."""
    return {
        "area": "Periyar Bus Stand",
        "details": "Bins overflowing",
        "imageUrl": "https://cdn.example/1.jpg",
        "status": "classified",
        "wasteType": "Mixed",
        "severity": "4.0",
        "confidence": "77.5",
        "aiReason": "Plastic and food waste",
        "error": "",
        "userId": "u1",
        "userName": "Arun",
        "latitude": "9.9163",
        "longitude": "78.1129",
        "createdAt": "2025-11-02T08:15:30.123Z",
    }


class TestParsers:
    """Tests for CSV value parsing."""

    def test_parse_datetime_formats(self):
        """Test the supported timestamp formats are UTC aware."""
        expected = datetime(2025, 11, 2, 8, 15, 30, tzinfo=UTC)

        assert parse_datetime("2025-11-02T08:15:30Z") == expected
        assert parse_datetime("2025-11-02 08:15:30") == expected
        assert parse_datetime("2025-11-02T08:15:30.5Z").microsecond == 500000

    @pytest.mark.parametrize("value", [None, "", "yesterday"])
    def test_parse_datetime_invalid(self, value):
        """Test unparseable timestamps give None."""
        assert parse_datetime(value) is None

    def test_parse_numbers(self):
        """Test numeric fields tolerate blanks and junk."""
        assert parse_float("1.5") == 1.5
        assert parse_float("") is None
        assert parse_float("n/a") is None
        assert parse_int("3.0") == 3
        assert parse_int(None) is None


class TestTransformRow:
    """Tests for transform_row."""

    def test_full_row(self, csv_row):
        """Test a complete row maps onto report columns."""
        values = transform_row(csv_row)

        assert values[0] == "Periyar Bus Stand"
        assert values[5] == "u1"
        assert values[7] == "classified"
        assert values[8] == "Mixed"
        assert values[9] == 4
        assert values[10] == 77.5
        assert values[12] is None
        assert values[13].tzinfo is not None

    def test_defaults(self, csv_row):
        """Test missing status and user fall back to defaults."""
        csv_row["status"] = ""
        csv_row["userId"] = ""

        values = transform_row(csv_row)

        assert values[7] == "pending_ai"
        assert values[5] == "anonymous"

    def test_unknown_status_skipped(self, csv_row):
        """Test rows with an unknown status are skipped."""
        csv_row["status"] = "archived"

        assert transform_row(csv_row) is None

    def test_missing_timestamp_skipped(self, csv_row):
        """Test rows without a creation time are skipped."""
        csv_row["createdAt"] = ""

        assert transform_row(csv_row) is None
