"""Tests for memory report parsing."""

import pytest

from memory_watchdog.report_parser import parse_quantity_mi, parse_total_memory

HEADER = "NAME                     CPU(cores)   MEMORY(bytes)"


class TestParseTotalMemory:
    """Tests for parse_total_memory."""

    def test_sums_valid_rows(self):
        report = "\n".join([
            HEADER,
            "pod-1                    100m         1000Mi",
            "pod-2                    200m         2000Mi",
        ])
        assert parse_total_memory(report) == 3000

    def test_header_only_is_zero(self):
        assert parse_total_memory(HEADER) == 0

    def test_empty_report_is_zero(self):
        assert parse_total_memory("") == 0

    def test_invalid_memory_contributes_nothing(self):
        report = f"{HEADER}\npod-1                    100m         invalid"
        assert parse_total_memory(report) == 0

    def test_malformed_row_does_not_stop_parsing(self):
        report = "\n".join([
            HEADER,
            "pod-1   100m   invalid",
            "pod-2   200m   512Mi",
            "pod-3   300m   1Gi",
            "pod-4   400m   256Mi",
        ])
        assert parse_total_memory(report) == 768

    def test_short_rows_are_skipped(self):
        report = "\n".join([HEADER, "pod-1 100m", "", "pod-2 200m 64Mi"])
        assert parse_total_memory(report) == 64

    def test_header_is_skipped_even_when_it_looks_like_data(self):
        report = "pod-0 50m 999Mi\npod-1 100m 1Mi"
        assert parse_total_memory(report) == 1

    def test_trailing_newline(self):
        report = f"{HEADER}\npod-1 100m 10Mi\n"
        assert parse_total_memory(report) == 10

    def test_negative_value_is_skipped(self):
        report = f"{HEADER}\npod-1 100m -10Mi\npod-2 100m 10Mi"
        assert parse_total_memory(report) == 10

    def test_extra_columns_are_ignored(self):
        report = f"{HEADER}\npod-1 100m 300Mi sidecar extra"
        assert parse_total_memory(report) == 300


class TestParseQuantityMi:
    """Tests for parse_quantity_mi."""

    @pytest.mark.parametrize("quantity,expected", [
        ("2048Ki", 2),
        ("1Gi", 1024),
        ("300Mi", 300),
        ("1048576", 1),
        ("1500Ki", 1),
    ])
    def test_converts_to_whole_mi(self, quantity, expected):
        assert parse_quantity_mi(quantity) == expected

    def test_malformed_quantity_raises(self):
        with pytest.raises(ValueError):
            parse_quantity_mi("lots")
