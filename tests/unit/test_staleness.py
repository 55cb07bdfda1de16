"""
Unit tests for the staleness checker
"""

import os
import sys
from unittest.mock import patch

import pytest

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.append(project_root)

from common.types import Absent, CheckFailed, Fresh, Stale
from thumbcache.errors import StalenessCheckFailed
from thumbcache.staleness import check_variant

T = 1_700_000_000_000_000_000


def _variant(tmp_path, mtime_ns):
    p = tmp_path / "width=400" / "photo.jpg"
    p.parent.mkdir(parents=True)
    p.write_bytes(b"variant")
    os.utime(p, ns=(mtime_ns, mtime_ns))
    return p


class TestCheckVariant:
    """Test cases for check_variant"""

    def test_absent(self, tmp_path):
        p = tmp_path / "width=400" / "photo.jpg"
        assert check_variant(T, p) == Absent(p)

    def test_absent_when_parent_is_a_file(self, tmp_path):
        (tmp_path / "width=400").write_bytes(b"")
        p = tmp_path / "width=400" / "photo.jpg"
        assert isinstance(check_variant(T, p), Absent)

    @pytest.mark.parametrize(
        "source_ns, variant_ns, expected",
        [
            (T, T, Fresh),
            (T - 1, T, Fresh),
            (T - 10**9, T, Fresh),
            (T + 1, T, Stale),
            (T + 10**9, T, Stale),
        ],
    )
    def test_monotonic(self, tmp_path, source_ns, variant_ns, expected):
        p = _variant(tmp_path, variant_ns)
        result = check_variant(source_ns, p)
        assert isinstance(result, expected)
        assert result.path == p

    def test_stat_error_is_distinct_from_absent(self, tmp_path):
        p = _variant(tmp_path, T)
        with patch("thumbcache.staleness.os.stat", side_effect=PermissionError(13, "Permission denied")):
            result = check_variant(T, p)
        assert isinstance(result, CheckFailed)
        assert isinstance(result.error, StalenessCheckFailed)
        assert "Permission denied" in str(result.error)

    def test_directory_in_place_of_variant(self, tmp_path):
        p = tmp_path / "width=400" / "photo.jpg"
        p.mkdir(parents=True)
        assert isinstance(check_variant(T, p), CheckFailed)
