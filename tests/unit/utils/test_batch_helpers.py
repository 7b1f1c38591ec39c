"""
Module: test_batch_helpers.py
Description: Unit tests for batch request helpers.
"""

import pytest

from sqs_harness.utils.batch_helpers import duplicate_ids, validate_batch_size


class TestBatchHelpers:
    """Test cases for validate_batch_size() and duplicate_ids()."""

    def test_validate_batch_size_ok(self):
        validate_batch_size([1], 10)
        validate_batch_size(list(range(10)), 10)

    def test_validate_batch_size_errors(self):
        """Test empty, oversized and non-list batches."""
        with pytest.raises(ValueError, match="at least one"):
            validate_batch_size([], 10)
        with pytest.raises(ValueError, match="cannot exceed 10"):
            validate_batch_size(list(range(11)), 10)
        with pytest.raises(ValueError, match="must be a list"):
            validate_batch_size((1, 2), 10)

    def test_duplicate_ids(self):
        """Test duplicates are reported once, in first-seen order."""
        assert duplicate_ids(["a", "b", "a", "c", "b", "a"]) == ["a", "b"]
        assert duplicate_ids(["a", "b"]) == []
