"""
Module: batch_helpers.py
Description: Utility functions for batch send requests.

Key Components:
- validate_batch_size(): Validate batch size constraints
- duplicate_ids(): Find entry ids used more than once

Dependencies: typing
Author: Queue Harness Team
"""

from typing import Any, Iterable, List


def validate_batch_size(items: List[Any], max_size: int) -> None:
    """
    Validate that a batch is non-empty and doesn't exceed the maximum size.

    Args:
        items: List of items to validate
        max_size: Maximum allowed batch size

    Raises:
        ValueError: If the batch is empty or exceeds maximum

    Example:
        >>> validate_batch_size([1, 2, 3], 10)  # OK
        >>> validate_batch_size([], 10)  # Raises ValueError
    """
    if not isinstance(items, list):
        raise ValueError("items must be a list")
    if not items:
        raise ValueError("batch must contain at least one entry")
    if len(items) > max_size:
        raise ValueError(f"batch size cannot exceed {max_size} items")


def duplicate_ids(ids: Iterable[str]) -> List[str]:
    """
    Return ids that occur more than once, in first-seen order.

    Example:
        >>> duplicate_ids(["a", "b", "a", "c", "b"])
        ['a', 'b']
    """
    seen = set()
    duplicates: List[str] = []
    for entry_id in ids:
        if entry_id in seen and entry_id not in duplicates:
            duplicates.append(entry_id)
        seen.add(entry_id)
    return duplicates
