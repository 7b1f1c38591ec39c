"""
Module: utils
Description: Shared helpers for the queue harness.

Current utilities:
- logger: Structured logging configuration and helpers
- batch_helpers: Batch request validation
"""

__all__ = []
