"""
Package: fixtures
Description: Test scenario lifecycle for queue resources.

Provides unique queue naming, the QueueFixture state machine and a
polling helper for eventually-consistent checks.
"""
