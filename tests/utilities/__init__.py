"""
Test Utilities Package

Fakes shared by the unit suites (helpers.py).
"""

from .helpers import FakeRunner, InterruptAfter, RecordingSleep

__all__ = [
    "FakeRunner",
    "InterruptAfter",
    "RecordingSleep",
]
