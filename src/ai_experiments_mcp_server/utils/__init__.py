"""Utility modules."""

from .debug_log import DebugRecorder
from .logging import setup_logging

__all__ = ["setup_logging", "DebugRecorder"]
