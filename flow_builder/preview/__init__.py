"""
Preview Module.

Simulates a bot conversation over a block list.
"""

from .simulator import FlowSimulator, interpolate, replay
from .session import PreviewManager, PreviewSession

__all__ = [
    "FlowSimulator",
    "interpolate",
    "replay",
    "PreviewManager",
    "PreviewSession",
]
