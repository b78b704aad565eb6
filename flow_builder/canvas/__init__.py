"""
Canvas Module.

Block levels, auto-layout, editing, and validation.
"""

from .levels import assign_levels, build_adjacency, group_by_level
from .layout import LayoutPlan, compute_layout, describe_layout
from .validator import FlowValidator
from .editor import BlockEditor
from .manager import CanvasManager

__all__ = [
    "assign_levels",
    "build_adjacency",
    "group_by_level",
    "LayoutPlan",
    "compute_layout",
    "describe_layout",
    "FlowValidator",
    "BlockEditor",
    "CanvasManager",
]
