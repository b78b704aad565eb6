"""
Layout Engine.

Places blocks on a fixed-width grid in array order, fans out sibling
branches vertically and centres the end block on its own row.
"""

from dataclasses import dataclass, replace
from typing import Dict, List, Optional

from ..config import BlockType, LayoutConfig, get_settings
from ..models import Block
from .levels import assign_levels, branch_levels, group_by_level


@dataclass
class LayoutPlan:
    """Level information the layout was derived from."""

    levels: Dict[str, int]
    groups: Dict[int, List[str]]
    branch_levels: List[int]


def describe_layout(blocks: List[Block]) -> LayoutPlan:
    """Compute levels and branch groups for a block list."""
    levels = assign_levels(blocks)
    groups = group_by_level(levels)
    return LayoutPlan(levels=levels, groups=groups, branch_levels=branch_levels(groups))


def grid_position(index: int, config: LayoutConfig) -> Dict[str, float]:
    """Pixel position of the grid cell for an array index."""
    row = index // config.blocks_per_row
    col = index % config.blocks_per_row
    return {
        "x": config.start_x + col * config.horizontal_spacing,
        "y": config.start_y + row * config.vertical_spacing,
    }


def end_position(index: int, config: LayoutConfig) -> Dict[str, float]:
    """Centred position on the row after the block preceding the end block."""
    previous_row = (index - 1) // config.blocks_per_row
    row = previous_row + 1
    return {
        "x": config.start_x + (config.blocks_per_row - 1) * config.horizontal_spacing / 2,
        "y": config.start_y + row * config.vertical_spacing + config.end_clearance,
    }


def compute_layout(
    blocks: List[Block],
    config: Optional[LayoutConfig] = None,
) -> List[Block]:
    """
    Assign positions to every block.

    Pure: returns new Block objects with only ``position`` replaced and
    leaves the input list untouched.

    Args:
        blocks: Block list in display order, with connections
        config: Spacing constants (defaults from settings)

    Returns:
        New list of positioned blocks
    """
    config = config or get_settings().layout
    plan = describe_layout(blocks)

    positioned: List[Block] = []
    for index, block in enumerate(blocks):
        if block.type == BlockType.END:
            positioned.append(replace(block, position=end_position(index, config)))
            continue

        position = grid_position(index, config)

        level = plan.levels.get(block.id)
        if level is not None:
            siblings = plan.groups[level]
            if len(siblings) > 1:
                position["y"] += siblings.index(block.id) * config.branch_offset

        positioned.append(replace(block, position=position))

    return positioned
