"""
Block Editor.

Applies assistant tool calls (add, update, remove, show form) to a bot's
block list. Structural edits re-run the layout engine. Problems such as
unknown ids or singleton blocks are reported as notices, never raised.
"""

from typing import Any, Dict, Iterable, List, Optional, Tuple, Union
import uuid

import structlog
from pydantic import ValidationError

from ..blocks import get_block_registry
from ..config import BlockStatus, BlockType, NoticeKind, NoticeVariant, get_settings
from ..models import (
    AddBlockCall,
    Block,
    BlockConnection,
    Bot,
    EditResult,
    Notice,
    RemoveBlockCall,
    ShowFormCall,
    UpdateBlockCall,
    parse_tool_calls,
    utcnow,
)
from .layout import compute_layout

logger = structlog.get_logger()

ToolCallInput = Union[AddBlockCall, UpdateBlockCall, RemoveBlockCall, ShowFormCall, Dict[str, Any]]


def _toast(title: str, message: str, destructive: bool = False) -> Notice:
    return Notice(
        kind=NoticeKind.TOAST,
        title=title,
        message=message,
        variant=NoticeVariant.DESTRUCTIVE if destructive else NoticeVariant.DEFAULT,
    )


def _chat(message: str) -> Notice:
    return Notice(kind=NoticeKind.CHAT, message=message)


class BlockEditor:
    """
    Single writer for a bot's block list.

    Features:
    - Insert blocks before the end block or relative to another block
    - Keep linear connections intact around inserted and removed blocks
    - Recompute readiness from the block registry on every config change
    - Track which configuration form is open
    """

    def __init__(self, bot: Bot):
        """Initialize editor for a bot."""
        self.bot = bot
        self.settings = get_settings()
        self.registry = get_block_registry()

    # -------------------------------------------------------------------------
    # Tool calls
    # -------------------------------------------------------------------------

    def apply_tool_calls(self, calls: Iterable[ToolCallInput]) -> EditResult:
        """
        Apply assistant tool calls in order.

        Args:
            calls: Typed tool calls or raw dictionaries

        Returns:
            Combined EditResult for the batch
        """
        result = EditResult()

        for call in calls:
            if isinstance(call, dict):
                try:
                    call = parse_tool_calls([call])[0]
                except ValidationError as e:
                    logger.warning(
                        "tool_call_rejected",
                        bot_id=self.bot.id,
                        call_type=call.get("type"),
                        error=str(e),
                    )
                    result.rejected += 1
                    continue

            result.merge(self.apply(call))

        result.notices.extend(self._check_flow_complete())
        return result

    def apply(self, call: Any) -> EditResult:
        """Apply a single typed tool call."""
        if isinstance(call, AddBlockCall):
            position = call.position
            return self.add_block(
                call.block_type,
                config=call.config,
                after_block_id=position.after_block_id if position else None,
                before_block_id=position.before_block_id if position else None,
            )

        if isinstance(call, UpdateBlockCall):
            return self.update_block(call.block_id, call.config, show_form=call.show_form)

        if isinstance(call, RemoveBlockCall):
            return self.remove_blocks(call.block_ids)

        if isinstance(call, ShowFormCall):
            return self.show_form(call.block_id)

        logger.warning("tool_call_unsupported", call=repr(call))
        return EditResult(rejected=1)

    # -------------------------------------------------------------------------
    # Add
    # -------------------------------------------------------------------------

    def add_block(
        self,
        block_type: BlockType,
        config: Optional[Dict[str, Any]] = None,
        after_block_id: Optional[str] = None,
        before_block_id: Optional[str] = None,
    ) -> EditResult:
        """
        Add a new block.

        The block is inserted before the end block unless a resolvable
        after/before directive is given. A non-empty suggested config makes
        the block ready straight away.
        """
        result = EditResult(last_action_type="add_block")
        block_type = BlockType(block_type)

        if self.registry.is_singleton(block_type):
            result.rejected += 1
            result.notices.append(
                _toast(
                    "Cannot add block",
                    "Start and End blocks already exist in your bot.",
                    destructive=True,
                )
            )
            return result

        max_blocks = self.settings.canvas.max_blocks_per_bot
        if len(self.bot.blocks) >= max_blocks:
            result.rejected += 1
            result.notices.append(
                _toast(
                    "Cannot add block",
                    f"Bots are limited to {max_blocks} blocks.",
                    destructive=True,
                )
            )
            return result

        block = Block(
            id=self._new_block_id(),
            type=block_type,
            status=BlockStatus.READY if config else BlockStatus.PENDING,
            config=dict(config or {}),
        )

        blocks = list(self.bot.blocks)
        insert_index, anchor = self._resolve_insert_index(blocks, after_block_id, before_block_id)
        if anchor is not None and after_block_id:
            self._wire_after(blocks, anchor, insert_index, block)
        elif anchor is not None:
            self._wire_before(blocks, anchor, insert_index, block)
        else:
            self._wire_between(blocks, insert_index, block)
        blocks.insert(insert_index, block)

        self._commit(blocks)

        result.applied += 1
        result.added_block_ids.append(block.id)
        config_status = "with suggested values" if config else "ready for configuration"
        result.notices.append(
            _toast("Block added", f"{block_type.value} block added {config_status}.")
        )

        logger.info(
            "block_added",
            bot_id=self.bot.id,
            block_id=block.id,
            block_type=block_type.value,
            index=insert_index,
        )
        return result

    def _resolve_insert_index(
        self,
        blocks: List[Block],
        after_block_id: Optional[str],
        before_block_id: Optional[str],
    ) -> Tuple[int, Optional[Block]]:
        """
        Array index for a new block, plus the block the directive resolved to.

        Unresolvable directives fall back to before end with no anchor.
        """
        insert_index = next(
            (i for i, b in enumerate(blocks) if b.type == BlockType.END),
            len(blocks),
        )

        if after_block_id:
            target = self._index_of(blocks, after_block_id)
            if target is not None and blocks[target].type != BlockType.END:
                return target + 1, blocks[target]
        elif before_block_id:
            target = self._index_of(blocks, before_block_id)
            if target is not None and blocks[target].type != BlockType.START:
                return target, blocks[target]

        return insert_index, None

    def _wire_after(self, blocks: List[Block], anchor: Block, index: int, block: Block) -> None:
        """Splice the new block into the anchor's first outgoing edge."""
        if not anchor.connections:
            anchor.connections.append(self._new_connection(anchor, block.id, first_output=True))
            following = blocks[index] if index < len(blocks) else None
            if following is not None:
                block.connections.append(
                    self._new_connection(block, following.id, first_output=True)
                )
            return

        conn = anchor.connections[0]
        block.connections.append(
            self._new_connection(block, conn.target_block_id, first_output=True)
        )
        conn.target_block_id = block.id

    def _wire_before(self, blocks: List[Block], anchor: Block, index: int, block: Block) -> None:
        """Point every edge into the anchor at the new block, which then leads to the anchor."""
        block.connections.append(self._new_connection(block, anchor.id, first_output=True))

        retargeted = False
        for other in blocks:
            for conn in other.connections:
                if conn.target_block_id == anchor.id:
                    conn.target_block_id = block.id
                    retargeted = True

        previous = blocks[index - 1] if index > 0 else None
        if not retargeted and previous is not None and previous.type != BlockType.END:
            if not previous.connections:
                previous.connections.append(self._new_connection(previous, block.id))

    def _wire_between(self, blocks: List[Block], index: int, block: Block) -> None:
        """Splice the new block into the edge between its array neighbours."""
        previous = blocks[index - 1] if index > 0 else None
        following = blocks[index] if index < len(blocks) else None

        if following is not None:
            block.connections.append(
                self._new_connection(block, following.id, first_output=True)
            )

        if previous is None or previous.type == BlockType.END:
            return

        retargeted = False
        if following is not None:
            for conn in previous.connections:
                if conn.target_block_id == following.id:
                    conn.target_block_id = block.id
                    retargeted = True

        if not retargeted and not previous.connections:
            previous.connections.append(self._new_connection(previous, block.id))

    # -------------------------------------------------------------------------
    # Update
    # -------------------------------------------------------------------------

    def update_block(
        self,
        block_id: str,
        config: Dict[str, Any],
        show_form: bool = False,
    ) -> EditResult:
        """Merge config into a block and recompute its status."""
        result = EditResult(last_action_type="update_block")

        block = self.bot.find_block(block_id)
        if block is None:
            result.rejected += 1
            result.notices.append(_chat(f'Block with ID "{block_id}" not found.'))
            return result

        block.config = {**block.config, **(config or {})}
        block.status = self.registry.status_for(block.type, block.config)
        self._touch()

        result.applied += 1
        result.updated_block_ids.append(block.id)

        logger.info(
            "block_updated",
            bot_id=self.bot.id,
            block_id=block.id,
            status=block.status.value,
            fields=sorted((config or {}).keys()),
        )

        if show_form:
            result.notices.extend(self.show_form(block_id).notices)

        return result

    def submit_form(self, block_id: str, config: Dict[str, Any]) -> EditResult:
        """Apply a configuration form submission and hide the form."""
        result = self.update_block(block_id, config)
        if result.applied:
            view = self.bot.view_state
            if block_id not in view.hidden_form_ids:
                view.hidden_form_ids.append(block_id)
            if view.active_form_block_id == block_id:
                view.active_form_block_id = None
        result.notices.extend(self._check_flow_complete())
        return result

    # -------------------------------------------------------------------------
    # Remove
    # -------------------------------------------------------------------------

    def remove_blocks(self, block_ids: List[str]) -> EditResult:
        """Remove several blocks; each id is handled independently."""
        result = EditResult(last_action_type="remove_block")
        for block_id in block_ids:
            result.merge(self.remove_block(block_id))
        return result

    def remove_block(self, block_id: str) -> EditResult:
        """Remove a block, reconnecting its predecessors to its successor."""
        result = EditResult(last_action_type="remove_block")

        block = self.bot.find_block(block_id)
        if block is None:
            result.rejected += 1
            result.notices.append(_chat(f'Block with ID "{block_id}" not found.'))
            return result

        if self.registry.is_singleton(block.type):
            result.rejected += 1
            result.notices.append(
                _chat(
                    f"Cannot remove the {block.type.value} block. "
                    "Start and End blocks are required for every bot."
                )
            )
            return result

        blocks = [b for b in self.bot.blocks if b.id != block_id]
        successor_id = block.connections[0].target_block_id if block.connections else None
        self._bridge_removed(blocks, block_id, successor_id)

        view = self.bot.view_state
        if view.active_form_block_id == block_id:
            view.active_form_block_id = None

        self._commit(blocks)

        result.applied += 1
        result.removed_block_ids.append(block_id)
        result.notices.append(
            _toast(
                "Block removed",
                f"{self.registry.label_for(block.type)} block has been removed.",
            )
        )

        logger.info("block_removed", bot_id=self.bot.id, block_id=block_id)
        return result

    def _bridge_removed(
        self,
        blocks: List[Block],
        removed_id: str,
        successor_id: Optional[str],
    ) -> None:
        """Point edges into the removed block at its successor, or drop them."""
        for other in blocks:
            kept: List[BlockConnection] = []
            for conn in other.connections:
                if conn.target_block_id != removed_id:
                    kept.append(conn)
                    continue
                if successor_id is None or successor_id == other.id:
                    continue
                duplicate = any(
                    c.target_block_id == successor_id
                    and c.source_output_id == conn.source_output_id
                    for c in kept + other.connections
                    if c is not conn
                )
                if not duplicate:
                    conn.target_block_id = successor_id
                    kept.append(conn)
            other.connections = kept

    # -------------------------------------------------------------------------
    # Forms
    # -------------------------------------------------------------------------

    def show_form(self, block_id: str) -> EditResult:
        """Open the configuration form for a block."""
        result = EditResult(last_action_type="show_form")

        block = self.bot.find_block(block_id)
        if block is None:
            result.rejected += 1
            result.notices.append(_chat(f'Block with ID "{block_id}" not found.'))
            return result

        view = self.bot.view_state
        view.active_form_block_id = block_id
        if block_id in view.hidden_form_ids:
            view.hidden_form_ids.remove(block_id)

        result.applied += 1
        result.notices.append(
            _chat(
                f"I've opened the configuration form for the "
                f"{self.registry.label_for(block.type)} block on the canvas. "
                "Please configure it there."
            )
        )
        return result

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _check_flow_complete(self) -> List[Notice]:
        """One-off notice the first time a connected integration is ready."""
        if self.bot.has_seen_flow_complete:
            return []

        configured = any(
            b.type == BlockType.EXTERNAL_INTEGRATION
            and b.is_ready
            and b.config.get("connected")
            for b in self.bot.blocks
        )
        if not configured:
            return []

        self.bot.has_seen_flow_complete = True
        logger.info("flow_complete", bot_id=self.bot.id)
        return [
            Notice(
                kind=NoticeKind.CHAT,
                title="Flow complete",
                message="Your bot flow is complete! Open the preview to see it in action.",
            )
        ]

    def _commit(self, blocks: List[Block]) -> None:
        self.bot.blocks = compute_layout(blocks, self.settings.layout)
        self._touch()

    def _touch(self) -> None:
        self.bot.updated_at = utcnow()

    def _new_block_id(self) -> str:
        existing = {b.id for b in self.bot.blocks}
        prefix = self.settings.canvas.block_id_prefix
        while True:
            block_id = f"{prefix}-{uuid.uuid4().hex[:8]}"
            if block_id not in existing:
                return block_id

    def _new_connection(
        self,
        source: Block,
        target_id: str,
        first_output: bool = False,
    ) -> BlockConnection:
        output_id = None
        label = None
        if first_output and source.type == BlockType.AI_AGENT:
            outputs = source.config.get("outputs") or []
            if outputs and isinstance(outputs[0], dict):
                output_id = outputs[0].get("id")
                label = outputs[0].get("label")

        return BlockConnection(
            id=f"conn-{uuid.uuid4().hex[:8]}",
            source_block_id=source.id,
            target_block_id=target_id,
            source_output_id=output_id,
            label=label,
        )

    @staticmethod
    def _index_of(blocks: List[Block], block_id: str) -> Optional[int]:
        return next((i for i, b in enumerate(blocks) if b.id == block_id), None)
