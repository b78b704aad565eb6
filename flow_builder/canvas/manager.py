"""
Canvas Manager.

Keeps the bots being edited in memory and routes edits through the
block editor.
"""

from typing import Any, Dict, Iterable, List, Optional
import uuid

import structlog

from ..exceptions import BotNotFoundError
from ..models import Bot, EditResult, ValidationResult
from ..templates import build_template
from .editor import BlockEditor, ToolCallInput
from .validator import FlowValidator

logger = structlog.get_logger()


class CanvasManager:
    """
    Manages bot lifecycle and editing.

    Features:
    - Bot creation from templates
    - Assistant tool-call application
    - Validation
    """

    def __init__(self):
        """Initialize canvas manager."""
        self.validator = FlowValidator()

        # In-memory only; bots live for the lifetime of the process
        self._bots: Dict[str, Bot] = {}

    async def create_bot(
        self,
        name: str = "Untitled bot",
        template_id: Optional[str] = None,
    ) -> Bot:
        """
        Create a new bot.

        Args:
            name: Bot name
            template_id: Optional template to start from (defaults to an
                empty start -> end flow)

        Returns:
            Created Bot
        """
        bot = Bot(
            id=str(uuid.uuid4()),
            name=name,
            blocks=build_template(template_id or "empty"),
            template_id=template_id,
        )
        self._bots[bot.id] = bot

        logger.info(
            "bot_created",
            bot_id=bot.id,
            template_id=template_id,
            block_count=len(bot.blocks),
        )
        return bot

    async def get_bot(self, bot_id: str) -> Bot:
        """Get a bot by ID."""
        bot = self._bots.get(bot_id)
        if bot is None:
            raise BotNotFoundError(bot_id)
        return bot

    async def list_bots(self) -> List[Bot]:
        """List bots, most recently updated first."""
        return sorted(self._bots.values(), key=lambda b: b.updated_at, reverse=True)

    async def delete_bot(self, bot_id: str) -> None:
        """Delete a bot."""
        if self._bots.pop(bot_id, None) is None:
            raise BotNotFoundError(bot_id)
        logger.info("bot_deleted", bot_id=bot_id)

    async def apply_actions(
        self,
        bot_id: str,
        actions: Iterable[ToolCallInput],
    ) -> EditResult:
        """Apply assistant tool calls to a bot."""
        bot = await self.get_bot(bot_id)
        result = BlockEditor(bot).apply_tool_calls(actions)

        logger.info(
            "actions_applied",
            bot_id=bot_id,
            applied=result.applied,
            rejected=result.rejected,
        )
        return result

    async def submit_form(
        self,
        bot_id: str,
        block_id: str,
        config: Dict[str, Any],
    ) -> EditResult:
        """Apply a block configuration form submission."""
        bot = await self.get_bot(bot_id)
        return BlockEditor(bot).submit_form(block_id, config)

    async def validate_bot(self, bot_id: str) -> ValidationResult:
        """Validate a bot."""
        bot = await self.get_bot(bot_id)
        return self.validator.validate(bot.blocks)
