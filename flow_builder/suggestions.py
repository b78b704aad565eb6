"""
Contextual Suggestions.

Picks the follow-up prompt chips shown to the builder after each
assistant turn.
"""

from typing import List, Optional

from .config import BlockType
from .models import Block, Suggestion

# Questions the lead template considers enough before nudging the CRM step
PENDING_INTEGRATION_MIN_QUESTIONS = 5


EMPTY_STATE_SUGGESTIONS = [
    Suggestion("empty-1", "📝", "Add email question",
               "Add a question asking 'What is your email address?' to collect contact information"),
    Suggestion("empty-2", "💬", "Improve welcome message",
               "Make the welcome message more engaging and mention we help find dream properties"),
    Suggestion("empty-3", "🔗", "Connect to HubSpot",
               "Help me configure the HubSpot integration to send leads automatically"),
]

PENDING_INTEGRATION_SUGGESTIONS = [
    Suggestion("hubspot-1", "🔗", "Connect to HubSpot",
               "Configure the HubSpot block to automatically send collected lead data to my CRM"),
    Suggestion("hubspot-2", "📋", "Add phone question",
               "Add a question block asking 'What is your phone number?' to collect contact details"),
    Suggestion("hubspot-3", "✨", "Add follow-up message",
               "Add a message saying 'Thank you! Our team will contact you within 24 hours with property matches'"),
]

BOT_COMPLETE_SUGGESTIONS = [
    Suggestion("complete-1", "🚀", "See in action", "I want to see how the bot works"),
    Suggestion("complete-2", "📍", "Add location details",
               "Add a question asking 'Which neighborhoods or areas are you interested in?' "
               "for better property matching"),
    Suggestion("complete-3", "🏠", "Ask about property features",
               "Add a question like 'What features are most important to you? "
               "(e.g., garage, garden, modern kitchen)'"),
]

AFTER_ADD_BLOCK_SUGGESTIONS = [
    Suggestion("add-1", "⚙️", "Configure this block", "Help me configure the block I just added"),
    Suggestion("add-2", "➕", "Add another question",
               "Add another question to collect more details about the client's needs"),
    Suggestion("add-3", "🚀", "Test bot", "Open preview to test the conversation flow"),
]

AFTER_UPDATE_SUGGESTIONS = [
    Suggestion("update-1", "🚀", "Test changes",
               "Open the preview to test how this change affects the bot conversation"),
    Suggestion("update-2", "✏️", "Edit another block", "Help me edit another block to improve the bot flow"),
    Suggestion("update-3", "📊", "Review full flow", "Show me the complete bot flow and suggest improvements"),
]

DEFAULT_SUGGESTIONS = [
    Suggestion("default-1", "📝", "Add a question", "Add a new question to collect more information from users"),
    Suggestion("default-2", "💬", "Add a message", "Add a message block to provide information to users"),
    Suggestion("default-3", "🚀", "Test the bot", "Open the preview to test how the bot conversation works"),
]


def generate_contextual_suggestions(
    blocks: List[Block],
    last_action_type: Optional[str] = None,
) -> List[Suggestion]:
    """Suggestions for the current bot state and the last applied action."""
    if last_action_type == "add_block":
        return AFTER_ADD_BLOCK_SUGGESTIONS

    if last_action_type == "update_block":
        return AFTER_UPDATE_SUGGESTIONS

    integrations = [b for b in blocks if b.type == BlockType.EXTERNAL_INTEGRATION]
    has_pending_integration = any(not b.is_ready for b in integrations)
    has_configured_integration = any(
        b.is_ready and b.config.get("connected") for b in integrations
    )
    all_ready = all(b.is_ready for b in blocks)
    question_count = sum(1 for b in blocks if b.type == BlockType.ASK_QUESTION)

    if has_configured_integration and all_ready:
        return BOT_COMPLETE_SUGGESTIONS

    if has_pending_integration and question_count >= PENDING_INTEGRATION_MIN_QUESTIONS:
        return PENDING_INTEGRATION_SUGGESTIONS

    return DEFAULT_SUGGESTIONS


def get_empty_state_suggestions() -> List[Suggestion]:
    return EMPTY_STATE_SUGGESTIONS
