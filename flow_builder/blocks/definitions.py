"""
Block Type Definitions.

Definitions for all block types available on the canvas.
"""

from ..config import BlockType, DataType
from ..models import BlockDefinition, ConfigField


# =============================================================================
# Flow Boundary Blocks
# =============================================================================

BOUNDARY_BLOCKS = [
    BlockDefinition(
        type=BlockType.START,
        label="Starting point",
        description="Entry point of the conversation",
        icon="play",
        singleton=True,
        accepts_input=False,
    ),
    BlockDefinition(
        type=BlockType.END,
        label="End",
        description="Exit point of the conversation",
        icon="flag",
        singleton=True,
        max_outputs=0,
    ),
]


# =============================================================================
# Conversation Blocks
# =============================================================================

CONVERSATION_BLOCKS = [
    BlockDefinition(
        type=BlockType.SEND_MESSAGE,
        label="Send Message",
        description="Sends a message to the user",
        icon="message-square",
        fields=[
            ConfigField(
                name="message",
                data_type=DataType.STRING,
                required=True,
                description="Message text, may reference {variable} placeholders",
            ),
        ],
    ),
    BlockDefinition(
        type=BlockType.ASK_QUESTION,
        label="Question",
        description="Asks a question and stores the answer in a field",
        icon="help-circle",
        fields=[
            ConfigField(
                name="question",
                data_type=DataType.STRING,
                required=True,
                description="The question text to ask users",
            ),
            ConfigField(
                name="variableName",
                data_type=DataType.STRING,
                required=True,
                description="Field name to store the answer (snake_case)",
            ),
        ],
    ),
]


# =============================================================================
# Integration & AI Blocks
# =============================================================================

INTEGRATION_BLOCKS = [
    BlockDefinition(
        type=BlockType.EXTERNAL_INTEGRATION,
        label="HubSpot",
        description="Sends the collected lead data to the CRM",
        icon="link",
        fields=[
            ConfigField(
                name="connected",
                data_type=DataType.BOOLEAN,
                required=True,
                description="Whether the CRM account is connected",
            ),
            ConfigField(
                name="provider",
                data_type=DataType.STRING,
                required=False,
                description="CRM provider name",
            ),
        ],
    ),
]

AI_BLOCKS = [
    BlockDefinition(
        type=BlockType.AI_AGENT,
        label="AI Agent",
        description="AI-powered decision making with multiple conditional outputs",
        icon="sparkles",
        max_outputs=-1,
        fields=[
            ConfigField(
                name="agentName",
                data_type=DataType.STRING,
                required=True,
                description="A descriptive name for this AI agent",
            ),
            ConfigField(
                name="agentPrompt",
                data_type=DataType.STRING,
                required=True,
                description="Instructions the agent uses to pick an output",
            ),
            ConfigField(
                name="outputs",
                data_type=DataType.ARRAY,
                required=True,
                description="Declared outputs as [{id, label}]",
            ),
        ],
    ),
]


ALL_BLOCKS = BOUNDARY_BLOCKS + CONVERSATION_BLOCKS + INTEGRATION_BLOCKS + AI_BLOCKS
