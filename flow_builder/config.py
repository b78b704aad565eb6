"""
Configuration for Flow Builder.
"""

from enum import Enum
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BlockType(str, Enum):
    """Available block types."""

    START = "start"
    END = "end"
    SEND_MESSAGE = "send-message"
    ASK_QUESTION = "ask-question"
    EXTERNAL_INTEGRATION = "external-integration"
    AI_AGENT = "ai-agent"

    @classmethod
    def _missing_(cls, value):
        # The builder UI names the integration block after its provider
        if isinstance(value, str) and value.lower() == "hubspot":
            return cls.EXTERNAL_INTEGRATION
        return None


class BlockStatus(str, Enum):
    """Configuration status of a block."""

    PENDING = "pending"
    READY = "ready"


class PreviewState(str, Enum):
    """Flow simulator states."""

    IDLE = "idle"
    ADVANCING = "advancing"
    AWAITING_INPUT = "awaiting_input"
    COMPLETE = "complete"


class StepOutcome(str, Enum):
    """What happened when the simulator visited a block."""

    SKIPPED = "skipped"
    PASSED = "passed"
    EMITTED = "emitted"
    AWAITING_INPUT = "awaiting_input"
    COMPLETED = "completed"


class TranscriptRole(str, Enum):
    """Author of a preview transcript entry."""

    BOT = "bot"
    USER = "user"


class NoticeKind(str, Enum):
    """Where the host should surface an editor notice."""

    TOAST = "toast"
    CHAT = "chat"


class NoticeVariant(str, Enum):
    """Notice styling."""

    DEFAULT = "default"
    DESTRUCTIVE = "destructive"


class DataType(str, Enum):
    """Data types for block config fields."""

    STRING = "string"
    BOOLEAN = "boolean"
    ARRAY = "array"


class LayoutConfig(BaseSettings):
    """Auto-layout configuration."""

    model_config = SettingsConfigDict(env_prefix="LAYOUT_")

    # Grid settings
    horizontal_spacing: int = Field(default=400, description="Column width in pixels")
    vertical_spacing: int = Field(default=200, description="Row height in pixels")
    blocks_per_row: int = Field(default=3, ge=1, description="Columns per grid row")
    start_x: int = Field(default=100, description="Left margin")
    start_y: int = Field(default=100, description="Top margin")

    # Terminal row and branches
    end_clearance: int = Field(default=100, description="Extra gap above the end block")
    branch_offset: int = Field(default=100, description="Vertical offset between sibling branches")


class PreviewConfig(BaseSettings):
    """Preview simulator configuration."""

    model_config = SettingsConfigDict(env_prefix="PREVIEW_")

    # Display delays
    start_delay_ms: int = Field(default=500, ge=0, description="Delay after the start block")
    step_delay_ms: int = Field(default=1000, ge=0, description="Delay after each bot turn")

    # Canned bot messages
    closing_message: str = Field(
        default="Thank you for chatting with us! This conversation has ended.",
        description="Message emitted at the end block",
    )
    integration_ack_message: str = Field(
        default="✓ Your information has been saved. Thank you!",
        description="Acknowledgement for a connected integration block",
    )

    # Limits
    max_sessions: int = Field(default=100, ge=1, description="Max concurrent preview sessions")


class CanvasConfig(BaseSettings):
    """Canvas configuration."""

    model_config = SettingsConfigDict(env_prefix="CANVAS_")

    max_blocks_per_bot: int = Field(default=200, description="Max blocks per bot")
    block_id_prefix: str = Field(default="block", description="Prefix for generated block ids")


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Service configuration
    service_name: str = Field(default="flow-builder", description="Service name")
    host: str = Field(default="0.0.0.0", description="Host to bind")
    port: int = Field(default=8091, ge=1024, le=65535, description="Port")
    debug: bool = Field(default=False, description="Debug mode")
    log_level: str = Field(default="info", description="Log level")
    log_json: bool = Field(default=True, description="Render logs as JSON")

    # API settings
    enable_docs: bool = Field(default=True, description="Enable API docs")
    cors_origins: Optional[str] = Field(
        default=None,
        description="Comma separated list of allowed CORS origins",
    )

    # Sub-configurations
    layout: LayoutConfig = Field(default_factory=LayoutConfig)
    preview: PreviewConfig = Field(default_factory=PreviewConfig)
    canvas: CanvasConfig = Field(default_factory=CanvasConfig)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings."""
    return Settings()
