"""
Data Models for Flow Builder.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
import uuid

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from .config import (
    BlockType,
    BlockStatus,
    DataType,
    NoticeKind,
    NoticeVariant,
    PreviewState,
    StepOutcome,
    TranscriptRole,
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Block Definition Models
# =============================================================================


@dataclass
class ConfigField:
    """Definition of a configurable block field."""

    name: str
    data_type: DataType
    required: bool = False
    description: str = ""


@dataclass
class BlockDefinition:
    """Definition of a block type."""

    type: BlockType
    label: str
    description: str
    icon: str

    fields: List[ConfigField] = field(default_factory=list)

    # Behavior
    singleton: bool = False  # start/end: exactly one, not user-creatable
    max_outputs: int = 1  # -1 = one per declared agent output
    accepts_input: bool = True

    @property
    def required_fields(self) -> List[ConfigField]:
        return [f for f in self.fields if f.required]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "label": self.label,
            "description": self.description,
            "icon": self.icon,
            "singleton": self.singleton,
            "max_outputs": self.max_outputs,
            "fields": [
                {
                    "name": f.name,
                    "data_type": f.data_type.value,
                    "required": f.required,
                    "description": f.description,
                }
                for f in self.fields
            ],
        }


# =============================================================================
# Block Models
# =============================================================================


@dataclass
class BlockConnection:
    """Outgoing edge from one block to another."""

    id: str
    source_block_id: str
    target_block_id: str
    source_output_id: Optional[str] = None  # For AI agents with multiple outputs
    label: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "sourceBlockId": self.source_block_id,
            "targetBlockId": self.target_block_id,
        }
        if self.source_output_id is not None:
            data["sourceOutputId"] = self.source_output_id
        if self.label is not None:
            data["label"] = self.label
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BlockConnection":
        return cls(
            id=data.get("id") or str(uuid.uuid4()),
            source_block_id=data["sourceBlockId"],
            target_block_id=data["targetBlockId"],
            source_output_id=data.get("sourceOutputId"),
            label=data.get("label"),
        )


@dataclass
class Block:
    """A node in the bot flow."""

    id: str
    type: Union[BlockType, str]
    status: BlockStatus = BlockStatus.PENDING
    position: Dict[str, float] = field(default_factory=lambda: {"x": 0, "y": 0})
    config: Dict[str, Any] = field(default_factory=dict)
    connections: List[BlockConnection] = field(default_factory=list)

    @property
    def is_ready(self) -> bool:
        return self.status == BlockStatus.READY

    @property
    def target_ids(self) -> List[str]:
        return [c.target_block_id for c in self.connections]

    @property
    def type_name(self) -> str:
        return self.type.value if isinstance(self.type, BlockType) else self.type

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type_name,
            "position": dict(self.position),
            "status": self.status.value,
            "config": self.config,
            "connections": [c.to_dict() for c in self.connections],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], lenient: bool = False) -> "Block":
        """
        Build a block from its wire form.

        With ``lenient`` an unrecognised type is kept as its raw name
        instead of raising, so a preview can step over it.
        """
        position = data.get("position") or {"x": 0, "y": 0}
        block_type: Union[BlockType, str]
        try:
            block_type = BlockType(data["type"])
        except ValueError:
            if not lenient or not isinstance(data["type"], str):
                raise
            block_type = data["type"]
        return cls(
            id=data["id"],
            type=block_type,
            status=BlockStatus(data.get("status", "pending")),
            position={"x": position.get("x", 0), "y": position.get("y", 0)},
            config=dict(data.get("config") or {}),
            connections=[
                BlockConnection.from_dict(c) for c in data.get("connections") or []
            ],
        )


def blocks_from_dicts(items: List[Dict[str, Any]], lenient: bool = False) -> List[Block]:
    return [Block.from_dict(item, lenient=lenient) for item in items]


def blocks_to_dicts(blocks: List[Block]) -> List[Dict[str, Any]]:
    return [b.to_dict() for b in blocks]


# =============================================================================
# Bot / Editor Models
# =============================================================================


@dataclass
class CanvasViewState:
    """UI view state the host renders alongside the canvas."""

    active_form_block_id: Optional[str] = None
    hidden_form_ids: List[str] = field(default_factory=list)


@dataclass
class Bot:
    """A bot under construction."""

    id: str
    name: str
    blocks: List[Block]
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    template_id: Optional[str] = None
    view_state: CanvasViewState = field(default_factory=CanvasViewState)
    has_seen_flow_complete: bool = False

    def find_block(self, block_id: str) -> Optional[Block]:
        return next((b for b in self.blocks if b.id == block_id), None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "template_id": self.template_id,
            "blocks": blocks_to_dicts(self.blocks),
            "view_state": {
                "active_form_block_id": self.view_state.active_form_block_id,
                "hidden_form_ids": list(self.view_state.hidden_form_ids),
            },
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass
class Notice:
    """User-facing message produced by an edit."""

    kind: NoticeKind
    message: str
    title: Optional[str] = None
    variant: NoticeVariant = NoticeVariant.DEFAULT

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "title": self.title,
            "message": self.message,
            "variant": self.variant.value,
        }


@dataclass
class EditResult:
    """Outcome of applying one or more edits to a bot."""

    applied: int = 0
    rejected: int = 0
    notices: List[Notice] = field(default_factory=list)
    added_block_ids: List[str] = field(default_factory=list)
    removed_block_ids: List[str] = field(default_factory=list)
    updated_block_ids: List[str] = field(default_factory=list)
    last_action_type: Optional[str] = None

    def merge(self, other: "EditResult") -> None:
        self.applied += other.applied
        self.rejected += other.rejected
        self.notices.extend(other.notices)
        self.added_block_ids.extend(other.added_block_ids)
        self.removed_block_ids.extend(other.removed_block_ids)
        self.updated_block_ids.extend(other.updated_block_ids)
        if self.last_action_type is None:
            self.last_action_type = other.last_action_type

    def to_dict(self) -> Dict[str, Any]:
        return {
            "applied": self.applied,
            "rejected": self.rejected,
            "notices": [n.to_dict() for n in self.notices],
            "added_block_ids": self.added_block_ids,
            "removed_block_ids": self.removed_block_ids,
            "updated_block_ids": self.updated_block_ids,
        }


@dataclass
class Suggestion:
    """Follow-up prompt chip shown to the builder."""

    id: str
    emoji: str
    text: str
    prompt: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "id": self.id,
            "emoji": self.emoji,
            "text": self.text,
            "prompt": self.prompt,
        }


# =============================================================================
# Preview Models
# =============================================================================


@dataclass
class TranscriptEntry:
    """One message in a preview conversation."""

    role: TranscriptRole
    content: str
    id: str = field(default_factory=lambda: f"msg-{uuid.uuid4().hex[:12]}")
    timestamp: datetime = field(default_factory=utcnow)
    block_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "role": self.role.value,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
            "block_id": self.block_id,
        }


@dataclass
class StepResult:
    """Result of visiting a single block."""

    index: int
    outcome: StepOutcome
    block_id: Optional[str] = None
    block_type: Optional[Union[BlockType, str]] = None
    entry: Optional[TranscriptEntry] = None


@dataclass
class PreviewSnapshot:
    """Point-in-time view of a preview session."""

    state: PreviewState
    current_block_index: int
    transcript: List[TranscriptEntry]
    collected_variables: Dict[str, str]
    generation: int

    @property
    def awaiting_input(self) -> bool:
        return self.state == PreviewState.AWAITING_INPUT

    @property
    def is_complete(self) -> bool:
        return self.state == PreviewState.COMPLETE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "current_block_index": self.current_block_index,
            "awaiting_input": self.awaiting_input,
            "is_complete": self.is_complete,
            "transcript": [e.to_dict() for e in self.transcript],
            "collected_variables": dict(self.collected_variables),
            "generation": self.generation,
        }


# =============================================================================
# Validation Models
# =============================================================================


@dataclass
class ValidationIssue:
    """A validation issue found in a bot flow."""

    severity: str  # error, warning, info
    message: str
    block_id: Optional[str] = None
    connection_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "severity": self.severity,
            "message": self.message,
            "block_id": self.block_id,
            "connection_id": self.connection_id,
        }


@dataclass
class ValidationResult:
    """Result of flow validation."""

    valid: bool
    issues: List[ValidationIssue] = field(default_factory=list)
    checked_at: datetime = field(default_factory=utcnow)

    @property
    def errors(self) -> List[ValidationIssue]:
        return [i for i in self.issues if i.severity == "error"]

    @property
    def warnings(self) -> List[ValidationIssue]:
        return [i for i in self.issues if i.severity == "warning"]

    @property
    def infos(self) -> List[ValidationIssue]:
        return [i for i in self.issues if i.severity == "info"]


# =============================================================================
# Assistant Tool Calls
# =============================================================================


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class BlockPlacement(_CamelModel):
    """Where to insert a new block."""

    after_block_id: Optional[str] = Field(default=None, alias="afterBlockId")
    before_block_id: Optional[str] = Field(default=None, alias="beforeBlockId")


class AddBlockCall(_CamelModel):
    """Add a block, optionally pre-configured and positioned."""

    type: Literal["add_block"] = "add_block"
    block_type: BlockType = Field(..., alias="blockType")
    config: Optional[Dict[str, Any]] = None
    position: Optional[BlockPlacement] = None


class UpdateBlockCall(_CamelModel):
    """Merge new configuration into an existing block."""

    type: Literal["update_block"] = "update_block"
    block_id: str = Field(..., alias="blockId")
    config: Dict[str, Any] = Field(default_factory=dict)
    show_form: bool = Field(default=False, alias="showForm")


class RemoveBlockCall(_CamelModel):
    """Remove one or more blocks."""

    type: Literal["remove_block"] = "remove_block"
    block_ids: List[str] = Field(..., alias="blockIds")


class ShowFormCall(_CamelModel):
    """Open a block's configuration form."""

    type: Literal["show_form"] = "show_form"
    block_id: str = Field(..., alias="blockId")
    block_type: Optional[BlockType] = Field(default=None, alias="blockType")


ToolCall = Annotated[
    Union[AddBlockCall, UpdateBlockCall, RemoveBlockCall, ShowFormCall],
    Field(discriminator="type"),
]

_tool_calls_adapter = TypeAdapter(List[ToolCall])


def parse_tool_calls(raw: List[Dict[str, Any]]) -> List[Any]:
    """Validate raw assistant tool calls into typed models."""
    return _tool_calls_adapter.validate_python(raw)


# =============================================================================
# API Request/Response Models
# =============================================================================


class LayoutRequest(BaseModel):
    """Request to lay out a block list."""

    blocks: List[Dict[str, Any]]


class LayoutResponse(BaseModel):
    """Positioned blocks plus level diagnostics."""

    blocks: List[Dict[str, Any]]
    levels: Dict[str, int]
    branch_levels: List[int]


class CreateBotRequest(BaseModel):
    """Request to create a bot."""

    name: str = Field(default="Untitled bot", min_length=1, max_length=255)
    template_id: Optional[str] = None


class ApplyActionsRequest(BaseModel):
    """Tool calls returned by the assistant."""

    actions: List[ToolCall] = Field(default_factory=list)


class ApplyActionsResponse(BaseModel):
    """Result of applying tool calls."""

    bot: Dict[str, Any]
    result: Dict[str, Any]
    suggestions: List[Dict[str, str]]


class BlockConfigRequest(BaseModel):
    """Configuration form submission for one block."""

    config: Dict[str, Any] = Field(default_factory=dict)


class ValidateBotResponse(BaseModel):
    """Response from flow validation."""

    valid: bool
    errors: List[Dict[str, Any]]
    warnings: List[Dict[str, Any]]
    infos: List[Dict[str, Any]]


class StartPreviewRequest(BaseModel):
    """Start a preview from a bot or an explicit block snapshot."""

    bot_id: Optional[str] = None
    blocks: Optional[List[Dict[str, Any]]] = None


class AnswerRequest(BaseModel):
    """User answer to the pending preview question."""

    text: str


class PreviewResponse(BaseModel):
    """Preview session state."""

    session_id: str
    state: str
    current_block_index: int
    awaiting_input: bool
    is_complete: bool
    transcript: List[Dict[str, Any]]
    collected_variables: Dict[str, str]
    generation: int
    accepted: Optional[bool] = None


# =============================================================================
# Export
# =============================================================================


__all__ = [
    # Definitions
    "ConfigField",
    "BlockDefinition",
    # Blocks
    "BlockConnection",
    "Block",
    "blocks_from_dicts",
    "blocks_to_dicts",
    # Editor
    "CanvasViewState",
    "Bot",
    "Notice",
    "EditResult",
    "Suggestion",
    # Preview
    "TranscriptEntry",
    "StepResult",
    "PreviewSnapshot",
    # Validation
    "ValidationIssue",
    "ValidationResult",
    # Tool calls
    "BlockPlacement",
    "AddBlockCall",
    "UpdateBlockCall",
    "RemoveBlockCall",
    "ShowFormCall",
    "ToolCall",
    "parse_tool_calls",
    # API
    "LayoutRequest",
    "LayoutResponse",
    "CreateBotRequest",
    "ApplyActionsRequest",
    "ApplyActionsResponse",
    "BlockConfigRequest",
    "ValidateBotResponse",
    "StartPreviewRequest",
    "AnswerRequest",
    "PreviewResponse",
]
