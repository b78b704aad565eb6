"""
Flow Builder - Exceptions

Errors raised for lookups the caller must handle. Editing and preview
problems never raise; they surface as notices or skipped blocks.
"""

from typing import Any, Dict, Optional


class FlowBuilderError(Exception):
    """
    Base exception for all Flow Builder errors.

    Attributes:
        message: Human-readable error message
        code: Error code
        details: Additional error details
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message='{self.message}', code='{self.code}')"


class BotNotFoundError(FlowBuilderError):
    """Raised when a bot id is unknown."""

    def __init__(self, bot_id: str) -> None:
        super().__init__(
            f"Bot not found: {bot_id}",
            code="BOT_NOT_FOUND",
            details={"bot_id": bot_id},
        )


class PreviewSessionNotFoundError(FlowBuilderError):
    """Raised when a preview session id is unknown or already closed."""

    def __init__(self, session_id: str) -> None:
        super().__init__(
            f"Preview session not found: {session_id}",
            code="PREVIEW_SESSION_NOT_FOUND",
            details={"session_id": session_id},
        )


class PreviewLimitError(FlowBuilderError):
    """Raised when too many preview sessions are open."""

    def __init__(self, limit: int) -> None:
        super().__init__(
            f"Too many open preview sessions (limit {limit})",
            code="PREVIEW_LIMIT",
            details={"limit": limit},
        )


class TemplateNotFoundError(FlowBuilderError):
    """Raised when a bot template id is unknown."""

    def __init__(self, template_id: str) -> None:
        super().__init__(
            f"Template not found: {template_id}",
            code="TEMPLATE_NOT_FOUND",
            details={"template_id": template_id},
        )


class FlowFileError(FlowBuilderError):
    """
    Raised when a flow file cannot be read.

    This can occur when:
    - The file is not valid JSON or YAML
    - The document has no block list
    - A block has an unknown type or status
    """

    def __init__(self, message: str, path: Optional[str] = None) -> None:
        super().__init__(message, code="FLOW_FILE_ERROR", details={"path": path})
