# src/dom_cascade/errors.py
import logging
from typing import Optional

logger = logging.getLogger(__name__)


class UnifyError(Exception):
    """
    Base class for all build and composition errors.

    Carries an exit code for the surrounding build tool and a message that is
    safe to show to end users.
    """

    def __init__(self, message: str, exit_code: int = 1, user_message: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.exit_code = exit_code
        self.user_message = user_message or message


class ValidationError(UnifyError):
    """Invalid construction options, arguments or document handles. Always fatal."""

    def __init__(self, message: str, argument: Optional[str] = None):
        super().__init__(message, exit_code=2)
        self.argument = argument


class PathTraversalError(UnifyError):
    """Raised when a referenced path escapes the authorized source root."""

    def __init__(self, attempted_path, source_root, message: Optional[str] = None):
        super().__init__(
            message or f"Path traversal attempt detected: {attempted_path}",
            exit_code=2,
            user_message="Invalid file path: access outside project directory not allowed",
        )
        self.attempted_path = attempted_path
        self.source_root = source_root
        logger.error("[SECURITY] %s (source root: %s)", self.message, source_root)


class FileSystemError(UnifyError):
    """A file operation on a layout or component failed."""

    def __init__(self, operation: str, path: str, message: str):
        super().__init__(f"File {operation} failed for {path}: {message}")
        self.operation = operation
        self.path = path


class CircularDependencyError(UnifyError):
    """A layout or component path was re-entered while still being resolved."""

    def __init__(self, chain):
        self.chain = list(chain)
        super().__init__(f"Circular dependency detected: {' → '.join(self.chain)}")


class MaxDepthExceededError(UnifyError):
    """The layout/component chain is deeper than the configured ceiling."""

    def __init__(self, path: str, max_depth: int):
        super().__init__(
            f"Maximum depth exceeded: layout nesting too deep (>{max_depth}) at {path}"
        )
        self.path = path
        self.max_depth = max_depth


class RecoverableError(UnifyError):
    """
    A failure the composition can degrade around (e.g. a missing layout).
    `fallback_html` holds the content to use instead.
    """

    def __init__(self, message: str, fallback_html: Optional[str] = None):
        super().__init__(message)
        self.fallback_html = fallback_html
