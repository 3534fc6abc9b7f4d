# src/unify_build/services/path_validator_service.py
import logging
import os
import posixpath
from urllib.parse import unquote

from dom_cascade.errors import PathTraversalError

logger = logging.getLogger(__name__)

TRAVERSAL_PATTERNS = ("../", "..\\", "/..", "\\..")
NULL_BYTE_PATTERNS = ("\0", "\\x00", "%00")


class PathValidator:
    """
    Guards every layout and component reference against escaping the
    source root. All failures raise PathTraversalError.
    """

    def validate_path(self, input_path: str, source_root: str) -> None:
        if not input_path or not isinstance(input_path, str):
            raise PathTraversalError(input_path, source_root, "Invalid path: path must be a non-empty string")
        if not source_root or not isinstance(source_root, str):
            raise PathTraversalError(input_path, source_root, "Invalid source root: must be a non-empty string")

        decoded = self._decode_path_safely(input_path)
        if any(pattern in decoded or pattern in input_path for pattern in NULL_BYTE_PATTERNS):
            raise PathTraversalError(input_path, source_root, "Null byte injection attempt detected")

        normalized = self._normalize(decoded)
        if normalized == ".." or any(pattern in normalized for pattern in TRAVERSAL_PATTERNS):
            raise PathTraversalError(input_path, source_root)

        root = os.path.abspath(source_root)
        resolved = os.path.abspath(os.path.join(root, normalized))
        relative = os.path.relpath(resolved, root)
        if relative == ".." or relative.startswith(".." + os.sep):
            raise PathTraversalError(input_path, source_root)

    def validate_and_resolve(self, input_path: str, source_root: str) -> str:
        """Validates `input_path` and returns its absolute location under `source_root`."""
        self.validate_path(input_path, source_root)
        normalized = self._normalize(self._decode_path_safely(input_path))
        return os.path.abspath(os.path.join(source_root, normalized))

    @staticmethod
    def _decode_path_safely(path: str) -> str:
        try:
            return unquote(path, errors="strict")
        except UnicodeDecodeError:
            return path

    @staticmethod
    def _normalize(path: str) -> str:
        return posixpath.normpath(path.replace("\\", "/"))
