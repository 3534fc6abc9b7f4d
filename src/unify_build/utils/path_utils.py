# src/unify_build/utils/path_utils.py
import logging
import os
import posixpath
from pathlib import Path

logger = logging.getLogger(__name__)


class PathUtils:
    """
    A central utility for reliably retrieving package paths and for turning
    file references into normalized, source-root relative POSIX paths.
    """

    # --- Package specific paths

    @staticmethod
    def get_build_package_root() -> Path:
        """Returns the directory of the `unify_build` package (holds settings.json)."""
        return Path(__file__).resolve().parents[1]

    @staticmethod
    def get_settings_file() -> Path:
        return PathUtils.get_build_package_root() / "settings.json"

    # --- Logical paths ---

    @staticmethod
    def to_posix(path: str) -> str:
        return path.replace("\\", "/") if os.sep == "\\" else path

    @staticmethod
    def normalize_relative(path: str) -> str:
        """
        Normalizes a source-root relative path: collapses `.`/`..` segments
        and drops any leading slash. `..` segments that escape the root are
        kept so validators can reject them.
        """
        cleaned = PathUtils.to_posix(path or "").lstrip("/")
        if not cleaned:
            return ""
        normalized = posixpath.normpath(cleaned)
        return "" if normalized == "." else normalized

    @staticmethod
    def page_key(file_path: str, source_root: str = ".") -> str:
        """
        Returns the logical (source-root relative) path of a page.

        Absolute paths inside `source_root` are made relative to it; any other
        absolute path is treated as rooted at the source root.
        """
        if os.path.isabs(file_path):
            root = os.path.abspath(source_root or ".")
            absolute = os.path.abspath(file_path)
            if absolute == root or absolute.startswith(root.rstrip(os.sep) + os.sep):
                return PathUtils.normalize_relative(os.path.relpath(absolute, root))
        return PathUtils.normalize_relative(file_path)

    @staticmethod
    def join_reference(reference: str, referrer: str) -> str:
        """
        Joins a `data-unify` reference onto the path of the referring document.
        A leading slash means "relative to the source root".
        """
        reference = PathUtils.to_posix(reference.strip())
        if reference.startswith("/"):
            return reference.lstrip("/")
        base = posixpath.dirname(referrer)
        return posixpath.join(base, reference) if base else reference
