# src/unify_build/services/content_source_service.py
import asyncio
import logging
import os
from pathlib import Path
from typing import Any, Mapping, Optional, Union

from dom_cascade.errors import FileSystemError, ValidationError

logger = logging.getLogger(__name__)


class ContentSource:
    """
    Read-only access to layout and component text by source-root relative
    path. `read` returns None for a missing resource and raises
    FileSystemError for any other failure.
    """

    async def read(self, path: str) -> Optional[str]:
        raise NotImplementedError


class MappingContentSource(ContentSource):
    """Serves content from a literal `{path: html}` mapping."""

    def __init__(self, files: Mapping[str, str]):
        self.files = files

    async def read(self, path: str) -> Optional[str]:
        stripped = path.lstrip("/")
        for candidate in (path, stripped, f"/{stripped}"):
            if candidate in self.files:
                return self.files[candidate]
        return None

    # Identity of the wrapped mapping is the cache scope.
    def __eq__(self, other: object) -> bool:
        return isinstance(other, MappingContentSource) and other.files is self.files

    def __hash__(self) -> int:
        return hash(id(self.files))

    def __repr__(self) -> str:
        return f"<MappingContentSource files={len(self.files)}>"


class FileSystemContentSource(ContentSource):
    """Reads UTF-8 files below `root` without blocking the event loop."""

    def __init__(self, root: Union[str, Path] = "."):
        self.root = Path(root)

    def _read_file(self, path: str) -> Optional[str]:
        target = self.root / path.lstrip("/")
        try:
            return target.read_text(encoding="utf-8")
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError):
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise FileSystemError("read", str(target), str(e)) from e

    async def read(self, path: str) -> Optional[str]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._read_file, path)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, FileSystemContentSource) and self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def _key(self) -> str:
        return os.path.abspath(self.root)

    def __repr__(self) -> str:
        return f"<FileSystemContentSource root={os.fspath(self.root)!r}>"


def as_content_source(obj: Any) -> ContentSource:
    """
    Adapts whatever a caller passes as `file_system`: a ContentSource (or
    any object with an async `read`), a mapping, a directory path, or None.
    """
    if obj is None:
        return MappingContentSource({})
    if isinstance(obj, ContentSource):
        return obj
    if isinstance(obj, Mapping):
        return MappingContentSource(obj)
    if isinstance(obj, (str, Path)):
        return FileSystemContentSource(obj)
    if callable(getattr(obj, "read", None)):
        return obj
    raise ValidationError(f"Unsupported content source: {type(obj).__name__}", argument="file_system")
