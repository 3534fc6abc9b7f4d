# tests/composer/test_content_sources.py
import asyncio
from unittest.mock import MagicMock

import pytest

from dom_cascade.errors import FileSystemError, ValidationError
from dom_cascade.model import CascadeSettings
from unify_build.controllers.composition_controller import CompositionController
from unify_build.managers.layout_cache_manager import LayoutCacheManager
from unify_build.services.content_source_service import (
    FileSystemContentSource,
    MappingContentSource,
    as_content_source,
)


def test_mapping_source_tolerates_leading_slash():
    source = MappingContentSource({"/a.html": "A", "b.html": "B"})
    assert asyncio.run(source.read("a.html")) == "A"
    assert asyncio.run(source.read("/b.html")) == "B"
    assert asyncio.run(source.read("c.html")) is None


def test_file_system_source_reads_utf8(tmp_path):
    (tmp_path / "layouts").mkdir()
    (tmp_path / "layouts" / "base.html").write_text("<p>héllo</p>", encoding="utf-8")
    source = FileSystemContentSource(tmp_path)

    assert asyncio.run(source.read("/layouts/base.html")) == "<p>héllo</p>"
    assert asyncio.run(source.read("layouts/missing.html")) is None
    assert asyncio.run(source.read("layouts")) is None


def test_file_system_source_wraps_decode_errors(tmp_path):
    (tmp_path / "bad.html").write_bytes(b"\xff\xfe\xfa")
    with pytest.raises(FileSystemError):
        asyncio.run(FileSystemContentSource(tmp_path).read("bad.html"))


def test_as_content_source_adapts_inputs(tmp_path):
    assert isinstance(as_content_source(None), MappingContentSource)
    assert isinstance(as_content_source({"a": "b"}), MappingContentSource)
    assert isinstance(as_content_source(str(tmp_path)), FileSystemContentSource)
    assert isinstance(as_content_source(tmp_path), FileSystemContentSource)

    source = MappingContentSource({})
    assert as_content_source(source) is source

    with pytest.raises(ValidationError):
        as_content_source(42)


def test_sources_compare_by_what_they_read(tmp_path):
    files = {"a.html": "A"}
    assert as_content_source(files) == as_content_source(files)
    assert hash(as_content_source(files)) == hash(as_content_source(files))
    assert as_content_source(files) != as_content_source(dict(files))

    assert FileSystemContentSource(tmp_path) == FileSystemContentSource(str(tmp_path))
    assert hash(FileSystemContentSource(tmp_path)) == hash(FileSystemContentSource(str(tmp_path)))
    assert FileSystemContentSource(tmp_path) != FileSystemContentSource(tmp_path / "other")
    assert FileSystemContentSource(tmp_path) != MappingContentSource({})


def test_controller_reads_from_directory(tmp_path):
    (tmp_path / "_layout.html").write_text(
        '<html><body><div class="unify-x">d</div></body></html>', encoding="utf-8"
    )
    controller = CompositionController(settings=CascadeSettings())
    page = '<html data-unify="/_layout.html"><body><div class="unify-x">P</div></body></html>'
    result = asyncio.run(controller.process_file(
        str(tmp_path / "index.html"), page, file_system=str(tmp_path), source_root=str(tmp_path)
    ))
    assert result.success
    assert '<div class="unify-x">P</div>' in result.html


def test_file_system_errors_are_recoverable():
    source = MagicMock()

    async def failing_read(path):
        raise FileSystemError("read", path, "permission denied")

    source.read = failing_read
    controller = CompositionController(content_source=source, settings=CascadeSettings())
    page = '<html data-unify="/_layout.html"><body><p>Hi</p></body></html>'
    result = asyncio.run(controller.process_file("index.html", page))

    assert result.success
    assert result.recoverable_errors == ["File read failed for _layout.html: permission denied"]


# --- LayoutCacheManager ---

def test_concurrent_loads_share_one_task():
    cache = LayoutCacheManager()
    calls = []

    async def loader():
        calls.append(1)
        await asyncio.sleep(0)
        return "<html></html>"

    async def run():
        key = cache.make_key("scope", "a.html")
        return await asyncio.gather(*(cache.get_or_load(key, loader) for _ in range(3)))

    assert asyncio.run(run()) == ["<html></html>"] * 3
    assert len(calls) == 1
    assert cache.stats() == {"cache_hits": 2, "cache_misses": 1, "cached_entries": 1, "pending_loads": 0}


def test_failed_and_empty_loads_are_not_cached():
    cache = LayoutCacheManager()
    key = cache.make_key("scope", "a.html")

    async def missing():
        return None

    async def broken():
        raise FileSystemError("read", "a.html", "boom")

    assert asyncio.run(cache.get_or_load(key, missing)) is None
    assert not cache.contains(key)

    with pytest.raises(FileSystemError):
        asyncio.run(cache.get_or_load(key, broken))
    assert not cache.contains(key)
    assert cache.stats()["pending_loads"] == 0


def test_keys_are_scoped_per_source():
    cache = LayoutCacheManager()

    async def load_a():
        return "A"

    async def load_b():
        return "B"

    async def run():
        first = await cache.get_or_load(cache.make_key("src-1", "x.html"), load_a)
        second = await cache.get_or_load(cache.make_key("src-2", "x.html"), load_b)
        return first, second

    assert asyncio.run(run()) == ("A", "B")


def test_repeated_builds_over_one_directory_share_the_cache(tmp_path):
    (tmp_path / "_layout.html").write_text(
        '<html><body><div class="unify-x">d</div></body></html>', encoding="utf-8"
    )
    controller = CompositionController(settings=CascadeSettings())
    page = '<html data-unify="/_layout.html"><body><div class="unify-x">P</div></body></html>'
    for name in ("a.html", "b.html", "c.html"):
        result = asyncio.run(controller.process_file(
            str(tmp_path / name), page, file_system=str(tmp_path), source_root=str(tmp_path)
        ))
        assert result.success

    stats = controller.get_cache_stats()
    assert stats["cache_misses"] == 1
    assert stats["cache_hits"] == 2
