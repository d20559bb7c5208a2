"""Tests for the filesystem-backed article store."""

import asyncio
import gc
import os

import pytest

from services.document_store import DocumentStore, normalize_name
from services.errors import DocumentNotFoundError, InvalidDocumentNameError, StoreReadError


def test_normalize_name_appends_extension_once():
    assert normalize_name("notes") == "notes.md"
    assert normalize_name("notes.md") == "notes.md"
    assert normalize_name(normalize_name("  notes ")) == "notes.md"


@pytest.mark.parametrize("name", ["", "   ", ".md", "../etc/passwd", "a/b", "a\\b", ".hidden"])
def test_normalize_name_rejects_invalid(name):
    with pytest.raises(InvalidDocumentNameError):
        normalize_name(name)


@pytest.mark.asyncio
async def test_put_then_get_by_either_name(store: DocumentStore):
    document = await store.put("notes", "# Notes\nbody")

    assert document.name == "notes.md"
    assert await store.get("notes") == "# Notes\nbody"
    assert await store.get("notes.md") == "# Notes\nbody"


@pytest.mark.asyncio
async def test_put_is_idempotent_and_overwrites(store: DocumentStore):
    await store.put("a.md", "first")
    await store.put("a.md", "second")
    await store.put("a.md", "second")

    assert await store.get("a.md") == "second"
    assert await store.list() == ["a.md"]


@pytest.mark.asyncio
async def test_delete_then_get_raises_not_found(store: DocumentStore):
    await store.put("gone.md", "x")

    assert await store.delete("gone") is True
    with pytest.raises(DocumentNotFoundError):
        await store.get("gone.md")


@pytest.mark.asyncio
async def test_delete_missing_returns_false(store: DocumentStore):
    assert await store.delete("missing.md") is False


@pytest.mark.asyncio
async def test_list_is_sorted_and_skips_other_files(store: DocumentStore, tmp_path):
    for name in ("zeta", "alpha", "mid"):
        await store.put(name, name)
    (tmp_path / "articles" / "readme.txt").write_text("not an article")
    (tmp_path / "articles" / ".draft.md").write_text("hidden")

    assert await store.list() == ["alpha.md", "mid.md", "zeta.md"]


@pytest.mark.asyncio
async def test_list_on_missing_directory_is_empty(tmp_path):
    store = DocumentStore(str(tmp_path / "does-not-exist-yet"))

    assert await store.list() == []


@pytest.mark.asyncio
async def test_stats_counts_bytes_and_lines(store: DocumentStore):
    await store.put("one", "a\nb\nc")
    await store.put("two", "hello")

    stats = await store.stats()
    payload = stats.to_dict()

    assert payload["totalArticles"] == 2
    assert payload["totalSize"] == len("a\nb\nc") + len("hello")
    lines = {article["filename"]: article["lines"] for article in payload["articles"]}
    assert lines == {"one.md": 3, "two.md": 1}


@pytest.mark.asyncio
async def test_concurrent_writes_to_same_name_leave_one_whole_version(store: DocumentStore):
    contents = [f"version {index}\n" * 200 for index in range(10)]

    await asyncio.gather(*(store.put("race", content) for content in contents))

    assert await store.get("race") in contents
    assert await store.list() == ["race.md"]


@pytest.mark.asyncio
async def test_stats_lists_newest_first(store: DocumentStore, tmp_path):
    await store.put("older", "a")
    await store.put("newer", "b")
    await store.put("middle", "c")
    articles = tmp_path / "articles"
    os.utime(articles / "older.md", (1_000_000, 1_000_000))
    os.utime(articles / "middle.md", (2_000_000, 2_000_000))
    os.utime(articles / "newer.md", (3_000_000, 3_000_000))

    stats = await store.stats()

    assert [info.name for info in stats.documents] == ["newer.md", "middle.md", "older.md"]
    assert [article["filename"] for article in stats.to_dict()["articles"]] == ["newer.md", "middle.md", "older.md"]


@pytest.mark.asyncio
async def test_stats_tolerates_non_utf8_article(store: DocumentStore, tmp_path):
    await store.put("good", "ok")
    (tmp_path / "articles" / "legacy.md").write_bytes(b"\xff\xfe bad\nsecond line")

    stats = await store.stats()

    assert stats.count == 2
    lines = {info.name: info.line_count for info in stats.documents}
    assert lines == {"good.md": 1, "legacy.md": 2}


@pytest.mark.asyncio
async def test_get_non_utf8_article_raises_store_read_error(store: DocumentStore, tmp_path):
    await store.put("good", "ok")
    (tmp_path / "articles" / "legacy.md").write_bytes(b"\xff\xfe bad")

    with pytest.raises(StoreReadError):
        await store.get("legacy")


@pytest.mark.asyncio
async def test_locks_are_released_after_use(store: DocumentStore):
    await store.put("kept", "x")
    for index in range(20):
        with pytest.raises(DocumentNotFoundError):
            await store.get(f"missing-{index}")
    await store.delete("kept")
    gc.collect()

    assert len(store._locks) == 0
