"""Tests for the content-addressed cache store."""

import json
import time

import pytest
import pytest_asyncio

from monodoc.cache import CacheStore, canonical_code, generation_cache_key
from monodoc.errors import CacheError


@pytest_asyncio.fixture
async def store(tmp_path):
    cache = CacheStore(tmp_path / "cache", version="0.1.0:1")
    await cache.initialize()
    return cache


class TestCacheStore:
    @pytest.mark.asyncio
    async def test_round_trip(self, store):
        await store.set("doc:abc", "/** cached */")
        assert await store.get("doc:abc") == "/** cached */"
        assert await store.has("doc:abc")

    @pytest.mark.asyncio
    async def test_structured_values(self, store):
        await store.set("k", {"doc": "x", "tags": ["a", "b"]})
        assert await store.get("k") == {"doc": "x", "tags": ["a", "b"]}

    @pytest.mark.asyncio
    async def test_missing_key(self, store):
        assert await store.get("never-set") is None
        assert not await store.has("never-set")

    @pytest.mark.asyncio
    async def test_version_mismatch_is_miss_and_deletes(self, store, tmp_path):
        await store.set("k", "v")
        newer = CacheStore(store.cache_dir, version="0.2.0:1")

        assert await newer.get("k") is None
        assert list(store.cache_dir.glob("*.json")) == []

    @pytest.mark.asyncio
    async def test_corrupt_entry_is_miss_and_deleted(self, store):
        await store.set("k", "v")
        path = next(store.cache_dir.glob("*.json"))
        path.write_text("{not json")

        assert await store.get("k") is None
        assert not path.exists()

    @pytest.mark.asyncio
    async def test_entry_missing_fields_is_miss(self, store):
        await store.set("k", "v")
        path = next(store.cache_dir.glob("*.json"))
        path.write_text(json.dumps({"data": "v"}))

        assert await store.get("k") is None

    @pytest.mark.asyncio
    async def test_expired_entry_is_miss(self, store):
        await store.set("k", "v")
        path = next(store.cache_dir.glob("*.json"))
        entry = json.loads(path.read_text())
        entry["timestamp"] = time.time() - 25 * 3600
        path.write_text(json.dumps(entry))

        assert await store.get("k") is None

    @pytest.mark.asyncio
    async def test_content_hash_mismatch(self, store):
        await store.set("k", "v", content="source one")
        assert await store.get("k", content="source one") == "v"
        assert await store.get("k", content="source two") is None

    @pytest.mark.asyncio
    async def test_delete_and_clear(self, store):
        for key in ("a", "b", "c"):
            await store.set(key, key)
        await store.delete("a")
        await store.delete("a")

        assert await store.get("a") is None
        assert await store.clear() == 2
        assert await store.get("b") is None

    @pytest.mark.asyncio
    async def test_clear_missing_directory(self, tmp_path):
        assert await CacheStore(tmp_path / "absent", version="1").clear() == 0

    @pytest.mark.asyncio
    async def test_clear_rejects_file_in_place_of_directory(self, tmp_path):
        blocker = tmp_path / "cache"
        blocker.write_text("not a cache")

        with pytest.raises(CacheError):
            await CacheStore(blocker, version="1").clear()
        assert blocker.read_text() == "not a cache"

    @pytest.mark.asyncio
    async def test_write_failure_is_swallowed(self, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("file in the way")
        cache = CacheStore(blocker, version="1")

        await cache.set("k", "v")

        assert await cache.get("k") is None


class TestCacheKeys:
    def test_key_depends_on_code_model_and_prompt(self):
        base = generation_cache_key("function a() {}", "sonnet", "1:1")
        assert base.startswith("doc:")
        assert generation_cache_key("function a() {}", "sonnet", "1:1") == base
        assert generation_cache_key("function b() {}", "sonnet", "1:1") != base
        assert generation_cache_key("function a() {}", "haiku", "1:1") != base
        assert generation_cache_key("function a() {}", "sonnet", "2:1") != base

    def test_whitespace_and_doc_comments_do_not_change_key(self):
        original = "class A {\n  run() {}\n}"
        documented = "class A {\n  /**\n   * Runs.\n   */\n  run() {}   \n\n}"
        assert canonical_code(documented) == canonical_code(original)
        assert generation_cache_key(documented, "m", "1") == generation_cache_key(original, "m", "1")
