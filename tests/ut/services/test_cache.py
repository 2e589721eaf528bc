"""CacheManager 单元测试"""

from __future__ import annotations

from pathlib import Path

import pytest

from rem.core.exceptions import NetworkError, NotFound
from rem.core.locator import parse_locator
from rem.core.models import CacheKey, ResolvedTarget
from rem.services.cache import (
    ENTRY_FILE,
    TREE_DIR,
    CacheManager,
    is_complete,
    ref_slug,
)
from rem.utils.yaml_io import load_yaml

URL = "https://example.com/team/scripts.git"


class FakeStrategy:
    """按整棵树缓存的假策略，记录调用次数"""

    name = "fake"

    def __init__(self, files: dict[str, str] | None = None, fail: Exception | None = None) -> None:
        self.files = files if files is not None else {"lib/log.sh": "echo v1\n"}
        self.fail = fail
        self.calls = 0

    def cache_key(self, target: ResolvedTarget) -> CacheKey:
        return CacheKey(identity=target.identity, ref=target.ref)

    def fetch(self, target: ResolvedTarget, tree_dir: Path) -> dict[str, str]:
        self.calls += 1
        if self.fail is not None:
            raise self.fail
        for rel, text in self.files.items():
            dest = tree_dir / rel
            dest.parent.mkdir(parents=True, exist_ok=True)
            dest.write_text(text, encoding="utf-8")
        return {"commit": f"c{self.calls}"}

    def check(self, repo):
        return {}


def target(raw: str) -> ResolvedTarget:
    loc = parse_locator(raw)
    return ResolvedTarget(locator=loc, url=str(loc.source))


@pytest.fixture()
def cache(tmp_path: Path) -> CacheManager:
    return CacheManager(tmp_path / "cache")


class TestResolveOrFetch:
    def test_first_use_fetches_and_publishes(self, cache: CacheManager) -> None:
        s = FakeStrategy()
        t = target(f"{URL}@v1:lib/log.sh")
        content = cache.resolve_or_fetch(t, s)
        assert content.text == "echo v1\n"
        assert s.calls == 1

        entry = cache.entry_dir(s.cache_key(t))
        assert is_complete(entry)
        meta = load_yaml(entry / ENTRY_FILE)
        assert meta["identity"] == URL
        assert meta["ref"] == "v1"
        assert meta["strategy"] == "fake"
        assert meta["commit"] == "c1"
        assert meta["fetched_at"]

    def test_cache_hit_across_runs(self, tmp_path: Path) -> None:
        s = FakeStrategy()
        CacheManager(tmp_path / "cache").resolve_or_fetch(target(f"{URL}@v1:lib/log.sh"), s)
        second = CacheManager(tmp_path / "cache")
        content = second.resolve_or_fetch(target(f"{URL}@v1:lib/log.sh"), s)
        assert content.text == "echo v1\n"
        assert s.calls == 1

    def test_head_always_refetched(self, tmp_path: Path) -> None:
        s = FakeStrategy()
        CacheManager(tmp_path / "cache").resolve_or_fetch(target(f"{URL}:lib/log.sh"), s)
        CacheManager(tmp_path / "cache").resolve_or_fetch(target(f"{URL}:lib/log.sh"), s)
        assert s.calls == 2

    def test_at_most_one_fetch_per_run(self, cache: CacheManager) -> None:
        s = FakeStrategy({"a.sh": "a\n", "b.sh": "b\n"})
        cache.resolve_or_fetch(target(f"{URL}:a.sh"), s)
        cache.resolve_or_fetch(target(f"{URL}:b.sh"), s)
        cache.resolve_or_fetch(target(f"{URL}:a.sh"), s, fresh=True)
        assert s.calls == 1

    def test_fresh_replaces_entry(self, tmp_path: Path) -> None:
        t = target(f"{URL}@v1:lib/log.sh")
        CacheManager(tmp_path / "cache").resolve_or_fetch(t, FakeStrategy())
        s2 = FakeStrategy({"lib/log.sh": "echo v2\n"})
        content = CacheManager(tmp_path / "cache").resolve_or_fetch(t, s2, fresh=True)
        assert content.text == "echo v2\n"
        assert s2.calls == 1
        repo_dir = CacheManager(tmp_path / "cache").repo_dir(URL)
        assert [p.name for p in repo_dir.iterdir()] == [ref_slug("v1")]

    def test_failed_fetch_keeps_old_entry(self, tmp_path: Path) -> None:
        t = target(f"{URL}@v1:lib/log.sh")
        CacheManager(tmp_path / "cache").resolve_or_fetch(t, FakeStrategy())
        broken = FakeStrategy(fail=NetworkError("down"))
        with pytest.raises(NetworkError):
            CacheManager(tmp_path / "cache").resolve_or_fetch(t, broken, fresh=True)
        content = CacheManager(tmp_path / "cache").resolve_or_fetch(t, FakeStrategy())
        assert content.text == "echo v1\n"

    def test_failure_leaves_no_staging(self, cache: CacheManager) -> None:
        t = target(f"{URL}@v1:lib/log.sh")
        with pytest.raises(NetworkError):
            cache.resolve_or_fetch(t, FakeStrategy(fail=NetworkError("down")))
        assert list(cache.repo_dir(URL).iterdir()) == []

    def test_failure_memoized_within_run(self, cache: CacheManager) -> None:
        s = FakeStrategy(fail=NetworkError("down"))
        for _ in range(2):
            with pytest.raises(NetworkError):
                cache.resolve_or_fetch(target(f"{URL}@v1:a.sh"), s)
        assert s.calls == 1

    def test_missing_path_is_not_found(self, cache: CacheManager) -> None:
        with pytest.raises(NotFound, match="脚本不存在"):
            cache.resolve_or_fetch(target(f"{URL}@v1:missing.sh"), FakeStrategy())

    def test_symlink_outside_tree_rejected(self, cache: CacheManager, tmp_path: Path) -> None:
        secret = tmp_path / "secret.txt"
        secret.write_text("x", encoding="utf-8")

        class LinkStrategy(FakeStrategy):
            def fetch(self, target, tree_dir):
                tree_dir.mkdir(parents=True)
                (tree_dir / "evil.sh").symlink_to(secret)
                return {}

        with pytest.raises(NotFound, match="仓库之外"):
            cache.resolve_or_fetch(target(f"{URL}@v1:evil.sh"), LinkStrategy())

    def test_bytes_preserved(self, cache: CacheManager) -> None:
        class BinStrategy(FakeStrategy):
            def fetch(self, target, tree_dir):
                tree_dir.mkdir(parents=True)
                (tree_dir / "x.sh").write_bytes(b"echo \xff\n")
                return {}

        content = cache.resolve_or_fetch(target(f"{URL}@v1:x.sh"), BinStrategy())
        assert content.data == b"echo \xff\n"


class TestLayout:
    def test_entry_dir_with_path(self, cache: CacheManager) -> None:
        a = cache.entry_dir(CacheKey(URL, "v1", "a.sh"))
        b = cache.entry_dir(CacheKey(URL, "v1", "b.sh"))
        assert a != b
        assert a.parent == b.parent == cache.repo_dir(URL)

    def test_ref_slug_distinguishes_similar_refs(self) -> None:
        assert ref_slug("feature/x") != ref_slug("feature_x")
        assert not ref_slug("..x").startswith(".")

    def test_tree_dir_name(self, cache: CacheManager) -> None:
        t = target(f"{URL}@v1:lib/log.sh")
        cache.resolve_or_fetch(t, FakeStrategy())
        entry = cache.entry_dir(CacheKey(URL, "v1"))
        assert (entry / TREE_DIR / "lib" / "log.sh").is_file()
