"""脚本缓存管理

职责:
- 计算缓存条目目录，判断复用还是重新拉取
- 暂存 + rename 原子发布，失败的拉取不会破坏已有条目
- 同一次运行内，每个缓存键至多拉取一次

缓存策略:
  - 以 (仓库身份, ref[, 路径]) 为缓存键，ref 按字符串精确匹配
  - ref 为 HEAD 时永远重新拉取
  - fresh=True 时强制重新拉取并替换旧条目

目录布局:
  <root>/<sha256(identity)[:16]>/<ref-slug>[-<path-hash>]/
      entry.yml   元数据（身份、ref、策略、拉取时间等）
      tree/       仓库内容（git 为浅克隆工作树，API 为单个文件）
"""

from __future__ import annotations

import hashlib
import logging
import os
import re
import shutil
import tempfile
import uuid
from datetime import datetime, timezone
from pathlib import Path

from rem.core.exceptions import CacheIoError, FetchError, NotFound
from rem.core.models import CacheKey, Content, ResolvedTarget
from rem.services.fetch.base import FetchStrategy
from rem.utils.yaml_io import save_yaml

logger = logging.getLogger(__name__)

ENTRY_FILE = "entry.yml"
TREE_DIR = "tree"
STAGING_PREFIX = ".staging-"
RETIRED_MARK = ".retired-"

_SLUG_RE = re.compile(r"[^A-Za-z0-9._-]")


def digest(value: str, length: int = 16) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()[:length]


def ref_slug(ref: str) -> str:
    """ref 转为可读且唯一的目录名"""
    slug = _SLUG_RE.sub("_", ref)[:48].lstrip(".") or "_"
    return f"{slug}-{digest(ref, 8)}"


class CacheManager:
    """脚本缓存管理器

    root 由调用方显式传入；实例生命周期即一次运行，内存中的记录不跨进程。
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)
        # 本次运行已确认可用的条目目录
        self._entries: dict[CacheKey, Path] = {}
        self._contents: dict[tuple[CacheKey, str], Content] = {}
        # 本次运行已失败的拉取，不重试
        self._failures: dict[CacheKey, FetchError] = {}

    def repo_dir(self, identity: str) -> Path:
        return self.root / digest(identity)

    def entry_dir(self, key: CacheKey) -> Path:
        name = ref_slug(key.ref)
        if key.path:
            name = f"{name}-{digest(key.path, 12)}"
        return self.repo_dir(key.identity) / name

    def resolve_or_fetch(
        self, target: ResolvedTarget, strategy: FetchStrategy, fresh: bool = False,
    ) -> Content:
        """返回目标脚本内容，必要时通过 strategy 拉取

        Raises:
            FetchError: 拉取失败，原样抛出，不重试
            NotFound: 条目中不存在该路径
            CacheIoError: 暂存 / 发布 / 读取失败
        """
        key = strategy.cache_key(target)
        memo_key = (key, target.path)
        cached = self._contents.get(memo_key)
        if cached is not None:
            return Content(data=cached.data, locator=target.locator)

        if key in self._failures:
            raise self._failures[key]

        entry = self._entries.get(key)
        if entry is None:
            entry = self.entry_dir(key)
            if fresh or key.is_volatile or not is_complete(entry):
                try:
                    entry = self._fetch_and_publish(key, target, strategy, entry)
                except FetchError as e:
                    self._failures[key] = e
                    raise
            else:
                logger.info("缓存命中: %s@%s -> %s", key.identity, key.ref, entry)
            self._entries[key] = entry

        content = Content(data=self._read(entry, target), locator=target.locator)
        self._contents[memo_key] = content
        return content

    # ---- 拉取与发布 ----

    def _fetch_and_publish(
        self, key: CacheKey, target: ResolvedTarget, strategy: FetchStrategy, entry: Path,
    ) -> Path:
        locator = str(target.locator)
        try:
            entry.parent.mkdir(parents=True, exist_ok=True)
            staging = Path(tempfile.mkdtemp(prefix=STAGING_PREFIX, dir=str(entry.parent)))
        except OSError as e:
            raise CacheIoError(f"无法创建暂存目录: {entry.parent} - {e}", locator=locator) from e

        try:
            meta = strategy.fetch(target, staging / TREE_DIR)
            manifest = {
                "identity": key.identity,
                "ref": key.ref,
                "path": key.path,
                "strategy": strategy.name,
                "locator": locator,
                "fetched_at": datetime.now(timezone.utc).isoformat(),
                **meta,
            }
            try:
                save_yaml(staging / ENTRY_FILE, manifest)
            except OSError as e:
                raise CacheIoError(f"写入缓存元数据失败: {e}", locator=locator) from e
            self._publish(staging, entry, locator)
        finally:
            if staging.exists():
                shutil.rmtree(staging, ignore_errors=True)
        logger.info("缓存已更新: %s@%s -> %s", key.identity, key.ref, entry)
        return entry

    def _publish(self, staging: Path, entry: Path, locator: str) -> None:
        """rename 发布暂存目录；旧条目先挪开，新条目就位后再删除"""
        retired: Path | None = None
        if entry.exists():
            retired = entry.with_name(f"{entry.name}{RETIRED_MARK}{uuid.uuid4().hex[:8]}")
            try:
                os.rename(entry, retired)
            except FileNotFoundError:
                # 已被并发进程挪走
                retired = None
            except OSError as e:
                raise CacheIoError(f"无法替换旧缓存条目: {entry} - {e}", locator=locator) from e

        try:
            os.rename(staging, entry)
        except OSError as e:
            if is_complete(entry):
                logger.info("并发进程已发布同一条目，丢弃本次结果: %s", entry)
            else:
                if retired is not None:
                    try:
                        os.rename(retired, entry)
                        retired = None
                    except OSError:
                        logger.warning("旧缓存条目恢复失败: %s", entry)
                raise CacheIoError(f"发布缓存条目失败: {entry} - {e}", locator=locator) from e
        finally:
            if retired is not None:
                shutil.rmtree(retired, ignore_errors=True)

    # ---- 读取 ----

    def _read(self, entry: Path, target: ResolvedTarget) -> bytes:
        locator = str(target.locator)
        tree = entry / TREE_DIR
        script = tree / target.path
        try:
            resolved = script.resolve()
            if not resolved.is_relative_to(tree.resolve()):
                raise NotFound(f"路径指向仓库之外: {target.path}", locator=locator)
            if not resolved.is_file():
                raise NotFound(
                    f"脚本不存在: {target.path} (ref={target.ref})", locator=locator,
                )
            return resolved.read_bytes()
        except OSError as e:
            raise CacheIoError(f"读取缓存脚本失败: {script} - {e}", locator=locator) from e


def is_complete(entry: Path) -> bool:
    """条目目录是否已完整发布"""
    return (entry / ENTRY_FILE).is_file() and (entry / TREE_DIR).is_dir()
