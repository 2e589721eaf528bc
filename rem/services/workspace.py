"""缓存目录管理 - 列出和清理本地缓存条目

职责：
- 列出所有已发布的缓存条目（读取 entry.yml）
- 按仓库身份或全部清理缓存目录
- 清理被中断进程遗留的 .staging-* / *.retired-* 目录

只在用户显式执行 `rem cache ...` 时调用，解析流程从不删除缓存。
"""

from __future__ import annotations

import logging
import shutil
import time
from pathlib import Path
from typing import Any

from rem.core.exceptions import CacheIoError
from rem.services.cache import ENTRY_FILE, RETIRED_MARK, STAGING_PREFIX, digest, is_complete
from rem.utils.yaml_io import load_yaml

logger = logging.getLogger(__name__)

# 暂存 / 待删除目录超过该秒数仍未清理，视为被中断进程的遗留
STALE_AFTER = 3600


class CacheInspector:
    """缓存目录管理器"""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def list_entries(self) -> list[dict[str, Any]]:
        """列出已完整发布的缓存条目"""
        result: list[dict[str, Any]] = []
        if not self.root.is_dir():
            return result
        for repo_dir in sorted(self.root.iterdir()):
            if not repo_dir.is_dir():
                continue
            for entry in sorted(repo_dir.iterdir()):
                if not entry.is_dir() or not is_complete(entry):
                    continue
                try:
                    meta = load_yaml(entry / ENTRY_FILE)
                except (OSError, ValueError) as e:
                    logger.warning("跳过损坏的缓存元数据 %s: %s", entry, e)
                    continue
                result.append({
                    "identity": str(meta.get("identity", "")),
                    "ref": str(meta.get("ref", "")),
                    "path": str(meta.get("path", "")),
                    "strategy": str(meta.get("strategy", "")),
                    "commit": str(meta.get("commit", "")),
                    "fetched_at": str(meta.get("fetched_at", "")),
                    "dir": str(entry),
                })
        return result

    def clean(self, identity: str | None = None) -> int:
        """删除某个仓库（或全部）的缓存条目，返回删除的条目数"""
        if not self.root.is_dir():
            return 0
        if identity is None:
            repo_dirs = [d for d in self.root.iterdir() if d.is_dir()]
        else:
            target = self.root / digest(identity)
            repo_dirs = [target] if target.is_dir() else []

        count = 0
        for repo_dir in repo_dirs:
            count += sum(1 for e in repo_dir.iterdir() if e.is_dir() and is_complete(e))
            try:
                shutil.rmtree(repo_dir)
            except OSError as e:
                raise CacheIoError(f"清理缓存失败: {repo_dir} - {e}") from e
        logger.info("已清理 %d 个缓存条目 (%s)", count, identity or "全部")
        return count

    def sweep(self, max_age: float = STALE_AFTER) -> int:
        """删除被中断的进程遗留的暂存 / 待删除目录，返回删除的目录数

        只处理修改时间早于 max_age 秒之前的目录。
        """
        if not self.root.is_dir():
            return 0
        cutoff = time.time() - max_age
        count = 0
        for repo_dir in self.root.iterdir():
            if not repo_dir.is_dir():
                continue
            for d in repo_dir.iterdir():
                if not d.is_dir() or not _is_leftover(d.name):
                    continue
                try:
                    if d.stat().st_mtime > cutoff:
                        continue
                    shutil.rmtree(d)
                except FileNotFoundError:
                    continue
                except OSError as e:
                    raise CacheIoError(f"清理遗留目录失败: {d} - {e}") from e
                count += 1
        logger.info("已清理 %d 个遗留目录", count)
        return count


def _is_leftover(name: str) -> bool:
    return name.startswith(STAGING_PREFIX) or RETIRED_MARK in name
