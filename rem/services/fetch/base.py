"""拉取策略协议

每种策略负责两件事:
- cache_key: 决定缓存粒度（git 按整棵树，API 按单文件）
- fetch: 把目标内容落到缓存管理器给出的暂存目录 tree_dir 下，保持仓库内相对路径

策略不关心缓存复用与发布，这些由 CacheManager 负责。
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from rem.core.models import CacheKey, RepoConfig, ResolvedTarget


class FetchStrategy(Protocol):
    """拉取策略协议"""

    name: str

    def cache_key(self, target: ResolvedTarget) -> CacheKey:
        ...

    def fetch(self, target: ResolvedTarget, tree_dir: Path) -> dict[str, str]:
        """拉取到 tree_dir（调用前不存在），返回写入 entry.yml 的附加元数据

        Raises:
            FetchError: AuthRequired / RateLimited / NotFound / NetworkError / GitError
        """
        ...

    def check(self, repo: RepoConfig) -> dict[str, str]:
        """检查代码仓是否可访问，返回可展示的摘要信息"""
        ...
