"""服务容器 — 统一依赖注入

CLI 通过 get_container() 获取服务，同一容器内的实例共享状态
（尤其是 CacheManager 的运行内记录，保证同一次运行每个缓存键至多拉取一次）。

依赖关系图（→ 表示依赖）:
  resolver → registry, cache, api, git
  inspector → （只依赖 cache_dir）

用法:
    container = ServiceContainer(config=Config.from_file("~/.remconf.yml"))
    content = container.resolver.resolve("ci@v1.2.2:upload-results.sh")
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from rem.core.config import Config
    from rem.services.cache import CacheManager
    from rem.services.fetch.api import ApiFetcher
    from rem.services.fetch.git import GitFetcher
    from rem.services.repo.registry import RepoRegistry
    from rem.services.resolver import ScriptResolver
    from rem.services.workspace import CacheInspector

logger = logging.getLogger(__name__)


class ServiceContainer:
    """懒加载服务容器"""

    def __init__(self, config: Config | None = None) -> None:
        self._instances: dict[str, object] = {}
        if config is None:
            from rem.core.config import get_config
            config = get_config()
        self._config = config

    @property
    def config(self) -> Config:
        return self._config

    @property
    def registry(self) -> RepoRegistry:
        if "registry" not in self._instances:
            from rem.services.repo.registry import RepoRegistry
            self._instances["registry"] = RepoRegistry(self._config.repos_file)
        return self._instances["registry"]  # type: ignore[return-value]

    @property
    def cache(self) -> CacheManager:
        if "cache" not in self._instances:
            from rem.services.cache import CacheManager
            self._instances["cache"] = CacheManager(self._config.cache_dir)
        return self._instances["cache"]  # type: ignore[return-value]

    @property
    def api(self) -> ApiFetcher:
        if "api" not in self._instances:
            from rem.services.fetch.api import ApiFetcher
            self._instances["api"] = ApiFetcher(
                github_api_url=self._config.github_api_url,
                gitlab_url=self._config.gitlab_url,
                timeout=self._config.timeout,
            )
        return self._instances["api"]  # type: ignore[return-value]

    @property
    def git(self) -> GitFetcher:
        if "git" not in self._instances:
            from rem.services.fetch.git import GitFetcher
            self._instances["git"] = GitFetcher(timeout=self._config.timeout)
        return self._instances["git"]  # type: ignore[return-value]

    @property
    def resolver(self) -> ScriptResolver:
        if "resolver" not in self._instances:
            from rem.services.resolver import ScriptResolver
            from rem.utils.shell import ShellExecutor
            self._instances["resolver"] = ScriptResolver(
                self.registry,
                self.cache,
                api=self.api,
                git=self.git,
                executor=ShellExecutor(self._config.shell),
                run_extension=self._config.run_extension,
                import_extension=self._config.import_extension,
            )
        return self._instances["resolver"]  # type: ignore[return-value]

    @property
    def inspector(self) -> CacheInspector:
        if "inspector" not in self._instances:
            from rem.services.workspace import CacheInspector
            self._instances["inspector"] = CacheInspector(self._config.cache_dir)
        return self._instances["inspector"]  # type: ignore[return-value]


# ---- 全局单例 ----

_global: ServiceContainer | None = None


def get_container() -> ServiceContainer:
    """获取全局 ServiceContainer（CLI 单线程，无需加锁）"""
    global _global  # noqa: PLW0603
    if _global is None:
        _global = ServiceContainer()
    return _global


def reset_container(config: Config | None = None) -> ServiceContainer:
    """按给定配置重建全局容器（CLI 入口与测试使用）"""
    global _global  # noqa: PLW0603
    _global = ServiceContainer(config)
    return _global
