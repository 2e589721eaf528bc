"""脚本解析流水线

parse → (别名) 注册表查询 → ResolvedTarget → 选择拉取策略 → CacheManager → Content

两种输出:
  - run:    脚本原文交给执行器，附带位置参数，返回脚本退出码
  - import: 先解析全部 locator，任一失败则整体失败、不输出任何内容；
            成功后逐个加上标记注释拼接，供调用方 source
"""

from __future__ import annotations

import logging
import os
from typing import Protocol

from rem.core.exceptions import RemError, UnknownAlias
from rem.core.locator import parse_locator, with_default_extension
from rem.core.models import Alias, Content, Host, Locator, RepoConfig, ResolvedTarget
from rem.services.cache import CacheManager
from rem.services.fetch.base import FetchStrategy
from rem.utils.shell import ScriptExecutor, get_executor

logger = logging.getLogger(__name__)

IMPORT_BEGIN = "# >>> rem import: {locator}"
IMPORT_END = "# <<< rem import: {locator}"


class RepoLookup(Protocol):
    """解析层对注册表的唯一依赖"""

    def lookup(self, alias: str) -> RepoConfig | None:
        ...


class ScriptResolver:
    """远程脚本解析器"""

    def __init__(
        self,
        registry: RepoLookup,
        cache: CacheManager,
        *,
        api: FetchStrategy,
        git: FetchStrategy,
        executor: ScriptExecutor | None = None,
        run_extension: str = "",
        import_extension: str = "",
    ) -> None:
        self.registry = registry
        self.cache = cache
        self.api = api
        self.git = git
        self.executor = executor
        self.run_extension = run_extension
        self.import_extension = import_extension

    # ---- 解析 ----

    def resolve(self, raw: str, fresh: bool = False, *, extension: str = "") -> Content:
        """解析单个 locator 并返回脚本内容

        Raises:
            RemError: 所有失败都带上出错的 locator
        """
        try:
            locator = with_default_extension(parse_locator(raw), extension)
            target = self.target_for(locator)
            strategy = self.strategy_for(target)
            return self.cache.resolve_or_fetch(target, strategy, fresh=fresh)
        except RemError as e:
            if not e.locator:
                e.locator = raw
            raise

    def target_for(self, locator: Locator) -> ResolvedTarget:
        if isinstance(locator.source, Alias):
            repo = self.registry.lookup(locator.source.name)
            if repo is None:
                raise UnknownAlias(locator.source.name, locator=str(locator))
            return ResolvedTarget(locator=locator, repo=repo)
        return ResolvedTarget(locator=locator, url=locator.source.url)

    def strategy_for(self, target: ResolvedTarget) -> FetchStrategy:
        if target.repo is not None and target.repo.host in (Host.GITHUB, Host.GITLAB):
            return self.api
        return self.git

    # ---- 输出 ----

    def import_scripts(self, raws: list[str], fresh: bool = False) -> bytes:
        """解析全部 locator 后拼接为可 source 的内容（脚本字节原样保留）"""
        contents = [self.resolve(raw, fresh, extension=self.import_extension) for raw in raws]
        return b"".join(render_import(c) for c in contents)

    def run_script(self, raw: str, args: list[str] | None = None, fresh: bool = False) -> int:
        """解析脚本并交给执行器，返回脚本退出码"""
        content = self.resolve(raw, fresh, extension=self.run_extension)
        executor = self.executor or get_executor()
        logger.info("执行脚本: %s %s", content.locator, args or [])
        # surrogateescape 保证任意字节原样传给 shell
        return executor.execute(os.fsdecode(content.data), list(args or []))

    def check(self, alias: str) -> dict[str, str]:
        """检查已注册代码仓是否可访问（仅在用户显式要求时调用）"""
        repo = self.registry.lookup(alias)
        if repo is None:
            raise UnknownAlias(alias)
        target = ResolvedTarget(locator=Locator(source=Alias(alias), path="-"), repo=repo)
        try:
            return self.strategy_for(target).check(repo)
        except RemError as e:
            if not e.locator:
                e.locator = alias
            raise


def render_import(content: Content) -> bytes:
    """为单个脚本加上起止标记注释，保证以换行结尾；脚本字节不做任何转换"""
    data = content.data
    if data and not data.endswith(b"\n"):
        data += b"\n"
    label = str(content.locator)
    begin = IMPORT_BEGIN.format(locator=label).encode("utf-8", "surrogateescape")
    end = IMPORT_END.format(locator=label).encode("utf-8", "surrogateescape")
    return begin + b"\n" + data + end + b"\n"
