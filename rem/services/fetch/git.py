"""Git 拉取策略 - 调用系统 git 做浅克隆

  HEAD:  git clone --depth 1 URL
  其他:  git clone --depth 1 --branch REF URL
         --branch 无法识别时（如 commit SHA）回退为
         git init + git fetch --depth 1 origin REF + git checkout FETCH_HEAD
任何非零退出都转换为 GitError，携带 stderr。
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from pathlib import Path
from typing import Any

from rem.core.exceptions import GitError
from rem.core.models import HEAD, CacheKey, RepoConfig, ResolvedTarget

logger = logging.getLogger(__name__)


class GitFetcher:
    """浅克隆拉取"""

    name = "git"

    def __init__(self, *, timeout: float | None = None, git: str = "git") -> None:
        self.timeout = timeout
        self.git = git

    def cache_key(self, target: ResolvedTarget) -> CacheKey:
        return CacheKey(identity=target.identity, ref=target.ref)

    def fetch(self, target: ResolvedTarget, tree_dir: Path) -> dict[str, str]:
        url = target.git_url
        ref = target.ref
        locator = str(target.locator)
        logger.info("git 浅克隆: %s@%s", url, ref)

        if ref == HEAD:
            self._run(["clone", "--quiet", "--depth", "1", "--", url, str(tree_dir)], locator=locator)
        else:
            try:
                self._run(
                    ["clone", "--quiet", "--depth", "1", "--branch", ref, "--", url, str(tree_dir)],
                    locator=locator,
                )
            except GitError as first:
                logger.debug("--branch 无法识别 %s，回退为 fetch 指定 ref", ref)
                shutil.rmtree(tree_dir, ignore_errors=True)
                try:
                    self._fetch_ref(url, ref, tree_dir, locator)
                except GitError as e:
                    # 两次都失败时一并保留 clone 的 stderr
                    raise GitError(
                        f"{e.message}; 此前 {first.message}", locator=locator,
                    ) from first

        commit = self._run(["rev-parse", "HEAD"], cwd=tree_dir, locator=locator)
        return {"commit": commit}

    def check(self, repo: RepoConfig) -> dict[str, str]:
        """git ls-remote 确认仓库可达"""
        output = self._run(["ls-remote", "--", repo.url, HEAD], locator=repo.alias or repo.url)
        lines = [line for line in output.splitlines() if line.strip()]
        return {
            "repo": repo.url,
            "head": lines[0].split()[0] if lines else "",
        }

    def _fetch_ref(self, url: str, ref: str, tree_dir: Path, locator: str) -> None:
        tree_dir.mkdir(parents=True, exist_ok=True)
        self._run(["init", "--quiet"], cwd=tree_dir, locator=locator)
        self._run(["remote", "add", "origin", url], cwd=tree_dir, locator=locator)
        self._run(["fetch", "--quiet", "--depth", "1", "origin", ref], cwd=tree_dir, locator=locator)
        self._run(["checkout", "--quiet", "FETCH_HEAD"], cwd=tree_dir, locator=locator)

    def _run(self, argv: list[str], *, cwd: Path | None = None, locator: str = "") -> str:
        command = [self.git, *argv]
        kwargs: dict[str, Any] = {} if self.timeout is None else {"timeout": self.timeout}
        try:
            r = subprocess.run(
                command,
                cwd=str(cwd) if cwd is not None else None,
                capture_output=True, text=True, check=False,
                env={**os.environ, "GIT_TERMINAL_PROMPT": "0"},
                **kwargs,
            )
        except subprocess.TimeoutExpired as e:
            raise GitError(f"git {argv[0]} 超时 ({self.timeout}s)", locator=locator) from e
        except OSError as e:
            raise GitError(f"无法执行 {self.git}: {e}", locator=locator) from e
        if r.returncode != 0:
            raise GitError(
                f"git {argv[0]} 失败 (rc={r.returncode})",
                stderr=r.stderr,
                locator=locator,
            )
        return r.stdout.strip()
