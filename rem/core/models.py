"""核心数据模型

locator、代码仓配置、解析目标、缓存键与脚本内容集中定义，
解析器 / 注册表 / 拉取策略 / 缓存统一从此处导入。
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union

# ref 哨兵值: 远端默认分支，永远视为易变
HEAD = "HEAD"


# =========================================================================
# Locator
# =========================================================================


@dataclass(frozen=True)
class Alias:
    """注册表中的代码仓别名"""

    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class RawGitUrl:
    """直接给出的 git 地址（不经过注册表）"""

    url: str

    def __str__(self) -> str:
        return self.url


Source = Union[Alias, RawGitUrl]


@dataclass(frozen=True)
class Locator:
    """远程脚本引用: source[@ref]:path"""

    source: Source
    path: str
    ref: str = HEAD

    @property
    def is_volatile(self) -> bool:
        return self.ref == HEAD

    def with_path(self, path: str) -> Locator:
        return Locator(source=self.source, path=path, ref=self.ref)

    def __str__(self) -> str:
        ref = "" if self.ref == HEAD else f"@{self.ref}"
        return f"{self.source}{ref}:{self.path}"


# =========================================================================
# 代码仓领域模型
# =========================================================================


class Host(str, Enum):
    """代码仓托管类型"""

    GITHUB = "github"
    GITLAB = "gitlab"
    GIT = "git"


@dataclass(frozen=True)
class EnvVarAuth:
    """凭据来自环境变量（只保存变量名，从不保存密钥本身）"""

    var: str
    username: str = ""


@dataclass(frozen=True)
class RepoConfig:
    """一个已注册代码仓"""

    alias: str
    host: Host
    owner: str = ""
    name: str = ""
    url: str = ""
    auth: EnvVarAuth | None = None
    api_url: str = ""

    @property
    def project(self) -> str:
        return f"{self.owner}/{self.name}"

    @property
    def identity(self) -> str:
        """缓存用仓库身份（与别名无关，改名不影响缓存）"""
        if self.host == Host.GIT:
            return self.url
        base = f"{self.host.value}:{self.project}"
        return f"{base}@{self.api_url}" if self.api_url else base

    def readable(self) -> str:
        if self.host == Host.GIT:
            return self.url
        return f"{self.host.value}:{self.project}"


@dataclass(frozen=True)
class ResolvedTarget:
    """locator 绑定到具体仓库后的解析目标"""

    locator: Locator
    repo: RepoConfig | None = None
    url: str = ""

    @property
    def ref(self) -> str:
        return self.locator.ref

    @property
    def path(self) -> str:
        return self.locator.path

    @property
    def identity(self) -> str:
        return self.repo.identity if self.repo is not None else self.url

    @property
    def git_url(self) -> str:
        if self.repo is not None:
            return self.repo.url
        return self.url


# =========================================================================
# 缓存 / 内容
# =========================================================================


@dataclass(frozen=True)
class CacheKey:
    """缓存键: (仓库身份, ref, 路径)

    git 策略按整棵树缓存，path 为空；API 策略按单文件缓存，path 为脚本路径。
    """

    identity: str
    ref: str
    path: str = ""

    @property
    def is_volatile(self) -> bool:
        return self.ref == HEAD


@dataclass(frozen=True)
class Content:
    """单个脚本的解析结果"""

    data: bytes
    locator: Locator

    @property
    def text(self) -> str:
        return self.data.decode("utf-8", errors="replace")
