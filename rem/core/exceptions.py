"""统一异常体系

所有业务异常继承 RemError，替代散落的 ValueError / RuntimeError。
每个异常可渲染为单行可读信息（含出错的 locator 与根因），CLI 层据此输出友好提示。

层次:
  RemError
  ├── ParseError          locator 语法错误（不触网、不查注册表）
  ├── UnknownAlias        注册表中没有该别名
  ├── FetchError          拉取失败（API / git）
  │   ├── AuthRequired
  │   ├── RateLimited
  │   ├── NotFound
  │   ├── NetworkError
  │   └── GitError        携带 git 的 stderr
  ├── CacheIoError        缓存目录读写 / rename 失败
  ├── ConfigError
  └── ValidationError
"""

from __future__ import annotations

from enum import Enum


class RemError(Exception):
    """rem 基础异常"""

    code: str = "UNKNOWN"

    def __init__(self, message: str, *, locator: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.locator = locator

    def __str__(self) -> str:
        if self.locator:
            return f"{self.locator}: {self.message}"
        return self.message


class ParseErrorKind(str, Enum):
    """locator 解析失败的具体类别"""

    MISSING_PATH = "MissingPath"
    AMBIGUOUS_SOURCE = "AmbiguousSource"
    INVALID_PATH_TRAVERSAL = "InvalidPathTraversal"
    ABSOLUTE_PATH = "AbsolutePath"
    INVALID_REF = "InvalidRef"


class ParseError(RemError):
    """locator 字符串不符合语法"""

    code = "PARSE_ERROR"

    def __init__(self, kind: ParseErrorKind, message: str, *, locator: str = "") -> None:
        super().__init__(f"[{kind.value}] {message}", locator=locator)
        self.kind = kind


class UnknownAlias(RemError):
    """别名未注册"""

    code = "UNKNOWN_ALIAS"

    def __init__(self, alias: str, *, locator: str = "") -> None:
        super().__init__(f"代码仓别名未注册: {alias}", locator=locator)
        self.alias = alias


class FetchError(RemError):
    """拉取失败基类"""

    code = "FETCH_ERROR"


class AuthRequired(FetchError):
    """认证缺失或被拒绝 (401/403)"""

    code = "AUTH_REQUIRED"


class RateLimited(FetchError):
    """触发 API 限流"""

    code = "RATE_LIMITED"


class NotFound(FetchError):
    """仓库 / ref / 路径不存在"""

    code = "NOT_FOUND"


class NetworkError(FetchError):
    """网络层失败（连接、超时、非预期 HTTP 状态）"""

    code = "NETWORK_ERROR"


class GitError(FetchError):
    """git 子进程非零退出"""

    code = "GIT_ERROR"

    def __init__(self, message: str, *, stderr: str = "", locator: str = "") -> None:
        detail = " ".join(stderr.split())
        if detail:
            message = f"{message}: {detail[:500]}"
        super().__init__(message, locator=locator)
        self.stderr = stderr


class CacheIoError(RemError):
    """缓存条目写入 / 发布 / 读取失败"""

    code = "CACHE_IO_ERROR"


class ConfigError(RemError):
    """配置文件缺失或内容无效"""

    code = "CONFIG_ERROR"


class ValidationError(RemError):
    """输入数据校验失败"""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, details: list[str] | None = None) -> None:
        super().__init__(message)
        self.details = details or []
