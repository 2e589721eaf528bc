"""代码仓注册表 - CRUD 管理

职责：
- 代码仓的注册、查询、列表、删除
- 支持 3 种托管类型：github / gitlab / git
- 解析层只依赖 lookup(alias)
"""

from __future__ import annotations

import logging
import re
from typing import Any
from urllib.parse import urlparse

from rem.core.exceptions import ValidationError
from rem.core.models import EnvVarAuth, Host, RepoConfig
from rem.core.registry import YamlRegistry

logger = logging.getLogger(__name__)

_ALIAS_RE = re.compile(r"^[A-Za-z0-9_-]+$")
_ENV_VAR_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

_KNOWN_HOSTS = {
    "github.com": Host.GITHUB,
    "gitlab.com": Host.GITLAB,
}


class RepoRegistry(YamlRegistry):
    """代码仓注册表"""

    section_key = "repos"

    def __init__(self, registry_file: str = "") -> None:
        if not registry_file:
            from rem.core.config import get_config
            registry_file = get_config().repos_file
        super().__init__(registry_file)

    def register(self, repo: RepoConfig) -> dict[str, Any]:
        """注册一个代码仓（同名覆盖）"""
        validate_repo(repo)
        entry: dict[str, Any] = {"host": repo.host.value}
        if repo.host == Host.GIT:
            entry["url"] = repo.url
        else:
            entry["owner"] = repo.owner
            entry["name"] = repo.name
            if repo.api_url:
                entry["api_url"] = repo.api_url
        if repo.auth is not None:
            entry["password_env"] = repo.auth.var
            if repo.auth.username:
                entry["username"] = repo.auth.username
        self._put(repo.alias, entry)
        logger.info("代码仓已注册: %s (%s)", repo.alias, repo.readable())
        return entry

    def lookup(self, alias: str) -> RepoConfig | None:
        """按别名获取已注册代码仓定义"""
        entry = self._get_raw(alias)
        if entry is None:
            return None
        return _from_entry(alias, entry)

    def list_all(self) -> list[RepoConfig]:
        """列出所有已注册代码仓"""
        return [_from_entry(alias, entry) for alias, entry in self._items()]

    def remove(self, alias: str) -> bool:
        """移除代码仓"""
        if not self._remove(alias):
            return False
        logger.info("代码仓已移除: %s", alias)
        return True


def validate_repo(repo: RepoConfig) -> None:
    """注册前的静态校验（不检查可达性）"""
    if not _ALIAS_RE.match(repo.alias or ""):
        raise ValidationError(f"别名只能包含字母、数字、'_' 和 '-': '{repo.alias}'")
    if repo.host == Host.GIT:
        if not repo.url:
            raise ValidationError("git 类型必须指定 url")
    elif not repo.owner or not repo.name:
        raise ValidationError(f"{repo.host.value} 类型必须指定 owner/name")
    if repo.auth is not None and not _ENV_VAR_RE.match(repo.auth.var):
        raise ValidationError(f"环境变量名不合法: '{repo.auth.var}'")


def repo_from_uri(
    alias: str,
    uri: str,
    *,
    provider: str = "",
    username: str = "",
    password_env: str = "",
    api_url: str = "",
) -> RepoConfig:
    """根据仓库地址构造 RepoConfig

    https://github.com/<owner>/<name>        → github
    https://gitlab.com/<group>/.../<name>    → gitlab
    其余地址（ssh、scp 风格、自建服务）       → git，除非显式指定 provider
    """
    if username and not password_env:
        raise ValidationError("指定 username 时必须同时指定 password_env")
    auth = EnvVarAuth(var=password_env, username=username) if password_env else None

    parsed = urlparse(uri)
    is_http = parsed.scheme in ("http", "https") and bool(parsed.netloc)
    if provider:
        try:
            host = Host(provider)
        except ValueError as e:
            raise ValidationError(f"不支持的托管类型: {provider}") from e
    elif is_http:
        host = _KNOWN_HOSTS.get((parsed.hostname or "").lower(), Host.GIT)
    else:
        host = Host.GIT

    if host == Host.GIT:
        repo = RepoConfig(alias=alias, host=host, url=uri, auth=auth)
        validate_repo(repo)
        return repo

    if not is_http:
        raise ValidationError(f"{host.value} 类型需要 http(s) 仓库地址: {uri}")
    parts = [p for p in parsed.path.strip("/").split("/") if p]
    if parts and parts[-1].endswith(".git"):
        parts[-1] = parts[-1][: -len(".git")]
    if len(parts) < 2 or (host == Host.GITHUB and len(parts) != 2):
        raise ValidationError(f"无法从地址解析 owner/name: {uri}")

    hostname = (parsed.hostname or "").lower()
    if not api_url and hostname not in _KNOWN_HOSTS:
        # 自建实例: 从仓库地址推导 API 地址
        root = f"{parsed.scheme}://{parsed.netloc}"
        api_url = f"{root}/api/v3" if host == Host.GITHUB else root

    repo = RepoConfig(
        alias=alias,
        host=host,
        owner="/".join(parts[:-1]),
        name=parts[-1],
        auth=auth,
        api_url=api_url,
    )
    validate_repo(repo)
    return repo


def _from_entry(alias: str, entry: dict[str, Any]) -> RepoConfig:
    try:
        host = Host(entry.get("host", Host.GIT.value))
    except ValueError as e:
        raise ValidationError(f"代码仓 {alias} 的 host 无效: {entry.get('host')}") from e
    password_env = entry.get("password_env", "")
    auth = (
        EnvVarAuth(var=password_env, username=entry.get("username", ""))
        if password_env else None
    )
    return RepoConfig(
        alias=alias,
        host=host,
        owner=entry.get("owner", ""),
        name=entry.get("name", ""),
        url=entry.get("url", ""),
        auth=auth,
        api_url=entry.get("api_url", ""),
    )
