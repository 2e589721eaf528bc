"""托管平台 API 拉取策略 - GitHub / GitLab

每个 (仓库, ref, 路径) 只发一次 "获取文件内容" 请求，不做本地 clone。

GitHub:
  GET {api}/repos/{owner}/{name}/contents/{path}[?ref=REF]
  Accept: application/vnd.github.raw 直接返回文件原文；HEAD 不带 ref，即默认分支
GitLab:
  GET {api}/api/v4/projects/{owner%2Fname}/repository/files/{path}/raw?ref=REF
"""

from __future__ import annotations

import base64
import http.client
import json
import logging
import urllib.error
import urllib.request
from pathlib import Path
from typing import Any

from rem.core.exceptions import (
    AuthRequired,
    CacheIoError,
    FetchError,
    NetworkError,
    NotFound,
    RateLimited,
    ValidationError,
)
from rem.core.models import HEAD, CacheKey, Host, RepoConfig, ResolvedTarget
from rem.services.credentials import CredentialResolver, EnvCredentialResolver
from rem.utils.net import build_url, validate_url_scheme

logger = logging.getLogger(__name__)

USER_AGENT = "rem-bash"
GITHUB_RAW = "application/vnd.github.raw"
GITHUB_JSON = "application/vnd.github+json"


class ApiFetcher:
    """GitHub / GitLab 文件内容拉取"""

    name = "api"

    def __init__(
        self,
        credentials: CredentialResolver | None = None,
        *,
        github_api_url: str = "https://api.github.com",
        gitlab_url: str = "https://gitlab.com",
        timeout: float | None = None,
    ) -> None:
        self.credentials = credentials or EnvCredentialResolver()
        self.github_api_url = github_api_url
        self.gitlab_url = gitlab_url
        self.timeout = timeout

    def cache_key(self, target: ResolvedTarget) -> CacheKey:
        return CacheKey(identity=target.identity, ref=target.ref, path=target.path)

    def fetch(self, target: ResolvedTarget, tree_dir: Path) -> dict[str, str]:
        repo = _require_repo(target)
        if repo.host == Host.GITHUB:
            url = build_url(
                self._base(repo), "repos", repo.owner, repo.name, "contents",
                *target.path.split("/"),
                query=None if target.ref == HEAD else {"ref": target.ref},
            )
            accept = GITHUB_RAW
        else:
            url = build_url(
                self._base(repo), "api", "v4", "projects", repo.project,
                "repository", "files", target.path, "raw",
                query={"ref": target.ref},
            )
            accept = ""

        logger.info("API 拉取: %s@%s:%s", repo.readable(), target.ref, target.path)
        data = self._request(repo, url, accept=accept, locator=str(target.locator))

        dest = tree_dir / target.path
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            dest.write_bytes(data)
        except OSError as e:
            raise CacheIoError(f"写入暂存文件失败: {dest} - {e}", locator=str(target.locator)) from e
        return {"url": url}

    def check(self, repo: RepoConfig) -> dict[str, str]:
        """读取仓库元数据，确认地址与凭据可用"""
        if repo.host == Host.GITHUB:
            url = build_url(self._base(repo), "repos", repo.owner, repo.name)
            info = _json(self._request(repo, url, accept=GITHUB_JSON, locator=repo.alias))
            return {
                "repo": str(info.get("full_name", repo.project)),
                "default_branch": str(info.get("default_branch", "")),
                "private": str(info.get("private", "")),
            }
        url = build_url(self._base(repo), "api", "v4", "projects", repo.project)
        info = _json(self._request(repo, url, accept="", locator=repo.alias))
        return {
            "repo": str(info.get("path_with_namespace", repo.project)),
            "default_branch": str(info.get("default_branch", "")),
            "visibility": str(info.get("visibility", "")),
        }

    # ---- 内部 ----

    def _base(self, repo: RepoConfig) -> str:
        if repo.api_url:
            base = repo.api_url
        elif repo.host == Host.GITHUB:
            base = self.github_api_url
        else:
            base = self.gitlab_url
        validate_url_scheme(base, context=repo.alias or repo.readable())
        return base

    def _request(self, repo: RepoConfig, url: str, *, accept: str, locator: str) -> bytes:
        headers = {"User-Agent": USER_AGENT}
        if accept:
            headers["Accept"] = accept
        if repo.auth is not None:
            secret = self.credentials(repo.auth)
            if not secret:
                raise AuthRequired(
                    f"环境变量 {repo.auth.var} 未设置，无法访问 {repo.readable()}",
                    locator=locator,
                )
            headers.update(_auth_headers(repo, secret))

        req = urllib.request.Request(url, headers=headers)
        kwargs: dict[str, Any] = {} if self.timeout is None else {"timeout": self.timeout}
        try:
            with urllib.request.urlopen(req, **kwargs) as resp:  # nosec B310
                return resp.read()
        except urllib.error.HTTPError as e:
            raise _http_error(e, repo, locator) from e
        except (urllib.error.URLError, OSError, http.client.HTTPException, ValueError) as e:
            # 连接失败、超时、响应体被截断 (IncompleteRead) 或 URL 非法
            reason = getattr(e, "reason", e)
            raise NetworkError(f"请求 {repo.readable()} 失败: {reason}", locator=locator) from e


def _auth_headers(repo: RepoConfig, secret: str) -> dict[str, str]:
    if repo.host == Host.GITLAB:
        return {"PRIVATE-TOKEN": secret}
    if repo.auth is not None and repo.auth.username:
        token = base64.b64encode(f"{repo.auth.username}:{secret}".encode()).decode("ascii")
        return {"Authorization": f"Basic {token}"}
    return {"Authorization": f"Bearer {secret}"}


def _http_error(e: urllib.error.HTTPError, repo: RepoConfig, locator: str) -> FetchError:
    status = e.code
    headers = e.headers
    remaining = headers.get("X-RateLimit-Remaining") if headers is not None else None
    where = repo.readable()
    if status == 429 or (status == 403 and remaining == "0"):
        return RateLimited(f"{where} 触发 API 限流 (HTTP {status})", locator=locator)
    if status in (401, 403):
        hint = f"，检查环境变量 {repo.auth.var}" if repo.auth is not None else "，可能需要配置凭据"
        return AuthRequired(f"{where} 拒绝访问 (HTTP {status}){hint}", locator=locator)
    if status == 404:
        return NotFound(f"{where} 中不存在该仓库 / ref / 路径 (HTTP 404)", locator=locator)
    return NetworkError(f"{where} 返回 HTTP {status}: {e.reason}", locator=locator)


def _json(payload: bytes) -> dict[str, Any]:
    try:
        data = json.loads(payload.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise NetworkError(f"API 返回内容不是合法 JSON: {e}") from e
    return data if isinstance(data, dict) else {}


def _require_repo(target: ResolvedTarget) -> RepoConfig:
    repo = target.repo
    if repo is None or repo.host == Host.GIT:
        raise ValidationError(f"API 策略只支持 github / gitlab 代码仓: {target.locator}")
    return repo
