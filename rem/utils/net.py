"""网络工具: API 地址校验与拼接"""

from __future__ import annotations

from urllib.parse import quote, urlencode, urlparse

from rem.core.exceptions import ValidationError

_ALLOWED_SCHEMES = frozenset(("http", "https"))


def validate_url_scheme(url: str, *, context: str = "") -> None:
    """校验 API 地址仅使用 http/https，防止 file:// 等非预期协议访问

    Raises:
        ValidationError: URL scheme 不在白名单内
    """
    parsed = urlparse(url)
    if parsed.scheme not in _ALLOWED_SCHEMES or not parsed.netloc:
        label = f" ({context})" if context else ""
        raise ValidationError(
            f"不允许的 API 地址 '{url}'{label}，仅支持 http/https"
        )


def build_url(base: str, *segments: str, query: dict[str, str] | None = None) -> str:
    """拼接 API 地址

    每个 segment 整体做百分号编码（'/' 也会被编码），需要保留层级的部分请拆成多个 segment。
    """
    url = base.rstrip("/")
    for seg in segments:
        url += "/" + quote(seg, safe="")
    if query:
        url += "?" + urlencode(query)
    return url
