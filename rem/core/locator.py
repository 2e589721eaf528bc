"""Locator 解析器

语法: ``source [ "@" ref ] ":" path``

    ci@v1.2.2:upload-results.sh                      别名 + tag
    ansi:ansi                                        别名，ref 默认 HEAD
    git@github.com:user/scripts:util/my-script.bash  scp 风格 git 地址
    https://github.com/user/scripts@main:lib/log.sh  带协议的 git 地址

纯语法解析，不查注册表、不触网。看起来像 git 地址的 source 归为 RawGitUrl，
否则必须是合法别名。
"""

from __future__ import annotations

import re

from rem.core.exceptions import ParseError, ParseErrorKind
from rem.core.models import HEAD, Alias, Locator, RawGitUrl, Source

_ALIAS_RE = re.compile(r"^[A-Za-z0-9_-]+$")
_SAFE_REF_RE = re.compile(r"^[a-zA-Z0-9_./@\-]+$")
_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*://")
_BARE_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*$")
# [user@]host:owner/repo
_SCP_RE = re.compile(r"^(?:[^@/:]+@)?[^@/:]+:")


def parse_locator(raw: str) -> Locator:
    """解析 locator 字符串

    Raises:
        ParseError: MissingPath / AmbiguousSource / InvalidPathTraversal /
            AbsolutePath / InvalidRef
    """
    raw = raw.strip()
    head, sep, path = raw.rpartition(":")
    if not sep or not path:
        raise ParseError(ParseErrorKind.MISSING_PATH, "缺少 ':<path>' 部分", locator=raw)
    if path.startswith("//") and _BARE_SCHEME_RE.match(head):
        # "https://host/owner/repo" 最后一个冒号属于协议
        raise ParseError(ParseErrorKind.MISSING_PATH, "缺少 ':<path>' 部分", locator=raw)

    source_str, ref = _split_ref(head)
    if ref is not None:
        _check_ref(ref, raw)

    return Locator(
        source=_classify_source(source_str, raw),
        path=_check_path(path, raw),
        ref=HEAD if ref is None else ref,
    )


def format_locator(locator: Locator) -> str:
    """输出规范形式，可被 parse_locator 原样解析回来"""
    return str(locator)


def with_default_extension(locator: Locator, extension: str) -> Locator:
    """脚本路径末段不含 '.' 时补上默认扩展名"""
    if not extension:
        return locator
    last = locator.path.rsplit("/", 1)[-1]
    if "." in last:
        return locator
    if not extension.startswith("."):
        extension = f".{extension}"
    return locator.with_path(locator.path + extension)


def _split_ref(head: str) -> tuple[str, str | None]:
    """从 source[@ref] 中拆出 ref，未指定时返回 None"""
    scheme = _SCHEME_RE.match(head)
    if scheme:
        # 协议地址: authority 里的 user@ 不是 ref 分隔符
        slash = head.find("/", scheme.end())
        search_from = slash if slash != -1 else len(head)
    elif _SCP_RE.match(head):
        search_from = head.index(":")
    else:
        source, sep, ref = head.partition("@")
        return (source, ref) if sep else (head, None)

    at = head.rfind("@", search_from)
    if at == -1:
        return head, None
    return head[:at], head[at + 1:]


def _classify_source(source: str, raw: str) -> Source:
    if source.startswith("-"):
        # 防止被 git 当作命令行选项
        raise ParseError(
            ParseErrorKind.AMBIGUOUS_SOURCE, f"source 不能以 '-' 开头: '{source}'", locator=raw,
        )
    if _SCHEME_RE.match(source) or "/" in source or _SCP_RE.match(source):
        return RawGitUrl(source)
    if _ALIAS_RE.match(source):
        return Alias(source)
    raise ParseError(
        ParseErrorKind.AMBIGUOUS_SOURCE,
        f"'{source}' 既不是合法别名也不是 git 地址",
        locator=raw,
    )


def _check_ref(ref: str, raw: str) -> None:
    if not ref or not _SAFE_REF_RE.match(ref) or ref.startswith("-"):
        raise ParseError(ParseErrorKind.INVALID_REF, f"ref 包含非法字符: '{ref}'", locator=raw)


def _check_path(path: str, raw: str) -> str:
    if path.startswith("/"):
        raise ParseError(ParseErrorKind.ABSOLUTE_PATH, f"路径不能以 '/' 开头: {path}", locator=raw)
    if ".." in path.split("/"):
        raise ParseError(
            ParseErrorKind.INVALID_PATH_TRAVERSAL,
            f"路径不能包含 '..': {path}",
            locator=raw,
        )
    return path
