"""CLI — 缓存管理命令"""

from __future__ import annotations

import click

from rem.cli import _svc, handle_errors
from rem.core.exceptions import UnknownAlias


def register(group: click.Group) -> None:
    group.add_command(cache_group)


@click.group(name="cache")
def cache_group() -> None:
    """查看和清理本地脚本缓存"""


@cache_group.command(name="list")
def cache_list() -> None:
    """列出本地缓存条目"""
    entries = _svc().inspector.list_entries()
    if not entries:
        click.echo("没有缓存条目。")
        return
    for e in entries:
        what = e["path"] or "(tree)"
        commit = f" commit={e['commit'][:12]}" if e["commit"] else ""
        click.echo(f"  {e['identity']}@{e['ref']} {what} [{e['strategy']}]{commit}  {e['fetched_at']}")


@cache_group.command(name="clean")
@click.argument("target", required=False, default="")
@click.option("--all", "clean_all", is_flag=True, help="清理全部缓存")
@click.option("--stale", is_flag=True, help="清理被中断的进程遗留的暂存目录")
def cache_clean(target: str, clean_all: bool, stale: bool) -> None:
    """清理缓存：TARGET 为别名或 git 地址，或使用 --all / --stale"""
    if not target and not clean_all and not stale:
        raise click.UsageError("需要指定 TARGET、--all 或 --stale")
    svc = _svc()
    with handle_errors():
        if stale:
            swept = svc.inspector.sweep()
            click.echo(f"已清理 {swept} 个遗留目录")
            if not target and not clean_all:
                return
        if clean_all:
            count = svc.inspector.clean()
        else:
            repo = svc.registry.lookup(target)
            if repo is None and "/" not in target and ":" not in target:
                raise UnknownAlias(target)
            count = svc.inspector.clean(repo.identity if repo is not None else target)
    click.echo(f"已清理 {count} 个缓存条目")
