"""CLI — 代码仓管理命令"""

from __future__ import annotations

import click

from rem.cli import _svc, handle_errors
from rem.core.models import Host
from rem.services.repo.registry import repo_from_uri


def register(group: click.Group) -> None:
    group.add_command(repo_group)


@click.group(name="repo")
def repo_group() -> None:
    """读取和修改本地保存的代码仓"""


@repo_group.command(name="list")
def repo_list() -> None:
    """列出已注册的代码仓"""
    with handle_errors():
        repos = _svc().registry.list_all()
    if not repos:
        click.echo("没有已注册的代码仓。")
        return
    for r in repos:
        auth = f"  auth=${r.auth.var}" if r.auth is not None else ""
        click.echo(f"  {r.alias:20s} [{r.host.value:6s}] {r.readable()}{auth}")


@repo_group.command(name="add")
@click.argument("name")
@click.argument("uri")
@click.option(
    "--provider", default="",
    type=click.Choice(["", *(h.value for h in Host)]),
    help="托管类型（默认按地址推断）",
)
@click.option("--username", "-u", default="", help="用户名（GitHub Basic 认证）")
@click.option("--password-env", default="", help="使用时从该环境变量读取密码 / token")
@click.option("--api-url", default="", help="自建 GitHub / GitLab 的 API 地址")
def repo_add(name: str, uri: str, provider: str, username: str, password_env: str, api_url: str) -> None:
    """注册代码仓（不检查可达性，可用 `rem repo check` 确认）"""
    with handle_errors():
        repo = repo_from_uri(
            name, uri,
            provider=provider, username=username,
            password_env=password_env, api_url=api_url,
        )
        _svc().registry.register(repo)
    click.echo(f"代码仓已注册: {name} ({repo.readable()})")


@repo_group.command(name="remove")
@click.argument("name")
def repo_remove(name: str) -> None:
    """移除代码仓"""
    with handle_errors():
        removed = _svc().registry.remove(name)
    if removed:
        click.echo(f"代码仓已移除: {name}")
    else:
        click.echo(f"代码仓不存在: {name}")


@repo_group.command(name="check")
@click.argument("name")
def repo_check(name: str) -> None:
    """检查代码仓是否可访问并输出基本信息"""
    with handle_errors():
        info = _svc().resolver.check(name)
    click.echo(f"代码仓可访问: {name}")
    for key, value in info.items():
        if value:
            click.echo(f"  {key}: {value}")
