"""CLI — run / import 命令"""

from __future__ import annotations

import sys

import click

from rem.cli import _svc, handle_errors


def register(group: click.Group) -> None:
    group.add_command(run)
    group.add_command(import_)


@click.command(context_settings={"ignore_unknown_options": True})
@click.argument("locator")
@click.argument("script_args", nargs=-1, type=click.UNPROCESSED)
@click.option("--fresh", "-f", is_flag=True, help="忽略缓存，强制重新拉取")
def run(locator: str, script_args: tuple[str, ...], fresh: bool) -> None:
    """用本地 bash 执行远程脚本

    LOCATOR 格式: <repo>[@ref]:<path>。其余参数原样传给脚本，
    需要传给脚本的 -f 请放在 `--` 之后。

    退出码为脚本自身的退出码（被信号终止时为 128+N）；脚本未执行
    （解析或拉取失败）时为 125。脚本自己以 125 退出时两者无法区分。
    """
    with handle_errors():
        code = _svc().resolver.run_script(locator, list(script_args), fresh=fresh)
    if code != 0:
        sys.exit(code)


@click.command(name="import")
@click.argument("locators", nargs=-1, required=True)
@click.option("--fresh", "-f", is_flag=True, help="忽略缓存，强制重新拉取")
def import_(locators: tuple[str, ...], fresh: bool) -> None:
    """输出可 source 的脚本内容（任一失败则不输出）

    用法: source <(rem import lib:log.sh lib:retry.sh)
    """
    with handle_errors():
        data = _svc().resolver.import_scripts(list(locators), fresh=fresh)
    # bytes 直接写入二进制 stdout，不经过编码转换
    click.echo(data, nl=False)
