"""rem 命令行接口

CLI 按领域拆分为子模块，每个模块注册自己的命令到 main group。

退出码:
  0    成功
  N    run 模式下脚本自身的退出码原样透传
  125  解析 / 拉取失败（脚本未执行）
"""

import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager

import click

from rem import __version__
from rem.core.config import init_config
from rem.core.exceptions import RemError
from rem.services.container import ServiceContainer, get_container, reset_container
from rem.utils.logger import setup_logging

logger = logging.getLogger(__name__)

EXIT_RESOLUTION_FAILED = 125


def _svc() -> ServiceContainer:
    """获取全局服务容器的快捷方式"""
    return get_container()


@contextmanager
def handle_errors() -> Iterator[None]:
    """RemError 渲染为单行提示并以 EXIT_RESOLUTION_FAILED 退出"""
    try:
        yield
    except RemError as e:
        logger.debug("命令失败", exc_info=True)
        click.echo(f"rem: {e}", err=True)
        raise SystemExit(EXIT_RESOLUTION_FAILED) from e


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config", "config_path", envvar="REM_CONFIG", default="",
    help="配置文件路径（默认 ~/.remconf.yml）",
)
def main(config_path: str) -> None:
    """rem - 引用、拉取并执行远程 bash 脚本"""
    setup_logging(
        level=os.getenv("REM_LOG_LEVEL", "WARNING"),
        json_output=os.getenv("REM_LOG_JSON", "") == "1",
    )
    with handle_errors():
        reset_container(init_config(os.path.expanduser(config_path)))


# 注册各领域子命令
from rem.cli.cmd_script import register as _reg_script  # noqa: E402
from rem.cli.cmd_repo import register as _reg_repo  # noqa: E402
from rem.cli.cmd_cache import register as _reg_cache  # noqa: E402

_reg_script(main)
_reg_repo(main)
_reg_cache(main)
