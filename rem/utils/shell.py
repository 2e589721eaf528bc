"""脚本执行工具 — 把拉取到的脚本交给本地 shell 执行

通过 ScriptExecutor 协议抽象子进程执行，方便测试替换。
"""

from __future__ import annotations

import logging
import subprocess
from typing import Protocol

from rem.core.exceptions import RemError

logger = logging.getLogger(__name__)

# bash -c 的 $0，脚本内 "$0" 展开为该值
SHELL_NAME = "rem"


# =========================================================================
# 执行器协议
# =========================================================================

class ScriptExecutor(Protocol):
    """脚本执行器协议

    接收脚本全文与位置参数，返回脚本退出码。stdin/stdout/stderr 直接继承当前进程。
    """

    def execute(self, script: str, args: list[str]) -> int:
        ...


# =========================================================================
# 默认实现: 本地 shell
# =========================================================================

class ShellExecutor:
    """通过 ``<shell> -c <script> rem <args...>`` 执行脚本（默认实现）"""

    def __init__(self, shell: str = "bash") -> None:
        self.shell = shell

    def execute(self, script: str, args: list[str]) -> int:
        argv = [self.shell, "-c", script, SHELL_NAME, *args]
        logger.debug("执行脚本: %s -c <%d 字节> %s", self.shell, len(script), args)
        try:
            r = subprocess.run(argv, check=False)
        except OSError as e:
            raise RemError(f"无法启动 {self.shell}: {e}") from e
        except ValueError as e:
            # 脚本含 NUL 字节时无法作为命令行参数传递
            raise RemError(f"脚本内容无法交给 {self.shell}: {e}") from e
        if r.returncode < 0:
            # 被信号 N 终止，按 shell 惯例返回 128+N
            return 128 - r.returncode
        return r.returncode


# =========================================================================
# 全局默认执行器（可替换）
# =========================================================================

_default_executor: ScriptExecutor = ShellExecutor()


def get_executor() -> ScriptExecutor:
    """获取全局默认脚本执行器"""
    return _default_executor


def set_executor(executor: ScriptExecutor) -> None:
    """替换全局默认脚本执行器（用于测试或远程执行场景）"""
    global _default_executor  # noqa: PLW0603
    _default_executor = executor
