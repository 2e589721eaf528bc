"""凭据解析

注册表只保存环境变量名；密钥在发请求前一刻才解析，调用方用完即弃，不落盘、不写日志。
"""

from __future__ import annotations

import os
from collections.abc import Callable, Mapping

from rem.core.models import EnvVarAuth

CredentialResolver = Callable[[EnvVarAuth], "str | None"]


class EnvCredentialResolver:
    """从环境变量读取密钥（默认实现）"""

    def __init__(self, environ: Mapping[str, str] | None = None) -> None:
        self._environ = os.environ if environ is None else environ

    def __call__(self, auth: EnvVarAuth) -> str | None:
        return self._environ.get(auth.var) or None
