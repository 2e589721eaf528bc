"""集中配置管理

提供统一的配置入口，支持从 YAML 文件加载 + 编程式覆盖。
默认配置文件 ~/.remconf.yml（可用 REM_CONFIG 覆盖），已注册代码仓默认也保存在同一文件的 repos 段。
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from rem.core.exceptions import ConfigError
from rem.utils.yaml_io import load_yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "~/.remconf.yml"


def default_config_path() -> str:
    return os.path.expanduser(os.getenv("REM_CONFIG", DEFAULT_CONFIG_FILE))


def default_cache_dir() -> str:
    base = os.getenv("XDG_CACHE_HOME") or os.path.expanduser("~/.cache")
    return str(Path(base) / "rem")


@dataclass
class Config:
    """rem 全局配置"""

    # 目录
    cache_dir: str = field(default_factory=default_cache_dir)
    repos_file: str = field(default_factory=default_config_path)

    # 执行
    shell: str = "bash"
    timeout: float | None = None  # 秒，None 表示不设上限

    # 脚本路径无扩展名时自动补全
    run_extension: str = ""
    import_extension: str = ""

    # API 地址
    github_api_url: str = "https://api.github.com"
    gitlab_url: str = "https://gitlab.com"

    # 自定义扩展 (放不到字段里的配置项)
    extra: dict = field(default_factory=dict)

    @classmethod
    def from_file(cls, path: str = "") -> Config:
        """从 YAML 文件加载配置，不存在则返回默认"""
        path = path or default_config_path()
        try:
            data = load_yaml(path)
        except (OSError, ValueError) as e:
            raise ConfigError(f"读取配置失败: {path} - {e}") from e
        if not data:
            return cls(repos_file=path)
        known = {f.name for f in cls.__dataclass_fields__.values()}
        matched = {k: v for k, v in data.items() if k in known and k != "extra"}
        extra = {k: v for k, v in data.items() if k not in known}
        matched.setdefault("repos_file", path)
        try:
            cfg = cls(**matched)
        except TypeError as e:
            raise ConfigError(f"配置内容无效: {path} - {e}") from e
        if cfg.timeout is not None and not isinstance(cfg.timeout, (int, float)):
            raise ConfigError(f"timeout 必须是数字: {cfg.timeout!r}")
        cfg.cache_dir = os.path.expanduser(str(cfg.cache_dir))
        cfg.repos_file = os.path.expanduser(str(cfg.repos_file))
        cfg.extra = extra
        return cfg


# 全局单例，首次 import 时不加载文件；由 CLI 入口显式初始化
_current: Config | None = None


def get_config() -> Config:
    """获取当前配置（未初始化则返回默认值）"""
    global _current  # noqa: PLW0603
    if _current is None:
        _current = Config()
    return _current


def init_config(path: str = "") -> Config:
    """从文件初始化全局配置"""
    global _current  # noqa: PLW0603
    _current = Config.from_file(path)
    logger.debug("配置已加载: %s", path or default_config_path())
    return _current
