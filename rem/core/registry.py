"""YAML 注册表基类

基于 YAML 文件的注册表共享相同的加载、保存、字段访问、增删查逻辑。
文件中其他顶层键（如全局配置项）在保存时原样保留。

子类只需指定 section_key，即可继承完整 CRUD。
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from rem.core.exceptions import ConfigError
from rem.utils.yaml_io import load_yaml, save_yaml

logger = logging.getLogger(__name__)


class YamlRegistry:
    """YAML 文件注册表基类

    子类用法:
        class MyRegistry(YamlRegistry):
            section_key = "items"
    """

    section_key: str = "entries"

    def __init__(self, registry_file: str | Path) -> None:
        self.registry_file = Path(registry_file)
        try:
            self._data: dict[str, Any] = load_yaml(self.registry_file)
        except (OSError, ValueError) as e:
            raise ConfigError(f"读取注册表失败: {self.registry_file} - {e}") from e

    def _section(self) -> dict[str, dict[str, Any]]:
        """获取当前 section 字典（自动创建）"""
        section = self._data.setdefault(self.section_key, {})
        if not isinstance(section, dict):
            raise ConfigError(f"{self.registry_file} 中 '{self.section_key}' 段不是字典")
        return section

    def _save(self) -> None:
        """持久化到 YAML 文件"""
        try:
            save_yaml(self.registry_file, self._data)
        except OSError as e:
            raise ConfigError(f"写入注册表失败: {self.registry_file} - {e}") from e

    def _put(self, name: str, entry: dict[str, Any]) -> dict[str, Any]:
        """写入条目并保存"""
        self._section()[name] = entry
        self._save()
        return entry

    def _get_raw(self, name: str) -> dict[str, Any] | None:
        """获取原始字典"""
        entry = self._section().get(name)
        return entry if isinstance(entry, dict) else None

    def _items(self) -> list[tuple[str, dict[str, Any]]]:
        """列出所有 (名称, 条目)"""
        return [(k, v) for k, v in self._section().items() if isinstance(v, dict)]

    def _remove(self, name: str) -> bool:
        """删除条目"""
        section = self._section()
        if name not in section:
            return False
        del section[name]
        self._save()
        return True
