"""YamlRegistry 基类单元测试"""

from __future__ import annotations

from pathlib import Path

import pytest

from rem.core.exceptions import ConfigError
from rem.core.registry import YamlRegistry
from rem.utils.yaml_io import load_yaml


class ConcreteRegistry(YamlRegistry):
    section_key = "items"


@pytest.fixture()
def registry(tmp_path: Path) -> ConcreteRegistry:
    return ConcreteRegistry(str(tmp_path / "reg.yml"))


class TestYamlRegistryCRUD:
    def test_put_and_get(self, registry: ConcreteRegistry) -> None:
        registry._put("foo", {"x": 1})
        assert registry._get_raw("foo") == {"x": 1}

    def test_get_missing_returns_none(self, registry: ConcreteRegistry) -> None:
        assert registry._get_raw("nonexistent") is None

    def test_items(self, registry: ConcreteRegistry) -> None:
        registry._put("a", {"name": "x"})
        registry._put("b", {"name": "y"})
        assert registry._items() == [("a", {"name": "x"}), ("b", {"name": "y"})]

    def test_remove(self, registry: ConcreteRegistry) -> None:
        registry._put("a", {"v": 1})
        assert registry._remove("a") is True
        assert registry._remove("a") is False

    def test_persisted(self, tmp_path: Path, registry: ConcreteRegistry) -> None:
        registry._put("a", {"v": 1})
        reloaded = ConcreteRegistry(str(tmp_path / "reg.yml"))
        assert reloaded._get_raw("a") == {"v": 1}

    def test_other_sections_preserved(self, tmp_path: Path) -> None:
        path = tmp_path / "reg.yml"
        path.write_text("timeout: 5\n", encoding="utf-8")
        reg = ConcreteRegistry(str(path))
        reg._put("a", {"v": 1})
        data = load_yaml(path)
        assert data["timeout"] == 5
        assert data["items"] == {"a": {"v": 1}}

    def test_non_dict_section_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "reg.yml"
        path.write_text("items: [1, 2]\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="不是字典"):
            ConcreteRegistry(str(path))._items()
