"""代码仓服务模块

- registry.py: 代码仓 CRUD，以及从仓库地址推断托管类型
"""

from rem.services.repo.registry import RepoRegistry, repo_from_uri, validate_repo

__all__ = [
    "RepoRegistry",
    "repo_from_uri",
    "validate_repo",
]
