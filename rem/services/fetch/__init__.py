"""拉取策略

- api.py: GitHub / GitLab 文件内容 API
- git.py: 系统 git 浅克隆
"""

from rem.services.fetch.api import ApiFetcher
from rem.services.fetch.base import FetchStrategy
from rem.services.fetch.git import GitFetcher

__all__ = [
    "ApiFetcher",
    "FetchStrategy",
    "GitFetcher",
]
