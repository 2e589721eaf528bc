"""rem - 远程 bash 脚本解析 / 拉取 / 执行工具"""

__version__ = "0.1.0"
