"""
Modder - Minecraft 模组同步工具

从 Modrinth、CurseForge 与 GitHub Releases 解析、下载并同步模组。
"""

__version__ = "0.1.0"

from modder.logger import setup_logger
from modder.orchestrator import ModderOrchestrator

__all__ = ["__version__", "setup_logger", "ModderOrchestrator"]
