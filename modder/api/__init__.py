"""
提供方客户端包
"""

from typing import Dict

from loguru import logger

from modder.api.base import ProviderClient
from modder.api.curseforge import CurseForgeClient
from modder.api.github import GitHubReleasesClient
from modder.api.modrinth import ModrinthClient
from modder.download.manager import DownloadManager
from modder.models import ModderConfig, Provider


def create_clients(config: ModderConfig) -> Dict[Provider, ProviderClient]:
    """
    按配置创建客户端

    未配置 API Key 时不创建 CurseForge 客户端，识别与回退会跳过该来源。
    """

    def downloader():
        return DownloadManager(
            max_retries=config.max_retries,
            retry_delay=config.retry_delay,
            timeout=config.request_timeout,
        )

    timeout = config.request_timeout
    clients: Dict[Provider, ProviderClient] = {
        Provider.MODRINTH: ModrinthClient(downloader=downloader(), timeout=timeout),
        Provider.GITHUB: GitHubReleasesClient(
            downloader=downloader(), timeout=timeout, token=config.github_token
        ),
    }
    if config.curseforge_api_key:
        clients[Provider.CURSEFORGE] = CurseForgeClient(
            config.curseforge_api_key, downloader=downloader(), timeout=timeout
        )
    else:
        logger.debug("未配置 CurseForge API Key，跳过 CurseForge")
    return clients


__all__ = [
    "ProviderClient",
    "ModrinthClient",
    "CurseForgeClient",
    "GitHubReleasesClient",
    "create_clients",
]
