"""
提供方客户端抽象

三个提供方（Modrinth、CurseForge、GitHub Releases）实现同一组能力：
搜索、解析版本、列出依赖、下载、按哈希/指纹识别文件。
"""

import asyncio
import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, List, Optional, Union

import aiohttp
from loguru import logger

from modder.download.manager import DownloadManager
from modder.exceptions import ParseError, RateLimitError, TransportError
from modder.models import (
    DependencyRef,
    FileRef,
    ModLoader,
    Provider,
    ProjectSummary,
    VersionDescriptor,
)


class ProviderClient(ABC):
    """提供方客户端基类"""

    provider: Provider
    base_url: str = ""

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        downloader: Optional[DownloadManager] = None,
        timeout: float = 30.0,
    ):
        self._session = session
        self._owned_session = session is None
        self._downloader = downloader
        self.timeout = timeout

    @property
    def session(self) -> aiohttp.ClientSession:
        """获取或创建 aiohttp session"""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
        return self._session

    @property
    def downloader(self) -> DownloadManager:
        if self._downloader is None:
            self._downloader = DownloadManager(session=self._session, timeout=self.timeout)
        return self._downloader

    def _headers(self) -> dict:
        return {"User-Agent": "modder"}

    async def _request(
        self,
        endpoint: str,
        params: Optional[dict] = None,
        method: str = "GET",
        json_body: Optional[Any] = None,
    ) -> Optional[Any]:
        """
        发送 API 请求

        Returns:
            解析后的 JSON；404 时返回 None

        Raises:
            TransportError: 网络错误或非 200/404 状态码
            ParseError: 响应不是合法 JSON
        """
        url = endpoint if endpoint.startswith("http") else f"{self.base_url}{endpoint}"
        try:
            async with self.session.request(
                method, url, params=params, json=json_body, headers=self._headers()
            ) as response:
                if response.status == 200:
                    text = await response.text()
                    try:
                        return json.loads(text)
                    except ValueError as e:
                        raise ParseError(
                            f"{self.provider.value} 返回了无效的 JSON",
                            context={"url": url},
                            response=response,
                        ) from e
                elif response.status == 404:
                    return None
                elif response.status in (401, 403):
                    raise TransportError(
                        f"{self.provider.value} 认证失败 (状态码: {response.status})",
                        context={"url": url},
                        response=response,
                    )
                elif response.status == 429:
                    raise RateLimitError(
                        f"{self.provider.value} API 速率限制", response=response
                    )
                else:
                    raise TransportError(
                        f"{self.provider.value} API 请求失败 (状态码: {response.status})",
                        response=response,
                    )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransportError(
                f"{self.provider.value} API 请求失败: {e!r}", context={"url": url}
            ) from e

    @abstractmethod
    async def search_projects(
        self, query: str, limit: int = 20, offset: int = 0
    ) -> List[ProjectSummary]:
        """按名称搜索项目，offset 为跳过的结果数"""

    @abstractmethod
    async def resolve_version(
        self,
        project_id: str,
        game_version: str,
        loader: ModLoader = ModLoader.ANY,
    ) -> Optional[VersionDescriptor]:
        """
        获取与指定游戏版本/加载器兼容的版本

        多个版本都匹配时取提供方排序中的第一个。
        """

    async def list_dependencies(
        self,
        project_id: str,
        game_version: str,
        loader: ModLoader = ModLoader.ANY,
    ) -> List[DependencyRef]:
        """列出兼容版本声明的依赖"""
        descriptor = await self.resolve_version(project_id, game_version, loader)
        if descriptor is None:
            return []
        return list(descriptor.dependencies)

    async def download(self, file_ref: FileRef, dest_dir: Union[str, Path]) -> Path:
        """下载文件到目录，返回文件路径"""
        return await self.downloader.download_file(file_ref, dest_dir)

    async def identify_by_hash(self, digest: str) -> Optional[VersionDescriptor]:
        """按内容哈希识别文件，不支持时返回 None"""
        return None

    async def identify_by_fingerprint(self, value: int) -> Optional[VersionDescriptor]:
        """按指纹识别文件，不支持时返回 None"""
        return None

    async def close(self):
        """关闭客户端"""
        if self._downloader is not None:
            await self._downloader.close()
        if self._owned_session and self._session and not self._session.closed:
            await self._session.close()
        logger.debug(f"[关闭] {self.provider.value} 客户端")

    async def __aenter__(self):
        """异步上下文管理器入口"""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """异步上下文管理器出口"""
        await self.close()
