"""
CurseForge API 客户端

按文件指纹识别本地文件，需要 API Key。
"""

from typing import List, Optional

from loguru import logger

from modder.api.base import ProviderClient
from modder.exceptions import ParseError
from modder.models import ModLoader, Provider, ProjectSummary, VersionDescriptor
from modder.services.version_matcher import VersionMatcher

CURSEFORGE_BASE_URL = "https://api.curseforge.com/v1"
GAME_ID = 432


class CurseForgeClient(ProviderClient):
    """CurseForge API 客户端"""

    provider = Provider.CURSEFORGE
    base_url = CURSEFORGE_BASE_URL

    def __init__(self, api_key: str, *args, page_size: int = 50, **kwargs):
        super().__init__(*args, **kwargs)
        self.api_key = api_key
        self.page_size = page_size
        self.matcher = VersionMatcher()

    def _headers(self) -> dict:
        headers = super()._headers()
        headers["x-api-key"] = self.api_key
        headers["Accept"] = "application/json"
        return headers

    async def search_projects(
        self, query: str, limit: int = 20, offset: int = 0
    ) -> List[ProjectSummary]:
        params = {
            "gameId": str(GAME_ID),
            "searchFilter": query,
            "pageSize": str(limit),
            "index": str(offset),
            "sortField": "6",
            "sortOrder": "desc",
        }
        response = await self._request("/mods/search", params)
        if response is None:
            return []
        try:
            return [
                ProjectSummary(
                    provider=self.provider,
                    project_id=str(item["id"]),
                    slug=item.get("slug", ""),
                    title=item.get("name", ""),
                    description=item.get("summary", ""),
                )
                for item in response["data"]
            ]
        except (KeyError, TypeError) as e:
            raise ParseError(f"无法解析 CurseForge 搜索结果: {e}") from e

    async def resolve_version(
        self,
        project_id: str,
        game_version: str,
        loader: ModLoader = ModLoader.ANY,
    ) -> Optional[VersionDescriptor]:
        params = {
            "gameVersion": game_version,
            "pageSize": str(self.page_size),
            "index": "0",
        }
        if loader != ModLoader.ANY:
            params["modLoaderType"] = str(loader.curseforge_id)

        response = await self._request(f"/mods/{project_id}/files", params)
        if response is None:
            return None
        try:
            files = response["data"]
        except (KeyError, TypeError) as e:
            raise ParseError(f"无法解析 CurseForge 文件列表: {e}") from e

        versions = [VersionDescriptor.from_curseforge(item) for item in files]
        descriptor = self.matcher.pick(versions, game_version, loader)
        if descriptor is None:
            logger.debug(f"CurseForge 上 {project_id} 没有 {game_version}/{loader} 的文件")
            return None

        await self._fill_download_url(descriptor)
        return descriptor

    async def _fill_download_url(self, descriptor: VersionDescriptor):
        """文件列表不含下载地址时单独查询"""
        primary = descriptor.primary_file
        if primary is None or primary.url:
            return
        response = await self._request(
            f"/mods/{descriptor.project_id}/files/{descriptor.version_id}/download-url"
        )
        if response and isinstance(response.get("data"), str):
            primary.url = response["data"]
        else:
            logger.warning(f"CurseForge 文件 {primary.filename} 不允许第三方下载")

    async def identify_by_fingerprint(self, value: int) -> Optional[VersionDescriptor]:
        """通过指纹查询文件"""
        response = await self._request(
            f"/fingerprints/{GAME_ID}",
            method="POST",
            json_body={"fingerprints": [value]},
        )
        if response is None:
            return None
        try:
            matches = response["data"]["exactMatches"]
        except (KeyError, TypeError) as e:
            raise ParseError(f"无法解析 CurseForge 指纹结果: {e}") from e
        if not matches:
            return None
        return VersionDescriptor.from_curseforge(matches[0]["file"])
