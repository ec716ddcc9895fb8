"""
Modrinth API 客户端

按 SHA-512 内容哈希识别本地文件。
"""

import json
from typing import List, Optional

from loguru import logger

from modder.api.base import ProviderClient
from modder.exceptions import ParseError
from modder.models import ModLoader, Provider, ProjectSummary, VersionDescriptor
from modder.services.version_matcher import VersionMatcher

MODRINTH_BASE_URL = "https://api.modrinth.com/v2"


class ModrinthClient(ProviderClient):
    """Modrinth API 客户端"""

    provider = Provider.MODRINTH
    base_url = MODRINTH_BASE_URL

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.matcher = VersionMatcher()

    async def search_projects(
        self, query: str, limit: int = 20, offset: int = 0
    ) -> List[ProjectSummary]:
        """搜索模组，按相关度排序"""
        params = {
            "query": query,
            "limit": str(limit),
            "offset": str(offset),
            "index": "relevance",
            "facets": json.dumps([["project_type:mod"]]),
        }
        response = await self._request("/search", params)
        if response is None:
            return []
        try:
            return [
                ProjectSummary(
                    provider=self.provider,
                    project_id=hit["project_id"],
                    slug=hit["slug"],
                    title=hit.get("title", hit["slug"]),
                    description=hit.get("description", ""),
                )
                for hit in response["hits"]
            ]
        except (KeyError, TypeError) as e:
            raise ParseError(f"无法解析 Modrinth 搜索结果: {e}") from e

    async def resolve_version(
        self,
        project_id: str,
        game_version: str,
        loader: ModLoader = ModLoader.ANY,
    ) -> Optional[VersionDescriptor]:
        params = {"game_versions": json.dumps([game_version])}
        if loader != ModLoader.ANY:
            params["loaders"] = json.dumps([loader.value])

        response = await self._request(f"/project/{project_id}/version", params)

        if not response:
            logger.debug(f"Modrinth 上 {project_id} 没有 {game_version}/{loader} 的版本")
            return None
        if not isinstance(response, list):
            raise ParseError("Modrinth 版本列表格式错误", context={"project": project_id})

        versions = [VersionDescriptor.from_modrinth(item) for item in response]
        return self.matcher.pick(versions, game_version, loader)

    async def identify_by_hash(self, digest: str) -> Optional[VersionDescriptor]:
        """通过 SHA-512 查询文件所属的版本"""
        response = await self._request(
            f"/version_file/{digest}", {"algorithm": "sha512"}
        )
        if response is None:
            return None
        return VersionDescriptor.from_modrinth(response)
