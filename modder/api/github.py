"""
GitHub Releases 客户端

项目 ID 即 "owner/repo"。GitHub 资源无法按内容反查来源，
下载后需要写入来源标记。
"""

from typing import List, Optional

from loguru import logger

from modder.api.base import ProviderClient
from modder.exceptions import ParseError
from modder.models import ModLoader, Provider, ProjectSummary, VersionDescriptor
from modder.services.version_matcher import VersionMatcher
from modder.utils import split_repo

GITHUB_BASE_URL = "https://api.github.com"


class GitHubReleasesClient(ProviderClient):
    """GitHub Releases 客户端"""

    provider = Provider.GITHUB
    base_url = GITHUB_BASE_URL

    def __init__(self, *args, token: Optional[str] = None, per_page: int = 30, **kwargs):
        super().__init__(*args, **kwargs)
        self.token = token
        self.per_page = per_page
        self.matcher = VersionMatcher()

    def _headers(self) -> dict:
        headers = super()._headers()
        headers["Accept"] = "application/vnd.github+json"
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def search_projects(
        self, query: str, limit: int = 20, offset: int = 0
    ) -> List[ProjectSummary]:
        # GitHub 只支持按页翻页
        response = await self._request(
            "/search/repositories",
            {
                "q": f"{query} minecraft mod",
                "per_page": str(limit),
                "page": str(offset // max(limit, 1) + 1),
            },
        )
        if response is None:
            return []
        try:
            return [
                ProjectSummary(
                    provider=self.provider,
                    project_id=item["full_name"],
                    slug=item["full_name"],
                    title=item.get("name") or item["full_name"],
                    description=item.get("description") or "",
                )
                for item in response["items"]
            ]
        except (KeyError, TypeError) as e:
            raise ParseError(f"无法解析 GitHub 搜索结果: {e}") from e

    async def get_releases(self, repo: str) -> list:
        """获取仓库的 Release 列表，按 GitHub 返回顺序（新的在前）"""
        owner, name = split_repo(repo)
        response = await self._request(
            f"/repos/{owner}/{name}/releases", {"per_page": str(self.per_page)}
        )
        if response is None:
            return []
        if not isinstance(response, list):
            raise ParseError("GitHub Release 列表格式错误", context={"repo": repo})
        return response

    async def resolve_version(
        self,
        project_id: str,
        game_version: str,
        loader: ModLoader = ModLoader.ANY,
    ) -> Optional[VersionDescriptor]:
        """取第一个包含匹配资源文件的 Release"""
        try:
            releases = await self.get_releases(project_id)
        except ValueError as e:
            raise ParseError(str(e), context={"repo": project_id}) from e

        for release in releases:
            if release.get("draft"):
                continue
            for asset in release.get("assets") or []:
                metadata = self.matcher.match_asset(
                    asset.get("name", ""), game_version, loader
                )
                if metadata is None:
                    continue
                logger.debug(f"[匹配] {project_id} -> {asset.get('name')}")
                return VersionDescriptor.from_github(
                    project_id,
                    release,
                    asset,
                    game_versions=list(metadata.game_versions),
                    loaders=list(metadata.loaders),
                )

        logger.debug(f"GitHub {project_id} 没有 {game_version}/{loader} 的资源文件")
        return None
