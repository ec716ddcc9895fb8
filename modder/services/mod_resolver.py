"""
模组解析服务

把用户输入的模组名称、slug 或 "owner/repo" 解析为具体提供方上的项目。
"""

import asyncio
from typing import TYPE_CHECKING, Dict, Iterable, List, Mapping, Optional, Tuple

from loguru import logger

from modder.models import Provider, ProjectSummary
from modder.utils import split_repo

if TYPE_CHECKING:
    from modder.api.base import ProviderClient


# 快速添加时在热门模组之外额外列出的模组
QUICK_ADD_EXTRAS = (
    ("anti-xray", "Anti Xray"),
    ("appleskin", "Apple Skin"),
    ("carpet-extra", "Carpet Extra"),
    ("easyauth", "Easy Auth"),
    ("essential-commands", "Essential Commands"),
    ("fabric-carpet", "Fabric Carpet"),
    ("geyser", "Geyser"),
    ("origins", "Origins"),
    ("skinrestorer", "Skin Restorer"),
    ("status", "Status"),
)

SEARCH_PAGE_SIZE = 100


def is_repo_reference(query: str) -> bool:
    """包含 "/" 的输入视为 GitHub 仓库"""
    return "/" in query.strip().strip("/")


class ModResolver:
    """模组解析器"""

    def __init__(self, clients: Mapping[Provider, "ProviderClient"]):
        self.clients = clients
        self._cache: Dict[Tuple[Provider, str], ProjectSummary] = {}

    async def resolve(self, query: str, provider: Provider) -> Optional[ProjectSummary]:
        """
        在指定提供方上查找项目

        优先取 slug、ID 或标题完全一致的结果，否则取搜索的第一个结果。

        Args:
            query: 模组名称、slug、ID 或 owner/repo
            provider: 提供方

        Returns:
            项目概要，找不到时返回 None
        """
        query = query.strip()
        cache_key = (provider, query.lower())
        if cache_key in self._cache:
            return self._cache[cache_key]

        client = self.clients.get(provider)
        if client is None:
            logger.debug(f"[跳过] 未配置 {provider} 客户端")
            return None

        if provider == Provider.GITHUB and is_repo_reference(query):
            try:
                owner, name = split_repo(query)
            except ValueError:
                return None
            summary = ProjectSummary(
                provider=provider,
                project_id=f"{owner}/{name}",
                slug=f"{owner}/{name}",
                title=name,
            )
        else:
            hits = await client.search_projects(query, limit=10)
            if not hits:
                return None
            lowered = query.lower()
            summary = next(
                (
                    hit
                    for hit in hits
                    if lowered
                    in (hit.slug.lower(), hit.project_id.lower(), hit.title.lower())
                ),
                hits[0],
            )

        self._cache[cache_key] = summary
        return summary

    async def top_projects(
        self,
        provider: Provider,
        limit: int,
        extras: Iterable[Tuple[str, str]] = QUICK_ADD_EXTRAS,
    ) -> List[ProjectSummary]:
        """
        按相关度列出前 limit 个项目，再追加 extras 中的模组

        每页最多 100 个，各页并发请求后按页序合并，重复的 slug 只保留第一次出现。

        Args:
            provider: 提供方
            limit: 热门项目数量
            extras: 额外的 (slug, 标题)，slug 直接作为项目 ID

        Returns:
            去重后的项目列表
        """
        client = self.clients.get(provider)
        if client is None:
            logger.debug(f"[跳过] 未配置 {provider} 客户端")
            return []

        offsets = range(0, max(limit, 0), SEARCH_PAGE_SIZE)
        pages = await asyncio.gather(
            *(
                client.search_projects("", min(SEARCH_PAGE_SIZE, limit - offset), offset)
                for offset in offsets
            )
        )
        logger.info(f"[热门] 从 {provider} 获取 {sum(len(p) for p in pages)} 个模组")

        candidates = [hit for page in pages for hit in page]
        candidates.extend(
            ProjectSummary(provider=provider, project_id=slug, slug=slug, title=title)
            for slug, title in extras
        )

        seen = set()
        unique = []
        for summary in candidates:
            if summary.slug.lower() in seen:
                continue
            seen.add(summary.slug.lower())
            unique.append(summary)
        return unique
