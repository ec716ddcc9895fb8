"""
主协调器

整合所有服务层组件，实现 add / update / list / toggle / search 流程。
"""

import asyncio
import os
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union

from loguru import logger

from modder.api import ProviderClient, create_clients
from modder.download import FanOutScheduler, Job
from modder.exceptions import (
    ArtifactIOError,
    ConfigError,
    DownloadError,
    IdentityUnknownError,
    ModderError,
)
from modder.models import (
    Artifact,
    Identity,
    JobOutcome,
    ModderConfig,
    OutcomeKind,
    Provider,
    ProjectSummary,
    ResolutionRequest,
    scan_directory,
)
from modder.services import (
    DependencyResolver,
    EnablementToggle,
    IdentityResolver,
    ModResolver,
    ProvenanceStamper,
    SourceFallback,
)
from modder.services.dependency_resolver import DedupSet
from modder.services.mod_resolver import is_repo_reference

# 同一次更新中另一个任务已经在获取同一项目
_DUPLICATE = object()


class ModderOrchestrator:
    """Modder 主协调器"""

    def __init__(
        self,
        config: Optional[ModderConfig] = None,
        clients: Optional[Mapping[Provider, ProviderClient]] = None,
    ):
        self.config = config or ModderConfig()
        self.clients: Dict[Provider, ProviderClient] = dict(
            clients if clients is not None else create_clients(self.config)
        )
        self.identity = IdentityResolver(self.clients)
        self.resolver = ModResolver(self.clients)
        self.dep_resolver = DependencyResolver(self.clients)
        self.stamper = ProvenanceStamper()
        self.scheduler = FanOutScheduler(
            self.config.max_concurrent, self.clients, self.stamper
        )
        self.toggler = EnablementToggle()

    def _client(self, provider: Provider) -> ProviderClient:
        client = self.clients.get(provider)
        if client is None:
            raise ConfigError(f"未配置 {provider} 客户端", context={"provider": provider.value})
        return client

    def _fallback(self, preferred: Provider, enabled: bool) -> SourceFallback:
        configured = [p for p in Provider if p in self.clients]
        return SourceFallback(preferred, enabled, configured)

    async def add(self, query: str, request: ResolutionRequest) -> List[JobOutcome]:
        """
        添加单个模组及其依赖

        Args:
            query: 模组名称、slug、ID 或 owner/repo
            request: 解析请求

        Returns:
            闭包中每个项目一个结果

        Raises:
            ExhaustedError: 所有来源都找不到该模组
            DownloadError: 模组本身下载失败
        """
        preferred = Provider.GITHUB if is_repo_reference(query) else request.preferred
        logger.info(f"[添加] {query} (首选 {preferred}, Minecraft {request.game_version})")

        async def attempt(provider: Provider) -> Optional[ProjectSummary]:
            summary = await self.resolver.resolve(query, provider)
            if summary is None:
                return None
            descriptor = await self._client(provider).resolve_version(
                summary.project_id, request.game_version, request.loader
            )
            return summary if descriptor is not None else None

        result = await self._fallback(preferred, request.fallback).run(attempt)
        provider, summary = result.unwrap()
        logger.info(f"[解析] {query} -> {summary.title} ({provider}:{summary.project_id})")

        entries = await self.dep_resolver.collect([summary.ref], request)
        outcomes = [entry.outcome for entry in entries if not entry.resolved]
        outcomes.extend(
            await self.scheduler.fetch(
                [entry.descriptor for entry in entries if entry.resolved],
                request.destination,
            )
        )

        root_key = str(summary.ref)
        root = next((o for o in outcomes if o.key == root_key), None)
        if root is None or root.kind != OutcomeKind.DOWNLOADED:
            raise DownloadError(
                f"{summary.title} 下载失败",
                context={"project": root_key, "reason": root.reason if root else None},
            )
        logger.success(f"[完成] 已添加 {summary.title}")
        return outcomes

    async def quick_candidates(self, limit: int = 100) -> List[ProjectSummary]:
        """Modrinth 上按相关度排名的热门模组，加上额外推荐的模组"""
        return await self.resolver.top_projects(Provider.MODRINTH, limit)

    async def quick_add(
        self,
        selection: Iterable[str],
        request: ResolutionRequest,
        limit: int = 100,
    ) -> List[JobOutcome]:
        """
        从热门模组中选出若干模组并一起下载

        所有选中的模组共用一次依赖展开，共同的依赖只下载一次。

        Args:
            selection: 候选模组的 slug、项目 ID 或标题
            request: 解析请求
            limit: 热门模组数量

        Returns:
            不在候选列表中的名称各一个 NotFound 结果，其余为闭包中每个项目一个结果
        """
        candidates = await self.quick_candidates(limit)
        index: Dict[str, ProjectSummary] = {}
        for summary in candidates:
            for name in (summary.slug, summary.project_id, summary.title):
                index.setdefault(name.lower(), summary)

        outcomes: List[JobOutcome] = []
        roots = []
        for name in selection:
            summary = index.get(name.strip().lower())
            if summary is None:
                logger.warning(f"[跳过] {name} 不在候选列表中")
                outcomes.append(JobOutcome.not_found(name, "不在候选列表中"))
                continue
            roots.append(summary.ref)

        if roots:
            logger.info(f"[添加] 快速添加 {len(roots)} 个模组 (Minecraft {request.game_version})")
            entries = await self.dep_resolver.collect(roots, request)
            outcomes.extend(entry.outcome for entry in entries if not entry.resolved)
            outcomes.extend(
                await self.scheduler.fetch(
                    [entry.descriptor for entry in entries if entry.resolved],
                    request.destination,
                )
            )
        logger.success(f"[完成] 快速添加结束，共 {len(outcomes)} 项")
        return outcomes

    async def update(self, request: ResolutionRequest) -> List[JobOutcome]:
        """
        把目录中所有已启用的模组更新到目标游戏版本

        每个模组一个任务，单个模组的失败不影响其他模组。
        """
        artifacts = scan_directory(request.destination, include_disabled=False)
        logger.info(f"[更新] {len(artifacts)} 个模组 -> Minecraft {request.game_version}")
        claimed = DedupSet()
        return await self.scheduler.run(
            Job(artifact.name, self._update_job(artifact, request, claimed))
            for artifact in artifacts
        )

    def _update_job(self, artifact: Artifact, request: ResolutionRequest, claimed: DedupSet):
        async def run() -> JobOutcome:
            identity = await self.identity.resolve(artifact)
            if not identity.is_known:
                raise IdentityUnknownError(f"无法识别 {artifact.name} 的来源")

            # 未显式指定来源时，优先回到模组原本的提供方
            preferred = request.preferred if request.source_pinned else identity.provider

            async def attempt(provider: Provider) -> Optional[Path]:
                ref = identity.project_ref if provider == identity.provider else None
                if ref is None:
                    located = await self.identity.locate(artifact, provider)
                    if located is None:
                        return None
                    ref = located.project_ref
                descriptor = await self._client(provider).resolve_version(
                    ref.project_id, request.game_version, request.loader
                )
                if descriptor is None:
                    return None
                if not await claimed.claim(descriptor.ref.key):
                    return _DUPLICATE
                return await self.scheduler.download(descriptor, request.destination)

            result = await self._fallback(preferred, request.fallback).run(attempt)
            provider, path = result.unwrap()
            if path is _DUPLICATE:
                logger.info(f"[跳过] {artifact.name}: {provider} 上的同一项目已在更新")
                return JobOutcome.skipped_duplicate(artifact.name, provider)

            if request.delete_previous:
                self._delete_previous(artifact, path)
            return JobOutcome.downloaded(artifact.name, path, provider)

        return run

    def _delete_previous(self, artifact: Artifact, new_path: Path):
        if Path(new_path).resolve() == artifact.path.resolve():
            return
        try:
            os.remove(artifact.path)
        except FileNotFoundError:
            return
        except OSError as e:
            raise ArtifactIOError(
                f"无法删除旧文件: {artifact.filename}", context={"error": str(e)}
            ) from e
        logger.info(f"[删除] 旧版本 {artifact.filename}")

    async def list(self, directory: Union[str, Path]) -> List[Tuple[Artifact, Identity]]:
        """识别目录中所有模组（含已禁用）的来源"""
        artifacts = scan_directory(directory)
        semaphore = asyncio.Semaphore(self.config.max_concurrent)

        async def resolve(artifact: Artifact) -> Identity:
            async with semaphore:
                try:
                    return await self.identity.resolve(artifact)
                except (ModderError, OSError) as e:
                    logger.warning(f"[识别] {artifact.filename} 失败: {e}")
                    return Identity.unknown()

        identities = await asyncio.gather(*(resolve(a) for a in artifacts))
        return list(zip(artifacts, identities))

    def toggle(self, directory: Union[str, Path], selection: Iterable[str]):
        """启用选中的模组，禁用其余模组"""
        return self.toggler.apply(selection, scan_directory(directory))

    async def search(
        self,
        query: str,
        provider: Optional[Provider] = None,
        limit: int = 20,
    ) -> List[ProjectSummary]:
        """在提供方上搜索模组"""
        provider = provider or self.config.source
        return await self._client(provider).search_projects(query, limit)

    async def close(self):
        """关闭所有客户端"""
        await asyncio.gather(*(client.close() for client in self.clients.values()))

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
