"""
依赖处理服务

从根项目出发展开完整的依赖闭包：依赖去重、循环依赖检测、同级依赖并发解析。
"""

import asyncio
from dataclasses import dataclass
from typing import (
    TYPE_CHECKING,
    AsyncIterator,
    Hashable,
    Iterable,
    List,
    Mapping,
    Optional,
    Set,
)

from loguru import logger

from modder.exceptions import ModderError
from modder.models import (
    DependencyRef,
    JobOutcome,
    ProjectRef,
    Provider,
    ResolutionRequest,
    VersionDescriptor,
)

if TYPE_CHECKING:
    from modder.api.base import ProviderClient

_DONE = object()


class DedupSet:
    """一次解析共享的去重集合，检查与插入在同一把锁内完成"""

    def __init__(self):
        self._seen: Set[Hashable] = set()
        self._lock = asyncio.Lock()

    async def claim(self, key: Hashable) -> bool:
        """
        占用 key

        Returns:
            首次占用返回 True，已被占用返回 False
        """
        async with self._lock:
            if key in self._seen:
                return False
            self._seen.add(key)
            return True

    def __contains__(self, key: Hashable) -> bool:
        return key in self._seen

    def __len__(self) -> int:
        return len(self._seen)


@dataclass(frozen=True)
class ClosureEntry:
    """
    闭包中的一项

    解析成功时 descriptor 不为空、outcome 为 None；
    否则 outcome 记录跳过、未找到或失败的原因。
    """

    ref: ProjectRef
    descriptor: Optional[VersionDescriptor] = None
    is_root: bool = False
    outcome: Optional[JobOutcome] = None

    @property
    def resolved(self) -> bool:
        return self.descriptor is not None


class DependencyResolver:
    """依赖解析器"""

    def __init__(self, clients: Mapping[Provider, "ProviderClient"]):
        self.clients = clients

    @staticmethod
    def follows(dependency: DependencyRef, request: ResolutionRequest) -> bool:
        """只跟随必需依赖，开启 include_optional 时也跟随可选依赖"""
        if dependency.relation == "required":
            return True
        return request.include_optional and dependency.relation == "optional"

    async def expand(
        self,
        roots: Iterable[ProjectRef],
        request: ResolutionRequest,
    ) -> AsyncIterator[ClosureEntry]:
        """
        展开依赖闭包

        Args:
            roots: 根项目
            request: 解析请求（游戏版本、加载器、是否包含可选依赖）

        Yields:
            ClosureEntry，按解析完成顺序产出
        """
        dedup = DedupSet()
        queue: asyncio.Queue = asyncio.Queue()

        async def produce():
            try:
                await asyncio.gather(
                    *(self._visit(root, request, dedup, queue, True) for root in roots)
                )
            finally:
                queue.put_nowait(_DONE)

        producer = asyncio.create_task(produce())
        try:
            while True:
                entry = await queue.get()
                if entry is _DONE:
                    break
                yield entry
            # 让解析过程中的意外异常传给调用方
            await producer
        finally:
            if not producer.done():
                producer.cancel()

    async def collect(
        self,
        roots: Iterable[ProjectRef],
        request: ResolutionRequest,
    ) -> List[ClosureEntry]:
        """把闭包收集为列表"""
        return [entry async for entry in self.expand(roots, request)]

    async def _visit(
        self,
        ref: ProjectRef,
        request: ResolutionRequest,
        dedup: DedupSet,
        queue: asyncio.Queue,
        is_root: bool = False,
    ):
        key = str(ref)
        if not await dedup.claim(ref.key):
            logger.debug(f"[跳过] {key} 已在闭包中")
            queue.put_nowait(
                ClosureEntry(ref, is_root=is_root, outcome=JobOutcome.skipped_duplicate(key))
            )
            return

        client = self.clients.get(ref.provider)
        if client is None:
            queue.put_nowait(
                ClosureEntry(
                    ref,
                    is_root=is_root,
                    outcome=JobOutcome.failed(key, f"未配置 {ref.provider} 客户端"),
                )
            )
            return

        try:
            descriptor = await client.resolve_version(
                ref.project_id, request.game_version, request.loader
            )
        except ModderError as e:
            logger.warning(f"[错误] 解析 {key} 失败: {e}")
            queue.put_nowait(
                ClosureEntry(ref, is_root=is_root, outcome=JobOutcome.failed(key, str(e)))
            )
            return

        if descriptor is None:
            reason = f"没有适用于 {request.game_version}/{request.loader} 的版本"
            logger.warning(f"[跳过] {key} {reason}")
            queue.put_nowait(
                ClosureEntry(ref, is_root=is_root, outcome=JobOutcome.not_found(key, reason))
            )
            return

        queue.put_nowait(ClosureEntry(ref, descriptor=descriptor, is_root=is_root))

        children = [
            dependency.ref
            for dependency in descriptor.dependencies
            if self.follows(dependency, request)
        ]
        if children:
            logger.debug(f"[依赖] {key} -> {', '.join(str(c) for c in children)}")
            await asyncio.gather(
                *(self._visit(child, request, dedup, queue) for child in children)
            )
