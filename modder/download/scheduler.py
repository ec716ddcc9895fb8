"""
并发调度器

每个任务独立运行，单个任务的异常只影响它自己的结果，不会取消其他任务。
"""

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Iterable, List, Mapping, Optional, Union

from loguru import logger

from modder.exceptions import IdentityUnknownError, ModderError, VersionNotFoundError
from modder.models import JobOutcome, LookupStrategy, VersionDescriptor, summarize
from modder.services.provenance import ProvenanceStamper


@dataclass
class Job:
    """调度任务，run 返回该任务的结果"""

    key: str
    run: Callable[[], Awaitable[JobOutcome]]


class FanOutScheduler:
    """并发调度器"""

    def __init__(
        self,
        max_concurrent: int = 5,
        clients: Optional[Mapping] = None,
        stamper: Optional[ProvenanceStamper] = None,
    ):
        self.max_concurrent = max_concurrent
        self.clients = clients or {}
        self.stamper = stamper or ProvenanceStamper()

    async def run(self, jobs: Iterable[Job]) -> List[JobOutcome]:
        """
        并发执行全部任务并等待完成

        Returns:
            每个任务一个结果，顺序与 jobs 一致
        """
        jobs = list(jobs)
        if not jobs:
            return []

        semaphore = asyncio.Semaphore(self.max_concurrent)

        async def guarded(job: Job) -> JobOutcome:
            async with semaphore:
                return await self._run_one(job)

        outcomes = await asyncio.gather(*(guarded(job) for job in jobs))

        counts = summarize(outcomes)
        logger.info(
            "[完成] "
            + ", ".join(f"{kind.value}: {count}" for kind, count in counts.items() if count)
        )
        return list(outcomes)

    async def _run_one(self, job: Job) -> JobOutcome:
        try:
            return await job.run()
        except (VersionNotFoundError, IdentityUnknownError) as e:
            logger.warning(f"[跳过] {job.key}: {e.message}")
            return JobOutcome.not_found(job.key, e.message)
        except ModderError as e:
            logger.error(f"[错误] {job.key}: {e}")
            return JobOutcome.failed(job.key, str(e))
        except Exception as e:
            logger.exception(f"[错误] {job.key} 出现意外错误")
            return JobOutcome.failed(job.key, repr(e))

    async def fetch(
        self,
        descriptors: Iterable[VersionDescriptor],
        dest_dir: Union[str, Path],
    ) -> List[JobOutcome]:
        """
        并发下载一组版本的主文件

        GitHub 等无法按内容反查来源的提供方，下载后写入来源标记。

        Args:
            descriptors: 已解析的版本
            dest_dir: 目标目录

        Returns:
            每个版本一个结果
        """
        return await self.run(
            Job(str(descriptor.ref), self._download_job(descriptor, Path(dest_dir)))
            for descriptor in descriptors
        )

    def _download_job(self, descriptor: VersionDescriptor, dest_dir: Path):
        async def run() -> JobOutcome:
            path = await self.download(descriptor, dest_dir)
            return JobOutcome.downloaded(str(descriptor.ref), path, descriptor.provider)

        return run

    async def download(self, descriptor: VersionDescriptor, dest_dir: Path) -> Path:
        """下载单个版本的主文件，必要时写入来源标记"""
        key = str(descriptor.ref)
        file_ref = descriptor.primary_file
        if file_ref is None or not file_ref.url:
            raise VersionNotFoundError(
                f"{key} 的版本 {descriptor.name} 没有可下载的文件",
                context={"version": descriptor.version_id},
            )

        client = self.clients.get(descriptor.provider)
        if client is None:
            raise ModderError(f"未配置 {descriptor.provider} 客户端")

        logger.info(f"[下载] {file_ref.filename} ({descriptor.provider})")
        path = await client.download(file_ref, dest_dir)

        if descriptor.provider.lookup == LookupStrategy.REPO_REFERENCE:
            await self.stamper.stamp(path, descriptor.provider, descriptor.project_id)

        return path
