"""
下载管理器

负责单个文件的下载、重试、校验与原子落盘，并记录下载统计。
并发由调度器控制，这里不再维护工作队列。
"""

import asyncio
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union
from urllib.parse import unquote, urlparse

import aiohttp
import aiofiles
from loguru import logger

from modder.download.verifier import FileVerifier
from modder.exceptions import (
    ArtifactIOError,
    DownloadError,
    DownloadNetworkError,
    DownloadChecksumError,
)
from modder.models import FileRef

PART_SUFFIX = ".part"


@dataclass
class DownloadStats:
    """下载统计"""

    total: int = 0
    completed: int = 0
    failed: int = 0
    skipped: int = 0
    bytes_downloaded: int = 0


def filename_from_url(url: str) -> str:
    """取 URL 路径最后一段并做百分号解码"""
    return unquote(urlparse(url).path.rsplit("/", 1)[-1])


class DownloadManager:
    """下载管理器"""

    def __init__(
        self,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        timeout: float = 30.0,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = timeout
        self.verifier = FileVerifier()
        self.stats = DownloadStats()
        self._session = session
        self._owned_session = session is None

    @property
    def session(self) -> aiohttp.ClientSession:
        """获取或创建 aiohttp session"""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=None, sock_read=self.timeout)
            )
        return self._session

    async def download_file(
        self,
        file_ref: FileRef,
        download_dir: Union[str, Path],
    ) -> Path:
        """
        下载单个文件

        先写入 <文件名>.part，校验通过后再替换到目标路径，
        因此目标路径上不会出现写了一半的文件。

        Returns:
            下载后的文件路径

        Raises:
            DownloadError: 下载或校验最终失败
        """
        download_dir = Path(download_dir)
        filename = file_ref.filename or filename_from_url(file_ref.url)
        if not filename or "/" in filename or filename in (".", ".."):
            raise DownloadError(f"无效的文件名: {filename!r}", context={"url": file_ref.url})

        file_path = download_dir / filename
        self.stats.total += 1

        try:
            download_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            self.stats.failed += 1
            raise ArtifactIOError(
                f"无法创建目录: {download_dir}", context={"error": str(e)}
            ) from e

        # 处理本地文件
        if file_ref.url.startswith("file://"):
            return await self._copy_local_file(file_ref, file_path)

        # 检查文件是否已存在且校验通过
        if file_ref.hashes and await self.verifier.is_valid(str(file_path), file_ref.hashes):
            self.stats.skipped += 1
            logger.info(f"[跳过] '{filename}' 已存在且校验通过")
            return file_path

        if not file_ref.url:
            self.stats.failed += 1
            raise DownloadError(f"'{filename}' 没有可用的下载地址")

        logger.info(f"[开始] 下载: {filename}")
        part_path = file_path.with_name(filename + PART_SUFFIX)

        for attempt in range(self.max_retries + 1):
            try:
                await self._fetch(file_ref.url, part_path, filename, attempt)

                if not await self.verifier.verify(str(part_path), file_ref.hashes):
                    raise DownloadChecksumError(
                        f"哈希校验失败: {filename}",
                        context={"file": filename, "expected": file_ref.hashes},
                    )

                os.replace(part_path, file_path)
                self.stats.completed += 1
                logger.success(f"[完成] '{filename}' 下载完成")
                return file_path

            except (DownloadError, aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
                # 清理不完整的文件
                _remove_quietly(part_path)

                if attempt < self.max_retries:
                    delay = self.retry_delay * (2**attempt)
                    logger.warning(
                        f"[重试] 下载 '{filename}' 失败 (第 {attempt + 1} 次): {e}. "
                        f"{delay:.1f}s 后重试..."
                    )
                    await asyncio.sleep(delay)
                else:
                    self.stats.failed += 1
                    logger.error(f"[错误] 下载 '{filename}' 最终失败: {e}")

                    if isinstance(e, DownloadError):
                        raise
                    raise DownloadNetworkError(
                        f"下载失败: {filename}", context={"error": str(e)}
                    ) from e

        raise DownloadError(f"下载失败: {filename}")

    async def _fetch(self, url: str, part_path: Path, filename: str, attempt: int):
        async with self.session.get(url) as response:
            if response.status != 200:
                raise DownloadNetworkError(
                    f"HTTP {response.status}",
                    context={"url": url, "status": response.status},
                )

            total_size = int(response.headers.get("Content-Length", 0))
            if attempt == 0 and total_size:
                logger.debug(f"[信息] {filename} 大小: {total_size / (1024 * 1024):.2f} MB")

            async with aiofiles.open(part_path, "wb") as f:
                downloaded = 0
                last_percent = 0.0

                async for chunk in response.content.iter_chunked(8192):
                    await f.write(chunk)
                    downloaded += len(chunk)
                    self.stats.bytes_downloaded += len(chunk)

                    # 进度回调
                    if total_size > 0:
                        percent = (downloaded / total_size) * 100
                        if percent - last_percent >= 5:
                            logger.debug(f"[进度] {filename}: {percent:.1f}%")
                            last_percent = percent

    async def _copy_local_file(self, file_ref: FileRef, dest_path: Path) -> Path:
        """复制本地文件"""
        src_path = unquote(urlparse(file_ref.url).path)
        logger.info(f"[复制] 本地文件: {os.path.basename(src_path)}")
        part_path = dest_path.with_name(dest_path.name + PART_SUFFIX)
        try:
            await asyncio.to_thread(shutil.copyfile, src_path, part_path)
            if not await self.verifier.verify(str(part_path), file_ref.hashes):
                raise DownloadChecksumError(
                    f"哈希校验失败: {dest_path.name}",
                    context={"file": dest_path.name, "expected": file_ref.hashes},
                )
            os.replace(part_path, dest_path)
        except DownloadError:
            _remove_quietly(part_path)
            self.stats.failed += 1
            raise
        except OSError as e:
            _remove_quietly(part_path)
            self.stats.failed += 1
            logger.error(f"[错误] 复制文件失败: {e}")
            raise ArtifactIOError("复制文件失败", context={"error": str(e)}) from e

        self.stats.completed += 1
        logger.success(f"[完成] 本地文件复制完成: {dest_path.name}")
        return dest_path

    def get_stats(self) -> DownloadStats:
        """获取下载统计"""
        return self.stats

    async def close(self):
        """关闭 session"""
        if self._owned_session and self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


def _remove_quietly(path: Path):
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
