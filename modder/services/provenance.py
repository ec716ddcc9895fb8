"""
来源标记

对无法通过内容查询来源的模组（如 GitHub Release），
在 jar 内写入 META-INF/MODDER.MF 记录来源与项目引用。
"""

import asyncio
import copy
import os
import shutil
import tempfile
import zipfile
from pathlib import Path
from typing import Dict, Optional, Tuple, Union

from loguru import logger

from modder.exceptions import StampError
from modder.models import Provider

METADATA_ENTRY = "META-INF/MODDER.MF"
SOURCE_KEY = "source"

PathLike = Union[str, Path]


def render_metadata(pairs: Dict[str, str]) -> bytes:
    return "".join(f"{key}: {value}\n" for key, value in pairs.items()).encode("utf-8")


def parse_metadata(raw: bytes) -> Dict[str, str]:
    """解析 key: value 行，值中允许出现冒号"""
    pairs = {}
    for line in raw.decode("utf-8").splitlines():
        key, sep, value = line.partition(":")
        if not sep:
            continue
        pairs[key.strip()] = value.strip()
    return pairs


def _check_value(name: str, value: str):
    if not value or value != value.strip() or "\n" in value or "\r" in value:
        raise ValueError(f"{name} 不能为空、换行或首尾空白: {value!r}")


def stamp(
    container_path: PathLike,
    provider: Provider,
    repo_ref: str,
    extra: Optional[Dict[str, str]] = None,
) -> None:
    """
    写入来源标记

    逐条复制原有条目（名称、内容、压缩方式、时间戳与属性不变），
    追加唯一的元数据条目，再原子替换原文件。已有的标记会被替换。

    Raises:
        ValueError: 引用无法原样写回
        StampError: 归档读写失败，原文件保持不变
    """
    _check_value("repo_ref", repo_ref)
    pairs = {SOURCE_KEY: provider.value, provider.reference_key: repo_ref}
    for key, value in (extra or {}).items():
        _check_value(key, value)
        pairs.setdefault(key, value)

    path = Path(container_path)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as handle:
            with zipfile.ZipFile(path) as source, zipfile.ZipFile(handle, "w") as target:
                target.comment = source.comment
                for info in source.infolist():
                    if info.filename == METADATA_ENTRY:
                        continue
                    data = source.read(info)
                    target.writestr(copy.copy(info), data)
                target.writestr(METADATA_ENTRY, render_metadata(pairs), zipfile.ZIP_DEFLATED)
        # mkstemp 创建的文件权限为 0600
        shutil.copymode(path, tmp_name)
        os.replace(tmp_name, path)
    except (OSError, zipfile.BadZipFile, zipfile.LargeZipFile) as e:
        try:
            os.remove(tmp_name)
        except FileNotFoundError:
            pass
        raise StampError(
            f"写入来源标记失败: {path.name}",
            context={"path": str(path), "error": str(e)},
        ) from e
    except BaseException:
        try:
            os.remove(tmp_name)
        except FileNotFoundError:
            pass
        raise

    logger.debug(f"[标记] {path.name} <- {provider.value}:{repo_ref}")


def read_metadata(container_path: PathLike) -> Optional[Dict[str, str]]:
    """读取全部标记键值；文件不是归档或没有标记时返回 None"""
    try:
        with zipfile.ZipFile(container_path) as archive:
            raw = archive.read(METADATA_ENTRY)
    except KeyError:
        return None
    except (OSError, zipfile.BadZipFile) as e:
        logger.debug(f"读取来源标记失败 {container_path}: {e}")
        return None
    try:
        return parse_metadata(raw)
    except UnicodeDecodeError:
        return None


def read_stamp(container_path: PathLike) -> Optional[Tuple[Provider, str]]:
    """读取 (来源, 项目引用)"""
    metadata = read_metadata(container_path)
    if not metadata or SOURCE_KEY not in metadata:
        return None
    try:
        provider = Provider.parse(metadata[SOURCE_KEY])
    except ValueError:
        return None
    repo_ref = metadata.get(provider.reference_key)
    if not repo_ref:
        return None
    return provider, repo_ref


class ProvenanceStamper:
    """在工作线程中执行归档读写"""

    async def stamp(
        self,
        container_path: PathLike,
        provider: Provider,
        repo_ref: str,
        extra: Optional[Dict[str, str]] = None,
    ) -> None:
        await asyncio.to_thread(stamp, container_path, provider, repo_ref, extra)

    async def read_stamp(self, container_path: PathLike) -> Optional[Tuple[Provider, str]]:
        return await asyncio.to_thread(read_stamp, container_path)

    async def read_metadata(self, container_path: PathLike) -> Optional[Dict[str, str]]:
        return await asyncio.to_thread(read_metadata, container_path)
