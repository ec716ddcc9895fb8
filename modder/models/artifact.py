"""
本地模组文件模型

Artifact 表示模组目录中的一个文件，Identity 表示其来源识别结果。
启用状态只由文件名后缀决定，不另存状态。
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple, Union

import aiofiles

from modder.models.api import Provider, ProjectRef, VersionDescriptor

ARTIFACT_EXTENSION = ".jar"
DISABLED_SUFFIX = ".disabled"


class IdentityKind(Enum):
    """来源识别结果类型"""

    UNRESOLVED = "unresolved"
    CONTENT_ADDRESSED = "content_addressed"
    FINGERPRINTED = "fingerprinted"
    PROVENANCE_TAGGED = "provenance_tagged"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Identity:
    """
    模组来源

    - CONTENT_ADDRESSED: value 为内容哈希
    - FINGERPRINTED: value 为指纹（十进制字符串）
    - PROVENANCE_TAGGED: value 为来源标记中的项目引用
    """

    kind: IdentityKind
    provider: Optional[Provider] = None
    value: Optional[str] = None
    descriptor: Optional[VersionDescriptor] = field(default=None, compare=False)

    @classmethod
    def unresolved(cls) -> "Identity":
        return cls(IdentityKind.UNRESOLVED)

    @classmethod
    def unknown(cls) -> "Identity":
        return cls(IdentityKind.UNKNOWN)

    @classmethod
    def content_addressed(
        cls, digest: str, descriptor: VersionDescriptor
    ) -> "Identity":
        return cls(
            IdentityKind.CONTENT_ADDRESSED, descriptor.provider, digest, descriptor
        )

    @classmethod
    def fingerprinted(
        cls, fingerprint: int, descriptor: VersionDescriptor
    ) -> "Identity":
        return cls(
            IdentityKind.FINGERPRINTED, descriptor.provider, str(fingerprint), descriptor
        )

    @classmethod
    def provenance_tagged(cls, provider: Provider, repo_ref: str) -> "Identity":
        return cls(IdentityKind.PROVENANCE_TAGGED, provider, repo_ref)

    @property
    def is_known(self) -> bool:
        return self.kind not in (IdentityKind.UNRESOLVED, IdentityKind.UNKNOWN)

    @property
    def project_ref(self) -> Optional[ProjectRef]:
        """该来源对应的项目引用"""
        if self.descriptor is not None:
            return self.descriptor.ref
        if self.kind == IdentityKind.PROVENANCE_TAGGED and self.provider and self.value:
            return ProjectRef(self.provider, self.value)
        return None

    def __str__(self) -> str:
        if not self.is_known:
            return self.kind.value
        return f"{self.kind.value}({self.provider.value}:{self.value})"


class Artifact:
    """模组目录中的单个文件"""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._content: Optional[bytes] = None
        self._signature: Optional[Tuple[int, int]] = None
        self._identity = Identity.unresolved()

    def __repr__(self) -> str:
        return f"Artifact({str(self.path)!r})"

    @property
    def filename(self) -> str:
        return self.path.name

    @property
    def enabled(self) -> bool:
        return not self.path.name.endswith(DISABLED_SUFFIX)

    @property
    def name(self) -> str:
        """启用形式的文件名（不带 .disabled）"""
        filename = self.path.name
        if filename.endswith(DISABLED_SUFFIX):
            return filename[: -len(DISABLED_SUFFIX)]
        return filename

    @property
    def active_path(self) -> Path:
        return self.path.with_name(self.name)

    @property
    def inactive_path(self) -> Path:
        return self.path.with_name(self.name + DISABLED_SUFFIX)

    def _stat_signature(self) -> Tuple[int, int]:
        stat = os.stat(self.path)
        return (stat.st_size, stat.st_mtime_ns)

    def _check_fresh(self):
        """文件内容变化后丢弃缓存的内容与来源"""
        if self._signature is None:
            return
        try:
            current = self._stat_signature()
        except OSError:
            current = None
        if current != self._signature:
            self._content = None
            self._signature = None
            self._identity = Identity.unresolved()

    async def read_bytes(self) -> bytes:
        """惰性读取文件内容"""
        self._check_fresh()
        if self._content is None:
            signature = self._stat_signature()
            async with aiofiles.open(self.path, "rb") as f:
                self._content = await f.read()
            self._signature = signature
        return self._content

    @property
    def identity(self) -> Identity:
        self._check_fresh()
        return self._identity

    def remember(self, identity: Identity):
        """记录来源；只在文件内容未变时有效"""
        if self._signature is None:
            self._signature = self._stat_signature()
        self._identity = identity

    def moved_to(self, path: Union[str, Path]):
        """重命名后更新路径，内容与来源保持不变"""
        self.path = Path(path)
        if self._signature is not None:
            try:
                self._signature = self._stat_signature()
            except OSError:
                self._signature = None


def is_artifact_name(filename: str) -> bool:
    return filename.endswith(ARTIFACT_EXTENSION) or filename.endswith(
        ARTIFACT_EXTENSION + DISABLED_SUFFIX
    )


def scan_directory(directory: Union[str, Path], include_disabled: bool = True) -> List[Artifact]:
    """
    扫描目录中的模组文件

    Args:
        directory: 模组目录
        include_disabled: 是否包含 .disabled 文件

    Returns:
        按文件名排序的 Artifact 列表
    """
    directory = Path(directory)
    artifacts = []
    for entry in sorted(os.scandir(directory), key=lambda e: e.name):
        if not entry.is_file() or not is_artifact_name(entry.name):
            continue
        artifact = Artifact(entry.path)
        if not include_disabled and not artifact.enabled:
            continue
        artifacts.append(artifact)
    return artifacts
