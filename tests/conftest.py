"""
测试公共夹具

FakeClient 在内存中模拟提供方，下载地址全部为 file:// 地址，测试不访问网络。
"""

import hashlib
import zipfile
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

import pytest

from modder.api.base import ProviderClient
from modder.exceptions import TransportError
from modder.models import (
    DependencyRef,
    FileRef,
    ModLoader,
    Provider,
    ProjectSummary,
    VersionDescriptor,
)
from modder.services.version_matcher import VersionMatcher


def make_jar(path: Path, entries: Optional[Dict[str, bytes]] = None) -> Path:
    """写一个最小的 jar（zip）文件"""
    path.parent.mkdir(parents=True, exist_ok=True)
    entries = entries or {"fabric.mod.json": b'{"id": "%s"}' % path.stem.encode()}
    with zipfile.ZipFile(path, "w") as archive:
        for name, data in entries.items():
            archive.writestr(name, data, zipfile.ZIP_DEFLATED)
    return path


def sha512_of(path: Path) -> str:
    return hashlib.sha512(Path(path).read_bytes()).hexdigest()


def make_descriptor(
    provider: Provider,
    project_id: str,
    source: Optional[Path] = None,
    filename: Optional[str] = None,
    game_versions: Iterable[str] = ("1.21.4",),
    loaders: Iterable[ModLoader] = (ModLoader.FABRIC,),
    dependencies: Iterable[Union[str, DependencyRef]] = (),
    version_id: str = "v1",
) -> VersionDescriptor:
    files = []
    if source is not None:
        files.append(
            FileRef(
                url=Path(source).resolve().as_uri(),
                filename=filename or Path(source).name,
                primary=True,
            )
        )
    return VersionDescriptor(
        provider=provider,
        project_id=project_id,
        version_id=version_id,
        name=f"{project_id} {version_id}",
        game_versions=list(game_versions),
        loaders=list(loaders),
        files=files,
        dependencies=[
            dep if isinstance(dep, DependencyRef) else DependencyRef(provider, dep)
            for dep in dependencies
        ],
    )


class FakeClient(ProviderClient):
    """
    内存中的提供方客户端

    versions 的值为版本列表或异常实例；异常会在 resolve_version 时抛出。
    """

    def __init__(
        self,
        provider: Provider,
        versions: Optional[Dict[str, Union[List[VersionDescriptor], Exception]]] = None,
        by_hash: Optional[Dict[str, VersionDescriptor]] = None,
        by_fingerprint: Optional[Dict[int, VersionDescriptor]] = None,
        projects: Optional[List[ProjectSummary]] = None,
        lookup_error: Optional[Exception] = None,
    ):
        super().__init__()
        self.provider = provider
        self.versions = versions or {}
        self.by_hash = by_hash or {}
        self.by_fingerprint = by_fingerprint or {}
        self.projects = projects or []
        self.lookup_error = lookup_error
        self.matcher = VersionMatcher()
        self.resolve_calls: List[str] = []
        self.lookup_calls = 0
        self.search_calls: List[tuple] = []

    async def search_projects(self, query: str, limit: int = 20, offset: int = 0):
        self.search_calls.append((query, limit, offset))
        lowered = query.lower()
        hits = [
            p
            for p in self.projects
            if lowered in p.slug.lower() or lowered in p.title.lower()
        ]
        return hits[offset : offset + limit]

    async def resolve_version(self, project_id, game_version, loader=ModLoader.ANY):
        self.resolve_calls.append(project_id)
        value = self.versions.get(project_id, [])
        if isinstance(value, Exception):
            raise value
        return self.matcher.pick(value, game_version, loader)

    async def identify_by_hash(self, digest: str):
        self.lookup_calls += 1
        if self.lookup_error is not None:
            raise self.lookup_error
        return self.by_hash.get(digest)

    async def identify_by_fingerprint(self, value: int):
        self.lookup_calls += 1
        if self.lookup_error is not None:
            raise self.lookup_error
        return self.by_fingerprint.get(value)


@pytest.fixture
def mods_dir(tmp_path) -> Path:
    path = tmp_path / "mods"
    path.mkdir()
    return path


@pytest.fixture
def remote_dir(tmp_path) -> Path:
    """模拟远端文件的目录"""
    path = tmp_path / "remote"
    path.mkdir()
    return path


@pytest.fixture
def transport_error() -> TransportError:
    return TransportError("连接被重置")
