"""
API 数据模型

定义提供方、加载器、项目信息、版本信息等数据类，
以及从各提供方响应构造版本信息的方法。
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from modder.exceptions import ParseError


class LookupStrategy(Enum):
    """提供方识别本地文件的方式"""

    CONTENT_HASH = "content_hash"
    FINGERPRINT = "fingerprint"
    REPO_REFERENCE = "repo_reference"


class Provider(Enum):
    """内容提供方，枚举顺序即回退顺序"""

    MODRINTH = "modrinth"
    CURSEFORGE = "curseforge"
    GITHUB = "github"

    @property
    def lookup(self) -> LookupStrategy:
        return _LOOKUP[self]

    @property
    def reference_key(self) -> str:
        """来源标记中保存项目引用的键名"""
        return _REFERENCE_KEYS[self]

    @classmethod
    def parse(cls, value: str) -> "Provider":
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ValueError(f"未知的来源: {value}") from None

    def __str__(self) -> str:
        return self.value


_LOOKUP = {
    Provider.MODRINTH: LookupStrategy.CONTENT_HASH,
    Provider.CURSEFORGE: LookupStrategy.FINGERPRINT,
    Provider.GITHUB: LookupStrategy.REPO_REFERENCE,
}

_REFERENCE_KEYS = {
    Provider.MODRINTH: "project",
    Provider.CURSEFORGE: "mod_id",
    Provider.GITHUB: "repo",
}


class ModLoader(Enum):
    """模组加载器"""

    FORGE = "forge"
    FABRIC = "fabric"
    QUILT = "quilt"
    NEOFORGE = "neoforge"
    CAULDRON = "cauldron"
    LITELOADER = "liteloader"
    ANY = "any"

    @property
    def curseforge_id(self) -> int:
        return _CURSEFORGE_LOADER_IDS[self]

    @classmethod
    def parse(cls, value: str) -> "ModLoader":
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ValueError(f"未知的加载器: {value}") from None

    @classmethod
    def from_name(cls, value: str) -> Optional["ModLoader"]:
        """宽松解析，无法识别时返回 None"""
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None

    def __str__(self) -> str:
        return self.value


_CURSEFORGE_LOADER_IDS = {
    ModLoader.ANY: 0,
    ModLoader.FORGE: 1,
    ModLoader.CAULDRON: 2,
    ModLoader.LITELOADER: 3,
    ModLoader.FABRIC: 4,
    ModLoader.QUILT: 5,
    ModLoader.NEOFORGE: 6,
}

# CurseForge 文件依赖 relationType
CURSEFORGE_RELATIONS = {
    1: "embedded",
    2: "optional",
    3: "required",
    4: "tool",
    5: "incompatible",
    6: "include",
}

# CurseForge 文件哈希 algo
CURSEFORGE_HASH_ALGOS = {1: "sha1", 2: "md5"}


@dataclass(frozen=True)
class ProjectRef:
    """提供方范围内的项目引用"""

    provider: Provider
    project_id: str

    @property
    def key(self) -> Tuple[Provider, str]:
        return (self.provider, self.project_id)

    def __str__(self) -> str:
        return f"{self.provider.value}:{self.project_id}"


@dataclass
class ProjectSummary:
    """搜索结果中的项目概要"""

    provider: Provider
    project_id: str
    slug: str
    title: str
    description: str = ""

    @property
    def ref(self) -> ProjectRef:
        return ProjectRef(self.provider, self.project_id)


@dataclass
class FileRef:
    """文件信息"""

    url: str
    filename: str
    hashes: Dict[str, str] = field(default_factory=dict)
    size: int = 0
    primary: bool = False

    @property
    def sha1(self) -> Optional[str]:
        return self.hashes.get("sha1")

    @property
    def sha512(self) -> Optional[str]:
        return self.hashes.get("sha512")


@dataclass(frozen=True)
class DependencyRef:
    """
    依赖引用

    相等性只取决于 (provider, project_id)，与版本和关系类型无关。
    """

    provider: Provider
    project_id: str
    relation: str = field(default="required", compare=False)

    @property
    def ref(self) -> ProjectRef:
        return ProjectRef(self.provider, self.project_id)

    @property
    def key(self) -> Tuple[Provider, str]:
        return (self.provider, self.project_id)


@dataclass
class VersionDescriptor:
    """
    模组版本信息。
    """

    provider: Provider
    project_id: str
    version_id: str
    name: str = ""
    game_versions: List[str] = field(default_factory=list)
    loaders: List[ModLoader] = field(default_factory=list)
    files: List[FileRef] = field(default_factory=list)
    dependencies: List[DependencyRef] = field(default_factory=list)

    @property
    def ref(self) -> ProjectRef:
        return ProjectRef(self.provider, self.project_id)

    @property
    def primary_file(self) -> Optional[FileRef]:
        """获取主文件信息，没有标记 primary 时取第一个"""
        if not self.files:
            return None
        for file in self.files:
            if file.primary:
                return file
        return self.files[0]

    @classmethod
    def from_modrinth(cls, data: dict) -> "VersionDescriptor":
        """
        将 Modrinth API 返回的版本信息转换为 VersionDescriptor 对象。
        """
        try:
            files = [
                FileRef(
                    url=file["url"],
                    filename=file["filename"],
                    hashes=dict(file.get("hashes") or {}),
                    size=file.get("size", 0),
                    primary=file.get("primary", False),
                )
                for file in data.get("files") or []
            ]

            dependencies = [
                DependencyRef(
                    provider=Provider.MODRINTH,
                    project_id=dep["project_id"],
                    relation=dep.get("dependency_type") or "required",
                )
                for dep in data.get("dependencies") or []
                # 只有 version_id 的依赖无法按项目去重
                if dep.get("project_id")
            ]

            loaders = [
                loader
                for loader in (
                    ModLoader.from_name(name) for name in data.get("loaders") or []
                )
                if loader is not None
            ]

            return cls(
                provider=Provider.MODRINTH,
                project_id=data["project_id"],
                version_id=data["id"],
                name=data.get("version_number") or data.get("name") or "",
                game_versions=list(data.get("game_versions") or []),
                loaders=loaders,
                files=files,
                dependencies=dependencies,
            )
        except (KeyError, TypeError, AttributeError) as e:
            raise ParseError(
                f"无法解析 Modrinth 版本信息: {e}",
                context={"provider": Provider.MODRINTH.value},
            ) from e

    @classmethod
    def from_curseforge(cls, data: dict) -> "VersionDescriptor":
        """
        将 CurseForge 文件信息转换为 VersionDescriptor 对象。

        CurseForge 把加载器名称混在 gameVersions 中，这里将其拆开。
        """
        try:
            game_versions = []
            loaders = []
            for name in data.get("gameVersions") or []:
                loader = ModLoader.from_name(name)
                if loader is not None:
                    loaders.append(loader)
                else:
                    game_versions.append(name)

            hashes = {}
            for item in data.get("hashes") or []:
                algo = CURSEFORGE_HASH_ALGOS.get(item.get("algo"))
                if algo:
                    hashes[algo] = item["value"]

            files = [
                FileRef(
                    url=data.get("downloadUrl") or "",
                    filename=data["fileName"],
                    hashes=hashes,
                    size=data.get("fileLength", 0),
                    primary=True,
                )
            ]

            dependencies = [
                DependencyRef(
                    provider=Provider.CURSEFORGE,
                    project_id=str(dep["modId"]),
                    relation=CURSEFORGE_RELATIONS.get(dep.get("relationType"), "unknown"),
                )
                for dep in data.get("dependencies") or []
            ]

            return cls(
                provider=Provider.CURSEFORGE,
                project_id=str(data["modId"]),
                version_id=str(data["id"]),
                name=data.get("displayName") or data["fileName"],
                game_versions=game_versions,
                loaders=loaders,
                files=files,
                dependencies=dependencies,
            )
        except (KeyError, TypeError, AttributeError) as e:
            raise ParseError(
                f"无法解析 CurseForge 文件信息: {e}",
                context={"provider": Provider.CURSEFORGE.value},
            ) from e

    @classmethod
    def from_github(
        cls,
        repo: str,
        release: Dict[str, Any],
        asset: Dict[str, Any],
        game_versions: Optional[List[str]] = None,
        loaders: Optional[List[ModLoader]] = None,
    ) -> "VersionDescriptor":
        """由 GitHub Release 及其选中的资源文件构造版本信息"""
        try:
            digest = asset.get("digest") or ""
            hashes = {}
            # digest 形如 "sha256:abcd..."
            if ":" in digest:
                algo, _, value = digest.partition(":")
                hashes[algo] = value

            return cls(
                provider=Provider.GITHUB,
                project_id=repo,
                version_id=str(release.get("tag_name") or release["id"]),
                name=release.get("name") or release.get("tag_name") or "",
                game_versions=list(game_versions or []),
                loaders=list(loaders or []),
                files=[
                    FileRef(
                        url=asset["browser_download_url"],
                        filename=asset["name"],
                        hashes=hashes,
                        size=asset.get("size", 0),
                        primary=True,
                    )
                ],
                dependencies=[],
            )
        except (KeyError, TypeError, AttributeError) as e:
            raise ParseError(
                f"无法解析 GitHub Release 信息: {e}",
                context={"provider": Provider.GITHUB.value, "repo": repo},
            ) from e
