"""
版本匹配服务

实现 Minecraft 版本匹配、模组加载器匹配，以及 GitHub Release 资源文件名的结构化解析。
"""

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple, Union

from modder.models import ModLoader, VersionDescriptor

_TOKEN_SPLIT = re.compile(r"[-_+\s]+")
_GAME_VERSION = re.compile(r"^(?:mc)?(\d+\.\d+(?:\.\d+)?)$", re.IGNORECASE)
_AUXILIARY = {"sources", "source", "dev", "javadoc"}


@dataclass(frozen=True)
class AssetMetadata:
    """从资源文件名中解析出的结构化信息"""

    name: str
    game_versions: Tuple[str, ...]
    loaders: Tuple[ModLoader, ...]
    classifier: Optional[str] = None

    @property
    def is_jar(self) -> bool:
        return self.name.lower().endswith(".jar")

    @property
    def is_auxiliary(self) -> bool:
        """源码包、开发包等不应被安装的附属文件"""
        return self.classifier is not None


class VersionMatcher:
    """版本匹配器"""

    def matches(
        self,
        version: str,
        target_versions: Union[str, List[str]],
    ) -> bool:
        """
        检查版本是否匹配目标版本列表

        Args:
            version: 要检查的版本
            target_versions: 目标版本或版本列表

        Returns:
            是否匹配
        """
        if isinstance(target_versions, str):
            target_versions = [target_versions]

        return version in target_versions

    def loader_matches(self, loader: ModLoader, loaders: Iterable[ModLoader]) -> bool:
        """未声明加载器的版本视为与任何加载器兼容"""
        loaders = list(loaders)
        if loader == ModLoader.ANY or not loaders:
            return True
        return loader in loaders or ModLoader.ANY in loaders

    def accepts(
        self,
        descriptor: VersionDescriptor,
        game_version: str,
        loader: ModLoader,
    ) -> bool:
        """版本是否适用于目标游戏版本和加载器"""
        if descriptor.game_versions and not self.matches(
            game_version, descriptor.game_versions
        ):
            return False
        return self.loader_matches(loader, descriptor.loaders)

    def pick(
        self,
        descriptors: Iterable[VersionDescriptor],
        game_version: str,
        loader: ModLoader,
    ) -> Optional[VersionDescriptor]:
        """按提供方给出的顺序取第一个匹配的版本"""
        for descriptor in descriptors:
            if self.accepts(descriptor, game_version, loader):
                return descriptor
        return None

    @staticmethod
    def describe_asset(name: str) -> AssetMetadata:
        """
        解析资源文件名

        文件名按 - _ + 空白切分，整段匹配版本号或加载器名的片段才会被采纳，
        因此 "forge" 不会误匹配 "neoforge"，"1.21" 不会误匹配 "1.21.4"。
        """
        stem = name[:-4] if name.lower().endswith(".jar") else name
        game_versions = []
        loaders = []
        classifier = None
        for token in _TOKEN_SPLIT.split(stem):
            if not token:
                continue
            version = _GAME_VERSION.match(token)
            if version:
                game_versions.append(version.group(1))
                continue
            loader = ModLoader.from_name(token)
            if loader is not None and loader != ModLoader.ANY:
                loaders.append(loader)
                continue
            if token.lower() in _AUXILIARY:
                classifier = token.lower()
        return AssetMetadata(
            name=name,
            game_versions=tuple(game_versions),
            loaders=tuple(loaders),
            classifier=classifier,
        )

    def match_asset(
        self,
        name: str,
        game_version: str,
        loader: ModLoader,
    ) -> Optional[AssetMetadata]:
        """资源文件适用于目标版本时返回其解析结果，否则返回 None"""
        metadata = self.describe_asset(name)
        if not metadata.is_jar or metadata.is_auxiliary:
            return None
        if not self.matches(game_version, list(metadata.game_versions)):
            return None
        if not self.loader_matches(loader, metadata.loaders):
            return None
        return metadata
