"""
来源识别服务

按固定顺序识别本地模组文件来自哪个提供方：
内容哈希（Modrinth） -> 指纹（CurseForge） -> 来源标记（GitHub） -> 未知。
"""

import asyncio
import hashlib
from typing import TYPE_CHECKING, Mapping, Optional

from loguru import logger

from modder.exceptions import APIError
from modder.models import Artifact, Identity, LookupStrategy, Provider
from modder.services import provenance
from modder.services.fingerprint import fingerprint

if TYPE_CHECKING:
    from modder.api.base import ProviderClient


class IdentityResolver:
    """来源识别器"""

    def __init__(self, clients: Mapping[Provider, "ProviderClient"]):
        self.clients = clients

    async def resolve(self, artifact: Artifact) -> Identity:
        """
        识别文件来源，命中即停止

        某一步的网络或解析错误视为该步未命中；未配置客户端的提供方被跳过。
        结果缓存在 artifact 上，文件内容改变后失效。

        Args:
            artifact: 本地模组文件

        Returns:
            识别结果，全部未命中时为 Unknown
        """
        cached = artifact.identity
        if cached.is_known:
            return cached

        for provider in Provider:
            identity = await self.locate(artifact, provider)
            if identity is not None:
                logger.debug(f"[识别] {artifact.name} -> {identity}")
                artifact.remember(identity)
                return identity

        logger.debug(f"[识别] {artifact.name} 来源未知")
        identity = Identity.unknown()
        artifact.remember(identity)
        return identity

    async def locate(self, artifact: Artifact, provider: Provider) -> Optional[Identity]:
        """只使用指定提供方的识别方式，未命中返回 None"""
        strategy = provider.lookup
        if strategy == LookupStrategy.REPO_REFERENCE:
            stamp = await asyncio.to_thread(provenance.read_stamp, artifact.path)
            if stamp is None or stamp[0] != provider:
                return None
            return Identity.provenance_tagged(provider, stamp[1])

        client = self.clients.get(provider)
        if client is None:
            return None

        data = await artifact.read_bytes()
        try:
            if strategy == LookupStrategy.CONTENT_HASH:
                digest = await asyncio.to_thread(_sha512, data)
                descriptor = await client.identify_by_hash(digest)
                if descriptor is not None:
                    return Identity.content_addressed(digest, descriptor)
            elif strategy == LookupStrategy.FINGERPRINT:
                value = await asyncio.to_thread(fingerprint, data)
                descriptor = await client.identify_by_fingerprint(value)
                if descriptor is not None:
                    return Identity.fingerprinted(value, descriptor)
        except APIError as e:
            logger.warning(f"[识别] {provider} 查询 {artifact.name} 失败: {e}")
        return None


def _sha512(data: bytes) -> str:
    return hashlib.sha512(data).hexdigest()
