"""
文件校验器

实现哈希计算、文件存在性检查、文件完整性验证。
"""

import hashlib
import os
from typing import Dict, Optional

import aiofiles

# 按优先级排列，越靠前越可信
SUPPORTED_ALGORITHMS = ("sha512", "sha256", "sha1")


class FileVerifier:
    """文件校验器"""

    @staticmethod
    async def calc_hash(file_path: str, algorithm: str = "sha1") -> Optional[str]:
        """
        计算文件的哈希值

        Args:
            file_path: 文件路径
            algorithm: 哈希算法名 (sha1, sha256, sha512)

        Returns:
            十六进制哈希值或 None（如果文件不存在）
        """
        if not os.path.exists(file_path):
            return None

        digest = hashlib.new(algorithm)
        try:
            async with aiofiles.open(file_path, "rb") as f:
                while True:
                    data = await f.read(65536)
                    if not data:
                        break
                    digest.update(data)
            return digest.hexdigest()
        except (IOError, OSError):
            return None

    @staticmethod
    def pick_hash(hashes: Optional[Dict[str, str]]) -> Optional[tuple]:
        """从哈希表中选出最可信的 (算法, 值)"""
        if not hashes:
            return None
        for algorithm in SUPPORTED_ALGORITHMS:
            if hashes.get(algorithm):
                return algorithm, hashes[algorithm].lower()
        return None

    @staticmethod
    async def verify(file_path: str, hashes: Optional[Dict[str, str]]) -> bool:
        """
        校验文件哈希是否匹配

        Args:
            file_path: 文件路径
            hashes: 预期哈希 {算法: 值}

        Returns:
            是否匹配（如果没有可用的预期值则返回 True）
        """
        expected = FileVerifier.pick_hash(hashes)
        if expected is None:
            return True

        algorithm, value = expected
        current = await FileVerifier.calc_hash(file_path, algorithm)
        if current is None:
            return False

        return current == value

    @staticmethod
    def exists(file_path: str) -> bool:
        """检查文件是否存在"""
        return os.path.exists(file_path)

    @staticmethod
    async def is_valid(file_path: str, hashes: Optional[Dict[str, str]] = None) -> bool:
        """
        检查文件是否有效（存在且校验通过）

        没有预期哈希时只要文件存在即视为有效。
        """
        if not FileVerifier.exists(file_path):
            return False

        return await FileVerifier.verify(file_path, hashes)
