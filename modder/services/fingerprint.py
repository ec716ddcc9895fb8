"""
CurseForge 文件指纹

忽略空白字节的 32 位 MurmurHash2 变体，与 CurseForge 指纹接口保持逐位一致。
"""

import struct

MULTIPLEX = 1540483477
MASK = 0xFFFFFFFF

# 空格、制表符、回车、换行
_WHITESPACE = b" \t\r\n"


def _mix(word: int) -> int:
    word = (word * MULTIPLEX) & MASK
    return ((word ^ (word >> 24)) * MULTIPLEX) & MASK


def normalize(data: bytes) -> bytes:
    """去掉所有空白字节"""
    return bytes(data).translate(None, _WHITESPACE)


def fingerprint(data: bytes) -> int:
    """
    计算文件指纹

    Args:
        data: 文件原始字节

    Returns:
        无符号 32 位指纹
    """
    normalized = normalize(data)
    length = len(normalized)
    seed = (1 ^ length) & MASK

    full = length - length % 4
    for (word,) in struct.iter_unpack("<I", normalized[:full]):
        seed = ((seed * MULTIPLEX) & MASK) ^ _mix(word)

    tail = normalized[full:]
    if tail:
        partial = int.from_bytes(tail, "little")
        seed = ((seed ^ partial) * MULTIPLEX) & MASK

    result = ((seed ^ (seed >> 13)) * MULTIPLEX) & MASK
    return result ^ (result >> 15)
