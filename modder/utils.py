"""
工具函数

配置文件读取、仓库引用解析与默认 .minecraft 目录。
"""

import json
import os
import sys
from pathlib import Path
from typing import Optional, Tuple, Union

import aiofiles
import toml
import yaml

from modder.exceptions import ConfigParseError
from modder.models import ModderConfig

DEFAULT_CONFIG = "modder.toml"


def split_repo(repo: str) -> Tuple[str, str]:
    """拆分 owner/repo，格式错误时抛出 ValueError"""
    owner, sep, name = repo.strip().strip("/").partition("/")
    if not sep or not owner or not name or "/" in name:
        raise ValueError(f"无效的仓库引用: {repo}")
    return owner, name


def get_minecraft_dir() -> Path:
    """当前平台默认的 .minecraft 目录"""
    if sys.platform.startswith("win"):
        return Path(os.environ.get("APPDATA", Path.home())) / ".minecraft"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "minecraft"
    return Path.home() / ".minecraft"


async def load_config_file(config_path: Union[str, Path]) -> dict:
    """
    读取 TOML/JSON/YAML 配置文件

    Raises:
        ConfigParseError: 文件无法读取、格式不支持或内容无效
    """
    path = Path(config_path)
    suffix = path.suffix.lower()
    try:
        async with aiofiles.open(path, encoding="utf-8") as cfg_file:
            text = await cfg_file.read()
        if suffix == ".toml":
            data = toml.loads(text)
        elif suffix == ".json":
            data = json.loads(text)
        elif suffix in (".yaml", ".yml"):
            data = yaml.safe_load(text)
        else:
            raise ConfigParseError(
                f"不支持的配置文件格式: {suffix}", context={"path": str(path)}
            )
    except (OSError, ValueError, toml.TomlDecodeError, yaml.YAMLError) as e:
        raise ConfigParseError(
            f"无法读取配置文件: {path}", context={"path": str(path), "error": str(e)}
        ) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigParseError("配置文件顶层必须是表/对象", context={"path": str(path)})
    return data


async def load_config(config_path: Optional[Union[str, Path]] = None) -> ModderConfig:
    """
    加载配置

    未指定路径时读取当前目录的 modder.toml，文件不存在则使用默认配置。
    """
    if config_path is None:
        if not Path(DEFAULT_CONFIG).exists():
            return ModderConfig.from_dict({})
        config_path = DEFAULT_CONFIG
    return ModderConfig.from_dict(await load_config_file(config_path))
