"""
配置模型

ModderConfig 对应配置文件（TOML/JSON/YAML），ResolutionRequest 描述一次同步请求。
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from modder.exceptions import ConfigValidationError
from modder.models.api import ModLoader, Provider


@dataclass
class ResolutionRequest:
    """一次解析/同步请求"""

    game_version: str
    loader: ModLoader = ModLoader.FABRIC
    preferred: Provider = Provider.MODRINTH
    # 为 True 时 update 也以 preferred 为首选，否则以模组原本的提供方为首选
    source_pinned: bool = False
    fallback: bool = True
    destination: Path = field(default_factory=lambda: Path("."))
    delete_previous: bool = False
    include_optional: bool = False

    def __post_init__(self):
        self.destination = Path(self.destination)
        if not self.game_version:
            raise ConfigValidationError("请指定 Minecraft 版本")


@dataclass
class ModderConfig:
    """Modder 配置"""

    minecraft_version: Optional[str] = None
    loader: ModLoader = ModLoader.FABRIC
    source: Provider = Provider.MODRINTH
    fallback: bool = True
    mods_dir: Path = field(default_factory=lambda: Path("."))
    max_concurrent: int = 5
    max_retries: int = 3
    retry_delay: float = 1.0
    request_timeout: float = 30.0
    github_token: Optional[str] = None
    curseforge_api_key: Optional[str] = None
    delete_previous: bool = False
    include_optional: bool = False
    log_file: Optional[Path] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ModderConfig":
        """从配置字典构造，缺失的令牌从环境变量读取"""
        data = dict(data or {})
        # 允许把所有配置放在 [modder] 段下
        if isinstance(data.get("modder"), dict):
            data = {**data, **data.pop("modder")}

        try:
            config = cls(
                minecraft_version=_optional_str(data.get("minecraft_version")),
                loader=ModLoader.parse(data.get("loader", "fabric")),
                source=Provider.parse(data.get("source", "modrinth")),
                fallback=bool(data.get("fallback", True)),
                mods_dir=Path(data.get("mods_dir", ".")),
                max_concurrent=int(data.get("max_concurrent", 5)),
                max_retries=int(data.get("max_retries", 3)),
                retry_delay=float(data.get("retry_delay", 1.0)),
                request_timeout=float(data.get("request_timeout", 30.0)),
                github_token=_optional_str(data.get("github_token"))
                or os.environ.get("GITHUB_TOKEN"),
                curseforge_api_key=_optional_str(data.get("curseforge_api_key"))
                or os.environ.get("CURSEFORGE_API_KEY"),
                delete_previous=bool(data.get("delete_previous", False)),
                include_optional=bool(data.get("include_optional", False)),
                log_file=Path(data["log_file"]) if data.get("log_file") else None,
            )
        except (TypeError, ValueError) as e:
            raise ConfigValidationError(f"配置无效: {e}") from e

        config.validate()
        return config

    def validate(self):
        """验证配置"""
        if self.max_concurrent <= 0:
            raise ConfigValidationError(
                "max_concurrent 必须为正整数",
                context={"max_concurrent": self.max_concurrent},
            )
        if self.max_retries < 0:
            raise ConfigValidationError(
                "max_retries 不能为负数", context={"max_retries": self.max_retries}
            )
        if self.retry_delay < 0 or self.request_timeout <= 0:
            raise ConfigValidationError("retry_delay/request_timeout 配置无效")

    def request(
        self,
        game_version: Optional[str] = None,
        destination: Optional[Path] = None,
        **overrides,
    ) -> ResolutionRequest:
        """用配置默认值构造一次请求，参数优先于配置"""
        values = {
            "loader": self.loader,
            "preferred": self.source,
            "fallback": self.fallback,
            "delete_previous": self.delete_previous,
            "include_optional": self.include_optional,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        if overrides.get("preferred") is not None:
            values["source_pinned"] = True
        return ResolutionRequest(
            game_version=game_version or self.minecraft_version or "",
            destination=destination or self.mods_dir,
            **values,
        )


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None
