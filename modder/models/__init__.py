"""
Modder 数据模型包

包含配置模型、API 模型、本地文件模型与任务结果。
"""

from modder.models.api import (
    LookupStrategy,
    Provider,
    ModLoader,
    ProjectRef,
    ProjectSummary,
    FileRef,
    DependencyRef,
    VersionDescriptor,
)
from modder.models.artifact import (
    ARTIFACT_EXTENSION,
    DISABLED_SUFFIX,
    Artifact,
    Identity,
    IdentityKind,
    scan_directory,
)
from modder.models.config import ModderConfig, ResolutionRequest
from modder.models.outcome import JobOutcome, OutcomeKind, summarize

__all__ = [
    # API 模型
    "LookupStrategy",
    "Provider",
    "ModLoader",
    "ProjectRef",
    "ProjectSummary",
    "FileRef",
    "DependencyRef",
    "VersionDescriptor",
    # 本地文件
    "ARTIFACT_EXTENSION",
    "DISABLED_SUFFIX",
    "Artifact",
    "Identity",
    "IdentityKind",
    "scan_directory",
    # 配置模型
    "ModderConfig",
    "ResolutionRequest",
    # 任务结果
    "JobOutcome",
    "OutcomeKind",
    "summarize",
]
