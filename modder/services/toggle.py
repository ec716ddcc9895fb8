"""
启用状态切换

启用状态只由文件名是否带 .disabled 后缀决定。
"""

import os
from pathlib import Path
from typing import Iterable, List, Tuple

from loguru import logger

from modder.exceptions import ArtifactIOError
from modder.models import DISABLED_SUFFIX, Artifact

Rename = Tuple[Path, Path]


class EnablementToggle:
    """启用/禁用模组文件"""

    def apply(self, selection: Iterable[str], artifacts: Iterable[Artifact]) -> List[Rename]:
        """
        让选中的模组处于启用状态，其余全部禁用

        已处于正确状态的文件不会被改动。任何目标文件已存在时不做任何重命名。

        Args:
            selection: 要启用的文件名（启用形式，如 "sodium.jar"）
            artifacts: 目录中的模组文件

        Returns:
            实际执行的重命名 (原路径, 新路径) 列表

        Raises:
            ArtifactIOError: 目标文件已存在或重命名失败
        """
        selected = {_active_name(name) for name in selection}
        pending = [
            (artifact, artifact.name in selected)
            for artifact in artifacts
            if artifact.enabled != (artifact.name in selected)
        ]
        for artifact, enabled in pending:
            _check_target(artifact, _target(artifact, enabled))

        renames = [self._set_enabled(artifact, enabled) for artifact, enabled in pending]
        logger.info(f"[切换] 改动 {len(renames)} 个文件")
        return renames

    def toggle(self, artifact: Artifact) -> Rename:
        """翻转单个文件的启用状态"""
        return self._set_enabled(artifact, not artifact.enabled)

    def _set_enabled(self, artifact: Artifact, enabled: bool) -> Rename:
        source = artifact.path
        target = _target(artifact, enabled)
        _check_target(artifact, target)
        try:
            os.rename(source, target)
        except OSError as e:
            raise ArtifactIOError(
                f"重命名失败: {source.name}",
                context={"source": str(source), "target": str(target), "error": str(e)},
            ) from e
        artifact.moved_to(target)
        logger.debug(f"[{'启用' if enabled else '禁用'}] {artifact.name}")
        return source, target


def _active_name(name: str) -> str:
    name = Path(name).name
    if name.endswith(DISABLED_SUFFIX):
        return name[: -len(DISABLED_SUFFIX)]
    return name


def _target(artifact: Artifact, enabled: bool) -> Path:
    return artifact.active_path if enabled else artifact.inactive_path


def _check_target(artifact: Artifact, target: Path):
    if target.exists():
        raise ArtifactIOError(
            f"目标文件已存在: {target.name}",
            context={"source": str(artifact.path), "target": str(target)},
        )
