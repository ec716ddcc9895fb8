"""
任务结果模型

批处理中每个模组对应一个 JobOutcome，结果集合不依赖完成顺序。
"""

from collections import Counter
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, Optional

from modder.models.api import Provider


class OutcomeKind(Enum):
    DOWNLOADED = "downloaded"
    NOT_FOUND = "not_found"
    FAILED = "failed"
    SKIPPED_DUPLICATE = "skipped_duplicate"


@dataclass(frozen=True)
class JobOutcome:
    """单个任务的结果"""

    key: str
    kind: OutcomeKind
    reason: Optional[str] = None
    path: Optional[Path] = None
    provider: Optional[Provider] = None

    @classmethod
    def downloaded(
        cls, key: str, path: Path, provider: Optional[Provider] = None
    ) -> "JobOutcome":
        return cls(key, OutcomeKind.DOWNLOADED, path=Path(path), provider=provider)

    @classmethod
    def not_found(cls, key: str, reason: str) -> "JobOutcome":
        return cls(key, OutcomeKind.NOT_FOUND, reason=reason)

    @classmethod
    def failed(cls, key: str, reason: str) -> "JobOutcome":
        return cls(key, OutcomeKind.FAILED, reason=reason)

    @classmethod
    def skipped_duplicate(cls, key: str, provider: Optional[Provider] = None) -> "JobOutcome":
        return cls(key, OutcomeKind.SKIPPED_DUPLICATE, provider=provider)

    @property
    def ok(self) -> bool:
        return self.kind in (OutcomeKind.DOWNLOADED, OutcomeKind.SKIPPED_DUPLICATE)

    def __str__(self) -> str:
        if self.kind == OutcomeKind.DOWNLOADED:
            return f"{self.key}: 已下载 -> {self.path}"
        if self.reason:
            return f"{self.key}: {self.kind.value} ({self.reason})"
        return f"{self.key}: {self.kind.value}"


def summarize(outcomes: Iterable[JobOutcome]) -> Dict[OutcomeKind, int]:
    """按结果类型计数"""
    counts = Counter(outcome.kind for outcome in outcomes)
    return {kind: counts.get(kind, 0) for kind in OutcomeKind}
