"""
来源回退

先尝试首选提供方，失败后按固定顺序尝试其余提供方，
全部失败时带上每个提供方的失败原因。
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Generic, Iterable, List, Optional, Tuple, TypeVar

from loguru import logger

from modder.exceptions import ExhaustedError, ModderError
from modder.models import Provider

T = TypeVar("T")


class FallbackState(Enum):
    TRY_PREFERRED = "try_preferred"
    TRY_NEXT = "try_next"
    SUCCESS = "success"
    EXHAUSTED = "exhausted"


@dataclass
class FallbackResult(Generic[T]):
    """回退结果"""

    state: FallbackState
    provider: Optional[Provider] = None
    value: Optional[T] = None
    attempts: List[Provider] = field(default_factory=list)
    failures: Dict[Provider, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.state == FallbackState.SUCCESS

    def unwrap(self) -> Tuple[Provider, T]:
        """返回 (提供方, 结果)，全部失败时抛出 ExhaustedError"""
        if not self.ok:
            detail = "; ".join(f"{p}: {reason}" for p, reason in self.failures.items())
            raise ExhaustedError(
                f"所有来源均失败: {detail}",
                failures=dict(self.failures),
            )
        return self.provider, self.value


# 返回 None 表示该提供方未找到
Attempt = Callable[[Provider], Awaitable[Optional[Any]]]


class SourceFallback:
    """单个目标的来源回退状态机"""

    def __init__(
        self,
        preferred: Provider,
        fallback_enabled: bool = True,
        providers: Iterable[Provider] = tuple(Provider),
    ):
        self.preferred = preferred
        self.fallback_enabled = fallback_enabled
        self.providers = tuple(providers)

    def candidates(self) -> List[Provider]:
        """尝试顺序：首选提供方，然后按枚举顺序的其余提供方"""
        order = [self.preferred]
        if self.fallback_enabled:
            order.extend(p for p in self.providers if p != self.preferred)
        return order

    async def run(self, attempt: Attempt) -> FallbackResult:
        """
        依次尝试各提供方

        Args:
            attempt: 对单个提供方的尝试，返回 None 或抛出 ModderError/OSError 视为失败

        Returns:
            FallbackResult
        """
        result = FallbackResult(state=FallbackState.TRY_PREFERRED)
        for provider in self.candidates():
            result.attempts.append(provider)
            try:
                value = await attempt(provider)
            except (ModderError, OSError) as e:
                result.failures[provider] = str(e)
                logger.warning(f"[回退] {provider} 失败: {e}")
            else:
                if value is not None:
                    result.state = FallbackState.SUCCESS
                    result.provider = provider
                    result.value = value
                    return result
                result.failures[provider] = "未找到"
                logger.debug(f"[回退] {provider} 未找到")

            if not self.fallback_enabled:
                break
            result.state = FallbackState.TRY_NEXT

        result.state = FallbackState.EXHAUSTED
        return result
