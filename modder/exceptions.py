"""
Modder 统一异常体系

提供分层的异常结构，支持错误代码、上下文信息和 JSON 序列化。
"""

from typing import Any, Dict, Optional
import aiohttp


class ModderError(Exception):
    """Modder 基础异常类"""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self._get_default_code()
        self.context = context or {}

    def _get_default_code(self) -> str:
        """获取默认错误代码"""
        return "E000"

    def to_dict(self) -> Dict[str, Any]:
        """将异常转换为字典格式"""
        return {
            "error": True,
            "code": self.code,
            "message": self.message,
            "context": self.context,
            "type": self.__class__.__name__,
        }

    def __str__(self) -> str:
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message


class ConfigError(ModderError):
    """配置相关错误"""

    def _get_default_code(self) -> str:
        return "E100"


class ConfigParseError(ConfigError):
    """配置解析错误"""

    def _get_default_code(self) -> str:
        return "E101"


class ConfigValidationError(ConfigError):
    """配置验证错误"""

    def _get_default_code(self) -> str:
        return "E102"


class APIError(ModderError):
    """API 相关错误"""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        response: Optional[aiohttp.ClientResponse] = None,
    ):
        super().__init__(message, code, context)
        self.response = response
        if response is not None:
            self.context["status_code"] = response.status
            self.context["url"] = str(response.url)

    def _get_default_code(self) -> str:
        return "E200"


class TransportError(APIError):
    """网络或 HTTP 传输失败"""

    def _get_default_code(self) -> str:
        return "E201"


class RateLimitError(TransportError):
    """API 速率限制"""

    def _get_default_code(self) -> str:
        return "E429"


class ParseError(APIError):
    """提供方返回了无法解析的数据"""

    def _get_default_code(self) -> str:
        return "E202"


class DownloadError(ModderError):
    """下载相关错误"""

    def _get_default_code(self) -> str:
        return "E300"


class DownloadNetworkError(DownloadError):
    """下载网络错误"""

    def _get_default_code(self) -> str:
        return "E301"


class DownloadChecksumError(DownloadError):
    """下载校验错误"""

    def _get_default_code(self) -> str:
        return "E302"


class ArtifactIOError(DownloadError):
    """文件系统操作错误"""

    def _get_default_code(self) -> str:
        return "E303"


class StampError(ArtifactIOError):
    """写入来源标记失败，原文件保持不变"""

    def _get_default_code(self) -> str:
        return "E304"


class VersionNotFoundError(ModderError):
    """没有与目标游戏版本/加载器匹配的版本"""

    def _get_default_code(self) -> str:
        return "E404"


class IdentityUnknownError(ModderError):
    """无法确定本地模组的来源"""

    def _get_default_code(self) -> str:
        return "E600"


class ExhaustedError(ModderError):
    """所有候选来源均已尝试且失败"""

    def __init__(
        self,
        message: str,
        failures: Optional[Dict[Any, str]] = None,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, code, context)
        self.failures = dict(failures or {})
        self.context.setdefault(
            "failures", {str(key): reason for key, reason in self.failures.items()}
        )

    def _get_default_code(self) -> str:
        return "E700"


__all__ = [
    # 基础异常
    "ModderError",
    # 配置异常
    "ConfigError",
    "ConfigParseError",
    "ConfigValidationError",
    # API 异常
    "APIError",
    "TransportError",
    "RateLimitError",
    "ParseError",
    # 下载与文件异常
    "DownloadError",
    "DownloadNetworkError",
    "DownloadChecksumError",
    "ArtifactIOError",
    "StampError",
    # 解析结果
    "VersionNotFoundError",
    "IdentityUnknownError",
    "ExhaustedError",
]
