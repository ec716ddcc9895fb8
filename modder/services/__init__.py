"""
Modder 服务层

包含业务逻辑服务：来源识别、指纹、来源标记、依赖闭包、来源回退、启用切换、版本匹配。
"""

from modder.services.fingerprint import fingerprint
from modder.services.provenance import ProvenanceStamper
from modder.services.version_matcher import VersionMatcher
from modder.services.identity import IdentityResolver
from modder.services.mod_resolver import ModResolver
from modder.services.dependency_resolver import ClosureEntry, DedupSet, DependencyResolver
from modder.services.fallback import FallbackResult, FallbackState, SourceFallback
from modder.services.toggle import EnablementToggle

__all__ = [
    "fingerprint",
    "ProvenanceStamper",
    "VersionMatcher",
    "IdentityResolver",
    "ModResolver",
    "ClosureEntry",
    "DedupSet",
    "DependencyResolver",
    "FallbackResult",
    "FallbackState",
    "SourceFallback",
    "EnablementToggle",
]
