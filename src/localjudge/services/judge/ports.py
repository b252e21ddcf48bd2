# -*- coding: utf-8 -*-
"""宿主协作方接口

核心只通过这四个操作与宿主（CLI、编辑器等）交互，均以参数注入，不使用全局单例。
"""

from __future__ import annotations
from typing import Protocol, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from ...core.events import RunEvent
    from ..source_provider import SourceDocument


class CredentialProvider(Protocol):
    """访问令牌来源"""

    def get_credential(self) -> Optional[str]:
        """返回 bearer token，未登录时返回 None"""
        ...


class SourceProvider(Protocol):
    """源代码来源"""

    def get_source_and_language(self) -> "SourceDocument":
        """返回待提交的源代码及其语言ID"""
        ...


class CancellationSignal(Protocol):
    """取消信号"""

    def is_cancelled(self) -> bool:
        ...


class RunReporter(Protocol):
    """运行过程输出"""

    def report(self, event: "RunEvent") -> None:
        ...
