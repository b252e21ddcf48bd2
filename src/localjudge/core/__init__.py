"""
LocalJudge 核心模块
提供运行事件类型
"""

from .events import RunEvent, RunEventType

__all__ = [
    "RunEvent",
    "RunEventType",
]
