"""
运行事件类型定义
"""

from typing import Dict, Any
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class RunEventType(str, Enum):
    """事件类型枚举"""
    SUBMITTING = "submission.submitting"
    CREATED = "submission.created"
    COMPLETED = "submission.completed"

    POLL_STARTED = "poll.started"
    POLL_PROGRESS = "poll.progress"
    POLL_TIMED_OUT = "poll.timed_out"
    POLL_CANCELLED = "poll.cancelled"


@dataclass
class RunEvent:
    """一次运行中产生的事件"""
    type: RunEventType
    timestamp: datetime = field(default_factory=datetime.now)
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典"""
        return {
            "type": self.type.value if isinstance(self.type, RunEventType) else self.type,
            "timestamp": self.timestamp.isoformat(),
            "data": self.data,
        }
