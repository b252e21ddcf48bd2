# -*- coding: utf-8 -*-
"""
自定义异常类
提供细分的异常类型，便于错误处理和输出诊断信息
"""

from typing import Optional, Dict, Any, TYPE_CHECKING

if TYPE_CHECKING:
    from .models import SubmissionResult


class LocalJudgeError(Exception):
    """LocalJudge 基础异常类"""

    error_code: str = "LOCALJUDGE_ERROR"

    def __init__(
        self,
        message: str = "LocalJudge internal error",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典格式（用于 JSON 输出）"""
        return {
            "error": True,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details
        }


# ==================== 配置相关异常 ====================

class ConfigError(LocalJudgeError):
    """配置值无效"""
    error_code = "CONFIG_ERROR"


class CredentialError(LocalJudgeError):
    """访问令牌无法保存或读取"""
    error_code = "CREDENTIAL_ERROR"


class SourceError(LocalJudgeError):
    """源代码无法读取"""
    error_code = "SOURCE_ERROR"


# ==================== 传输相关异常 ====================

class TransportError(LocalJudgeError):
    """远程调用失败（非 2xx 响应或网络错误）

    status 为 None 表示请求未得到任何 HTTP 响应。
    """
    error_code = "TRANSPORT_ERROR"

    def __init__(
        self,
        operation: str,
        status: Optional[int],
        reason: str = "",
        body: str = "",
        url: Optional[str] = None,
    ):
        self.operation = operation
        self.status = status
        self.reason = reason or ""
        self.body = body or ""
        self.url = url
        if status is None:
            headline = f"{operation} failed: {self.body}"
        else:
            headline = f"{operation} failed: {status} {self.reason}".rstrip()
            if self.body:
                headline = f"{headline}\n{self.body}"
        super().__init__(
            headline,
            {"operation": operation, "status": status, "reason": self.reason, "url": url}
        )


class NotFoundError(TransportError):
    """远程服务报告资源不存在（例如未知的 continuation token）"""
    error_code = "NOT_FOUND"


# ==================== 判题生命周期异常 ====================

class ProtocolError(LocalJudgeError):
    """远程响应不符合约定"""
    error_code = "PROTOCOL_ERROR"

    def __init__(self, message: str, result: Optional["SubmissionResult"] = None):
        super().__init__(message)
        self.result = result


class PollTimeoutError(LocalJudgeError):
    """轮询超过截止时间仍未得到最终结果"""
    error_code = "POLL_TIMEOUT"

    def __init__(
        self,
        elapsed_ms: float,
        timeout_ms: int,
        poll_count: int = 0,
        last_result: Optional["SubmissionResult"] = None,
    ):
        self.elapsed_ms = elapsed_ms
        self.timeout_ms = timeout_ms
        self.poll_count = poll_count
        self.last_result = last_result
        super().__init__(
            f"Polling timed out after {elapsed_ms / 1000:.1f}s "
            f"(limit {timeout_ms / 1000:.1f}s, {poll_count} polls).",
            {"elapsed_ms": elapsed_ms, "timeout_ms": timeout_ms, "poll_count": poll_count}
        )


class RunCancelledError(LocalJudgeError):
    """用户取消了正在进行的轮询"""
    error_code = "CANCELLED"

    def __init__(
        self,
        message: str = "Cancelled by user.",
        poll_count: int = 0,
        last_result: Optional["SubmissionResult"] = None,
    ):
        self.poll_count = poll_count
        self.last_result = last_result
        super().__init__(message, {"poll_count": poll_count})
