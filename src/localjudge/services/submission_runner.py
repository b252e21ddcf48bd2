# -*- coding: utf-8 -*-
"""
提交生命周期管理

创建提交后，wait=true 直接返回服务端结果；wait=false 则按固定间隔顺序轮询，
直到得到最终结果、超过截止时间或被取消。

状态流转：Created → Polling → {Terminal, TimedOut, Cancelled}
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from loguru import logger

from ..core.events import RunEvent, RunEventType
from .exceptions import ConfigError, ProtocolError, PollTimeoutError, RunCancelledError
from .judge.ports import CancellationSignal, CredentialProvider, RunReporter
from .judge.status_codes import DEFAULT_CLASSIFIER, JudgeState, StatusClassifier, get_status_name
from .judge_api import JudgeApi
from .models import SubmissionRequest, SubmissionResult
from ..utils.concurrency import interruptible_sleep


DEFAULT_POLL_INTERVAL_MS = 1000
DEFAULT_POLL_TIMEOUT_MS = 30000


def _check_positive_int(name: str, value) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ConfigError(f"{name} must be an integer >= 1, got {value!r}")


@dataclass
class RunOptions:
    """一次运行的参数"""
    wait_for_result: bool = True
    poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS
    poll_timeout_ms: int = DEFAULT_POLL_TIMEOUT_MS
    cancel_signal: Optional[CancellationSignal] = None

    def __post_init__(self):
        _check_positive_int("poll_interval_ms", self.poll_interval_ms)
        _check_positive_int("poll_timeout_ms", self.poll_timeout_ms)

    @classmethod
    def from_config(cls, cfg, cancel_signal: Optional[CancellationSignal] = None, **overrides) -> "RunOptions":
        """从 AppConfig 构造，overrides 中为 None 的项忽略"""
        values = {
            "wait_for_result": cfg.wait,
            "poll_interval_ms": cfg.poll_interval_ms,
            "poll_timeout_ms": cfg.poll_timeout_ms,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(cancel_signal=cancel_signal, **values)


class PollState(str, Enum):
    """轮询会话状态"""
    CREATED = "created"
    POLLING = "polling"
    TERMINAL = "terminal"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


@dataclass
class PollSession:
    """一次运行的轮询会话（只属于创建它的那次运行）"""
    token: str
    started_at: float
    interval_ms: int
    timeout_ms: int
    cancel_signal: Optional[CancellationSignal] = None
    state: PollState = PollState.CREATED
    poll_count: int = 0
    last_result: Optional[SubmissionResult] = field(default=None, repr=False)

    def elapsed_ms(self, now: float) -> float:
        return (now - self.started_at) * 1000.0

    def is_cancelled(self) -> bool:
        return bool(self.cancel_signal and self.cancel_signal.is_cancelled())


class SubmissionRunner:
    """提交生命周期管理器

    Args:
        api: 传输层
        classifier: 状态分类器（默认按关键字）
        clock: 单调时钟，返回秒
        sleep: 等待函数，参数为秒；不指定时使用可被取消打断的等待
        reporter: 运行事件接收方
        credentials: 访问令牌来源，run() 未显式传入 token 时使用
    """

    def __init__(
        self,
        api: JudgeApi,
        classifier: StatusClassifier = DEFAULT_CLASSIFIER,
        clock: Callable[[], float] = time.monotonic,
        sleep: Optional[Callable[[float], None]] = None,
        reporter: Optional[RunReporter] = None,
        credentials: Optional[CredentialProvider] = None,
    ):
        self.api = api
        self.classifier = classifier
        self._clock = clock
        self._sleep = sleep
        self._reporter = reporter
        self._credentials = credentials

    def _report(self, event_type: RunEventType, **data) -> None:
        if self._reporter is not None:
            self._reporter.report(RunEvent(type=event_type, data=data))

    def run(
        self,
        base_url: str,
        request: SubmissionRequest,
        access_token: Optional[str] = None,
        options: Optional[RunOptions] = None,
    ) -> SubmissionResult:
        """提交代码并取得最终结果

        Raises:
            TransportError: 远程调用失败
            ProtocolError: wait=false 的响应中没有 token
            PollTimeoutError: 轮询超时
            RunCancelledError: 轮询被取消
        """
        options = options or RunOptions()
        wait = options.wait_for_result
        if access_token is None and self._credentials is not None:
            access_token = self._credentials.get_credential()

        self._report(RunEventType.SUBMITTING, wait=wait, language_id=request.language_id)
        first = self.api.create_submission(base_url, wait, request, access_token)

        if wait:
            logger.info(f"[Runner] 同步判题完成: {get_status_name(first)}")
            self._report(RunEventType.COMPLETED, result=first, poll_count=0)
            return first

        if not first.token:
            logger.error("[Runner] wait=false 的响应中没有 token，无法轮询")
            raise ProtocolError("response missing continuation token; cannot poll", result=first)

        logger.info(f"[Runner] 提交成功，token: {first.token}")
        self._report(RunEventType.CREATED, token=first.token, result=first)

        session = PollSession(
            token=first.token,
            started_at=self._clock(),
            interval_ms=options.poll_interval_ms,
            timeout_ms=options.poll_timeout_ms,
            cancel_signal=options.cancel_signal,
            last_result=first,
        )
        result = self._poll(base_url, session, access_token)
        self._report(RunEventType.COMPLETED, result=result, poll_count=session.poll_count)
        return result

    def _cancel(self, session: PollSession) -> RunCancelledError:
        session.state = PollState.CANCELLED
        logger.info(f"[Runner] 轮询被取消（已轮询 {session.poll_count} 次）")
        self._report(RunEventType.POLL_CANCELLED, poll_count=session.poll_count)
        return RunCancelledError(poll_count=session.poll_count, last_result=session.last_result)

    def _wait(self, session: PollSession) -> None:
        """等待一个轮询间隔；等待前和等待中都会检查取消"""
        if session.is_cancelled():
            raise self._cancel(session)

        seconds = session.interval_ms / 1000.0
        if self._sleep is not None:
            self._sleep(seconds)
        elif not interruptible_sleep(seconds, session.is_cancelled):
            raise self._cancel(session)

    def _poll(self, base_url: str, session: PollSession, access_token: Optional[str]) -> SubmissionResult:
        """顺序轮询：每次请求和每次等待之前都先检查取消，请求前检查截止时间"""
        session.state = PollState.POLLING
        self._report(
            RunEventType.POLL_STARTED,
            token=session.token,
            interval_ms=session.interval_ms,
            timeout_ms=session.timeout_ms,
        )

        while True:
            if session.is_cancelled():
                raise self._cancel(session)

            elapsed = session.elapsed_ms(self._clock())
            if elapsed > session.timeout_ms:
                session.state = PollState.TIMED_OUT
                logger.warning(f"[Runner] 轮询超时: {elapsed:.0f}ms > {session.timeout_ms}ms")
                self._report(RunEventType.POLL_TIMED_OUT, elapsed_ms=elapsed, poll_count=session.poll_count)
                raise PollTimeoutError(
                    elapsed_ms=elapsed,
                    timeout_ms=session.timeout_ms,
                    poll_count=session.poll_count,
                    last_result=session.last_result,
                )

            result = self.api.fetch_submission(base_url, session.token, access_token)
            session.poll_count += 1
            session.last_result = result

            judge_state = self.classifier.classify(result)
            status_name = get_status_name(result)
            logger.debug(f"[Runner] [轮询 {session.poll_count}] {status_name} -> {judge_state.value}")
            self._report(
                RunEventType.POLL_PROGRESS,
                poll_count=session.poll_count,
                status=status_name,
                state=judge_state.value,
            )

            if judge_state is JudgeState.TERMINAL:
                session.state = PollState.TERMINAL
                return result

            self._wait(session)
