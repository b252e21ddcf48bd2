# -*- coding: utf-8 -*-
"""
SubmissionRunner 单元测试

用假时钟和假 sleep 驱动轮询循环，不依赖真实等待
"""

import sys
from pathlib import Path
from unittest.mock import MagicMock

# 添加src到路径
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

import pytest

from localjudge.core.events import RunEventType
from localjudge.services.exceptions import (
    ConfigError,
    ProtocolError,
    PollTimeoutError,
    RunCancelledError,
    TransportError,
)
from localjudge.services.judge.status_codes import StatusCodeClassifier
from localjudge.services.judge_api import JudgeApi
from localjudge.services.models import SubmissionRequest, SubmissionResult
from localjudge.services.submission_runner import PollSession, PollState, RunOptions, SubmissionRunner
from localjudge.services.unified_config import AppConfig
from localjudge.utils.concurrency import CancelToken


BASE_URL = "http://judge.local"

IN_QUEUE = {"token": "abc123", "status": {"id": 1, "description": "In Queue"}}
PROCESSING = {"token": "abc123", "status": {"id": 2, "description": "Processing"}}
ACCEPTED = {"status": {"id": 3, "description": "Accepted"}, "stdout": "4\n", "token": "abc123"}


def result(data):
    return SubmissionResult.model_validate(data)


class FakeClock:
    """单调时钟替身：sleep 推进时间"""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def request_():
    return SubmissionRequest(language_id=71, source_code="print(2 + 2)")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def api():
    return MagicMock(spec=JudgeApi)


def make_runner(api, clock, **kwargs):
    return SubmissionRunner(api, clock=clock, sleep=clock.sleep, **kwargs)


class TestSynchronousWait:
    """wait=true：直接返回创建结果"""

    def test_returns_create_result_unchanged(self, api, clock, request_):
        """场景A：同步结果原样返回"""
        payload = {"status": {"id": 3, "description": "Accepted"}, "stdout": "4\n"}
        api.create_submission.return_value = result(payload)

        out = make_runner(api, clock).run(BASE_URL, request_, "tok", RunOptions(wait_for_result=True))

        assert out.to_dict() == payload
        api.create_submission.assert_called_once_with(BASE_URL, True, request_, "tok")
        api.fetch_submission.assert_not_called()

    def test_never_polls_even_if_pending(self, api, clock, request_):
        """wait=true 时即使结果看起来仍在运行也不轮询"""
        api.create_submission.return_value = result(IN_QUEUE)

        out = make_runner(api, clock).run(BASE_URL, request_, options=RunOptions())

        assert out.status.description == "In Queue"
        api.fetch_submission.assert_not_called()
        assert clock.sleeps == []


class TestAsynchronousPoll:
    """wait=false：按 token 轮询"""

    def test_polls_until_terminal(self, api, clock, request_):
        """场景B：一次等待后得到最终结果"""
        api.create_submission.return_value = result(IN_QUEUE)
        api.fetch_submission.side_effect = [result(IN_QUEUE), result(ACCEPTED)]

        options = RunOptions(wait_for_result=False, poll_interval_ms=1000, poll_timeout_ms=30000)
        out = make_runner(api, clock).run(BASE_URL, request_, "tok", options)

        assert out.to_dict() == ACCEPTED
        assert api.fetch_submission.call_count == 2
        api.fetch_submission.assert_called_with(BASE_URL, "abc123", "tok")
        assert clock.sleeps == [1.0]

    def test_token_from_credential_provider(self, api, clock, request_):
        """未显式传入 token 时从凭据来源读取"""
        credentials = MagicMock()
        credentials.get_credential.return_value = "stored"
        api.create_submission.return_value = result(IN_QUEUE)
        api.fetch_submission.return_value = result(ACCEPTED)

        runner = make_runner(api, clock, credentials=credentials)
        runner.run(BASE_URL, request_, options=RunOptions(wait_for_result=False))

        api.create_submission.assert_called_once_with(BASE_URL, False, request_, "stored")
        api.fetch_submission.assert_called_once_with(BASE_URL, "abc123", "stored")

    def test_explicit_token_wins_over_provider(self, api, clock, request_):
        credentials = MagicMock()
        api.create_submission.return_value = result(ACCEPTED)

        make_runner(api, clock, credentials=credentials).run(BASE_URL, request_, "explicit")

        api.create_submission.assert_called_once_with(BASE_URL, True, request_, "explicit")
        credentials.get_credential.assert_not_called()

    def test_missing_token_is_protocol_error(self, api, clock, request_):
        """场景C：异步创建没有返回 token"""
        api.create_submission.return_value = result({"status": {"id": 1, "description": "In Queue"}})

        with pytest.raises(ProtocolError) as exc_info:
            make_runner(api, clock).run(BASE_URL, request_, options=RunOptions(wait_for_result=False))

        assert "missing continuation token" in str(exc_info.value)
        assert exc_info.value.result.status.id == 1
        api.fetch_submission.assert_not_called()

    def test_compilation_error_is_terminal(self, api, clock, request_):
        """场景D：编译错误直接返回，不再轮询"""
        compile_error = {"status": {"id": 6, "description": "Compilation Error"}, "compile_output": "error: ..."}
        api.create_submission.return_value = result(IN_QUEUE)
        api.fetch_submission.return_value = result(compile_error)

        out = make_runner(api, clock).run(BASE_URL, request_, options=RunOptions(wait_for_result=False))

        assert out.compile_output == "error: ..."
        api.fetch_submission.assert_called_once()
        assert clock.sleeps == []

    def test_pending_create_triggers_fetch(self, api, clock, request_):
        """有 token 且仍在运行时至少轮询一次"""
        api.create_submission.return_value = result(PROCESSING)
        api.fetch_submission.return_value = result(ACCEPTED)

        make_runner(api, clock).run(BASE_URL, request_, options=RunOptions(wait_for_result=False))

        assert api.fetch_submission.call_count >= 1

    def test_fixed_interval_without_backoff(self, api, clock, request_):
        """每次等待间隔相同"""
        api.create_submission.return_value = result(IN_QUEUE)
        api.fetch_submission.side_effect = [result(IN_QUEUE), result(PROCESSING), result(PROCESSING), result(ACCEPTED)]

        options = RunOptions(wait_for_result=False, poll_interval_ms=250, poll_timeout_ms=30000)
        make_runner(api, clock).run(BASE_URL, request_, options=options)

        assert clock.sleeps == [0.25, 0.25, 0.25]

    def test_transport_error_is_not_retried(self, api, clock, request_):
        """轮询中的传输错误直接结束本次运行"""
        api.create_submission.return_value = result(IN_QUEUE)
        api.fetch_submission.side_effect = TransportError("GET submission", 500, "Internal Server Error", "boom")

        with pytest.raises(TransportError):
            make_runner(api, clock).run(BASE_URL, request_, options=RunOptions(wait_for_result=False))

        api.fetch_submission.assert_called_once()

    def test_custom_classifier(self, api, clock, request_):
        """替换分类器后按状态码判断"""
        api.create_submission.return_value = result(IN_QUEUE)
        # 描述里没有关键字，但状态码 2 表示仍在运行
        api.fetch_submission.side_effect = [
            result({"token": "abc123", "status": {"id": 2, "description": "Busy"}}),
            result(ACCEPTED),
        ]

        runner = make_runner(api, clock, classifier=StatusCodeClassifier({1, 2}))
        out = runner.run(BASE_URL, request_, options=RunOptions(wait_for_result=False))

        assert out.status.id == 3
        assert api.fetch_submission.call_count == 2


class TestDeadline:
    """轮询截止时间"""

    def test_times_out_within_bounds(self, api, clock, request_):
        """一直处于运行中时在 [timeout, timeout + interval + 一次请求] 内超时"""
        round_trip = 0.1

        def slow_fetch(*args):
            clock.now += round_trip
            return result(PROCESSING)

        api.create_submission.return_value = result(IN_QUEUE)
        api.fetch_submission.side_effect = slow_fetch

        options = RunOptions(wait_for_result=False, poll_interval_ms=1000, poll_timeout_ms=5000)
        with pytest.raises(PollTimeoutError) as exc_info:
            make_runner(api, clock).run(BASE_URL, request_, options=options)

        err = exc_info.value
        assert 5000 <= err.elapsed_ms <= 5000 + 1000 + round_trip * 1000
        assert err.timeout_ms == 5000
        assert err.poll_count == api.fetch_submission.call_count
        assert err.last_result.status.description == "Processing"

    def test_deadline_checked_before_request(self, api, clock, request_):
        """慢请求跨过截止时间时仍返回其结果"""
        def very_slow_fetch(*args):
            clock.now += 10.0
            return result(ACCEPTED)

        api.create_submission.return_value = result(IN_QUEUE)
        api.fetch_submission.side_effect = very_slow_fetch

        options = RunOptions(wait_for_result=False, poll_interval_ms=1000, poll_timeout_ms=2000)
        out = make_runner(api, clock).run(BASE_URL, request_, options=options)

        assert out.status.description == "Accepted"


class TestCancellation:
    """取消只在循环边界生效"""

    def test_cancel_before_first_poll(self, api, clock, request_):
        """轮询开始前已取消：不发出任何查询"""
        token = CancelToken()
        token.cancel()
        api.create_submission.return_value = result(IN_QUEUE)

        with pytest.raises(RunCancelledError) as exc_info:
            make_runner(api, clock).run(
                BASE_URL, request_, options=RunOptions(wait_for_result=False, cancel_signal=token)
            )

        api.create_submission.assert_called_once()
        api.fetch_submission.assert_not_called()
        assert exc_info.value.poll_count == 0

    def test_cancel_during_request_lets_it_finish(self, api, clock, request_):
        """请求进行中取消：请求完成，下一轮检查时结束"""
        token = CancelToken()

        def fetch_then_cancel(*args):
            token.cancel()
            return result(PROCESSING)

        api.create_submission.return_value = result(IN_QUEUE)
        api.fetch_submission.side_effect = fetch_then_cancel

        with pytest.raises(RunCancelledError) as exc_info:
            make_runner(api, clock).run(
                BASE_URL, request_, options=RunOptions(wait_for_result=False, cancel_signal=token)
            )

        api.fetch_submission.assert_called_once()
        assert exc_info.value.poll_count == 1
        assert exc_info.value.last_result.status.description == "Processing"
        assert clock.sleeps == []

    def test_cancel_is_not_timeout(self, api, clock, request_):
        """取消与超时是不同的异常"""
        token = CancelToken()
        token.cancel()
        api.create_submission.return_value = result(IN_QUEUE)

        with pytest.raises(RunCancelledError) as exc_info:
            make_runner(api, clock).run(
                BASE_URL, request_, options=RunOptions(wait_for_result=False, cancel_signal=token)
            )

        assert not isinstance(exc_info.value, PollTimeoutError)

    def test_default_sleep_is_interrupted_by_cancel(self, api, request_, monkeypatch):
        """默认等待在间隔内被取消打断"""
        naps = []
        monkeypatch.setattr("localjudge.utils.concurrency.time.sleep", naps.append)
        checks = iter([False, False, False, True])
        signal = MagicMock()
        signal.is_cancelled.side_effect = lambda: next(checks, True)
        api.create_submission.return_value = result(IN_QUEUE)
        api.fetch_submission.return_value = result(PROCESSING)

        runner = SubmissionRunner(api, clock=FakeClock())
        with pytest.raises(RunCancelledError) as exc_info:
            runner.run(
                BASE_URL,
                request_,
                options=RunOptions(wait_for_result=False, poll_interval_ms=30000, cancel_signal=signal),
            )

        assert exc_info.value.poll_count == 1
        assert sum(naps) < 30.0
        api.fetch_submission.assert_called_once()


class TestReporting:
    """运行事件"""

    def test_event_sequence_for_poll(self, api, clock, request_):
        reporter = MagicMock()
        api.create_submission.return_value = result(IN_QUEUE)
        api.fetch_submission.side_effect = [result(IN_QUEUE), result(ACCEPTED)]

        make_runner(api, clock, reporter=reporter).run(BASE_URL, request_, options=RunOptions(wait_for_result=False))

        types = [c.args[0].type for c in reporter.report.call_args_list]
        assert types == [
            RunEventType.SUBMITTING,
            RunEventType.CREATED,
            RunEventType.POLL_STARTED,
            RunEventType.POLL_PROGRESS,
            RunEventType.POLL_PROGRESS,
            RunEventType.COMPLETED,
        ]
        progress = reporter.report.call_args_list[3].args[0]
        assert progress.data["status"] == "[1] In Queue"
        assert progress.data["state"] == "pending"


class TestRunOptions:
    """RunOptions 校验"""

    def test_defaults(self):
        options = RunOptions()
        assert options.wait_for_result is True
        assert options.poll_interval_ms == 1000
        assert options.poll_timeout_ms == 30000
        assert options.cancel_signal is None

    @pytest.mark.parametrize("field", ["poll_interval_ms", "poll_timeout_ms"])
    @pytest.mark.parametrize("value", [0, -1, 1.5, True])
    def test_rejects_invalid_bounds(self, field, value):
        with pytest.raises(ConfigError):
            RunOptions(**{field: value})

    def test_from_config_with_overrides(self):
        cfg = AppConfig(wait=True, poll_interval_ms=500, poll_timeout_ms=9000)

        options = RunOptions.from_config(cfg, wait_for_result=False, poll_interval_ms=None)

        assert options.wait_for_result is False
        assert options.poll_interval_ms == 500
        assert options.poll_timeout_ms == 9000


class TestPollSession:
    """PollSession"""

    def test_elapsed_ms(self):
        session = PollSession(token="t", started_at=10.0, interval_ms=1000, timeout_ms=5000)
        assert session.elapsed_ms(12.5) == 2500.0
        assert session.state is PollState.CREATED

    def test_not_cancelled_without_signal(self):
        session = PollSession(token="t", started_at=0.0, interval_ms=1, timeout_ms=1)
        assert session.is_cancelled() is False
