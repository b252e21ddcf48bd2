# -*- coding: utf-8 -*-
"""
输出面板

把判题结果、错误和运行事件写成人可读的文本（默认写到标准输出）。
"""

from __future__ import annotations

import sys
import traceback
from typing import TextIO, Optional

from ..core.events import RunEvent, RunEventType
from .exceptions import LocalJudgeError, TransportError, ProtocolError, PollTimeoutError, RunCancelledError
from .judge.status_codes import get_status_name
from .models import SubmissionRequest, SubmissionResult
from .source_provider import SourceDocument


def safe_preview(text: str, limit: int) -> str:
    """截断过长的文本并注明总长度"""
    if len(text) <= limit:
        return text
    return text[:limit] + f"\n...[truncated, total {len(text)} chars]"


class OutputChannel:
    """人可读输出（同时实现 RunReporter）"""

    def __init__(self, stream: Optional[TextIO] = None, show_traceback: bool = False):
        self._stream = stream
        self.show_traceback = show_traceback

    @property
    def stream(self) -> TextIO:
        return self._stream if self._stream is not None else sys.stdout

    def append_line(self, text: str = "") -> None:
        print(text, file=self.stream, flush=True)

    def render_result(self, result: SubmissionResult) -> None:
        self.append_line("=== LocalJudge Result ===")
        if result.status:
            self.append_line(f"Status: {get_status_name(result)}")
        if result.message:
            self.append_line(f"Message: {result.message}")
        if result.time:
            self.append_line(f"Time: {result.time}")
        if isinstance(result.memory, (int, float)):
            self.append_line(f"Memory: {result.memory}")

        for title, text in (
            ("compile_output", result.compile_output),
            ("stdout", result.stdout),
            ("stderr", result.stderr),
        ):
            if text:
                self.append_line(f"\n--- {title} ---")
                self.append_line(text)

        if result.token:
            self.append_line(f"\nToken: {result.token}")
        self.append_line("========================\n")

    def render_error(self, exc: BaseException) -> None:
        self.append_line("=== LocalJudge Error ===")
        self.append_line(str(exc))

        if isinstance(exc, TransportError) and exc.url:
            self.append_line(f"url: {exc.url}")

        partial = None
        if isinstance(exc, ProtocolError):
            partial = exc.result
        elif isinstance(exc, (PollTimeoutError, RunCancelledError)):
            partial = exc.last_result
        if partial is not None:
            self.append_line("--- last known result ---")
            self.render_result(partial)

        if exc.__cause__ is not None and not isinstance(exc, LocalJudgeError):
            self.append_line("--- cause ---")
            self.append_line(str(exc.__cause__))
        if self.show_traceback:
            self.append_line("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)))

    def capture_summary(self, document: SourceDocument, request: SubmissionRequest, preview_chars: int) -> None:
        """打印提交前的调试摘要"""
        self.append_line("=== LocalJudge Debug: Capture Summary ===")
        self.append_line(f"fileName: {document.path}")
        self.append_line(f"lineCount: {document.line_count}")
        self.append_line(f"eol: {document.eol}")
        self.append_line("")

        self.append_line("--- Payload (without source_code preview) ---")
        self.append_line(f"language_id: {request.language_id}")
        self.append_line(f"stdin length: {len(request.stdin or '')}")
        self.append_line(f"expected_output type: {type(request.expected_output).__name__}")
        self.append_line("")

        self.append_line("--- source_code preview ---")
        self.append_line(safe_preview(request.source_code, preview_chars))
        self.append_line("=== End Debug ===\n")

    def report(self, event: RunEvent) -> None:
        data = event.data
        if event.type == RunEventType.SUBMITTING:
            self.append_line(f"Submitting (wait={'true' if data.get('wait') else 'false'})...")
        elif event.type == RunEventType.CREATED:
            self.append_line(f"Submission queued, token: {data.get('token')}")
        elif event.type == RunEventType.POLL_STARTED:
            self.append_line(
                f"Polling every {data.get('interval_ms')}ms (timeout {data.get('timeout_ms')}ms), Ctrl+C to cancel"
            )
        elif event.type == RunEventType.POLL_PROGRESS:
            self.append_line(f"[poll {data.get('poll_count')}] {data.get('status')}")
        elif event.type == RunEventType.POLL_TIMED_OUT:
            self.append_line(f"Polling timed out after {data.get('poll_count')} polls.")
        elif event.type == RunEventType.POLL_CANCELLED:
            self.append_line("Polling cancelled.")
