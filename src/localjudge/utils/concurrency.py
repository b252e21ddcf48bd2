# -*- coding: utf-8 -*-
from __future__ import annotations

import signal
import threading
import time
from contextlib import contextmanager
from typing import Callable, Iterator, Optional


class CancelToken:
    def __init__(self):
        self._flag = False
        self._lock = threading.Lock()

    def cancel(self):
        with self._lock:
            self._flag = True

    def is_cancelled(self) -> bool:
        with self._lock:
            return self._flag


@contextmanager
def cancel_on_interrupt(
    token: CancelToken,
    on_cancel: Optional[Callable[[], None]] = None
) -> Iterator[CancelToken]:
    """Ctrl+C 只设置取消标记，不打断正在进行的请求

    第二次 Ctrl+C 恢复默认行为（抛出 KeyboardInterrupt）。
    只能在主线程中使用。
    """
    previous = signal.getsignal(signal.SIGINT)
    if previous is None:
        previous = signal.default_int_handler

    def _handler(signum, frame):
        if token.is_cancelled():
            signal.signal(signal.SIGINT, signal.default_int_handler)
            raise KeyboardInterrupt
        token.cancel()
        if on_cancel:
            on_cancel()

    signal.signal(signal.SIGINT, _handler)
    try:
        yield token
    finally:
        signal.signal(signal.SIGINT, previous)


def interruptible_sleep(
    seconds: float,
    cancel_check: Optional[Callable[[], bool]] = None,
    interval: float = 0.2
) -> bool:
    """可中断的等待

    Returns:
        bool: True 表示正常完成，False 表示被取消
    """
    if cancel_check is None:
        time.sleep(seconds)
        return True

    elapsed = 0.0
    while elapsed < seconds:
        if cancel_check():
            return False
        sleep_time = min(interval, seconds - elapsed)
        time.sleep(sleep_time)
        elapsed += sleep_time
    return not cancel_check()
