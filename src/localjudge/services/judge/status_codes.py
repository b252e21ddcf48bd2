# -*- coding: utf-8 -*-
"""判题状态分类：判断提交是否仍在运行

服务端尚未公布状态码枚举，默认按状态描述的关键字判断；
公布后换成 StatusCodeClassifier 即可，SubmissionRunner 无需修改。
"""

from __future__ import annotations

from enum import Enum
from typing import Iterable, Protocol

from ..models import SubmissionResult


class JudgeState(str, Enum):
    """判题阶段"""
    PENDING = "pending"
    TERMINAL = "terminal"


# 状态描述中出现这些片段即视为仍在运行
PENDING_KEYWORDS = ("queue", "processing", "running")


class StatusClassifier(Protocol):
    """状态分类接口"""

    def classify(self, result: SubmissionResult) -> JudgeState:
        ...


class KeywordStatusClassifier:
    """按状态描述关键字分类

    识别不到"仍在运行"的信号就视为结束（包括完全没有 status 的情况）。
    """

    def __init__(self, keywords: Iterable[str] = PENDING_KEYWORDS):
        self.keywords = tuple(k.lower() for k in keywords)

    def classify(self, result: SubmissionResult) -> JudgeState:
        desc = (get_status_description(result) or "").lower()
        if any(k in desc for k in self.keywords):
            return JudgeState.PENDING
        return JudgeState.TERMINAL


class StatusCodeClassifier:
    """按状态码表分类（用于服务端公布了确切状态码之后）"""

    def __init__(self, pending_ids: Iterable[int]):
        self.pending_ids = frozenset(pending_ids)

    def classify(self, result: SubmissionResult) -> JudgeState:
        code = get_status_id(result)
        if code is not None and code in self.pending_ids:
            return JudgeState.PENDING
        return JudgeState.TERMINAL


DEFAULT_CLASSIFIER: StatusClassifier = KeywordStatusClassifier()


def get_status_id(result: SubmissionResult) -> int | None:
    return result.status.id if result.status else None


def get_status_description(result: SubmissionResult) -> str | None:
    return result.status.description if result.status else None


def get_status_name(result: SubmissionResult) -> str:
    """状态的可读名称，如 "[3] Accepted" """
    if not result.status:
        return "(no status)"
    code = result.status.id
    desc = result.status.description or ""
    if code is None:
        return desc or "(no status)"
    return f"[{code}] {desc}".rstrip()
