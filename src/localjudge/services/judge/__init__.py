# -*- coding: utf-8 -*-
"""判题状态分类与宿主协作接口"""

from .status_codes import (
    JudgeState,
    StatusClassifier,
    KeywordStatusClassifier,
    StatusCodeClassifier,
    DEFAULT_CLASSIFIER,
)
from .ports import CredentialProvider, SourceProvider, CancellationSignal, RunReporter

__all__ = [
    "JudgeState",
    "StatusClassifier",
    "KeywordStatusClassifier",
    "StatusCodeClassifier",
    "DEFAULT_CLASSIFIER",
    "CredentialProvider",
    "SourceProvider",
    "CancellationSignal",
    "RunReporter",
]
