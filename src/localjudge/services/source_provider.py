# -*- coding: utf-8 -*-
"""从文件读取待提交的源代码"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from loguru import logger

from .exceptions import SourceError
from .models import SubmissionRequest


@dataclass(frozen=True)
class SourceDocument:
    """待提交的源代码及其语言"""
    path: Path
    text: str
    language_id: int

    @property
    def line_count(self) -> int:
        return self.text.count("\n") + 1

    @property
    def eol(self) -> str:
        return "CRLF" if "\r\n" in self.text else "LF"

    def to_request(self, stdin: Optional[str] = None, expected_output: Any = None) -> SubmissionRequest:
        return SubmissionRequest(
            language_id=self.language_id,
            source_code=self.text,
            stdin=stdin,
            expected_output=expected_output,
        )


class FileSourceProvider:
    """以文件作为源代码来源（语言ID由调用方指定）"""

    def __init__(self, path: str | Path, language_id: int):
        self.path = Path(path)
        self.language_id = language_id

    def get_source_and_language(self) -> SourceDocument:
        try:
            # newline="" 保留原始换行符
            with open(self.path, "r", encoding="utf-8", newline="") as f:
                text = f.read()
        except FileNotFoundError as exc:
            raise SourceError(f"source file not found: {self.path}") from exc
        except (OSError, UnicodeDecodeError) as exc:
            raise SourceError(f"cannot read source file {self.path}: {exc}") from exc

        logger.debug(f"[Source] 读取 {self.path}，{len(text)} 字符")
        return SourceDocument(path=self.path.resolve(), text=text, language_id=self.language_id)
