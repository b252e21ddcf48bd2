# -*- coding: utf-8 -*-
from __future__ import annotations
import os
import sys
from typing import Optional
from loguru import logger
from pathlib import Path

from .unified_config import localjudge_home


def _normalize_level(level: Optional[str]) -> str:
    """标准化日志级别（内部辅助）"""
    return (level or "INFO").upper()


def configure_logger(level: str = "INFO", logs_dir: Optional[str] = None):
    """配置日志（支持环境变量指定日志目录）

    标准输出留给判题结果，诊断日志写到 stderr 和日志文件。
    """
    logs_dir = logs_dir or os.getenv("LOCALJUDGE_LOGS_DIR") or str(localjudge_home() / "logs")

    logs_path = Path(logs_dir)
    logs_path.mkdir(parents=True, exist_ok=True)

    logger.remove()
    normalized_level = _normalize_level(level)
    log_file = logs_path / "localjudge.log"
    logger.add(str(log_file), rotation="5 MB", retention=5, encoding="utf-8", level="DEBUG")
    logger.add(sys.stderr, level=normalized_level)
    return logger
