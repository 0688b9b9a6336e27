from __future__ import annotations

import sys

from loguru import logger as logger

__all__ = ["logger", "setup_logging"]


def setup_logging(level: str = "INFO") -> None:
    """重置 loguru 输出到 stderr，并设置日志级别（评测/CLI 场景避免 INFO 刷屏）。"""
    logger.remove()
    logger.add(sys.stderr, level=str(level or "INFO").upper().strip() or "INFO")
