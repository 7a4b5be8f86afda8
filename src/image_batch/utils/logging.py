"""日志初始化。"""

from __future__ import annotations

import logging

# 这些库在 DEBUG 级别会逐块输出解析细节，淹没任务日志。
NOISY_LOGGERS = ("PIL",)


def setup_logging(level: int = logging.INFO) -> None:
    """初始化项目日志配置；工作线程名写入每行日志，方便区分并发任务。"""

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(threadName)s] %(levelname)s %(name)s: %(message)s",
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.INFO))
