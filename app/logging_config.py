"""
日志初始化（Logging Bootstrap）

说明：
- 统一初始化根日志记录器（root logger），设置格式与日志等级；
- 等级从显式传入 `level` 或配置项 LOG_LEVEL 读取，默认 INFO；
- 格式中带线程名，批量拉取的工作线程（bulk-streams_N）可与请求线程区分；
- urllib3 连接池日志固定在 WARNING 以上，避免每次 Strava 调用刷屏；
- 在 app/main.py 启动时调用一次。
"""

import logging
from typing import Optional

from .config import LOG_LEVEL


LOG_FORMAT = '%(asctime)s %(levelname)s [%(threadName)s] [%(name)s] %(message)s'
QUIET_LOGGERS = ('urllib3',)


def setup_logging(level: Optional[str] = None) -> None:
    """
    初始化全局日志配置。

    参数：
        level: 可选的日志等级（字符串）。若未提供，则使用配置项 LOG_LEVEL。
    """
    log_level = (level or LOG_LEVEL).upper()
    logging.basicConfig(level=getattr(logging, log_level, logging.INFO), format=LOG_FORMAT)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(logging.WARNING, logging.getLogger().level))
