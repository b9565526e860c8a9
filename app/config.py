"""
应用配置中心（Configuration Center）

说明：
- 本模块统一管理服务端的运行配置（日志、Strava 接口、流数据分块、批量拉取等）
- 配置优先从环境变量中读取，避免硬编码敏感信息；必要时提供安全的默认值
- 读取顺序：环境变量（优先） > 本地配置文件（仅凭证） > 安全默认

常用环境变量（全部可选）：
1) 日志
   - `LOG_LEVEL`：日志等级，默认 INFO（可选 DEBUG/INFO/WARN/ERROR 等）

2) Strava 相关
   - `STRAVA_ACCESS_TOKEN`：访问令牌；未设置时读取配置文件中的 access_token
   - `STRAVA_TIMEOUT`：调用 Strava API 的超时时间（秒），默认 10
   - `STRAVA_BASE_URL`：API 根地址，默认 https://www.strava.com/api/v3
   - `STREAM_CONFIG_FILE`：凭证配置文件路径，默认 ~/.config/activity-streams/config.json

3) 流数据输出
   - `STREAM_CHUNK_TARGET_KB`：全量分块返回时每条消息的目标大小（KB），默认 50
   - `BULK_MAX_WORKERS`：批量拉取的并发线程数，默认 8
   - `BULK_MAX_ACTIVITIES`：单次批量请求的活动数上限，默认 20
"""

import json
import logging
import os
from typing import Any, Dict, Optional


logger = logging.getLogger(__name__)


# 日志（Logging）
# LOG_LEVEL 用于控制 logging 的根等级，详见 app/logging_config.py
LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO').upper()

# Strava 调用配置
# STRAVA_TIMEOUT 为单次 HTTP 请求超时（秒）
STRAVA_TIMEOUT = int(os.environ.get('STRAVA_TIMEOUT', '10'))
STRAVA_BASE_URL = os.environ.get('STRAVA_BASE_URL', 'https://www.strava.com/api/v3')

CONFIG_FILE = os.environ.get(
    'STREAM_CONFIG_FILE',
    os.path.join(os.path.expanduser('~'), '.config', 'activity-streams', 'config.json'),
)

# 流数据输出
STREAM_CHUNK_TARGET_KB = int(os.environ.get('STREAM_CHUNK_TARGET_KB', '50'))
BULK_MAX_WORKERS = int(os.environ.get('BULK_MAX_WORKERS', '8'))
BULK_MAX_ACTIVITIES = int(os.environ.get('BULK_MAX_ACTIVITIES', '20'))


def load_config_file(path: Optional[str] = None) -> Dict[str, Any]:
    """
    读取本地 JSON 配置文件。

    文件格式示例：
        {"access_token": "...", "refresh_token": "...", "client_id": "...", "client_secret": "...", "expires_at": 0}

    返回：
        配置字典；文件不存在或无法解析时返回空字典
    """
    path = path or CONFIG_FILE
    if not os.path.exists(path):
        return {}
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        return data if isinstance(data, dict) else {}
    except (OSError, ValueError) as e:
        logger.warning(f"[config] failed to read {path}: {e}")
        return {}


def save_config(values: Dict[str, Any], path: Optional[str] = None) -> None:
    """与已有配置合并后写回配置文件（目录不存在时自动创建）。"""
    path = path or CONFIG_FILE
    merged = load_config_file(path)
    merged.update({k: v for k, v in values.items() if v is not None})
    os.makedirs(os.path.dirname(path) or '.', exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(merged, f, indent=2)


def get_access_token(path: Optional[str] = None) -> Optional[str]:
    """
    获取 Strava 访问令牌。
    读取顺序：
        1. 环境变量 STRAVA_ACCESS_TOKEN（优先）
        2. 本地配置文件中的 access_token
    """
    token = os.environ.get('STRAVA_ACCESS_TOKEN')
    if token:
        return token
    return load_config_file(path).get('access_token') or None
