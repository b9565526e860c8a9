"""Strava API 客户端（最小封装）

功能：
- 每个客户端实例持有自己的 Session 与鉴权头，令牌按调用显式传入，不修改共享状态；
- 支持 with 语句，退出时关闭 Session；
- 提供活动流数据的 GET 调用（/activities/{id}/streams/{types}）；
- 非 200 响应统一抛出 StravaApiError，由上层转换为错误消息。
"""

from typing import Any, Dict, List, Optional
import logging
import requests

from ..config import STRAVA_BASE_URL, STRAVA_TIMEOUT


logger = logging.getLogger(__name__)


class StravaApiError(Exception):
    def __init__(self, status_code: Optional[int], message: str):
        super().__init__(f"Strava API error {status_code}: {message}")
        self.status_code = status_code
        self.message = message


def _error_message(resp: requests.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text
    if isinstance(body, dict) and isinstance(body.get('message'), str):
        return body['message']
    return resp.text


class StravaClient:
    def __init__(self, access_token: str, timeout: Optional[int] = None, base_url: Optional[str] = None):
        self.access_token = access_token
        self.timeout = timeout or STRAVA_TIMEOUT
        self.base_url = base_url or STRAVA_BASE_URL
        self.session = requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
        })

    def close(self) -> None:
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return None

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """内部 GET 封装：非 200 统一抛 StravaApiError。"""
        url = f"{self.base_url}{path}"
        resp = self.session.get(url, params=params or {}, timeout=self.timeout)
        if resp.status_code != 200:
            logger.warning(f"[strava] GET {path} -> {resp.status_code}")
            raise StravaApiError(resp.status_code, _error_message(resp))
        return resp.json()

    def get_activity_streams(
        self,
        activity_id: Any,
        keys: List[str],
        resolution: Optional[str] = None,
        series_type: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """获取活动流数据。

        参数：
            keys: Strava 流字段列表（如 time, distance, watts 等）
            resolution: low/medium/high，不传则由 Strava 按活动长度决定
            series_type: time/distance
        返回：
            [{'type', 'data', 'series_type', 'original_size', 'resolution'}, ...]
        """
        params: Dict[str, Any] = {}
        if resolution:
            params["resolution"] = resolution
        if series_type:
            params["series_type"] = series_type
        data = self._get(f"/activities/{activity_id}/streams/{','.join(keys)}", params=params)
        if isinstance(data, dict):
            return [dict(v, type=v.get('type', k)) for k, v in data.items() if isinstance(v, dict)]
        return data or []
