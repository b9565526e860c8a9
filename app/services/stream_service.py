"""Stream Service（流数据服务编排层）

职责：
- 作为「上游拉取」与「流数据管线」之间的边界：拉取 Strava 流，转换为通道，交给组装器；
- 统一把各类异常情况转换为带 is_error 标记的文本消息：
  1. 配置错误：缺少访问令牌；
  2. 空结果：上游没有返回任何流；
  3. 上游失败：附带状态码、错误信息与常见原因；
  4. 页码越界：由组装器给出合法范围；
- 批量接口单个活动失败只标记该活动，不影响整体。
"""

from typing import Any, Callable, List, Optional
import logging

import requests

from ..clients.strava_client import StravaApiError, StravaClient
from ..config import get_access_token
from ..streams.assembler import assemble_stream_response
from ..streams.bulk import fetch_bulk_streams, render_bulk_response
from ..streams.models import STRAVA_NAMES, StreamKind, build_channels
from ..streams.schemas import BulkStreamRequest, StreamRequest, ToolResponse


logger = logging.getLogger(__name__)


MISSING_TOKEN_MESSAGE = "缺少 Strava 访问令牌：请设置环境变量 STRAVA_ACCESS_TOKEN，或在配置文件中写入 access_token"

EMPTY_STREAMS_MESSAGE = (
    "未返回任何流数据，可能原因：\n"
    "1. 该活动录制时没有这些数据\n"
    "2. 该活动不是基于 GPS 的活动\n"
    "3. 活动时间过久（Strava 可能不会永久保留全部流数据）"
)


def upstream_error_message(status_code: Optional[int], message: str) -> str:
    return (
        f"获取活动流数据失败（{status_code if status_code is not None else 'unknown'}）：{message}\n\n"
        "可能原因：\n"
        "1. 活动 ID 无效\n"
        "2. 没有查看该活动的权限\n"
        "3. 请求的流类型不可用\n"
        "4. 活动时间过久，流数据已被归档"
    )


def strava_keys(kinds: List[StreamKind]) -> List[str]:
    return [STRAVA_NAMES[k] for k in kinds]


class StreamService:
    def __init__(self, client_factory: Callable[[str], Any] = StravaClient):
        self.client_factory = client_factory

    def get_activity_streams(
        self,
        activity_id: Any,
        request: StreamRequest,
        access_token: Optional[str] = None,
    ) -> ToolResponse:
        token = access_token or get_access_token()
        if not token:
            logger.error("[streams] missing access token")
            return ToolResponse.error(MISSING_TOKEN_MESSAGE)

        try:
            with self.client_factory(token) as client:
                raw_streams = client.get_activity_streams(
                    activity_id,
                    strava_keys(request.types),
                    resolution=request.resolution.value if request.resolution else None,
                    series_type=request.series_type.value,
                )
        except StravaApiError as e:
            logger.warning(f"[streams] activity {activity_id} upstream error: {e}")
            return ToolResponse.error(upstream_error_message(e.status_code, e.message))
        except requests.RequestException as e:
            logger.warning(f"[streams] activity {activity_id} request failed: {e}")
            status = e.response.status_code if e.response is not None else None
            return ToolResponse.error(upstream_error_message(status, str(e)))

        channels = build_channels(raw_streams)
        if not channels:
            logger.info(f"[streams] activity {activity_id} returned no streams")
            return ToolResponse.error(EMPTY_STREAMS_MESSAGE)

        return assemble_stream_response(channels, request)

    def get_bulk_activity_streams(
        self,
        request: BulkStreamRequest,
        access_token: Optional[str] = None,
    ) -> ToolResponse:
        token = access_token or get_access_token()
        if not token:
            logger.error("[bulk] missing access token")
            return ToolResponse.error(MISSING_TOKEN_MESSAGE)

        def fetch(activity_id: Any, kinds: List[StreamKind]):
            # 每个活动使用独立的客户端（独立 Session），避免线程间共享连接状态；用完即关闭
            with self.client_factory(token) as client:
                return client.get_activity_streams(activity_id, strava_keys(kinds))

        result = fetch_bulk_streams(fetch, request)
        return ToolResponse.of(render_bulk_response(result))


stream_service = StreamService()
