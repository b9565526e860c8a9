"""
数据流 API 路由

包含：
- GET  /activities/{activity_id}/streams：获取单个活动的流数据（分页 / 全量分块 / 降采样）；
- POST /activities/streams/bulk：批量获取多个活动的流数据。

说明：
- 路由仅做参数校验与调用 stream_service；
- 成功与失败都返回 ToolResponse（失败时 is_error=true，内容为纯文本说明）；
- 访问令牌可通过 access_token 参数按请求传入，未传入时读取配置。
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import ValidationError
from typing import Optional
import logging

from ..services.stream_service import StreamService, stream_service
from ..streams.models import Resolution, SeriesType, StreamFormat
from ..streams.schemas import BulkStreamRequest, StreamRequest, ToolResponse


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/activities", tags=["streams"])


def get_stream_service() -> StreamService:
    """FastAPI 依赖项：获取流数据服务（测试中可覆盖）。"""
    return stream_service


@router.get("/{activity_id}/streams", response_model=ToolResponse)
def get_activity_streams(
    activity_id: int,
    types: Optional[str] = Query(None, description="流数据类型，用逗号分隔，如：time,distance,heart_rate,power（也接受 Strava 字段名）"),
    resolution: Optional[Resolution] = Query(None, description="数据分辨率：low, medium, high"),
    series_type: SeriesType = Query(SeriesType.DISTANCE, description="基准轴：time, distance"),
    page: int = Query(1, description="页码，从 1 开始"),
    points_per_page: int = Query(100, description="每页样本数；-1 表示返回全部数据并自动分块"),
    format: StreamFormat = Query(StreamFormat.COMPACT, description="输出格式：compact, verbose"),
    max_points: Optional[int] = Query(None, description="样本数上限，超过时做形状保持降采样"),
    access_token: Optional[str] = Query(None, description="Strava API访问令牌"),
    service: StreamService = Depends(get_stream_service),
):
    try:
        params = dict(
            resolution=resolution,
            series_type=series_type,
            page=page,
            points_per_page=points_per_page,
            format=format,
            max_points=max_points,
        )
        if types:
            params['types'] = types
        request = StreamRequest(**params)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))

    try:
        return service.get_activity_streams(activity_id, request, access_token)
    except Exception as e:
        logger.exception("[streams] activity_id=%s unexpected error", activity_id)
        raise HTTPException(status_code=500, detail=f"获取流数据时发生错误: {str(e)}")


@router.post("/streams/bulk", response_model=ToolResponse)
def get_bulk_activity_streams(
    request: BulkStreamRequest,
    access_token: Optional[str] = Query(None, description="Strava API访问令牌"),
    service: StreamService = Depends(get_stream_service),
):
    try:
        return service.get_bulk_activity_streams(request, access_token)
    except Exception as e:
        logger.exception("[bulk] unexpected error")
        raise HTTPException(status_code=500, detail=f"批量获取流数据时发生错误: {str(e)}")
