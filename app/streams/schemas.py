"""
本文件定义了数据流相关的 Pydantic 模型，用于请求与响应。

包含：
1. StreamRequest - 单活动流数据请求（分页 / 全量分块 / 降采样）
2. BulkStreamRequest - 多活动批量请求，及其 TimeWindow 时间窗
3. ToolResponse - 统一的文本消息响应（成功为 JSON 文本，失败为带 is_error 标记的纯文本）
"""

from enum import Enum
from typing import Any, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

from ..config import BULK_MAX_ACTIVITIES
from .models import Resolution, SeriesType, StreamFormat, StreamKind, resolve_kind


# points_per_page 的特殊值：返回全部数据并拆分为多条消息
ALL_POINTS = -1

DEFAULT_STREAM_TYPES = [
    StreamKind.TIME, StreamKind.DISTANCE, StreamKind.HEART_RATE, StreamKind.CADENCE, StreamKind.POWER,
]
DEFAULT_BULK_TYPES = [StreamKind.HEART_RATE, StreamKind.POWER, StreamKind.CADENCE]


def _parse_kinds(value: Any) -> Any:
    """支持逗号分隔字符串、内部名称与 Strava 字段名，去重并保持顺序。"""
    if value is None:
        return value
    if isinstance(value, str):
        value = [v for v in value.split(',') if v.strip()]
    kinds: List[StreamKind] = []
    for item in value:
        kind = resolve_kind(item)
        if kind not in kinds:
            kinds.append(kind)
    return kinds


class StreamRequest(BaseModel):
    """单活动流数据请求模型"""
    types          : List[StreamKind]      = Field(default_factory=lambda: list(DEFAULT_STREAM_TYPES), min_length=1, description="请求的流数据类型")
    resolution     : Optional[Resolution]  = Field(default=None, description="数据分辨率，透传给 Strava")
    series_type    : SeriesType            = Field(default=SeriesType.DISTANCE, description="基准轴：time / distance")
    page           : int                   = Field(default=1, description="页码（从 1 开始）")
    points_per_page: int                   = Field(default=100, description="每页样本数；-1 表示返回全部数据并自动分块")
    format         : StreamFormat          = Field(default=StreamFormat.COMPACT, description="输出格式")
    max_points     : Optional[int]         = Field(default=None, ge=1, description="样本数上限，超过时做形状保持降采样")

    @field_validator('types', mode='before')
    @classmethod
    def _normalize_types(cls, v: Any) -> Any:
        return _parse_kinds(v)

    @field_validator('points_per_page')
    @classmethod
    def _check_points_per_page(cls, v: int) -> int:
        if v != ALL_POINTS and v < 1:
            raise ValueError('points_per_page 必须为正整数，或 -1 表示全部数据')
        return v

    @property
    def chunked(self) -> bool:
        return self.points_per_page == ALL_POINTS


class TimeWindow(BaseModel):
    """时间窗：start/end 为绝对秒数（负数表示相对结尾），last/first/middle 为简写"""
    start : Optional[float] = None
    end   : Optional[float] = None
    last  : Optional[float] = None
    first : Optional[float] = None
    middle: Optional[float] = None

    def summary(self) -> str:
        if self.last is not None:
            return f"last_{self.last:g}s"
        if self.first is not None:
            return f"first_{self.first:g}s"
        if self.middle is not None:
            return f"mid_{self.middle:g}s"
        parts = []
        if self.start is not None:
            parts.append(f"s:{self.start:g}")
        if self.end is not None:
            parts.append(f"e:{self.end:g}")
        return ','.join(parts)


class BulkFormat(str, Enum):
    """批量输出格式"""
    COMPACT = "compact"
    STATS_ONLY = "stats_only"
    SAMPLED = "sampled"


class BulkStreamRequest(BaseModel):
    """多活动批量流数据请求模型"""
    activity_ids      : List[Union[int, str]] = Field(..., min_length=1, max_length=BULK_MAX_ACTIVITIES)
    types             : List[StreamKind]      = Field(default_factory=lambda: list(DEFAULT_BULK_TYPES), min_length=1)
    format            : BulkFormat            = Field(default=BulkFormat.COMPACT)
    sample_rate       : int                   = Field(default=10, ge=1, le=100, description="sampled 格式下每 N 个点取 1 个")
    include_statistics: bool                  = Field(default=True)
    time_window       : Optional[TimeWindow]  = Field(default=None)

    @field_validator('types', mode='before')
    @classmethod
    def _normalize_types(cls, v: Any) -> Any:
        return _parse_kinds(v)


class TextContent(BaseModel):
    type: Literal['text'] = 'text'
    text: str


class ToolResponse(BaseModel):
    """统一响应：一条或多条文本消息"""
    content : List[TextContent] = Field(default_factory=list)
    is_error: bool              = Field(default=False)

    @classmethod
    def of(cls, *texts: str) -> 'ToolResponse':
        return cls(content=[TextContent(text=t) for t in texts])

    @classmethod
    def error(cls, text: str) -> 'ToolResponse':
        return cls(content=[TextContent(text=text)], is_error=True)
