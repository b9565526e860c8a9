"""
本文件定义了数据流（Stream）相关的数据模型。

包含：
1. StreamKind / Resolution / SeriesType / StreamFormat 枚举
2. BaseChannel - 基础通道类（一个命名的时间序列）
3. 具体的 Channel 类 - 每种流类型一个，携带自身的样本类型，并各自实现：
   - compute_statistics：该类型的统计指标
   - encode_verbose_sample：verbose 格式下单个样本的可读编码
   - round_compact_sample：批量接口中紧凑数据的取整规则
4. 单位 / 描述查找表，Strava 字段名映射，以及通道构造工厂

说明：
- 新增一种流类型时，只需新增一个 Channel 子类并登记到 CHANNEL_CLASSES；
- 模型本身不做任何 IO，统计与编码都是纯函数式的。
"""

import logging
from enum import Enum
from typing import Any, ClassVar, Dict, Iterable, List, Optional, Tuple, Union

from pydantic import BaseModel, Field

from ..core.analytics.power import normalized_power
from ..core.analytics.time_utils import format_clock
from .statistics import kph, numeric_summary, valid_numbers


logger = logging.getLogger(__name__)

Number = Union[int, float]


class StreamKind(str, Enum):
    """流类型枚举（内部统一名称）"""
    TIME = "time"
    DISTANCE = "distance"
    POSITION = "position"
    ALTITUDE = "altitude"
    SPEED = "speed"
    HEART_RATE = "heart_rate"
    CADENCE = "cadence"
    POWER = "power"
    TEMPERATURE = "temperature"
    MOVING = "moving_flag"
    GRADE = "grade"


class Resolution(str, Enum):
    """数据分辨率枚举"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class SeriesType(str, Enum):
    """系列类型枚举"""
    DISTANCE = "distance"
    TIME = "time"


class StreamFormat(str, Enum):
    """输出格式：compact 面向机器（默认），verbose 面向人类阅读"""
    COMPACT = "compact"
    VERBOSE = "verbose"


# Strava API 字段名 -> 内部流类型
STRAVA_KEYS: Dict[str, StreamKind] = {
    'time'           : StreamKind.TIME,
    'distance'       : StreamKind.DISTANCE,
    'latlng'         : StreamKind.POSITION,
    'altitude'       : StreamKind.ALTITUDE,
    'velocity_smooth': StreamKind.SPEED,
    'heartrate'      : StreamKind.HEART_RATE,
    'cadence'        : StreamKind.CADENCE,
    'watts'          : StreamKind.POWER,
    'temp'           : StreamKind.TEMPERATURE,
    'moving'         : StreamKind.MOVING,
    'grade_smooth'   : StreamKind.GRADE,
}

# 内部流类型 -> Strava API 字段名
STRAVA_NAMES: Dict[StreamKind, str] = {v: k for k, v in STRAVA_KEYS.items()}

UNITS: Dict[StreamKind, str] = {
    StreamKind.TIME       : 'seconds',
    StreamKind.DISTANCE   : 'meters',
    StreamKind.POSITION   : '[latitude, longitude]',
    StreamKind.ALTITUDE   : 'meters',
    StreamKind.SPEED      : 'meters_per_second',
    StreamKind.HEART_RATE : 'beats_per_minute',
    StreamKind.CADENCE    : 'revolutions_per_minute',
    StreamKind.POWER      : 'watts',
    StreamKind.TEMPERATURE: 'celsius',
    StreamKind.MOVING     : 'boolean',
    StreamKind.GRADE      : 'percent',
}

DESCRIPTIONS: Dict[StreamKind, str] = {
    StreamKind.TIME       : 'Time elapsed from activity start',
    StreamKind.DISTANCE   : 'Cumulative distance from start',
    StreamKind.POSITION   : 'GPS coordinates [latitude, longitude]',
    StreamKind.ALTITUDE   : 'Elevation above sea level',
    StreamKind.SPEED      : 'Smoothed speed',
    StreamKind.HEART_RATE : 'Heart rate',
    StreamKind.CADENCE    : 'Pedal/step cadence',
    StreamKind.POWER      : 'Power output',
    StreamKind.TEMPERATURE: 'Temperature',
    StreamKind.MOVING     : 'Whether athlete was moving',
    StreamKind.GRADE      : 'Road grade percentage',
}


def resolve_kind(name: Union[str, StreamKind]) -> StreamKind:
    """把内部名称或 Strava 字段名统一解析为 StreamKind，未知名称抛 ValueError。"""
    if isinstance(name, StreamKind):
        return name
    key = (name or '').strip()
    if key in STRAVA_KEYS:
        return STRAVA_KEYS[key]
    try:
        return StreamKind(key)
    except ValueError:
        raise ValueError(f"未知的流类型: {name}") from None


# 流数据模型
class BaseChannel(BaseModel):
    """基础通道类：一个命名的、按隐式索引对齐的时间序列"""
    kind         : StreamKind           = Field(...)
    data         : List[Any]            = Field(default_factory=list)
    series_type  : SeriesType           = Field(default=SeriesType.DISTANCE)
    original_size: int                  = Field(default=0)
    resolution   : Optional[Resolution] = Field(default=None)

    # 是否为数值型样本（决定统计与降采样时是否做峰谷保留）
    numeric: ClassVar[bool] = True

    @property
    def size(self) -> int:
        return len(self.data)

    def with_data(self, data: List[Any]) -> 'BaseChannel':
        """返回替换样本后的新通道，original_size 保持不变。"""
        return self.model_copy(update={'data': list(data)})

    def base_statistics(self) -> Dict[str, Any]:
        return {
            'total_points': len(self.data),
            'resolution'  : self.resolution.value if self.resolution else None,
            'series_type' : self.series_type.value,
        }

    def compute_statistics(self) -> Dict[str, Any]:
        stats = self.base_statistics()
        stats.update(numeric_summary(self.data))
        return stats

    def encode_verbose_sample(self, value: Any) -> Any:
        return value

    def round_compact_sample(self, value: Any) -> Any:
        return value if value is None else int(round(value))


class TimeChannel(BaseChannel):
    kind       : StreamKind             = Field(default=StreamKind.TIME)
    data       : List[Optional[Number]] = Field(default_factory=list)
    series_type: SeriesType             = Field(default=SeriesType.TIME)

    def encode_verbose_sample(self, value: Any) -> Any:
        return {'elapsed_seconds': value, 'clock_formatted': format_clock(value)}


class DistanceChannel(BaseChannel):
    kind: StreamKind             = Field(default=StreamKind.DISTANCE)
    data: List[Optional[Number]] = Field(default_factory=list)

    def encode_verbose_sample(self, value: Any) -> Any:
        if value is None:
            return None
        return {'meters': value, 'kilometers': round(value / 1000, 2)}


class PositionChannel(BaseChannel):
    kind: StreamKind                = Field(default=StreamKind.POSITION)
    data: List[Tuple[float, float]] = Field(default_factory=list)

    numeric: ClassVar[bool] = False

    def compute_statistics(self) -> Dict[str, Any]:
        return self.base_statistics()

    def encode_verbose_sample(self, value: Any) -> Any:
        lat, lng = value
        return {'latitude': round(lat, 6), 'longitude': round(lng, 6)}

    def round_compact_sample(self, value: Any) -> Any:
        lat, lng = value
        return [round(lat, 5), round(lng, 5)]


class AltitudeChannel(BaseChannel):
    kind: StreamKind             = Field(default=StreamKind.ALTITUDE)
    data: List[Optional[Number]] = Field(default_factory=list)

    def round_compact_sample(self, value: Any) -> Any:
        return value if value is None else round(value, 1)


class SpeedChannel(BaseChannel):
    kind: StreamKind             = Field(default=StreamKind.SPEED)
    data: List[Optional[Number]] = Field(default_factory=list)

    def compute_statistics(self) -> Dict[str, Any]:
        stats = super().compute_statistics()
        values = valid_numbers(self.data)
        if values:
            stats['min_kph'] = kph(min(values))
            stats['avg_kph'] = kph(sum(values) / len(values))
            stats['max_kph'] = kph(max(values))
        return stats

    def encode_verbose_sample(self, value: Any) -> Any:
        if value is None:
            return None
        return {'meters_per_second': value, 'kilometers_per_hour': kph(value)}

    def round_compact_sample(self, value: Any) -> Any:
        return value if value is None else round(value, 1)


class HeartRateChannel(BaseChannel):
    kind: StreamKind             = Field(default=StreamKind.HEART_RATE)
    data: List[Optional[Number]] = Field(default_factory=list)


class CadenceChannel(BaseChannel):
    kind: StreamKind             = Field(default=StreamKind.CADENCE)
    data: List[Optional[Number]] = Field(default_factory=list)


class PowerChannel(BaseChannel):
    kind: StreamKind             = Field(default=StreamKind.POWER)
    data: List[Optional[Number]] = Field(default_factory=list)

    def compute_statistics(self) -> Dict[str, Any]:
        stats = super().compute_statistics()
        if 'avg' in stats:
            stats['normalized_power'] = normalized_power(self.data)
        return stats


class TemperatureChannel(BaseChannel):
    kind: StreamKind             = Field(default=StreamKind.TEMPERATURE)
    data: List[Optional[Number]] = Field(default_factory=list)


class MovingChannel(BaseChannel):
    kind: StreamKind = Field(default=StreamKind.MOVING)
    data: List[bool] = Field(default_factory=list)

    numeric: ClassVar[bool] = False

    def compute_statistics(self) -> Dict[str, Any]:
        return self.base_statistics()

    def round_compact_sample(self, value: Any) -> Any:
        return 1 if value else 0


class GradeChannel(BaseChannel):
    kind: StreamKind             = Field(default=StreamKind.GRADE)
    data: List[Optional[Number]] = Field(default_factory=list)

    def encode_verbose_sample(self, value: Any) -> Any:
        return value if value is None else round(value, 1)

    def round_compact_sample(self, value: Any) -> Any:
        return value if value is None else round(value, 1)


CHANNEL_CLASSES: Dict[StreamKind, type] = {
    StreamKind.TIME       : TimeChannel,
    StreamKind.DISTANCE   : DistanceChannel,
    StreamKind.POSITION   : PositionChannel,
    StreamKind.ALTITUDE   : AltitudeChannel,
    StreamKind.SPEED      : SpeedChannel,
    StreamKind.HEART_RATE : HeartRateChannel,
    StreamKind.CADENCE    : CadenceChannel,
    StreamKind.POWER      : PowerChannel,
    StreamKind.TEMPERATURE: TemperatureChannel,
    StreamKind.MOVING     : MovingChannel,
    StreamKind.GRADE      : GradeChannel,
}


def build_channel(
    kind: Union[str, StreamKind],
    data: List[Any],
    series_type: Optional[str] = None,
    original_size: Optional[int] = None,
    resolution: Optional[str] = None,
) -> BaseChannel:
    """按流类型构造具体的 Channel 实例（kind 可为内部名称或 Strava 字段名）。"""
    stream_kind = resolve_kind(kind)
    channel_cls = CHANNEL_CLASSES[stream_kind]
    fields: Dict[str, Any] = {
        'data'         : data or [],
        'original_size': original_size if original_size is not None else len(data or []),
    }
    if series_type:
        fields['series_type'] = series_type
    if resolution:
        fields['resolution'] = resolution
    return channel_cls(**fields)


def build_channels(raw_streams: Union[Iterable[Dict[str, Any]], Dict[str, Dict[str, Any]]]) -> List[BaseChannel]:
    """
    把 Strava 返回的流（列表形式或 key_by_type 字典形式）转换为 Channel 列表。

    未识别的流类型会被跳过并记录告警，保持上游返回顺序。
    """
    if isinstance(raw_streams, dict):
        items = [dict(v, type=v.get('type', k)) for k, v in raw_streams.items()]
    else:
        items = list(raw_streams or [])

    channels: List[BaseChannel] = []
    for item in items:
        stream_type = item.get('type')
        try:
            stream_kind = resolve_kind(stream_type)
        except ValueError:
            logger.warning(f"[streams] skip unknown stream type: {stream_type}")
            continue
        channels.append(build_channel(
            stream_kind,
            item.get('data') or [],
            series_type=item.get('series_type'),
            original_size=item.get('original_size'),
            resolution=item.get('resolution'),
        ))
    return channels
